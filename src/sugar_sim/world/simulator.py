from __future__ import annotations

import logging
import random
import time
from typing import TYPE_CHECKING, Iterator

from sugar_sim.config.settings import AppSettings
from sugar_sim.utils.bits import majority, random_bits
from sugar_sim.utils.types import SEXES, AgentState, Disease, Position, SimulationStats
from sugar_sim.world.landscape import SugarLandscape

if TYPE_CHECKING:
    from sugar_sim.agents.decisions import DecisionSource
    from sugar_sim.engine.tick_engine import TickReport

# Nearest-first scan order for cardinal lookups: east, west, north, south.
CARDINAL_DIRECTIONS: tuple[Position, ...] = ((1, 0), (-1, 0), (0, 1), (0, -1))


class WorldSimulator:
    """Bounded sugar grid holding at most one agent per cell, plus the tick loop."""

    def __init__(
        self,
        settings: AppSettings,
        decision_source: DecisionSource | None = None,
        seed: int | None = None,
        landscape: SugarLandscape | None = None,
        populate: bool = True,
    ) -> None:
        # Runtime imports: the engine and decision sources import rule modules
        # that only need this class for type hints.
        from sugar_sim.agents.decisions import RuleBasedDecisionSource
        from sugar_sim.engine.tick_engine import TickEngine

        self.logger = logging.getLogger("sugar_sim.world")
        self.settings = settings
        self.rules = settings.rules
        self.seed = settings.simulation.seed if seed is None else seed
        self.rng = random.Random(self.seed)
        self.landscape = landscape or SugarLandscape.from_settings(settings.landscape)
        self.stats = SimulationStats()
        self.tick = 0
        self.agents: dict[int, AgentState] = {}
        self.moved_by_combat: set[int] = set()
        self._occupancy: dict[Position, int] = {}
        self._next_id = 1
        self._disease_pool: list[Disease] = []
        self._pollution_steps = 0

        self.decision_source = decision_source or RuleBasedDecisionSource()
        self.tick_engine = TickEngine(self.decision_source, self.rules)

        if populate:
            self._init_population()
        self.logger.info(
            "World initialized: seed=%d grid=%dx%d agents=%d decisions=%s",
            self.seed,
            self.width,
            self.height,
            len(self.agents),
            self.decision_source.name,
        )

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    @property
    def width(self) -> int:
        return self.landscape.width

    @property
    def height(self) -> int:
        return self.landscape.height

    def in_bounds(self, pos: Position) -> bool:
        x, y = pos
        return 0 <= x < self.width and 0 <= y < self.height

    def cardinal_positions(self, pos: Position, radius: int) -> list[tuple[Position, int]]:
        """In-bounds cells at distance 1..radius along the four axes, nearest first."""
        x, y = pos
        out: list[tuple[Position, int]] = []
        for dist in range(1, radius + 1):
            for dx, dy in CARDINAL_DIRECTIONS:
                cell = (x + dx * dist, y + dy * dist)
                if self.in_bounds(cell):
                    out.append((cell, dist))
        return out

    def can_see(self, observer: AgentState, pos: Position) -> bool:
        ox, oy = observer.pos
        x, y = pos
        if ox != x and oy != y:
            return False
        return 0 < abs(ox - x) + abs(oy - y) <= observer.vision

    # ------------------------------------------------------------------
    # Occupancy
    # ------------------------------------------------------------------

    def get(self, agent_id: int) -> AgentState | None:
        return self.agents.get(agent_id)

    def has(self, agent_id: int) -> bool:
        return agent_id in self.agents

    def agent_at(self, pos: Position) -> AgentState | None:
        agent_id = self._occupancy.get(pos)
        return None if agent_id is None else self.agents[agent_id]

    def is_empty(self, pos: Position) -> bool:
        return pos not in self._occupancy

    def empty_adjacent(self, pos: Position) -> list[Position]:
        return [cell for cell, _ in self.cardinal_positions(pos, 1) if self.is_empty(cell)]

    def random_empty(self) -> Position | None:
        empties = [
            (x, y)
            for x in range(self.width)
            for y in range(self.height)
            if (x, y) not in self._occupancy
        ]
        if not empties:
            return None
        return self.rng.choice(empties)

    def nearby_agents(self, agent: AgentState, radius: int) -> list[AgentState]:
        out: list[AgentState] = []
        for cell, _ in self.cardinal_positions(agent.pos, radius):
            other = self.agent_at(cell)
            if other is not None:
                out.append(other)
        return out

    def adjacent_agents(self, agent: AgentState) -> list[AgentState]:
        return self.nearby_agents(agent, 1)

    def shuffled_agents(self) -> list[AgentState]:
        order = list(self.agents.values())
        self.rng.shuffle(order)
        return order

    def iter_agents(self) -> Iterator[AgentState]:
        return iter(sorted(self.agents.values(), key=lambda a: a.id))

    # ------------------------------------------------------------------
    # Agent lifecycle
    # ------------------------------------------------------------------

    def next_id(self) -> int:
        agent_id = self._next_id
        self._next_id += 1
        return agent_id

    def add_agent(self, agent: AgentState) -> AgentState:
        assert self.in_bounds(agent.pos), f"position {agent.pos} is off the grid"
        assert self.is_empty(agent.pos), f"cell {agent.pos} is already occupied"
        assert agent.id not in self.agents, f"duplicate agent id {agent.id}"
        self.agents[agent.id] = agent
        self._occupancy[agent.pos] = agent.id
        self._next_id = max(self._next_id, agent.id + 1)
        return agent

    def create_agent(
        self,
        pos: Position,
        sugar: float,
        vision: int = 1,
        metabolism: int = 1,
        max_age: int = 100,
        sex: str = "male",
        age: int = 0,
        initial_sugar: float | None = None,
        culture: list[bool] | None = None,
        immunity: list[bool] | None = None,
        diseases: list[Disease] | None = None,
    ) -> AgentState:
        pop = self.settings.population
        agent = AgentState(
            id=self.next_id(),
            pos=pos,
            sugar=float(sugar),
            vision=vision,
            metabolism=metabolism,
            max_age=max_age,
            sex=sex,
            age=age,
            initial_sugar=float(sugar if initial_sugar is None else initial_sugar),
            culture=(
                list(culture)
                if culture is not None
                else random_bits(self.rng, pop.culture_tag_length)
            ),
            immunity=(
                list(immunity)
                if immunity is not None
                else random_bits(self.rng, pop.immunity_length)
            ),
            diseases=[tuple(d) for d in diseases] if diseases else [],
        )
        return self.add_agent(agent)

    def spawn_random_agent(self, infect: bool = False) -> AgentState | None:
        pos = self.random_empty()
        if pos is None:
            return None
        pop = self.settings.population
        diseases: list[Disease] = []
        if infect and self._disease_pool and pop.initial_infections > 0:
            k = min(pop.initial_infections, len(self._disease_pool))
            diseases = self.rng.sample(self._disease_pool, k)
        return self.create_agent(
            pos=pos,
            sugar=float(self.rng.randint(*pop.initial_sugar_range)),
            vision=self.rng.randint(*pop.vision_range),
            metabolism=self.rng.randint(*pop.metabolism_range),
            max_age=self.rng.randint(*pop.max_age_range),
            sex=self.rng.choice(SEXES),
            diseases=diseases,
        )

    def remove_agent(self, agent: AgentState) -> None:
        self.agents.pop(agent.id, None)
        if self._occupancy.get(agent.pos) == agent.id:
            del self._occupancy[agent.pos]
        self.moved_by_combat.discard(agent.id)

    def move_agent(self, agent: AgentState, pos: Position) -> None:
        if pos == agent.pos:
            return
        assert self.in_bounds(pos), f"position {pos} is off the grid"
        assert self.is_empty(pos), f"cell {pos} is already occupied"
        del self._occupancy[agent.pos]
        agent.pos = pos
        self._occupancy[pos] = agent.id

    def _init_population(self) -> None:
        pop = self.settings.population
        if self.rules.enable_disease:
            self._disease_pool = [
                tuple(random_bits(self.rng, pop.disease_length))
                for _ in range(pop.disease_count)
            ]
        for _ in range(pop.agent_count):
            if self.spawn_random_agent(infect=True) is None:
                self.logger.warning(
                    "Grid full after %d agents; population truncated", len(self.agents)
                )
                break

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def tribe_of(self, agent: AgentState) -> str:
        tie_red = self.rules.tribe_tie == "red"
        return "red" if majority(agent.culture, tie=tie_red) else "blue"

    def tribe_counts(self) -> dict[str, int]:
        counts = {"red": 0, "blue": 0}
        for agent in self.agents.values():
            counts[self.tribe_of(agent)] += 1
        return counts

    def total_agent_sugar(self) -> float:
        return sum(agent.sugar for agent in self.agents.values())

    # ------------------------------------------------------------------
    # Pollution
    # ------------------------------------------------------------------

    def cell_value(self, pos: Position) -> float:
        """What a cell is worth to a forager: welfare with pollution on, sugar otherwise."""
        if self.settings.landscape.enable_pollution:
            return self.landscape.welfare_at(pos)
        return self.landscape.sugar_at(pos)

    def produce_pollution(self, pos: Position, harvested: float, metabolism: float) -> None:
        cfg = self.settings.landscape
        if not cfg.enable_pollution:
            return
        self.landscape.add_pollution(
            pos,
            cfg.pollution_production_rate * harvested
            + cfg.pollution_consumption_rate * metabolism,
        )

    # ------------------------------------------------------------------
    # Tick loop
    # ------------------------------------------------------------------

    def run(self, ticks: int | None = None) -> None:
        ticks = self.settings.simulation.ticks if ticks is None else ticks
        for _ in range(ticks):
            if not self.agents:
                self.logger.info("Population extinct at tick=%d; stopping", self.tick)
                break
            t_tick = time.perf_counter()
            report = self.step()
            self._maybe_log_tick_progress(report)
            self.logger.info(
                "TICK-END tick=%d elapsed=%.1fs alive=%d changes=%s",
                report.tick,
                time.perf_counter() - t_tick,
                report.alive,
                report.stat_changes,
            )

    def step(self) -> TickReport:
        """Advance the world by one tick: grow sugar, diffuse pollution, then PLAN and ACT."""
        tick = self.tick
        self.logger.info("TICK-START tick=%d alive=%d", tick, len(self.agents))
        self._grow_sugar(tick)
        self._maybe_diffuse_pollution(tick)
        report = self.tick_engine.run_phases(self)
        self.tick += 1
        return report

    def _grow_sugar(self, tick: int) -> None:
        cfg = self.settings.landscape
        if cfg.enable_seasonality:
            self.landscape.maybe_flip_season(tick, cfg.season_duration)
            self.landscape.seasonal_growback(cfg.growth_rate, cfg.winter_growth_divisor)
        else:
            self.landscape.growback(cfg.growth_rate)

    def _maybe_diffuse_pollution(self, tick: int) -> None:
        cfg = self.settings.landscape
        if not cfg.enable_pollution:
            return
        self._pollution_steps += 1
        if self._pollution_steps >= cfg.pollution_diffusion_interval:
            self.landscape.diffuse_pollution()
            self._pollution_steps = 0
            self.logger.debug(
                "POLLUTION-DIFFUSE tick=%d total=%.2f", tick, float(self.landscape.pollution.sum())
            )

    def _maybe_log_tick_progress(self, report: TickReport) -> None:
        interval = self.settings.simulation.log_tick_interval
        if interval <= 0 or (report.tick + 1) % interval != 0:
            return
        wealth = [a.sugar for a in self.agents.values()]
        self.logger.info(
            "Progress tick=%d alive=%d mean_sugar=%.2f tribes=%s births=%d "
            "deaths_starvation=%d deaths_age=%d combat_kills=%d loans_issued=%d",
            report.tick,
            len(wealth),
            sum(wealth) / len(wealth) if wealth else 0.0,
            self.tribe_counts(),
            self.stats.births,
            self.stats.deaths_starvation,
            self.stats.deaths_age,
            self.stats.combat_kills,
            self.stats.loans_issued,
        )
