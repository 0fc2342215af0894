"""sugar_sim 2-phase tick engine.

PHASE A: PLAN
  The active decision source prepares every agent's decision for the tick.
  For the oracle that is one batched, blocking request; any oracle error
  aborts the tick here, before a single rule has touched the world.

PHASE B: ACT
  Rules run category by category, each over its own seeded shuffle of the
  living agents: combat and movement, reproduction, culture, credit, disease,
  then aging and death. All randomness comes from the world's single RNG, so
  a seed fixes the whole trajectory.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from sugar_sim.agents.decisions import DecisionSource
from sugar_sim.config.settings import RuleSettings
from sugar_sim.rules.combat import combat
from sugar_sim.rules.credit import credit
from sugar_sim.rules.culture import culture_spread
from sugar_sim.rules.disease import disease_transmission, immune_response
from sugar_sim.rules.lifecycle import resolve_deaths
from sugar_sim.rules.movement import movement
from sugar_sim.rules.reproduction import reproduction
from sugar_sim.utils.errors import OracleError, format_oracle_error
from sugar_sim.utils.types import AgentState

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.engine")


# ---------------------------------------------------------------------------
# Tick report: what changed, for logging and tests
# ---------------------------------------------------------------------------

@dataclass
class TickReport:
    tick: int
    decision_source: str
    alive: int = 0
    plan_ms: float = 0.0
    act_ms: float = 0.0
    stat_changes: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# TickEngine
# ---------------------------------------------------------------------------

class TickEngine:
    """Orchestrates the 2-phase tick: PLAN (decisions) then ACT (rules)."""

    def __init__(self, decision_source: DecisionSource, rules: RuleSettings) -> None:
        self.decision_source = decision_source
        self.rules = rules

    # ===================================================================
    # Public interface, called from WorldSimulator.step()
    # ===================================================================

    def run_phases(self, world: WorldSimulator) -> TickReport:
        tick = world.tick
        before = world.stats.as_dict()
        report = TickReport(tick=tick, decision_source=self.decision_source.name)
        self._begin_tick(world)

        t0 = time.perf_counter()
        logger.info("PLAN start tick=%d agents=%d source=%s",
                    tick, len(world.agents), self.decision_source.name)
        try:
            self.decision_source.prepare(world)
        except OracleError as exc:
            logger.error("PLAN failed tick=%d; aborting tick\n%s", tick, format_oracle_error(exc))
            raise
        report.plan_ms = (time.perf_counter() - t0) * 1000.0
        logger.info("PLAN done  tick=%d elapsed=%.1fs", tick, report.plan_ms / 1000.0)

        t1 = time.perf_counter()
        self._act_phase(world)
        report.act_ms = (time.perf_counter() - t1) * 1000.0

        report.alive = len(world.agents)
        report.stat_changes = world.stats.diff(before)
        return report

    # ===================================================================
    # PHASE B: ACT
    # ===================================================================

    def _act_phase(self, world: WorldSimulator) -> None:
        t0 = time.perf_counter()
        tick = world.tick
        source = self.decision_source
        rules = self.rules

        def _phase(label: str) -> None:
            logger.info("TICK-PHASE tick=%d step=%s elapsed=%.1fs",
                        tick, label, time.perf_counter() - t0)

        def _move(agent: AgentState, w: WorldSimulator) -> None:
            if rules.enable_combat:
                combat(agent, w, source)
            movement(agent, w, source)

        _phase("combat_movement")
        self._for_each(world, _move)

        if rules.enable_reproduction:
            _phase("reproduction")
            self._for_each(world, lambda a, w: reproduction(a, w, source))

        if rules.enable_culture:
            _phase("culture")
            self._for_each(world, culture_spread)

        if rules.enable_credit:
            _phase("credit")
            self._for_each(world, lambda a, w: credit(a, w, source))

        if rules.enable_disease:
            _phase("disease")
            self._for_each(world, disease_transmission)
            self._for_each(world, immune_response)

        _phase("lifecycle")
        died = resolve_deaths(world, world.shuffled_agents())
        logger.debug("Lifecycle tick=%d died=%d alive=%d", tick, died, len(world.agents))

    # ===================================================================
    # Helpers
    # ===================================================================

    @staticmethod
    def _begin_tick(world: WorldSimulator) -> None:
        world.moved_by_combat.clear()
        for agent in world.agents.values():
            agent.has_reproduced = False
            agent.last_partner_ids.clear()

    @staticmethod
    def _for_each(
        world: WorldSimulator, rule: Callable[[AgentState, WorldSimulator], Any]
    ) -> None:
        # Agents killed earlier in the same pass are skipped; newborns wait a tick.
        for agent in world.shuffled_agents():
            if world.has(agent.id):
                rule(agent, world)
