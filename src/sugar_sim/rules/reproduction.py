"""Sex rule S: fertile, wealthy opposite-sex neighbours produce a child next to them."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sugar_sim.agents.decisions import DecisionCategory, DecisionSource
from sugar_sim.config.settings import RuleSettings
from sugar_sim.utils.bits import crossover
from sugar_sim.utils.types import SEXES, AgentState, Position

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


def is_fertile_age(agent: AgentState, rules: RuleSettings) -> bool:
    low, high = rules.fertility_age_range
    return low <= agent.age <= high


def is_past_fertility(agent: AgentState, rules: RuleSettings) -> bool:
    return agent.age > rules.fertility_age_range[1]


def is_fertile(agent: AgentState, rules: RuleSettings) -> bool:
    return is_fertile_age(agent, rules) and agent.sugar >= agent.initial_sugar


def can_mate(a: AgentState, b: AgentState, rules: RuleSettings) -> bool:
    return a.sex != b.sex and is_fertile(a, rules) and is_fertile(b, rules)


def free_birth_cell(a: AgentState, b: AgentState, world: WorldSimulator) -> Position | None:
    cells = list(dict.fromkeys(world.empty_adjacent(a.pos) + world.empty_adjacent(b.pos)))
    if not cells:
        return None
    return world.rng.choice(cells)


def create_child(
    a: AgentState, b: AgentState, pos: Position, world: WorldSimulator
) -> AgentState:
    """Each parent gives half its current sugar; genes cross over per position."""
    rng = world.rng
    gift_a = a.sugar / 2
    gift_b = b.sugar / 2
    a.sugar -= gift_a
    b.sugar -= gift_b
    sugar = gift_a + gift_b

    child = world.create_agent(
        pos=pos,
        sugar=sugar,
        vision=rng.choice((a.vision, b.vision)),
        metabolism=rng.choice((a.metabolism, b.metabolism)),
        max_age=rng.choice((a.max_age, b.max_age)),
        sex=rng.choice(SEXES),
        culture=crossover(rng, a.culture, b.culture),
        immunity=crossover(rng, a.immunity, b.immunity),
    )
    for parent, other in ((a, b), (b, a)):
        parent.children.append(child.id)
        parent.has_reproduced = True
        parent.last_partner_ids.add(other.id)
    world.stats.births += 1
    logger.debug(
        "BIRTH child=%d parents=(%d,%d) pos=%s sugar=%.2f",
        child.id,
        a.id,
        b.id,
        pos,
        sugar,
    )
    return child


def reproduction(agent: AgentState, world: WorldSimulator, decisions: DecisionSource) -> None:
    if not decisions.should_act(agent, DecisionCategory.REPRODUCE):
        return
    rules = world.rules
    decision = decisions.decision_for(agent, DecisionCategory.REPRODUCE)
    partner_id = decision.reproduce_with if decision is not None else None

    for partner in world.nearby_agents(agent, agent.vision):
        if not world.has(agent.id) or not is_fertile(agent, rules):
            break
        if partner_id is not None and partner.id != partner_id:
            continue
        # A pair mates at most once per tick, whichever of the two is focal.
        if partner.id in agent.last_partner_ids or not can_mate(agent, partner, rules):
            continue
        cell = free_birth_cell(agent, partner, world)
        if cell is None:
            break
        create_child(agent, partner, cell, world)
