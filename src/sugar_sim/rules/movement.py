"""Movement rule M: look along the four axes, go to the best reachable cell, eat.

A cell's value is its sugar, or its welfare ``sugar / (1 + pollution)`` when
pollution is enabled. Harvesting and metabolism leave pollution behind.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sugar_sim.agents.decisions import DecisionCategory, DecisionSource
from sugar_sim.utils.types import AgentState, Position

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


@dataclass(frozen=True)
class CandidateCell:
    pos: Position
    value: float
    distance: int


def evaluate_nearby_positions(agent: AgentState, world: WorldSimulator) -> list[CandidateCell]:
    """The agent's own cell plus every unoccupied cell it can see."""
    out = [CandidateCell(agent.pos, world.cell_value(agent.pos), 0)]
    for cell, dist in world.cardinal_positions(agent.pos, agent.vision):
        if world.is_empty(cell):
            out.append(CandidateCell(cell, world.cell_value(cell), dist))
    return out


def choose_best_cell(candidates: list[CandidateCell], world: WorldSimulator) -> Position:
    """Highest value, then nearest, then a seeded random pick among what is left."""
    best_value = max(c.value for c in candidates)
    richest = [c for c in candidates if c.value == best_value]
    nearest = min(c.distance for c in richest)
    finalists = [c.pos for c in richest if c.distance == nearest]
    if len(finalists) == 1:
        return finalists[0]
    return world.rng.choice(finalists)


def move_and_collect(agent: AgentState, world: WorldSimulator, pos: Position) -> float:
    """Relocate, harvest the whole cell, pay metabolism and age one tick."""
    world.move_agent(agent, pos)
    collected = world.landscape.take_sugar(pos)
    agent.sugar += collected - agent.metabolism
    agent.age += 1
    world.produce_pollution(pos, collected, agent.metabolism)
    return collected


def movement(agent: AgentState, world: WorldSimulator, decisions: DecisionSource) -> None:
    if agent.id in world.moved_by_combat:
        return

    if not decisions.should_act(agent, DecisionCategory.MOVE):
        move_and_collect(agent, world, agent.pos)
        logger.debug("MOVE idle agent=%d pos=%s sugar=%.2f", agent.id, agent.pos, agent.sugar)
        return

    candidates = evaluate_nearby_positions(agent, world)
    decision = decisions.decision_for(agent, DecisionCategory.MOVE)
    requested = decision.move_coords if decision is not None else None
    if requested is not None and any(c.pos == requested for c in candidates):
        target = requested
    else:
        if requested is not None:
            logger.warning(
                "MOVE fallback agent=%d requested=%s not reachable; using rule destination",
                agent.id,
                requested,
            )
        target = choose_best_cell(candidates, world)

    origin = agent.pos
    collected = move_and_collect(agent, world, target)
    logger.debug(
        "MOVE agent=%d from=%s to=%s collected=%.2f sugar=%.2f",
        agent.id,
        origin,
        target,
        collected,
        agent.sugar,
    )
