"""Inheritance rule I: a dying agent's sugar is split among its living children."""
from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from sugar_sim.utils.types import AgentState

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


def living_children(agent: AgentState, world: WorldSimulator) -> list[AgentState]:
    return [child for cid in agent.children if (child := world.get(cid)) is not None]


def distribute_inheritance(agent: AgentState, world: WorldSimulator) -> float:
    """Give each living child ``floor(sugar / n)``; returns the total handed out.

    Without living heirs (or with no positive wealth) nothing moves and the
    estate leaves the economy with the agent.
    """
    heirs = living_children(agent, world)
    if not heirs or agent.sugar <= 0:
        return 0.0

    share = float(math.floor(agent.sugar / len(heirs)))
    if share <= 0:
        return 0.0
    for child in heirs:
        child.sugar += share
        child.total_inheritance_received += share
    transferred = share * len(heirs)
    agent.sugar -= transferred

    stats = world.stats
    stats.total_inheritances += len(heirs)
    stats.total_inheritance_value += transferred
    stats.generational_wealth_transferred += transferred
    logger.debug(
        "INHERIT agent=%d heirs=%s share=%.2f total=%.2f",
        agent.id,
        [c.id for c in heirs],
        share,
        transferred,
    )
    return transferred
