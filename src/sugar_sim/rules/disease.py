"""Disease rules E: contact transmission and a bit-flipping immune response."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sugar_sim.utils.bits import flip_toward, is_subsequence
from sugar_sim.utils.types import AgentState

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


def is_immune(agent: AgentState, disease: tuple[bool, ...]) -> bool:
    return is_subsequence(disease, agent.immunity)


def disease_transmission(agent: AgentState, world: WorldSimulator) -> int:
    """Copy every disease an adjacent neighbour carries that ``agent`` lacks."""
    caught = 0
    for neighbour in world.adjacent_agents(agent):
        for disease in neighbour.diseases:
            if disease not in agent.diseases:
                agent.diseases.append(disease)
                caught += 1
    if caught:
        world.stats.infections += caught
        logger.debug("INFECT agent=%d caught=%d carried=%d", agent.id, caught, len(agent.diseases))
    return caught


def immune_response(agent: AgentState, world: WorldSimulator) -> int:
    """For each uncovered disease flip one immunity bit and pay the sugar penalty.

    Returns the number of diseases that were uncovered at the start of the step.
    """
    uncovered = [d for d in agent.diseases if not is_immune(agent, d)]
    for disease in uncovered:
        flip_toward(world.rng, disease, agent.immunity)
    if uncovered:
        agent.sugar -= world.rules.disease_sugar_penalty * len(uncovered)
    return len(uncovered)
