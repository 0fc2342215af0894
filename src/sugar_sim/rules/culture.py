"""Cultural transmission rule K: agents push one random tag bit onto each neighbour."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sugar_sim.utils.bits import hamming
from sugar_sim.utils.types import AgentState

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


def culturally_different(a: AgentState, b: AgentState, world: WorldSimulator) -> bool:
    return world.tribe_of(a) != world.tribe_of(b)


def culture_spread(agent: AgentState, world: WorldSimulator) -> int:
    """Returns how many neighbour bits were flipped."""
    flipped = 0
    for neighbour in world.adjacent_agents(agent):
        assert len(neighbour.culture) == len(agent.culture), "culture tags differ in length"
        if not agent.culture:
            continue
        idx = world.rng.randrange(len(agent.culture))
        if neighbour.culture[idx] != agent.culture[idx]:
            neighbour.culture[idx] = agent.culture[idx]
            flipped += 1
    if flipped:
        logger.debug("CULTURE agent=%d flipped=%d", agent.id, flipped)
    return flipped


def cultural_distance(a: AgentState, b: AgentState) -> int:
    return hamming(a.culture, b.culture)
