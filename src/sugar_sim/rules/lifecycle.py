from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sugar_sim.rules.credit import clear_loans_on_death
from sugar_sim.rules.inheritance import distribute_inheritance
from sugar_sim.utils.types import AgentState

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")

DEATH_CAUSES = ("starvation", "age", "combat")


def death(agent: AgentState, world: WorldSimulator, cause: str) -> None:
    """Remove an agent: estate to heirs, bookkeeping by cause, loans settled."""
    assert cause in DEATH_CAUSES, f"unknown death cause {cause!r}"
    distribute_inheritance(agent, world)

    stats = world.stats
    if cause == "starvation":
        stats.deaths_starvation += 1
        stats.total_lifespan_starvation += agent.age
    elif cause == "age":
        stats.deaths_age += 1
        stats.total_lifespan_age += agent.age

    clear_loans_on_death(agent, world)
    world.remove_agent(agent)
    logger.debug("DEATH agent=%d cause=%s age=%d sugar=%.2f", agent.id, cause, agent.age, agent.sugar)


def death_cause(agent: AgentState) -> str | None:
    if agent.sugar <= 0:
        return "starvation"
    if agent.age >= agent.max_age:
        return "age"
    return None


def resolve_deaths(world: WorldSimulator, order: list[AgentState]) -> int:
    """Apply starvation and old-age deaths; replace the dead when rule R is active."""
    rules = world.rules
    replace = rules.enable_replacement and not rules.enable_reproduction
    died = 0
    for agent in order:
        if not world.has(agent.id):
            continue
        cause = death_cause(agent)
        if cause is None:
            continue
        death(agent, world, cause)
        died += 1
        if replace and world.spawn_random_agent() is not None:
            world.stats.replacements += 1
    return died
