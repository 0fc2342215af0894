"""Combat rule C-alpha: rob and kill a weaker agent of the other tribe, then move in.

Combat runs before movement for each agent; an attacker that struck this tick
has already moved and eaten, so movement skips it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sugar_sim.agents.decisions import DecisionCategory, DecisionSource
from sugar_sim.rules.culture import culturally_different
from sugar_sim.rules.lifecycle import death
from sugar_sim.utils.types import AgentState, Position

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


@dataclass(frozen=True)
class CombatTarget:
    pos: Position
    victim: AgentState
    reward: float
    distance: int


def exposed_to_retaliation(
    attacker: AgentState, target_pos: Position, future_sugar: float, world: WorldSimulator
) -> bool:
    """True when an other-tribe agent richer than ``future_sugar`` can see ``target_pos``."""
    for other in world.agents.values():
        if other.id == attacker.id or other.sugar <= future_sugar:
            continue
        if culturally_different(attacker, other, world) and world.can_see(other, target_pos):
            return True
    return False


def combat_targets(attacker: AgentState, world: WorldSimulator) -> list[CombatTarget]:
    rules = world.rules
    out: list[CombatTarget] = []
    for pos, dist in world.cardinal_positions(attacker.pos, attacker.vision):
        victim = world.agent_at(pos)
        if victim is None or not culturally_different(attacker, victim, world):
            continue
        if victim.sugar >= attacker.sugar:
            continue
        reward = world.cell_value(pos) + min(victim.sugar, rules.combat_limit)
        if reward <= 0:
            continue
        if rules.combat_retaliation_check and exposed_to_retaliation(
            attacker, pos, attacker.sugar + reward, world
        ):
            continue
        out.append(CombatTarget(pos, victim, reward, dist))
    return out


def choose_target(targets: list[CombatTarget], world: WorldSimulator) -> CombatTarget:
    best_reward = max(t.reward for t in targets)
    richest = [t for t in targets if t.reward == best_reward]
    nearest = min(t.distance for t in richest)
    finalists = [t for t in richest if t.distance == nearest]
    if len(finalists) == 1:
        return finalists[0]
    return world.rng.choice(finalists)


def attack(attacker: AgentState, target: CombatTarget, world: WorldSimulator) -> float:
    """Execute a chosen attack; returns the sugar stolen from the victim."""
    victim = target.victim
    stolen = max(0.0, min(victim.sugar, world.rules.combat_limit))
    # The loot leaves the victim first so heirs only split what remains.
    victim.sugar -= stolen
    death(victim, world, "combat")

    site_sugar = world.landscape.take_sugar(target.pos)
    world.move_agent(attacker, target.pos)
    attacker.sugar += stolen + site_sugar - attacker.metabolism
    attacker.age += 1
    world.produce_pollution(target.pos, site_sugar, attacker.metabolism)

    world.stats.combat_kills += 1
    world.stats.combat_sugar_stolen += stolen
    world.moved_by_combat.add(attacker.id)
    logger.debug(
        "COMBAT attacker=%d victim=%d pos=%s stolen=%.2f site=%.2f",
        attacker.id,
        victim.id,
        target.pos,
        stolen,
        site_sugar,
    )
    return stolen


def combat(agent: AgentState, world: WorldSimulator, decisions: DecisionSource) -> None:
    if not decisions.should_act(agent, DecisionCategory.COMBAT):
        return
    targets = combat_targets(agent, world)
    if not targets:
        return

    decision = decisions.decision_for(agent, DecisionCategory.COMBAT)
    wanted = decision.combat_target if decision is not None else None
    if wanted is None:
        chosen = choose_target(targets, world)
    else:
        chosen = next((t for t in targets if t.victim.id == wanted), None)
        if chosen is None:
            logger.debug(
                "COMBAT skipped agent=%d target=%d not an eligible victim", agent.id, wanted
            )
            return
    attack(agent, chosen, world)
