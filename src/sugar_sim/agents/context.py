from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sugar_sim.rules.culture import cultural_distance
from sugar_sim.utils.types import AgentState, Position

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator


def _cell_entry(
    world: WorldSimulator, pos: Position, distance: int, occupant: int | None
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "position": [pos[0], pos[1]],
        "sugar": round(world.landscape.sugar_at(pos), 3),
        "distance": distance,
        "occupant": occupant,
    }
    if world.settings.landscape.enable_pollution:
        entry["pollution"] = round(world.landscape.pollution_at(pos), 3)
        entry["welfare"] = round(world.landscape.welfare_at(pos), 3)
    return entry


def build_agent_context(agent: AgentState, world: WorldSimulator) -> dict[str, Any]:
    """Everything one agent can perceive this tick, as a JSON-ready dict."""
    rules = world.rules
    fmin, fmax = rules.fertility_age_range

    visible_cells = [_cell_entry(world, agent.pos, 0, agent.id)]
    neighbours: list[dict[str, Any]] = []
    for cell, dist in world.cardinal_positions(agent.pos, agent.vision):
        other = world.agent_at(cell)
        visible_cells.append(
            _cell_entry(world, cell, dist, other.id if other is not None else None)
        )
        if other is not None:
            neighbour = {
                "agent_id": other.id,
                "position": [cell[0], cell[1]],
                "distance": dist,
                "sugar": round(other.sugar, 3),
                "age": other.age,
                "sex": other.sex,
                "tribe": world.tribe_of(other),
            }
            if rules.enable_culture:
                neighbour["cultural_distance"] = cultural_distance(agent, other)
            neighbours.append(neighbour)

    context: dict[str, Any] = {
        "agent_id": agent.id,
        "position": [agent.pos[0], agent.pos[1]],
        "sugar": round(agent.sugar, 3),
        "age": agent.age,
        "max_age": agent.max_age,
        "metabolism": agent.metabolism,
        "vision": agent.vision,
        "sex": agent.sex,
        "tribe": world.tribe_of(agent),
        "reproduction_threshold": round(agent.initial_sugar, 3),
        "fertile_age": fmin <= agent.age <= fmax,
        "visible_cells": visible_cells,
        "neighbours": neighbours,
        "enabled_rules": {
            "combat": rules.enable_combat,
            "credit": rules.enable_credit,
            "reproduction": rules.enable_reproduction,
        },
    }
    if rules.enable_combat:
        context["combat_limit"] = rules.combat_limit
    if rules.enable_credit:
        context["loans"] = agent.loan_signature()
    if rules.enable_disease:
        context["disease_count"] = len(agent.diseases)
    return context
