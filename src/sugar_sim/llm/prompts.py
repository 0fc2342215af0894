from __future__ import annotations

import json
from typing import Any

SYSTEM_PROMPT = """
You control agents in Sugarscape, a grid world where agents must gather sugar to survive.
Each tick every agent burns sugar equal to its metabolism; an agent at zero sugar starves.
When cells carry a welfare value, pollution is on: welfare = sugar / (1 + pollution),
and a polluted cell is worth less than its sugar suggests.

For EVERY agent context you receive, return exactly one decision, in the same order.
Each decision has these keys:
- move (bool): move this tick. move_coords must be one of the agent's visible_cells
  that is unoccupied (or its own cell), as [x, y]. Use null to let the default rule pick.
- combat (bool): attack a visible agent of the other tribe holding less sugar.
  combat_target must be that agent's id when combat is true.
- credit (bool): lend to or borrow from an adjacent agent.
  credit_partner must be that agent's id when credit is true.
- reproduce (bool): mate with a visible agent of the opposite sex.
  reproduce_with must be that agent's id when reproduce is true.
- agent_id (int): echo the agent_id of the context.

Only use ids and coordinates that appear in the agent's own context.
Reply with JSON only: {"decisions": [ ... ]}.
""".strip()

DECISION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "agent_id": {"type": "integer"},
        "move": {"type": "boolean"},
        "move_coords": {
            "type": ["array", "null"],
            "items": {"type": "integer"},
            "minItems": 2,
            "maxItems": 2,
        },
        "combat": {"type": "boolean"},
        "combat_target": {"type": ["integer", "null"]},
        "credit": {"type": "boolean"},
        "credit_partner": {"type": ["integer", "null"]},
        "reproduce": {"type": "boolean"},
        "reproduce_with": {"type": ["integer", "null"]},
    },
    "required": ["move", "combat", "credit", "reproduce"],
}


def batch_response_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"decisions": {"type": "array", "items": DECISION_SCHEMA}},
        "required": ["decisions"],
    }


def build_batch_prompt(contexts: list[dict[str, Any]]) -> str:
    return (
        f"There are {len(contexts)} agents this tick. "
        f"Return exactly {len(contexts)} decisions in this order.\n\n"
        f"=== AGENT CONTEXTS ===\n{json.dumps(contexts, ensure_ascii=True)}"
    )
