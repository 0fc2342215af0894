"""Decision sources: where each agent's per-tick intent comes from.

Rules consult a ``DecisionSource`` before acting in a gated category
(move, combat, credit, reproduce). The rule-based source always says yes and
leaves targets to the heuristics; the oracle source asks an external model once
per tick for every agent and answers from that batch.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Sequence

from sugar_sim.agents.context import build_agent_context
from sugar_sim.config.settings import DECISION_MODES, AppSettings
from sugar_sim.utils.errors import (
    ConfigurationError,
    OracleSchemaError,
    OracleValidationError,
)
from sugar_sim.utils.types import AgentState, Position

if TYPE_CHECKING:
    from sugar_sim.llm.oracle_adapter import OracleAdapter
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.decisions")


class DecisionCategory(str, Enum):
    MOVE = "move"
    COMBAT = "combat"
    CREDIT = "credit"
    REPRODUCE = "reproduce"


REQUIRED_FLAGS = tuple(category.value for category in DecisionCategory)


@dataclass(frozen=True)
class Decision:
    move: bool = True
    combat: bool = True
    credit: bool = True
    reproduce: bool = True
    move_coords: Position | None = None
    combat_target: int | None = None
    credit_partner: int | None = None
    reproduce_with: int | None = None

    def allows(self, category: DecisionCategory) -> bool:
        return bool(getattr(self, category.value))


# ---------------------------------------------------------------------------
# Strict parsing of oracle output
# ---------------------------------------------------------------------------

def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_id(obj: dict[str, Any], field: str, agent_id: int) -> int | None:
    value = obj.get(field)
    if value is None:
        return None
    if not _is_int(value):
        raise OracleValidationError(
            f"Field '{field}' must be integer ID or null", field, value, agent_id
        )
    return value


def _optional_coords(obj: dict[str, Any], agent_id: int) -> Position | None:
    value = obj.get("move_coords")
    if value is None:
        return None
    if (
        not isinstance(value, (list, tuple))
        or len(value) != 2
        or not all(_is_int(v) and v >= 0 for v in value)
    ):
        raise OracleValidationError(
            "Field 'move_coords' must be [x, y] array of non-negative integers or null",
            "move_coords",
            value,
            agent_id,
        )
    return (value[0], value[1])


def parse_decision(raw: Any, agent_id: int) -> Decision:
    """Convert one oracle JSON object into a Decision, or raise.

    Missing required flags raise ``OracleSchemaError``; present-but-wrong values
    raise ``OracleValidationError``. A single-key wrapper ``{"<agent_id>": {...}}``
    is unwrapped first.
    """
    if not isinstance(raw, dict):
        raise OracleSchemaError("Decision object is not a dictionary", agent_id, raw)
    if len(raw) == 1:
        (key, inner), = raw.items()
        if key == str(agent_id) and isinstance(inner, dict):
            raw = inner

    for field in REQUIRED_FLAGS:
        if field not in raw:
            raise OracleSchemaError(f"Missing required field: {field}", agent_id, raw)
        if not isinstance(raw[field], bool):
            raise OracleValidationError(
                f"Field '{field}' must be boolean, got: {type(raw[field]).__name__}",
                field,
                raw[field],
                agent_id,
            )

    echoed = raw.get("agent_id")
    if echoed is not None and (not _is_int(echoed) or echoed != agent_id):
        raise OracleValidationError(
            "Decision agent_id does not match the requested agent",
            "agent_id",
            echoed,
            agent_id,
        )

    decision = Decision(
        move=raw["move"],
        combat=raw["combat"],
        credit=raw["credit"],
        reproduce=raw["reproduce"],
        move_coords=_optional_coords(raw, agent_id),
        combat_target=_optional_id(raw, "combat_target", agent_id),
        credit_partner=_optional_id(raw, "credit_partner", agent_id),
        reproduce_with=_optional_id(raw, "reproduce_with", agent_id),
    )

    for flag, payload in (
        ("combat", "combat_target"),
        ("credit", "credit_partner"),
        ("reproduce", "reproduce_with"),
    ):
        if getattr(decision, flag) and getattr(decision, payload) is None:
            raise OracleValidationError(
                f"'{flag}' is true but '{payload}' is null", payload, None, agent_id
            )
    if decision.move and decision.move_coords is None:
        logger.warning(
            "Oracle move without coords agent_id=%d; rule destination will be used",
            agent_id,
        )
    return decision


def parse_decision_batch(payload: Any, agent_ids: Sequence[int]) -> list[Decision]:
    """Validate a ``{"decisions": [...]}`` envelope; one decision per agent, same order."""
    if not isinstance(payload, dict) or not isinstance(payload.get("decisions"), list):
        raise OracleSchemaError(
            "Oracle response must be an object with a 'decisions' array",
            raw_response=payload,
        )
    items = payload["decisions"]
    if len(items) != len(agent_ids):
        raise OracleSchemaError(
            f"Oracle returned {len(items)} decisions for {len(agent_ids)} agents",
            raw_response=payload,
        )
    return [parse_decision(item, agent_id) for item, agent_id in zip(items, agent_ids)]


# ---------------------------------------------------------------------------
# Decision sources
# ---------------------------------------------------------------------------

class DecisionSource(ABC):
    name = "abstract"

    def prepare(self, world: WorldSimulator) -> None:
        """Collect this tick's decisions before any rule runs."""

    @abstractmethod
    def decision_for(
        self, agent: AgentState, category: DecisionCategory
    ) -> Decision | None:
        raise NotImplementedError

    def should_act(self, agent: AgentState, category: DecisionCategory) -> bool:
        decision = self.decision_for(agent, category)
        return decision is not None and decision.allows(category)


class RuleBasedDecisionSource(DecisionSource):
    """Always affirmative; rules pick targets with their own heuristics."""

    name = "rule_based"
    _AFFIRMATIVE = Decision()

    def decision_for(self, agent: AgentState, category: DecisionCategory) -> Decision:
        return self._AFFIRMATIVE


class OracleDecisionSource(DecisionSource):
    name = "oracle"

    def __init__(self, adapter: OracleAdapter) -> None:
        self.adapter = adapter
        self._decisions: dict[int, Decision] = {}

    def prepare(self, world: WorldSimulator) -> None:
        # Cleared first: a failed request leaves no decisions behind.
        self._decisions = {}
        contexts = [build_agent_context(agent, world) for agent in world.iter_agents()]
        if not contexts:
            return
        agent_ids = [ctx["agent_id"] for ctx in contexts]
        t0 = time.perf_counter()
        payload = self.adapter.request_decisions(contexts)
        decisions = parse_decision_batch(payload, agent_ids)
        self._decisions = dict(zip(agent_ids, decisions))
        logger.info(
            "Oracle decisions ready tick=%d agents=%d elapsed=%.1fs",
            world.tick,
            len(decisions),
            time.perf_counter() - t0,
        )

    def decision_for(
        self, agent: AgentState, category: DecisionCategory
    ) -> Decision | None:
        return self._decisions.get(agent.id)


def build_decision_source(settings: AppSettings) -> DecisionSource:
    mode = settings.simulation.decision_mode
    if mode == "rule_based":
        return RuleBasedDecisionSource()
    if mode == "oracle":
        from sugar_sim.llm.oracle_adapter import OracleAdapter

        return OracleDecisionSource(OracleAdapter(settings.oracle))
    raise ConfigurationError(
        f"Unknown decision mode {mode!r}; expected one of {', '.join(DECISION_MODES)}"
    )
