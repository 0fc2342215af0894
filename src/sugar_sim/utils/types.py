from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

Position = tuple[int, int]
Disease = tuple[bool, ...]

SEXES = ("male", "female")


@dataclass
class Loan:
    amount: float
    time_due: int


@dataclass
class AgentState:
    id: int
    pos: Position
    sugar: float
    vision: int
    metabolism: int
    max_age: int
    sex: str
    initial_sugar: float
    age: int = 0
    has_reproduced: bool = False
    last_partner_ids: set[int] = field(default_factory=set)
    children: list[int] = field(default_factory=list)
    total_inheritance_received: float = 0.0

    # --- cultural / immune bit vectors ---
    culture: list[bool] = field(default_factory=list)
    immunity: list[bool] = field(default_factory=list)
    diseases: list[Disease] = field(default_factory=list)

    # --- credit books, keyed by counterparty id ---
    loans_given: dict[int, list[Loan]] = field(default_factory=dict)
    loans_owed: dict[int, list[Loan]] = field(default_factory=dict)

    def total_owed(self) -> float:
        return sum(loan.amount for loans in self.loans_owed.values() for loan in loans)

    def total_lent(self) -> float:
        return sum(loan.amount for loans in self.loans_given.values() for loan in loans)

    def loan_signature(self) -> dict[str, Any]:
        return {
            "owed_total": round(self.total_owed(), 3),
            "lent_total": round(self.total_lent(), 3),
            "creditors": sorted(self.loans_owed),
            "debtors": sorted(self.loans_given),
        }


@dataclass
class SimulationStats:
    births: int = 0
    deaths_starvation: int = 0
    deaths_age: int = 0
    total_lifespan_starvation: int = 0
    total_lifespan_age: int = 0
    combat_kills: int = 0
    combat_sugar_stolen: float = 0.0
    total_inheritances: int = 0
    total_inheritance_value: float = 0.0
    generational_wealth_transferred: float = 0.0
    loans_issued: int = 0
    loans_repaid: int = 0
    loans_rolled_over: int = 0
    loans_forgiven: int = 0
    loans_inherited: int = 0
    loans_defaulted: int = 0
    infections: int = 0
    replacements: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def diff(self, before: dict[str, Any]) -> dict[str, Any]:
        now = self.as_dict()
        return {k: now[k] - before.get(k, 0) for k in now if now[k] != before.get(k, 0)}
