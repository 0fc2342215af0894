"""Credit rule L: adjacent agents lend surplus sugar and repay with simple interest.

Loans only move sugar that already exists. Each loan is recorded twice, in the
lender's ``loans_given`` and the borrower's ``loans_owed``, keyed by the
counterparty id; both entries always refer to the same ``Loan`` object.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sugar_sim.agents.decisions import DecisionCategory, DecisionSource
from sugar_sim.rules.inheritance import living_children
from sugar_sim.rules.reproduction import is_fertile_age, is_past_fertility
from sugar_sim.utils.types import AgentState, Loan

if TYPE_CHECKING:
    from sugar_sim.world.simulator import WorldSimulator

logger = logging.getLogger("sugar_sim.rules")


@dataclass(frozen=True)
class LendingCapacity:
    can_lend: bool
    max_amount: float


@dataclass(frozen=True)
class BorrowingNeed:
    will_borrow: bool
    amount_required: float


def can_lend(agent: AgentState, world: WorldSimulator) -> LendingCapacity:
    """Past fertility: up to half of wealth. Fertile: the surplus above the
    reproduction threshold and one tick of metabolism. Otherwise nothing."""
    if is_past_fertility(agent, world.rules) and agent.sugar > 0:
        return LendingCapacity(True, agent.sugar / 2)
    if is_fertile_age(agent, world.rules):
        surplus = agent.sugar - agent.initial_sugar - agent.metabolism
        if surplus > 0:
            return LendingCapacity(True, surplus)
    return LendingCapacity(False, 0.0)


def will_borrow(agent: AgentState, world: WorldSimulator) -> BorrowingNeed:
    if is_fertile_age(agent, world.rules) and agent.sugar < agent.initial_sugar:
        return BorrowingNeed(True, agent.initial_sugar - agent.sugar)
    return BorrowingNeed(False, 0.0)


def _record(lender: AgentState, borrower: AgentState, loan: Loan) -> None:
    lender.loans_given.setdefault(borrower.id, []).append(loan)
    borrower.loans_owed.setdefault(lender.id, []).append(loan)


def _forget(book: dict[int, list[Loan]], counterparty: int, loan: Loan) -> None:
    loans = book.get(counterparty)
    if not loans:
        return
    for idx, existing in enumerate(loans):
        if existing is loan:
            del loans[idx]
            break
    if not loans:
        del book[counterparty]


def make_loan(
    lender: AgentState, borrower: AgentState, amount: float, world: WorldSimulator
) -> Loan:
    assert amount > 0, "loan amount must be positive"
    lender.sugar -= amount
    borrower.sugar += amount
    loan = Loan(amount=amount, time_due=world.tick + world.rules.loan_duration)
    _record(lender, borrower, loan)
    world.stats.loans_issued += 1
    logger.debug(
        "LOAN lender=%d borrower=%d amount=%.2f due=%d",
        lender.id,
        borrower.id,
        amount,
        loan.time_due,
    )
    return loan


def attempt_pay_loans(borrower: AgentState, world: WorldSimulator) -> None:
    """Settle every loan due at or before the current tick.

    Pays ``amount * (1 + interest_rate)`` in full when possible; otherwise pays
    half of current wealth and rolls the rest into a fresh loan.
    """
    rules = world.rules
    for lender_id in list(borrower.loans_owed):
        lender = world.get(lender_id)
        for loan in list(borrower.loans_owed.get(lender_id, [])):
            if loan.time_due > world.tick:
                continue
            if lender is None:
                _forget(borrower.loans_owed, lender_id, loan)
                world.stats.loans_forgiven += 1
                continue

            due = loan.amount * (1 + rules.interest_rate)
            _forget(borrower.loans_owed, lender_id, loan)
            _forget(lender.loans_given, borrower.id, loan)
            if borrower.sugar >= due:
                borrower.sugar -= due
                lender.sugar += due
                world.stats.loans_repaid += 1
                logger.debug(
                    "REPAY borrower=%d lender=%d amount=%.2f", borrower.id, lender_id, due
                )
                continue

            payment = max(borrower.sugar, 0.0) / 2
            borrower.sugar -= payment
            lender.sugar += payment
            rolled = Loan(amount=due - payment, time_due=world.tick + rules.loan_duration)
            _record(lender, borrower, rolled)
            world.stats.loans_rolled_over += 1
            logger.debug(
                "ROLLOVER borrower=%d lender=%d paid=%.2f remaining=%.2f due=%d",
                borrower.id,
                lender_id,
                payment,
                rolled.amount,
                rolled.time_due,
            )


def clear_loans_on_death(agent: AgentState, world: WorldSimulator) -> None:
    """Settle both books of a dying agent.

    Claims it holds pass to its first living child (same amounts and due
    dates) or are forgiven; debts it owes are extinguished.
    """
    stats = world.stats
    heirs = living_children(agent, world)

    for borrower_id, loans in list(agent.loans_given.items()):
        borrower = world.get(borrower_id)
        if borrower is None:
            continue
        borrower.loans_owed.pop(agent.id, None)
        heir = next((c for c in heirs if c.id != borrower_id), None)
        if heir is None:
            stats.loans_forgiven += len(loans)
            continue
        for loan in loans:
            _record(heir, borrower, Loan(amount=loan.amount, time_due=loan.time_due))
        stats.loans_inherited += len(loans)
        logger.debug(
            "LOAN-INHERIT dead=%d heir=%d borrower=%d loans=%d",
            agent.id,
            heir.id,
            borrower_id,
            len(loans),
        )

    for lender_id, loans in list(agent.loans_owed.items()):
        lender = world.get(lender_id)
        if lender is not None:
            lender.loans_given.pop(agent.id, None)
        stats.loans_defaulted += len(loans)

    agent.loans_given.clear()
    agent.loans_owed.clear()


def _consents(other: AgentState, decisions: DecisionSource) -> bool:
    return decisions.should_act(other, DecisionCategory.CREDIT)


def attempt_borrow(
    borrower: AgentState,
    world: WorldSimulator,
    decisions: DecisionSource,
    partners: list[AgentState],
) -> None:
    needed = will_borrow(borrower, world).amount_required
    for lender in partners:
        if needed <= 0:
            break
        if not _consents(lender, decisions):
            continue
        capacity = can_lend(lender, world)
        if not capacity.can_lend:
            continue
        amount = min(capacity.max_amount, needed)
        make_loan(lender, borrower, amount, world)
        needed -= amount


def attempt_lend(
    lender: AgentState,
    world: WorldSimulator,
    decisions: DecisionSource,
    partners: list[AgentState],
) -> None:
    available = can_lend(lender, world).max_amount
    for borrower in partners:
        if available <= 0:
            break
        if not _consents(borrower, decisions):
            continue
        need = will_borrow(borrower, world)
        if not need.will_borrow:
            continue
        amount = min(available, need.amount_required)
        make_loan(lender, borrower, amount, world)
        available -= amount


def credit(agent: AgentState, world: WorldSimulator, decisions: DecisionSource) -> None:
    attempt_pay_loans(agent, world)

    if not decisions.should_act(agent, DecisionCategory.CREDIT):
        return
    decision = decisions.decision_for(agent, DecisionCategory.CREDIT)
    neighbours = world.adjacent_agents(agent)
    if decision is not None and decision.credit_partner is not None:
        neighbours = [n for n in neighbours if n.id == decision.credit_partner]
        if not neighbours:
            logger.debug(
                "CREDIT skipped agent=%d partner=%d not adjacent",
                agent.id,
                decision.credit_partner,
            )
            return

    if will_borrow(agent, world).will_borrow:
        attempt_borrow(agent, world, decisions, neighbours)
    elif can_lend(agent, world).can_lend:
        attempt_lend(agent, world, decisions, neighbours)
