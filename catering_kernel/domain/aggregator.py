"""
Financial Aggregator -- derived totals for events and clients.

Responsibility:
    Computes base cost, total bill, balance due and profit for one event,
    and the credit/due balance of a client billed directly.  Also assembles
    the permission-filtered finance view of an event.

Architecture position:
    Kernel > Domain -- pure, stateless.  Never cached: callers recompute
    after every mutation.

Invariants enforced:
    - Soft-deleted entries contribute zero to every total.
    - Recomputation on the same snapshot yields identical results.

    baseCost      = variable: pax * perPaxPrice | flat: rent | mix: both
    totalBill     = baseCost + totalCharges
    balanceDue    = totalBill - totalPayments
    profit        = totalBill - totalExpenses
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from catering_kernel.domain.ledger import list_entries
from catering_kernel.domain.models import Charge, Client, Event, Transaction
from catering_kernel.domain.permissions import AppPermissions, PermissionScope
from catering_kernel.domain.values import (
    ZERO,
    EventState,
    PricingModel,
    TransactionType,
)

# Event states whose bill counts against a client's advances.
BILLABLE_EVENT_STATES: frozenset[EventState] = frozenset({
    EventState.CONFIRMED,
    EventState.CANCELLED,
})


@dataclass(frozen=True)
class FinancialSummary:
    """Derived totals for one event snapshot."""

    base_cost: Decimal
    total_charges: Decimal
    total_bill: Decimal
    total_payments: Decimal
    total_expenses: Decimal
    balance_due: Decimal
    profit: Decimal


@dataclass(frozen=True)
class ClientBalance:
    """Advances received against bills of confirmed/cancelled events.

    Positive ``balance`` is credit held for the client; negative is due.
    """

    client_id: str
    total_advance: Decimal
    total_billed: Decimal
    balance: Decimal

    @property
    def is_credit(self) -> bool:
        return self.balance > ZERO

    @property
    def amount_due(self) -> Decimal:
        return -self.balance if self.balance < ZERO else ZERO


def base_cost(event: Event) -> Decimal:
    per_pax_total = event.per_pax_price * event.pax
    if event.pricing_model == PricingModel.FLAT:
        return event.rent
    if event.pricing_model == PricingModel.MIX:
        return event.rent + per_pax_total
    return per_pax_total


def _sum_amounts(entries: Iterable[Charge | Transaction]) -> Decimal:
    return sum((e.amount for e in entries if not e.is_deleted), ZERO)


def _sum_transactions(transactions: Iterable[Transaction], txn_type: TransactionType) -> Decimal:
    return _sum_amounts(t for t in transactions if t.type == txn_type)


def summarize_event(event: Event) -> FinancialSummary:
    base = base_cost(event)
    total_charges = _sum_amounts(event.charges)
    total_bill = base + total_charges
    total_payments = _sum_transactions(event.transactions, TransactionType.INCOME)
    total_expenses = _sum_transactions(event.transactions, TransactionType.EXPENSE)
    return FinancialSummary(
        base_cost=base,
        total_charges=total_charges,
        total_bill=total_bill,
        total_payments=total_payments,
        total_expenses=total_expenses,
        balance_due=total_bill - total_payments,
        profit=total_bill - total_expenses,
    )


def summarize_client(client: Client, events: Iterable[Event]) -> ClientBalance:
    """Client-level balance.  Events of other clients are ignored."""
    total_advance = _sum_transactions(client.transactions, TransactionType.INCOME)
    total_billed = sum(
        (
            summarize_event(e).total_bill
            for e in events
            if e.client_id == client.id and e.state in BILLABLE_EVENT_STATES
        ),
        ZERO,
    )
    return ClientBalance(
        client_id=client.id,
        total_advance=total_advance,
        total_billed=total_billed,
        balance=total_advance - total_billed,
    )


# ---------------------------------------------------------------------------
# Permission-filtered view
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CoreFigures:
    pricing_model: PricingModel
    pax: int
    per_pax_price: Decimal
    rent: Decimal
    editable: bool


@dataclass(frozen=True)
class LedgerSection:
    """One table of the finance view (charges, payments or expenses)."""

    scope: PermissionScope
    entries: tuple[Charge | Transaction, ...]
    total: Decimal
    editable: bool


@dataclass(frozen=True)
class FinanceView:
    """
    What a caller may see of an event's finances.

    A section whose scope level is ``none`` is ``None``: absent, not merely
    read-only.  The summary belongs to the core section.
    """

    event_id: str
    locked: bool
    core: CoreFigures | None
    summary: FinancialSummary | None
    charges: LedgerSection | None
    payments: LedgerSection | None
    expenses: LedgerSection | None


def _section(
    scope: PermissionScope,
    entries: Iterable[Charge | Transaction],
    permissions: AppPermissions,
    locked: bool,
    include_archived: bool,
) -> LedgerSection | None:
    if not permissions.can_view(scope):
        return None
    entries = tuple(entries)
    return LedgerSection(
        scope=scope,
        entries=list_entries(entries, include_archived),
        total=_sum_amounts(entries),
        editable=permissions.can_modify(scope) and not locked,
    )


def build_finance_view(
    event: Event,
    permissions: AppPermissions,
    include_archived: bool = False,
) -> FinanceView:
    locked = event.is_terminal
    core = None
    summary = None
    if permissions.can_view(PermissionScope.FINANCE_CORE):
        core = CoreFigures(
            pricing_model=event.pricing_model,
            pax=event.pax,
            per_pax_price=event.per_pax_price,
            rent=event.rent,
            editable=permissions.can_modify(PermissionScope.FINANCE_CORE) and not locked,
        )
        summary = summarize_event(event)

    return FinanceView(
        event_id=event.id,
        locked=locked,
        core=core,
        summary=summary,
        charges=_section(
            PermissionScope.FINANCE_CHARGES, event.charges,
            permissions, locked, include_archived,
        ),
        payments=_section(
            PermissionScope.FINANCE_PAYMENTS,
            (t for t in event.transactions if t.type == TransactionType.INCOME),
            permissions, locked, include_archived,
        ),
        expenses=_section(
            PermissionScope.FINANCE_EXPENSES,
            (t for t in event.transactions if t.type == TransactionType.EXPENSE),
            permissions, locked, include_archived,
        ),
    )
