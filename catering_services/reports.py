"""
catering_services.reports -- Finance reports over event snapshots.

Responsibility:
    Flattens events into report rows: income, expense, event
    profitability, additional PAX, monthly sales and the sales funnel.
    Every total comes from ``catering_kernel.domain.aggregator`` so a
    report can never disagree with the event's own finance view.

Architecture position:
    Services -- pure read-side functions.  Inputs are already-loaded
    ``Event`` aggregates and a client-name map; nothing here touches the
    store.

Invariants enforced:
    - Soft-deleted charges and transactions never appear in a row or a
      total.
    - Date filters are inclusive on both ends.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from catering_kernel.domain.aggregator import summarize_event
from catering_kernel.domain.models import Event
from catering_kernel.domain.values import ZERO, ChargeType, EventState, TransactionType

UNKNOWN_CLIENT = "N/A"


@dataclass(frozen=True)
class ReportFilters:
    """Optional filters shared by the dated reports."""

    start_date: date | None = None
    end_date: date | None = None
    location: str | None = None
    payment_mode: str | None = None

    def in_range(self, day: date) -> bool:
        if self.start_date and day < self.start_date:
            return False
        if self.end_date and day > self.end_date:
            return False
        return True

    def at_location(self, location: str) -> bool:
        return not self.location or location == self.location


NO_FILTERS = ReportFilters()


def _client_name(clients: Mapping[str, str], event: Event) -> str:
    if event.client_id is None:
        return UNKNOWN_CLIENT
    return clients.get(event.client_id, UNKNOWN_CLIENT)


# ---------------------------------------------------------------------------
# Income / expense
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IncomeRow:
    client: str
    event_type: str
    event_date: date
    payment_date: date
    payment_mode: str | None
    notes: str
    amount: Decimal
    location: str


@dataclass(frozen=True)
class ExpenseRow:
    event_type: str
    expense_date: date
    category: str | None
    notes: str
    amount: Decimal
    location: str


def income_report(
    events: Iterable[Event],
    clients: Mapping[str, str],
    filters: ReportFilters = NO_FILTERS,
) -> list[IncomeRow]:
    """Every live payment, filtered by payment date, location and mode."""
    rows = [
        IncomeRow(
            client=_client_name(clients, event),
            event_type=event.event_type,
            event_date=event.start_date,
            payment_date=txn.date,
            payment_mode=txn.payment_mode,
            notes=txn.notes,
            amount=txn.amount,
            location=event.location,
        )
        for event in events
        for txn in event.transactions
        if txn.type == TransactionType.INCOME and not txn.is_deleted
    ]
    return sorted(
        (
            r for r in rows
            if filters.in_range(r.payment_date)
            and filters.at_location(r.location)
            and (not filters.payment_mode or r.payment_mode == filters.payment_mode)
        ),
        key=lambda r: r.payment_date,
    )


def expense_report(
    events: Iterable[Event],
    filters: ReportFilters = NO_FILTERS,
) -> list[ExpenseRow]:
    """Every live expense, filtered by expense date and location."""
    rows = [
        ExpenseRow(
            event_type=event.event_type,
            expense_date=txn.date,
            category=txn.category,
            notes=txn.notes,
            amount=txn.amount,
            location=event.location,
        )
        for event in events
        for txn in event.transactions
        if txn.type == TransactionType.EXPENSE and not txn.is_deleted
    ]
    return sorted(
        (r for r in rows if filters.in_range(r.expense_date) and filters.at_location(r.location)),
        key=lambda r: r.expense_date,
    )


# ---------------------------------------------------------------------------
# Profitability / additional PAX
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProfitabilityRow:
    client: str
    event_type: str
    event_date: date
    location: str
    total_bill: Decimal
    total_expenses: Decimal
    profit: Decimal


def profitability_report(
    events: Iterable[Event],
    clients: Mapping[str, str],
    filters: ReportFilters = NO_FILTERS,
) -> list[ProfitabilityRow]:
    """One row per event, most profitable first."""
    rows = []
    for event in events:
        if not (filters.in_range(event.start_date) and filters.at_location(event.location)):
            continue
        summary = summarize_event(event)
        rows.append(
            ProfitabilityRow(
                client=_client_name(clients, event),
                event_type=event.event_type,
                event_date=event.start_date,
                location=event.location,
                total_bill=summary.total_bill,
                total_expenses=summary.total_expenses,
                profit=summary.profit,
            )
        )
    return sorted(rows, key=lambda r: r.profit, reverse=True)


@dataclass(frozen=True)
class AdditionalPaxRow:
    client: str
    event_type: str
    event_date: date
    initial_pax: int
    per_pax_rate: Decimal
    additional_pax: int
    discount: Decimal
    charge_amount: Decimal
    notes: str
    location: str


def additional_pax_report(
    events: Iterable[Event],
    clients: Mapping[str, str],
    filters: ReportFilters = NO_FILTERS,
) -> list[AdditionalPaxRow]:
    """Live Additional PAX charges, filtered by event date and location."""
    rows = [
        AdditionalPaxRow(
            client=_client_name(clients, event),
            event_type=event.event_type,
            event_date=event.start_date,
            initial_pax=event.pax,
            per_pax_rate=event.per_pax_price,
            additional_pax=charge.additional_pax_count or 0,
            discount=charge.discount_amount or ZERO,
            charge_amount=charge.amount,
            notes=charge.notes,
            location=event.location,
        )
        for event in events
        if filters.in_range(event.start_date) and filters.at_location(event.location)
        for charge in event.charges
        if charge.type == ChargeType.ADDITIONAL_PAX.value and not charge.is_deleted
    ]
    return sorted(rows, key=lambda r: r.event_date)


# ---------------------------------------------------------------------------
# Monthly sales
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SalesRow:
    client: str
    event_type: str
    event_date: date
    sale_amount: Decimal
    collected_amount: Decimal
    due_amount: Decimal


@dataclass(frozen=True)
class SalesMonth:
    month: str  # YYYY-MM
    month_name: str
    rows: tuple[SalesRow, ...]
    sale_amount: Decimal
    collected_amount: Decimal
    due_amount: Decimal


def _month_start(day: date, offset: int) -> date:
    index = day.year * 12 + (day.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def sales_window(today: date) -> tuple[date, date]:
    """First day three months back through the last day three months ahead."""
    start = _month_start(today, -3)
    last_month = _month_start(today, 3)
    end = last_month.replace(
        day=calendar.monthrange(last_month.year, last_month.month)[1]
    )
    return start, end


def monthly_sales_report(
    events: Iterable[Event],
    clients: Mapping[str, str],
    today: date,
) -> list[SalesMonth]:
    """Sales grouped by event month over the window around ``today``."""
    start, end = sales_window(today)
    grouped: dict[str, list[SalesRow]] = {}
    for event in events:
        if not start <= event.start_date <= end:
            continue
        summary = summarize_event(event)
        grouped.setdefault(event.start_date.strftime("%Y-%m"), []).append(
            SalesRow(
                client=_client_name(clients, event),
                event_type=event.event_type,
                event_date=event.start_date,
                sale_amount=summary.total_bill,
                collected_amount=summary.total_payments,
                due_amount=summary.balance_due,
            )
        )

    months = []
    for key in sorted(grouped):
        rows = tuple(sorted(grouped[key], key=lambda r: r.event_date))
        first = rows[0].event_date
        months.append(
            SalesMonth(
                month=key,
                month_name=f"{calendar.month_name[first.month]} {first.year}",
                rows=rows,
                sale_amount=sum((r.sale_amount for r in rows), ZERO),
                collected_amount=sum((r.collected_amount for r in rows), ZERO),
                due_amount=sum((r.due_amount for r in rows), ZERO),
            )
        )
    return months


# ---------------------------------------------------------------------------
# Sales funnel
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FunnelStage:
    name: str
    count: int
    value: Decimal
    conversion_rate: Decimal | None = None


@dataclass(frozen=True)
class SalesFunnel:
    total_leads: FunnelStage
    confirmed: FunnelStage
    lost: FunnelStage
    cancelled: FunnelStage


def _rate(count: int, total: int) -> Decimal:
    if total == 0:
        return ZERO
    return (Decimal(count) * 100 / Decimal(total)).quantize(Decimal("0.1"))


def sales_funnel_report(
    events: Iterable[Event],
    filters: ReportFilters = NO_FILTERS,
) -> SalesFunnel:
    """
    Lead outcomes over events in the filter window.

    Every event counts as a lead; the other stages group by current
    state.  Stage value is the sum of total bills.
    """
    selected = [
        e for e in events
        if filters.in_range(e.start_date) and filters.at_location(e.location)
    ]
    bills = {e.id: summarize_event(e).total_bill for e in selected}
    total = len(selected)

    def stage(name: str, state: EventState) -> FunnelStage:
        matching = [e for e in selected if e.state == state]
        return FunnelStage(
            name=name,
            count=len(matching),
            value=sum((bills[e.id] for e in matching), ZERO),
            conversion_rate=_rate(len(matching), total),
        )

    return SalesFunnel(
        total_leads=FunnelStage(
            name="Total Leads", count=total, value=sum(bills.values(), ZERO)
        ),
        confirmed=stage("Confirmed", EventState.CONFIRMED),
        lost=stage("Lost", EventState.LOST),
        cancelled=stage("Cancelled", EventState.CANCELLED),
    )
