"""Finance reports over event snapshots."""

from datetime import date
from decimal import Decimal

import pytest

from catering_kernel.domain import ledger
from catering_kernel.domain.ledger import ChargeInput
from catering_kernel.domain.values import EventState, MenuStatus
from catering_services.reports import (
    UNKNOWN_CLIENT,
    ReportFilters,
    additional_pax_report,
    expense_report,
    income_report,
    monthly_sales_report,
    profitability_report,
    sales_funnel_report,
    sales_window,
)
from tests.builders import expense, free_charge, payment

CLIENTS = {"cli-1": "Mehta Family", "cli-2": "Rao Family"}


@pytest.fixture
def events(make_event, ctx):
    wedding = make_event(id="e1", client_id="cli-1", state=EventState.CONFIRMED)
    wedding = ledger.create_transaction(wedding, payment(20000, day=date(2024, 3, 1)), ctx).aggregate
    wedding = ledger.create_transaction(
        wedding, payment(5000, day=date(2024, 2, 1), mode="UPI"), ctx
    ).aggregate
    wedding = ledger.create_transaction(wedding, expense(12000, day=date(2024, 3, 10)), ctx).aggregate

    party = make_event(
        id="e2", client_id="cli-2", event_type="Birthday", start_date=date(2024, 4, 20),
        location="Terrace", pax=40, per_pax_price=Decimal("400"),
    )
    party = ledger.create_charge(party, free_charge(3000), ctx).aggregate
    party = ledger.create_transaction(party, payment(1000, day=date(2024, 4, 1)), ctx).aggregate
    deleted_id = party.transactions[0].id
    party = ledger.delete_transaction(party, deleted_id, "Entered twice", ctx).aggregate

    lost = make_event(
        id="e3", client_id="cli-9", start_date=date(2024, 3, 20),
        state=EventState.LOST, status=MenuStatus.FINALIZED,
    )
    return [wedding, party, lost]


class TestIncomeAndExpense:

    def test_income_rows_sorted_by_payment_date(self, events):
        rows = income_report(events, CLIENTS)
        assert [r.amount for r in rows] == [Decimal("5000"), Decimal("20000")]
        assert rows[0].client == "Mehta Family"

    def test_deleted_payments_excluded(self, events):
        assert all(r.event_type != "Birthday" for r in income_report(events, CLIENTS))

    def test_filters(self, events):
        rows = income_report(events, CLIENTS, ReportFilters(payment_mode="UPI"))
        assert [r.amount for r in rows] == [Decimal("5000")]
        rows = income_report(events, CLIENTS, ReportFilters(start_date=date(2024, 2, 2)))
        assert [r.payment_date for r in rows] == [date(2024, 3, 1)]

    def test_expense_report(self, events):
        (row,) = expense_report(events, ReportFilters(location="Main Hall"))
        assert (row.category, row.amount) == ("Groceries", Decimal("12000"))
        assert expense_report(events, ReportFilters(location="Terrace")) == []


class TestProfitability:

    def test_most_profitable_first(self, events):
        rows = profitability_report(events, CLIENTS)
        assert [r.profit for r in rows] == [Decimal("50000"), Decimal("38000"), Decimal("19000")]
        assert rows[0].client == UNKNOWN_CLIENT

    def test_date_filter_is_inclusive(self, events):
        rows = profitability_report(
            events, CLIENTS, ReportFilters(start_date=date(2024, 4, 20), end_date=date(2024, 4, 20))
        )
        assert [r.event_type for r in rows] == ["Birthday"]


class TestAdditionalPax:

    def test_live_charges_only(self, make_event, ctx):
        extra = ChargeInput(type="Additional PAX", additional_pax_count=10, discount_amount=500,
                            notes="Family friends")
        event = ledger.create_charge(make_event(), extra, ctx).aggregate
        event = ledger.create_charge(
            event, ChargeInput(type="Additional PAX", additional_pax_count=2), ctx
        ).aggregate
        event = ledger.delete_charge(event, event.charges[1].id, "Not needed", ctx).aggregate

        (row,) = additional_pax_report([event], CLIENTS)
        assert row.additional_pax == 10
        assert row.charge_amount == Decimal("4500")
        assert row.discount == Decimal("500")
        assert row.initial_pax == 100


class TestMonthlySales:

    def test_window(self):
        assert sales_window(date(2024, 1, 15)) == (date(2023, 10, 1), date(2024, 4, 30))
        assert sales_window(date(2024, 11, 30)) == (date(2024, 8, 1), date(2025, 2, 28))

    def test_grouped_by_month(self, events):
        months = monthly_sales_report(events, CLIENTS, today=date(2024, 3, 5))
        assert [m.month for m in months] == ["2024-03", "2024-04"]
        march = months[0]
        assert march.month_name == "March 2024"
        assert march.sale_amount == Decimal("100000")
        assert march.collected_amount == Decimal("25000")
        assert march.due_amount == Decimal("75000")

    def test_events_outside_window_dropped(self, events):
        assert monthly_sales_report(events, CLIENTS, today=date(2025, 1, 1)) == []


class TestSalesFunnel:

    def test_stages(self, events):
        funnel = sales_funnel_report(events)
        assert funnel.total_leads.count == 3
        assert funnel.total_leads.conversion_rate is None
        assert funnel.confirmed.count == 1
        assert funnel.confirmed.conversion_rate == Decimal("33.3")
        assert funnel.lost.value == Decimal("50000")
        assert funnel.cancelled.count == 0
        assert funnel.cancelled.conversion_rate == Decimal("0.0")

    def test_empty(self):
        funnel = sales_funnel_report([])
        assert funnel.confirmed.conversion_rate == Decimal("0")
