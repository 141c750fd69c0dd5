"""
Derived totals and the permission-filtered finance view.

Totals are never stored; each test recomputes them from a snapshot.
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from catering_kernel.domain import ledger
from catering_kernel.domain.aggregator import (
    base_cost,
    build_finance_view,
    summarize_client,
    summarize_event,
)
from catering_kernel.domain.models import Client
from catering_kernel.domain.permissions import AppPermissions, PermissionScope
from catering_kernel.domain.values import EventState, MenuStatus, PermissionLevel, PricingModel
from tests.builders import expense, free_charge, payment


class TestBaseCost:

    @pytest.mark.parametrize(
        "model, pax, per_pax, rent, expected",
        [
            (PricingModel.VARIABLE, 100, "500", "0", "50000"),
            (PricingModel.FLAT, 100, "0", "80000", "80000"),
            (PricingModel.MIX, 100, "300", "20000", "50000"),
            (PricingModel.VARIABLE, 0, "500", "0", "0"),
        ],
    )
    def test_by_pricing_model(self, make_event, model, pax, per_pax, rent, expected):
        event = make_event(
            pricing_model=model, pax=pax, per_pax_price=Decimal(per_pax), rent=Decimal(rent)
        )
        assert base_cost(event) == Decimal(expected)


class TestSummarizeEvent:

    @pytest.fixture
    def busy_event(self, make_event, ctx):
        event = make_event()
        event = ledger.create_charge(event, free_charge(5000), ctx).aggregate
        event = ledger.create_charge(event, free_charge(700, charge_type="Transport"), ctx).aggregate
        event = ledger.create_transaction(event, payment(20000), ctx).aggregate
        event = ledger.create_transaction(event, expense(12000), ctx).aggregate
        return event

    def test_totals(self, busy_event):
        summary = summarize_event(busy_event)
        assert summary.base_cost == Decimal("50000")
        assert summary.total_charges == Decimal("5700")
        assert summary.total_bill == Decimal("55700")
        assert summary.total_payments == Decimal("20000")
        assert summary.total_expenses == Decimal("12000")
        assert summary.balance_due == Decimal("35700")
        assert summary.profit == Decimal("43700")

    def test_deleted_entries_contribute_nothing(self, busy_event, ctx):
        charge_id = busy_event.charges[0].id
        expense_id = busy_event.transactions[1].id
        event = ledger.delete_charge(busy_event, charge_id, "dup", ctx).aggregate
        event = ledger.delete_transaction(event, expense_id, "dup", ctx).aggregate

        summary = summarize_event(event)
        assert summary.total_charges == Decimal("700")
        assert summary.total_expenses == Decimal("0")
        assert summary.profit == summary.total_bill

    def test_recomputation_is_stable(self, busy_event):
        assert summarize_event(busy_event) == summarize_event(busy_event)

    def test_overpayment_gives_negative_balance(self, make_event, ctx):
        event = ledger.create_transaction(make_event(), payment(60000), ctx).aggregate
        assert summarize_event(event).balance_due == Decimal("-10000")


class TestClientBalance:

    @pytest.fixture
    def client(self, ctx):
        client = Client(id="cli-1", name="Mehta Family")
        return ledger.create_client_advance(client, payment(60000), ctx).aggregate

    def test_only_confirmed_and_cancelled_events_bill(self, client, make_event):
        events = [
            make_event(id="e1", state=EventState.CONFIRMED),
            make_event(id="e2", state=EventState.CANCELLED, status=MenuStatus.FINALIZED),
            make_event(id="e3", state=EventState.LEAD),
            make_event(id="e4", state=EventState.LOST, status=MenuStatus.FINALIZED),
        ]
        balance = summarize_client(client, events)
        assert balance.total_advance == Decimal("60000")
        assert balance.total_billed == Decimal("100000")
        assert balance.balance == Decimal("-40000")
        assert balance.amount_due == Decimal("40000")
        assert not balance.is_credit

    def test_other_clients_ignored(self, client, make_event):
        events = [make_event(client_id="cli-2", state=EventState.CONFIRMED)]
        balance = summarize_client(client, events)
        assert balance.total_billed == Decimal("0")
        assert balance.is_credit
        assert balance.amount_due == Decimal("0")

    def test_deleted_advance_ignored(self, client, ctx):
        txn_id = client.transactions[0].id
        client = ledger.delete_client_advance(client, txn_id, "Bounced", ctx).aggregate
        assert summarize_client(client, []).total_advance == Decimal("0")


class TestFinanceView:

    @pytest.fixture
    def event(self, make_event, ctx):
        event = ledger.create_charge(make_event(), free_charge(5000), ctx).aggregate
        event = ledger.create_transaction(event, payment(1000), ctx).aggregate
        event = ledger.create_transaction(event, expense(300), ctx).aggregate
        return ledger.delete_charge(event, event.charges[0].id, "Waived", ctx).aggregate

    def test_full_access_is_editable(self, event, full_permissions):
        view = build_finance_view(event, full_permissions)
        assert view.core.editable
        assert view.charges.editable
        assert view.summary.balance_due == Decimal("49000")

    def test_view_only_sections_are_read_only(self, event, view_only_permissions):
        view = build_finance_view(event, view_only_permissions)
        assert view.core is not None and not view.core.editable
        assert not view.payments.editable
        assert not view.expenses.editable

    def test_none_hides_section(self, event, full_permissions):
        perms = replace(
            full_permissions,
            finance_expenses=PermissionLevel.NONE,
            finance_core=PermissionLevel.NONE,
        )
        view = build_finance_view(event, perms)
        assert view.expenses is None
        assert view.core is None
        assert view.summary is None
        assert view.payments.scope == PermissionScope.FINANCE_PAYMENTS

    def test_archived_entries_only_on_request(self, event, full_permissions):
        assert build_finance_view(event, full_permissions).charges.entries == ()
        archived = build_finance_view(event, full_permissions, include_archived=True)
        assert len(archived.charges.entries) == 1
        assert archived.charges.total == Decimal("0")

    def test_terminal_event_is_read_only(self, event, full_permissions):
        event = replace(event, state=EventState.LOST, status=MenuStatus.FINALIZED)
        view = build_finance_view(event, full_permissions)
        assert view.locked
        assert not view.charges.editable
        assert not view.core.editable

    def test_no_access(self, event):
        view = build_finance_view(event, AppPermissions.no_access())
        assert (view.core, view.charges, view.payments, view.expenses) == (None, None, None, None)
