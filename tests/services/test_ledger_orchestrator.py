"""
LedgerOrchestrator: contexts from roles, configured lookups, and the read
side that spans several aggregates.
"""

from datetime import date
from decimal import Decimal

import pytest

from catering_kernel.domain.values import EventState, PermissionLevel
from catering_kernel.exceptions import PermissionDeniedError, ValidationError
from tests.builders import expense, free_charge, payment


@pytest.fixture
def manager_ctx(orchestrator, actor):
    return orchestrator.context_for(actor, role="admin")


@pytest.fixture
def booked(orchestrator, manager_ctx):
    client = orchestrator.clients.create_client(manager_ctx, name="Mehta Family")
    event = orchestrator.lifecycle.create_event(
        manager_ctx, client_id=client.id, event_type="Wedding",
        start_date=date(2024, 3, 15), pax=100,
    )
    event = orchestrator.lifecycle.update_core_figures(
        event.id, manager_ctx, per_pax_price=500, reason="Quote agreed"
    )
    return client, event


class TestContexts:

    def test_role_resolution(self, orchestrator, actor):
        ctx = orchestrator.context_for(actor, role="staff", role_id="accountant")
        assert ctx.permissions.finance_expenses == PermissionLevel.MODIFY
        assert ctx.permissions.finance_charges == PermissionLevel.VIEW
        assert "Competition" in ctx.lost_reasons
        assert ctx.competitors["comp-royal"] == "Royal Caterers"

    def test_explicit_permissions_win(self, orchestrator, actor, view_only_permissions):
        ctx = orchestrator.context_for(actor, role="admin", permissions=view_only_permissions)
        assert ctx.permissions == view_only_permissions

    def test_accountant_cannot_add_charges(self, orchestrator, booked, actor):
        _, event = booked
        ctx = orchestrator.context_for(actor, role="staff", role_id="accountant")
        with pytest.raises(PermissionDeniedError):
            orchestrator.add_charge(event.id, free_charge(100), ctx)
        orchestrator.add_transaction(event.id, expense(100), ctx)


class TestLookupValidation:

    def test_unknown_payment_mode(self, orchestrator, booked, manager_ctx):
        _, event = booked
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.add_transaction(event.id, payment(100, mode="Barter"), manager_ctx)
        assert exc_info.value.field == "payment_mode"

    def test_unknown_expense_category(self, orchestrator, booked, manager_ctx):
        _, event = booked
        with pytest.raises(ValidationError):
            orchestrator.add_transaction(event.id, expense(100, category="Yacht"), manager_ctx)

    def test_unknown_charge_type(self, orchestrator, booked, manager_ctx):
        _, event = booked
        with pytest.raises(ValidationError) as exc_info:
            orchestrator.add_charge(event.id, free_charge(100, charge_type="Fireworks"), manager_ctx)
        assert exc_info.value.field == "charge_type"

    def test_configured_values_accepted(self, orchestrator, booked, manager_ctx):
        _, event = booked
        event = orchestrator.add_charge(event.id, free_charge(100, charge_type="Transport"), manager_ctx)
        txn_event = orchestrator.add_transaction(event.id, payment(100, mode="UPI"), manager_ctx)
        assert len(txn_event.transactions) == 1

    def test_advance_mode_checked(self, orchestrator, booked, manager_ctx):
        client, _ = booked
        with pytest.raises(ValidationError):
            orchestrator.add_client_advance(client.id, payment(100, mode="Gold"), manager_ctx)


class TestReadSide:

    def test_finance_view_respects_permissions(self, orchestrator, booked, actor):
        _, event = booked
        kitchen = orchestrator.context_for(actor, role="kitchen")
        view = orchestrator.finance_view(event.id, kitchen.permissions)
        assert view.core is None and view.payments is None

    def test_client_balance(self, orchestrator, booked, manager_ctx, captured_logs):
        client, event = booked
        orchestrator.add_client_advance(client.id, payment(60000), manager_ctx)
        balance = orchestrator.client_balance(client.id, manager_ctx.permissions)
        assert balance.balance == Decimal("60000")

        orchestrator.lifecycle.transition(event.id, EventState.CONFIRMED, manager_ctx)
        balance = orchestrator.client_balance(client.id, manager_ctx.permissions)
        assert balance.total_billed == Decimal("50000")
        assert balance.balance == Decimal("10000")
        assert any(r["message"] == "client_balance_computed" for r in captured_logs())

    def test_audit_log_for_event(self, orchestrator, booked, manager_ctx, deterministic_clock):
        _, event = booked
        deterministic_clock.advance(30)
        orchestrator.lifecycle.transition(event.id, EventState.CONFIRMED, manager_ctx)
        records = orchestrator.audit_log(event.id)
        assert [r["action"] for r in records] == ["CREATE_EVENT", "UPDATE_EVENT"]
        assert len(orchestrator.audit_log()) == 2

    def test_subscribe_events(self, orchestrator, booked, manager_ctx):
        _, event = booked
        seen = []
        unsubscribe = orchestrator.subscribe_events(lambda events: seen.append(events))
        orchestrator.add_transaction(event.id, payment(100), manager_ctx)
        unsubscribe()
        orchestrator.add_transaction(event.id, payment(200), manager_ctx)

        assert len(seen) == 2
        assert len(seen[-1][0].transactions) == 1

    def test_events_for_client(self, orchestrator, booked, manager_ctx):
        client, _ = booked
        orchestrator.lifecycle.create_event(
            manager_ctx, client_id="someone-else", event_type="Birthday",
            start_date=date(2024, 5, 1),
        )
        assert len(orchestrator.list_events()) == 2
        assert len(orchestrator.events_for_client(client.id)) == 1
        assert orchestrator.client_names() == {client.id: "Mehta Family"}

    def test_reports_are_logged(self, orchestrator, booked, manager_ctx, captured_logs):
        funnel = orchestrator.sales_funnel_report(manager_ctx.permissions)
        assert funnel.total_leads.count == 1
        months = orchestrator.monthly_sales_report(manager_ctx.permissions, today=date(2024, 3, 1))
        assert months[0].sale_amount == Decimal("50000")
        reports = [r["report"] for r in captured_logs() if r["message"] == "report_generated"]
        assert reports == ["sales_funnel", "monthly_sales"]

    def test_kitchen_cannot_read_balances_or_reports(self, orchestrator, booked, actor):
        client, _ = booked
        kitchen = orchestrator.context_for(actor, role="kitchen")
        with pytest.raises(PermissionDeniedError) as exc_info:
            orchestrator.client_balance(client.id, kitchen.permissions)
        assert exc_info.value.scope == "clientsAndEvents"
        with pytest.raises(PermissionDeniedError) as exc_info:
            orchestrator.sales_funnel_report(kitchen.permissions)
        assert exc_info.value.scope == "financeCore"

    def test_report_needs_the_scope_of_its_rows(self, orchestrator, booked, actor, captured_logs):
        ctx = orchestrator.context_for(actor, role="staff", role_id="event_manager")
        assert orchestrator.income_report(ctx.permissions) == []
        with pytest.raises(PermissionDeniedError) as exc_info:
            orchestrator.expense_report(ctx.permissions)
        assert exc_info.value.scope == "financeExpenses"
        reports = [r["report"] for r in captured_logs() if r["message"] == "report_generated"]
        assert reports == ["income"]
