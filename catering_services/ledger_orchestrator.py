"""
catering_services.ledger_orchestrator -- Wiring for the ledger services.

Responsibility:
    Creates every kernel service exactly once over one document store and
    one ledger configuration, builds the ``CommandContext`` for a caller,
    and offers the read side (finance view, client balance, reports, audit
    log) that needs more than one aggregate.

Architecture position:
    Services -- top of the stack.  The only place where configuration
    (``catering_config``) meets the kernel.

Invariants enforced:
    - Single-instance lifecycle: one Lifecycle, Ledger and Client service
      per orchestrator, all sharing the same store and clock.
    - Payment modes, expense categories and free-form charge types are
      checked against the configured lists before the command runs.
      An empty list accepts anything.

Usage:
    from catering_services.ledger_orchestrator import LedgerOrchestrator

    orchestrator = LedgerOrchestrator(store, get_active_config(), clock=clock)
    ctx = orchestrator.context_for(actor, role="staff", role_id="accountant")
    event = orchestrator.add_transaction(event_id, data, ctx, expected_version=3)
    view = orchestrator.finance_view(event_id, ctx.permissions)
    funnel = orchestrator.sales_funnel_report(ctx.permissions)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date

from catering_config.bridges import (
    build_competitor_names,
    build_lost_reason_rules,
    resolve_permissions,
)
from catering_config.schema import LedgerConfig
from catering_kernel.db.document_store import Document, DocumentStore
from catering_kernel.db.serialization import client_from_document, event_from_document
from catering_kernel.domain.aggregator import (
    ClientBalance,
    FinanceView,
    build_finance_view,
    summarize_client,
)
from catering_kernel.domain.clock import Clock, SystemClock
from catering_kernel.domain.commands import (
    AUDIT_LOG_COLLECTION,
    CLIENTS_COLLECTION,
    EVENTS_COLLECTION,
    CommandContext,
    new_id,
)
from catering_kernel.domain.ledger import ChargeInput, TransactionInput
from catering_kernel.domain.models import Actor, Client, Event
from catering_kernel.domain.permissions import AppPermissions, PermissionGate, PermissionScope
from catering_kernel.domain.values import TransactionType, is_special_charge_type, to_enum
from catering_kernel.exceptions import ValidationError
from catering_kernel.logging_config import get_logger
from catering_kernel.services.client_service import ClientService
from catering_kernel.services.ledger_service import LedgerService
from catering_kernel.services.lifecycle_service import LifecycleService
from catering_services import reports

logger = get_logger("services.orchestrator")


class LedgerOrchestrator:
    """Central factory and read side for the ledger.

    Contract:
        Receives a ``DocumentStore``, a ``LedgerConfig`` and optional
        Clock / id factory.  Mutations go through the public service
        attributes or the validated wrappers below.

    Non-goals:
        - Does NOT retry on ``ConflictError``; the caller reloads and
          decides.
    """

    def __init__(
        self,
        store: DocumentStore,
        config: LedgerConfig,
        clock: Clock | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._id_factory = id_factory or new_id
        self.config = config

        self._lost_reasons = build_lost_reason_rules(config)
        self._competitors = build_competitor_names(config)

        self.lifecycle = LifecycleService(store)
        self.ledger = LedgerService(store)
        self.clients = ClientService(store)

    @property
    def clock(self) -> Clock:
        return self._clock

    # -- context -----------------------------------------------------------

    def context_for(
        self,
        actor: Actor | None,
        *,
        role: str | None = None,
        role_id: str | None = None,
        permissions: AppPermissions | None = None,
    ) -> CommandContext:
        """Build a command context.

        An explicit ``permissions`` snapshot wins over role resolution.
        """
        if permissions is None:
            permissions = resolve_permissions(self.config, role, role_id)
        return CommandContext(
            actor=actor,
            permissions=permissions,
            clock=self._clock,
            id_factory=self._id_factory,
            lost_reasons=self._lost_reasons,
            competitors=self._competitors,
        )

    # -- lookup validation -------------------------------------------------

    def _check_lookup(self, value: str | None, allowed: tuple[str, ...], field: str) -> None:
        if value and allowed and value not in allowed:
            raise ValidationError(f"Unknown {field.replace('_', ' ')}: {value}", field=field)

    def validate_transaction_input(self, data: TransactionInput) -> None:
        if to_enum(TransactionType, data.type, "type") == TransactionType.INCOME:
            self._check_lookup(data.payment_mode, self.config.payment_modes, "payment_mode")
        else:
            self._check_lookup(data.category, self.config.expense_categories, "category")

    def validate_charge_input(self, data: ChargeInput) -> None:
        if not is_special_charge_type(data.type):
            self._check_lookup(data.type, self.config.charge_types, "charge_type")

    # -- validated mutations -----------------------------------------------

    def add_charge(
        self, event_id: str, data: ChargeInput, ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        self.validate_charge_input(data)
        return self.ledger.create_charge(event_id, data, ctx, expected_version)

    def edit_charge(
        self, event_id: str, charge_id: str, data: ChargeInput, reason: str | None,
        ctx: CommandContext, expected_version: int | None = None,
    ) -> Event:
        self.validate_charge_input(data)
        return self.ledger.update_charge(event_id, charge_id, data, reason, ctx, expected_version)

    def add_transaction(
        self, event_id: str, data: TransactionInput, ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        self.validate_transaction_input(data)
        return self.ledger.create_transaction(event_id, data, ctx, expected_version)

    def edit_transaction(
        self, event_id: str, transaction_id: str, data: TransactionInput,
        reason: str | None, ctx: CommandContext, expected_version: int | None = None,
    ) -> Event:
        self.validate_transaction_input(data)
        return self.ledger.update_transaction(
            event_id, transaction_id, data, reason, ctx, expected_version
        )

    def add_client_advance(
        self, client_id: str, data: TransactionInput, ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Client:
        self.validate_transaction_input(data)
        return self.ledger.create_client_advance(client_id, data, ctx, expected_version)

    def edit_client_advance(
        self, client_id: str, transaction_id: str, data: TransactionInput,
        reason: str | None, ctx: CommandContext, expected_version: int | None = None,
    ) -> Client:
        self.validate_transaction_input(data)
        return self.ledger.update_client_advance(
            client_id, transaction_id, data, reason, ctx, expected_version
        )

    # -- read side ---------------------------------------------------------
    # Raw aggregate loads; permission-filtered reads go through finance_view,
    # client_balance and the reports.

    def get_event(self, event_id: str) -> Event:
        return self.lifecycle.load_event(event_id)

    def get_client(self, client_id: str) -> Client:
        return self.clients.load_client(client_id)

    def list_events(self) -> list[Event]:
        return [event_from_document(d) for d in self._store.list(EVENTS_COLLECTION)]

    def list_clients(self) -> list[Client]:
        return [client_from_document(d) for d in self._store.list(CLIENTS_COLLECTION)]

    def events_for_client(self, client_id: str) -> list[Event]:
        return [e for e in self.list_events() if e.client_id == client_id]

    def client_names(self) -> dict[str, str]:
        return {c.id: c.name for c in self.list_clients()}

    def finance_view(
        self,
        event_id: str,
        permissions: AppPermissions,
        include_archived: bool = False,
    ) -> FinanceView:
        return build_finance_view(self.get_event(event_id), permissions, include_archived)

    def client_balance(self, client_id: str, permissions: AppPermissions) -> ClientBalance:
        """Advances against billed totals.  Needs ``view`` on clients and finance core."""
        PermissionGate.require_view(permissions, PermissionScope.CLIENTS_AND_EVENTS)
        PermissionGate.require_view(permissions, PermissionScope.FINANCE_CORE)
        client = self.get_client(client_id)
        balance = summarize_client(client, self.events_for_client(client_id))
        logger.info(
            "client_balance_computed",
            extra={
                "client_id": client_id,
                "total_advance": balance.total_advance,
                "total_billed": balance.total_billed,
                "balance": balance.balance,
            },
        )
        return balance

    def audit_log(self, entity_id: str | None = None) -> list[Document]:
        """Activity records, oldest first, optionally for one entity."""
        records = self._store.list(AUDIT_LOG_COLLECTION)
        if entity_id is not None:
            records = [r for r in records if r.get("entityId") == entity_id]
        return sorted(records, key=lambda r: r.get("timestamp", ""))

    def subscribe_events(self, callback: Callable[[list[Event]], None]) -> Callable[[], None]:
        """Live event snapshots.  Returns the unsubscribe function."""
        return self._store.subscribe(
            EVENTS_COLLECTION,
            lambda docs: callback([event_from_document(d) for d in docs]),
        )

    # -- reports -----------------------------------------------------------
    # Every report needs ``view`` on financeCore, plus the scope of the
    # ledger rows it lists.

    def income_report(
        self, permissions: AppPermissions, filters: reports.ReportFilters = reports.NO_FILTERS
    ):
        return self._report(
            "income", permissions, (PermissionScope.FINANCE_PAYMENTS,),
            lambda events, names: reports.income_report(events, names, filters),
        )

    def expense_report(
        self, permissions: AppPermissions, filters: reports.ReportFilters = reports.NO_FILTERS
    ):
        return self._report(
            "expense", permissions, (PermissionScope.FINANCE_EXPENSES,),
            lambda events, names: reports.expense_report(events, filters),
        )

    def profitability_report(
        self, permissions: AppPermissions, filters: reports.ReportFilters = reports.NO_FILTERS
    ):
        return self._report(
            "profitability", permissions,
            (PermissionScope.FINANCE_PAYMENTS, PermissionScope.FINANCE_EXPENSES),
            lambda events, names: reports.profitability_report(events, names, filters),
        )

    def additional_pax_report(
        self, permissions: AppPermissions, filters: reports.ReportFilters = reports.NO_FILTERS
    ):
        return self._report(
            "additional_pax", permissions, (PermissionScope.FINANCE_CHARGES,),
            lambda events, names: reports.additional_pax_report(events, names, filters),
        )

    def monthly_sales_report(self, permissions: AppPermissions, today: date | None = None):
        today = today or self._clock.today()
        return self._report(
            "monthly_sales", permissions, (),
            lambda events, names: reports.monthly_sales_report(events, names, today),
        )

    def sales_funnel_report(
        self, permissions: AppPermissions, filters: reports.ReportFilters = reports.NO_FILTERS
    ):
        return self._report(
            "sales_funnel", permissions, (),
            lambda events, names: reports.sales_funnel_report(events, filters),
        )

    def _report(self, name, permissions, extra_scopes, build):
        for scope in (PermissionScope.FINANCE_CORE, *extra_scopes):
            PermissionGate.require_view(permissions, scope)
        events = self.list_events()
        result = build(events, self.client_names())
        logger.info(
            "report_generated",
            extra={"report": name, "event_count": len(events)},
        )
        return result
