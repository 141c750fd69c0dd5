"""
Ledger service -- persisted charge, transaction and advance mutations.

The Ledger service is responsible for:
- Loading the owning Event or Client at the version the caller read
- Running the pure ledger command from ``domain.ledger``
- Writing the whole aggregate back with compare-and-set
- Logging every accepted mutation

The Ledger service does NOT:
- Compute amounts (that's the charge calculator)
- Decide permissions or locks (the command does, via the context)
"""

from __future__ import annotations

from catering_kernel.domain import ledger
from catering_kernel.domain.commands import CommandContext
from catering_kernel.domain.ledger import ChargeInput, TransactionInput
from catering_kernel.domain.models import Client, Event
from catering_kernel.logging_config import LogContext, get_logger
from catering_kernel.services.base import BaseService

logger = get_logger("services.ledger")


def _actor_id(ctx: CommandContext) -> str | None:
    return ctx.actor.actor_id if ctx.actor else None


class LedgerService(BaseService):
    """
    Applies ledger commands to stored aggregates.

    Every method takes the aggregate id and, optionally, the version the
    caller last read.  The returned aggregate carries its new version.
    """

    # -- charges -----------------------------------------------------------

    def create_charge(
        self,
        event_id: str,
        data: ChargeInput,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            before = {c.id for c in event.charges}
            updated = self._run(
                "create_charge", lambda: ledger.create_charge(event, data, ctx), ctx
            )
            charge = next(c for c in updated.charges if c.id not in before)
            logger.info(
                "charge_created",
                extra={
                    "entry_id": charge.id,
                    "charge_type": charge.type,
                    "amount": charge.amount,
                    "version": updated.version,
                },
            )
            return updated

    def update_charge(
        self,
        event_id: str,
        charge_id: str,
        data: ChargeInput,
        reason: str | None,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx), entry_id=charge_id):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "update_charge",
                lambda: ledger.update_charge(event, charge_id, data, reason, ctx),
                ctx,
            )
            if updated is event:
                return updated
            charge = updated.find_charge(charge_id)
            logger.info(
                "charge_updated",
                extra={
                    "charge_type": charge.type,
                    "amount": charge.amount,
                    "changed_fields": [c.field for c in charge.history[-1].changes],
                    "version": updated.version,
                },
            )
            return updated

    def delete_charge(
        self,
        event_id: str,
        charge_id: str,
        reason: str | None,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx), entry_id=charge_id):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "delete_charge",
                lambda: ledger.delete_charge(event, charge_id, reason, ctx),
                ctx,
            )
            logger.info("charge_deleted", extra={"version": updated.version})
            return updated

    # -- event transactions --------------------------------------------------

    def create_transaction(
        self,
        event_id: str,
        data: TransactionInput,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(event_id=event_id, actor_id=_actor_id(ctx)):
            event = self.load_event(event_id, expected_version)
            before = {t.id for t in event.transactions}
            updated = self._run(
                "create_transaction",
                lambda: ledger.create_transaction(event, data, ctx),
                ctx,
            )
            txn = next(t for t in updated.transactions if t.id not in before)
            logger.info(
                "transaction_created",
                extra={
                    "entry_id": txn.id,
                    "transaction_type": txn.type.value,
                    "amount": txn.amount,
                    "version": updated.version,
                },
            )
            return updated

    def update_transaction(
        self,
        event_id: str,
        transaction_id: str,
        data: TransactionInput,
        reason: str | None,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(
            event_id=event_id, actor_id=_actor_id(ctx), entry_id=transaction_id
        ):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "update_transaction",
                lambda: ledger.update_transaction(event, transaction_id, data, reason, ctx),
                ctx,
            )
            if updated is event:
                return updated
            txn = updated.find_transaction(transaction_id)
            logger.info(
                "transaction_updated",
                extra={
                    "transaction_type": txn.type.value,
                    "amount": txn.amount,
                    "changed_fields": [c.field for c in txn.history[-1].changes],
                    "version": updated.version,
                },
            )
            return updated

    def delete_transaction(
        self,
        event_id: str,
        transaction_id: str,
        reason: str | None,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Event:
        with LogContext.bind(
            event_id=event_id, actor_id=_actor_id(ctx), entry_id=transaction_id
        ):
            event = self.load_event(event_id, expected_version)
            updated = self._run(
                "delete_transaction",
                lambda: ledger.delete_transaction(event, transaction_id, reason, ctx),
                ctx,
            )
            logger.info("transaction_deleted", extra={"version": updated.version})
            return updated

    # -- client advances ---------------------------------------------------

    def create_client_advance(
        self,
        client_id: str,
        data: TransactionInput,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Client:
        with LogContext.bind(client_id=client_id, actor_id=_actor_id(ctx)):
            client = self.load_client(client_id, expected_version)
            before = {t.id for t in client.transactions}
            updated = self._run(
                "create_client_advance",
                lambda: ledger.create_client_advance(client, data, ctx),
                ctx,
            )
            txn = next(t for t in updated.transactions if t.id not in before)
            logger.info(
                "client_advance_created",
                extra={"entry_id": txn.id, "amount": txn.amount, "version": updated.version},
            )
            return updated

    def update_client_advance(
        self,
        client_id: str,
        transaction_id: str,
        data: TransactionInput,
        reason: str | None,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Client:
        with LogContext.bind(
            client_id=client_id, actor_id=_actor_id(ctx), entry_id=transaction_id
        ):
            client = self.load_client(client_id, expected_version)
            updated = self._run(
                "update_client_advance",
                lambda: ledger.update_client_advance(client, transaction_id, data, reason, ctx),
                ctx,
            )
            if updated is client:
                return updated
            logger.info("client_advance_updated", extra={"version": updated.version})
            return updated

    def delete_client_advance(
        self,
        client_id: str,
        transaction_id: str,
        reason: str | None,
        ctx: CommandContext,
        expected_version: int | None = None,
    ) -> Client:
        with LogContext.bind(
            client_id=client_id, actor_id=_actor_id(ctx), entry_id=transaction_id
        ):
            client = self.load_client(client_id, expected_version)
            updated = self._run(
                "delete_client_advance",
                lambda: ledger.delete_client_advance(client, transaction_id, reason, ctx),
                ctx,
            )
            logger.info("client_advance_deleted", extra={"version": updated.version})
            return updated
