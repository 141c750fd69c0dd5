"""
BaseService -- shared load / commit machinery for kernel services.

Responsibility:
    Loads Event and Client aggregates from the document store, runs a pure
    domain command against them, and executes the command's side effects:
    a versioned whole-document write for PERSIST, a new ``auditLogs``
    record for AUDIT_LOG.

Architecture position:
    Kernel > Services -- imperative shell around the pure domain.  Concrete
    services (ledger, lifecycle, client) extend this class.

Invariants enforced:
    - VERSIONED_WRITES: a write carries the version the aggregate was read
      at.  A caller-supplied ``expected_version`` that differs from the
      stored one is rejected before the command runs.
    - Side effects run only after the command returned; a rejected command
      writes nothing.

Failure modes:
    - DocumentNotFoundError when the aggregate id is unknown.
    - ConflictError on stale versions.
    - Domain errors are logged as ``command_rejected`` and re-raised.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Callable
from dataclasses import replace
from typing import TypeVar

from catering_kernel.db.document_store import INITIAL_VERSION, DocumentStore
from catering_kernel.db.serialization import (
    client_from_document,
    client_to_document,
    event_from_document,
    event_to_document,
)
from catering_kernel.domain.commands import (
    CLIENTS_COLLECTION,
    EVENTS_COLLECTION,
    CommandContext,
    CommandResult,
)
from catering_kernel.domain.models import Client, Event
from catering_kernel.exceptions import CateringLedgerError, ConflictError, DocumentNotFoundError
from catering_kernel.logging_config import get_logger

logger = get_logger("services.base")

A = TypeVar("A", Event, Client)


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Contract:
        Receives a ``DocumentStore``; every public method of a subclass is
        one load -> command -> commit cycle.
    """

    def __init__(self, store: DocumentStore):
        self._store = store

    # -- loading -----------------------------------------------------------

    def load_event(self, event_id: str, expected_version: int | None = None) -> Event:
        doc = self._store.get(EVENTS_COLLECTION, event_id)
        if doc is None:
            raise DocumentNotFoundError(EVENTS_COLLECTION, event_id)
        event = event_from_document(doc)
        self._check_version(EVENTS_COLLECTION, event_id, expected_version, event.version)
        return event

    def load_client(self, client_id: str, expected_version: int | None = None) -> Client:
        doc = self._store.get(CLIENTS_COLLECTION, client_id)
        if doc is None:
            raise DocumentNotFoundError(CLIENTS_COLLECTION, client_id)
        client = client_from_document(doc)
        self._check_version(CLIENTS_COLLECTION, client_id, expected_version, client.version)
        return client

    @staticmethod
    def _check_version(
        collection: str, document_id: str, expected: int | None, actual: int
    ) -> None:
        if expected is not None and expected != actual:
            logger.warning(
                "document_version_conflict",
                extra={
                    "collection": collection,
                    "document_id": document_id,
                    "expected_version": expected,
                    "actual_version": actual,
                },
            )
            raise ConflictError(collection, document_id, expected, actual)

    # -- running -----------------------------------------------------------

    def _run(
        self,
        operation: str,
        command: Callable[[], CommandResult[A]],
        ctx: CommandContext,
    ) -> A:
        """Run ``command`` and commit its effects.  Returns the stored aggregate."""
        try:
            result = command()
        except CateringLedgerError as exc:
            logger.warning(
                "command_rejected",
                extra={"operation": operation, "error_code": exc.code, "error": str(exc)},
            )
            raise
        if not result.effects:
            logger.info("command_unchanged", extra={"operation": operation})
        return self._commit(result, ctx)

    def _commit(self, result: CommandResult[A], ctx: CommandContext) -> A:
        aggregate = result.aggregate
        for effect in result.persist_effects:
            aggregate = self._persist(aggregate, effect.collection)
        for effect in result.audit_log_effects:
            record = dict(effect.payload)
            record["timestamp"] = ctx.clock.now().isoformat()
            record["entityId"] = effect.document_id
            self._store.create(effect.collection, record)
        return aggregate

    def _persist(self, aggregate: A, collection: str) -> A:
        if isinstance(aggregate, Event):
            doc = event_to_document(aggregate)
        else:
            doc = client_to_document(aggregate)

        if aggregate.version == 0:
            self._store.create(collection, doc)
            new_version = INITIAL_VERSION
        else:
            new_version = self._store.update(
                collection, aggregate.id, doc, expected_version=aggregate.version
            )
        return replace(aggregate, version=new_version)
