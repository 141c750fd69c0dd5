"""
Module: catering_kernel.db.document_store
Responsibility: The document store the ledger persists aggregates to:
    create, read, whole-document versioned update, list, and snapshot
    subscriptions per collection.
Architecture position: Kernel > DB.  Consumed by the service layer through
    the ``DocumentStore`` interface; the domain never sees it.

Invariants enforced:
    - VERSIONED_WRITES: every stored document has an integer ``version``
      starting at 1.  ``update`` with ``expected_version`` succeeds only if
      the stored version still equals it, and bumps it by one.
    - Returned documents are copies; mutating one never changes the store.
    - There is no delete.  Ledger soft-delete is a field update.

Failure modes:
    - DocumentNotFoundError on update of an unknown id.
    - ConflictError on a stale ``expected_version`` or a duplicate create.
    - Store I/O errors (SQLAlchemy) propagate untouched; nothing is retried.

Subscriptions:
    ``subscribe`` calls the callback immediately with the current snapshot
    of the collection and again after every successful write to it.
    Callback exceptions propagate to the writer after the write committed.
"""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from catering_kernel.db.engine import get_session_factory, session_scope
from catering_kernel.db.models import DocumentRecord
from catering_kernel.exceptions import ConflictError, DocumentNotFoundError
from catering_kernel.logging_config import get_logger

logger = get_logger("db.document_store")

Document = dict[str, Any]
SnapshotCallback = Callable[[list[Document]], None]

ID_KEY = "id"
VERSION_KEY = "version"
INITIAL_VERSION = 1


def _body(doc: Document) -> Document:
    return {k: copy.deepcopy(v) for k, v in doc.items() if k not in (ID_KEY, VERSION_KEY)}


def _with_meta(body: Document, document_id: str, version: int) -> Document:
    doc = copy.deepcopy(body)
    doc[ID_KEY] = document_id
    doc[VERSION_KEY] = version
    return doc


class DocumentStore(ABC):
    """
    Abstract document store.

    Implementations provide the five storage primitives; subscription
    bookkeeping is shared here.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[SnapshotCallback]] = {}
        self._subscribers_lock = threading.Lock()

    @abstractmethod
    def create(self, collection: str, doc: Document) -> str:
        """Store a new document and return its id.

        Uses ``doc["id"]`` when present, otherwise mints a uuid4.
        """

    @abstractmethod
    def get(self, collection: str, document_id: str) -> Document | None:
        """Return the document with ``id`` and ``version`` keys, or None."""

    @abstractmethod
    def update(
        self,
        collection: str,
        document_id: str,
        doc: Document,
        expected_version: int | None = None,
    ) -> int:
        """Replace the whole document and return its new version."""

    @abstractmethod
    def list(self, collection: str) -> list[Document]:
        """All documents of a collection, ordered by id."""

    def subscribe(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a snapshot listener.  Returns the unsubscribe function."""
        with self._subscribers_lock:
            self._subscribers.setdefault(collection, []).append(callback)
        callback(self.list(collection))

        def unsubscribe() -> None:
            with self._subscribers_lock:
                listeners = self._subscribers.get(collection, [])
                if callback in listeners:
                    listeners.remove(callback)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        with self._subscribers_lock:
            listeners = list(self._subscribers.get(collection, ()))
        if not listeners:
            return
        snapshot = self.list(collection)
        for listener in listeners:
            listener(copy.deepcopy(snapshot))

    def _conflict(
        self, collection: str, document_id: str, expected: int, actual: int
    ) -> ConflictError:
        logger.warning(
            "document_version_conflict",
            extra={
                "collection": collection,
                "document_id": document_id,
                "expected_version": expected,
                "actual_version": actual,
            },
        )
        return ConflictError(collection, document_id, expected, actual)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed store.  Compare-and-set runs under a lock."""

    def __init__(self) -> None:
        super().__init__()
        self._collections: dict[str, dict[str, tuple[int, Document]]] = {}
        self._lock = threading.RLock()

    def create(self, collection: str, doc: Document) -> str:
        document_id = str(doc.get(ID_KEY) or uuid4())
        with self._lock:
            docs = self._collections.setdefault(collection, {})
            if document_id in docs:
                raise self._conflict(collection, document_id, 0, docs[document_id][0])
            docs[document_id] = (INITIAL_VERSION, _body(doc))
        logger.debug(
            "document_created",
            extra={"collection": collection, "document_id": document_id},
        )
        self._notify(collection)
        return document_id

    def get(self, collection: str, document_id: str) -> Document | None:
        with self._lock:
            stored = self._collections.get(collection, {}).get(document_id)
            if stored is None:
                return None
            version, body = stored
            return _with_meta(body, document_id, version)

    def update(
        self,
        collection: str,
        document_id: str,
        doc: Document,
        expected_version: int | None = None,
    ) -> int:
        with self._lock:
            docs = self._collections.get(collection, {})
            if document_id not in docs:
                raise DocumentNotFoundError(collection, document_id)
            current, _ = docs[document_id]
            if expected_version is not None and expected_version != current:
                raise self._conflict(collection, document_id, expected_version, current)
            new_version = current + 1
            docs[document_id] = (new_version, _body(doc))
        logger.debug(
            "document_updated",
            extra={
                "collection": collection,
                "document_id": document_id,
                "version": new_version,
            },
        )
        self._notify(collection)
        return new_version

    def list(self, collection: str) -> list[Document]:
        with self._lock:
            docs = self._collections.get(collection, {})
            return [
                _with_meta(body, document_id, version)
                for document_id, (version, body) in sorted(docs.items())
            ]


class SqlDocumentStore(DocumentStore):
    """
    SQLAlchemy-backed store over the ``documents`` table.

    Compare-and-set is a single ``UPDATE ... WHERE version = :expected``;
    a zero row count means the document is missing or was written since it
    was read.
    """

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        super().__init__()
        self._session_factory = session_factory or get_session_factory()

    def create(self, collection: str, doc: Document) -> str:
        document_id = str(doc.get(ID_KEY) or uuid4())
        with session_scope(self._session_factory) as session:
            existing = session.get(DocumentRecord, (collection, document_id))
            if existing is not None:
                raise self._conflict(collection, document_id, 0, existing.version)
            session.add(
                DocumentRecord(
                    collection=collection,
                    id=document_id,
                    body=_body(doc),
                    version=INITIAL_VERSION,
                )
            )
        logger.debug(
            "document_created",
            extra={"collection": collection, "document_id": document_id},
        )
        self._notify(collection)
        return document_id

    def get(self, collection: str, document_id: str) -> Document | None:
        with session_scope(self._session_factory) as session:
            record = session.get(DocumentRecord, (collection, document_id))
            if record is None:
                return None
            return _with_meta(record.body, record.id, record.version)

    def update(
        self,
        collection: str,
        document_id: str,
        doc: Document,
        expected_version: int | None = None,
    ) -> int:
        with session_scope(self._session_factory) as session:
            stmt = (
                update(DocumentRecord)
                .where(
                    DocumentRecord.collection == collection,
                    DocumentRecord.id == document_id,
                )
                .values(body=_body(doc), version=DocumentRecord.version + 1)
            )
            if expected_version is not None:
                stmt = stmt.where(DocumentRecord.version == expected_version)
            result = session.execute(stmt.execution_options(synchronize_session=False))

            if result.rowcount == 0:
                current = session.execute(
                    select(DocumentRecord.version).where(
                        DocumentRecord.collection == collection,
                        DocumentRecord.id == document_id,
                    )
                ).scalar_one_or_none()
                if current is None:
                    raise DocumentNotFoundError(collection, document_id)
                raise self._conflict(collection, document_id, expected_version, current)

            new_version = session.execute(
                select(DocumentRecord.version).where(
                    DocumentRecord.collection == collection,
                    DocumentRecord.id == document_id,
                )
            ).scalar_one()
        logger.debug(
            "document_updated",
            extra={
                "collection": collection,
                "document_id": document_id,
                "version": new_version,
            },
        )
        self._notify(collection)
        return new_version

    def list(self, collection: str) -> list[Document]:
        with session_scope(self._session_factory) as session:
            records = session.execute(
                select(DocumentRecord)
                .where(DocumentRecord.collection == collection)
                .order_by(DocumentRecord.id)
            ).scalars().all()
            return [_with_meta(r.body, r.id, r.version) for r in records]
