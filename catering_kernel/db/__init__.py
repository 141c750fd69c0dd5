"""
Persistence layer: SQLAlchemy engine, the ``documents`` table, the
document store implementations and the aggregate <-> document adapter.
"""

from catering_kernel.db.base import Base, TrackedBase
from catering_kernel.db.document_store import (
    DocumentStore,
    InMemoryDocumentStore,
    SqlDocumentStore,
)
from catering_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from catering_kernel.db.models import DocumentRecord

__all__ = [
    "Base",
    "TrackedBase",
    "DocumentRecord",
    "DocumentStore",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "create_tables",
    "drop_tables",
    "get_engine",
    "get_session_factory",
    "init_engine_from_url",
    "reset_engine",
    "session_scope",
]
