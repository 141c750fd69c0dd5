"""
Module: catering_kernel.db.models
Responsibility: ORM model for stored documents.  One row per document; the
    aggregate body is a JSON column and ``version`` is the optimistic
    concurrency token.
Architecture position: Kernel > DB.  Imported by ``document_store`` and by
    ``engine.create_tables`` so the table is registered on ``Base.metadata``.
"""

from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from catering_kernel.db.base import TrackedBase


class DocumentRecord(TrackedBase):
    """A whole document in a named collection.

    ``body`` never contains the ``id`` or ``version`` keys; the store adds
    them back on read.
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_collection", "collection"),
    )

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    body: Mapped[dict[str, Any]] = mapped_column(nullable=False)
    version: Mapped[int] = mapped_column(nullable=False, default=1)

    def __repr__(self) -> str:
        return f"<DocumentRecord {self.collection}/{self.id} v{self.version}>"
