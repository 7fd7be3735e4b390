"""ORM models backing the remote document store."""

from __future__ import annotations

import uuid

from sqlalchemy import Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


class RemoteDocumentModel(TimestampMixin, Base):
    __tablename__ = "remote_documents"
    __table_args__ = (
        UniqueConstraint("path", name="uq_remote_documents_path"),
        Index("ix_remote_documents_owner", "collection", "user_id", "subcollection"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    path: Mapped[str] = mapped_column(String(512), nullable=False)
    collection: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    subcollection: Mapped[str] = mapped_column(String(64), nullable=False)
    document_id: Mapped[str] = mapped_column(String(128), nullable=False)
    data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)


__all__ = ["RemoteDocumentModel"]
