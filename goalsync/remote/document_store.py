"""Remote document store addressed as ``{collection}/{userId}/{subcollection}/{documentId}``."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple, runtime_checkable

from sqlalchemy import Engine, select

from ..db.base import Base
from ..db.models import RemoteDocumentModel
from ..db.session import build_engine, get_engine, make_session_factory, session_scope

logger = logging.getLogger(__name__)


@runtime_checkable
class RemoteDocumentStore(Protocol):
    async def upsert(
        self, path: str, data: Mapping[str, Any], *, merge: bool = True
    ) -> Dict[str, Any]:  # pragma: no cover - protocol definition
        ...

    async def list_documents(self, prefix: str) -> List[Dict[str, Any]]:  # pragma: no cover - protocol definition
        ...


def _segment(value: str, label: str) -> str:
    trimmed = value.strip() if isinstance(value, str) else ""
    if not trimmed or "/" in trimmed:
        raise ValueError(f"Invalid {label} for a remote document path: {value!r}")
    return trimmed


def collection_path(collection: str, user_id: str, subcollection: str) -> str:
    return "/".join(
        (
            _segment(collection, "collection"),
            _segment(user_id, "user id"),
            _segment(subcollection, "subcollection"),
        )
    )


def document_path(collection: str, user_id: str, subcollection: str, document_id: str) -> str:
    return f"{collection_path(collection, user_id, subcollection)}/{_segment(document_id, 'document id')}"


def split_document_path(path: str) -> Tuple[str, str, str, str]:
    parts = path.split("/")
    if len(parts) != 4 or not all(parts):
        raise ValueError(f"Remote document path must have four segments: {path!r}")
    return parts[0], parts[1], parts[2], parts[3]


def split_collection_path(prefix: str) -> Tuple[str, str, str]:
    parts = prefix.strip("/").split("/")
    if len(parts) != 3 or not all(parts):
        raise ValueError(f"Remote collection path must have three segments: {prefix!r}")
    return parts[0], parts[1], parts[2]


class SqlDocumentStore:
    """Document store persisted through SQLAlchemy; one row per document path."""

    def __init__(self, engine: Optional[Engine] = None, *, create_schema: bool = True) -> None:
        self._engine = engine or get_engine()
        self._factory = make_session_factory(self._engine)
        if create_schema:
            Base.metadata.create_all(self._engine)

    @classmethod
    def from_url(cls, database_url: str) -> "SqlDocumentStore":
        return cls(build_engine(database_url))

    @property
    def engine(self) -> Engine:
        return self._engine

    def _upsert_sync(self, path: str, data: Mapping[str, Any], merge: bool) -> Dict[str, Any]:
        collection, user_id, subcollection, document_id = split_document_path(path)
        with session_scope(self._factory) as session:
            model = session.execute(
                select(RemoteDocumentModel).where(RemoteDocumentModel.path == path)
            ).scalar_one_or_none()
            if model is None:
                model = RemoteDocumentModel(
                    path=path,
                    collection=collection,
                    user_id=user_id,
                    subcollection=subcollection,
                    document_id=document_id,
                    data=dict(data),
                )
                session.add(model)
            else:
                payload = dict(model.data or {}) if merge else {}
                payload.update(data)
                model.data = payload
            return dict(model.data)

    def _list_sync(self, prefix: str) -> List[Dict[str, Any]]:
        collection, user_id, subcollection = split_collection_path(prefix)
        with session_scope(self._factory, commit=False) as session:
            rows = session.execute(
                select(RemoteDocumentModel)
                .where(
                    RemoteDocumentModel.collection == collection,
                    RemoteDocumentModel.user_id == user_id,
                    RemoteDocumentModel.subcollection == subcollection,
                )
                .order_by(RemoteDocumentModel.document_id)
            ).scalars()
            return [dict(row.data or {}) for row in rows]

    async def upsert(self, path: str, data: Mapping[str, Any], *, merge: bool = True) -> Dict[str, Any]:
        return await asyncio.to_thread(self._upsert_sync, path, data, merge)

    async def list_documents(self, prefix: str) -> List[Dict[str, Any]]:
        return await asyncio.to_thread(self._list_sync, prefix)

    def dispose(self) -> None:
        self._engine.dispose()


__all__ = [
    "RemoteDocumentStore",
    "SqlDocumentStore",
    "collection_path",
    "document_path",
    "split_collection_path",
    "split_document_path",
]
