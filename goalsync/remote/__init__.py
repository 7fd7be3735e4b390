"""Remote document store and the sync adapter that talks to it."""

from .document_store import RemoteDocumentStore, SqlDocumentStore, collection_path, document_path
from .sync import Err, Ok, RemoteSyncAdapter, SyncResult, SyncState

__all__ = [
    "Err",
    "Ok",
    "RemoteDocumentStore",
    "RemoteSyncAdapter",
    "SqlDocumentStore",
    "SyncResult",
    "SyncState",
    "collection_path",
    "document_path",
]
