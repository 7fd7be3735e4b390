"""Error taxonomy shared by the storage, sync, migration and profile layers."""

from __future__ import annotations

from typing import List, Literal, Optional

StorageOperation = Literal["read", "write", "delete"]
SyncOperation = Literal["push", "pull"]
MigrationStage = Literal["copy", "validate", "cleanup", "rollback"]

_READABLE_STORAGE_MESSAGES = {
    "read": "Unable to load your data. Please try again.",
    "write": "Unable to save your changes. Please try again.",
    "delete": "Unable to delete the data. Please try again.",
}


class StorageFailure(Exception):
    """A local persistence operation failed or returned undecodable data."""

    def __init__(
        self,
        message: str,
        operation: StorageOperation,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.key = key
        self.cause = cause

    def readable_message(self) -> str:
        return _READABLE_STORAGE_MESSAGES.get(
            self.operation,
            "An error occurred while managing your data. Please try again.",
        )

    def __str__(self) -> str:
        parts = [f"{self.message} (operation={self.operation}"]
        if self.key is not None:
            parts.append(f", key={self.key}")
        parts.append(")")
        if self.cause is not None:
            parts.append(f": {self.cause}")
        return "".join(parts)


class RemoteSyncFailure(Exception):
    """Push or pull against the remote store failed or timed out."""

    def __init__(self, reason: str, operation: SyncOperation, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"{operation} failed: {reason}")
        self.reason = reason
        self.operation = operation
        self.cause = cause


class MigrationFailure(Exception):
    """Legacy-to-partitioned restructuring did not complete."""

    def __init__(self, message: str, stage: MigrationStage, key: Optional[str] = None) -> None:
        super().__init__(message)
        self.stage = stage
        self.key = key


class ProfileIntegrityFailure(Exception):
    """The persisted profile is missing fields or carries unparseable values."""

    def __init__(self, issues: List[str]) -> None:
        super().__init__("Profile integrity check failed: " + "; ".join(issues))
        self.issues = list(issues)


__all__ = [
    "MigrationFailure",
    "MigrationStage",
    "ProfileIntegrityFailure",
    "RemoteSyncFailure",
    "StorageFailure",
    "StorageOperation",
    "SyncOperation",
]
