"""buildsync - pull and push build data for a repository revision."""

from .api import BuildDataClient
from .exceptions import (
    APIError,
    AuthenticationError,
    BuildSyncError,
    ConfigError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    SetupError,
    StorageError,
    TransferError,
    UnsafePathError,
)
from .models import FileRecord, RevisionRef, SyncOutcome, SyncResult
from .store import RepositoryStore

__all__ = [
    "BuildDataClient",
    "RepositoryStore",
    "FileRecord",
    "RevisionRef",
    "SyncOutcome",
    "SyncResult",
    "APIError",
    "AuthenticationError",
    "BuildSyncError",
    "ConfigError",
    "InvalidResponseError",
    "NetworkError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "SetupError",
    "StorageError",
    "TransferError",
    "UnsafePathError",
]
