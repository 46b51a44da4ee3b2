"""Exception hierarchy for buildsync."""


class BuildSyncError(Exception):
    """Base exception for all buildsync errors."""


class ConfigError(BuildSyncError):
    """Raised when configuration is missing or invalid."""


class SetupError(BuildSyncError):
    """Raised when a sync operation cannot start.

    Covers revision resolution and local store initialization failures.
    """


class APIError(BuildSyncError):
    """Raised when the build data service returns an error."""


class AuthenticationError(APIError):
    """Raised when the API key is rejected (401)."""


class PermissionDeniedError(APIError):
    """Raised when access to a resource is forbidden (403)."""


class NotFoundError(APIError):
    """Raised when a resource does not exist (404)."""


class RateLimitError(APIError):
    """Raised when the service rate-limits the client (429)."""


class InvalidResponseError(APIError):
    """Raised when the service returns a body that cannot be parsed."""


class NetworkError(APIError):
    """Raised on connection failures and timeouts."""


class TransferError(BuildSyncError):
    """Raised when copying one file to or from the service fails."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class StorageError(BuildSyncError):
    """Raised when the local build data store cannot be written or read."""


class UnsafePathError(StorageError, ValueError):
    """Raised when a relative path would escape the store root."""
