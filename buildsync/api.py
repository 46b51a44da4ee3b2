"""API client for the remote build data service."""

from __future__ import annotations

import random
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import IO, Any
from urllib.parse import quote

import httpx

from .config import config, validate_api_url
from .exceptions import (
    APIError,
    AuthenticationError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    TransferError,
)
from .models import FileRecord, RevisionRef
from .utils import DEFAULT_CHUNK_SIZE, DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY


class BuildDataClient:
    """Client for listing, fetching and storing build data files.

    Routes (relative to ``api_url``)::

        GET  repos/{uri}@{rev}/.build-data/         list files
        GET  repos/{uri}@{rev}/.build-data/{path}   fetch one file
        PUT  repos/{uri}@{rev}/.build-data/{path}   store one file
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """Initialize the build data client.

        Args:
            api_key: Optional API key (uses config if not provided)
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
            transport: Optional httpx transport, mainly for tests
        """
        self.api_key = api_key or config.api_key
        self.api_url = validate_api_url(api_url) if api_url else config.api_url
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.transport = transport

        self._client: httpx.Client | None = None

    def __enter__(self) -> "BuildDataClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _new_client(self) -> httpx.Client:
        return httpx.Client(
            headers=self._headers(),
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            transport=self.transport,
        )

    def _get_client(self) -> httpx.Client:
        """Get or create the shared httpx client used for JSON requests."""
        if self._client is None or self._client.is_closed:
            self._client = self._new_client()
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    # =========================
    # Routing
    # =========================

    def _build_data_endpoint(self, ref: RevisionRef, path: str = "") -> str:
        endpoint = f"repos/{quote(ref.revspec, safe='/@=')}/.build-data/"
        if path:
            endpoint += quote(path.lstrip("/"), safe="/")
        return endpoint

    def _url(self, endpoint: str) -> str:
        return f"{self.api_url}/{endpoint.lstrip('/')}"

    def build_data_url(self, ref: RevisionRef, path: str) -> str:
        """Return the absolute URL of one build data file."""
        return self._url(self._build_data_endpoint(ref, path))

    # =========================
    # Request handling
    # =========================

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False
        return isinstance(exception, (NetworkError, RateLimitError))

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # Jitter of +/- 25% of base delay
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Translate an HTTP error and decide whether to retry.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code == 401:
            return (AuthenticationError("Invalid API key or unauthorized access"), False)
        elif status_code == 403:
            return (PermissionDeniedError("Access forbidden - check your permissions"), False)
        elif status_code == 404:
            return (NotFoundError("Resource not found"), False)
        elif status_code == 429:
            error = RateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = (
                        error_data.get("message")
                        or error_data.get("error")
                        or error_data.get("Error")
                    )
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except (ValueError, httpx.ResponseNotRead):
            # Body is not JSON; keep the status-based message
            pass

        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (APIError(error_msg), should_retry)

    def _retry_delay_for(self, error: Exception, response: httpx.Response, attempt: int) -> float:
        if isinstance(error, RateLimitError):
            retry_after = response.headers.get("Retry-After")
            if retry_after and retry_after.isdigit():
                return float(retry_after)
        return self._calculate_retry_delay(attempt)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for an empty body)

        Raises:
            APIError: If the request fails after all retries
        """
        url = self._url(endpoint)
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()

                if not response.content:
                    return {}
                content_type = response.headers.get("Content-Type", "")
                if "json" not in content_type:
                    raise InvalidResponseError(
                        f"Unexpected response type: {content_type or 'unknown'}"
                    )
                try:
                    return response.json()
                except ValueError as e:
                    raise InvalidResponseError("Invalid JSON response from server") from e

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error
                if should_retry:
                    time.sleep(self._retry_delay_for(error, e.response, attempt))
                    continue
                raise error from e
            except httpx.RequestError as e:
                error = NetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    time.sleep(self._calculate_retry_delay(attempt))
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise APIError("Request failed after all retry attempts")

    # =========================
    # Build data operations
    # =========================

    def list_build_data(self, ref: RevisionRef) -> list[FileRecord] | None:
        """List the build data files the service holds for a revision.

        Args:
            ref: Revision to list

        Returns:
            Records sorted by path, or None if the service has no build data
            for this revision

        Raises:
            APIError: On any failure other than "not found"
        """
        try:
            data = self._request("GET", self._build_data_endpoint(ref))
        except NotFoundError:
            return None

        if isinstance(data, dict):
            # Some deployments wrap the listing
            data = data.get("Files") or data.get("files") or []
        if not isinstance(data, list):
            raise InvalidResponseError(f"Unexpected build data listing: {type(data).__name__}")

        records: dict[tuple[str, str], FileRecord] = {}
        for entry in data:
            if not isinstance(entry, dict):
                raise InvalidResponseError(f"Unexpected build data entry: {entry!r}")
            try:
                record = FileRecord.from_dict(entry, commit_id=ref.commit_id)
            except ValueError as e:
                raise InvalidResponseError(str(e)) from e
            records[record.key] = record
        return sorted(records.values(), key=lambda r: r.key)

    @contextmanager
    def fetch(self, ref: RevisionRef, path: str) -> Iterator[httpx.Response]:
        """Open a streaming download of one build data file.

        A dedicated connection is opened per call, so a failing transfer
        does not affect others running in parallel.

        Yields:
            The streaming response; read it with ``iter_bytes()``

        Raises:
            TransferError: If the service rejects the request
            NetworkError: If the connection fails
        """
        url = self.build_data_url(ref, path)
        with self._new_client() as client:
            try:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    yield response
            except httpx.HTTPStatusError as e:
                raise TransferError(
                    path, f"download failed with status {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                raise NetworkError(f"Network error during download of {path}: {e}") from e

    def download_to(
        self,
        ref: RevisionRef,
        path: str,
        dest: IO[bytes],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> int:
        """Stream one build data file into a writable binary file.

        Returns:
            Number of bytes written
        """
        written = 0
        with self.fetch(ref, path) as response:
            for chunk in response.iter_bytes(chunk_size=chunk_size):
                if chunk:
                    dest.write(chunk)
                    written += len(chunk)
        return written

    def store(self, ref: RevisionRef, path: str, stream: IO[bytes]) -> None:
        """Upload one build data file.

        Args:
            ref: Revision the file belongs to
            path: Relative build data path
            stream: Readable binary stream with the file contents

        Raises:
            TransferError: If the service rejects the upload
            NetworkError: If the connection fails
        """
        url = self.build_data_url(ref, path)

        def chunks() -> Iterator[bytes]:
            while True:
                chunk = stream.read(DEFAULT_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk

        with self._new_client() as client:
            try:
                response = client.put(
                    url,
                    content=chunks(),
                    headers={"Content-Type": "application/octet-stream"},
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise TransferError(
                    path, f"upload failed with status {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                raise NetworkError(f"Network error during upload of {path}: {e}") from e
