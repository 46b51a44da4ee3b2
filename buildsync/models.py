"""Data models for build data synchronization."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from .utils import parse_iso_timestamp


@dataclass(frozen=True)
class RevisionRef:
    """Identifies one immutable snapshot of a repository's build data."""

    repo_uri: str
    """Repository identity (e.g. "github.com/owner/name")"""

    rev: str
    """Revision as requested by the user (branch, tag or commit)"""

    commit_id: str
    """Resolved commit ID the build data belongs to"""

    @classmethod
    def for_commit(cls, repo_uri: str, commit_id: str) -> "RevisionRef":
        """Create a ref whose revision is the commit ID itself."""
        return cls(repo_uri=repo_uri, rev=commit_id, commit_id=commit_id)

    @property
    def revspec(self) -> str:
        """Route segment for this revision, e.g. ``uri@rev===commit``."""
        if self.rev == self.commit_id:
            return f"{self.repo_uri}@{self.commit_id}"
        return f"{self.repo_uri}@{self.rev}==={self.commit_id}"


@dataclass(frozen=True)
class FileRecord:
    """One build data file, as listed at a point in time."""

    path: str
    """Path relative to the commit's build data directory (forward slashes)"""

    commit_id: str
    """Commit ID of the revision owning this file"""

    size: int = 0
    """File size in bytes"""

    mod_time: Optional[datetime] = None
    """Last modification time"""

    @property
    def key(self) -> tuple[str, str]:
        """(commit_id, path) pair addressing this file's content."""
        return (self.commit_id, self.path)

    @classmethod
    def from_dict(cls, data: dict[str, Any], commit_id: str = "") -> "FileRecord":
        """Create a FileRecord from a build data listing entry.

        Accepts both the service's capitalized keys (``Path``, ``CommitID``,
        ``Size``, ``ModTime``) and lower-case variants.
        """
        path = data.get("Path") or data.get("path")
        if not path:
            raise ValueError(f"Build data entry has no path: {data!r}")

        return cls(
            path=str(path).lstrip("/"),
            commit_id=str(data.get("CommitID") or data.get("commit_id") or commit_id),
            size=int(data.get("Size") or data.get("size") or 0),
            mod_time=parse_iso_timestamp(data.get("ModTime") or data.get("mod_time")),
        )


@dataclass(frozen=True)
class FileInfo:
    """Result of a successful stat on a local build data file."""

    size: int
    mod_time: datetime


class TransferDirection(Enum):
    """Direction of a single file transfer."""

    UPLOAD = "upload"
    DOWNLOAD = "download"


@dataclass(frozen=True)
class TransferTask:
    """Unit of work moving one file between the local store and the service."""

    record: FileRecord
    direction: TransferDirection
    local_path: Path
    ref: RevisionRef


class SyncOutcome(Enum):
    """Terminal state of a pull or push."""

    EMPTY = "empty"
    LISTED = "listed"
    SYNCED = "synced"
    FAILED = "failed"


@dataclass
class SyncResult:
    """Outcome of a pull or push operation."""

    outcome: SyncOutcome
    files: list[FileRecord] = field(default_factory=list)
    """Files considered by the operation"""

    transferred: int = 0
    """Number of files copied"""

    skipped: int = 0
    """Number of files skipped because they vanished before transfer"""

    error: Optional[BaseException] = None
    """First transfer error when the outcome is FAILED"""

    @property
    def ok(self) -> bool:
        return self.outcome is not SyncOutcome.FAILED
