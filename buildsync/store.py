"""Local commit-addressed build data store.

Files live at ``<repo_root>/.srclib-cache/<commit_id>/<path>``. This layout
is shared by push and pull, so a file pushed from one checkout is pulled to
the same relative location in another.
"""

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import IO, Optional

from .exceptions import SetupError, StorageError, UnsafePathError
from .models import FileInfo, FileRecord

logger = logging.getLogger(__name__)

CACHE_DIR_NAME = ".srclib-cache"
PARTIAL_SUFFIX = ".part"


class RepositoryStore:
    """Build data store rooted in a repository's cache directory."""

    def __init__(self, repo_root: Path, cache_dir: str = CACHE_DIR_NAME):
        """Open the store for a repository.

        The store directory is created on the first write, so opening a
        store never modifies the checkout.

        Args:
            repo_root: Root directory of the repository checkout
            cache_dir: Name of the cache directory under the root

        Raises:
            SetupError: If the repository root is missing or the store path
                exists but is not a directory
        """
        repo_root = Path(repo_root)
        if not repo_root.is_dir():
            raise SetupError(f"Repository root is not a directory: {repo_root}")
        self.root = repo_root / cache_dir
        if self.root.exists() and not self.root.is_dir():
            raise SetupError(f"Build data store is not a directory: {self.root}")

    def __repr__(self) -> str:
        return f"RepositoryStore({str(self.root)!r})"

    def address_of(self, commit_id: str, path: str) -> Path:
        """Return the local path of a build data file.

        Args:
            commit_id: Commit ID owning the file
            path: Relative build data path (forward slashes)

        Raises:
            UnsafePathError: If the path is empty, absolute, or would escape
                the commit directory
        """
        if not commit_id or "/" in commit_id or "\\" in commit_id or commit_id in (".", ".."):
            raise UnsafePathError(f"Invalid commit ID: {commit_id!r}")
        if not path:
            raise UnsafePathError("Build data path must not be empty")

        normalized = path.replace("\\", "/")
        rel = PurePosixPath(normalized)
        if rel.is_absolute() or normalized.startswith("/"):
            raise UnsafePathError(f"Build data path must be relative: {path!r}")
        if any(part == ".." for part in rel.parts):
            raise UnsafePathError(f"Build data path escapes the store: {path!r}")
        if not rel.parts or rel.parts == (".",):
            raise UnsafePathError(f"Build data path has no file name: {path!r}")

        return self.root.joinpath(commit_id, *rel.parts)

    def ensure_container_for(self, file_path: Path) -> None:
        """Create every missing ancestor directory of ``file_path``.

        Tolerates other workers creating the same directories concurrently.

        Raises:
            StorageError: If a directory cannot be created
        """
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create directory {file_path.parent}: {e}") from e

    def open(self, file_path: Path) -> IO[bytes]:
        """Open a stored file for reading. The caller must close it."""
        try:
            return open(file_path, "rb")
        except OSError as e:
            raise StorageError(f"Cannot open {file_path}: {e}") from e

    def open_or_absent(self, file_path: Path) -> Optional[IO[bytes]]:
        """Open a stored file for reading, or return None if it is gone."""
        try:
            return open(file_path, "rb")
        except (FileNotFoundError, NotADirectoryError):
            return None
        except OSError as e:
            raise StorageError(f"Cannot open {file_path}: {e}") from e

    @contextmanager
    def create(self, file_path: Path) -> Iterator[IO[bytes]]:
        """Write a stored file, replacing any existing copy on success.

        Data goes to a temporary file next to ``file_path`` that is moved
        into place when the block exits normally. If the block raises, the
        temporary file is removed and an existing copy is left untouched.

        Raises:
            StorageError: If the file cannot be created or moved into place
        """
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=file_path.parent, prefix=f".{file_path.name}.", suffix=PARTIAL_SUFFIX
            )
        except OSError as e:
            raise StorageError(f"Cannot create {file_path}: {e}") from e

        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "wb") as f:
                yield f
            try:
                os.replace(tmp_path, file_path)
            except OSError as e:
                raise StorageError(f"Cannot create {file_path}: {e}") from e
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

    def stat_or_absent(self, file_path: Path) -> Optional[FileInfo]:
        """Stat a stored file.

        Returns:
            FileInfo, or None if the file does not exist or is not a
            regular file
        """
        try:
            stat = file_path.stat()
        except FileNotFoundError:
            return None
        except NotADirectoryError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot stat {file_path}: {e}") from e

        if not file_path.is_file():
            return None
        return FileInfo(
            size=stat.st_size,
            mod_time=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )

    def list_all(self, commit_id: Optional[str] = None) -> list[FileRecord]:
        """List every regular file in the store.

        The first directory level below the root is the commit ID; the rest
        is the build data path. Unfinished downloads are not listed.

        Args:
            commit_id: Only list files of this commit

        Returns:
            Records sorted by (commit_id, path)
        """
        if not self.root.is_dir():
            return []
        if commit_id is not None:
            commit_dirs = [self.root / commit_id]
        else:
            try:
                commit_dirs = [p for p in self.root.iterdir() if p.is_dir()]
            except OSError as e:
                raise StorageError(f"Cannot list {self.root}: {e}") from e

        records = []
        for commit_dir in commit_dirs:
            if not commit_dir.is_dir():
                continue
            for file_path in commit_dir.rglob("*"):
                if _is_partial(file_path):
                    continue
                info = self.stat_or_absent(file_path)
                if info is None:
                    continue
                records.append(
                    FileRecord(
                        path=file_path.relative_to(commit_dir).as_posix(),
                        commit_id=commit_dir.name,
                        size=info.size,
                        mod_time=info.mod_time,
                    )
                )

        records.sort(key=lambda r: r.key)
        logger.debug(f"Found {len(records)} local build data files in {self.root}")
        return records


def _is_partial(file_path: Path) -> bool:
    """Return True for an unfinished download left by ``create``."""
    return file_path.name.startswith(".") and file_path.name.endswith(PARTIAL_SUFFIX)
