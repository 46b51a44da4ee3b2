"""Resolve the repository and commit of a working directory using git."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

from .config import config
from .exceptions import SetupError
from .models import RevisionRef

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Repo:
    """A repository checkout at a specific commit."""

    root_dir: Path
    uri: str
    commit_id: str

    def revision(self) -> RevisionRef:
        return RevisionRef.for_commit(self.uri, self.commit_id)


def _git(args: list[str], cwd: Path) -> str:
    try:
        completed = subprocess.run(
            ["git", "-C", cwd.as_posix(), *args],
            check=False,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as e:
        raise SetupError("git executable not found") from e

    if completed.returncode != 0:
        detail = completed.stderr.strip() or f"exit status {completed.returncode}"
        raise SetupError(f"git {' '.join(args)} failed: {detail}")
    return completed.stdout.strip()


def normalize_repo_uri(remote_url: str) -> str:
    """Turn a git remote URL into a repository URI.

    Examples:
        >>> normalize_repo_uri("git@github.com:owner/name.git")
        'github.com/owner/name'
        >>> normalize_repo_uri("https://github.com/owner/name")
        'github.com/owner/name'
    """
    value = (remote_url or "").strip()
    if not value:
        return value

    # scp-like SSH form (`git@host:owner/name.git`)
    if "://" not in value and ":" in value.split("/", 1)[0]:
        host, _, path = value.partition(":")
        host = host.rsplit("@", 1)[-1]
    else:
        parsed = urlparse(value if "://" in value else f"https://{value}")
        host = parsed.hostname or ""
        path = parsed.path

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[:-4]
    return f"{host}/{path}" if host else path


def open_repo(path: Path | str = ".") -> Repo:
    """Resolve the repository containing ``path``.

    The repository URI comes from ``BUILDSYNC_REPO_URI`` when set, else from
    the ``origin`` remote.

    Raises:
        SetupError: If ``path`` is not inside a git checkout with a commit,
            or no repository URI can be determined
    """
    cwd = Path(path).resolve()
    root_dir = Path(_git(["rev-parse", "--show-toplevel"], cwd))
    commit_id = _git(["rev-parse", "HEAD"], cwd)

    uri = config.repo_uri
    if not uri:
        try:
            uri = normalize_repo_uri(_git(["config", "--get", "remote.origin.url"], cwd))
        except SetupError:
            uri = ""
    if not uri:
        raise SetupError(
            f"Cannot determine repository URI for {root_dir}: "
            "add an 'origin' remote or set BUILDSYNC_REPO_URI"
        )

    logger.debug(f"Resolved repository {uri} at commit {commit_id} ({root_dir})")
    return Repo(root_dir=root_dir, uri=uri, commit_id=commit_id)
