"""Shared fixtures for buildsync tests."""

from pathlib import Path

import httpx
import pytest

from buildsync.api import BuildDataClient
from buildsync.models import RevisionRef
from buildsync.store import RepositoryStore

from .fakes import API_URL, COMMIT, REPO_URI, FakeBuildDataServer


@pytest.fixture
def server():
    """Provide a fake build data service."""
    return FakeBuildDataServer()


@pytest.fixture
def client(server):
    """Provide a client talking to the fake service."""
    client = BuildDataClient(
        api_key="test_key",
        api_url=API_URL,
        retry_delay=0,
        transport=httpx.MockTransport(server.handler),
    )
    yield client
    client.close()


@pytest.fixture
def ref():
    """Provide the revision used throughout the tests."""
    return RevisionRef.for_commit(REPO_URI, COMMIT)


@pytest.fixture
def repo_root(tmp_path):
    """Provide an empty repository checkout directory."""
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def store(repo_root):
    """Provide a local build data store in an empty checkout."""
    return RepositoryStore(repo_root)


@pytest.fixture
def write_local():
    """Provide a helper writing a build data file straight into a store."""

    def write(store: RepositoryStore, commit: str, path: str, data: bytes) -> Path:
        file_path = store.address_of(commit, path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_bytes(data)
        return file_path

    return write
