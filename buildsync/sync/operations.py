"""Single-file transfer operations between the local store and the service."""

import logging

from ..api import BuildDataClient
from ..models import FileRecord, RevisionRef, TransferDirection, TransferTask
from ..store import RepositoryStore

logger = logging.getLogger(__name__)


class SyncOperations:
    """Copies one build data file in either direction."""

    def __init__(self, client: BuildDataClient, store: RepositoryStore):
        """Initialize sync operations.

        Args:
            client: Build data API client
            store: Local build data store
        """
        self.client = client
        self.store = store

    def task_for(
        self, record: FileRecord, ref: RevisionRef, direction: TransferDirection
    ) -> TransferTask:
        """Build the transfer task for one record.

        The task's revision is the record's own commit, which may differ from
        ``ref`` when the listing spans several commits.
        """
        file_ref = RevisionRef(
            repo_uri=ref.repo_uri,
            rev=record.commit_id if record.commit_id != ref.commit_id else ref.rev,
            commit_id=record.commit_id,
        )
        return TransferTask(
            record=record,
            direction=direction,
            local_path=self.store.address_of(record.commit_id, record.path),
            ref=file_ref,
        )

    def download(self, task: TransferTask) -> bool:
        """Fetch a remote file into the local store, replacing any existing copy.

        The existing copy is only replaced once the whole file has been
        received; a failed fetch leaves it as it was.

        Returns:
            True once the file has been saved
        """
        path = task.local_path
        kb = task.record.size / 1024
        logger.debug(f"Fetching {path} ({kb:.1f}kb)")

        self.store.ensure_container_for(path)
        with self.store.create(path) as f:
            written = self.client.download_to(task.ref, task.record.path, f)

        logger.debug(f"Saved {path} ({written / 1024:.1f}kb)")
        return True

    def upload(self, task: TransferTask) -> bool:
        """Upload a local file to the service.

        Returns:
            True if the file was uploaded, False if it no longer exists
            locally and was skipped
        """
        path = task.local_path
        info = self.store.stat_or_absent(path)
        f = self.store.open_or_absent(path) if info is not None else None
        if f is None:
            logger.debug(f"upload: skipping nonexistent file {path}")
            return False

        kb = info.size / 1024
        logger.debug(f"Uploading {path} ({kb:.1f}kb)")

        with f:
            self.client.store(task.ref, task.record.path, f)

        logger.debug(f"Uploaded {path} ({kb:.1f}kb)")
        return True

    def run(self, task: TransferTask) -> bool:
        """Execute a task in its direction."""
        if task.direction is TransferDirection.DOWNLOAD:
            return self.download(task)
        return self.upload(task)
