"""Core sync engine for pulling and pushing build data."""

import logging
import threading
import time
from typing import Optional

from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from ..api import BuildDataClient
from ..models import (
    FileRecord,
    RevisionRef,
    SyncOutcome,
    SyncResult,
    TransferDirection,
)
from ..output import OutputFormatter
from ..store import RepositoryStore
from ..utils import DEFAULT_WORKERS, format_size, format_timestamp
from .operations import SyncOperations
from .parallel import ParallelRun

logger = logging.getLogger(__name__)


class SyncEngine:
    """Moves build data between a local store and the build data service."""

    def __init__(
        self,
        client: BuildDataClient,
        store: RepositoryStore,
        output: Optional[OutputFormatter] = None,
        max_workers: int = DEFAULT_WORKERS,
    ):
        """Initialize sync engine.

        Args:
            client: Build data API client
            store: Local build data store
            output: Output formatter for listings and status messages
            max_workers: Maximum number of concurrent transfers (default: 8)
        """
        self.client = client
        self.store = store
        self.output = output or OutputFormatter()
        self.max_workers = max_workers
        self.operations = SyncOperations(client, store)

    def pull(
        self, ref: RevisionRef, list_only: bool = False, show_urls: bool = False
    ) -> SyncResult:
        """Fetch the service's build data for a revision into the local store.

        Args:
            ref: Revision to pull
            list_only: Only print the remote files; transfer nothing
            show_urls: With ``list_only``, also print each file's URL

        Returns:
            SyncResult with outcome EMPTY, LISTED, SYNCED or FAILED

        Raises:
            APIError: If the remote listing fails
        """
        logger.debug(
            f"Listing remote build files for repository {ref.repo_uri!r} "
            f"commit {ref.commit_id!r}..."
        )
        remote_files = self.client.list_build_data(ref)
        if remote_files is None:
            self.output.info("No remote build files found.")
            return SyncResult(SyncOutcome.EMPTY)

        if list_only:
            self.output.info(
                f"# Remote build files for repository {ref.repo_uri!r} commit {ref.commit_id}:"
            )
            for record in remote_files:
                self.output.print(
                    f"{format_size(record.size):>9}   "
                    f"{format_timestamp(record.mod_time)}   {record.path}"
                )
                if show_urls:
                    self.output.print(f" @ {self.client.build_data_url(ref, record.path)}")
            return SyncResult(SyncOutcome.LISTED, files=remote_files)

        return self._transfer(remote_files, ref, TransferDirection.DOWNLOAD)

    def push(self, ref: RevisionRef, list_only: bool = False) -> SyncResult:
        """Upload the local build data of a revision to the service.

        Every file in the store is pushed under its own commit, not only the
        files of ``ref``. Files that disappear between listing and upload are
        skipped.

        Args:
            ref: Revision to push
            list_only: Only print the local files; transfer nothing

        Returns:
            SyncResult with outcome EMPTY, LISTED, SYNCED or FAILED
        """
        logger.debug(
            f"Listing local build files for repository {ref.repo_uri!r} "
            f"commit {ref.commit_id!r}..."
        )
        local_files = self.store.list_all()

        if list_only:
            self.output.info(
                f"# Local build files for repository {ref.repo_uri!r} commit {ref.commit_id}:"
            )
            for record in local_files:
                if record.commit_id == ref.commit_id:
                    self.output.print(record.path)
                else:
                    self.output.print(f"{record.commit_id}/{record.path}")
            return SyncResult(SyncOutcome.LISTED, files=local_files)

        if not local_files:
            self.output.info("No local build files found.")
            return SyncResult(SyncOutcome.EMPTY)

        return self._transfer(local_files, ref, TransferDirection.UPLOAD)

    def _transfer(
        self,
        records: list[FileRecord],
        ref: RevisionRef,
        direction: TransferDirection,
    ) -> SyncResult:
        """Run one transfer task per record with bounded parallelism."""
        result = SyncResult(SyncOutcome.SYNCED, files=records)
        if not records:
            return result

        start = time.time()
        logger.debug(
            f"Executing {len(records)} {direction.value}s with {self.max_workers} workers"
        )
        counts_lock = threading.Lock()

        progress: Optional[Progress] = None
        progress_task = None
        if not self.output.quiet:
            progress = Progress(
                TextColumn("[bold blue]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=self.output.err_console,
                transient=True,
            )
            progress_task = progress.add_task(
                "Downloading" if direction is TransferDirection.DOWNLOAD else "Uploading",
                total=len(records),
            )
            progress.start()

        def execute(record: FileRecord) -> None:
            try:
                task = self.operations.task_for(record, ref, direction)
                transferred = self.operations.run(task)
            except Exception as e:
                logger.debug(f"Failed {record.path}: {e}")
                self.output.error(f"Error syncing {record.path}: {e}")
                raise
            else:
                with counts_lock:
                    if transferred:
                        result.transferred += 1
                    else:
                        result.skipped += 1
            finally:
                if progress is not None:
                    progress.advance(progress_task)

        run = ParallelRun(max_workers=self.max_workers)
        try:
            for record in records:
                run.do(execute, record)
        finally:
            error = run.wait()
            if progress is not None:
                progress.stop()

        elapsed = time.time() - start
        if error is not None:
            logger.debug(f"{direction.value} failed after {elapsed:.2f}s: {error}")
            result.outcome = SyncOutcome.FAILED
            result.error = error
            return result

        logger.debug(
            f"{direction.value} of {result.transferred} files "
            f"({result.skipped} skipped) took {elapsed:.2f}s"
        )
        return result
