"""CLI interface for buildsync."""

import logging
from pathlib import Path
from typing import Any, Optional

import click

from .api import BuildDataClient
from .config import API_KEY_ENV, API_URL_ENV, config
from .exceptions import BuildSyncError, ConfigError, SetupError
from .models import SyncOutcome, SyncResult
from .output import OutputFormatter
from .repo import open_repo
from .store import RepositoryStore
from .sync import SyncEngine
from .utils import DEFAULT_WORKERS

logger = logging.getLogger(__name__)


@click.group()
@click.option("--api-key", "-k", envvar=API_KEY_ENV, help="Build data service API key")
@click.option("--api-url", envvar=API_URL_ENV, help="Build data service API URL")
@click.option(
    "--repo",
    "-C",
    "repo_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Repository directory (default: current directory)",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="buildsync")
@click.pass_context
def main(
    ctx: Any,
    api_key: Optional[str],
    api_url: Optional[str],
    repo_dir: Path,
    quiet: bool,
    verbose: bool,
) -> None:
    """buildsync - Pull and push build data for the current repository."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["api_url"] = api_url
    ctx.obj["repo_dir"] = repo_dir
    ctx.obj["out"] = OutputFormatter(quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("buildsync").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


def _open_engine(ctx: Any, workers: int):
    """Resolve the repository and build a sync engine, exiting on setup errors."""
    out: OutputFormatter = ctx.obj["out"]
    try:
        repo = open_repo(ctx.obj["repo_dir"])
        store = RepositoryStore(repo.root_dir)
        client = BuildDataClient(api_key=ctx.obj["api_key"], api_url=ctx.obj["api_url"])
    except (SetupError, ConfigError) as e:
        out.error(str(e))
        ctx.exit(1)

    logger.debug(f"Using build data store {store.root} for {repo.uri}@{repo.commit_id}")
    engine = SyncEngine(client, store, output=out, max_workers=workers)
    return repo, client, engine


def _finish(ctx: Any, result: SyncResult, verb: str) -> None:
    out: OutputFormatter = ctx.obj["out"]
    if result.outcome is SyncOutcome.FAILED:
        out.error(f"{verb} failed: {result.error}")
        ctx.exit(1)
    if result.outcome is SyncOutcome.SYNCED:
        message = f"{verb} complete: {result.transferred} file(s)"
        if result.skipped:
            message += f", {result.skipped} skipped"
        out.success(message)


workers_option = click.option(
    "--workers",
    "-j",
    type=click.IntRange(min=1),
    default=DEFAULT_WORKERS,
    show_default=True,
    help="Number of parallel transfers",
)


@main.command()
@click.option(
    "--list",
    "-l",
    "list_only",
    is_flag=True,
    help="Only list files that exist on remote; don't fetch",
)
@click.option("--urls", is_flag=True, help="Show URLs to build data files (with --list)")
@workers_option
@click.pass_context
def pull(ctx: Any, list_only: bool, urls: bool, workers: int) -> None:
    """Fetch remote build data to the local .srclib-cache directory."""
    out: OutputFormatter = ctx.obj["out"]
    repo, client, engine = _open_engine(ctx, workers)

    with client:
        try:
            result = engine.pull(repo.revision(), list_only=list_only, show_urls=urls)
        except BuildSyncError as e:
            out.error(str(e))
            ctx.exit(1)
    _finish(ctx, result, "Pull")


@main.command()
@click.option(
    "--list",
    "-l",
    "list_only",
    is_flag=True,
    help="Only list local build data files; don't upload",
)
@workers_option
@click.pass_context
def push(ctx: Any, list_only: bool, workers: int) -> None:
    """Upload local build data in .srclib-cache to the remote."""
    out: OutputFormatter = ctx.obj["out"]
    repo, client, engine = _open_engine(ctx, workers)

    with client:
        try:
            result = engine.push(repo.revision(), list_only=list_only)
        except BuildSyncError as e:
            out.error(str(e))
            ctx.exit(1)
    _finish(ctx, result, "Push")


@main.command()
@click.option(
    "--api-key",
    "-k",
    prompt="Enter your build data service API key",
    hide_input=True,
    help="Build data service API key",
)
@click.option("--api-url", default=None, help="Build data service API URL")
@click.pass_context
def init(ctx: Any, api_key: str, api_url: Optional[str]) -> None:
    """Store the API key (and optionally the API URL) for future use.

    Settings are written to ~/.config/buildsync/config.json.
    """
    out: OutputFormatter = ctx.obj["out"]
    try:
        config_path = config.save(api_key=api_key, api_url=api_url)
    except (OSError, ConfigError) as e:
        out.error(f"Could not save configuration: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "Configuration saved successfully"),
            ("Config file", str(config_path)),
            ("API URL", api_url or config.api_url),
        ],
    )

