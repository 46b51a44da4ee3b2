"""Console output formatting for the buildsync CLI."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table


class OutputFormatter:
    """Writes user-facing messages to the terminal.

    Informational messages go to stderr so that listings printed with
    :meth:`print` can be piped.
    """

    def __init__(
        self,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        """Print a line of regular output (never suppressed)."""
        self.console.print(message, markup=False, soft_wrap=True)

    def info(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(message, markup=False, soft_wrap=True)

    def success(self, message: str) -> None:
        if not self.quiet:
            self.err_console.print(f"[green]{escape(message)}[/green]", soft_wrap=True)

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]Warning:[/yellow] {escape(message)}", soft_wrap=True)

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {escape(message)}", soft_wrap=True)

    def print_summary(self, title: str, rows: list[tuple[str, str]]) -> None:
        """Print a two-column key/value table."""
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, value)
        self.err_console.print(table)
