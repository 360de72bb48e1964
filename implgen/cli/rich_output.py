"""
Rich terminal output for the implgen CLI.

Prints the run header, a table of generated files and status lines.
"""

from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ..runner import CREATED, UPDATED, FileOutcome, GenerationReport

STATUS_STYLES = {
    CREATED: "green",
    UPDATED: "yellow",
}


class RichOutputManager:
    """Manages terminal output, plain when rich markup is disabled."""

    def __init__(self, use_rich: bool = True, console: Optional[Console] = None):
        self.use_rich = use_rich
        self.console = console or Console(
            no_color=not use_rich, highlight=use_rich, emoji=use_rich
        )

    def print_header(self, title: str, subtitle: Optional[str] = None) -> None:
        """Print a formatted header."""
        if self.use_rich:
            if subtitle:
                header_text = f"[bold blue]{title}[/bold blue]\n[dim]{subtitle}[/dim]"
            else:
                header_text = f"[bold blue]{title}[/bold blue]"
            self.console.print(Panel(header_text, border_style="blue", padding=(1, 2)))
        else:
            self.console.print(f"=== {title} ===", markup=False)
            if subtitle:
                self.console.print(subtitle, markup=False)

    def print_success(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[green]✓[/green] {message}")
        else:
            self.console.print(f"OK {message}", markup=False)

    def print_error(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[red]✗[/red] {escape(message)}")
        else:
            self.console.print(f"ERROR {message}", markup=False)

    def print_info(self, message: str) -> None:
        if self.use_rich:
            self.console.print(f"[blue]ℹ[/blue] {message}")
        else:
            self.console.print(message, markup=False)

    def create_table(self, title: str, columns: List[str]) -> Table:
        """Create a table with a bold header row."""
        table = Table(title=title, show_header=True, header_style="bold blue")
        for column in columns:
            table.add_column(column)
        return table

    def print_report(self, report: GenerationReport) -> None:
        """Print the files a run created or updated, followed by totals."""
        changed = report.changed_files()
        if not changed:
            self.print_success("Everything is up to date")
            return

        title = "Planned changes" if report.dry_run else "Generated files"
        table = self.create_table(title, ["File", "Status", "New types", "New methods"])
        for outcome in changed:
            table.add_row(
                outcome.path,
                self._status_cell(outcome),
                str(outcome.new_types),
                str(outcome.new_methods),
            )
        self.console.print(table)

        verb = "would be written" if report.dry_run else "written"
        self.print_success(
            f"{len(changed)} file(s) {verb}: {report.new_types} new type(s), "
            f"{report.new_methods} new method(s) across {report.packages} package(s)"
        )

    def _status_cell(self, outcome: FileOutcome) -> str:
        style = STATUS_STYLES.get(outcome.status)
        if self.use_rich and style:
            return f"[{style}]{outcome.status}[/{style}]"
        return outcome.status
