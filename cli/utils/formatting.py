"""Rich Formatting Utilities for Queue CLI Output"""

from rich import box
from rich.console import Console
from rich.table import Table

from jobqueue.config.settings import Settings
from jobqueue.jobs.schemas import JobStatsResponse, JobView

console = Console()

STATUS_STYLES = {
    "pending": "yellow",
    "processing": "cyan",
    "delayed": "magenta",
    "completed": "green",
    "failed": "red",
}


def print_success(message: str):
    """Print success message with green styling"""
    console.print(f"[green]✓ {message}[/green]")


def print_error(message: str):
    """Print error message with red styling"""
    console.print(f"[red]✗ {message}[/red]")


def print_warning(message: str):
    """Print warning message with yellow styling"""
    console.print(f"[yellow]⚠ {message}[/yellow]")


def print_info(message: str):
    """Print info message with blue styling"""
    console.print(f"[blue]ℹ {message}[/blue]")


def create_stats_table(stats: JobStatsResponse) -> Table:
    """Create a formatted table of job counts per status"""
    table = Table(title="Queue Statistics", box=box.ROUNDED)

    table.add_column("Status", justify="left", style="bold")
    table.add_column("Jobs", justify="right")

    for status, style in STATUS_STYLES.items():
        table.add_row(f"[{style}]{status}[/{style}]", str(getattr(stats, status)))
    table.add_row("total", str(stats.total), style="bold")

    return table


def create_jobs_table(jobs: list[JobView]) -> Table:
    """Create a formatted table for a list of jobs"""
    table = Table(title="Jobs", box=box.ROUNDED)

    table.add_column("ID", justify="left", style="cyan", no_wrap=True)
    table.add_column("Type", justify="left", style="magenta")
    table.add_column("Priority", justify="center")
    table.add_column("Status", justify="center")
    table.add_column("Attempts", justify="center", style="yellow")
    table.add_column("Error", justify="left", style="white")

    for job in jobs:
        style = STATUS_STYLES.get(job.status.value, "white")
        table.add_row(
            job.id[:8],  # Short ID
            job.type,
            job.priority.value,
            f"[{style}]{job.status.value}[/{style}]",
            f"{job.attempts}/{job.max_attempts}",
            job.error or "-",
        )

    return table


def create_settings_table(settings: Settings) -> Table:
    """Create a formatted table of the queue settings"""
    table = Table(title="Queue Settings", box=box.ROUNDED)

    table.add_column("Setting", justify="left", style="cyan")
    table.add_column("Value", justify="left", style="green")

    for name, value in settings.model_dump().items():
        if name.startswith("job_") or name in ("environment", "log_level"):
            table.add_row(name, str(value))

    return table
