"""Ops Job Queue CLI - Main Entry Point"""

import asyncio
import random

import typer
from rich.console import Console
from rich.panel import Panel

from jobqueue.config.settings import get_settings
from jobqueue.jobs.models import JobPriority
from jobqueue.jobs.schemas import JobView
from jobqueue.main import create_queue

from .utils.formatting import (
    create_jobs_table,
    create_settings_table,
    create_stats_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)

console = Console()

# Create main Typer app
app = typer.Typer(
    name="jobqueue",
    help="Ops Job Queue - in-process background job scheduler",
    rich_markup_mode="rich",
)

DEMO_JOB_TYPE = "demo_task"


@app.command()
def version():
    """Show CLI version information"""
    from . import __version__

    console.print(Panel(
        f"[bold cyan]Ops Job Queue CLI[/bold cyan]\n\n"
        f"• Version: [green]{__version__}[/green]",
        title="Version Info",
        border_style="cyan"
    ))


@app.command()
def settings():
    """Show the effective queue settings"""
    console.print(create_settings_table(get_settings()))


@app.command()
def demo(
    jobs: int = typer.Option(20, "--jobs", "-n", min=1, help="Number of jobs to submit"),
    concurrency: int = typer.Option(4, "--concurrency", "-c", min=1, help="Concurrent jobs"),
    failure_rate: float = typer.Option(
        0.3, "--failure-rate", min=0.0, max=1.0, help="Chance that an attempt fails"
    ),
    max_attempts: int = typer.Option(3, "--max-attempts", min=1, help="Attempts per job"),
    retry_delay_ms: int = typer.Option(100, "--retry-delay-ms", min=0, help="Retry delay unit"),
    timeout: float = typer.Option(30.0, "--timeout", help="Seconds to wait for the queue to settle"),
    seed: int | None = typer.Option(None, "--seed", help="Random seed for reproducible runs"),
):
    """Run a simulated workload through an in-process queue"""
    rng = random.Random(seed)

    async def flaky_task(job: JobView) -> dict:
        await asyncio.sleep(rng.uniform(0.01, 0.05))
        if rng.random() < failure_rate:
            raise RuntimeError(f"Simulated failure on attempt {job.attempts}")
        return {"handled": job.payload["n"]}

    async def run() -> bool:
        queue = create_queue(
            concurrency=concurrency,
            retry_delay_ms=retry_delay_ms,
            max_attempts=max_attempts,
            tick_interval_ms=50,
        )
        queue.register_handler(DEMO_JOB_TYPE, flaky_task)

        priorities = list(JobPriority)
        for n in range(jobs):
            queue.submit(DEMO_JOB_TYPE, {"n": n}, priority=rng.choice(priorities))
        queue.start()

        settled = True
        try:
            await queue.wait_until_idle(timeout_s=timeout)
        except TimeoutError:
            settled = False
        finally:
            await queue.close(timeout_s=1)

        stats = queue.get_stats()
        console.print(create_stats_table(stats))
        finished = queue.get_jobs_by_status("completed") + queue.get_jobs_by_status("failed")
        console.print(create_jobs_table(finished))
        return settled

    print_info(f"Submitting {jobs} jobs with concurrency {concurrency}")
    if asyncio.run(run()):
        print_success("All jobs reached a terminal state")
    else:
        print_warning(f"Queue did not settle within {timeout}s")
        raise typer.Exit(1)


@app.callback()
def main():
    """
    Ops Job Queue CLI

    Inspect queue settings and exercise the scheduler with a simulated workload.
    """


if __name__ == "__main__":
    try:
        app()
    except Exception as e:
        print_error(str(e))
        raise
