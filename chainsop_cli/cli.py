"""
chainsop command line interface.

Runs chain definitions (JSON documents, see chain_loader), shows how they
parse, and browses the history of recorded runs.

Environment Variables:
    CHAINSOP_DB_PATH: Run history database (default: ~/.chainsop/history.db)
    CHAINSOP_MODE: Default run mode: normal, echo, label, dry-run (default: normal)
    CHAINSOP_LOG_LEVEL: Logging level (default: WARNING)

Command-line options override environment variables.
"""

import asyncio
import json
import logging
import os
import sys
from pathlib import Path

import click

from chainsop.errors import ChainsopError, MissingFileError
from chainsop.execution import Executor, RunMode
from chainsop.operations import ChainedOps
from chainsop.recording import ChainRun, RecordingExecutor
from chainsop_persistence.sqlite_repository import SQLiteRunRepository

from .chain_loader import load_chain_file

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_db_path(override: str | None = None) -> str:
    """Get the database path from the option, environment variable, or default."""
    if override:
        return override
    return os.environ.get(
        "CHAINSOP_DB_PATH", str(Path.home() / ".chainsop" / "history.db")
    )


def get_run_mode(override: str | None = None) -> RunMode:
    """Get the run mode from the option, environment variable, or default."""
    value = override or os.environ.get("CHAINSOP_MODE", RunMode.NORMAL_RUN.value)
    try:
        return RunMode(value)
    except ValueError:
        logger.warning(f"Invalid CHAINSOP_MODE={value}, using normal")
        return RunMode.NORMAL_RUN


def get_log_level(override: str | None = None) -> str:
    """Get the logging level from the option, environment variable, or default."""
    level = (override or os.environ.get("CHAINSOP_LOG_LEVEL", "WARNING")).upper()
    if level not in LOG_LEVELS:
        return "WARNING"
    return level


def get_repository(db_path: str | None = None) -> SQLiteRunRepository:
    """Get the repository instance, creating the database directory if needed."""
    path = get_db_path(db_path)
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    return SQLiteRunRepository(path)


def run_async(coro):
    """Helper to run async functions in CLI commands."""
    return asyncio.run(coro)


def load_or_exit(chain_file: str) -> ChainedOps:
    try:
        return load_chain_file(chain_file)
    except ChainsopError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (default: CHAINSOP_LOG_LEVEL env or WARNING)",
)
def cli(log_level: str | None):
    """chainsop - Run chains of sub-process operations."""
    logging.basicConfig(
        level=getattr(logging, get_log_level(log_level)),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.group()
def history():
    """Browse recorded runs."""
    pass


# ============================================================================
# Chain Commands
# ============================================================================


@cli.command("run")
@click.argument("chain_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--cwd",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory to execute the chain from (default: current directory)",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in RunMode]),
    default=None,
    help="Run mode (default: CHAINSOP_MODE env or normal)",
)
@click.option(
    "--record/--no-record", default=True, help="Store the run in the history"
)
@click.option("--db-path", default=None, help="Run history database path")
def run_chain(
    chain_file: str, cwd: str | None, mode: str | None, record: bool, db_path: str | None
):
    """Execute the chain defined in CHAIN_FILE."""
    chain = load_or_exit(chain_file)
    executor = Executor(get_run_mode(mode))
    recorder = RecordingExecutor(executor) if record else None

    run: ChainRun | None = None
    error: ChainsopError | None = None
    paths: list[Path] = []
    try:
        if recorder is not None:
            with recorder.recording(chain.label()) as run:
                output = chain.execute(recorder, cwd)
        else:
            output = chain.execute(executor, cwd)
        if executor.performs:
            # A temporary final output is reported to the user, so it stays
            output.keep()
        try:
            paths = output.to_paths()
        except MissingFileError:
            paths = []
    except ChainsopError as e:
        error = e

    if run is not None:
        run.output = [str(p) for p in paths]
        save_run(run, db_path)

    if error is not None:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    if not paths:
        click.echo("(no output file)")
    for p in paths:
        click.echo(str(p))
    if run is not None:
        click.echo(f"Recorded run: {run.id}", err=True)


def save_run(run: ChainRun, db_path: str | None) -> None:
    async def save():
        repo = get_repository(db_path)
        await repo.initialize()

        try:
            await repo.save_run(run)
        finally:
            await repo.close()

    run_async(save())


@cli.command("show")
@click.argument("chain_file", type=click.Path(exists=True, dir_okay=False))
def show_chain(chain_file: str):
    """Show how CHAIN_FILE is parsed, without executing it."""
    chain = load_or_exit(chain_file)
    files = chain.files

    click.echo(f"\nChain: {chain.label()}")
    click.echo(f"  Directory: {files.in_dir if files.in_dir is not None else '(cwd)'}")
    click.echo(f"  Inputs:    {files.inp_filenames!r}")
    click.echo(f"  Output:    {files.out_filename!r}")
    if chain.env.changes or not chain.env.inherit:
        click.echo(f"  Env:       {chain.env!r}")
    click.echo(f"\n{'#':<4} {'Status':<9} {'Label':<25} Operation")
    click.echo("-" * 100)
    for ref in chain:
        status = "enabled" if ref.is_active() else "disabled"
        click.echo(f"{ref.opidx:<4} {status:<9} {ref.label():<25} {ref.operation!r}")
    click.echo()


# ============================================================================
# History Commands
# ============================================================================


def format_time(value) -> str:
    return value.isoformat(timespec="seconds") if value else "-"


def format_status(success: bool | None) -> str:
    if success is None:
        return "Unknown"
    return "Success" if success else "Failed"


@history.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--limit", type=int, default=None, help="Maximum number of runs")
@click.option("--db-path", default=None, help="Run history database path")
def history_list(json_output: bool, limit: int | None, db_path: str | None):
    """List recorded runs, most recent first."""

    async def list_runs():
        repo = get_repository(db_path)
        await repo.initialize()

        try:
            runs = await repo.list_runs(limit)

            if json_output:
                click.echo(json.dumps([r.to_summary_dict() for r in runs], indent=2))
                return

            if not runs:
                click.echo("No runs found.")
                return

            click.echo(f"\n{'ID':<38} {'Label':<25} {'Started':<27} {'Status':<10}")
            click.echo("-" * 100)
            for r in runs:
                click.echo(
                    f"{r.id:<38} {r.label:<25} {format_time(r.start_time):<27} "
                    f"{format_status(r.success):<10}"
                )
            click.echo()

        finally:
            await repo.close()

    run_async(list_runs())


@history.command("show")
@click.argument("run_id")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.option("--db-path", default=None, help="Run history database path")
def history_show(run_id: str, json_output: bool, db_path: str | None):
    """Show a recorded run with its operations."""

    async def show():
        repo = get_repository(db_path)
        await repo.initialize()

        try:
            run = await repo.get_run(run_id)
            if not run:
                click.echo(f"Error: Run not found: {run_id}", err=True)
                sys.exit(1)

            if json_output:
                click.echo(json.dumps(run.to_dict(), indent=2))
                return

            click.echo("\nRun Details:")
            click.echo(f"  ID:       {run.id}")
            click.echo(f"  Label:    {run.label}")
            click.echo(f"  Started:  {format_time(run.start_time)}")
            click.echo(f"  Finished: {format_time(run.end_time)}")
            click.echo(f"  Status:   {format_status(run.success)}")
            if run.error:
                click.echo(f"  Error:    {run.error}")
            for path in run.output:
                click.echo(f"  Output:   {path}")
            click.echo("\nOperations:")
            for op in run.operations:
                if op.kind == "exe":
                    desc = " ".join([op.exe or "", *op.args])
                else:
                    desc = f"call {op.label}"
                click.echo(f"  [{op.outcome}] {op.label}: {desc}")
                if op.returncode is not None:
                    click.echo(f"      exit status {op.returncode}")
            click.echo()

        finally:
            await repo.close()

    run_async(show())


@history.command("delete")
@click.argument("run_id")
@click.option("--db-path", default=None, help="Run history database path")
def history_delete(run_id: str, db_path: str | None):
    """Delete a recorded run."""

    async def delete():
        repo = get_repository(db_path)
        await repo.initialize()

        try:
            if not await repo.delete_run(run_id):
                click.echo(f"Error: Run not found: {run_id}", err=True)
                sys.exit(1)
            click.echo(f"✓ Run deleted: {run_id}")

        finally:
            await repo.close()

    run_async(delete())


if __name__ == "__main__":
    cli()
