"""Schedule commands for deferred package operations.

This module provides `pkgdeck schedule add|list|cancel|run`. Tasks are
executed by `pkgdeck schedule run`, typically from a systemd user timer
or a cron job.
"""

from datetime import datetime
from typing import Annotated

import typer

from pkgdeck.cli.display import create_schedule_table
from pkgdeck.cli.types import get_config, get_manager, get_tracker
from pkgdeck.core.manager import validate_package_name
from pkgdeck.core.scheduler import SchedulerStore, run_due_tasks, schedule_task
from pkgdeck.errors import InvalidPackageNameError
from pkgdeck.models.package import PackageSource
from pkgdeck.models.schedule import ScheduledOperation, SchedulePreset
from pkgdeck.utils.formatting import console, print_error, print_info, print_success, print_warning

app = typer.Typer(
    name="schedule",
    help="Schedule package operations for later.",
    no_args_is_help=True,
)


@app.command("add")
def add(
    name: Annotated[str, typer.Argument(help="Package name.")],
    source: Annotated[
        PackageSource,
        typer.Option(
            "--source",
            "-s",
            case_sensitive=False,
            help="Package source.",
        ),
    ],
    operation: Annotated[
        ScheduledOperation,
        typer.Option(
            "--operation",
            "-o",
            case_sensitive=False,
            help="Operation to run.",
        ),
    ] = ScheduledOperation.UPDATE,
    preset: Annotated[
        SchedulePreset | None,
        typer.Option(
            "--preset",
            "-p",
            case_sensitive=False,
            help="When to run: tonight, tomorrow_morning, tomorrow_evening, in_one_hour, in_three_hours.",
        ),
    ] = None,
    at: Annotated[
        str | None,
        typer.Option(
            "--at",
            help="Explicit time in ISO format, e.g. 2026-05-01T22:30. Local time unless an offset is given.",
        ),
    ] = None,
) -> None:
    """Schedule an operation.

    A pending task for the same package and operation is replaced.

    Examples:
        pkgdeck schedule add firefox --source flatpak --preset tonight
        pkgdeck schedule add htop -s apt -o install --at 2026-05-01T08:00
    """
    try:
        validate_package_name(name)
    except InvalidPackageNameError as e:
        print_error(e.user_message)
        raise typer.Exit(code=1) from None

    when: datetime | None = None
    if at is not None:
        try:
            when = datetime.fromisoformat(at)
        except ValueError:
            print_error(f"Invalid time: {at}. Use ISO format, e.g. 2026-05-01T22:30.")
            raise typer.Exit(code=1) from None

    store = SchedulerStore()
    state = store.load()
    try:
        task = schedule_task(state, name, source, operation, preset=preset, at=when)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from None
    store.save(state)

    print_success(f"Scheduled {operation.value} of {task.package_id} for {task.scheduled_time_display}.")
    console.print(f"  ID: {task.id[:8]}")


@app.command("list")
def list_tasks(
    show_all: Annotated[
        bool,
        typer.Option(
            "--all",
            "-a",
            help="Include completed and failed tasks.",
        ),
    ] = False,
) -> None:
    """List scheduled tasks."""
    state = SchedulerStore().load()
    tasks = state.tasks if show_all else state.pending_tasks() + state.due_tasks()
    tasks = sorted(tasks, key=lambda t: t.scheduled_at)

    if not tasks:
        print_info("No scheduled tasks.")
        return
    console.print(create_schedule_table(tasks))


@app.command("cancel")
def cancel(
    task_id: Annotated[str, typer.Argument(help="Task ID (a unique prefix is enough).")],
) -> None:
    """Cancel a scheduled task."""
    store = SchedulerStore()
    state = store.load()
    task = state.get(task_id)
    if task is None:
        print_error(f"No scheduled task matches '{task_id}'.")
        raise typer.Exit(code=1)

    state.remove_task(task.id)
    store.save(state)
    print_success(f"Cancelled {task.operation.value} of {task.package_id}.")


@app.command("run")
def run() -> None:
    """Run every task that is due.

    Exits with code 1 if any task failed.
    """
    store = SchedulerStore()
    state = store.load()
    if not state.due_tasks():
        print_info("No tasks are due.")
        return

    config = get_config()
    executed = run_due_tasks(state, get_manager(config), get_tracker(config))
    store.save(state)

    failed = [task for task in executed if task.failed]
    for task in executed:
        if task.failed:
            print_warning(f"{task.operation.display_name} of {task.package_id} failed: {task.error}")
        else:
            print_success(f"{task.operation.display_name} of {task.package_id} done.")
    if failed:
        raise typer.Exit(code=1)
