"""Scheduled package operations.

Tasks are stored in ~/.local/state/pkgdeck/schedule.json and executed by
``pkgdeck schedule run``, which is meant to be called periodically
(for example from a systemd user timer or cron).
"""

import logging
from datetime import UTC, datetime
from pathlib import Path

from pkgdeck.core.history import HistoryTracker
from pkgdeck.core.manager import PackageManager
from pkgdeck.core.paths import get_schedule_path
from pkgdeck.core.storage import read_json, write_json_atomic
from pkgdeck.errors import PkgdeckError
from pkgdeck.models.package import Package, PackageSource
from pkgdeck.models.schedule import (
    ScheduledOperation,
    ScheduledTask,
    SchedulePreset,
    SchedulerState,
)

logger = logging.getLogger(__name__)


class SchedulerStore:
    """Loads and saves the scheduler state file."""

    def __init__(self, path: Path | None = None) -> None:
        """Initialize SchedulerStore.

        Args:
            path: Optional override for the state file.
                Default: ~/.local/state/pkgdeck/schedule.json
        """
        self.path = path if path is not None else get_schedule_path()

    def load(self) -> SchedulerState:
        """Read the state; a missing or corrupt file yields an empty state."""
        try:
            data = read_json(self.path)
            return SchedulerState.from_dict(data) if data is not None else SchedulerState()
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Ignoring unreadable schedule file %s: %s", self.path, e)
            return SchedulerState()

    def save(self, state: SchedulerState) -> None:
        """Write the state atomically. Failures are logged, never raised."""
        try:
            write_json_atomic(self.path, state.to_dict())
        except OSError as e:
            logger.warning("Failed to save schedule to %s: %s", self.path, e)


def schedule_task(
    state: SchedulerState,
    name: str,
    source: PackageSource,
    operation: ScheduledOperation,
    preset: SchedulePreset | None = None,
    at: datetime | None = None,
    now: datetime | None = None,
) -> ScheduledTask:
    """Create a task and add it to the state.

    A pending task for the same package and operation is replaced.

    Args:
        state: State to add the task to.
        name: Package name.
        source: Package source.
        operation: Operation to run.
        preset: Scheduling preset; ignored when ``at`` is given.
        at: Explicit time. Naive values are taken as local time.
        now: Reference instant for presets and pending checks.

    Returns:
        The new task.

    Raises:
        ValueError: If neither a usable preset nor ``at`` is given, or
            the resolved time is not in the future.
    """
    current = now or datetime.now(UTC)
    if at is not None:
        scheduled_at = (at if at.tzinfo is not None else at.astimezone()).astimezone(UTC)
    elif preset is not None and preset != SchedulePreset.CUSTOM:
        scheduled_at = preset.to_datetime(current)
    else:
        msg = "A schedule needs a preset or an explicit time"
        raise ValueError(msg)

    if scheduled_at is None or scheduled_at <= current:
        msg = "Scheduled time must be in the future"
        raise ValueError(msg)

    task = ScheduledTask(
        package_id=f"{source.display_name}:{name}",
        package_name=name,
        source=source,
        operation=operation,
        scheduled_at=scheduled_at,
    )
    state.add_task(task, current)
    logger.info("Scheduled %s of %s for %s", operation.value, task.package_id, scheduled_at.isoformat())
    return task


def _installed_package(manager: PackageManager, name: str, source: PackageSource) -> Package | None:
    try:
        installed = manager.list_installed(source)
    except PkgdeckError as e:
        logger.debug("Could not list %s packages: %s", source.display_name, e.short_message)
        return None
    return next((pkg for pkg in installed if pkg.name == name), None)


def _execute(task: ScheduledTask, manager: PackageManager, tracker: HistoryTracker | None) -> None:
    placeholder = Package(name=task.package_name, version="", source=task.source)
    if task.operation == ScheduledOperation.INSTALL:
        manager.install(task.package_name, task.source)
        if tracker is not None:
            installed = _installed_package(manager, task.package_name, task.source)
            tracker.record_install(installed or placeholder)
        return

    before = None
    if tracker is not None:
        before = _installed_package(manager, task.package_name, task.source)

    if task.operation == ScheduledOperation.REMOVE:
        manager.remove(task.package_name, task.source)
        if tracker is not None:
            tracker.record_remove(before or placeholder)
    else:
        manager.update(task.package_name, task.source)
        if tracker is not None:
            after = _installed_package(manager, task.package_name, task.source)
            tracker.record_update(
                after or placeholder,
                old_version=before.version if before is not None else "",
                old_size=before.size if before is not None else None,
            )


def run_due_tasks(
    state: SchedulerState,
    manager: PackageManager,
    tracker: HistoryTracker | None = None,
    now: datetime | None = None,
) -> list[ScheduledTask]:
    """Execute every due task through the manager.

    Successful tasks are recorded in history; failed tasks keep a
    one-line error. Old completed tasks are pruned afterwards.

    Args:
        state: Scheduler state; tasks are updated in place.
        manager: Package manager used to run the operations.
        tracker: History tracker to record successful operations.
        now: Reference instant. Defaults to the current time.

    Returns:
        The tasks that were executed.
    """
    executed: list[ScheduledTask] = []
    for task in state.due_tasks(now):
        logger.info("Running scheduled %s of %s", task.operation.value, task.package_id)
        try:
            _execute(task, manager, tracker)
        except PkgdeckError as e:
            logger.warning("Scheduled %s of %s failed: %s", task.operation.value, task.package_id, e.short_message)
            task.mark_failed(e.short_message)
        else:
            task.mark_completed()
        executed.append(task)

    state.cleanup_old_tasks()
    return executed
