"""Scheduled operation models.

A scheduled task defers one package operation to a later instant. All
instants are stored in UTC; presets are resolved against local wall time.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from enum import Enum
from typing import Any

from pkgdeck.models.package import PackageSource

KEEP_COMPLETED_TASKS = 50


class ScheduledOperation(str, Enum):
    """Operation a scheduled task performs."""

    UPDATE = "update"
    INSTALL = "install"
    REMOVE = "remove"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()


def _local_wall_clock(day: date, hour: int) -> datetime:
    # a naive time resolves against the offset in effect on that day
    return datetime.combine(day, time(hour)).astimezone()


class SchedulePreset(str, Enum):
    """Common scheduling choices."""

    TONIGHT = "tonight"
    TOMORROW_MORNING = "tomorrow_morning"
    TOMORROW_EVENING = "tomorrow_evening"
    IN_ONE_HOUR = "in_one_hour"
    IN_THREE_HOURS = "in_three_hours"
    CUSTOM = "custom"

    @property
    def display_name(self) -> str:
        return {
            SchedulePreset.TONIGHT: "Tonight (10 PM)",
            SchedulePreset.TOMORROW_MORNING: "Tomorrow Morning (8 AM)",
            SchedulePreset.TOMORROW_EVENING: "Tomorrow Evening (8 PM)",
            SchedulePreset.IN_ONE_HOUR: "In 1 Hour",
            SchedulePreset.IN_THREE_HOURS: "In 3 Hours",
            SchedulePreset.CUSTOM: "Custom Time...",
        }[self]

    def to_datetime(self, now: datetime | None = None) -> datetime | None:
        """Resolve the preset to a UTC instant.

        Wall-clock presets (tonight, tomorrow morning/evening) use the
        local timezone offset in effect on the target day. "Tonight"
        rolls over to the next day once 22:00 has passed, so the result is always later than ``now``.

        Args:
            now: Reference instant (timezone-aware). Defaults to the current time.

        Returns:
            Aware UTC datetime, or None for CUSTOM.
        """
        current = now.astimezone(UTC) if now is not None else datetime.now(UTC)
        today = current.astimezone().date()

        if self == SchedulePreset.CUSTOM:
            return None
        if self == SchedulePreset.IN_ONE_HOUR:
            return current + timedelta(hours=1)
        if self == SchedulePreset.IN_THREE_HOURS:
            return current + timedelta(hours=3)

        if self == SchedulePreset.TONIGHT:
            target = _local_wall_clock(today, 22)
            if current >= target:
                target = _local_wall_clock(today + timedelta(days=1), 22)
        else:
            hour = 8 if self == SchedulePreset.TOMORROW_MORNING else 20
            target = _local_wall_clock(today + timedelta(days=1), hour)
        return target.astimezone(UTC)

    @classmethod
    def all_presets(cls) -> list[SchedulePreset]:
        return list(cls)

    @classmethod
    def quick_presets(cls) -> list[SchedulePreset]:
        return [cls.TONIGHT, cls.TOMORROW_MORNING, cls.IN_ONE_HOUR]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class ScheduledTask:
    """A package operation deferred to a later time.

    Attributes:
        package_id: Package id ('APT:vim').
        package_name: Package name passed to the backend.
        source: Package source.
        operation: Operation to perform.
        scheduled_at: When the task becomes due (UTC).
        id: Unique identifier (hex UUID).
        created_at: When the task was created (UTC).
        completed: Whether the task has run, successfully or not.
        error: Failure summary if the run failed.
    """

    package_id: str
    package_name: str
    source: PackageSource
    operation: ScheduledOperation
    scheduled_at: datetime
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=_utcnow)
    completed: bool = False
    error: str | None = None

    def __post_init__(self) -> None:
        """Validate task data after initialization."""
        if not self.package_name:
            msg = "Package name cannot be empty"
            raise ValueError(msg)
        if self.scheduled_at.tzinfo is None:
            msg = "scheduled_at must be timezone-aware"
            raise ValueError(msg)

    @property
    def failed(self) -> bool:
        return self.completed and self.error is not None

    def is_due(self, now: datetime | None = None) -> bool:
        """Check if the task should run now."""
        return not self.completed and (now or _utcnow()) >= self.scheduled_at

    def is_pending(self, now: datetime | None = None) -> bool:
        """Check if the task is waiting for its scheduled time."""
        return not self.completed and (now or _utcnow()) < self.scheduled_at

    def time_until(self, now: datetime | None = None) -> str:
        """Describe the time remaining until the task is due.

        Args:
            now: Reference instant. Defaults to the current time.

        Returns:
            Text such as 'In 2h 15m' or 'Due now'.
        """
        if self.completed:
            return "Completed"

        current = now or _utcnow()
        if current >= self.scheduled_at:
            return "Due now"

        total_minutes = int((self.scheduled_at - current).total_seconds() // 60)
        hours, minutes = divmod(total_minutes, 60)

        if hours > 24:
            days = hours // 24
            return f"In {days} day{'' if days == 1 else 's'}"
        if hours > 0:
            return f"In {hours}h {minutes}m" if minutes > 0 else f"In {hours}h"
        if minutes > 0:
            return f"In {minutes} minute{'' if minutes == 1 else 's'}"
        return "In less than a minute"

    @property
    def scheduled_time_display(self) -> str:
        """Scheduled time in local time, e.g. 'Mar 02, 10:00 PM'."""
        return self.scheduled_at.astimezone().strftime("%b %d, %I:%M %p")

    def mark_completed(self) -> None:
        self.completed = True

    def mark_failed(self, error: str) -> None:
        """Mark the task as run with an error.

        Args:
            error: One-line failure summary.
        """
        self.completed = True
        self.error = error

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON storage."""
        return {
            "id": self.id,
            "package_id": self.package_id,
            "package_name": self.package_name,
            "source": self.source.value,
            "operation": self.operation.value,
            "scheduled_at": self.scheduled_at.isoformat(),
            "created_at": self.created_at.isoformat(),
            "completed": self.completed,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduledTask:
        """Deserialize from dictionary.

        Args:
            data: Dictionary containing task data.

        Returns:
            ScheduledTask instance.

        Raises:
            KeyError: If required fields are missing.
            ValueError: If source, operation or timestamps are invalid.
        """
        return cls(
            id=data["id"],
            package_id=data["package_id"],
            package_name=data["package_name"],
            source=PackageSource(data["source"]),
            operation=ScheduledOperation(data["operation"]),
            scheduled_at=datetime.fromisoformat(data["scheduled_at"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            completed=data.get("completed", False),
            error=data.get("error"),
        )


@dataclass(slots=True)
class SchedulerState:
    """Collection of scheduled tasks in creation order."""

    tasks: list[ScheduledTask] = field(default_factory=lambda: [])

    def add_task(self, task: ScheduledTask, now: datetime | None = None) -> None:
        """Add a task, replacing pending tasks for the same package and operation.

        Args:
            task: Task to add.
            now: Reference instant for deciding which tasks are pending.
        """
        self.tasks = [
            existing
            for existing in self.tasks
            if not (
                existing.package_id == task.package_id
                and existing.operation == task.operation
                and existing.is_pending(now)
            )
        ]
        self.tasks.append(task)

    def get(self, task_id: str) -> ScheduledTask | None:
        """Find a task by id or unique id prefix."""
        matches = [task for task in self.tasks if task.id.startswith(task_id)]
        for task in matches:
            if task.id == task_id:
                return task
        return matches[0] if len(matches) == 1 else None

    def remove_task(self, task_id: str) -> ScheduledTask | None:
        """Remove a task by id.

        Returns:
            The removed task, or None if no task has that id.
        """
        for index, task in enumerate(self.tasks):
            if task.id == task_id:
                return self.tasks.pop(index)
        return None

    def pending_tasks(self, now: datetime | None = None) -> list[ScheduledTask]:
        return [task for task in self.tasks if task.is_pending(now)]

    def due_tasks(self, now: datetime | None = None) -> list[ScheduledTask]:
        return [task for task in self.tasks if task.is_due(now)]

    def get_pending_for_package(
        self, package_id: str, now: datetime | None = None
    ) -> ScheduledTask | None:
        for task in self.tasks:
            if task.package_id == package_id and task.is_pending(now):
                return task
        return None

    def has_pending_schedule(self, package_id: str, now: datetime | None = None) -> bool:
        return self.get_pending_for_package(package_id, now) is not None

    def pending_count(self, now: datetime | None = None) -> int:
        return len(self.pending_tasks(now))

    def cleanup_old_tasks(self, keep: int = KEEP_COMPLETED_TASKS) -> None:
        """Drop the oldest completed tasks beyond ``keep``.

        Pending and due tasks are never removed.
        """
        completed = [task for task in self.tasks if task.completed]
        if len(completed) <= keep:
            return
        stale = {task.id for task in completed[: len(completed) - keep]}
        self.tasks = [task for task in self.tasks if task.id not in stale]

    def to_dict(self) -> dict[str, Any]:
        return {"tasks": [task.to_dict() for task in self.tasks]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchedulerState:
        """Deserialize from dictionary.

        Raises:
            KeyError: If a task lacks required fields.
            ValueError: If a task contains invalid values.
        """
        return cls(tasks=[ScheduledTask.from_dict(item) for item in data.get("tasks", [])])
