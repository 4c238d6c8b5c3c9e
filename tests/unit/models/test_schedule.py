"""Unit tests for scheduled operation models."""

import os
import time
from collections.abc import Iterator
from datetime import UTC, datetime, timedelta, timezone

import pytest
from pkgdeck.models.package import PackageSource
from pkgdeck.models.schedule import (
    ScheduledOperation,
    ScheduledTask,
    SchedulePreset,
    SchedulerState,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


@pytest.fixture
def berlin_time() -> Iterator[None]:
    """Run the test with the local timezone set to Europe/Berlin."""
    original = os.environ.get("TZ")
    os.environ["TZ"] = "Europe/Berlin"
    time.tzset()
    yield
    if original is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = original
    time.tzset()


def _task(minutes: float = 60, package: str = "vim", operation=ScheduledOperation.UPDATE, **kwargs) -> ScheduledTask:
    return ScheduledTask(
        package_id=f"APT:{package}",
        package_name=package,
        source=PackageSource.APT,
        operation=operation,
        scheduled_at=NOW + timedelta(minutes=minutes),
        **kwargs,
    )


class TestSchedulePreset:
    """Tests for SchedulePreset resolution."""

    def test_relative_presets(self) -> None:
        """Hour presets add to the current instant."""
        assert SchedulePreset.IN_ONE_HOUR.to_datetime(NOW) == NOW + timedelta(hours=1)
        assert SchedulePreset.IN_THREE_HOURS.to_datetime(NOW) == NOW + timedelta(hours=3)

    def test_custom_has_no_time(self) -> None:
        """CUSTOM needs an explicit time."""
        assert SchedulePreset.CUSTOM.to_datetime(NOW) is None

    def test_tonight_is_always_in_the_future(self) -> None:
        """After 22:00 local time 'tonight' moves to the next day."""
        local = NOW.astimezone()
        late = local.replace(hour=23, minute=30)
        early = local.replace(hour=9, minute=0)

        late_target = SchedulePreset.TONIGHT.to_datetime(late)
        early_target = SchedulePreset.TONIGHT.to_datetime(early)

        assert late_target is not None and late_target > late
        assert late_target.astimezone().hour == 22
        assert early_target is not None and early_target.astimezone().date() == early.date()

    def test_tomorrow_presets(self) -> None:
        """Tomorrow presets resolve to 8:00 and 20:00 local time."""
        morning = SchedulePreset.TOMORROW_MORNING.to_datetime(NOW)
        evening = SchedulePreset.TOMORROW_EVENING.to_datetime(NOW)

        assert morning is not None and morning.astimezone().hour == 8
        assert evening is not None and evening.astimezone().hour == 20
        assert morning.tzinfo == UTC

    def test_tomorrow_uses_offset_of_target_day(self, berlin_time: None) -> None:
        """Summer time starting overnight moves the UTC instant, not the wall clock."""
        # Berlin switches from +01:00 to +02:00 in the night to 2026-03-29
        before_switch = datetime(2026, 3, 28, 11, 0, tzinfo=UTC)

        morning = SchedulePreset.TOMORROW_MORNING.to_datetime(before_switch)

        assert morning == datetime(2026, 3, 29, 6, 0, tzinfo=UTC)

    def test_tonight_after_switch_back(self, berlin_time: None) -> None:
        """'Tonight' past 22:00 lands on 22:00 of the next local day."""
        # 2026-10-24 22:30 CEST; winter time starts early on the 25th
        late = datetime(2026, 10, 24, 20, 30, tzinfo=UTC)

        target = SchedulePreset.TONIGHT.to_datetime(late)

        assert target == datetime(2026, 10, 25, 21, 0, tzinfo=UTC)


class TestScheduledTask:
    """Tests for ScheduledTask."""

    def test_requires_aware_time(self) -> None:
        """Naive scheduled times are rejected."""
        with pytest.raises(ValueError, match="timezone-aware"):
            ScheduledTask(
                package_id="APT:vim",
                package_name="vim",
                source=PackageSource.APT,
                operation=ScheduledOperation.UPDATE,
                scheduled_at=datetime(2026, 1, 1),
            )

    def test_due_and_pending(self) -> None:
        """A task is pending before its time and due after."""
        task = _task(minutes=30)
        assert task.is_pending(NOW)
        assert not task.is_due(NOW)
        assert task.is_due(NOW + timedelta(hours=1))

    def test_completed_task_is_neither(self) -> None:
        """Completed tasks are never due again."""
        task = _task(minutes=-5)
        task.mark_completed()
        assert not task.is_due(NOW)
        assert not task.is_pending(NOW)
        assert not task.failed

    def test_mark_failed(self) -> None:
        """A failed task is completed with an error."""
        task = _task()
        task.mark_failed("Authorization failed")
        assert task.completed
        assert task.failed
        assert task.error == "Authorization failed"

    @pytest.mark.parametrize(
        ("minutes", "expected"),
        [
            (-1, "Due now"),
            (0.5, "In less than a minute"),
            (1, "In 1 minute"),
            (45, "In 45 minutes"),
            (60, "In 1h"),
            (135, "In 2h 15m"),
            (60 * 49, "In 2 days"),
        ],
    )
    def test_time_until(self, minutes: float, expected: str) -> None:
        """Remaining time is described in the largest useful unit."""
        assert _task(minutes=minutes).time_until(NOW) == expected

    def test_from_dict_keeps_offset(self) -> None:
        """Stored instants keep their offset."""
        task = _task()
        task.scheduled_at = task.scheduled_at.astimezone(timezone(timedelta(hours=2)))
        restored = ScheduledTask.from_dict(task.to_dict())
        assert restored.scheduled_at == task.scheduled_at
        assert restored.id == task.id


class TestSchedulerState:
    """Tests for SchedulerState."""

    def test_add_replaces_pending_duplicate(self) -> None:
        """A second pending update for a package replaces the first."""
        state = SchedulerState()
        first = _task(minutes=30)
        second = _task(minutes=90)
        state.add_task(first, NOW)
        state.add_task(second, NOW)

        assert state.tasks == [second]

    def test_add_keeps_other_operations(self) -> None:
        """Different operations on one package coexist."""
        state = SchedulerState()
        state.add_task(_task(), NOW)
        state.add_task(_task(operation=ScheduledOperation.REMOVE), NOW)
        assert len(state.tasks) == 2

    def test_get_and_remove(self) -> None:
        """Tasks are found by prefix and removed by full id."""
        state = SchedulerState()
        task = _task(id="deadbeef" * 4)
        state.add_task(task, NOW)

        assert state.get("dead") is task
        assert state.remove_task("dead") is None
        assert state.remove_task(task.id) is task
        assert state.tasks == []

    def test_pending_and_due(self) -> None:
        """Tasks are split by their scheduled time."""
        state = SchedulerState()
        due = _task(minutes=-10, package="curl")
        pending = _task(minutes=10)
        state.add_task(due, NOW)
        state.add_task(pending, NOW)

        assert state.due_tasks(NOW) == [due]
        assert state.pending_tasks(NOW) == [pending]
        assert state.has_pending_schedule("APT:vim", NOW)
        assert not state.has_pending_schedule("APT:curl", NOW)
        assert state.pending_count(NOW) == 1

    def test_cleanup_old_tasks_keeps_pending(self) -> None:
        """Only the oldest completed tasks are dropped."""
        state = SchedulerState()
        done = [_task(package=f"pkg{i}", completed=True) for i in range(3)]
        pending = _task(package="vim")
        state.tasks = [*done, pending]

        state.cleanup_old_tasks(keep=1)

        assert state.tasks == [done[2], pending]
