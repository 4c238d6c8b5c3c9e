"""Unit tests for the schedule command group."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

from pkgdeck.cli.main import app
from pkgdeck.core.history import HistoryTracker
from pkgdeck.core.manager import PackageManager
from pkgdeck.core.scheduler import SchedulerStore
from pkgdeck.errors import BackendError, BackendOperation
from pkgdeck.models.package import PackageSource
from pkgdeck.models.schedule import ScheduledOperation, ScheduledTask
from typer.testing import CliRunner

runner = CliRunner()


def _store_task(
    minutes: int, name: str = "vim", operation: ScheduledOperation = ScheduledOperation.UPDATE
) -> ScheduledTask:
    store = SchedulerStore()
    state = store.load()
    task = ScheduledTask(
        package_id=f"APT:{name}",
        package_name=name,
        source=PackageSource.APT,
        operation=operation,
        scheduled_at=datetime.now(UTC) + timedelta(minutes=minutes),
    )
    state.add_task(task)
    store.save(state)
    return task


class TestAddCommand:
    """Tests for pkgdeck schedule add."""

    def test_add_with_preset(self) -> None:
        """A preset schedules a pending task."""
        result = runner.invoke(app, ["schedule", "add", "vim", "--source", "apt", "--preset", "in_one_hour"])

        assert result.exit_code == 0
        tasks = SchedulerStore().load().tasks
        assert [(t.package_id, t.operation) for t in tasks] == [("APT:vim", ScheduledOperation.UPDATE)]

    def test_add_at_time(self) -> None:
        """An explicit future time is accepted."""
        when = (datetime.now() + timedelta(days=2)).replace(microsecond=0).isoformat()

        result = runner.invoke(app, ["schedule", "add", "htop", "-s", "apt", "-o", "install", "--at", when])

        assert result.exit_code == 0
        assert SchedulerStore().load().tasks[0].operation == ScheduledOperation.INSTALL

    def test_past_time_rejected(self) -> None:
        """Times in the past exit with code 1."""
        result = runner.invoke(app, ["schedule", "add", "vim", "-s", "apt", "--at", "2000-01-01T00:00"])

        assert result.exit_code == 1
        assert "must be in the future" in result.output

    def test_requires_when(self) -> None:
        """Either a preset or a time is needed."""
        result = runner.invoke(app, ["schedule", "add", "vim", "-s", "apt"])
        assert result.exit_code == 1

    def test_invalid_name(self) -> None:
        """Option-like names are rejected before anything is stored."""
        result = runner.invoke(app, ["schedule", "add", "vim\nrm", "-s", "apt", "-p", "tonight"])

        assert result.exit_code == 1
        assert SchedulerStore().load().tasks == []


class TestListAndCancel:
    """Tests for pkgdeck schedule list and cancel."""

    def test_list_empty(self) -> None:
        """A message is shown without tasks."""
        result = runner.invoke(app, ["schedule", "list"])

        assert result.exit_code == 0
        assert "No scheduled tasks" in result.stdout

    def test_list_pending(self) -> None:
        """Pending tasks are listed."""
        _store_task(90)

        result = runner.invoke(app, ["schedule", "list"])

        assert result.exit_code == 0
        assert "APT:vim" in result.stdout

    def test_cancel_by_prefix(self) -> None:
        """A unique ID prefix cancels the task."""
        task = _store_task(90)

        result = runner.invoke(app, ["schedule", "cancel", task.id[:8]])

        assert result.exit_code == 0
        assert SchedulerStore().load().tasks == []

    def test_cancel_unknown(self) -> None:
        """Unknown IDs exit with code 1."""
        result = runner.invoke(app, ["schedule", "cancel", "deadbeef"])
        assert result.exit_code == 1


class TestRunCommand:
    """Tests for pkgdeck schedule run."""

    def test_nothing_due(self) -> None:
        """Pending tasks are left alone."""
        _store_task(90)

        result = runner.invoke(app, ["schedule", "run"])

        assert result.exit_code == 0
        assert "No tasks are due" in result.stdout

    def test_runs_due_tasks(self) -> None:
        """Due tasks run through the manager and are recorded in history."""
        task = _store_task(-5)
        manager = MagicMock(spec=PackageManager)

        with patch("pkgdeck.cli.commands.schedule.get_manager", return_value=manager):
            result = runner.invoke(app, ["schedule", "run"])

        assert result.exit_code == 0
        manager.update.assert_called_once_with("vim", PackageSource.APT)
        assert SchedulerStore().load().get(task.id).completed
        tracker = HistoryTracker()
        tracker.load()
        assert tracker.history.entries[0].package_name == "vim"

    def test_failed_task_exits_with_error(self) -> None:
        """A failed task is kept with its error and exits with code 1."""
        task = _store_task(-5, name="htop", operation=ScheduledOperation.INSTALL)
        manager = MagicMock(spec=PackageManager)
        manager.install.side_effect = BackendError(BackendOperation.INSTALL, "htop", PackageSource.APT)

        with patch("pkgdeck.cli.commands.schedule.get_manager", return_value=manager):
            result = runner.invoke(app, ["schedule", "run"])

        assert result.exit_code == 1
        stored = SchedulerStore().load().get(task.id)
        assert stored.failed
        assert stored.error == "Installation failed for 'htop'"
