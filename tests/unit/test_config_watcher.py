"""Unit tests for the configuration file watcher."""

import logging
import threading
from unittest.mock import MagicMock, Mock, patch

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from hotconfig import ConfigIOError
from hotconfig.config.watcher import ConfigChangeHandler, ConfigWatcher, WatcherState


@pytest.fixture
def watched_path(temp_config_dir):
    path = temp_config_dir / "cfg.properties"
    path.write_text("")
    return path


@pytest.fixture
def on_change():
    return Mock()


@pytest.fixture
def watcher(watched_path, on_change):
    return ConfigWatcher(watched_path, on_change, threading.RLock())


@pytest.fixture
def mock_observer():
    with patch("hotconfig.config.watcher.Observer") as observer_cls:
        observer = MagicMock()
        observer_cls.return_value = observer
        yield observer


class TestConfigChangeHandler:
    """Test cases for event filtering."""

    def test_modification_of_watched_file_triggers_change(self, watcher, watched_path, on_change):
        handler = ConfigChangeHandler(watcher)
        handler.dispatch(FileModifiedEvent(str(watched_path)))
        on_change.assert_called_once_with()

    def test_close_after_write_triggers_change(self, watcher, watched_path, on_change):
        ConfigChangeHandler(watcher).dispatch(FileClosedEvent(str(watched_path)))
        on_change.assert_called_once_with()

    def test_rename_onto_watched_file_triggers_change(self, watcher, watched_path, on_change):
        temp_file = watched_path.with_suffix(".tmp")
        ConfigChangeHandler(watcher).dispatch(FileMovedEvent(str(temp_file), str(watched_path)))
        on_change.assert_called_once_with()

    def test_rename_away_from_watched_file_is_ignored(self, watcher, watched_path, on_change):
        backup = watched_path.with_suffix(".bak")
        ConfigChangeHandler(watcher).dispatch(FileMovedEvent(str(watched_path), str(backup)))
        on_change.assert_not_called()

    def test_other_files_are_ignored(self, watcher, temp_config_dir, on_change):
        handler = ConfigChangeHandler(watcher)
        handler.dispatch(FileModifiedEvent(str(temp_config_dir / "other.properties")))
        handler.dispatch(FileModifiedEvent(str(temp_config_dir / "cfg.properties.swp")))
        on_change.assert_not_called()

    def test_directory_events_are_ignored(self, watcher, temp_config_dir, on_change):
        ConfigChangeHandler(watcher).dispatch(DirModifiedEvent(str(temp_config_dir)))
        on_change.assert_not_called()

    def test_creation_alone_is_ignored(self, watcher, watched_path, on_change):
        ConfigChangeHandler(watcher).dispatch(FileCreatedEvent(str(watched_path)))
        on_change.assert_not_called()

    def test_bytes_paths_are_decoded(self, watcher, watched_path, on_change):
        ConfigChangeHandler(watcher).dispatch(FileModifiedEvent(bytes(watched_path)))
        on_change.assert_called_once_with()

    def test_change_runs_under_lock(self, watched_path):
        lock = threading.Lock()
        observed = []
        watcher = ConfigWatcher(watched_path, lambda: observed.append(lock.locked()), lock)

        ConfigChangeHandler(watcher).dispatch(FileModifiedEvent(str(watched_path)))

        assert observed == [True]
        assert not lock.locked()

    def test_change_errors_are_logged(self, watched_path, caplog):
        watcher = ConfigWatcher(watched_path, Mock(side_effect=RuntimeError("boom")), threading.RLock())

        with caplog.at_level(logging.ERROR, logger="hotconfig.config.watcher"):
            ConfigChangeHandler(watcher).dispatch(FileModifiedEvent(str(watched_path)))

        assert "boom" in caplog.text

    def test_no_change_after_cancellation(self, watcher, watched_path, on_change):
        watcher.stop()
        ConfigChangeHandler(watcher).dispatch(FileModifiedEvent(str(watched_path)))
        on_change.assert_not_called()


class TestConfigWatcherLifecycle:
    """Test cases for starting and stopping the watcher."""

    def test_initial_state(self, watcher):
        assert watcher.state is WatcherState.STOPPED
        assert not watcher.is_alive
        assert watcher.error is None

    def test_start_schedules_parent_directory(self, watcher, watched_path, mock_observer):
        assert watcher.start() is True

        assert watcher.state is WatcherState.RUNNING
        args, kwargs = mock_observer.schedule.call_args
        assert isinstance(args[0], ConfigChangeHandler)
        assert args[1] == str(watched_path.parent)
        assert kwargs == {"recursive": False}
        mock_observer.start.assert_called_once_with()

    def test_stop_closes_exactly_once(self, watcher, mock_observer):
        watcher.start()

        watcher.stop(timeout=1)
        watcher.stop(timeout=1)

        assert watcher.state is WatcherState.CLOSED
        assert watcher.cancelled
        mock_observer.stop.assert_called_once_with()
        mock_observer.join.assert_called_once_with(1)

    def test_start_twice_is_rejected(self, watcher, mock_observer):
        watcher.start()
        with pytest.raises(RuntimeError):
            watcher.start()

    def test_no_restart_after_stop(self, watcher, mock_observer):
        watcher.start()
        watcher.stop()
        with pytest.raises(RuntimeError):
            watcher.start()

    def test_setup_failure_is_logged(self, watcher, mock_observer, caplog):
        mock_observer.schedule.side_effect = OSError("inotify watch limit reached")

        with caplog.at_level(logging.WARNING, logger="hotconfig.config.watcher"):
            assert watcher.start() is False

        assert watcher.state is WatcherState.STOPPED
        assert not watcher.is_alive
        assert "Failed to watch" in caplog.text
        assert "inotify watch limit reached" in caplog.text

    def test_setup_failure_cannot_be_retried(self, watcher, mock_observer):
        mock_observer.start.side_effect = OSError("unsupported")
        watcher.start()

        with pytest.raises(RuntimeError):
            watcher.start()

    def test_close_failure_is_raised_and_kept(self, watcher, mock_observer):
        mock_observer.stop.side_effect = OSError("bad file descriptor")
        watcher.start()

        with pytest.raises(ConfigIOError) as exc_info:
            watcher.stop()

        assert watcher.error is exc_info.value
        assert isinstance(exc_info.value.__cause__, OSError)
        assert watcher.state is WatcherState.CLOSED

        watcher.stop()
        mock_observer.stop.assert_called_once_with()


class TestManagerWatching:
    """Test cases for the manager's use of the watcher."""

    def test_watch_enabled(self, person_model, config_path, make_manager, mock_observer):
        manager = make_manager(person_model, config_path, watch=True)

        assert manager.watcher is not None
        assert manager.watcher.state is WatcherState.RUNNING
        assert manager.watching

        manager.close()
        assert manager.watcher.state is WatcherState.CLOSED
        assert not manager.watching

    def test_setup_failure_does_not_fail_construction(self, person_model, config_path,
                                                      make_manager, mock_observer):
        mock_observer.schedule.side_effect = OSError("unsupported file system")

        manager = make_manager(person_model, config_path, watch=True)

        assert manager.watcher is None
        assert not manager.watching
        config_path.write_text("name=Heidi\n")
        assert manager.reload() is True
        assert person_model.name == "Heidi"

    def test_watcher_event_reloads_model(self, person_model, config_path, make_manager, mock_observer):
        manager = make_manager(person_model, config_path, watch=True)
        handler = mock_observer.schedule.call_args[0][0]

        config_path.write_text("name=Ivan\n")
        handler.dispatch(FileModifiedEvent(str(config_path)))

        assert person_model.name == "Ivan"
        assert manager.cache == {"name": "Ivan"}
