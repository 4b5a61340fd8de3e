"""Tests for the reload watcher."""

import threading
import time

import pytest
from watchfiles import Change

from replicube.app import ReplicubeApp
from replicube.config import ReplicubeConfig
from replicube.errors import FileWatchError, ScriptRuntimeError
from replicube.watcher import ReloadWatcher, WatchHandle


def wait_for(predicate, timeout=5.0, interval=0.05):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def watcher():
    return ReloadWatcher(debounce_ms=20, step_ms=20, force_polling=True)


class Recorder:
    def __init__(self):
        self.paths = []
        self.threads = []
        self.event = threading.Event()

    def __call__(self, path):
        self.paths.append(path)
        self.threads.append(threading.current_thread())
        self.event.set()


class TestStart:
    def test_missing_file_is_fatal(self, tmp_path, watcher):
        with pytest.raises(FileWatchError):
            watcher.start(tmp_path / "missing.py", Recorder())

    def test_directory_is_rejected(self, tmp_path, watcher):
        with pytest.raises(FileWatchError):
            watcher.start(tmp_path, Recorder())

    def test_eager_reload_on_start(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        recorder = Recorder()

        with watcher.start(script, recorder) as handle:
            assert recorder.paths == [script.resolve()]
            assert recorder.threads == [threading.current_thread()]
            assert handle.reload_count == 1
            assert handle.running
        assert not handle.running


class TestWatching:
    def test_write_triggers_reload(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        recorder = Recorder()

        with watcher.start(script, recorder) as handle:
            assert handle.wait_ready(5.0)
            script.write_text("blue\n")
            assert wait_for(lambda: len(recorder.paths) >= 2)
            assert recorder.paths[-1] == script.resolve()
            assert recorder.threads[-1] is not threading.current_thread()
            assert handle.reload_count == len(recorder.paths)

    def test_other_files_are_ignored(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        other = tmp_path / "notes.txt"
        recorder = Recorder()

        with watcher.start(script, recorder):
            for i in range(5):
                other.write_text("x" * i)
                time.sleep(0.1)
            time.sleep(0.5)
            assert len(recorder.paths) == 1

    def test_failing_callback_keeps_watching(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        calls = []

        def on_reload(path):
            calls.append(path)
            raise RuntimeError("boom")

        with watcher.start(script, on_reload) as handle:
            assert calls == [script.resolve()]
            assert handle.wait_ready(5.0)
            script.write_text("blue\n")
            assert wait_for(lambda: len(calls) >= 2)
            assert handle.running

    def test_close_stops_promptly(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        handle = watcher.start(script, Recorder())

        started = time.monotonic()
        handle.close()
        assert not handle.running
        assert time.monotonic() - started < 5.0
        handle.close()

    def test_only_write_events_qualify(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")

        with watcher.start(script, Recorder()) as handle:
            assert handle._is_target(Change.modified, str(script))
            assert handle._is_target(Change.added, str(script))
            assert not handle._is_target(Change.deleted, str(script))
            assert not handle._is_target(Change.modified, str(tmp_path / "other.py"))


class TestCatchUp:
    def make_handle(self, script, on_reload):
        return WatchHandle(
            script.resolve(),
            on_reload,
            debounce_ms=20,
            step_ms=20,
            force_polling=True,
        )

    def test_write_before_watch_is_registered(self, tmp_path):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        recorder = Recorder()
        handle = self.make_handle(script, recorder)

        handle.deliver()
        script.write_text("blue, but longer\n")
        assert handle.catch_up()
        assert handle.reload_count == 2
        assert not handle.catch_up()
        assert handle.reload_count == 2

    def test_unchanged_file_is_not_reloaded(self, tmp_path):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        handle = self.make_handle(script, Recorder())

        handle.deliver()
        assert not handle.catch_up()
        script.unlink()
        assert not handle.catch_up()
        assert handle.reload_count == 1

    def test_save_right_after_start_is_not_lost(self, tmp_path, watcher):
        script = tmp_path / "cube.py"
        script.write_text("red\n")
        contents = []

        def on_reload(path):
            contents.append(path.read_text())

        with watcher.start(script, on_reload) as handle:
            script.write_text("blue, saved during startup\n")
            assert handle.wait_ready(5.0)
            assert wait_for(lambda: contents[-1] == "blue, saved during startup\n")
            assert handle.running


class TestScriptExit:
    def test_exit_in_script_keeps_watching(self, tmp_path):
        script = tmp_path / "cube.py"
        script.write_text("raise SystemExit(3)\n")
        config = ReplicubeConfig(
            cell_count=2, debounce_ms=20, step_ms=20, force_polling=True
        )
        app = ReplicubeApp(config)

        handle = app.watch(script)
        try:
            assert isinstance(app.last_report.error, ScriptRuntimeError)
            assert handle.wait_ready(5.0)
            script.write_text("exit()\n")
            assert wait_for(lambda: handle.reload_count >= 2)
            assert handle.running

            script.write_text("red\n")
            assert wait_for(lambda: app.last_report.ok)
            assert handle.running
        finally:
            app.close()
