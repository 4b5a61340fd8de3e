"""Watch the script file and trigger reloads on every write."""

import logging
import pathlib
import threading
from typing import Callable, Optional, Tuple, Union

from watchfiles import Change, watch

from .errors import FileWatchError

logger = logging.getLogger(__name__)

ReloadCallback = Callable[[pathlib.Path], None]

# Editors that save via rename-over show up as "added"
WRITE_CHANGES = frozenset({Change.added, Change.modified})

# How long the watch thread waits for events before it reports itself idle
IDLE_MS = 200

Signature = Tuple[int, int]


class WatchHandle:
    """A running watch. Close it to stop the background thread."""

    def __init__(
        self,
        script_path: pathlib.Path,
        on_reload: ReloadCallback,
        *,
        debounce_ms: int,
        step_ms: int,
        force_polling: bool,
    ):
        self.script_path = script_path
        self.on_reload = on_reload
        self.debounce_ms = debounce_ms
        self.step_ms = step_ms
        self.force_polling = force_polling
        self.reload_count = 0
        self.ready = threading.Event()
        self._seen: Optional[Signature] = None
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name=f"replicube-watch:{script_path.name}", daemon=True
        )

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def _is_target(self, change: Change, path: str) -> bool:
        if change not in WRITE_CHANGES:
            return False
        return pathlib.Path(path).resolve() == self.script_path

    def _signature(self) -> Optional[Signature]:
        try:
            stat = self.script_path.stat()
        except OSError:
            return None
        return (stat.st_mtime_ns, stat.st_size)

    def deliver(self) -> None:
        """Run the reload callback. A failing callback never stops the watch."""
        self.reload_count += 1
        self._seen = self._signature()
        try:
            self.on_reload(self.script_path)
        except Exception:
            logger.exception("Reload of %s failed", self.script_path)

    def catch_up(self) -> bool:
        """Reload if the file changed since the last delivery.

        Covers writes made before the watch was registered, which produce
        no event.
        """
        signature = self._signature()
        if signature is None or signature == self._seen:
            return False
        logger.debug("%s changed while the watch was starting", self.script_path)
        self.deliver()
        return True

    def wait_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the watch is registered and caught up."""
        return self.ready.wait(timeout)

    def _run(self) -> None:
        try:
            for changes in watch(
                self.script_path.parent,
                watch_filter=self._is_target,
                debounce=self.debounce_ms,
                step=self.step_ms,
                stop_event=self._stop_event,
                rust_timeout=IDLE_MS,
                yield_on_timeout=True,
                force_polling=self.force_polling or None,
                recursive=False,
                raise_interrupt=False,
            ):
                if changes:
                    logger.debug("Changes detected: %s", changes)
                    self.deliver()
                elif not self.ready.is_set():
                    self.catch_up()
                self.ready.set()
        except Exception as e:
            # A broken watch channel ends the loop like a normal shutdown
            logger.debug("Watch on %s ended: %s", self.script_path, e)
        logger.debug("Stopped watching %s", self.script_path)

    def start(self) -> "WatchHandle":
        self._thread.start()
        return self

    def close(self, timeout: Optional[float] = 5.0) -> None:
        self._stop_event.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def __enter__(self) -> "WatchHandle":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ReloadWatcher:
    """Starts watches on script files.

    ``start`` validates the path, performs one eager reload so the grid
    matches the script before any edit, then watches for writes on a
    daemon thread.
    """

    def __init__(
        self, *, debounce_ms: int = 50, step_ms: int = 50, force_polling: bool = False
    ):
        self.debounce_ms = debounce_ms
        self.step_ms = step_ms
        self.force_polling = force_polling

    def start(
        self, script_path: Union[str, pathlib.Path], on_reload: ReloadCallback
    ) -> WatchHandle:
        path = pathlib.Path(script_path)
        try:
            path = path.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise FileWatchError(f"cannot watch {script_path}: {e}") from e
        if not path.is_file():
            raise FileWatchError(f"cannot watch {script_path}: not a regular file")

        handle = WatchHandle(
            path,
            on_reload,
            debounce_ms=self.debounce_ms,
            step_ms=self.step_ms,
            force_polling=self.force_polling,
        )
        logger.info("Watching %s for changes", path)
        handle.deliver()
        return handle.start()
