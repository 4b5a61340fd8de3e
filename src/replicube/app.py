"""Wires the grid, script engine, watcher and frame loop together."""

import logging
import pathlib
import threading
from typing import Callable, List, Optional, Union

from .animator import RotationAnimator
from .config import ReplicubeConfig
from .grid import Grid, build_grid
from .logging import format_duration_ms
from .scene import FrameLoop, RecordingScene, SceneAdapter
from .script_engine import ReloadReport, ScriptEngine
from .watcher import ReloadWatcher, WatchHandle

logger = logging.getLogger(__name__)


def summarize_report(report: ReloadReport) -> str:
    name = pathlib.Path(report.path).name
    if report.error is not None:
        return f"{name}: {report.error.tag}, kept previous colors"
    total = len(report.skipped) + report.painted
    summary = f"{name}: {report.changed}/{total} cells changed"
    if report.skipped:
        summary += f", {len(report.skipped)} skipped"
    return summary


class ReplicubeApp:
    """One live-programming session.

    Reloads run on the watcher thread and only touch the grid's colors. The
    frame loop runs on the calling thread and only reads them.
    """

    def __init__(
        self,
        config: Optional[ReplicubeConfig] = None,
        scene: Optional[SceneAdapter] = None,
    ):
        self.config = (config or ReplicubeConfig()).validate()
        self.grid: Grid = build_grid(
            self.config.cell_count, self.config.cell_size, self.config.gap
        )
        self.engine = ScriptEngine(self.grid, timeout=self.config.script_timeout)
        self.scene = scene if scene is not None else RecordingScene()
        self.frame_loop = FrameLoop(
            self.grid,
            self.scene,
            RotationAnimator(self.config.rotation_step, self.config.rotation_axis),
        )
        self.watcher = ReloadWatcher(
            debounce_ms=self.config.debounce_ms,
            step_ms=self.config.step_ms,
            force_polling=self.config.force_polling,
        )
        self.handle: Optional[WatchHandle] = None
        self.last_report: Optional[ReloadReport] = None
        self.report_listeners: List[Callable[[ReloadReport], None]] = []

    def on_reload(self, path: Union[str, pathlib.Path]) -> ReloadReport:
        report = self.engine.reload(path, self.config.mode)
        self.last_report = report
        duration = format_duration_ms(report.duration_ms)

        if report.error is not None:
            logger.warning("Reload abandoned after %s: %s", duration, report.error)
        else:
            logger.info(
                "Reloaded %s (%s mode): %d cells painted, %d changed in %s",
                report.path,
                report.mode.value,
                report.painted,
                report.changed,
                duration,
            )
            if report.skipped:
                name, reason = report.skipped[0]
                logger.warning(
                    "Skipped %d cells, first was %s: %s",
                    len(report.skipped),
                    name,
                    reason,
                )

        for listener in self.report_listeners:
            listener(report)
        return report

    def watch(self, script_path: Union[str, pathlib.Path]) -> WatchHandle:
        """Start watching; raises FileWatchError if the file cannot be watched."""
        self.handle = self.watcher.start(script_path, self.on_reload)
        return self.handle

    def run(
        self,
        script_path: Union[str, pathlib.Path],
        stop_event: Optional[threading.Event] = None,
    ) -> int:
        """Watch the script and draw frames until done. Returns frames drawn."""
        self.watch(script_path)
        try:
            return self.frame_loop.run(
                fps=self.config.fps, frames=self.config.frames, stop_event=stop_event
            )
        finally:
            self.close()

    def close(self) -> None:
        if self.handle is not None:
            self.handle.close()
            self.handle = None
