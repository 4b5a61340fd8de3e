"""CLI interface for replicube."""

import logging
import pathlib
import sys
from typing import Optional

import click

from .app import ReplicubeApp, summarize_report
from .config import ReplicubeConfig
from .errors import FileWatchError
from .logging import configure_logging
from .script_engine import Mode
from .terminal import TerminalScene

logger = logging.getLogger(__name__)


@click.command()
@click.argument("script", type=click.Path(path_type=pathlib.Path))
@click.option(
    "--size",
    "-n",
    type=click.IntRange(min=1),
    default=5,
    help="Cells per edge (default: 5)",
)
@click.option(
    "--cell-size",
    type=click.FloatRange(min=0, min_open=True),
    default=0.2,
    help="Edge length of one cell (default: 0.2)",
)
@click.option(
    "--gap",
    type=click.FloatRange(min=0),
    default=0.01,
    help="Space between cells (default: 0.01)",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in Mode]),
    default=Mode.PER_CELL.value,
    help="Evaluate the script once per cell or once for the whole grid",
)
@click.option(
    "--fps",
    type=click.FloatRange(min=0, min_open=True),
    default=60.0,
    help="Frames per second (default: 60)",
)
@click.option(
    "--frames",
    type=click.IntRange(min=0),
    default=None,
    help="Stop after this many frames",
)
@click.option(
    "--step",
    type=float,
    default=0.01,
    help="Rotation per frame in radians (default: 0.01)",
)
@click.option(
    "--axis",
    type=click.Choice(["x", "y", "z"]),
    default="y",
    help="Rotation axis (default: y)",
)
@click.option(
    "--timeout",
    type=click.FloatRange(min=0),
    default=1.0,
    help=(
        "Seconds one whole reload may run before it is abandoned. In per-cell "
        "mode this covers all N^3 evaluations. 0 disables it (default: 1)"
    ),
)
@click.option(
    "--poll",
    is_flag=True,
    help="Poll the file system instead of using OS notifications",
)
@click.option("--headless", is_flag=True, help="Do not draw; only log reloads")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(package_name="replicube")
def main(
    script: pathlib.Path,
    size: int,
    cell_size: float,
    gap: float,
    mode: str,
    fps: float,
    frames: Optional[int],
    step: float,
    axis: str,
    timeout: float,
    poll: bool,
    headless: bool,
    verbose: bool,
):
    """Live-program the colors of a spinning cube of cubes.

    SCRIPT is a Python file evaluated on every save. Its last expression is
    the color, e.g. `red`, `(0.2, 0.4, 1.0)` or `{"R": 1, "G": 0, "B": 0}`.
    In per-cell mode x, y and z hold the cell's position relative to the
    center of the grid.
    """
    configure_logging(verbose)
    config = ReplicubeConfig(
        cell_count=size,
        cell_size=cell_size,
        gap=gap,
        mode=Mode(mode),
        rotation_step=step,
        rotation_axis=axis,
        fps=fps,
        frames=frames,
        script_timeout=timeout or None,
        force_polling=poll,
        headless=headless,
        verbose=verbose,
    )

    scene = None
    if not headless:
        pitch = config.cell_size + config.gap
        extent = config.cell_count * pitch * 3**0.5 / 2 + config.cell_size
        scene = TerminalScene(extent=extent, title=f"replicube · {script.name}")
    app = ReplicubeApp(config, scene)
    if scene is not None:
        app.report_listeners.append(
            lambda report: setattr(scene, "status", summarize_report(report))
        )

    try:
        app.watch(script)
    except FileWatchError as e:
        logger.error("%s", e)
        sys.exit(1)

    if scene is not None:
        scene.start()
    try:
        app.frame_loop.run(fps=config.fps, frames=config.frames)
    except KeyboardInterrupt:
        pass
    finally:
        if scene is not None:
            scene.stop()
        app.close()


if __name__ == "__main__":
    main()
