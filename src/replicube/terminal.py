"""A Rich-based scene renderer that draws the grid in the terminal."""

import math
from typing import Dict, List, Optional, Tuple

from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .animator import Vec3
from .scene import RGB, CubeGeometry, Drawable

BLOCK = "█"


def _shade(color: RGB, factor: float) -> str:
    r, g, b = (max(0.0, min(1.0, c * factor)) for c in color)
    return f"#{round(r * 255):02x}{round(g * 255):02x}{round(b * 255):02x}"


class TerminalScene:
    """Orthographic view of the drawables, looking down -Z.

    Each drawable is a square footprint on a character canvas. Nearer cells
    (larger z) overwrite farther ones, and fully transparent cells are not
    drawn. Terminal characters are about twice as tall as they are wide, so
    columns use twice the row scale.
    """

    def __init__(
        self,
        extent: float = 1.0,
        rows: int = 24,
        console: Optional[Console] = None,
        title: str = "replicube",
    ):
        self.extent = extent
        self.rows = rows
        self.cols = rows * 2
        self.console = console or Console()
        self.title = title
        self.status = ""
        self.drawables: Dict[str, Drawable] = {}
        self.frames = 0
        self.live: Optional[Live] = None

    def register_drawable(self, name: str, geometry: CubeGeometry) -> None:
        self.drawables[name] = Drawable(name, geometry)

    def set_transform(self, name: str, position: Vec3, orientation: Vec3) -> None:
        drawable = self.drawables[name]
        drawable.position = tuple(position)
        drawable.orientation = tuple(orientation)

    def set_appearance(self, name: str, color: RGB, opacity: float) -> None:
        drawable = self.drawables[name]
        drawable.color = tuple(color)
        drawable.opacity = opacity

    def _project(self, x: float, y: float) -> Tuple[float, float]:
        col = (x / self.extent + 1) / 2 * (self.cols - 1)
        row = (1 - (y / self.extent + 1) / 2) * (self.rows - 1)
        return col, row

    def rasterize(self) -> List[List[Optional[str]]]:
        """Canvas of styles (None for background), one entry per character."""
        canvas: List[List[Optional[str]]] = [
            [None] * self.cols for _ in range(self.rows)
        ]
        depth = [[-math.inf] * self.cols for _ in range(self.rows)]
        row_scale = (self.rows - 1) / (2 * self.extent)

        for drawable in self.drawables.values():
            if drawable.opacity <= 0:
                continue
            x, y, z = drawable.position
            col, row = self._project(x, y)
            half_rows = max(0.5, drawable.geometry.size * row_scale / 2)
            half_cols = half_rows * 2
            # light comes from the viewer, so nearer faces are brighter
            style = _shade(drawable.color, 0.55 + 0.45 * (z / self.extent + 1) / 2)
            top = math.floor(row - half_rows + 0.5)
            left = math.floor(col - half_cols + 0.5)
            bottom = math.floor(row + half_rows + 0.5)
            right = math.floor(col + half_cols + 0.5)
            for r in range(top, bottom):
                if not 0 <= r < self.rows:
                    continue
                for c in range(left, right):
                    if 0 <= c < self.cols and z > depth[r][c]:
                        depth[r][c] = z
                        canvas[r][c] = style
        return canvas

    def compose(self) -> Panel:
        text = Text()
        for i, row in enumerate(self.rasterize()):
            if i:
                text.append("\n")
            for style in row:
                if style is None:
                    text.append(" ")
                else:
                    text.append(BLOCK, style=style)
        return Panel(text, title=self.title, subtitle=self.status or None, expand=False)

    def render_frame(self) -> None:
        self.frames += 1
        if self.live is not None:
            self.live.update(self.compose(), refresh=True)

    def start(self) -> None:
        if self.live is None:
            self.live = Live(
                self.compose(),
                console=self.console,
                auto_refresh=False,
                transient=False,
            )
            self.live.__enter__()

    def stop(self) -> None:
        if self.live is not None:
            self.live.__exit__(None, None, None)
            self.live = None
