"""The scene renderer interface and the frame loop that drives it."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from .animator import RotationAnimator, RotationState, Vec3
from .colors import Color
from .grid import Grid

logger = logging.getLogger(__name__)

RGB = Tuple[float, float, float]


@dataclass(frozen=True)
class CubeGeometry:
    size: float


@runtime_checkable
class SceneAdapter(Protocol):
    """What the core needs from a renderer.

    Transform and appearance updates made before ``render_frame`` must show
    up in that frame. Drawables are referred to by name only.
    """

    def register_drawable(self, name: str, geometry: CubeGeometry) -> None: ...

    def set_transform(self, name: str, position: Vec3, orientation: Vec3) -> None: ...

    def set_appearance(self, name: str, color: RGB, opacity: float) -> None: ...

    def render_frame(self) -> None: ...


@dataclass
class Drawable:
    name: str
    geometry: CubeGeometry
    position: Vec3 = (0.0, 0.0, 0.0)
    orientation: Vec3 = (0.0, 0.0, 0.0)
    color: RGB = (1.0, 1.0, 1.0)
    opacity: float = 1.0


@dataclass
class RecordingScene:
    """In-memory scene: keeps the latest state of every drawable."""

    drawables: Dict[str, Drawable] = field(default_factory=dict)
    frames: int = 0
    appearance_updates: int = 0

    def _get(self, name: str) -> Drawable:
        try:
            return self.drawables[name]
        except KeyError:
            raise KeyError(f"drawable {name!r} is not registered") from None

    def register_drawable(self, name: str, geometry: CubeGeometry) -> None:
        if name in self.drawables:
            raise ValueError(f"drawable {name!r} is already registered")
        self.drawables[name] = Drawable(name, geometry)

    def set_transform(self, name: str, position: Vec3, orientation: Vec3) -> None:
        drawable = self._get(name)
        drawable.position = tuple(position)
        drawable.orientation = tuple(orientation)

    def set_appearance(self, name: str, color: RGB, opacity: float) -> None:
        drawable = self._get(name)
        drawable.color = tuple(color)
        drawable.opacity = opacity
        self.appearance_updates += 1

    def render_frame(self) -> None:
        self.frames += 1


class FrameLoop:
    """Pushes rotation and colors to the scene once per frame.

    Only appearances whose color changed since the previous push are sent.
    The loop must not be re-entered; a nested ``step`` raises RuntimeError.
    """

    def __init__(
        self,
        grid: Grid,
        scene: SceneAdapter,
        animator: Optional[RotationAnimator] = None,
        state: Optional[RotationState] = None,
    ):
        self.grid = grid
        self.scene = scene
        self.animator = animator or RotationAnimator()
        self.state = state or RotationState()
        self.frame = 0
        self._registered = False
        self._pushed: Dict[str, Color] = {}
        self._guard = threading.Lock()

    def register(self) -> None:
        if self._registered:
            return
        geometry = CubeGeometry(self.grid.cell_size)
        for cell in self.grid.iterate():
            self.scene.register_drawable(cell.name, geometry)
            self.scene.set_transform(cell.name, cell.base_position, (0.0, 0.0, 0.0))
        self._registered = True
        logger.debug("Registered %d drawables", len(self.grid))

    def push_appearance(self) -> int:
        snapshot = self.grid.color_snapshot()
        pushed = 0
        for name, color in snapshot.items():
            if self._pushed.get(name) != color:
                self.scene.set_appearance(name, color.rgb, color.a)
                pushed += 1
        self._pushed = snapshot
        return pushed

    def step(self, dt: Optional[float] = None) -> None:
        if not self._guard.acquire(blocking=False):
            raise RuntimeError("frame loop re-entered")
        try:
            self.register()
            for transform in self.animator.tick(self.grid, self.state, dt):
                self.scene.set_transform(
                    transform.name, transform.position, transform.orientation
                )
            self.push_appearance()
            self.scene.render_frame()
            self.frame += 1
        finally:
            self._guard.release()

    def run(
        self,
        fps: float = 60.0,
        frames: Optional[int] = None,
        stop_event: Optional[threading.Event] = None,
    ) -> int:
        """Step at about ``fps`` until ``frames`` are drawn or ``stop_event`` is set."""
        interval = 1.0 / fps if fps > 0 else 0.0
        drawn = 0
        last = time.perf_counter()
        while frames is None or drawn < frames:
            if stop_event is not None and stop_event.is_set():
                break
            now = time.perf_counter()
            self.step(now - last)
            last = now
            drawn += 1
            remaining = interval - (time.perf_counter() - now)
            if remaining > 0:
                time.sleep(remaining)
        return drawn
