"""Live-programmable cube of cubes."""

__version__ = "2025.4.1"

from .animator import RotationAnimator, RotationState, Transform, rotation_matrix
from .app import ReplicubeApp
from .colors import NAMED_COLORS, Color
from .config import ReplicubeConfig
from .errors import (
    FileWatchError,
    GridLookupError,
    ReplicubeError,
    ScriptError,
    ScriptRuntimeError,
    ScriptSyntaxError,
    TypeMismatch,
)
from .grid import Cell, Grid, build_grid, cell_name
from .scene import FrameLoop, RecordingScene, SceneAdapter
from .script_engine import Mode, ReloadReport, ScriptEngine, ScriptResult
from .watcher import ReloadWatcher, WatchHandle

__all__ = [
    "__version__",
    # Grid
    "Cell",
    "Grid",
    "build_grid",
    "cell_name",
    "Color",
    "NAMED_COLORS",
    # Scripts
    "Mode",
    "ScriptEngine",
    "ScriptResult",
    "ReloadReport",
    "ReloadWatcher",
    "WatchHandle",
    # Animation and rendering
    "RotationAnimator",
    "RotationState",
    "Transform",
    "rotation_matrix",
    "SceneAdapter",
    "RecordingScene",
    "FrameLoop",
    # Session
    "ReplicubeApp",
    "ReplicubeConfig",
    # Errors
    "ReplicubeError",
    "ScriptError",
    "ScriptSyntaxError",
    "ScriptRuntimeError",
    "TypeMismatch",
    "FileWatchError",
    "GridLookupError",
]
