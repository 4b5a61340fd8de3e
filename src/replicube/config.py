"""Runtime configuration."""

from dataclasses import dataclass
from typing import List, Optional

from .animator import AXES
from .script_engine import Mode


@dataclass
class ReplicubeConfig:
    """Configuration for a replicube session."""

    cell_count: int = 5
    cell_size: float = 0.2
    gap: float = 0.01
    mode: Mode = Mode.PER_CELL
    rotation_step: float = 0.01
    rotation_axis: str = "y"
    fps: float = 60.0
    frames: Optional[int] = None
    script_timeout: Optional[float] = 1.0
    debounce_ms: int = 50
    step_ms: int = 50
    force_polling: bool = False
    headless: bool = False
    verbose: bool = False

    def __post_init__(self):
        self.mode = Mode(self.mode)

    def validate(self) -> "ReplicubeConfig":
        if self.cell_count < 1:
            raise ValueError(f"cell_count must be at least 1, got {self.cell_count}")
        if self.cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {self.cell_size}")
        if self.gap < 0:
            raise ValueError(f"gap must not be negative, got {self.gap}")
        if self.rotation_axis not in AXES:
            raise ValueError(
                f"rotation_axis must be x, y or z, got {self.rotation_axis!r}"
            )
        if self.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.fps}")
        if self.frames is not None and self.frames < 0:
            raise ValueError(f"frames must not be negative, got {self.frames}")
        if self.script_timeout is not None and self.script_timeout <= 0:
            raise ValueError(
                f"script_timeout must be positive, got {self.script_timeout}"
            )
        return self

    def to_cli_args(self) -> List[str]:
        """Convert config to CLI arguments (defaults are left out)."""
        defaults = ReplicubeConfig()
        args = []

        if self.cell_count != defaults.cell_count:
            args.extend(["--size", str(self.cell_count)])
        if self.cell_size != defaults.cell_size:
            args.extend(["--cell-size", str(self.cell_size)])
        if self.gap != defaults.gap:
            args.extend(["--gap", str(self.gap)])
        if self.mode != defaults.mode:
            args.extend(["--mode", self.mode.value])
        if self.rotation_step != defaults.rotation_step:
            args.extend(["--step", str(self.rotation_step)])
        if self.rotation_axis != defaults.rotation_axis:
            args.extend(["--axis", self.rotation_axis])
        if self.fps != defaults.fps:
            args.extend(["--fps", str(self.fps)])
        if self.frames is not None:
            args.extend(["--frames", str(self.frames)])
        if self.script_timeout != defaults.script_timeout:
            # 0 disables the timeout
            args.extend(["--timeout", str(self.script_timeout or 0)])
        if self.force_polling:
            args.append("--poll")
        if self.headless:
            args.append("--headless")
        if self.verbose:
            args.append("--verbose")

        return args
