"""Per-frame rigid rotation of the whole grid."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from .grid import Grid

AXES = {"x": 0, "y": 1, "z": 2}

Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class Transform:
    name: str
    position: Vec3
    orientation: Vec3


@dataclass
class RotationState:
    """Euler angles (radians) of the group rotation, in X, Y, Z order."""

    angles: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def reset(self) -> None:
        self.angles = np.zeros(3)


def rotation_matrix(angles) -> np.ndarray:
    """Rotation matrix for Euler angles applied in XYZ order (R = Rx @ Ry @ Rz)."""
    ax, ay, az = (float(a) for a in angles)
    cx, sx = np.cos(ax), np.sin(ax)
    cy, sy = np.cos(ay), np.sin(ay)
    cz, sz = np.cos(az), np.sin(az)
    rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])
    return rx @ ry @ rz


class RotationAnimator:
    """Spins the grid by a fixed step per tick.

    The step is per frame, not per second: ``dt`` is accepted but ignored,
    so animation speed follows the frame rate. Positions are always computed
    from the grid's base positions, never from the previous frame. Every
    cell's own orientation is set to the group angles, so cells turn in
    step with the orbit.
    """

    def __init__(self, step: float = 0.01, axis: str = "y"):
        if axis not in AXES:
            raise ValueError(f"rotation axis must be one of x, y, z, got {axis!r}")
        self.step = step
        self.axis = axis

    def advance(self, state: RotationState) -> None:
        angles = np.array(state.angles, dtype=np.float64)
        angles[AXES[self.axis]] += self.step
        state.angles = angles

    def positions(self, grid: Grid, state: RotationState) -> np.ndarray:
        return grid.base_positions @ rotation_matrix(state.angles).T

    def tick(
        self, grid: Grid, state: RotationState, dt: Optional[float] = None
    ) -> List[Transform]:
        self.advance(state)
        positions = self.positions(grid, state)
        orientation = tuple(float(a) for a in state.angles)
        return [
            Transform(cell.name, tuple(float(v) for v in position), orientation)
            for cell, position in zip(grid.iterate(), positions)
        ]
