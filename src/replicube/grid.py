"""Cell identity, base geometry and color state for an N×N×N grid."""

import itertools
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Tuple

import numpy as np

from .colors import DEFAULT_COLOR, Color
from .errors import GridLookupError

Index = Tuple[int, int, int]


def cell_name(ix: int, iy: int, iz: int) -> str:
    """Name shared with the scene renderer for the cell at (ix, iy, iz)."""
    return f"cube {ix} {iy} {iz}"


def axis_positions(n: int, cell_size: float, gap: float) -> List[float]:
    """Centered, gap-aware coordinate of every index along one axis."""
    total = n * (cell_size + gap) - gap
    half = total / 2
    return [i * (cell_size + gap) - half + cell_size / 2 for i in range(n)]


@dataclass(eq=False)
class Cell:
    index: Index
    name: str
    base_position: Tuple[float, float, float]
    color: Color = field(default=DEFAULT_COLOR)


class Grid:
    """Owns every cell of the grid.

    Cells live in a flat list in x-major order (then y, then z), with a
    name→slot map on the side. Base positions are fixed at construction.
    Colors are guarded by a single lock: batch writes from the reload thread
    and snapshot reads from the frame loop never interleave.
    """

    def __init__(self, n: int, cell_size: float, gap: float):
        if n < 1:
            raise ValueError(f"grid size must be at least 1, got {n}")
        if cell_size <= 0:
            raise ValueError(f"cell size must be positive, got {cell_size}")
        if gap < 0:
            raise ValueError(f"gap must not be negative, got {gap}")

        self.n = n
        self.cell_size = cell_size
        self.gap = gap
        self._lock = threading.Lock()

        coords = axis_positions(n, cell_size, gap)
        self._cells: List[Cell] = []
        for ix, iy, iz in itertools.product(range(n), repeat=3):
            self._cells.append(
                Cell(
                    index=(ix, iy, iz),
                    name=cell_name(ix, iy, iz),
                    base_position=(coords[ix], coords[iy], coords[iz]),
                )
            )
        self._by_name: Dict[str, int] = {c.name: i for i, c in enumerate(self._cells)}

        positions = np.array([c.base_position for c in self._cells], dtype=np.float64)
        positions.setflags(write=False)
        self._base_positions = positions

    @property
    def total_size(self) -> float:
        return self.n * (self.cell_size + self.gap) - self.gap

    @property
    def base_positions(self) -> np.ndarray:
        """Read-only (N³, 3) array of base positions in iteration order."""
        return self._base_positions

    def __len__(self) -> int:
        return len(self._cells)

    def __iter__(self) -> Iterator[Cell]:
        return iter(self._cells)

    def iterate(self) -> Iterator[Cell]:
        return iter(self._cells)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def lookup(self, name: str) -> Cell:
        try:
            return self._cells[self._by_name[name]]
        except KeyError:
            raise GridLookupError(
                f"no cell named {name!r} in a {self.n}³ grid"
            ) from None

    def lookup_index(self, ix: int, iy: int, iz: int) -> Cell:
        if not all(0 <= i < self.n for i in (ix, iy, iz)):
            raise GridLookupError(
                f"index ({ix}, {iy}, {iz}) is outside a {self.n}³ grid"
            )
        return self._cells[(ix * self.n + iy) * self.n + iz]

    def centered(self, cell: Cell) -> Index:
        """Integer coordinates of a cell relative to the grid center."""
        offset = (self.n - 1) // 2
        ix, iy, iz = cell.index
        return (ix - offset, iy - offset, iz - offset)

    def set_color(self, cell: Cell, color: Color) -> bool:
        """Overwrite one cell's color. Returns True if it changed."""
        with self._lock:
            if cell.color == color:
                return False
            cell.color = color
            return True

    def apply_colors(self, colors: Mapping[str, Color]) -> int:
        """Write a batch of colors keyed by cell name in one step.

        Every name is resolved before any write, so an unknown name leaves
        the grid untouched. Returns the number of cells that changed.
        """
        targets = [(self.lookup(name), color) for name, color in colors.items()]
        changed = 0
        with self._lock:
            for cell, color in targets:
                if cell.color != color:
                    cell.color = color
                    changed += 1
        return changed

    def fill(self, color: Color) -> int:
        changed = 0
        with self._lock:
            for cell in self._cells:
                if cell.color != color:
                    cell.color = color
                    changed += 1
        return changed

    def color_snapshot(self) -> Dict[str, Color]:
        """Consistent copy of every cell's color."""
        with self._lock:
            return {cell.name: cell.color for cell in self._cells}


def build_grid(n: int, cell_size: float, gap: float) -> Grid:
    return Grid(n, cell_size, gap)
