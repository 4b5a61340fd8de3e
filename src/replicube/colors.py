"""Color values and the named palette exposed to scripts."""

import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Mapping, Optional, Sequence


@dataclass(frozen=True)
class Color:
    """An RGBA color with float components, conventionally in 0..1."""

    r: float
    g: float
    b: float
    a: float = 1.0

    @property
    def rgb(self) -> tuple[float, float, float]:
        return (self.r, self.g, self.b)

    @property
    def opacity(self) -> float:
        return self.a

    def to_hex(self) -> str:
        """Hex string of the RGB part, components clamped to 0..1."""
        channels = (max(0.0, min(1.0, c)) for c in self.rgb)
        return "#" + "".join(f"{round(c * 255):02x}" for c in channels)


def rgb(r: float, g: float, b: float) -> Color:
    return Color(float(r), float(g), float(b))


def rgba(r: float, g: float, b: float, a: float) -> Color:
    return Color(float(r), float(g), float(b), float(a))


DEFAULT_COLOR = Color(0.827, 0.827, 0.827, 1.0)  # LightGray

NAMED_COLORS: Dict[str, Color] = {
    "red": Color(1, 0, 0, 1),
    "blue": Color(0, 0, 1, 1),
    "green": Color(0, 1, 0, 1),
    "yellow": Color(1, 1, 0, 1),
    "black": Color(0, 0, 0, 1),
    "white": Color(1, 1, 1, 1),
    "transparent": Color(1, 0, 0, 0),
}


def _is_number(value: Any) -> bool:
    # NaN never compares equal, so it would repaint on every reload
    if not isinstance(value, Real) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _from_sequence(value: Sequence[Any]) -> Optional[Color]:
    if len(value) not in (3, 4) or not all(_is_number(v) for v in value):
        return None
    return Color(*(float(v) for v in value))


def _from_mapping(value: Mapping[Any, Any]) -> Optional[Color]:
    fields = {str(k).upper(): v for k, v in value.items()}
    keys = fields.keys()
    if not {"R", "G", "B"} <= keys or not keys <= {"R", "G", "B", "A"}:
        return None
    components = [fields["R"], fields["G"], fields["B"], fields.get("A", 1.0)]
    if not all(_is_number(v) for v in components):
        return None
    return Color(*(float(v) for v in components))


def coerce_color(value: Any) -> Optional[Color]:
    """Convert a script value into a Color, or None when it has the wrong shape.

    Accepted shapes are a Color, a sequence of 3 or 4 numbers, and a mapping
    with keys R, G, B and an optional A (keys are case-insensitive).
    """
    if isinstance(value, Color):
        # scripts can call Color() directly with anything
        if not all(_is_number(v) for v in (value.r, value.g, value.b, value.a)):
            return None
        return value
    if isinstance(value, Mapping):
        return _from_mapping(value)
    if isinstance(value, (tuple, list)):
        return _from_sequence(value)
    return None


def describe_value(value: Any) -> str:
    """Short description of a rejected script value for log messages."""
    if value is None:
        return "no value"
    if isinstance(value, (tuple, list)):
        return f"{type(value).__name__} of {len(value)} values"
    return type(value).__name__
