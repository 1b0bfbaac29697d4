"""
Measurement Geometry

Pure functions converting pixel-space handle geometry plus a physical
calibration into physical measurements (mm, mm², mm³, degrees).

Inputs:
    - Handle points as (x, y) pairs in image pixel space
    - Axis spacing as (x_spacing, y_spacing) in mm per pixel
    - Slice thickness in mm

Outputs:
    - Distances, areas, volumes and angles

Requirements:
    - math (standard library)

Every function is deterministic and reads no ambient state; identical input
always produces identical output.
"""

import math
from typing import Sequence, Tuple

Point = Tuple[float, float]
Spacing = Tuple[float, float]


class GeometryError(ValueError):
    """Raised for structurally incomplete or degenerate handle geometry."""


def _point(value, name: str = "point") -> Point:
    """Coerce a handle into an (x, y) float pair."""
    try:
        if hasattr(value, "x") and hasattr(value, "y"):
            x, y = value.x, value.y
            # QPointF exposes x()/y() as methods
            if callable(x):
                x, y = x(), y()
        elif isinstance(value, dict):
            x, y = value["x"], value["y"]
        else:
            x, y = value[0], value[1]
        x, y = float(x), float(y)
    except (TypeError, ValueError, KeyError, IndexError) as e:
        raise GeometryError(f"Invalid {name}: {value!r}") from e
    if not (math.isfinite(x) and math.isfinite(y)):
        raise GeometryError(f"Non-finite {name}: {value!r}")
    return (x, y)


def _spacing(spacing: Sequence[float]) -> Spacing:
    try:
        return (float(spacing[0]), float(spacing[1]))
    except (TypeError, ValueError, IndexError) as e:
        raise GeometryError(f"Invalid spacing: {spacing!r}") from e


def distance(p1, p2, spacing: Sequence[float] = (1.0, 1.0)) -> float:
    """
    Euclidean distance with each axis delta scaled by its own spacing.

    Args:
        p1: First point (x, y)
        p2: Second point (x, y)
        spacing: (x_spacing, y_spacing) in mm per pixel

    Returns:
        Distance in mm
    """
    x1, y1 = _point(p1, "start point")
    x2, y2 = _point(p2, "end point")
    sx, sy = _spacing(spacing)
    dx = (x2 - x1) * sx
    dy = (y2 - y1) * sy
    return math.sqrt(dx * dx + dy * dy)


def rectangle_area(corners: Sequence, spacing: Sequence[float] = (1.0, 1.0)) -> float:
    """
    Area of an axis-aligned rectangle from two diagonal corners.

    With four corners the diagonal pair is corners[0] and corners[2]; with two,
    corners[0] and corners[1].

    Args:
        corners: Corner points
        spacing: (x_spacing, y_spacing) in mm per pixel

    Returns:
        Area in mm²
    """
    if corners is None or len(corners) < 2:
        raise GeometryError("Rectangle needs at least two diagonal corners")
    first = _point(corners[0], "corner")
    opposite = _point(corners[2] if len(corners) >= 4 else corners[1], "corner")
    sx, sy = _spacing(spacing)
    width = abs(opposite[0] - first[0]) * sx
    height = abs(opposite[1] - first[1]) * sy
    return width * height


def bounding_box(handles: Sequence) -> Tuple[float, float, float, float]:
    """Return (left, top, right, bottom) over all handle points."""
    if handles is None or len(handles) < 2:
        raise GeometryError("Bounding box needs at least two handles")
    points = [_point(h, "handle") for h in handles]
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return (min(xs), min(ys), max(xs), max(ys))


def ellipse_area(handles: Sequence, spacing: Sequence[float] = (1.0, 1.0)) -> float:
    """
    Approximate ellipse area as pi * a * b with a, b half the bounding-box sides.

    Treats the ellipse as axis-aligned even if the handles describe a rotated
    ellipse; the result then overestimates the true area.

    Args:
        handles: Handle points bounding the ellipse
        spacing: (x_spacing, y_spacing) in mm per pixel

    Returns:
        Area in mm²
    """
    left, top, right, bottom = bounding_box(handles)
    sx, sy = _spacing(spacing)
    width = (right - left) * sx
    height = (bottom - top) * sy
    return math.pi * (width / 2.0) * (height / 2.0)


def angle(p1, vertex, p2) -> float:
    """
    Angle at vertex between the arms to p1 and p2.

    The cosine is clamped to [-1, 1] before acos so rounding noise cannot push it
    out of the domain.

    Returns:
        Angle in degrees, in [0, 180]
    """
    ax, ay = _point(p1, "first arm point")
    vx, vy = _point(vertex, "vertex")
    bx, by = _point(p2, "second arm point")
    v1 = (ax - vx, ay - vy)
    v2 = (bx - vx, by - vy)
    mag1 = math.hypot(*v1)
    mag2 = math.hypot(*v2)
    if mag1 == 0.0 or mag2 == 0.0:
        raise GeometryError("Angle arm has zero length")
    cos_angle = (v1[0] * v2[0] + v1[1] * v2[1]) / (mag1 * mag2)
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return math.degrees(math.acos(cos_angle))


def volume(area_mm2: float, slice_thickness_mm: float = 1.0) -> float:
    """Volume of an area extruded through one slice, in mm³."""
    return float(area_mm2) * float(slice_thickness_mm)


def format_measurement(value: float, unit: str, decimals: int = 2) -> str:
    """
    Format a measurement for display.

    Returns:
        e.g. "12.34 mm", "800.00 mm²" or "90.0°" (no space before a degree sign)
    """
    separator = "" if unit == "°" else " "
    return f"{value:.{decimals}f}{separator}{unit}"
