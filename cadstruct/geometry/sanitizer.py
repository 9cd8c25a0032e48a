"""
Polygon sanitization.

Turns raw CAD boundaries (open, doubled-back, clockwise, with repeated
vertices) into valid simple polygons, or reports why it could not. Malformed
geometry never raises: the result is either a Polygon or a Skip.
"""

from typing import List, Sequence, Union

from loguru import logger
from pydantic import BaseModel, Field

from cadstruct.core.models import (
    Point2D,
    Polygon,
    Segment,
    Skip,
    SkipReason,
    signed_area,
)


# Lengths below are the millimetre values; scaled() converts them for other units
MM_UNIT_SCALE = 0.001

_LENGTH_FIELDS = ("near_duplicate_epsilon", "closure_tolerance", "duplicate_epsilon", "min_segment_length")
_AREA_FIELDS = ("min_area", "parallel_epsilon")


class SanitizerSettings(BaseModel):
    """Tolerances, in source CAD units of a millimetre drawing."""
    near_duplicate_epsilon: float = Field(default=0.1, gt=0)
    closure_tolerance: float = Field(default=10000.0, gt=0)
    duplicate_epsilon: float = Field(default=0.001, gt=0)
    min_area: float = Field(default=10000.0, ge=0)  # 0.01 m²
    min_segment_length: float = Field(default=100.0, ge=0)  # 0.1 m
    parallel_epsilon: float = Field(default=1e-4, gt=0)
    # Closed polylines and hatch loops skip the closing-gap rejection
    trust_declared_closure: bool = False

    def scaled(self, unit_scale: float) -> "SanitizerSettings":
        """
        Convert the millimetre tolerances to another drawing unit.

        Args:
            unit_scale: Source units to metres (0.001 for mm, 1.0 for m)

        Returns:
            Settings in the drawing's own units
        """
        factor = MM_UNIT_SCALE / unit_scale
        if factor == 1.0:
            return self

        update = {name: getattr(self, name) * factor for name in _LENGTH_FIELDS}
        update.update({name: getattr(self, name) * factor ** 2 for name in _AREA_FIELDS})
        return self.model_copy(update=update)


SanitizeResult = Union[Polygon, Skip]


def _segments_intersect(
    p1: Point2D, p2: Point2D, p3: Point2D, p4: Point2D, parallel_epsilon: float
) -> bool:
    """Parametric segment test. Parallel and collinear pairs count as disjoint."""
    d = (p1.x - p2.x) * (p3.y - p4.y) - (p1.y - p2.y) * (p3.x - p4.x)
    if abs(d) < parallel_epsilon:
        return False

    t = ((p1.x - p3.x) * (p3.y - p4.y) - (p1.y - p3.y) * (p3.x - p4.x)) / d
    u = -((p1.x - p2.x) * (p1.y - p3.y) - (p1.y - p2.y) * (p1.x - p3.x)) / d

    return 0.0 <= t <= 1.0 and 0.0 <= u <= 1.0


def has_self_intersection(points: Sequence[Point2D], parallel_epsilon: float = 1e-4) -> bool:
    """
    Check non-adjacent edges of a closed ring for crossings.

    Rings with fewer than 4 vertices cannot self-intersect.
    """
    n = len(points)
    if n < 4:
        return False

    for i in range(n):
        p1 = points[i]
        p2 = points[(i + 1) % n]
        for j in range(i + 2, n):
            # First and last edges share vertex 0
            if i == 0 and j == n - 1:
                continue
            p3 = points[j]
            p4 = points[(j + 1) % n]
            if _segments_intersect(p1, p2, p3, p4, parallel_epsilon):
                return True

    return False


def remove_duplicates(points: Sequence[Point2D], epsilon: float = 0.001) -> List[Point2D]:
    """
    Drop each vertex lying within epsilon of its cyclic successor.

    Collinear but distinct vertices are kept.
    """
    cleaned = []
    n = len(points)
    for i in range(n):
        if points[i].distance_to(points[(i + 1) % n]) > epsilon:
            cleaned.append(points[i])
    return cleaned


class PolygonSanitizer:
    """
    Normalises boundaries into canonical polygons.

    Steps, in order: closure, minimum vertex count, area, winding,
    duplicate removal, self-intersection check (advisory).
    """

    def __init__(self, settings: SanitizerSettings = None):
        """
        Initialize sanitizer.

        Args:
            settings: Tolerances in source units (see SanitizerSettings.scaled)
        """
        self.settings = settings or SanitizerSettings()

    def sanitize(self, boundary: Sequence[Point2D], declared_closed: bool = False) -> SanitizeResult:
        """
        Sanitize a boundary.

        Args:
            boundary: Ordered vertices, possibly repeating the first at the end
            declared_closed: Source entity is explicitly closed (closed polyline
                flag or hatch loop); with trust_declared_closure set, a large
                first/last gap is then the closing edge instead of an opening

        Returns:
            Polygon on success, Skip with a reason otherwise
        """
        s = self.settings
        points = list(boundary)

        if not points:
            return Skip(reason=SkipReason.INSUFFICIENT_VERTICES, detail="empty boundary")

        # 1. Closure
        gap = points[0].distance_to(points[-1])
        if gap < s.near_duplicate_epsilon:
            points = points[:-1]
        elif gap > s.closure_tolerance and not (declared_closed and s.trust_declared_closure):
            logger.debug(f"Boundary rejected: closing gap {gap:.1f} exceeds tolerance")
            return Skip(reason=SkipReason.NOT_CLOSED, detail=f"gap {gap:.1f}")

        # 2. Minimum vertex count
        if len(points) < 3:
            return Skip(
                reason=SkipReason.INSUFFICIENT_VERTICES,
                detail=f"{len(points)} vertices",
            )

        # 3. Area
        area = signed_area(points)
        if abs(area) < s.min_area or area == 0.0:
            return Skip(reason=SkipReason.AREA_TOO_SMALL, detail=f"area {abs(area):.1f}")

        # 4. Canonical winding
        if area < 0:
            points.reverse()

        # 5. Duplicates
        points = remove_duplicates(points, s.duplicate_epsilon)
        if len(points) < 3:
            return Skip(
                reason=SkipReason.INSUFFICIENT_VERTICES,
                detail=f"{len(points)} vertices after cleaning",
            )

        # 6. Self-intersection (advisory)
        crossing = has_self_intersection(points, s.parallel_epsilon)
        if crossing:
            logger.warning(f"Polygon with {len(points)} vertices is self-intersecting")

        return Polygon(vertices=tuple(points), self_intersecting=crossing)


def make_segment(start: Point2D, end: Point2D, min_length: float = 100.0) -> Union[Segment, Skip]:
    """
    Build a segment, rejecting it when shorter than min_length.

    Args:
        start: Start point (source units)
        end: End point (source units)
        min_length: Minimum accepted length (source units)

    Returns:
        Segment or Skip(TOO_SHORT)
    """
    length = start.distance_to(end)
    if length < min_length or length == 0.0:
        return Skip(reason=SkipReason.TOO_SHORT, detail=f"length {length:.1f}")
    return Segment(start=start, end=end)


def sanitize_boundary(boundary: Sequence[Point2D], settings: SanitizerSettings = None) -> SanitizeResult:
    """
    Convenience function to sanitize a single boundary.

    Args:
        boundary: Ordered vertices
        settings: Optional tolerances

    Returns:
        Polygon or Skip
    """
    return PolygonSanitizer(settings).sanitize(boundary)
