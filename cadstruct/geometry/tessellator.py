"""
Boundary tessellation.

Flattens curved hatch boundary edges into point sequences so the sanitizer
only ever sees straight-sided boundaries. Segment counts are fixed so output
is deterministic.
"""

import math
from typing import Iterator, List

import numpy as np
from loguru import logger

from cadstruct.core.models import (
    ArcEdge,
    BoundaryEdge,
    EllipseEdge,
    HatchBoundaryPath,
    LineEdge,
    Point2D,
    SplineEdge,
)

ARC_SEGMENTS = 16
ELLIPSE_SEGMENTS = 24


def _sweep(start_angle: float, end_angle: float, segments: int) -> np.ndarray:
    """Angles in radians from start to end, end >= start, segments + 1 values."""
    start = math.radians(start_angle)
    end = math.radians(end_angle)
    if end < start:
        end += 2 * math.pi
    return np.linspace(start, end, segments + 1)


def tessellate_arc(edge: ArcEdge, segments: int = ARC_SEGMENTS) -> Iterator[Point2D]:
    """
    Approximate a circular arc.

    Args:
        edge: Arc edge (angles in degrees)
        segments: Number of chords

    Yields:
        segments + 1 points, both ends included
    """
    for t in _sweep(edge.start_angle, edge.end_angle, segments):
        yield Point2D(
            x=edge.center.x + edge.radius * math.cos(t),
            y=edge.center.y + edge.radius * math.sin(t),
        )


def tessellate_ellipse(edge: EllipseEdge, segments: int = ELLIPSE_SEGMENTS) -> Iterator[Point2D]:
    """
    Approximate an elliptic arc.

    The semi-minor axis is the major axis rotated +90 degrees and scaled by
    the ratio, so rotated ellipses land on their true outline.

    Args:
        edge: Ellipse edge (major_axis relative to center, angles in degrees)
        segments: Number of chords

    Yields:
        segments + 1 points, both ends included
    """
    major_x, major_y = edge.major_axis.x, edge.major_axis.y
    minor_x, minor_y = -major_y * edge.ratio, major_x * edge.ratio

    for t in _sweep(edge.start_angle, edge.end_angle, segments):
        cos_t = math.cos(t)
        sin_t = math.sin(t)
        yield Point2D(
            x=edge.center.x + cos_t * major_x + sin_t * minor_x,
            y=edge.center.y + cos_t * major_y + sin_t * minor_y,
        )


def spline_points(edge: SplineEdge) -> Iterator[Point2D]:
    """Control-point polyline; no curve fitting."""
    yield from edge.control_points


def tessellate_edge(edge: BoundaryEdge) -> Iterator[Point2D]:
    """
    Flatten one boundary edge.

    A line edge contributes only its start point; the following edge
    supplies the end.
    """
    if isinstance(edge, LineEdge):
        yield edge.start
    elif isinstance(edge, ArcEdge):
        yield from tessellate_arc(edge)
    elif isinstance(edge, EllipseEdge):
        yield from tessellate_ellipse(edge)
    elif isinstance(edge, SplineEdge):
        yield from spline_points(edge)
    else:
        raise TypeError(f"Unknown boundary edge type: {type(edge).__name__}")


def tessellate_path(path: HatchBoundaryPath) -> List[Point2D]:
    """
    Flatten a hatch boundary path into an ordered boundary.

    Args:
        path: Edge path or polyline path

    Returns:
        List of points (not yet sanitized)
    """
    if path.is_polyline_path:
        return list(path.vertices)

    points: List[Point2D] = []
    for edge in path.edges:
        points.extend(tessellate_edge(edge))

    logger.debug(f"Tessellated {len(path.edges)} edges into {len(points)} points")
    return points
