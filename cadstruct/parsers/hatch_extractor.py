"""
Hatch extraction from DXF files.

Converts HATCH boundary paths into HatchEntity records with typed edges.
Tessellation happens later, in the geometry layer.
"""

from typing import List, Optional
from loguru import logger
import ezdxf
from ezdxf.entities.boundary_paths import BoundaryPathType, EdgeType

from cadstruct.core.models import (
    ArcEdge,
    BoundaryEdge,
    EllipseEdge,
    HatchBoundaryPath,
    HatchEntity,
    LineEdge,
    Point2D,
    SplineEdge,
)


def _point(v) -> Point2D:
    return Point2D(x=v[0], y=v[1])


def _convert_edge(edge) -> Optional[BoundaryEdge]:
    """Map an ezdxf boundary edge onto the edge models. None for unknown types."""
    if edge.type == EdgeType.LINE:
        return LineEdge(start=_point(edge.start), end=_point(edge.end))
    if edge.type == EdgeType.ARC:
        return ArcEdge(
            center=_point(edge.center),
            radius=edge.radius,
            start_angle=edge.start_angle,
            end_angle=edge.end_angle,
        )
    if edge.type == EdgeType.ELLIPSE:
        return EllipseEdge(
            center=_point(edge.center),
            major_axis=_point(edge.major_axis),
            ratio=edge.ratio,
            start_angle=edge.start_angle,
            end_angle=edge.end_angle,
        )
    if edge.type == EdgeType.SPLINE:
        return SplineEdge(control_points=tuple(_point(p) for p in edge.control_points))
    return None


def convert_boundary_path(path) -> HatchBoundaryPath:
    """
    Convert one ezdxf boundary path.

    Args:
        path: ezdxf PolylinePath or EdgePath

    Returns:
        HatchBoundaryPath (polyline paths keep their vertices, bulges dropped)
    """
    if path.type == BoundaryPathType.POLYLINE:
        return HatchBoundaryPath(vertices=tuple(Point2D(x=v[0], y=v[1]) for v in path.vertices))

    edges = []
    for edge in path.edges:
        converted = _convert_edge(edge)
        if converted is None:
            logger.warning(f"Unsupported hatch edge type {edge.type}, skipping edge")
            continue
        edges.append(converted)
    return HatchBoundaryPath(edges=tuple(edges))


def extract_hatches(
    doc: ezdxf.document.Drawing,
    layers: Optional[List[str]] = None,
) -> List[HatchEntity]:
    """
    Extract hatches from DXF document.

    Args:
        doc: ezdxf Drawing object
        layers: List of layer names to extract from (None = all layers)

    Returns:
        List of HatchEntity objects
    """
    msp = doc.modelspace()
    hatches = []

    for entity in msp.query("HATCH"):
        if layers and entity.dxf.layer not in layers:
            continue

        paths = [convert_boundary_path(path) for path in entity.paths]
        if not paths:
            continue

        hatches.append(HatchEntity(paths=paths, layer=entity.dxf.layer))

    logger.debug(
        f"Extracted {len(hatches)} hatches "
        f"from {len(layers) if layers else 'all'} layer(s)"
    )

    return hatches
