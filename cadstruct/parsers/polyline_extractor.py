"""
Polyline extraction from DXF files.

Extracts LWPOLYLINE and POLYLINE entities as PolylineEntity records. Bulges
are ignored; arcs in polylines become straight chords.
"""

from typing import List, Optional
from loguru import logger
import ezdxf

from cadstruct.core.models import Point2D, PolylineEntity


def extract_polylines(
    doc: ezdxf.document.Drawing,
    layers: Optional[List[str]] = None,
    min_points: int = 2,
) -> List[PolylineEntity]:
    """
    Extract polylines from DXF document.

    Args:
        doc: ezdxf Drawing object
        layers: List of layer names to extract from (None = all layers)
        min_points: Minimum number of points to consider

    Returns:
        List of PolylineEntity objects
    """
    msp = doc.modelspace()
    polylines = []

    for entity in msp.query("LWPOLYLINE"):
        if layers and entity.dxf.layer not in layers:
            continue

        points = [Point2D(x=p[0], y=p[1]) for p in entity.get_points()]

        if len(points) < min_points:
            continue

        polylines.append(PolylineEntity(
            vertices=points,
            is_closed=entity.closed,
            layer=entity.dxf.layer,
        ))

    for entity in msp.query("POLYLINE"):
        if layers and entity.dxf.layer not in layers:
            continue
        # 3D meshes and polyface meshes are not plan geometry
        if not entity.is_2d_polyline and not entity.is_3d_polyline:
            continue

        points = [Point2D(x=v.dxf.location.x, y=v.dxf.location.y) for v in entity.vertices]

        if len(points) < min_points:
            continue

        polylines.append(PolylineEntity(
            vertices=points,
            is_closed=entity.is_closed,
            layer=entity.dxf.layer,
        ))

    logger.debug(
        f"Extracted {len(polylines)} polylines "
        f"from {len(layers) if layers else 'all'} layer(s)"
    )

    return polylines
