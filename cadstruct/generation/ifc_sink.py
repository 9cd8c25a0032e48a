"""
IFC4 model sink using IfcOpenShell.

Implements the ModelSink protocol on top of an IFC file: areas become walls
or slabs with a surface representation, frames become beams with an axis,
and groups are building storeys.
"""

from typing import Dict, List, Optional, Sequence, Tuple
from pathlib import Path
from datetime import datetime
from loguru import logger

import numpy as np

try:
    import ifcopenshell
    import ifcopenshell.api
except ImportError:
    raise ImportError(
        "IfcOpenShell is required for IFC generation. "
        "Install with: pip install ifcopenshell"
    )

from cadstruct.generation.sink import SinkResult

CODE_OK = 0
CODE_BAD_GEOMETRY = 1
CODE_UNKNOWN_POINT = 2


class IFCModelSink:
    """
    Writes resolved elements into an IFC4 model.

    Coordinates are expected in metres. Every element carries its section
    name in a "Cadstruct_Section" property set.
    """

    def __init__(self, project_name: str = "cadstruct model"):
        """
        Initialize IFC sink.

        Args:
            project_name: Name of the IFC project
        """
        self.project_name = project_name
        self.ifc_file: Optional[ifcopenshell.file] = None
        self.project = None
        self.site = None
        self.building = None
        self.context = None
        self.storeys: Dict[str, object] = {}
        self._points: Dict[str, Tuple[float, float, float]] = {}
        self.create_project()

    def create_project(self) -> ifcopenshell.file:
        """
        Create new IFC4 project structure (project, site, building).

        Returns:
            IfcOpenShell file object
        """
        logger.info(f"Creating IFC4 project: {self.project_name}")

        self.ifc_file = ifcopenshell.api.run("project.create_file", version="IFC4")

        self.project = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcProject",
            name=self.project_name,
        )

        ifcopenshell.api.run(
            "unit.assign_unit",
            self.ifc_file,
            length={"is_metric": True, "raw": "METERS"},
        )

        self.context = ifcopenshell.api.run(
            "context.add_context",
            self.ifc_file,
            context_type="Model",
        )

        self.site = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcSite",
            name="Site",
        )

        self.building = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcBuilding",
            name="Building",
        )

        ifcopenshell.api.run(
            "aggregate.assign_object",
            self.ifc_file,
            relating_object=self.project,
            products=[self.site],
        )

        ifcopenshell.api.run(
            "aggregate.assign_object",
            self.ifc_file,
            relating_object=self.site,
            products=[self.building],
        )

        logger.success("Created IFC project structure")

        return self.ifc_file

    def add_storey(self, name: str, elevation_m: Optional[float] = None):
        """
        Add (or return the existing) building storey.

        Args:
            name: Storey name (e.g., "Story1")
            elevation_m: Elevation in meters

        Returns:
            The IfcBuildingStorey
        """
        if name in self.storeys:
            storey = self.storeys[name]
            if elevation_m is not None:
                storey.Elevation = elevation_m
            return storey

        storey = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcBuildingStorey",
            name=name,
        )
        if elevation_m is not None:
            storey.Elevation = elevation_m

        ifcopenshell.api.run(
            "aggregate.assign_object",
            self.ifc_file,
            relating_object=self.building,
            products=[storey],
        )

        self.storeys[name] = storey
        return storey

    # ------------------------------------------------------------------
    # ModelSink protocol
    # ------------------------------------------------------------------

    def create_point(self, x: float, y: float, z: float) -> str:
        name = f"P{len(self._points) + 1}"
        self._points[name] = (float(x), float(y), float(z))
        return name

    def create_area(self, points: Sequence[str], section: str) -> SinkResult:
        """
        Create a wall (vertical face) or slab (horizontal face).

        Returns:
            SinkResult with the element GlobalId as name
        """
        coords = self._coordinates(points)
        if coords is None:
            return SinkResult(code=CODE_UNKNOWN_POINT)
        if len(coords) < 3:
            return SinkResult(code=CODE_BAD_GEOMETRY)

        is_horizontal = max(c[2] for c in coords) - min(c[2] for c in coords) < 1e-9
        ifc_class = "IfcSlab" if is_horizontal else "IfcWall"

        element = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class=ifc_class,
            name=f"{section} {len(self.ifc_file.by_type(ifc_class)) + 1}",
        )
        self._place_at_origin(element)
        self._add_face_geometry(element, coords)
        self._add_section_pset(element, section)

        return SinkResult(code=CODE_OK, name=element.GlobalId)

    def create_frame(self, p1: str, p2: str, section: str) -> SinkResult:
        """
        Create a beam along two points.

        Returns:
            SinkResult with the element GlobalId as name
        """
        coords = self._coordinates([p1, p2])
        if coords is None:
            return SinkResult(code=CODE_UNKNOWN_POINT)
        if coords[0] == coords[1]:
            return SinkResult(code=CODE_BAD_GEOMETRY)

        beam = ifcopenshell.api.run(
            "root.create_entity",
            self.ifc_file,
            ifc_class="IfcBeam",
            name=f"{section} {len(self.ifc_file.by_type('IfcBeam')) + 1}",
        )
        self._place_at_origin(beam)
        self._add_axis_geometry(beam, coords)
        self._add_section_pset(beam, section)

        return SinkResult(code=CODE_OK, name=beam.GlobalId)

    def assign_to_group(self, element: str, group_name: str) -> None:
        """Contain an element in the storey named group_name."""
        product = self.ifc_file.by_guid(element)
        storey = self.add_storey(group_name)
        ifcopenshell.api.run(
            "spatial.assign_container",
            self.ifc_file,
            relating_structure=storey,
            products=[product],
        )

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _coordinates(self, points: Sequence[str]) -> Optional[List[Tuple[float, float, float]]]:
        try:
            return [self._points[name] for name in points]
        except KeyError as e:
            logger.error(f"Unknown point {e}")
            return None

    def _place_at_origin(self, product) -> None:
        ifcopenshell.api.run(
            "geometry.edit_object_placement",
            self.ifc_file,
            product=product,
            matrix=np.eye(4),
        )

    def _add_face_geometry(self, product, coords: List[Tuple[float, float, float]]) -> None:
        """Single planar face through the given points."""
        loop = self.ifc_file.createIfcPolyLoop(
            [self.ifc_file.createIfcCartesianPoint(c) for c in coords]
        )
        face = self.ifc_file.createIfcFace([self.ifc_file.createIfcFaceOuterBound(loop, True)])
        face_set = self.ifc_file.createIfcConnectedFaceSet([face])
        surface = self.ifc_file.createIfcFaceBasedSurfaceModel([face_set])

        representation = self.ifc_file.createIfcShapeRepresentation(
            self.context,
            "Body",
            "SurfaceModel",
            [surface],
        )

        ifcopenshell.api.run(
            "geometry.assign_representation",
            self.ifc_file,
            product=product,
            representation=representation,
        )

    def _add_axis_geometry(self, product, coords: List[Tuple[float, float, float]]) -> None:
        """3D polyline along the member axis."""
        polyline = self.ifc_file.createIfcPolyline(
            [self.ifc_file.createIfcCartesianPoint(c) for c in coords]
        )

        representation = self.ifc_file.createIfcShapeRepresentation(
            self.context,
            "Axis",
            "Curve3D",
            [polyline],
        )

        ifcopenshell.api.run(
            "geometry.assign_representation",
            self.ifc_file,
            product=product,
            representation=representation,
        )

    def _add_section_pset(self, product, section: str) -> None:
        pset = ifcopenshell.api.run(
            "pset.add_pset",
            self.ifc_file,
            product=product,
            name="Cadstruct_Section",
        )

        ifcopenshell.api.run(
            "pset.edit_pset",
            self.ifc_file,
            pset=pset,
            properties={
                "SectionName": section,
                "GeneratedBy": "cadstruct",
                "GeneratedAt": datetime.now().isoformat(),
            },
        )

    def write(self, output_path: str) -> None:
        """
        Write IFC file to disk.

        Args:
            output_path: Path to output .ifc file
        """
        if not self.ifc_file:
            raise RuntimeError("No IFC file to write. Create project first.")

        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        self.ifc_file.write(str(output_file))

        logger.success(f"Wrote IFC file: {output_file}")
