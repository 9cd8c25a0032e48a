"""
cadstruct - CAD floor plans to structural models

Sanitizes 2D CAD geometry (lines, polylines, hatches) into walls, beams and
slabs and resolves each to a catalog cross-section using code-derived sizing
rules.
"""

__version__ = "0.1.0"

from cadstruct.geometry.sanitizer import PolygonSanitizer, sanitize_boundary
from cadstruct.sections.catalog import SectionCatalog
from cadstruct.sections.resolver import SectionResolver
from cadstruct.rules.sizing import SeismicZone, wall_thickness
from cadstruct.rules.grade_schedule import GradeSchedule
from cadstruct.generation.element_builder import ElementBuilder
from cadstruct.generation.importer import ImportRunner, import_building

__all__ = [
    "PolygonSanitizer",
    "sanitize_boundary",
    "SectionCatalog",
    "SectionResolver",
    "SeismicZone",
    "wall_thickness",
    "GradeSchedule",
    "ElementBuilder",
    "ImportRunner",
    "import_building",
]
