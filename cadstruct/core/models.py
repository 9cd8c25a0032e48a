"""
Core data models for cadstruct.

All models use Pydantic for validation and serialization. Geometry value
types are frozen; once a Polygon exists it is valid.
"""

from enum import Enum
from typing import List, Optional, Dict, Tuple, Union, Literal, Sequence
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ElementKind(str, Enum):
    """Structural element kinds produced from CAD layers."""
    WALL = "wall"
    BEAM = "beam"
    SLAB = "slab"
    IGNORE = "ignore"


class WallType(str, Enum):
    """Wall classes driving the thickness tables."""
    CORE_WALL = "CoreWall"
    PERIPHERAL_DEAD_WALL = "PeripheralDeadWall"
    PERIPHERAL_PORTAL_WALL = "PeripheralPortalWall"
    INTERNAL_WALL = "InternalWall"


class BeamRole(str, Enum):
    """Beam roles; gravity beams take a zone width, main beams follow the wall they frame into."""
    INTERNAL_GRAVITY = "InternalGravity"
    CANTILEVER_GRAVITY = "CantileverGravity"
    CORE_MAIN = "CoreMain"
    PERIPHERAL_DEAD_MAIN = "PeripheralDeadMain"
    PERIPHERAL_PORTAL_MAIN = "PeripheralPortalMain"
    INTERNAL_MAIN = "InternalMain"

    @property
    def is_gravity(self) -> bool:
        return self in (BeamRole.INTERNAL_GRAVITY, BeamRole.CANTILEVER_GRAVITY)


class SlabKind(str, Enum):
    """Slab classes for thickness selection."""
    REGULAR = "regular"
    CANTILEVER = "cantilever"
    LOBBY = "lobby"
    STAIR = "stair"


class SectionKind(str, Enum):
    """Catalog section families."""
    FRAME = "frame"  # beams: width x depth
    AREA = "area"  # walls and slabs: thickness


class SkipReason(str, Enum):
    """Why a piece of geometry was not turned into an element."""
    NOT_CLOSED = "not closed"
    INSUFFICIENT_VERTICES = "insufficient vertices"
    AREA_TOO_SMALL = "area too small"
    TOO_SHORT = "segment too short"
    UNSUPPORTED_ENTITY = "unsupported entity for layer"


class Point2D(BaseModel):
    """2D point in drawing space (source CAD units)."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    def distance_to(self, other: "Point2D") -> float:
        """Calculate Euclidean distance to another point."""
        return ((self.x - other.x) ** 2 + (self.y - other.y) ** 2) ** 0.5

    def __hash__(self) -> int:
        return hash((round(self.x, 6), round(self.y, 6)))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Point2D):
            return False
        return abs(self.x - other.x) < 1e-6 and abs(self.y - other.y) < 1e-6


class Point3D(BaseModel):
    """3D point in model space (model units, metres by default)."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float = 0.0

    def distance_to(self, other: "Point3D") -> float:
        """Calculate Euclidean distance to another point."""
        return ((self.x - other.x) ** 2 +
                (self.y - other.y) ** 2 +
                (self.z - other.z) ** 2) ** 0.5


# An ordered, not yet validated vertex list
Boundary = List[Point2D]


def signed_area(points: Sequence[Point2D]) -> float:
    """
    Signed area of an implicitly closed vertex ring (shoelace formula).

    Positive for counter-clockwise rings, negative for clockwise ones.
    """
    if len(points) < 3:
        return 0.0

    area = 0.0
    for i in range(len(points)):
        j = (i + 1) % len(points)
        area += points[i].x * points[j].y
        area -= points[j].x * points[i].y

    return area / 2.0


class Skip(BaseModel):
    """A geometric rejection. Returned as a value, never raised."""
    model_config = ConfigDict(frozen=True)

    reason: SkipReason
    detail: str = ""

    def __str__(self) -> str:
        if self.detail:
            return f"{self.reason.value} ({self.detail})"
        return self.reason.value


class Segment(BaseModel):
    """Straight segment between two distinct points."""
    model_config = ConfigDict(frozen=True)

    start: Point2D
    end: Point2D

    def length(self) -> float:
        """Calculate segment length."""
        return self.start.distance_to(self.end)


class Polygon(BaseModel):
    """
    Simple closed polygon with canonical counter-clockwise winding.

    The closing edge is implicit: the first vertex is never repeated at the end.
    """
    model_config = ConfigDict(frozen=True)

    vertices: Tuple[Point2D, ...]
    self_intersecting: bool = False  # advisory only

    @model_validator(mode="after")
    def _check_invariants(self) -> "Polygon":
        if len(self.vertices) < 3:
            raise ValueError("Polygon needs at least 3 vertices")
        if self.vertices[0] == self.vertices[-1]:
            raise ValueError("Polygon must not repeat its first vertex")
        for i in range(len(self.vertices)):
            if self.vertices[i] == self.vertices[(i + 1) % len(self.vertices)]:
                raise ValueError(f"Polygon has consecutive duplicate vertex at index {i}")
        if signed_area(self.vertices) <= 0:
            raise ValueError("Polygon must have counter-clockwise winding")
        return self

    def signed_area(self) -> float:
        return signed_area(self.vertices)

    def area(self) -> float:
        return abs(self.signed_area())

    def perimeter(self) -> float:
        total = 0.0
        for i in range(len(self.vertices)):
            total += self.vertices[i].distance_to(self.vertices[(i + 1) % len(self.vertices)])
        return total

    def bounding_box(self) -> Tuple[float, float, float, float]:
        """
        Get bounding box (min_x, min_y, max_x, max_y).

        Returns:
            Tuple of (min_x, min_y, max_x, max_y)
        """
        min_x = min(p.x for p in self.vertices)
        min_y = min(p.y for p in self.vertices)
        max_x = max(p.x for p in self.vertices)
        max_y = max(p.y for p in self.vertices)

        return (min_x, min_y, max_x, max_y)


class SectionSpec(BaseModel):
    """A named structural cross-section parsed from a catalog name."""
    model_config = ConfigDict(frozen=True)

    name: str
    role: str  # naming-convention prefix, e.g. "B" or "SLAB"
    width_mm: int
    depth_mm: int
    grade: Optional[str] = None  # numeric part only, e.g. "35"
    kind: SectionKind = SectionKind.FRAME

    @property
    def thickness_mm(self) -> int:
        """Thickness of an area section (stored as both width and depth)."""
        return self.depth_mm


class LayerClassification(BaseModel):
    """What a CAD layer means structurally. Derived once per layer name."""
    model_config = ConfigDict(frozen=True)

    layer: str
    kind: ElementKind
    wall_type: Optional[WallType] = None
    beam_role: Optional[BeamRole] = None
    slab_kind: Optional[SlabKind] = None
    explicit_thickness_mm: Optional[int] = None


class GradeTier(BaseModel):
    """One grade tier: a concrete grade applied over a run of consecutive floors."""
    model_config = ConfigDict(frozen=True)

    grade: str  # e.g. "M50"
    floors: int = Field(gt=0)

    @field_validator("grade")
    @classmethod
    def validate_grade(cls, v: str) -> str:
        """Normalise grade labels to upper case without spaces."""
        return v.strip().upper()


# ---------------------------------------------------------------------------
# Hatch boundary edges (closed tagged union)
# ---------------------------------------------------------------------------

class LineEdge(BaseModel):
    """Straight hatch boundary edge."""
    model_config = ConfigDict(frozen=True)

    edge_type: Literal["line"] = "line"
    start: Point2D
    end: Point2D


class ArcEdge(BaseModel):
    """Circular arc edge. Angles in degrees."""
    model_config = ConfigDict(frozen=True)

    edge_type: Literal["arc"] = "arc"
    center: Point2D
    radius: float
    start_angle: float
    end_angle: float


class EllipseEdge(BaseModel):
    """Elliptic arc edge. major_axis is relative to center; angles in degrees."""
    model_config = ConfigDict(frozen=True)

    edge_type: Literal["ellipse"] = "ellipse"
    center: Point2D
    major_axis: Point2D
    ratio: float  # minor / major
    start_angle: float = 0.0
    end_angle: float = 360.0


class SplineEdge(BaseModel):
    """Spline edge, approximated by its control polygon."""
    model_config = ConfigDict(frozen=True)

    edge_type: Literal["spline"] = "spline"
    control_points: Tuple[Point2D, ...]


BoundaryEdge = Union[LineEdge, ArcEdge, EllipseEdge, SplineEdge]


class HatchBoundaryPath(BaseModel):
    """One hatch boundary loop: either a list of edges or a plain vertex list."""
    model_config = ConfigDict(frozen=True)

    edges: Tuple[BoundaryEdge, ...] = ()
    vertices: Tuple[Point2D, ...] = ()

    @property
    def is_polyline_path(self) -> bool:
        return not self.edges and bool(self.vertices)


# ---------------------------------------------------------------------------
# CAD entities (closed tagged union)
# ---------------------------------------------------------------------------

class LineEntity(BaseModel):
    """LINE entity."""
    entity_type: Literal["line"] = "line"
    layer: str = "0"
    start: Point2D
    end: Point2D


class PolylineEntity(BaseModel):
    """LWPOLYLINE or POLYLINE entity."""
    entity_type: Literal["polyline"] = "polyline"
    layer: str = "0"
    vertices: List[Point2D]
    is_closed: bool = False

    def segments(self) -> List[Tuple[Point2D, Point2D]]:
        """Consecutive vertex pairs, plus the closing pair when closed."""
        pairs = [
            (self.vertices[i], self.vertices[i + 1])
            for i in range(len(self.vertices) - 1)
        ]
        if self.is_closed and len(self.vertices) > 2:
            pairs.append((self.vertices[-1], self.vertices[0]))
        return pairs


class HatchEntity(BaseModel):
    """HATCH entity with one or more boundary paths."""
    entity_type: Literal["hatch"] = "hatch"
    layer: str = "0"
    paths: List[HatchBoundaryPath] = Field(default_factory=list)


CadEntity = Union[LineEntity, PolylineEntity, HatchEntity]


# ---------------------------------------------------------------------------
# Output records
# ---------------------------------------------------------------------------

class ResolvedElement(BaseModel):
    """A fully resolved element ready for the model sink."""
    model_config = ConfigDict(frozen=True)

    kind: ElementKind
    points: Tuple[Point3D, ...]
    section: str
    story: str
    layer: str


class ImportStatistics(BaseModel):
    """Counters for one import pass."""
    created: int = 0
    failed: int = 0
    skipped: int = 0
    sections_used: Dict[str, int] = Field(default_factory=dict)
    skip_reasons: Dict[str, int] = Field(default_factory=dict)
    failures: List[str] = Field(default_factory=list)

    def record_created(self, section: str) -> None:
        self.created += 1
        self.sections_used[section] = self.sections_used.get(section, 0) + 1

    def record_skip(self, skip: Skip) -> None:
        self.skipped += 1
        key = skip.reason.value
        self.skip_reasons[key] = self.skip_reasons.get(key, 0) + 1

    def record_failure(self, message: str) -> None:
        self.failed += 1
        self.failures.append(message)

    def reset(self) -> None:
        """Clear all counters."""
        self.created = 0
        self.failed = 0
        self.skipped = 0
        self.sections_used = {}
        self.skip_reasons = {}
        self.failures = []

    def merge(self, other: "ImportStatistics") -> None:
        """Accumulate another pass into this one."""
        self.created += other.created
        self.failed += other.failed
        self.skipped += other.skipped
        for name, count in other.sections_used.items():
            self.sections_used[name] = self.sections_used.get(name, 0) + count
        for reason, count in other.skip_reasons.items():
            self.skip_reasons[reason] = self.skip_reasons.get(reason, 0) + count
        self.failures.extend(other.failures)

    def summary(self) -> str:
        lines = [f"created={self.created} failed={self.failed} skipped={self.skipped}"]
        for name in sorted(self.sections_used):
            lines.append(f"  {name}: {self.sections_used[name]}")
        for reason in sorted(self.skip_reasons):
            lines.append(f"  skipped ({reason}): {self.skip_reasons[reason]}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Source drawings
# ---------------------------------------------------------------------------

class DrawingMetadata(BaseModel):
    """Metadata about the source drawing."""
    file_path: str
    file_format: str = "DXF"
    units: str = "mm"  # Drawing units
    unit_scale: float = 0.001  # drawing units -> metres
    layers: List[str] = Field(default_factory=list)
    entity_counts: Dict[str, int] = Field(default_factory=dict)


class ValidationResult(BaseModel):
    """Result of fail-fast validation."""
    is_valid: bool
    critical_errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    metadata: DrawingMetadata

    def should_abort(self) -> bool:
        """Check if critical errors require aborting."""
        return len(self.critical_errors) > 0
