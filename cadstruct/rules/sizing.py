"""
Sizing rules.

Code-derived, table-driven thickness and width rules for walls, beams and
slabs. All tables are module constants and never modified.

Wall tables are indexed by floor band: up to 20, 25, 30, 35, 40, 45 and 50
floors (upper bound inclusive).
"""

from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from loguru import logger

from cadstruct.core.errors import ConfigurationError, InvalidZone, OutOfRange
from cadstruct.core.models import BeamRole, SlabKind, WallType

MIN_FLOORS = 1
MAX_FLOORS = 50
FLOOR_BANDS = (20, 25, 30, 35, 40, 45, 50)

SHORT_WALL_LENGTH = 1.8  # m
NORMAL_WALL_LENGTH = 2.0  # m, used for main beam widths


class SeismicZone(str, Enum):
    """Seismic zones with wall tables. Zone V uses the Zone IV tables."""
    II = "II"
    III = "III"
    IV = "IV"
    V = "V"

    @classmethod
    def parse(cls, value) -> "SeismicZone":
        """
        Parse "Zone IV", "iv", "IV" or a SeismicZone.

        Raises:
            InvalidZone: If the value names no known zone
        """
        if isinstance(value, SeismicZone):
            return value
        text = str(value).strip().upper()
        if text.startswith("ZONE"):
            text = text[4:].strip()
        try:
            return cls(text)
        except ValueError:
            raise InvalidZone(f"Unknown seismic zone: {value}", {"value": value}) from None

    @property
    def table_zone(self) -> "SeismicZone":
        return SeismicZone.IV if self is SeismicZone.V else self


# (zone, wall type) -> (normal row, variant row or None)
# Zone II variant is the floating-wall row for core/peripheral dead walls;
# elsewhere the internal-wall variant is the short-wall row.
_WALL_TABLES: Dict[Tuple[SeismicZone, WallType], Tuple[Tuple[int, ...], Optional[Tuple[int, ...]]]] = {
    (SeismicZone.II, WallType.CORE_WALL): (
        (160, 200, 200, 200, 200, 200, 300),
        (200, 250, 250, 300, 300, 325, 350),
    ),
    (SeismicZone.II, WallType.PERIPHERAL_DEAD_WALL): (
        (160, 200, 200, 200, 200, 250, 300),
        (200, 250, 250, 250, 250, 300, 350),
    ),
    (SeismicZone.II, WallType.PERIPHERAL_PORTAL_WALL): (
        (200, 200, 200, 200, 200, 250, 300),
        None,
    ),
    (SeismicZone.II, WallType.INTERNAL_WALL): (
        (160, 160, 160, 200, 200, 225, 250),
        (200, 200, 250, 300, 300, 325, 350),
    ),
    (SeismicZone.III, WallType.CORE_WALL): (
        (200, 300, 350, 375, 400, 425, 450),
        None,
    ),
    (SeismicZone.III, WallType.PERIPHERAL_DEAD_WALL): (
        (200, 200, 250, 300, 325, 350, 400),
        None,
    ),
    (SeismicZone.III, WallType.PERIPHERAL_PORTAL_WALL): (
        (300, 350, 400, 400, 400, 400, 450),
        None,
    ),
    (SeismicZone.III, WallType.INTERNAL_WALL): (
        (200, 200, 200, 225, 250, 275, 300),
        (300, 300, 300, 350, 400, 450, 500),
    ),
    (SeismicZone.IV, WallType.CORE_WALL): (
        (300, 350, 375, 400, 425, 450, 500),
        None,
    ),
    (SeismicZone.IV, WallType.PERIPHERAL_DEAD_WALL): (
        (240, 240, 275, 300, 325, 350, 400),
        None,
    ),
    (SeismicZone.IV, WallType.PERIPHERAL_PORTAL_WALL): (
        (300, 350, 400, 400, 400, 400, 450),
        None,
    ),
    (SeismicZone.IV, WallType.INTERNAL_WALL): (
        (240, 240, 240, 240, 240, 275, 300),
        (300, 300, 300, 350, 400, 450, 500),
    ),
}

# Wall type a main beam frames into
MAIN_BEAM_WALL_TYPES: Dict[BeamRole, WallType] = {
    BeamRole.CORE_MAIN: WallType.CORE_WALL,
    BeamRole.PERIPHERAL_DEAD_MAIN: WallType.PERIPHERAL_DEAD_WALL,
    BeamRole.PERIPHERAL_PORTAL_MAIN: WallType.PERIPHERAL_PORTAL_WALL,
    BeamRole.INTERNAL_MAIN: WallType.INTERNAL_WALL,
}

DEFAULT_BEAM_DEPTHS: Dict[BeamRole, int] = {
    BeamRole.INTERNAL_GRAVITY: 450,
    BeamRole.CANTILEVER_GRAVITY: 500,
    BeamRole.CORE_MAIN: 600,
    BeamRole.PERIPHERAL_DEAD_MAIN: 600,
    BeamRole.PERIPHERAL_PORTAL_MAIN: 650,
    BeamRole.INTERNAL_MAIN: 550,
}

# (upper bound m², thickness mm)
REGULAR_SLAB_BANDS = (
    (14.0, 125),
    (17.0, 135),
    (22.0, 150),
    (25.0, 160),
    (32.0, 175),
    (42.0, 200),
    (70.0, 250),
)

# (upper bound span m, thickness mm)
CANTILEVER_SLAB_BANDS = (
    (1.0, 125),
    (1.5, 160),
    (1.8, 180),
    (5.0, 200),
)

DEFAULT_SLAB_THICKNESSES: Dict[SlabKind, int] = {
    SlabKind.LOBBY: 160,
    SlabKind.STAIR: 175,
}


def floor_band(floor_count: int) -> int:
    """
    Index of the table column for a floor count.

    Raises:
        OutOfRange: If floor_count is outside 1..50
    """
    if not MIN_FLOORS <= floor_count <= MAX_FLOORS:
        raise OutOfRange(
            f"Floor count must be between {MIN_FLOORS} and {MAX_FLOORS}",
            {"floor_count": floor_count},
        )
    for index, upper in enumerate(FLOOR_BANDS):
        if floor_count <= upper:
            return index
    return len(FLOOR_BANDS) - 1


def is_short_wall(length_m: float) -> bool:
    """Walls under 1.8 m take the short-wall row where one exists."""
    return length_m < SHORT_WALL_LENGTH


def wall_thickness(
    wall_type: WallType,
    zone,
    floor_count: int,
    is_short_wall: bool = False,
    is_floating: bool = False,
) -> int:
    """
    Required wall thickness in mm.

    Floating walls only change the result in Zone II; short walls only
    change the result for internal walls.

    Args:
        wall_type: Wall classification
        zone: Seismic zone (enum or label)
        floor_count: Total typical floors (1..50)
        is_short_wall: Wall shorter than 1.8 m
        is_floating: Wall not continuous to the foundation

    Returns:
        Thickness in mm

    Raises:
        OutOfRange: Floor count outside 1..50
        InvalidZone: Unknown zone or zone/type combination
    """
    zone = SeismicZone.parse(zone)
    band = floor_band(floor_count)

    try:
        normal, variant = _WALL_TABLES[(zone.table_zone, WallType(wall_type))]
    except (KeyError, ValueError):
        raise InvalidZone(
            f"No wall table for {wall_type} in Zone {zone.value}",
            {"wall_type": str(wall_type), "zone": zone.value},
        ) from None

    if variant is not None:
        if zone.table_zone is SeismicZone.II and wall_type != WallType.INTERNAL_WALL:
            if is_floating:
                return variant[band]
        elif wall_type == WallType.INTERNAL_WALL and is_short_wall:
            return variant[band]

    return normal[band]


def gravity_beam_width(zone) -> int:
    """Gravity beam width in mm: 200 in zones II/III, 240 in IV/V."""
    zone = SeismicZone.parse(zone)
    if zone in (SeismicZone.II, SeismicZone.III):
        return 200
    return 240


def main_beam_width(role: BeamRole, zone, floor_count: int) -> int:
    """Main beam width equals the thickness of the wall it frames into."""
    return wall_thickness(
        MAIN_BEAM_WALL_TYPES[role],
        zone,
        floor_count,
        is_short_wall=False,
        is_floating=False,
    )


def beam_size(
    role: BeamRole,
    zone,
    floor_count: int,
    beam_depths: Optional[Mapping[BeamRole, int]] = None,
) -> Tuple[int, int]:
    """
    Required beam width and depth in mm.

    Args:
        role: Beam role
        zone: Seismic zone
        floor_count: Total typical floors
        beam_depths: Depth per role; falls back to the default table

    Returns:
        (width_mm, depth_mm)

    Raises:
        ConfigurationError: If no depth is configured for the role
    """
    depths = DEFAULT_BEAM_DEPTHS if beam_depths is None else beam_depths
    if role not in depths:
        raise ConfigurationError(f"No beam depth configured for {role.value}", {"role": role.value})

    if role.is_gravity:
        width = gravity_beam_width(zone)
    else:
        width = main_beam_width(role, zone, floor_count)

    return width, int(depths[role])


def regular_slab_thickness(area_m2: float) -> int:
    """Slab thickness by panel area."""
    for upper, thickness in REGULAR_SLAB_BANDS:
        if area_m2 <= upper:
            return thickness
    logger.warning(
        f"Slab area {area_m2:.1f} m² exceeds {REGULAR_SLAB_BANDS[-1][0]:g} m², "
        f"using {REGULAR_SLAB_BANDS[-1][1]}mm"
    )
    return REGULAR_SLAB_BANDS[-1][1]


def cantilever_slab_thickness(span_m: float) -> int:
    """Cantilever slab thickness by span."""
    for upper, thickness in CANTILEVER_SLAB_BANDS:
        if span_m <= upper:
            return thickness
    logger.warning(
        f"Cantilever span {span_m:.2f} m exceeds {CANTILEVER_SLAB_BANDS[-1][0]:g} m, "
        f"using {CANTILEVER_SLAB_BANDS[-1][1]}mm"
    )
    return CANTILEVER_SLAB_BANDS[-1][1]


def slab_thickness(
    kind: SlabKind,
    area_m2: float,
    span_m: float,
    overrides: Optional[Mapping[SlabKind, int]] = None,
    explicit_thickness: Optional[int] = None,
) -> int:
    """
    Required slab thickness in mm.

    Args:
        kind: Slab classification
        area_m2: Panel area in m²
        span_m: Cantilever span in m (shorter plan dimension)
        overrides: Configured thickness for lobby and stair slabs
        explicit_thickness: Thickness named on the layer; wins over all rules

    Returns:
        Thickness in mm
    """
    if explicit_thickness is not None:
        return explicit_thickness

    if kind in (SlabKind.LOBBY, SlabKind.STAIR):
        configured = dict(DEFAULT_SLAB_THICKNESSES)
        if overrides:
            configured.update(overrides)
        return configured[kind]

    if kind == SlabKind.CANTILEVER:
        return cantilever_slab_thickness(span_m)

    return regular_slab_thickness(area_m2)


def thickness_table(zone, floor_count: int) -> Dict[WallType, Tuple[int, int]]:
    """
    Preview of (normal, short) thickness per wall type.

    Useful for design notes and for checking a catalog covers every size.
    """
    table = {}
    for wall_type in WallType:
        table[wall_type] = (
            wall_thickness(wall_type, zone, floor_count, is_short_wall=False),
            wall_thickness(wall_type, zone, floor_count, is_short_wall=True),
        )
    return table


def design_notes(zone, floor_count: int) -> str:
    """Human-readable summary of wall and gravity beam sizes for a building."""
    zone = SeismicZone.parse(zone)
    lines = [
        f"Wall thickness design notes: Zone {zone.value}, {floor_count} floors",
    ]
    for wall_type, (normal, short) in thickness_table(zone, floor_count).items():
        if normal == short:
            lines.append(f"  {wall_type.value}: {normal}mm")
        else:
            lines.append(f"  {wall_type.value}: {normal}mm (short walls {short}mm)")
    lines.append(f"  Gravity beam width: {gravity_beam_width(zone)}mm")
    return "\n".join(lines)
