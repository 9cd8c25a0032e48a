"""
Section catalog.

Parses host-model section names into SectionSpecs. Frame sections follow
``<Role><Width>X<Depth>M<Grade>`` with width and depth in centimetres
(``B20X75M35`` is a 200 x 750 mm M35 beam). Area sections follow
``<ROLE><Thickness>[M<Grade>]`` with the thickness in millimetres
(``SLAB150``, ``W200M40``).
"""

import re
from typing import Dict, Iterable, Iterator, List, Optional, Pattern

from loguru import logger

from cadstruct.core.errors import CatalogEmpty
from cadstruct.core.models import SectionKind, SectionSpec

FRAME_SECTION_PATTERN = re.compile(
    r"^(?P<role>[A-Z])(?P<width>\d+(?:\.\d+)?)X(?P<depth>\d+(?:\.\d+)?)M(?P<grade>\d+)",
    re.IGNORECASE,
)

AREA_SECTION_PATTERN = re.compile(
    r"^(?P<role>[A-Z]+?)(?P<thickness>\d+(?:\.\d+)?)(?:M(?P<grade>\d+))?$",
    re.IGNORECASE,
)


def parse_frame_section(name: str, pattern: Pattern = FRAME_SECTION_PATTERN) -> Optional[SectionSpec]:
    """
    Parse a frame section name.

    Args:
        name: Section name, e.g. "B20X75M35"
        pattern: Naming convention regex

    Returns:
        SectionSpec with dimensions in mm, or None if the name does not match
    """
    match = pattern.match(name.strip())
    if not match:
        return None

    return SectionSpec(
        name=name.strip(),
        role=match.group("role").upper(),
        width_mm=int(round(float(match.group("width")) * 10)),
        depth_mm=int(round(float(match.group("depth")) * 10)),
        grade=match.group("grade"),
        kind=SectionKind.FRAME,
    )


def parse_area_section(name: str, pattern: Pattern = AREA_SECTION_PATTERN) -> Optional[SectionSpec]:
    """
    Parse an area (wall/slab) section name.

    Args:
        name: Section name, e.g. "SLAB150" or "W200M40"
        pattern: Naming convention regex

    Returns:
        SectionSpec with width and depth both set to the thickness, or None
    """
    match = pattern.match(name.strip())
    if not match:
        return None

    thickness = int(round(float(match.group("thickness"))))
    return SectionSpec(
        name=name.strip(),
        role=match.group("role").upper(),
        width_mm=thickness,
        depth_mm=thickness,
        grade=match.group("grade"),
        kind=SectionKind.AREA,
    )


class SectionCatalog:
    """
    Read-only, insertion-ordered collection of sections keyed by name.

    Built once per run and handed to the resolver; never mutated afterwards.
    """

    def __init__(self, entries: Dict[str, SectionSpec]):
        self._entries = dict(entries)

    @classmethod
    def load(cls, names: Iterable[str]) -> "SectionCatalog":
        """
        Build a frame section catalog from host section names.

        Non-matching names are ignored. A repeated name overwrites the
        earlier entry in place.

        Raises:
            CatalogEmpty: If no name matches the frame naming convention
        """
        return cls._load(names, parse_frame_section, "frame")

    @classmethod
    def load_area_sections(cls, names: Iterable[str]) -> "SectionCatalog":
        """
        Build an area section catalog (walls and slabs).

        Raises:
            CatalogEmpty: If no name matches the area naming convention
        """
        return cls._load(names, parse_area_section, "area")

    @classmethod
    def _load(cls, names: Iterable[str], parse, family: str) -> "SectionCatalog":
        entries: Dict[str, SectionSpec] = {}
        seen = 0
        for name in names:
            seen += 1
            spec = parse(name)
            if spec is None:
                logger.debug(f"Ignoring section name '{name}' (not a {family} section)")
                continue
            entries[spec.name] = spec

        if not entries:
            raise CatalogEmpty(
                f"No {family} sections found in catalog",
                {"names_checked": seen},
            )

        logger.info(f"Loaded {len(entries)} {family} sections from {seen} names")
        return cls(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SectionSpec]:
        return iter(self._entries.values())

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str) -> Optional[SectionSpec]:
        return self._entries.get(name)

    def entries(self) -> List[SectionSpec]:
        """All sections in insertion order."""
        return list(self._entries.values())

    def available_widths(self) -> List[int]:
        """Sorted distinct widths (mm)."""
        return sorted({spec.width_mm for spec in self._entries.values()})

    def roles(self) -> List[str]:
        """Distinct role prefixes in first-seen order."""
        roles: List[str] = []
        for spec in self._entries.values():
            if spec.role not in roles:
                roles.append(spec.role)
        return roles

    def grades(self) -> List[str]:
        """Distinct grades in first-seen order."""
        grades: List[str] = []
        for spec in self._entries.values():
            if spec.grade is not None and spec.grade not in grades:
                grades.append(spec.grade)
        return grades
