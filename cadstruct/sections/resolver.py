"""
Section resolution.

Picks the catalog section closest to a required width and depth. Depth
mismatch weighs twice as much as width mismatch; ties go to the earliest
catalog entry.
"""

from typing import Optional

from loguru import logger

from cadstruct.core.errors import NoMatch
from cadstruct.core.models import SectionSpec
from cadstruct.sections.catalog import SectionCatalog


def score(spec: SectionSpec, required_width: float, required_depth: float) -> float:
    """Weighted dimension mismatch; 0 is an exact match."""
    return abs(spec.depth_mm - required_depth) * 2 + abs(spec.width_mm - required_width)


def normalize_grade(grade: Optional[str]) -> Optional[str]:
    """'M35', 'm35' and '35' all become '35'."""
    if grade is None:
        return None
    text = str(grade).strip().upper()
    if text.startswith("M"):
        text = text[1:]
    return text or None


class SectionResolver:
    """Resolves required dimensions against an owned catalog."""

    def __init__(self, catalog: SectionCatalog):
        """
        Initialize resolver.

        Args:
            catalog: Loaded section catalog (read-only)
        """
        self.catalog = catalog

    def resolve_spec(
        self,
        required_width: float,
        required_depth: float,
        preferred_grade: Optional[str] = None,
        role: Optional[str] = None,
    ) -> SectionSpec:
        """
        Find the best-scoring section.

        Args:
            required_width: Width in mm
            required_depth: Depth in mm
            preferred_grade: Restrict to this grade ("M35" or "35"); falls back
                to all grades when the catalog has none of it
            role: Restrict to sections with this role prefix

        Returns:
            Best SectionSpec

        Raises:
            NoMatch: If no entry can be scored
        """
        grade = normalize_grade(preferred_grade)

        best: Optional[SectionSpec] = None
        best_score = float("inf")
        for spec in self.catalog:
            if grade is not None and spec.grade != grade:
                continue
            if role is not None and spec.role != role.upper():
                continue
            spec_score = score(spec, required_width, required_depth)
            if spec_score < best_score:
                best = spec
                best_score = spec_score

        if best is None:
            if grade is not None:
                logger.debug(f"No M{grade} section in catalog, ignoring grade preference")
                return self.resolve_spec(required_width, required_depth, None, role)
            raise NoMatch(
                required_width,
                required_depth,
                self.catalog.available_widths(),
                preferred_grade=preferred_grade,
            )

        logger.debug(
            f"Resolved {required_width:g}x{required_depth:g} -> {best.name} (score {best_score:g})"
        )
        return best

    def resolve(
        self,
        required_width: float,
        required_depth: float,
        preferred_grade: Optional[str] = None,
    ) -> str:
        """Same as resolve_spec, returning only the section name."""
        return self.resolve_spec(required_width, required_depth, preferred_grade).name

    def resolve_area(
        self,
        thickness: float,
        preferred_grade: Optional[str] = None,
        role: Optional[str] = None,
    ) -> str:
        """Resolve an area section by thickness (mm), optionally within one role prefix."""
        return self.resolve_spec(thickness, thickness, preferred_grade, role).name
