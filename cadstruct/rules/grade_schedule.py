"""
Concrete grade schedule.

Maps story indices (0-based, bottom-up) to the wall grade of their tier and
the dependent beam/slab grade derived from it.
"""

import math
import re
from typing import List, Sequence, Tuple

from loguru import logger

from cadstruct.core.errors import ConfigurationError, FloorCountMismatch
from cadstruct.core.models import GradeTier

MIN_DEPENDENT_GRADE = 20
_GRADE_LABEL = re.compile(r"^M(\d+)$", re.IGNORECASE)


def grade_value(label: str) -> int:
    """
    Numeric part of a grade label.

    Raises:
        ConfigurationError: If the label is not of the form "M<number>"
    """
    match = _GRADE_LABEL.match(str(label).strip())
    if not match:
        raise ConfigurationError(f"Invalid grade format: {label}", {"grade": label})
    return int(match.group(1))


def dependent_grade_for(wall_grade: str) -> str:
    """
    Beam/slab grade for a wall grade: 70% rounded up to a multiple of 5, at least M20.

    >>> dependent_grade_for("M50")
    'M35'
    """
    value = grade_value(wall_grade)
    dependent = math.ceil(value * 7 / 50) * 5
    return f"M{max(dependent, MIN_DEPENDENT_GRADE)}"


class GradeSchedule:
    """
    Ordered grade tiers from the bottom of the building up.

    Every story belongs to exactly one tier: the spans must add up to the
    story count.
    """

    def __init__(
        self,
        grades: Sequence[str],
        floors_per_grade: Sequence[int],
        total_stories: int,
    ):
        """
        Initialize grade schedule.

        Args:
            grades: Wall grade labels, bottom tier first (e.g. ["M50", "M45"])
            floors_per_grade: Number of floors in each tier
            total_stories: Number of stories in the building

        Raises:
            ConfigurationError: Mismatched or empty lists, bad labels or spans
            FloorCountMismatch: Spans do not add up to total_stories
        """
        if len(grades) != len(floors_per_grade):
            raise ConfigurationError(
                "Grade list and floor count list must have the same length",
                {"grades": len(grades), "floors": len(floors_per_grade)},
            )
        if not grades:
            raise ConfigurationError("Grade schedule is empty")

        tiers = []
        for grade, floors in zip(grades, floors_per_grade):
            grade_value(grade)
            if floors <= 0:
                raise ConfigurationError(
                    "Each grade tier must span at least one floor",
                    {"grade": grade, "floors": floors},
                )
            tiers.append(GradeTier(grade=grade, floors=floors))

        covered = sum(tier.floors for tier in tiers)
        if covered != total_stories:
            raise FloorCountMismatch(
                f"Grade schedule covers {covered} floors but the building has {total_stories}",
                {"covered": covered, "total_stories": total_stories},
            )

        self.tiers: Tuple[GradeTier, ...] = tuple(tiers)
        self.total_stories = total_stories

    @classmethod
    def from_tiers(cls, tiers: Sequence[GradeTier], total_stories: int) -> "GradeSchedule":
        return cls([t.grade for t in tiers], [t.floors for t in tiers], total_stories)

    def tier_for(self, story_index: int) -> GradeTier:
        """
        Tier containing a story (0-based from the bottom).

        Indices outside the building fall back to the top tier with a warning.
        """
        cumulative = 0
        for tier in self.tiers:
            cumulative += tier.floors
            if 0 <= story_index < cumulative:
                return tier

        logger.warning(
            f"Story index {story_index} outside grade schedule "
            f"(0-{self.total_stories - 1}), using {self.tiers[-1].grade}"
        )
        return self.tiers[-1]

    def wall_grade(self, story_index: int) -> str:
        """Wall grade for a story."""
        return self.tier_for(story_index).grade

    def dependent_grade(self, story_index: int) -> str:
        """Beam/slab grade for a story."""
        return dependent_grade_for(self.wall_grade(story_index))

    def floor_ranges(self) -> List[Tuple[str, int, int]]:
        """(grade, first floor, last floor) per tier, floors 1-based."""
        ranges = []
        start = 1
        for tier in self.tiers:
            end = start + tier.floors - 1
            ranges.append((tier.grade, start, end))
            start = end + 1
        return ranges

    def summary(self) -> str:
        """Human-readable schedule."""
        lines = [f"Grade schedule ({self.total_stories} floors):"]
        for grade, first, last in self.floor_ranges():
            lines.append(
                f"  Floors {first}-{last}: walls {grade}, "
                f"beams/slabs {dependent_grade_for(grade)}"
            )
        return "\n".join(lines)
