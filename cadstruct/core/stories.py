"""
Story planning.

Expands floor-type runs into the flat, bottom-up list of stories with their
names and elevations.
"""

from typing import List, Sequence

from loguru import logger
from pydantic import BaseModel, ConfigDict

from cadstruct.core.config import FloorTypeConfig

TYPICAL_FLOOR_TYPE = "Typical"


class Story(BaseModel):
    """One building story. Elevations in metres."""
    model_config = ConfigDict(frozen=True)

    index: int  # 0-based from the bottom
    name: str
    floor_type: str
    height_m: float
    base_elevation_m: float
    top_elevation_m: float


def story_name(floor_type: str, number: int) -> str:
    """
    Story name for the n-th (1-based) floor of a floor type.

    Typical floors are named Story1, Story2, ...; EDeck is a single named level.
    """
    key = floor_type.strip().lower()
    if key == "basement":
        return f"Basement{number}"
    if key == "podium":
        return f"Podium{number}"
    if key == "edeck":
        return "EDeck"
    if key == TYPICAL_FLOOR_TYPE.lower():
        return f"Story{number}"
    return f"{floor_type}{number}"


def typical_floor_count(floor_types: Sequence[FloorTypeConfig]) -> int:
    """
    Floor count used by the wall tables.

    The Typical floor type's count when present, otherwise every floor.
    """
    for floor_type in floor_types:
        if floor_type.name.strip().lower() == TYPICAL_FLOOR_TYPE.lower():
            return floor_type.count
    return sum(ft.count for ft in floor_types)


class StoryPlan:
    """Stories of a building from the ground up."""

    def __init__(self, stories: Sequence[Story]):
        self.stories: List[Story] = list(stories)

    @classmethod
    def from_floor_types(cls, floor_types: Sequence[FloorTypeConfig]) -> "StoryPlan":
        """
        Expand floor types (bottom-up order) into stories.

        Args:
            floor_types: Floor-type runs, lowest first

        Returns:
            StoryPlan with cumulative elevations starting at 0
        """
        stories = []
        elevation = 0.0
        index = 0
        for floor_type in floor_types:
            for number in range(1, floor_type.count + 1):
                top = elevation + floor_type.height_m
                stories.append(Story(
                    index=index,
                    name=story_name(floor_type.name, number),
                    floor_type=floor_type.name,
                    height_m=floor_type.height_m,
                    base_elevation_m=elevation,
                    top_elevation_m=top,
                ))
                elevation = top
                index += 1

        logger.debug(f"Planned {len(stories)} stories, total height {elevation:.2f} m")
        return cls(stories)

    def __len__(self) -> int:
        return len(self.stories)

    def __iter__(self):
        return iter(self.stories)

    def total_height(self) -> float:
        if not self.stories:
            return 0.0
        return self.stories[-1].top_elevation_m

    def stories_of_type(self, floor_type: str) -> List[Story]:
        return [s for s in self.stories if s.floor_type == floor_type]
