"""
Model sink interface.

The host structural model is reached only through this small protocol, so
the same builder can drive an IFC file, an analysis model, or an in-memory
recorder.
"""

from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from loguru import logger
from pydantic import BaseModel


class SinkResult(BaseModel):
    """Host status for one creation call. Success means code 0 and a name."""
    code: int = 0
    name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code == 0 and bool(self.name)


class ModelSink(Protocol):
    """Operations the element builder needs from a host model."""

    def create_point(self, x: float, y: float, z: float) -> str:
        ...

    def create_area(self, points: Sequence[str], section: str) -> SinkResult:
        ...

    def create_frame(self, p1: str, p2: str, section: str) -> SinkResult:
        ...

    def assign_to_group(self, element: str, group_name: str) -> None:
        ...


class RecordingSink:
    """
    In-memory sink.

    Keeps every point, area, frame and group assignment. Sections listed in
    reject_sections fail with code 1, which lets dry runs and tests exercise
    host failures.
    """

    def __init__(self, reject_sections: Sequence[str] = (), reject_first_areas: int = 0):
        """
        Initialize recording sink.

        Args:
            reject_sections: Section names whose creation fails
            reject_first_areas: Fail this many area creations before accepting any
        """
        self.points: Dict[str, Tuple[float, float, float]] = {}
        self.areas: Dict[str, Tuple[List[str], str]] = {}
        self.frames: Dict[str, Tuple[str, str, str]] = {}
        self.groups: Dict[str, List[str]] = {}
        self.reject_sections = set(reject_sections)
        self._areas_to_reject = reject_first_areas

    def create_point(self, x: float, y: float, z: float) -> str:
        name = f"P{len(self.points) + 1}"
        self.points[name] = (x, y, z)
        return name

    def create_area(self, points: Sequence[str], section: str) -> SinkResult:
        if section in self.reject_sections:
            return SinkResult(code=1)
        if self._areas_to_reject > 0:
            self._areas_to_reject -= 1
            return SinkResult(code=1)
        name = f"A{len(self.areas) + 1}"
        self.areas[name] = (list(points), section)
        return SinkResult(code=0, name=name)

    def create_frame(self, p1: str, p2: str, section: str) -> SinkResult:
        if section in self.reject_sections:
            return SinkResult(code=1)
        name = f"F{len(self.frames) + 1}"
        self.frames[name] = (p1, p2, section)
        return SinkResult(code=0, name=name)

    def assign_to_group(self, element: str, group_name: str) -> None:
        self.groups.setdefault(group_name, []).append(element)

    def area_coordinates(self, name: str) -> List[Tuple[float, float, float]]:
        """Coordinates of an area's points, in creation order."""
        point_names, _ = self.areas[name]
        return [self.points[p] for p in point_names]


class WindingRetrySink:
    """
    Wraps a sink whose area creation is sensitive to vertex order.

    When an area fails, its points are recreated in reverse order and the
    creation is tried once more.
    """

    def __init__(self, inner: ModelSink):
        self.inner = inner
        self._coordinates: Dict[str, Tuple[float, float, float]] = {}
        self.retries = 0

    def create_point(self, x: float, y: float, z: float) -> str:
        name = self.inner.create_point(x, y, z)
        self._coordinates[name] = (x, y, z)
        return name

    def create_area(self, points: Sequence[str], section: str) -> SinkResult:
        result = self.inner.create_area(points, section)
        if result.ok:
            return result

        logger.debug(f"Area creation failed (code {result.code}), retrying with reversed winding")
        self.retries += 1
        reversed_points = [
            self.inner.create_point(*self._coordinates[name]) for name in reversed(points)
        ]
        return self.inner.create_area(reversed_points, section)

    def create_frame(self, p1: str, p2: str, section: str) -> SinkResult:
        return self.inner.create_frame(p1, p2, section)

    def assign_to_group(self, element: str, group_name: str) -> None:
        self.inner.assign_to_group(element, group_name)
