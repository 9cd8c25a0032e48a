"""
Element building.

Turns classified CAD entities into resolved walls, beams and slabs for one
story and pushes them into a model sink. Geometry problems are skipped,
resolution and sink problems are counted as failures; neither stops the pass.
"""

from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict

from cadstruct.classification.layer_classifier import LayerClassifier
from cadstruct.core.errors import NoMatch
from cadstruct.core.models import (
    BeamRole,
    CadEntity,
    ElementKind,
    HatchEntity,
    ImportStatistics,
    LayerClassification,
    LineEntity,
    Point2D,
    Point3D,
    Polygon,
    PolylineEntity,
    ResolvedElement,
    Segment,
    Skip,
    SkipReason,
    SlabKind,
)
from cadstruct.core.stories import Story
from cadstruct.geometry.sanitizer import PolygonSanitizer, SanitizerSettings, make_segment
from cadstruct.geometry.tessellator import tessellate_path
from cadstruct.generation.sink import ModelSink, SinkResult
from cadstruct.rules import sizing
from cadstruct.rules.grade_schedule import grade_value
from cadstruct.rules.sizing import SeismicZone
from cadstruct.sections.resolver import SectionResolver


class BuildContext(BaseModel):
    """Per-story inputs to the builder."""
    model_config = ConfigDict(frozen=True)

    story: Story
    zone: SeismicZone
    floor_count: int  # typical floors, drives the wall tables
    wall_grade: str
    dependent_grade: str
    floating_walls: bool = False


# NoMatch is yielded, not raised, so one bad section fails one element
BuildResult = Union[ResolvedElement, Skip, NoMatch]


def area_section_name(prefix: str, thickness_mm: int, grade: str) -> str:
    """Canonical area section name, e.g. W200M40 or SLAB150M30."""
    return f"{prefix}{thickness_mm}M{grade_value(grade)}"


class ElementBuilder:
    """
    Builds and emits structural elements for one story at a time.

    Walls are vertical quads from the story base to its top; beams and
    slabs sit at the story top.
    """

    def __init__(
        self,
        frame_resolver: SectionResolver,
        area_resolver: Optional[SectionResolver] = None,
        classifier: Optional[LayerClassifier] = None,
        settings: Optional[SanitizerSettings] = None,
        unit_scale: float = 0.001,
        beam_depths: Optional[Mapping[BeamRole, int]] = None,
        slab_thicknesses: Optional[Mapping[SlabKind, int]] = None,
    ):
        """
        Initialize element builder.

        Args:
            frame_resolver: Resolver over the beam section catalog
            area_resolver: Resolver over wall/slab sections; when None,
                canonical names are generated from thickness and grade
            classifier: Layer classifier (keyword rules if None)
            settings: Sanitizer tolerances for a mm drawing, scaled by unit_scale
            unit_scale: Source units to model units (0.001 for mm -> m)
            beam_depths: Beam depth per role (mm)
            slab_thicknesses: Lobby/stair slab thickness (mm)
        """
        self.frame_resolver = frame_resolver
        self.area_resolver = area_resolver
        self.classifier = classifier or LayerClassifier()
        self.settings = (settings or SanitizerSettings()).scaled(unit_scale)
        self.sanitizer = PolygonSanitizer(self.settings)
        self.unit_scale = unit_scale
        self.beam_depths = dict(beam_depths) if beam_depths is not None else dict(sizing.DEFAULT_BEAM_DEPTHS)
        self.slab_thicknesses = dict(slab_thicknesses or {})
        self.stats = ImportStatistics()
        # (layer, grade) -> section name or the NoMatch raised for it
        self._beam_sections: Dict[Tuple[str, str], Union[str, NoMatch]] = {}

    def begin_pass(self) -> None:
        """Reset statistics before a new pass."""
        self.stats.reset()

    def build(self, entities: Iterable[CadEntity], context: BuildContext, sink: ModelSink) -> ImportStatistics:
        """
        Process all entities for one story.

        Args:
            entities: CAD entities from the story's plan
            context: Story, zone and grades
            sink: Host model

        Returns:
            Statistics for this pass
        """
        self.begin_pass()
        logger.info(f"Building elements for {context.story.name}")

        for entity in entities:
            self.process_entity(entity, context, sink)

        logger.success(
            f"{context.story.name}: {self.stats.created} created, "
            f"{self.stats.failed} failed, {self.stats.skipped} skipped"
        )
        return self.stats

    def process_entity(self, entity: CadEntity, context: BuildContext, sink: ModelSink) -> None:
        """Resolve one entity and emit the resulting elements."""
        classification = self.classifier.classify(entity.layer)

        if classification.kind == ElementKind.IGNORE:
            return

        if classification.kind == ElementKind.WALL:
            results = self.wall_elements(entity, classification, context)
        elif classification.kind == ElementKind.BEAM:
            results = self.beam_elements(entity, classification, context)
        else:
            results = self.slab_elements(entity, classification, context)

        for result in results:
            if isinstance(result, Skip):
                logger.debug(f"Skipped {entity.entity_type} on '{entity.layer}': {result}")
                self.stats.record_skip(result)
            elif isinstance(result, NoMatch):
                logger.error(f"No section for {entity.entity_type} on '{entity.layer}': {result}")
                self.stats.record_failure(f"{entity.layer}: {result}")
            else:
                self.emit(result, sink)

    # ------------------------------------------------------------------
    # Geometry helpers
    # ------------------------------------------------------------------

    def _segments(self, entity: CadEntity) -> Iterator[Union[Segment, Skip]]:
        if isinstance(entity, LineEntity):
            pairs = [(entity.start, entity.end)]
        elif isinstance(entity, PolylineEntity):
            pairs = entity.segments()
        else:
            yield Skip(reason=SkipReason.UNSUPPORTED_ENTITY, detail=entity.entity_type)
            return

        for start, end in pairs:
            yield make_segment(start, end, self.settings.min_segment_length)

    def _model_point(self, point: Point2D, z: float) -> Point3D:
        return Point3D(x=point.x * self.unit_scale, y=point.y * self.unit_scale, z=z)

    def _area_section(self, prefix: str, thickness: int, grade: str) -> str:
        if self.area_resolver is not None and prefix in self.area_resolver.catalog.roles():
            return self.area_resolver.resolve_area(thickness, grade, role=prefix)
        return area_section_name(prefix, thickness, grade)

    # ------------------------------------------------------------------
    # Walls
    # ------------------------------------------------------------------

    def wall_elements(
        self, entity: CadEntity, classification: LayerClassification, context: BuildContext
    ) -> Iterator[BuildResult]:
        """Vertical wall quads, one per segment."""
        base = context.story.base_elevation_m
        top = context.story.top_elevation_m

        for segment in self._segments(entity):
            if isinstance(segment, Skip):
                yield segment
                continue

            length_m = segment.length() * self.unit_scale
            thickness = sizing.wall_thickness(
                classification.wall_type,
                context.zone,
                context.floor_count,
                is_short_wall=sizing.is_short_wall(length_m),
                is_floating=context.floating_walls,
            )
            try:
                section = self._area_section("W", thickness, context.wall_grade)
            except NoMatch as e:
                yield e
                continue

            yield ResolvedElement(
                kind=ElementKind.WALL,
                points=(
                    self._model_point(segment.start, base),
                    self._model_point(segment.end, base),
                    self._model_point(segment.end, top),
                    self._model_point(segment.start, top),
                ),
                section=section,
                story=context.story.name,
                layer=entity.layer,
            )

    # ------------------------------------------------------------------
    # Beams
    # ------------------------------------------------------------------

    def beam_section(self, classification: LayerClassification, context: BuildContext) -> str:
        """
        Section for a beam layer, resolved once per layer and grade.

        Raises:
            NoMatch: If the catalog cannot supply a section
        """
        key = (classification.layer, context.dependent_grade)
        cached = self._beam_sections.get(key)
        if cached is None:
            width, depth = sizing.beam_size(
                classification.beam_role, context.zone, context.floor_count, self.beam_depths
            )
            try:
                cached = self.frame_resolver.resolve(width, depth, context.dependent_grade)
                logger.info(
                    f"Beam layer '{classification.layer}' ({classification.beam_role.value}): "
                    f"{width}x{depth}mm -> {cached}"
                )
            except NoMatch as e:
                cached = e
            self._beam_sections[key] = cached

        if isinstance(cached, NoMatch):
            raise cached
        return cached

    def beam_elements(
        self, entity: CadEntity, classification: LayerClassification, context: BuildContext
    ) -> Iterator[BuildResult]:
        """Frames at the story top, one per segment."""
        top = context.story.top_elevation_m

        for segment in self._segments(entity):
            if isinstance(segment, Skip):
                yield segment
                continue

            try:
                section = self.beam_section(classification, context)
            except NoMatch as e:
                yield e
                continue

            yield ResolvedElement(
                kind=ElementKind.BEAM,
                points=(
                    self._model_point(segment.start, top),
                    self._model_point(segment.end, top),
                ),
                section=section,
                story=context.story.name,
                layer=entity.layer,
            )

    # ------------------------------------------------------------------
    # Slabs
    # ------------------------------------------------------------------

    def _slab_boundaries(self, entity: CadEntity) -> Iterator[Tuple[List[Point2D], bool]]:
        if isinstance(entity, PolylineEntity):
            yield list(entity.vertices), entity.is_closed
        elif isinstance(entity, HatchEntity):
            for path in entity.paths:
                yield tessellate_path(path), True

    def slab_for_polygon(
        self, polygon: Polygon, classification: LayerClassification, context: BuildContext
    ) -> ResolvedElement:
        """Size, name and place one slab panel."""
        area_m2 = polygon.area() * self.unit_scale ** 2
        min_x, min_y, max_x, max_y = polygon.bounding_box()
        span_m = min(max_x - min_x, max_y - min_y) * self.unit_scale

        thickness = sizing.slab_thickness(
            classification.slab_kind,
            area_m2,
            span_m,
            overrides=self.slab_thicknesses,
            explicit_thickness=classification.explicit_thickness_mm,
        )
        section = self._area_section("SLAB", thickness, context.dependent_grade)

        if polygon.self_intersecting:
            logger.warning(f"Self-intersecting slab on '{classification.layer}' created anyway")

        top = context.story.top_elevation_m
        return ResolvedElement(
            kind=ElementKind.SLAB,
            points=tuple(self._model_point(v, top) for v in polygon.vertices),
            section=section,
            story=context.story.name,
            layer=classification.layer,
        )

    def slab_elements(
        self, entity: CadEntity, classification: LayerClassification, context: BuildContext
    ) -> Iterator[BuildResult]:
        """Slab panels at the story top, one per closed boundary."""
        if isinstance(entity, LineEntity):
            yield Skip(reason=SkipReason.UNSUPPORTED_ENTITY, detail="line on slab layer")
            return

        for boundary, declared_closed in self._slab_boundaries(entity):
            result = self.sanitizer.sanitize(boundary, declared_closed=declared_closed)
            if isinstance(result, Skip):
                yield result
                continue
            try:
                element = self.slab_for_polygon(result, classification, context)
            except NoMatch as e:
                element = e
            yield element

    # ------------------------------------------------------------------
    # Emission
    # ------------------------------------------------------------------

    def emit(self, element: ResolvedElement, sink: ModelSink) -> SinkResult:
        """
        Create an element in the sink and assign it to its story group.

        Sink failures are logged and counted, never raised.
        """
        point_names = [sink.create_point(p.x, p.y, p.z) for p in element.points]

        if element.kind == ElementKind.BEAM:
            result = sink.create_frame(point_names[0], point_names[1], element.section)
        else:
            result = sink.create_area(point_names, element.section)

        if not result.ok:
            logger.error(
                f"Sink rejected {element.kind.value} on '{element.layer}' "
                f"({element.section}): code {result.code}"
            )
            self.stats.record_failure(
                f"{element.layer}: sink code {result.code} for {element.section}"
            )
            return result

        sink.assign_to_group(result.name, element.story)
        self.stats.record_created(element.section)
        return result
