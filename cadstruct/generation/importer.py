"""
Multi-story import.

Validates the whole configuration up front, then walks the stories bottom-up
and builds each one from its floor type's CAD entities.
"""

from typing import Callable, Dict, Iterable, List, Mapping, Optional

from loguru import logger
from pydantic import BaseModel, Field

from cadstruct.classification.layer_classifier import LayerClassifier
from cadstruct.core.config import Config, ImportConfig
from cadstruct.core.errors import CatalogEmpty, ConfigurationError
from cadstruct.core.models import BeamRole, CadEntity, ImportStatistics
from cadstruct.core.stories import StoryPlan, typical_floor_count
from cadstruct.generation.element_builder import BuildContext, ElementBuilder
from cadstruct.generation.sink import ModelSink
from cadstruct.rules import sizing
from cadstruct.rules.grade_schedule import GradeSchedule
from cadstruct.sections.catalog import SectionCatalog
from cadstruct.sections.resolver import SectionResolver

# Floor type name -> entities of its plan. Called once per story so
# generators can be re-read.
EntitySource = Callable[[], Iterable[CadEntity]]


class ImportReport(BaseModel):
    """Outcome of an import run."""
    totals: ImportStatistics = Field(default_factory=ImportStatistics)
    per_story: Dict[str, ImportStatistics] = Field(default_factory=dict)

    def summary(self) -> str:
        lines = [f"Imported {len(self.per_story)} stories"]
        lines.append(self.totals.summary())
        return "\n".join(lines)


class ImportRunner:
    """
    Runs an import of a whole building into a model sink.

    Configuration errors are raised before the first element is created.
    """

    def __init__(
        self,
        config: ImportConfig,
        frame_catalog: SectionCatalog,
        area_catalog: Optional[SectionCatalog] = None,
        layer_config: Optional[Config] = None,
    ):
        """
        Initialize import runner.

        Args:
            config: Building configuration
            frame_catalog: Beam sections
            area_catalog: Wall/slab sections (generated names if None)
            layer_config: Layer mapping patterns and keyword rules
        """
        self.config = config
        self.frame_catalog = frame_catalog
        self.area_catalog = area_catalog
        self.layer_config = layer_config
        self.plan = StoryPlan.from_floor_types(config.floor_types)
        self.floor_count = typical_floor_count(config.floor_types)
        self.schedule: Optional[GradeSchedule] = None

    def validate(self) -> None:
        """
        Check the configuration.

        Raises:
            ConfigurationError: (or a subclass) on the first problem found
        """
        sizing.SeismicZone.parse(self.config.seismic_zone)
        sizing.floor_band(self.floor_count)

        self.schedule = GradeSchedule.from_tiers(self.config.grade_schedule, len(self.plan))

        missing = [role.value for role in BeamRole if role not in self.config.beam_depths]
        if missing:
            raise ConfigurationError("Beam depths missing for some roles", {"roles": missing})

        if len(self.frame_catalog) == 0:
            raise CatalogEmpty("Frame section catalog is empty")

        logger.info(self.schedule.summary())
        logger.debug(sizing.design_notes(self.config.seismic_zone, self.floor_count))

    def _builder_for(self, floor_type_name: str) -> ElementBuilder:
        floor_type = next(ft for ft in self.config.floor_types if ft.name == floor_type_name)
        classifier = LayerClassifier(self.layer_config, overrides=floor_type.layer_mapping)
        return ElementBuilder(
            frame_resolver=SectionResolver(self.frame_catalog),
            area_resolver=SectionResolver(self.area_catalog) if self.area_catalog is not None else None,
            classifier=classifier,
            settings=self.config.sanitizer,
            unit_scale=self.config.unit_scale,
            beam_depths=self.config.beam_depths,
            slab_thicknesses=self.config.slab_thicknesses,
        )

    def run(self, entity_sources: Mapping[str, EntitySource], sink: ModelSink) -> ImportReport:
        """
        Import every story.

        Args:
            entity_sources: Floor type name -> callable returning its entities
            sink: Host model

        Returns:
            ImportReport with per-story and total statistics
        """
        self.validate()
        assert self.schedule is not None

        logger.info(
            f"Importing {len(self.plan)} stories in Zone {self.config.seismic_zone.value} "
            f"({self.floor_count} typical floors)"
        )

        report = ImportReport()
        builders: Dict[str, ElementBuilder] = {}

        for story in self.plan:
            source = entity_sources.get(story.floor_type)
            if source is None:
                logger.warning(f"No CAD entities for floor type '{story.floor_type}', skipping {story.name}")
                continue

            builder = builders.get(story.floor_type)
            if builder is None:
                builder = self._builder_for(story.floor_type)
                builders[story.floor_type] = builder

            context = BuildContext(
                story=story,
                zone=self.config.seismic_zone,
                floor_count=self.floor_count,
                wall_grade=self.schedule.wall_grade(story.index),
                dependent_grade=self.schedule.dependent_grade(story.index),
                floating_walls=self.config.floating_walls,
            )
            stats = builder.build(source(), context, sink).model_copy(deep=True)
            report.per_story[story.name] = stats
            report.totals.merge(stats)

        logger.success(
            f"Import complete: {report.totals.created} created, "
            f"{report.totals.failed} failed, {report.totals.skipped} skipped"
        )
        return report


def import_building(
    config: ImportConfig,
    section_names: List[str],
    entity_sources: Mapping[str, EntitySource],
    sink: ModelSink,
    layer_config: Optional[Config] = None,
) -> ImportReport:
    """
    Convenience function to run a full import.

    Area sections are taken from the same name list when it holds any;
    otherwise wall and slab section names are generated.

    Args:
        config: Building configuration
        section_names: Host section names
        entity_sources: Floor type name -> entity callable
        sink: Host model
        layer_config: Optional layer mapping

    Returns:
        ImportReport
    """
    frame_catalog = SectionCatalog.load(section_names)
    try:
        area_catalog = SectionCatalog.load_area_sections(section_names)
    except CatalogEmpty:
        logger.info("No area sections in catalog, generating wall and slab section names")
        area_catalog = None

    runner = ImportRunner(config, frame_catalog, area_catalog, layer_config)
    return runner.run(entity_sources, sink)
