"""Tests for configuration loading and story planning."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from cadstruct.core.config import (
    Config,
    FloorTypeConfig,
    ImportConfig,
    get_default_config,
    load_config,
    load_import_config,
)
from cadstruct.core.errors import InvalidZone
from cadstruct.core.models import BeamRole, ElementKind, GradeTier, SlabKind
from cadstruct.core.stories import StoryPlan, story_name, typical_floor_count
from cadstruct.rules.sizing import SeismicZone

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config" / "building_example.json"


def _import_config(**overrides):
    data = {
        "floor_types": [{"name": "Typical", "count": 10, "height_m": 3.0}],
        "grade_schedule": [{"grade": "M40", "floors": 10}],
    }
    data.update(overrides)
    return ImportConfig.model_validate(data)


# ── Layer mapping config ─────────────────────────────────────────────────────

class TestLayerConfig:

    def test_bundled_config_loads(self):
        config = get_default_config()

        assert "*WALL*" in config.get_layers_for_element("walls")
        assert config is get_default_config()

    def test_matches_layer_pattern_case_insensitive(self):
        config = Config()

        assert config.matches_layer_pattern("wall-core", "walls")
        assert not config.matches_layer_pattern("WALL-BEAM", "walls")

    def test_element_kind_for_layer(self):
        config = Config()

        assert config.element_kind_for_layer("S-BALCONY") == ElementKind.SLAB
        assert config.element_kind_for_layer("DEFPOINTS") == ElementKind.IGNORE

    def test_sanitizer_settings_from_geometry_defaults(self, tmp_path):
        path = tmp_path / "mapping.json"
        path.write_text(json.dumps({"geometry_defaults": {"min_area": 2500.0}}))
        settings = load_config(str(path)).sanitizer_settings()

        assert settings.min_area == 2500.0
        assert settings.closure_tolerance == 10000.0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config(str(tmp_path / "missing.json"))


# ── Import config ────────────────────────────────────────────────────────────

class TestImportConfig:

    def test_defaults(self):
        config = _import_config()

        assert config.seismic_zone is SeismicZone.II
        assert config.beam_depths[BeamRole.CORE_MAIN] == 600
        assert config.slab_thicknesses[SlabKind.STAIR] == 175
        assert config.unit_scale == 0.001
        assert config.total_stories() == 10

    def test_zone_labels(self):
        assert _import_config(seismic_zone="Zone IV").seismic_zone is SeismicZone.IV

    def test_unknown_zone_is_rejected(self):
        with pytest.raises((InvalidZone, ValidationError)):
            _import_config(seismic_zone="Zone VII")

    def test_floor_types_required(self):
        with pytest.raises(ValidationError):
            _import_config(floor_types=[])

    def test_floor_count_positive(self):
        with pytest.raises(ValidationError):
            FloorTypeConfig(name="Typical", count=0)

    def test_grade_labels_normalised(self):
        config = _import_config(grade_schedule=[{"grade": " m40 ", "floors": 10}])
        assert config.grade_schedule[0] == GradeTier(grade="M40", floors=10)

    def test_layer_mapping_overrides(self):
        floor_type = FloorTypeConfig(name="Podium", layer_mapping={"A-OUTLINE": "slab"})
        assert floor_type.layer_mapping["A-OUTLINE"] == ElementKind.SLAB

    def test_load_example(self):
        config = load_import_config(str(EXAMPLE_CONFIG))

        assert config.project_name == "Residential Tower A"
        assert config.seismic_zone is SeismicZone.III
        assert config.total_stories() == 22
        assert sum(tier.floors for tier in config.grade_schedule) == 22
        assert Path(config.floor_types[0].cad_file) == EXAMPLE_CONFIG.parent / "podium.dxf"
        assert config.floor_types[1].layer_mapping == {"A-OUTLINE": ElementKind.IGNORE}

    def test_absolute_cad_paths_untouched(self, tmp_path):
        cad = tmp_path / "plans" / "typical.dxf"
        path = tmp_path / "building.json"
        path.write_text(json.dumps({
            "floor_types": [{"name": "Typical", "count": 5, "cad_file": str(cad)}],
            "grade_schedule": [{"grade": "M30", "floors": 5}],
        }))

        assert load_import_config(str(path)).floor_types[0].cad_file == str(cad)


# ── Stories ──────────────────────────────────────────────────────────────────

class TestStoryPlan:

    FLOOR_TYPES = [
        FloorTypeConfig(name="Basement", count=1, height_m=3.5),
        FloorTypeConfig(name="Podium", count=2, height_m=4.5),
        FloorTypeConfig(name="EDeck", count=1, height_m=4.0),
        FloorTypeConfig(name="Typical", count=3, height_m=3.0),
    ]

    def test_names_in_order(self):
        plan = StoryPlan.from_floor_types(self.FLOOR_TYPES)

        assert [s.name for s in plan] == [
            "Basement1", "Podium1", "Podium2", "EDeck", "Story1", "Story2", "Story3",
        ]
        assert [s.index for s in plan] == list(range(7))

    def test_elevations_accumulate(self):
        plan = StoryPlan.from_floor_types(self.FLOOR_TYPES)
        stories = plan.stories

        assert stories[0].base_elevation_m == 0.0
        assert stories[1].base_elevation_m == pytest.approx(3.5)
        assert stories[3].base_elevation_m == pytest.approx(12.5)
        assert stories[4].top_elevation_m == pytest.approx(19.5)
        assert plan.total_height() == pytest.approx(25.5)
        for lower, upper in zip(stories, stories[1:]):
            assert upper.base_elevation_m == pytest.approx(lower.top_elevation_m)

    def test_stories_of_type(self):
        plan = StoryPlan.from_floor_types(self.FLOOR_TYPES)
        assert len(plan.stories_of_type("Podium")) == 2

    def test_empty_plan(self):
        assert StoryPlan([]).total_height() == 0.0

    def test_other_floor_type_names(self):
        assert story_name("Mezzanine", 2) == "Mezzanine2"
        assert story_name("typical", 4) == "Story4"

    def test_typical_floor_count(self):
        assert typical_floor_count(self.FLOOR_TYPES) == 3
        assert typical_floor_count(self.FLOOR_TYPES[:2]) == 3
