"""Tests for layer classification."""

from __future__ import annotations

import json

import pytest

from cadstruct.classification.layer_classifier import (
    LayerClassifier,
    classify_layers,
    explicit_thickness,
    keyword_element_kind,
)
from cadstruct.core.config import Config
from cadstruct.core.models import BeamRole, ElementKind, SlabKind, WallType


@pytest.fixture
def bundled_config():
    return Config()


# ── Keyword rules ────────────────────────────────────────────────────────────

class TestKeywordRules:

    @pytest.mark.parametrize(
        "layer, kind",
        [
            ("B-INTERNAL-GRAVITY", ElementKind.BEAM),
            ("STR-BEAM", ElementKind.BEAM),
            ("WALL-CORE", ElementKind.WALL),
            ("s-balcony", ElementKind.SLAB),
            ("FLOOR-SLAB", ElementKind.SLAB),
            ("A-FURNITURE", ElementKind.IGNORE),
            ("0", ElementKind.IGNORE),
        ],
    )
    def test_element_kind(self, layer, kind):
        assert keyword_element_kind(layer) == kind

    def test_beam_wins_over_wall(self):
        assert keyword_element_kind("WALL-BEAM") == ElementKind.BEAM

    @pytest.mark.parametrize(
        "layer, expected",
        [("SLAB-200", 200), ("S-STAIR-175", 175), ("SLAB150", 150), ("SLAB-1200", None), ("SLAB", None)],
    )
    def test_explicit_thickness(self, layer, expected):
        assert explicit_thickness(layer) == expected


# ── Classifier ───────────────────────────────────────────────────────────────

class TestLayerClassifier:

    @pytest.mark.parametrize(
        "layer, wall_type",
        [
            ("WALL-CORE", WallType.CORE_WALL),
            ("WALL-LIFT-SHAFT", WallType.CORE_WALL),
            ("WALL-PORTAL", WallType.PERIPHERAL_PORTAL_WALL),
            ("WALL-EXTERNAL", WallType.PERIPHERAL_DEAD_WALL),
            ("WALL", WallType.INTERNAL_WALL),
        ],
    )
    def test_wall_types(self, layer, wall_type):
        classification = LayerClassifier().classify(layer)
        assert classification.kind == ElementKind.WALL
        assert classification.wall_type == wall_type

    @pytest.mark.parametrize(
        "layer, role",
        [
            ("B-INTERNAL-GRAVITY", BeamRole.INTERNAL_GRAVITY),
            ("B-CANTILEVER-GRAVITY", BeamRole.CANTILEVER_GRAVITY),
            ("B-CORE-MAIN", BeamRole.CORE_MAIN),
            ("B-PERIPHERAL-DEAD-MAIN", BeamRole.PERIPHERAL_DEAD_MAIN),
            ("B-PERIPHERAL-PORTAL-MAIN", BeamRole.PERIPHERAL_PORTAL_MAIN),
            ("B-INTERNAL-MAIN", BeamRole.INTERNAL_MAIN),
        ],
    )
    def test_beam_roles(self, layer, role):
        assert LayerClassifier().classify(layer).beam_role == role

    def test_beam_without_role_keywords_warns(self, log_records):
        classification = LayerClassifier().classify("B-MISC")

        assert classification.beam_role == BeamRole.INTERNAL_GRAVITY
        assert any(
            r["level"].name == "WARNING" and "B-MISC" in r["message"] for r in log_records
        )

    @pytest.mark.parametrize(
        "layer, kind",
        [
            ("SLAB", SlabKind.REGULAR),
            ("S-BALCONY", SlabKind.CANTILEVER),
            ("S-CHAJJA", SlabKind.CANTILEVER),
            ("SLAB-LOBBY", SlabKind.LOBBY),
            ("SLAB-STAIR", SlabKind.STAIR),
        ],
    )
    def test_slab_kinds(self, layer, kind):
        assert LayerClassifier().classify(layer).slab_kind == kind

    def test_slab_explicit_thickness_recorded(self):
        classification = LayerClassifier().classify("SLAB-200")
        assert classification.explicit_thickness_mm == 200

    def test_ignored_layer_has_no_class(self):
        classification = LayerClassifier().classify("A-FURNITURE")
        assert classification.kind == ElementKind.IGNORE
        assert classification.wall_type is None
        assert classification.beam_role is None

    def test_classification_is_cached(self):
        classifier = LayerClassifier()
        assert classifier.classify("WALL-CORE") is classifier.classify("WALL-CORE")

    def test_overrides_come_first(self):
        classifier = LayerClassifier(overrides={"a-outline": ElementKind.SLAB, "WALL-CORE": "ignore"})

        assert classifier.classify("A-OUTLINE").kind == ElementKind.SLAB
        assert classifier.classify("WALL-CORE").kind == ElementKind.IGNORE

    def test_classify_layers(self):
        result = classify_layers(["WALL-CORE", "B-CORE-MAIN", "TEXT"])

        assert result["WALL-CORE"].kind == ElementKind.WALL
        assert result["B-CORE-MAIN"].kind == ElementKind.BEAM
        assert result["TEXT"].kind == ElementKind.IGNORE


# ── Config-driven classification ─────────────────────────────────────────────

class TestConfigClassification:

    def test_ignore_patterns_shadow_element_patterns(self, bundled_config):
        classifier = LayerClassifier(bundled_config)

        assert classifier.classify("WALL-TEXT").kind == ElementKind.IGNORE
        assert classifier.classify("GRID-SLAB").kind == ElementKind.IGNORE

    def test_patterns_match(self, bundled_config):
        classifier = LayerClassifier(bundled_config)

        assert classifier.classify("W-CORE").kind == ElementKind.WALL
        assert classifier.classify("W-CORE").wall_type == WallType.CORE_WALL
        assert classifier.classify("B-CORE-MAIN").kind == ElementKind.BEAM

    def test_unmatched_layer_falls_back_to_keywords(self, bundled_config):
        assert bundled_config.element_kind_for_layer("A-OUTLINE") is None
        assert LayerClassifier(bundled_config).classify("A-OUTLINE").kind == ElementKind.IGNORE

    def test_custom_keyword_rules(self, tmp_path):
        path = tmp_path / "mapping.json"
        path.write_text(json.dumps({
            "name": "custom",
            "layer_mapping": {"walls": {"patterns": ["MUR*"], "exclude": []}},
            "classification_rules": {"wall_types": {"CoreWall": ["NOYAU"]}},
        }))
        classifier = LayerClassifier(Config(str(path)))

        classification = classifier.classify("MUR-NOYAU")
        assert classification.kind == ElementKind.WALL
        assert classification.wall_type == WallType.CORE_WALL
        assert classifier.classify("MUR-CORE").wall_type == WallType.INTERNAL_WALL
