"""
Layer classification.

Decides what a CAD layer holds (walls, beams, slabs or nothing) and which
structural class it belongs to, from layer-name patterns and keywords.
Each layer is classified once and the result cached.
"""

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from cadstruct.core.config import Config
from cadstruct.core.models import (
    BeamRole,
    ElementKind,
    LayerClassification,
    SlabKind,
    WallType,
)

# Checked in order; first hit wins
WALL_TYPE_KEYWORDS: Tuple[Tuple[WallType, Tuple[str, ...]], ...] = (
    (WallType.CORE_WALL, ("CORE", "LIFT", "ELEVATOR", "SHAFT", "STAIRCASE", "STAIR")),
    (WallType.PERIPHERAL_PORTAL_WALL, ("PORTAL", "FRAME")),
    (WallType.PERIPHERAL_DEAD_WALL, ("EXTERNAL", "EXTERIOR", "OUTER", "BOUNDARY", "PERIMETER", "FACADE")),
)

# Every keyword of a rule must appear; checked in order
BEAM_ROLE_KEYWORDS: Tuple[Tuple[BeamRole, Tuple[str, ...]], ...] = (
    (BeamRole.INTERNAL_GRAVITY, ("INTERNAL", "GRAVITY")),
    (BeamRole.CANTILEVER_GRAVITY, ("CANTILEVER", "GRAVITY")),
    (BeamRole.CORE_MAIN, ("CORE", "MAIN")),
    (BeamRole.PERIPHERAL_DEAD_MAIN, ("PERIPHERAL", "DEAD", "MAIN")),
    (BeamRole.PERIPHERAL_PORTAL_MAIN, ("PERIPHERAL", "PORTAL", "MAIN")),
    (BeamRole.INTERNAL_MAIN, ("INTERNAL", "MAIN")),
)

SLAB_KIND_KEYWORDS: Tuple[Tuple[SlabKind, Tuple[str, ...]], ...] = (
    (SlabKind.LOBBY, ("LOBBY",)),
    (SlabKind.STAIR, ("STAIR",)),
    (SlabKind.CANTILEVER, ("BALCONY", "CANTILEVER", "CHAJJA")),
)

EXPLICIT_SLAB_THICKNESSES = (250, 225, 200, 175, 150, 125, 100)  # mm


def _has_all(name: str, keywords: Sequence[str]) -> bool:
    return all(keyword in name for keyword in keywords)


def _has_any(name: str, keywords: Sequence[str]) -> bool:
    return any(keyword in name for keyword in keywords)


def keyword_element_kind(layer_name: str) -> ElementKind:
    """
    Element kind from layer-name conventions.

    "B-" prefix or BEAM -> beam, WALL -> wall, "S-" prefix or SLAB -> slab.
    """
    name = layer_name.upper()
    if name.startswith("B-") or "BEAM" in name:
        return ElementKind.BEAM
    if "WALL" in name:
        return ElementKind.WALL
    if name.startswith("S-") or "SLAB" in name:
        return ElementKind.SLAB
    return ElementKind.IGNORE


def explicit_thickness(layer_name: str) -> Optional[int]:
    """Slab thickness written into the layer name (e.g. SLAB-200), if any."""
    name = layer_name.upper()
    for thickness in EXPLICIT_SLAB_THICKNESSES:
        if re.search(rf"(?<!\d){thickness}(?!\d)", name):
            return thickness
    return None


class LayerClassifier:
    """
    Classifies CAD layers into element kinds and structural classes.

    Resolution order for the element kind:
    1. Explicit per-layer overrides
    2. Config layer patterns (fnmatch, exclusions first)
    3. Layer-name keywords
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        overrides: Optional[Mapping[str, ElementKind]] = None,
    ):
        """
        Initialize classifier.

        Args:
            config: Layer mapping config (patterns and keyword rules)
            overrides: Layer name -> element kind, checked before anything else
        """
        self.config = config
        self.overrides = {name.upper(): ElementKind(kind) for name, kind in (overrides or {}).items()}
        self._cache: Dict[str, LayerClassification] = {}

    def _keywords(self, group: str, key: str, default: Sequence[str]) -> List[str]:
        if self.config is None:
            return list(default)
        value = self.config.get_classification_rule(group, key, default)
        return [str(v).upper() for v in value]

    def element_kind(self, layer_name: str) -> ElementKind:
        name = layer_name.upper()
        if name in self.overrides:
            return self.overrides[name]
        if self.config is not None:
            kind = self.config.element_kind_for_layer(layer_name)
            if kind is not None:
                return kind
        return keyword_element_kind(layer_name)

    def wall_type(self, layer_name: str) -> WallType:
        name = layer_name.upper()
        for wall_type, keywords in WALL_TYPE_KEYWORDS:
            if _has_any(name, self._keywords("wall_types", wall_type.value, keywords)):
                return wall_type
        return WallType.INTERNAL_WALL

    def beam_role(self, layer_name: str) -> BeamRole:
        name = layer_name.upper()
        for role, keywords in BEAM_ROLE_KEYWORDS:
            if _has_all(name, self._keywords("beam_roles", role.value, keywords)):
                return role

        if "BEAM" in name or name.startswith("B-"):
            logger.warning(f"Beam layer '{layer_name}' has no role keywords, treating as internal gravity")
        else:
            logger.warning(f"Unknown beam layer '{layer_name}', treating as internal gravity")
        return BeamRole.INTERNAL_GRAVITY

    def slab_kind(self, layer_name: str) -> SlabKind:
        name = layer_name.upper()
        for kind, keywords in SLAB_KIND_KEYWORDS:
            if _has_any(name, self._keywords("slab_kinds", kind.value, keywords)):
                return kind
        return SlabKind.REGULAR

    def classify(self, layer_name: str) -> LayerClassification:
        """
        Classify a layer (cached).

        Args:
            layer_name: CAD layer name

        Returns:
            LayerClassification
        """
        cached = self._cache.get(layer_name)
        if cached is not None:
            return cached

        kind = self.element_kind(layer_name)
        fields = {}
        if kind == ElementKind.WALL:
            fields["wall_type"] = self.wall_type(layer_name)
        elif kind == ElementKind.BEAM:
            fields["beam_role"] = self.beam_role(layer_name)
        elif kind == ElementKind.SLAB:
            fields["slab_kind"] = self.slab_kind(layer_name)
            fields["explicit_thickness_mm"] = explicit_thickness(layer_name)

        classification = LayerClassification(layer=layer_name, kind=kind, **fields)
        self._cache[layer_name] = classification

        logger.debug(f"Layer '{layer_name}' classified as {kind.value} {fields}")
        return classification


def classify_layers(layer_names: Sequence[str], config: Optional[Config] = None) -> Dict[str, LayerClassification]:
    """
    Convenience function to classify many layers.

    Args:
        layer_names: CAD layer names
        config: Optional layer mapping config

    Returns:
        Layer name -> classification
    """
    classifier = LayerClassifier(config)
    return {name: classifier.classify(name) for name in layer_names}
