"""
Configuration management for cadstruct.

Two layers:
- Config: JSON layer mapping and geometry defaults (which CAD layers hold
  walls, beams and slabs, and the sanitizer tolerances).
- ImportConfig: the building being imported (zone, floor types, grade
  schedule, beam depths), validated with Pydantic.
"""

import json
from pathlib import Path
from typing import Dict, List, Any, Optional
from fnmatch import fnmatch
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from cadstruct.core.models import BeamRole, ElementKind, GradeTier, SlabKind
from cadstruct.geometry.sanitizer import SanitizerSettings
from cadstruct.rules.sizing import DEFAULT_BEAM_DEPTHS, DEFAULT_SLAB_THICKNESSES, SeismicZone

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "layer_mapping.json"


class Config:
    """Configuration manager for layer mappings and geometry defaults."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to JSON config file. If None, uses the bundled layer mapping.
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        self.config_path = Path(config_path)
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from JSON file."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            self._config = json.load(f)

        logger.info(f"Loaded config: {self._config.get('name', 'Unknown')}")

    def get_layers_for_element(self, element_type: str) -> List[str]:
        """
        Get layer patterns for a specific element type.

        Args:
            element_type: Type of element ('walls', 'beams', 'slabs')

        Returns:
            List of layer name patterns
        """
        mapping = self._config.get("layer_mapping", {}).get(element_type, {})
        return mapping.get("patterns", [])

    def get_excluded_layers_for_element(self, element_type: str) -> List[str]:
        """
        Get excluded layer patterns for a specific element type.

        Args:
            element_type: Type of element

        Returns:
            List of excluded layer patterns
        """
        mapping = self._config.get("layer_mapping", {}).get(element_type, {})
        return mapping.get("exclude", [])

    def matches_layer_pattern(self, layer_name: str, element_type: str) -> bool:
        """
        Check if a layer name matches the patterns for an element type.

        Args:
            layer_name: Name of the layer to check
            element_type: Type of element

        Returns:
            True if layer matches and is not excluded
        """
        patterns = self.get_layers_for_element(element_type)
        excluded = self.get_excluded_layers_for_element(element_type)

        # Check exclusions first
        for exclude_pattern in excluded:
            if fnmatch(layer_name.upper(), exclude_pattern.upper()):
                return False

        for pattern in patterns:
            if fnmatch(layer_name.upper(), pattern.upper()):
                return True

        return False

    def element_kind_for_layer(self, layer_name: str) -> Optional[ElementKind]:
        """
        Element kind whose patterns match a layer, if any.

        Ignored layers are checked first so they can shadow broad patterns.
        """
        if self.matches_layer_pattern(layer_name, "ignore"):
            return ElementKind.IGNORE
        for element_type, kind in (
            ("walls", ElementKind.WALL),
            ("beams", ElementKind.BEAM),
            ("slabs", ElementKind.SLAB),
        ):
            if self.matches_layer_pattern(layer_name, element_type):
                return kind
        return None

    def get_classification_rule(self, element_type: str, rule_name: str, default: Any = None) -> Any:
        """
        Get a classification rule value.

        Args:
            element_type: Rule group ('wall_types', 'beam_roles', 'slab_kinds')
            rule_name: Name of the rule
            default: Default value if rule not found

        Returns:
            Rule value or default
        """
        rules = self._config.get("classification_rules", {}).get(element_type, {})
        return rules.get(rule_name, default)

    def get_geometry_default(self, param_name: str, default: Any = None) -> Any:
        """
        Get a geometry default parameter.

        Args:
            param_name: Parameter name
            default: Default value if not found

        Returns:
            Parameter value or default
        """
        return self._config.get("geometry_defaults", {}).get(param_name, default)

    def sanitizer_settings(self) -> SanitizerSettings:
        """Sanitizer tolerances from geometry_defaults, falling back to built-in values."""
        values = {
            name: self.get_geometry_default(name)
            for name in SanitizerSettings.model_fields
            if self.get_geometry_default(name) is not None
        }
        return SanitizerSettings(**values)


# Global default config instance
_default_config: Optional[Config] = None


def get_default_config() -> Config:
    """Get the default global configuration instance."""
    global _default_config
    if _default_config is None:
        _default_config = Config()
    return _default_config


def load_config(config_path: str) -> Config:
    """
    Load configuration from a specific file.

    Args:
        config_path: Path to JSON config file

    Returns:
        Config instance
    """
    return Config(config_path)


class FloorTypeConfig(BaseModel):
    """A run of identical floors sharing one CAD plan."""
    name: str  # "Basement", "Podium", "EDeck", "Typical", ...
    count: int = Field(default=1, gt=0)
    height_m: float = Field(default=3.0, gt=0)
    cad_file: Optional[str] = None
    layer_mapping: Dict[str, ElementKind] = Field(default_factory=dict)  # explicit per-layer overrides


class ImportConfig(BaseModel):
    """Everything needed to import one building."""
    project_name: str = "cadstruct model"
    seismic_zone: SeismicZone = SeismicZone.II
    floor_types: List[FloorTypeConfig]
    grade_schedule: List[GradeTier]
    beam_depths: Dict[BeamRole, int] = Field(default_factory=lambda: dict(DEFAULT_BEAM_DEPTHS))
    slab_thicknesses: Dict[SlabKind, int] = Field(default_factory=lambda: dict(DEFAULT_SLAB_THICKNESSES))
    unit_scale: float = Field(default=0.001, gt=0)  # source units -> metres
    floating_walls: bool = False
    sanitizer: SanitizerSettings = Field(default_factory=SanitizerSettings)

    @field_validator("seismic_zone", mode="before")
    @classmethod
    def validate_zone(cls, v: Any) -> SeismicZone:
        """Accept "Zone IV" style labels."""
        return SeismicZone.parse(v)

    @field_validator("floor_types")
    @classmethod
    def validate_floor_types(cls, v: List[FloorTypeConfig]) -> List[FloorTypeConfig]:
        if not v:
            raise ValueError("At least one floor type is required")
        return v

    def total_stories(self) -> int:
        return sum(ft.count for ft in self.floor_types)


def load_import_config(config_path: str) -> ImportConfig:
    """
    Load an ImportConfig from JSON.

    Relative CAD file paths are resolved against the config file's directory.

    Args:
        config_path: Path to JSON file

    Returns:
        Validated ImportConfig
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r') as f:
        data = json.load(f)

    config = ImportConfig.model_validate(data)
    for floor_type in config.floor_types:
        if floor_type.cad_file and not Path(floor_type.cad_file).is_absolute():
            floor_type.cad_file = str(path.parent / floor_type.cad_file)

    logger.info(
        f"Loaded import config '{config.project_name}': "
        f"{len(config.floor_types)} floor types, {config.total_stories()} stories"
    )
    return config
