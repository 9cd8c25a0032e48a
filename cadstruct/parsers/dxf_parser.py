"""
DXF file parser using ezdxf library.

Reads floor-plan drawings with fail-fast validation and yields the CAD
entities (lines, polylines, hatches) the element builder understands.
"""

from pathlib import Path
from typing import Dict, Iterator, List, Optional
from loguru import logger

try:
    import ezdxf
    from ezdxf.document import Drawing
except ImportError:
    raise ImportError(
        "ezdxf is required for DXF parsing. Install with: pip install ezdxf"
    )

from cadstruct.core.models import (
    CadEntity,
    DrawingMetadata,
    LineEntity,
    Point2D,
    ValidationResult,
)
from cadstruct.parsers.hatch_extractor import extract_hatches
from cadstruct.parsers.polyline_extractor import extract_polylines

# $INSUNITS code -> (name, metres per unit)
UNITS = {
    1: ("inches", 0.0254),
    2: ("feet", 0.3048),
    4: ("mm", 0.001),
    5: ("cm", 0.01),
    6: ("m", 1.0),
    14: ("dm", 0.1),
}

STRUCTURAL_ENTITY_TYPES = ("LINE", "LWPOLYLINE", "POLYLINE", "HATCH")


class DXFParser:
    """Parser for DXF files with fail-fast validation."""

    def __init__(self, file_path: str):
        """
        Initialize DXF parser.

        Args:
            file_path: Path to DXF file
        """
        self.file_path = Path(file_path)
        self.doc: Optional[Drawing] = None
        self.metadata: Optional[DrawingMetadata] = None

    def parse(self) -> ValidationResult:
        """
        Parse DXF file with fail-fast validation.

        Returns:
            ValidationResult indicating if file is suitable for processing

        Raises:
            FileNotFoundError: If DXF file doesn't exist
            ezdxf.DXFError: If file is not valid DXF
        """
        logger.info(f"Parsing DXF file: {self.file_path}")

        if not self.file_path.exists():
            raise FileNotFoundError(f"DXF file not found: {self.file_path}")

        try:
            self.doc = ezdxf.readfile(str(self.file_path))
        except ezdxf.DXFError as e:
            logger.error(f"Failed to parse DXF file: {e}")
            raise

        self.metadata = self._extract_metadata()

        validation = self._validate()

        if validation.should_abort():
            logger.error(
                f"DXF validation failed with {len(validation.critical_errors)} "
                f"critical errors"
            )
            for error in validation.critical_errors:
                logger.error(f"  - {error}")
        else:
            logger.success(
                f"DXF validation passed (with {len(validation.warnings)} warnings)"
            )

        return validation

    def _extract_metadata(self) -> DrawingMetadata:
        """Extract metadata from DXF document."""
        assert self.doc is not None

        layers = [layer.dxf.name for layer in self.doc.layers]
        units, scale = self._get_units()

        msp = self.doc.modelspace()
        counts = {
            entity_type: len(msp.query(entity_type))
            for entity_type in STRUCTURAL_ENTITY_TYPES
        }

        metadata = DrawingMetadata(
            file_path=str(self.file_path),
            file_format="DXF",
            units=units,
            unit_scale=scale,
            layers=layers,
            entity_counts=counts,
        )

        logger.debug(f"Extracted metadata: {len(layers)} layers, units={units}")
        return metadata

    def _get_units(self) -> tuple[str, float]:
        """Get drawing units and their size in metres from the DXF header."""
        assert self.doc is not None

        # $INSUNITS: 1=inches, 2=feet, 4=mm, 5=cm, 6=m, 14=decimeters
        insunits = self.doc.header.get("$INSUNITS", 4)  # default to mm
        return UNITS.get(insunits, UNITS[4])

    def _validate(self) -> ValidationResult:
        """
        Run fail-fast validation checks.

        Critical checks (will abort):
        - Drawing must contain entities

        Warnings (proceed):
        - Minimal layer structure (layer-based classification will be weak)
        - No structural entity types at all
        - Unknown or unset drawing units (mm assumed)
        """
        assert self.doc is not None
        assert self.metadata is not None

        critical_errors = []
        warnings = []

        msp = self.doc.modelspace()
        if len(msp) == 0:
            critical_errors.append("Drawing contains no entities")

        if len(self.metadata.layers) <= 1:
            warnings.append(
                "Drawing has minimal layer structure - classification may be less reliable"
            )

        if critical_errors == [] and sum(self.metadata.entity_counts.values()) == 0:
            warnings.append(
                "Drawing has no LINE, POLYLINE or HATCH entities - nothing to import"
            )

        insunits = self.doc.header.get("$INSUNITS", 0)
        if insunits not in UNITS:
            warnings.append(
                f"Drawing units not recognised ($INSUNITS={insunits}) - assuming mm"
            )

        return ValidationResult(
            is_valid=len(critical_errors) == 0,
            critical_errors=critical_errors,
            warnings=warnings,
            metadata=self.metadata,
        )

    def extract_lines(self, layers: Optional[List[str]] = None) -> List[LineEntity]:
        """
        Extract LINE entities from specified layers.

        Args:
            layers: List of layer names to extract from (None = all layers)

        Returns:
            List of LineEntity objects
        """
        assert self.doc is not None

        msp = self.doc.modelspace()
        lines = []

        for entity in msp.query("LINE"):
            if layers and entity.dxf.layer not in layers:
                continue

            lines.append(LineEntity(
                start=Point2D(x=entity.dxf.start.x, y=entity.dxf.start.y),
                end=Point2D(x=entity.dxf.end.x, y=entity.dxf.end.y),
                layer=entity.dxf.layer,
            ))

        logger.debug(f"Extracted {len(lines)} lines from {len(layers) if layers else 'all'} layers")
        return lines

    def iter_entities(self, layers: Optional[List[str]] = None) -> Iterator[CadEntity]:
        """
        Yield all importable entities: lines, then polylines, then hatches.

        Args:
            layers: List of layer names to extract from (None = all layers)
        """
        assert self.doc is not None

        yield from self.extract_lines(layers)
        yield from extract_polylines(self.doc, layers)
        yield from extract_hatches(self.doc, layers)

    def get_layer_names(self) -> List[str]:
        """Get all layer names in the drawing."""
        assert self.metadata is not None
        return self.metadata.layers

    def get_entities_by_layer(self) -> Dict[str, List[CadEntity]]:
        """Get importable entities grouped by layer name."""
        by_layer: Dict[str, List[CadEntity]] = {}
        for entity in self.iter_entities():
            by_layer.setdefault(entity.layer, []).append(entity)
        return by_layer


def parse_dxf(file_path: str) -> DXFParser:
    """
    Parse DXF file with fail-fast validation.

    Args:
        file_path: Path to DXF file

    Returns:
        DXFParser instance with parsed document

    Raises:
        FileNotFoundError: If file doesn't exist
        ezdxf.DXFError: If file is not valid DXF
        ValueError: If validation fails (critical errors)
    """
    parser = DXFParser(file_path)
    validation = parser.parse()

    if validation.should_abort():
        error_msg = "\n".join(validation.critical_errors)
        raise ValueError(
            f"DXF validation failed with critical errors:\n{error_msg}\n\n"
            f"Unable to proceed. Please fix the drawing and try again."
        )

    return parser
