#!/usr/bin/env python
"""
Generate a structural IFC model from DXF floor plans.

Usage:
    python generate_model.py building.json sections.txt output.ifc
    python generate_model.py building.json sections.txt  # outputs to building.ifc

building.json describes the floor types (each with its DXF plan), seismic
zone and grade schedule; sections.txt lists the available section names,
one per line.

Example:
    python generate_model.py config/building_example.json config/sections_example.txt tower.ifc
"""

import sys
from pathlib import Path
from cadstruct.core.config import get_default_config, load_import_config
from cadstruct.core.errors import ConfigurationError
from cadstruct.core.stories import StoryPlan
from cadstruct.parsers.dxf_parser import parse_dxf
from cadstruct.generation.ifc_sink import IFCModelSink
from cadstruct.generation.importer import import_building


def read_section_names(path: str) -> list:
    """Non-empty, non-comment lines of a section list."""
    with open(path, 'r') as f:
        return [
            line.strip() for line in f
            if line.strip() and not line.strip().startswith("#")
        ]


def main():
    if len(sys.argv) < 3:
        print("Usage: python generate_model.py building.json sections.txt [output.ifc]")
        print()
        print("Examples:")
        print("  python generate_model.py config/building_example.json config/sections_example.txt")
        print("  python generate_model.py config/building_example.json config/sections_example.txt tower.ifc")
        sys.exit(1)

    config_file = sys.argv[1]
    sections_file = sys.argv[2]

    if len(sys.argv) >= 4:
        output_file = sys.argv[3]
    else:
        output_file = str(Path(config_file).with_suffix('.ifc'))

    for path in (config_file, sections_file):
        if not Path(path).exists():
            print(f"Error: Input file not found: {path}")
            sys.exit(1)

    print("=" * 60)
    print("cadstruct - DXF to structural IFC")
    print("=" * 60)
    print(f"Config:   {config_file}")
    print(f"Sections: {sections_file}")
    print(f"Output:   {output_file}")
    print()

    try:
        # Step 1: Configuration
        print("[1/4] Loading configuration...")
        config = load_import_config(config_file)
        section_names = read_section_names(sections_file)
        plan = StoryPlan.from_floor_types(config.floor_types)
        print(f"      [OK] Zone {config.seismic_zone.value}, {len(plan)} stories")
        print(f"      [OK] {len(section_names)} section names")
        print()

        # Step 2: Parse DXF plans, one per floor type
        print("[2/4] Parsing DXF plans...")
        sources = {}
        for floor_type in config.floor_types:
            if not floor_type.cad_file:
                print(f"      [--] {floor_type.name}: no CAD file")
                continue
            parser = parse_dxf(floor_type.cad_file)
            if abs(parser.metadata.unit_scale - config.unit_scale) > 1e-12:
                raise ValueError(
                    f"{floor_type.name}: drawing units are {parser.metadata.units} "
                    f"(unit_scale {parser.metadata.unit_scale}), config unit_scale is {config.unit_scale}"
                )
            entities = list(parser.iter_entities())
            sources[floor_type.name] = lambda entities=entities: entities
            print(f"      [OK] {floor_type.name}: {len(entities)} entities")
        print()

        # Step 3: Build elements
        print("[3/4] Building elements...")
        sink = IFCModelSink(project_name=config.project_name)
        for story in plan:
            sink.add_storey(story.name, story.base_elevation_m)
        report = import_building(config, section_names, sources, sink, get_default_config())
        print(f"      [OK] Created: {report.totals.created}")
        print(f"      [OK] Failed:  {report.totals.failed}")
        print(f"      [OK] Skipped: {report.totals.skipped}")
        print()

        # Step 4: Write IFC
        print("[4/4] Writing IFC file...")
        sink.write(output_file)
        print(f"      [OK] {output_file}")
        print()

        print("=" * 60)
        print(report.summary())
        print("=" * 60)

    except ConfigurationError as e:
        print(f"\nConfiguration error: {e}")
        sys.exit(2)
    except (ValueError, FileNotFoundError) as e:
        print(f"\nError: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
