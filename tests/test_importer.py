"""Tests for multi-story import."""

from __future__ import annotations

import pytest

from cadstruct.core.config import ImportConfig
from cadstruct.core.errors import CatalogEmpty, ConfigurationError, FloorCountMismatch, OutOfRange
from cadstruct.core.models import LineEntity, Point2D, PolylineEntity
from cadstruct.generation.importer import ImportRunner, import_building
from cadstruct.generation.sink import RecordingSink
from cadstruct.sections.catalog import SectionCatalog

SECTIONS = ["B20X45M35", "B20X45M30"]


def _line(layer, start, end):
    return LineEntity(layer=layer, start=Point2D(x=start[0], y=start[1]), end=Point2D(x=end[0], y=end[1]))


def _config(**overrides):
    data = {
        "project_name": "Test Tower",
        "seismic_zone": "Zone II",
        "floor_types": [
            {"name": "Podium", "count": 1, "height_m": 4.5},
            {"name": "Typical", "count": 3, "height_m": 3.0},
        ],
        "grade_schedule": [
            {"grade": "M50", "floors": 2},
            {"grade": "M40", "floors": 2},
        ],
    }
    data.update(overrides)
    return ImportConfig.model_validate(data)


def _sources():
    return {
        "Podium": lambda: [_line("WALL-CORE", (0, 0), (5000, 0))],
        "Typical": lambda: [
            _line("WALL-CORE", (0, 0), (5000, 0)),
            _line("B-INTERNAL-GRAVITY", (0, 0), (6000, 0)),
        ],
    }


def _sections_by_story(sink):
    result = {}
    for story, names in sink.groups.items():
        sections = []
        for name in names:
            if name in sink.areas:
                sections.append(sink.areas[name][1])
            else:
                sections.append(sink.frames[name][2])
        result[story] = sections
    return result


# ── Runs ─────────────────────────────────────────────────────────────────────

class TestImportRun:

    def test_every_story_built(self):
        sink = RecordingSink()
        report = import_building(_config(), SECTIONS, _sources(), sink)

        assert list(report.per_story) == ["Podium1", "Story1", "Story2", "Story3"]
        assert report.totals.created == 7
        assert report.totals.failed == 0

    def test_grades_follow_schedule(self):
        sink = RecordingSink()
        import_building(_config(), SECTIONS, _sources(), sink)

        assert _sections_by_story(sink) == {
            "Podium1": ["W160M50"],
            "Story1": ["W160M50", "B20X45M35"],
            "Story2": ["W160M40", "B20X45M30"],
            "Story3": ["W160M40", "B20X45M30"],
        }

    def test_elements_placed_at_story_elevations(self):
        sink = RecordingSink()
        import_building(_config(), SECTIONS, _sources(), sink)

        frame = sink.groups["Story1"][1]
        p1, p2, _ = sink.frames[frame]
        assert sink.points[p1][2] == pytest.approx(7.5)

        wall = sink.groups["Story1"][0]
        zs = sorted(z for _, _, z in sink.area_coordinates(wall))
        assert zs[0] == pytest.approx(4.5)
        assert zs[-1] == pytest.approx(7.5)

    def test_per_story_stats_are_independent(self):
        report = import_building(_config(), SECTIONS, _sources(), RecordingSink())

        assert report.per_story["Podium1"].created == 1
        assert report.per_story["Story3"].created == 2
        assert report.totals.sections_used["B20X45M30"] == 2

    def test_catalog_area_sections_used(self):
        sink = RecordingSink()
        import_building(_config(), SECTIONS + ["W150M50", "W150M40"], _sources(), sink)

        assert _sections_by_story(sink)["Podium1"] == ["W150M50"]
        assert _sections_by_story(sink)["Story3"][0] == "W150M40"

    def test_missing_source_skips_story(self, log_records):
        sources = _sources()
        del sources["Podium"]
        report = import_building(_config(), SECTIONS, sources, RecordingSink())

        assert "Podium1" not in report.per_story
        assert report.totals.created == 6
        assert any(
            r["level"].name == "WARNING" and "Podium" in r["message"] for r in log_records
        )

    def test_source_called_once_per_story(self):
        calls = []

        def typical():
            calls.append(1)
            return [_line("WALL-CORE", (0, 0), (5000, 0))]

        import_building(_config(), SECTIONS, {"Typical": typical}, RecordingSink())
        assert len(calls) == 3

    def test_floor_type_layer_overrides(self):
        config = _config(floor_types=[
            {"name": "Podium", "count": 1, "height_m": 4.5},
            {"name": "Typical", "count": 3, "height_m": 3.0, "layer_mapping": {"A-OUTLINE": "slab"}},
        ])
        outline = PolylineEntity(
            layer="A-OUTLINE",
            vertices=[Point2D(x=0, y=0), Point2D(x=4000, y=0), Point2D(x=4000, y=5000), Point2D(x=0, y=5000)],
            is_closed=True,
        )
        sources = {"Podium": lambda: [outline], "Typical": lambda: [outline]}
        report = import_building(config, SECTIONS, sources, RecordingSink())

        assert report.per_story["Podium1"].created == 0
        assert report.per_story["Story1"].sections_used == {"SLAB150M35": 1}

    def test_metre_drawings(self):
        sources = {
            "Podium": lambda: [_line("WALL-CORE", (0, 0), (6, 0))],
            "Typical": lambda: [
                _line("WALL-CORE", (0, 0), (6, 0)),
                PolylineEntity(
                    layer="SLAB",
                    vertices=[Point2D(x=0, y=0), Point2D(x=5, y=0), Point2D(x=5, y=4), Point2D(x=0, y=4)],
                    is_closed=True,
                ),
            ],
        }
        sink = RecordingSink()
        report = import_building(_config(unit_scale=1.0), SECTIONS, sources, sink)

        assert report.totals.created == 7
        assert report.totals.skipped == 0
        assert _sections_by_story(sink)["Story1"] == ["W160M50", "SLAB150M35"]
        wall = sink.groups["Podium1"][0]
        assert sink.area_coordinates(wall)[1] == pytest.approx((6, 0, 0))

    def test_summary(self):
        report = import_building(_config(), SECTIONS, _sources(), RecordingSink())
        summary = report.summary()

        assert "Imported 4 stories" in summary
        assert "created=7 failed=0 skipped=0" in summary


# ── Validation ───────────────────────────────────────────────────────────────

class TestImportValidation:

    def test_grade_schedule_must_cover_building(self):
        sink = RecordingSink()
        config = _config(grade_schedule=[{"grade": "M50", "floors": 2}, {"grade": "M40", "floors": 1}])

        with pytest.raises(FloorCountMismatch):
            import_building(config, SECTIONS, _sources(), sink)
        assert sink.points == {}

    def test_missing_beam_depth(self):
        sink = RecordingSink()
        config = _config(beam_depths={"InternalGravity": 450})

        with pytest.raises(ConfigurationError):
            import_building(config, SECTIONS, _sources(), sink)
        assert sink.points == {}

    def test_typical_floor_count_out_of_range(self):
        config = _config(
            floor_types=[{"name": "Typical", "count": 51, "height_m": 3.0}],
            grade_schedule=[{"grade": "M50", "floors": 51}],
        )
        with pytest.raises(OutOfRange):
            import_building(config, SECTIONS, {}, RecordingSink())

    def test_empty_frame_catalog(self):
        runner = ImportRunner(_config(), SectionCatalog({}))
        with pytest.raises(CatalogEmpty):
            runner.run(_sources(), RecordingSink())

    def test_no_frame_sections_in_names(self):
        with pytest.raises(ConfigurationError):
            import_building(_config(), ["SLAB150", "W200M40"], _sources(), RecordingSink())
