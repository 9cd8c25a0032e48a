"""Tests for boundary tessellation and polygon sanitization."""

from __future__ import annotations

import pytest

from cadstruct.core.models import (
    ArcEdge,
    EllipseEdge,
    HatchBoundaryPath,
    LineEdge,
    Point2D,
    Polygon,
    Segment,
    Skip,
    SkipReason,
    SplineEdge,
)
from cadstruct.geometry.sanitizer import (
    PolygonSanitizer,
    SanitizerSettings,
    has_self_intersection,
    make_segment,
    remove_duplicates,
    sanitize_boundary,
)
from cadstruct.geometry.tessellator import (
    tessellate_arc,
    tessellate_edge,
    tessellate_ellipse,
    tessellate_path,
)


def _pts(*coords):
    return [Point2D(x=x, y=y) for x, y in coords]


# ── Tessellator ──────────────────────────────────────────────────────────────

class TestTessellator:

    def test_arc_has_seventeen_points(self):
        edge = ArcEdge(center=Point2D(x=0, y=0), radius=10, start_angle=0, end_angle=90)
        points = list(tessellate_arc(edge))

        assert len(points) == 17
        assert points[0].x == pytest.approx(10.0)
        assert points[0].y == pytest.approx(0.0, abs=1e-9)
        assert points[-1].x == pytest.approx(0.0, abs=1e-9)
        assert points[-1].y == pytest.approx(10.0)

    def test_arc_wraps_when_end_before_start(self):
        edge = ArcEdge(center=Point2D(x=0, y=0), radius=10, start_angle=270, end_angle=90)
        points = list(tessellate_arc(edge))

        # Sweeps 270 -> 450 degrees; the middle point sits at 0 degrees
        assert points[8].x == pytest.approx(10.0)
        assert points[8].y == pytest.approx(0.0, abs=1e-9)
        assert points[-1].y == pytest.approx(10.0)

    def test_zero_radius_arc_yields_coincident_points(self):
        edge = ArcEdge(center=Point2D(x=5, y=5), radius=0, start_angle=0, end_angle=180)
        points = list(tessellate_arc(edge))

        assert len(points) == 17
        assert all(p == Point2D(x=5, y=5) for p in points)

    def test_ellipse_has_twenty_five_points(self):
        edge = EllipseEdge(
            center=Point2D(x=0, y=0),
            major_axis=Point2D(x=10, y=0),
            ratio=0.5,
            start_angle=0,
            end_angle=360,
        )
        points = list(tessellate_ellipse(edge))

        assert len(points) == 25
        # 360 / 24 * 6 = 90 degrees -> end of the minor axis
        assert points[6].x == pytest.approx(0.0, abs=1e-9)
        assert points[6].y == pytest.approx(5.0)

    def test_rotated_ellipse_follows_major_axis(self):
        edge = EllipseEdge(
            center=Point2D(x=0, y=0),
            major_axis=Point2D(x=0, y=10),
            ratio=0.5,
            start_angle=0,
            end_angle=360,
        )
        points = list(tessellate_ellipse(edge))

        assert points[0].x == pytest.approx(0.0, abs=1e-9)
        assert points[0].y == pytest.approx(10.0)
        assert points[6].x == pytest.approx(-5.0)
        assert points[6].y == pytest.approx(0.0, abs=1e-9)

    def test_line_edge_contributes_start_only(self):
        edge = LineEdge(start=Point2D(x=1, y=2), end=Point2D(x=3, y=4))
        assert list(tessellate_edge(edge)) == [Point2D(x=1, y=2)]

    def test_spline_uses_control_points(self):
        controls = tuple(_pts((0, 0), (1, 2), (3, 2), (4, 0)))
        edge = SplineEdge(control_points=controls)
        assert list(tessellate_edge(edge)) == list(controls)

    def test_edge_path_of_lines(self):
        corners = _pts((0, 0), (10000, 0), (10000, 5000), (0, 5000))
        edges = tuple(
            LineEdge(start=corners[i], end=corners[(i + 1) % 4]) for i in range(4)
        )
        points = tessellate_path(HatchBoundaryPath(edges=edges))
        assert points == corners

    def test_polyline_path_returns_vertices(self):
        vertices = tuple(_pts((0, 0), (1000, 0), (1000, 1000)))
        assert tessellate_path(HatchBoundaryPath(vertices=vertices)) == list(vertices)

    def test_mixed_path_concatenates_edges(self):
        edges = (
            LineEdge(start=Point2D(x=0, y=0), end=Point2D(x=2000, y=0)),
            ArcEdge(center=Point2D(x=2000, y=1000), radius=1000, start_angle=-90, end_angle=90),
            LineEdge(start=Point2D(x=2000, y=2000), end=Point2D(x=0, y=2000)),
        )
        points = tessellate_path(HatchBoundaryPath(edges=edges))
        assert len(points) == 1 + 17 + 1


# ── Sanitizer: spec scenarios ────────────────────────────────────────────────

class TestSanitizerScenarios:

    def test_near_duplicate_closing_point_is_dropped(self):
        boundary = _pts((0, 0), (10000, 0), (10000, 5000), (0, 5000), (0, 0.05))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert len(result.vertices) == 4
        assert result.signed_area() > 0
        assert result.area() == pytest.approx(50_000_000)

    def test_two_points_are_insufficient(self):
        result = sanitize_boundary(_pts((0, 0), (100, 0)))

        assert isinstance(result, Skip)
        assert result.reason == SkipReason.INSUFFICIENT_VERTICES

    def test_explicitly_repeated_closing_point(self):
        boundary = _pts((0, 0), (4000, 0), (4000, 4000), (0, 4000), (0, 0))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert len(result.vertices) == 4


# ── Sanitizer: steps ─────────────────────────────────────────────────────────

class TestSanitizerSteps:

    def test_empty_boundary(self):
        result = sanitize_boundary([])
        assert isinstance(result, Skip)
        assert result.reason == SkipReason.INSUFFICIENT_VERTICES

    def test_single_point(self):
        result = sanitize_boundary(_pts((5, 5)))
        assert isinstance(result, Skip)
        assert result.reason == SkipReason.INSUFFICIENT_VERTICES

    def test_gap_beyond_tolerance_is_not_closed(self):
        boundary = _pts((0, 0), (20000, 0), (20000, 20000))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Skip)
        assert result.reason == SkipReason.NOT_CLOSED

    def test_declared_closed_still_rejects_large_gap(self):
        boundary = _pts((0, 0), (20000, 0), (20000, 20000), (0, 20000))
        result = PolygonSanitizer().sanitize(boundary, declared_closed=True)

        assert isinstance(result, Skip)
        assert result.reason == SkipReason.NOT_CLOSED

    def test_trusted_declared_closure_accepts_large_closing_edge(self):
        boundary = _pts((0, 0), (20000, 0), (20000, 20000))
        settings = SanitizerSettings(trust_declared_closure=True)
        result = PolygonSanitizer(settings).sanitize(boundary, declared_closed=True)

        assert isinstance(result, Polygon)
        assert result.area() == pytest.approx(200_000_000)

    def test_trusted_closure_needs_closed_entity(self):
        boundary = _pts((0, 0), (20000, 0), (20000, 20000))
        settings = SanitizerSettings(trust_declared_closure=True)
        result = PolygonSanitizer(settings).sanitize(boundary)

        assert isinstance(result, Skip)
        assert result.reason == SkipReason.NOT_CLOSED

    def test_gap_within_tolerance_closes_implicitly(self):
        boundary = _pts((0, 0), (6000, 0), (6000, 6000), (0, 6000))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert len(result.vertices) == 4

    def test_small_area_rejected(self):
        result = sanitize_boundary(_pts((0, 0), (50, 0), (50, 50), (0, 50)))

        assert isinstance(result, Skip)
        assert result.reason == SkipReason.AREA_TOO_SMALL

    def test_min_area_is_configurable(self):
        settings = SanitizerSettings(min_area=1000.0)
        result = PolygonSanitizer(settings).sanitize(_pts((0, 0), (50, 0), (50, 50), (0, 50)))

        assert isinstance(result, Polygon)

    def test_clockwise_input_is_reversed(self):
        boundary = _pts((0, 0), (0, 5000), (10000, 5000), (10000, 0))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert result.signed_area() > 0
        assert result.vertices[0] == Point2D(x=10000, y=0)
        assert result.vertices[-1] == Point2D(x=0, y=0)

    def test_consecutive_duplicates_removed(self):
        boundary = _pts((0, 0), (1000, 0), (1000, 0.0005), (1000, 1000), (0, 1000))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert len(result.vertices) == 4

    def test_collinear_vertices_are_kept(self):
        # Only duplicates are cleaned; a collinear mid-edge vertex survives
        boundary = _pts((0, 0), (500, 0), (1000, 0), (1000, 1000), (0, 1000))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert len(result.vertices) == 5
        assert Point2D(x=500, y=0) in result.vertices

    def test_self_intersection_is_advisory(self, log_records):
        boundary = _pts((0, 0), (4000, 0), (4000, 4000), (2000, -1000), (0, 4000))
        result = sanitize_boundary(boundary)

        assert isinstance(result, Polygon)
        assert result.self_intersecting is True
        assert any(
            r["level"].name == "WARNING" and "self-intersecting" in r["message"]
            for r in log_records
        )

    def test_simple_polygon_not_flagged(self):
        result = sanitize_boundary(_pts((0, 0), (4000, 0), (4000, 4000), (0, 4000)))
        assert isinstance(result, Polygon)
        assert result.self_intersecting is False


# ── Sanitizer: properties ────────────────────────────────────────────────────

class TestSanitizerProperties:

    BOUNDARIES = [
        _pts((0, 0), (10000, 0), (10000, 5000), (0, 5000)),
        _pts((0, 0), (0, 3000), (3000, 3000), (3000, 0), (0, 0.01)),
        _pts((0, 0), (5000, 0), (2500, 4000)),
        _pts((0, 0), (6000, 0), (6000, 2000), (3000, 2000), (3000, 5000), (0, 5000)),
    ]

    @pytest.mark.parametrize("boundary", BOUNDARIES)
    def test_accepted_polygons_are_large_and_ccw(self, boundary):
        settings = SanitizerSettings()
        result = PolygonSanitizer(settings).sanitize(boundary)

        assert isinstance(result, Polygon)
        assert result.signed_area() > 0
        assert result.area() >= settings.min_area
        assert len(result.vertices) >= 3
        assert result.vertices[0] != result.vertices[-1]

    @pytest.mark.parametrize("boundary", BOUNDARIES)
    def test_sanitize_is_idempotent(self, boundary):
        sanitizer = PolygonSanitizer()
        first = sanitizer.sanitize(boundary)
        second = sanitizer.sanitize(list(first.vertices))

        assert isinstance(second, Polygon)
        assert second.vertices == first.vertices


# ── Sanitizer: drawing units ─────────────────────────────────────────────────

class TestSanitizerUnits:

    def test_millimetre_settings_unchanged(self):
        settings = SanitizerSettings()
        assert settings.scaled(0.001) is settings

    def test_metre_settings(self):
        settings = SanitizerSettings().scaled(1.0)

        assert settings.min_segment_length == pytest.approx(0.1)
        assert settings.min_area == pytest.approx(0.01)
        assert settings.closure_tolerance == pytest.approx(10.0)
        assert settings.near_duplicate_epsilon == pytest.approx(0.0001)

    def test_scaling_keeps_custom_values_and_flags(self):
        settings = SanitizerSettings(min_area=2500.0, trust_declared_closure=True).scaled(0.01)

        assert settings.min_area == pytest.approx(25.0)
        assert settings.min_segment_length == pytest.approx(10.0)
        assert settings.trust_declared_closure is True

    def test_metre_boundary_accepted(self):
        settings = SanitizerSettings().scaled(1.0)
        result = PolygonSanitizer(settings).sanitize(_pts((0, 0), (5, 0), (5, 4), (0, 4)))

        assert isinstance(result, Polygon)
        assert result.area() == pytest.approx(20.0)

    def test_metre_boundary_below_minimum_area(self):
        settings = SanitizerSettings().scaled(1.0)
        result = PolygonSanitizer(settings).sanitize(_pts((0, 0), (0.05, 0), (0.05, 0.05), (0, 0.05)))

        assert isinstance(result, Skip)
        assert result.reason == SkipReason.AREA_TOO_SMALL


# ── Helpers ──────────────────────────────────────────────────────────────────

class TestHelpers:

    def test_square_has_no_self_intersection(self):
        assert not has_self_intersection(_pts((0, 0), (10, 0), (10, 10), (0, 10)))

    def test_triangle_never_self_intersects(self):
        assert not has_self_intersection(_pts((0, 0), (10, 0), (5, 5)))

    def test_remove_duplicates_wraps_around(self):
        cleaned = remove_duplicates(_pts((0, 0), (10, 0), (10, 10), (0, 0.0001)))
        assert len(cleaned) == 3

    def test_make_segment_rejects_short(self):
        result = make_segment(Point2D(x=0, y=0), Point2D(x=50, y=0), min_length=100)
        assert isinstance(result, Skip)
        assert result.reason == SkipReason.TOO_SHORT

    def test_make_segment_accepts_long(self):
        result = make_segment(Point2D(x=0, y=0), Point2D(x=3000, y=4000), min_length=100)
        assert isinstance(result, Segment)
        assert result.length() == pytest.approx(5000)

    def test_make_segment_rejects_zero_length_even_without_minimum(self):
        result = make_segment(Point2D(x=1, y=1), Point2D(x=1, y=1), min_length=0)
        assert isinstance(result, Skip)

    def test_polygon_construction_enforces_winding(self):
        with pytest.raises(ValueError):
            Polygon(vertices=tuple(_pts((0, 0), (0, 10), (10, 10), (10, 0))))
