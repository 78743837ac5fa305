"""Tests for display/image coordinate transforms and arrow geometry."""

import math

import pytest

from arrowmark.annotator.arrow import Arrow
from arrowmark.annotator.geometry import (
    ViewportMargins,
    arrow_bounds,
    arrow_head_polygon,
    compute_fit_scale,
    distance_to_segment,
    to_display_space,
    to_image_space,
    usable_viewport,
)


def test_to_image_space_divides_by_scale():
    assert to_image_space((150, 75), 0.5) == (300.0, 150.0)
    assert to_image_space((150, 75), 1.0) == (150.0, 75.0)


def test_to_image_space_rejects_non_positive_scale():
    with pytest.raises(ValueError):
        to_image_space((1, 1), 0)


def test_display_space_inverts_image_space():
    point = to_image_space((123, 45), 0.8)
    back = to_display_space(point, 0.8)
    assert back[0] == pytest.approx(123)
    assert back[1] == pytest.approx(45)


def test_fit_scale_scenario():
    """800x600 viewport with 40px margins fits a 1520x1120 image at 0.5."""
    viewport = usable_viewport((800, 600), ViewportMargins(horizontal=40, vertical=40))

    assert viewport == (760, 560)
    assert compute_fit_scale((1520, 1120), viewport) == 0.5


def test_fit_scale_never_exceeds_one():
    for image_size, viewport in [
        ((100, 100), (1000, 1000)),
        ((10, 4000), (1920, 1080)),
        ((1920, 1080), (1920, 1080)),
        ((300, 200), (301, 5000)),
    ]:
        assert compute_fit_scale(image_size, viewport) <= 1.0


def test_fit_scale_returns_exact_minimum_when_below_one():
    image_size = (1000, 500)
    viewport = (800, 600)

    assert compute_fit_scale(image_size, viewport) == min(800 / 1000, 600 / 500)


def test_default_margins():
    assert usable_viewport((1280, 900), ViewportMargins()) == (1260, 680)


def test_distance_to_segment():
    assert distance_to_segment((50, 10), (0, 0), (100, 0)) == pytest.approx(10)
    # Beyond the end, distance is to the endpoint
    assert distance_to_segment((110, 0), (0, 0), (100, 0)) == pytest.approx(10)
    # Degenerate segment
    assert distance_to_segment((3, 4), (0, 0), (0, 0)) == pytest.approx(5)


def test_arrow_head_polygon_points_along_shaft():
    tip, left, right = arrow_head_polygon((0, 0), (100, 0), length=15, width=10)

    assert tip == (100, 0)
    assert left[0] == pytest.approx(85)
    assert right[0] == pytest.approx(85)
    assert abs(left[1] - right[1]) == pytest.approx(10)


def test_arrow_head_polygon_diagonal():
    tip, left, right = arrow_head_polygon((0, 0), (30, 40), length=10, width=0)

    # Zero width collapses the base onto the shaft, 10px back from the tip
    assert math.hypot(tip[0] - left[0], tip[1] - left[1]) == pytest.approx(10)
    assert left == pytest.approx(right)


def test_arrow_bounds_padding():
    assert arrow_bounds((10, 50), (40, 20), 5) == (5, 15, 45, 55)


def test_arrow_value_helpers():
    arrow = Arrow(100, 100, 200, 150)

    assert arrow.points() == [100, 100, 200, 150]
    assert arrow.tail == (100, 100)
    assert arrow.head == (200, 150)
    assert arrow.translated(10, -10) == Arrow(110, 90, 210, 140)
    assert arrow.with_tail(0, 0) == Arrow(0, 0, 200, 150)
    assert arrow.with_head(1, 2) == Arrow(100, 100, 1, 2)
    assert Arrow.from_dict(arrow.to_dict()) == arrow


def test_arrow_from_points_requires_four_values():
    with pytest.raises(ValueError):
        Arrow.from_points([1, 2])
