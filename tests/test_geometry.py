"""Tests for coordinate conversion and hit-testing."""

import pytest

from labelcanvas.geometry import (
    CanvasBounds,
    PointerEvent,
    contains_point,
    delete_affordance_rect,
    hit_test_topmost,
    is_valid_box,
    normalize_box,
    to_image_space,
)
from labelcanvas.models.annotations import Annotation, BoundingBox, Point, Size


def make_annotation(annotation_id: int, x: float, y: float, w: float, h: float):
    return Annotation(
        id=annotation_id,
        image_id=1,
        label_id=1,
        bounding_box=BoundingBox(x=x, y=y, width=w, height=h),
    )


class TestToImageSpace:
    """Tests for to_image_space."""

    def test_same_size_offsets_by_origin(self) -> None:
        """Test that an unscaled surface only subtracts its origin."""
        bounds = CanvasBounds(left=100, top=50, width=200, height=100)
        point = to_image_space(
            PointerEvent(client_x=150, client_y=75), bounds, Size(width=200, height=100)
        )
        assert point == Point(x=50, y=25)

    def test_scales_to_backing_size(self) -> None:
        """Test that a surface displayed at half size doubles coordinates."""
        bounds = CanvasBounds(left=0, top=0, width=400, height=300)
        point = to_image_space(
            PointerEvent(client_x=100, client_y=30), bounds, Size(width=800, height=600)
        )
        assert point == Point(x=200, y=60)

    def test_axes_scale_independently(self) -> None:
        bounds = CanvasBounds(left=0, top=0, width=100, height=100)
        point = to_image_space(
            PointerEvent(client_x=10, client_y=10), bounds, Size(width=300, height=50)
        )
        assert point == Point(x=30, y=5)

    def test_zero_client_coordinate_is_used(self) -> None:
        """Test that a coordinate of 0 is not mistaken for a missing one."""
        bounds = CanvasBounds(left=0, top=0, width=100, height=100)
        point = to_image_space(
            PointerEvent(client_x=0, client_y=0, touches=[Point(x=50, y=50)]),
            bounds,
            Size(width=100, height=100),
        )
        assert point == Point(x=0, y=0)

    def test_falls_back_to_first_touch(self) -> None:
        """Test touch events without client coordinates."""
        bounds = CanvasBounds(left=10, top=10, width=100, height=100)
        event = PointerEvent(touches=[Point(x=20, y=30), Point(x=90, y=90)])
        point = to_image_space(event, bounds, Size(width=100, height=100))
        assert point == Point(x=10, y=20)

    def test_touch_end_without_touches_returns_none(self) -> None:
        """Test that an event with no resolvable coordinate yields None."""
        bounds = CanvasBounds(left=0, top=0, width=100, height=100)
        size = Size(width=100, height=100)
        assert to_image_space(PointerEvent(), bounds, size) is None

    def test_collapsed_surface_returns_none(self) -> None:
        bounds = CanvasBounds(left=0, top=0, width=0, height=100)
        event = PointerEvent(client_x=1, client_y=1)
        assert to_image_space(event, bounds, Size(width=100, height=100)) is None


class TestContainsPoint:
    """Tests for contains_point."""

    box = BoundingBox(x=10, y=10, width=20, height=20)

    @pytest.mark.parametrize(
        ("x", "y"),
        [(10, 10), (30, 30), (10, 30), (30, 10), (20, 20)],
    )
    def test_inside_and_on_edges(self, x: float, y: float) -> None:
        """Test that containment is inclusive."""
        assert contains_point(self.box, Point(x=x, y=y))

    @pytest.mark.parametrize(("x", "y"), [(9.9, 20), (30.1, 20), (20, 9.9), (20, 31)])
    def test_outside(self, x: float, y: float) -> None:
        assert not contains_point(self.box, Point(x=x, y=y))


class TestHitTestTopmost:
    """Tests for hit_test_topmost."""

    def test_last_drawn_wins(self) -> None:
        """Test that of two overlapping annotations the later one is hit."""
        a = make_annotation(1, 0, 0, 100, 100)
        b = make_annotation(2, 50, 50, 100, 100)
        assert hit_test_topmost([a, b], Point(x=75, y=75)) == 2

    def test_only_containing_annotation_is_hit(self) -> None:
        a = make_annotation(1, 0, 0, 100, 100)
        b = make_annotation(2, 50, 50, 100, 100)
        assert hit_test_topmost([a, b], Point(x=10, y=10)) == 1

    def test_miss_returns_none(self) -> None:
        a = make_annotation(1, 0, 0, 10, 10)
        assert hit_test_topmost([a], Point(x=50, y=50)) is None

    def test_empty_list(self) -> None:
        assert hit_test_topmost([], Point(x=0, y=0)) is None


class TestDeleteAffordanceRect:
    """Tests for delete_affordance_rect."""

    def test_anchored_at_top_right(self) -> None:
        """Test that the glyph shares the box's top-right corner."""
        rect = delete_affordance_rect(BoundingBox(x=10, y=20, width=100, height=50))
        assert rect == BoundingBox(x=86, y=20, width=24, height=24)
        assert rect.right == 110

    def test_fixed_size(self) -> None:
        rect = delete_affordance_rect(BoundingBox(x=0, y=0, width=500, height=400))
        assert (rect.width, rect.height) == (24, 24)


class TestNormalizeBox:
    """Tests for normalize_box and is_valid_box."""

    @pytest.mark.parametrize(
        ("start", "end"),
        [((10, 10), (60, 50)), ((60, 50), (10, 10)), ((60, 10), (10, 50))],
    )
    def test_any_drag_direction(self, start: tuple, end: tuple) -> None:
        """Test that the box is the same whichever corner the drag began at."""
        box = normalize_box(Point(x=start[0], y=start[1]), Point(x=end[0], y=end[1]))
        assert box == BoundingBox(x=10, y=10, width=50, height=40)

    def test_minimum_size_is_inclusive(self) -> None:
        assert is_valid_box(BoundingBox(x=0, y=0, width=10, height=10))

    def test_below_minimum_in_one_axis_is_invalid(self) -> None:
        assert not is_valid_box(BoundingBox(x=0, y=0, width=50, height=9.5))
        assert not is_valid_box(BoundingBox(x=0, y=0, width=9.5, height=50))

    def test_custom_minimum(self) -> None:
        assert not is_valid_box(BoundingBox(x=0, y=0, width=15, height=15), 20)
