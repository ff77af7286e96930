"""Coordinate conversion and hit-testing for the annotation canvas.

All functions here are pure. Boxes and points are in image pixel space;
pointer events are in device (client) coordinates.
"""

from collections.abc import Sequence

from pydantic import BaseModel, Field

from labelcanvas.models.annotations import (
    DELETE_AFFORDANCE_SIZE,
    MIN_BOX_SIZE,
    Annotation,
    BoundingBox,
    Point,
    Size,
)


class PointerEvent(BaseModel):
    """A mouse or touch event in client coordinates.

    Mouse events carry ``client_x``/``client_y``. Touch events carry the
    active touch points instead; a touch end has none left.
    """

    client_x: float | None = None
    client_y: float | None = None
    touches: list[Point] = Field(default_factory=list)


class CanvasBounds(BaseModel):
    """Displayed rectangle of the drawing surface in client coordinates."""

    left: float
    top: float
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)


def to_image_space(
    event: PointerEvent, bounds: CanvasBounds, canvas_size: Size
) -> Point | None:
    """Convert a pointer event to image pixel coordinates.

    The surface may be displayed smaller or larger than its backing pixel
    size, so each axis is scaled by ``canvas_size / displayed size``.

    Args:
        event: The pointer event.
        bounds: Where the surface is displayed.
        canvas_size: Backing pixel size of the surface.

    Returns:
        The point in image space, or None if the event has no coordinate.
    """
    if event.client_x is not None and event.client_y is not None:
        client_x, client_y = event.client_x, event.client_y
    elif event.touches:
        client_x, client_y = event.touches[0].x, event.touches[0].y
    else:
        return None

    if bounds.width == 0 or bounds.height == 0:
        return None

    scale_x = canvas_size.width / bounds.width
    scale_y = canvas_size.height / bounds.height
    return Point(
        x=(client_x - bounds.left) * scale_x,
        y=(client_y - bounds.top) * scale_y,
    )


def contains_point(box: BoundingBox, point: Point) -> bool:
    """Inclusive point-in-rectangle test."""
    return box.x <= point.x <= box.right and box.y <= point.y <= box.bottom


def hit_test_topmost(
    annotations: Sequence[Annotation], point: Point
) -> int | None:
    """Return the id of the topmost annotation containing ``point``.

    Later annotations render on top of earlier ones, so the list is scanned
    in reverse.
    """
    for annotation in reversed(annotations):
        if contains_point(annotation.bounding_box, point):
            return annotation.id
    return None


def delete_affordance_rect(box: BoundingBox) -> BoundingBox:
    """Square delete target anchored at the box's top-right corner."""
    return BoundingBox(
        x=box.right - DELETE_AFFORDANCE_SIZE,
        y=box.y,
        width=DELETE_AFFORDANCE_SIZE,
        height=DELETE_AFFORDANCE_SIZE,
    )


def normalize_box(start: Point, current: Point) -> BoundingBox:
    """Box spanned by two drag points, whatever the drag direction."""
    return BoundingBox(
        x=min(start.x, current.x),
        y=min(start.y, current.y),
        width=abs(start.x - current.x),
        height=abs(start.y - current.y),
    )


def is_valid_box(box: BoundingBox, min_size: float = MIN_BOX_SIZE) -> bool:
    """Whether a drawn box is large enough to keep."""
    return box.width >= min_size and box.height >= min_size
