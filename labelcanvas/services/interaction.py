"""Interaction state machine for drawing boxes on the canvas.

The machine has three drawing states (``Idle``, ``Drawing``,
``AwaitingLabel``) and an orthogonal hover target. Hover is only recomputed
while idle, and delete requests are only honored while idle, so a drag that
crosses a delete glyph never deletes anything.
"""

import logging
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from labelcanvas.errors import InvalidTransition
from labelcanvas.geometry import (
    contains_point,
    delete_affordance_rect,
    hit_test_topmost,
    is_valid_box,
    normalize_box,
)
from labelcanvas.models.annotations import (
    MIN_BOX_SIZE,
    Annotation,
    BoundingBox,
    Point,
)

logger = logging.getLogger(__name__)


class Idle(BaseModel):
    """No drawing session is active."""

    model_config = ConfigDict(frozen=True)


class Drawing(BaseModel):
    """The pointer is down and a box is being dragged out."""

    model_config = ConfigDict(frozen=True)

    start: Point
    current: Point

    @property
    def box(self) -> BoundingBox:
        return normalize_box(self.start, self.current)


class AwaitingLabel(BaseModel):
    """A valid box was drawn and waits for a label choice."""

    model_config = ConfigDict(frozen=True)

    box: BoundingBox


InteractionState = Idle | Drawing | AwaitingLabel


class DeleteRequest(BaseModel):
    """Emitted when the user clicks the delete glyph of an annotation."""

    model_config = ConfigDict(frozen=True)

    annotation_id: int


class InteractionMachine:
    """Turns pointer input into drawing states for one canvas."""

    def __init__(self, min_box_size: float = MIN_BOX_SIZE) -> None:
        self.min_box_size = min_box_size
        self.state: InteractionState = Idle()
        self.hovered_annotation_id: int | None = None

    @property
    def pending_box(self) -> BoundingBox | None:
        """The uncommitted box, if a session is active."""
        if isinstance(self.state, Drawing):
            return self.state.box
        if isinstance(self.state, AwaitingLabel):
            return self.state.box
        return None

    @property
    def is_idle(self) -> bool:
        return isinstance(self.state, Idle)

    @property
    def awaiting_label(self) -> bool:
        return isinstance(self.state, AwaitingLabel)

    def pointer_down(
        self, point: Point, annotations: Sequence[Annotation]
    ) -> DeleteRequest | None:
        """Start a drag, or request deletion of the hovered annotation.

        Args:
            point: Pointer position in image space.
            annotations: Annotations currently displayed, in draw order.

        Returns:
            A DeleteRequest if the point hit the hovered annotation's delete
            glyph, otherwise None.
        """
        if not self.is_idle:
            return None

        hovered = self._hovered_annotation(annotations)
        if hovered is not None and contains_point(
            delete_affordance_rect(hovered.bounding_box), point
        ):
            logger.debug("Delete requested for annotation %s", hovered.id)
            return DeleteRequest(annotation_id=hovered.id)

        self.state = Drawing(start=point, current=point)
        return None

    def pointer_move(self, point: Point, annotations: Sequence[Annotation]) -> None:
        """Extend the current drag, or update hover while idle."""
        if isinstance(self.state, Drawing):
            self.state = Drawing(start=self.state.start, current=point)
        elif self.is_idle:
            self.hovered_annotation_id = hit_test_topmost(annotations, point)

    def pointer_up(self, point: Point | None = None) -> BoundingBox | None:
        """Finish the current drag.

        Args:
            point: Release position, or None when the event had no usable
                coordinate (the last known position is used instead).

        Returns:
            The box now awaiting a label, or None if nothing was kept.
        """
        if not isinstance(self.state, Drawing):
            return None

        end = point if point is not None else self.state.current
        box = normalize_box(self.state.start, end)
        if is_valid_box(box, self.min_box_size):
            self.state = AwaitingLabel(box=box)
            return box

        logger.debug("Discarding box below minimum size: %s", box)
        self.state = Idle()
        return None

    def pointer_leave(self) -> BoundingBox | None:
        """Pointer left the canvas: finish any drag and clear hover."""
        self.hovered_annotation_id = None
        if isinstance(self.state, Drawing):
            return self.pointer_up(None)
        return None

    def take_pending(self) -> BoundingBox:
        """Hand the awaiting box over for commit and return to idle.

        Raises:
            InvalidTransition: If no box is awaiting a label.
        """
        if not isinstance(self.state, AwaitingLabel):
            raise InvalidTransition("No box is awaiting a label")
        box = self.state.box
        self.state = Idle()
        return box

    def cancel(self) -> None:
        """Discard the awaiting box."""
        if isinstance(self.state, AwaitingLabel):
            self.state = Idle()

    def reset(self) -> None:
        """Forget all interaction state (used when the image changes)."""
        self.state = Idle()
        self.hovered_annotation_id = None

    def _hovered_annotation(
        self, annotations: Sequence[Annotation]
    ) -> Annotation | None:
        if self.hovered_annotation_id is None:
            return None
        for annotation in annotations:
            if annotation.id == self.hovered_annotation_id:
                return annotation
        return None
