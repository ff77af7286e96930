"""Error taxonomy for the canvas controller.

Every failure here is scoped to a single user gesture. None of them is
fatal: the caller reports it and the user retries.
"""

from typing import Literal

SyncReason = Literal["rejected", "unreachable"]


class CanvasError(Exception):
    """Base class for canvas controller errors."""


class ImageLoadFailure(CanvasError):
    """The selected image could not be fetched or decoded."""

    def __init__(self, image_id: int, detail: str) -> None:
        self.image_id = image_id
        self.detail = detail
        super().__init__(f"Could not load image {image_id}: {detail}")


class SyncFailure(CanvasError):
    """The remote store rejected a request or could not be reached.

    Attributes:
        operation: Name of the gateway operation ("create", "delete", ...).
        detail: Human-readable message, taken from the store when it sent one.
        status_code: HTTP status of a rejection, None when unreachable.
        reason: "rejected" for a store response, "unreachable" for transport
            errors.
    """

    def __init__(
        self,
        operation: str,
        detail: str,
        status_code: int | None = None,
        reason: SyncReason = "rejected",
    ) -> None:
        self.operation = operation
        self.detail = detail
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"{operation} failed ({reason}): {detail}")


class NoLabelsAvailable(CanvasError):
    """A box cannot be committed because no labels exist yet."""

    def __init__(self) -> None:
        super().__init__("No labels available. Create a label first.")


class LabelNotFound(CanvasError):
    """The chosen label id is not in the current label list."""

    def __init__(self, label_id: int) -> None:
        self.label_id = label_id
        super().__init__(f"Label not found: {label_id}")


class InvalidTransition(CanvasError):
    """An operation was requested from a state that does not allow it."""
