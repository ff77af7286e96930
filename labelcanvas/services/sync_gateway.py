"""Client for the remote annotation store."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from labelcanvas.errors import SyncFailure
from labelcanvas.models.annotations import (
    Annotation,
    AnnotationCreate,
    BoundingBox,
    ImageRecord,
    Label,
    LabelCreate,
)

logger = logging.getLogger(__name__)


class AnnotationSyncGateway:
    """Creates and deletes annotations on the remote store.

    The gateway holds no local state. Callers apply a result to their own
    annotation list only after the store has confirmed it, so a failed call
    never leaves the display ahead of the server.

    Requests carry no idempotency key: retrying ``create`` after a timeout
    can produce a duplicate annotation.
    """

    def __init__(self, client: httpx.Client) -> None:
        """Initialize the gateway.

        Args:
            client: HTTP client whose base URL points at the store.
        """
        self.client = client

    def create(self, image_id: int, label_id: int, box: BoundingBox) -> Annotation:
        """Commit a box with a label and return the stored annotation.

        Raises:
            SyncFailure: If the store rejects the request or is unreachable.
        """
        payload = AnnotationCreate(label_id=label_id, bounding_box=box)
        data = self._request(
            "create",
            "POST",
            f"/api/images/{image_id}/annotations",
            json=payload.model_dump(),
        )
        annotation = self._parse("create", Annotation, data)
        logger.info("Created annotation %s on image %s", annotation.id, image_id)
        return annotation

    def delete(self, annotation_id: int) -> None:
        """Remove an annotation from the store.

        An annotation the store no longer knows about counts as deleted.

        Raises:
            SyncFailure: If the store rejects the request or is unreachable.
        """
        try:
            self._request("delete", "DELETE", f"/api/annotations/{annotation_id}")
        except SyncFailure as err:
            if err.status_code != 404:
                raise
            logger.debug("Annotation %s was already gone", annotation_id)
            return
        logger.info("Deleted annotation %s", annotation_id)

    def list_images(self) -> list[ImageRecord]:
        """Fetch all images known to the store."""
        data = self._request("list_images", "GET", "/api/images")
        return [self._parse("list_images", ImageRecord, item) for item in data]

    def list_annotations(self, image_id: int) -> list[Annotation]:
        """Fetch the annotations of one image."""
        data = self._request(
            "list_annotations", "GET", f"/api/images/{image_id}/annotations"
        )
        return [self._parse("list_annotations", Annotation, item) for item in data]

    def list_labels(self) -> list[Label]:
        """Fetch the label list."""
        data = self._request("list_labels", "GET", "/api/labels")
        return [self._parse("list_labels", Label, item) for item in data]

    def create_label(self, name: str) -> Label:
        """Create a new label."""
        payload = LabelCreate(name=name)
        data = self._request(
            "create_label", "POST", "/api/labels", json=payload.model_dump()
        )
        return self._parse("create_label", Label, data)

    def _request(self, operation: str, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.client.request(method, url, **kwargs)
        except httpx.RequestError as err:
            logger.warning("%s: store unreachable: %s", operation, err)
            raise SyncFailure(
                operation, f"Store unreachable: {err}", reason="unreachable"
            ) from err

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(
                "%s: store rejected request (%s): %s",
                operation,
                response.status_code,
                detail,
            )
            raise SyncFailure(
                operation, detail, status_code=response.status_code, reason="rejected"
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as err:
            raise SyncFailure(
                operation,
                "Store returned an invalid response",
                status_code=response.status_code,
            ) from err

    @staticmethod
    def _parse(operation: str, model: Any, data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as err:
            raise SyncFailure(operation, f"Unexpected store response: {err}") from err


def _error_detail(response: httpx.Response) -> str:
    """Extract the store's human-readable error message."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("detail"):
        detail = body["detail"]
        return detail if isinstance(detail, str) else str(detail)
    return f"Request failed with status {response.status_code}"
