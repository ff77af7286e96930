"""Workspace state shared between the canvas and its surroundings.

The workspace owns the annotation lists; the canvas controller only reads
them and asks the workspace to apply store-confirmed changes.
"""

import logging
import threading
from collections.abc import Callable

from labelcanvas.models.annotations import (
    Annotation,
    ImageRecord,
    ImageStatus,
    Label,
)
from labelcanvas.services.sync_gateway import AnnotationSyncGateway

logger = logging.getLogger(__name__)

Listener = Callable[[int], None]


class AnnotationWorkspace:
    """Images, labels and per-image annotations for one labeling session."""

    def __init__(
        self,
        gateway: AnnotationSyncGateway,
        images: list[ImageRecord] | None = None,
        labels: list[Label] | None = None,
        annotations: list[Annotation] | None = None,
    ) -> None:
        """Initialize the workspace.

        Args:
            gateway: Store client used by ``load`` and ``create_label``.
            images: Initial images.
            labels: Initial labels.
            annotations: Initial annotations, any image.
        """
        self.gateway = gateway
        self._lock = threading.Lock()
        self._images: dict[int, ImageRecord] = {}
        self._labels: list[Label] = list(labels or [])
        self._annotations: dict[int, list[Annotation]] = {}
        self._listeners: list[Listener] = []
        for image in images or []:
            self._images[image.id] = image
        for annotation in annotations or []:
            self._annotations.setdefault(annotation.image_id, []).append(annotation)

    def load(self) -> None:
        """Replace local state with the store's current contents.

        Raises:
            SyncFailure: If any request fails.
        """
        images = self.gateway.list_images()
        labels = self.gateway.list_labels()
        annotations = {
            image.id: self.gateway.list_annotations(image.id) for image in images
        }
        with self._lock:
            self._images = {image.id: image for image in images}
            self._labels = labels
            self._annotations = annotations
        logger.info("Loaded %d images and %d labels", len(images), len(labels))

    def images(self) -> list[ImageRecord]:
        with self._lock:
            return list(self._images.values())

    def get_image(self, image_id: int) -> ImageRecord | None:
        with self._lock:
            return self._images.get(image_id)

    def labels(self) -> list[Label]:
        with self._lock:
            return list(self._labels)

    def labels_by_id(self) -> dict[int, Label]:
        with self._lock:
            return {label.id: label for label in self._labels}

    def create_label(self, name: str) -> Label:
        """Create a label in the store and add it to the local list.

        Raises:
            SyncFailure: If the store rejects the label.
        """
        label = self.gateway.create_label(name)
        with self._lock:
            self._labels.append(label)
        return label

    def annotations_for(self, image_id: int) -> tuple[Annotation, ...]:
        """Snapshot of an image's annotations in draw order."""
        with self._lock:
            return tuple(self._annotations.get(image_id, ()))

    def add_annotation(self, annotation: Annotation) -> None:
        """Append a store-confirmed annotation."""
        with self._lock:
            self._annotations.setdefault(annotation.image_id, []).append(annotation)
            image = self._images.get(annotation.image_id)
            if image is not None and image.status != ImageStatus.LABELED:
                self._images[image.id] = image.model_copy(
                    update={"status": ImageStatus.LABELED}
                )
        self._notify(annotation.image_id)

    def remove_annotation(self, annotation_id: int) -> bool:
        """Drop an annotation after the store confirmed its deletion.

        Returns:
            False if the annotation was not held (already removed).
        """
        with self._lock:
            image_id = self._find_image_of(annotation_id)
            if image_id is None:
                return False
            self._annotations[image_id] = [
                ann for ann in self._annotations[image_id] if ann.id != annotation_id
            ]
        self._notify(image_id)
        return True

    def is_labeled(self, image_id: int) -> bool:
        """Whether an image has at least one annotation.

        Falls back to the cached image status when the image's annotations
        were never loaded.
        """
        with self._lock:
            if image_id in self._annotations:
                return len(self._annotations[image_id]) > 0
            image = self._images.get(image_id)
            return image is not None and image.status == ImageStatus.LABELED

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(image_id)`` whenever an image's annotations change.

        Returns:
            A function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _find_image_of(self, annotation_id: int) -> int | None:
        for image_id, annotations in self._annotations.items():
            if any(ann.id == annotation_id for ann in annotations):
                return image_id
        return None

    def _notify(self, image_id: int) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(image_id)
