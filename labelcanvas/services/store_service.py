"""Reference annotation store backed by a data directory."""

import json
import logging
import threading
from io import BytesIO
from pathlib import Path

from PIL import Image

from labelcanvas.models.annotations import (
    Annotation,
    AnnotationCreate,
    ImageRecord,
    ImageStatus,
    Label,
    LabelCreate,
    StoreIndex,
)
from labelcanvas.utils import sanitize_filename

logger = logging.getLogger(__name__)


class ImageNotFoundError(LookupError):
    """No image with the requested id."""


class LabelNotFoundError(LookupError):
    """No label with the requested id."""


class AnnotationNotFoundError(LookupError):
    """No annotation with the requested id."""


class DuplicateLabelError(ValueError):
    """A label with the same name already exists."""


_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(data_dir: Path) -> threading.Lock:
    """Lock shared by every StoreService on the same data directory."""
    key = data_dir.resolve()
    with _locks_guard:
        return _locks.setdefault(key, threading.Lock())


class StoreService:
    """Handles image, label and annotation storage for the reference store."""

    def __init__(self, data_dir: Path) -> None:
        """Initialize the store service.

        Args:
            data_dir: Root directory for stored images and the index file.
        """
        self.data_dir = data_dir
        self.images_dir = data_dir / "images"
        self.index_path = data_dir / "store.json"
        self._ensure_directories()
        self._lock = _lock_for(data_dir)

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.images_dir.mkdir(exist_ok=True)

    def _load_index(self) -> StoreIndex:
        if not self.index_path.exists():
            return StoreIndex()
        with self.index_path.open("r") as f:
            data = json.load(f)
        return StoreIndex.model_validate(data)

    def _save_index(self, index: StoreIndex) -> None:
        # Readers do not take the lock, so the index is swapped in whole.
        tmp_path = self.index_path.with_suffix(".json.tmp")
        with tmp_path.open("w") as f:
            json.dump(index.model_dump(mode="json"), f, indent=2)
        tmp_path.replace(self.index_path)

    def _image_path(self, image: ImageRecord) -> Path:
        return self.images_dir / f"{image.id}_{image.original_filename}"

    @staticmethod
    def _with_status(image: ImageRecord, index: StoreIndex) -> ImageRecord:
        labeled = any(ann.image_id == image.id for ann in index.annotations)
        status = ImageStatus.LABELED if labeled else ImageStatus.UNLABELED
        return image.model_copy(update={"status": status})

    def list_images(self) -> list[ImageRecord]:
        """List all images with their current labeling status."""
        index = self._load_index()
        return [self._with_status(image, index) for image in index.images]

    def get_image(self, image_id: int) -> ImageRecord:
        """Get one image.

        Raises:
            ImageNotFoundError: If the image does not exist.
        """
        index = self._load_index()
        for image in index.images:
            if image.id == image_id:
                return self._with_status(image, index)
        raise ImageNotFoundError(f"Image not found: {image_id}")

    def get_image_path(self, image_id: int) -> Path | None:
        """Get the path to an image file."""
        try:
            image = self.get_image(image_id)
        except ImageNotFoundError:
            return None
        path = self._image_path(image)
        if path.exists() and path.is_file():
            return path
        return None

    def add_image(self, filename: str, content: bytes) -> ImageRecord:
        """Store an uploaded image.

        Args:
            filename: Original filename.
            content: Image file bytes.

        Returns:
            The stored image; its pixel source is the store-relative path
            the bitmap is served from.

        Raises:
            ValueError: If the file is not a valid image.
        """
        try:
            img = Image.open(BytesIO(content))
            img.verify()
        except Exception as err:
            raise ValueError(f"Invalid image file: {err}") from err

        safe_filename = sanitize_filename(filename)
        with self._lock:
            index = self._load_index()
            image_id = index.next_image_id
            image = ImageRecord(
                id=image_id,
                original_filename=safe_filename,
                pixel_source=f"/api/images/{image_id}",
            )
            self._image_path(image).write_bytes(content)
            index.images.append(image)
            index.next_image_id += 1
            self._save_index(index)

        logger.info("Stored image %s (%s)", image.id, safe_filename)
        return image

    def list_labels(self) -> list[Label]:
        return self._load_index().labels

    def create_label(self, create: LabelCreate) -> Label:
        """Create a label.

        Raises:
            DuplicateLabelError: If the name is already taken.
        """
        name = create.name
        with self._lock:
            index = self._load_index()
            if any(label.name.lower() == name.lower() for label in index.labels):
                raise DuplicateLabelError(f"Label already exists: {name}")
            label = Label(id=index.next_label_id, name=name)
            index.labels.append(label)
            index.next_label_id += 1
            self._save_index(index)
        return label

    def get_annotations(self, image_id: int) -> list[Annotation]:
        """Get all annotations for an image, in creation order.

        Raises:
            ImageNotFoundError: If the image does not exist.
        """
        index = self._load_index()
        if all(image.id != image_id for image in index.images):
            raise ImageNotFoundError(f"Image not found: {image_id}")
        return [ann for ann in index.annotations if ann.image_id == image_id]

    def add_annotation(self, image_id: int, create: AnnotationCreate) -> Annotation:
        """Add a new annotation to an image.

        Args:
            image_id: The image to annotate.
            create: Label and bounding box.

        Returns:
            The created annotation with its assigned id.

        Raises:
            ImageNotFoundError: If the image doesn't exist.
            LabelNotFoundError: If the label doesn't exist.
        """
        with self._lock:
            index = self._load_index()
            if all(image.id != image_id for image in index.images):
                raise ImageNotFoundError(f"Image not found: {image_id}")
            if all(label.id != create.label_id for label in index.labels):
                raise LabelNotFoundError(f"Label not found: {create.label_id}")

            annotation = Annotation(
                id=index.next_annotation_id,
                image_id=image_id,
                label_id=create.label_id,
                bounding_box=create.bounding_box,
            )
            index.annotations.append(annotation)
            index.next_annotation_id += 1
            self._save_index(index)
        return annotation

    def delete_annotation(self, annotation_id: int) -> None:
        """Delete an annotation.

        Raises:
            AnnotationNotFoundError: If the annotation doesn't exist.
        """
        with self._lock:
            index = self._load_index()
            original_count = len(index.annotations)
            index.annotations = [
                ann for ann in index.annotations if ann.id != annotation_id
            ]
            if len(index.annotations) == original_count:
                raise AnnotationNotFoundError(f"Annotation not found: {annotation_id}")
            self._save_index(index)
