"""Pydantic models for images, labels and annotations."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

MIN_BOX_SIZE = 10.0
DELETE_AFFORDANCE_SIZE = 24.0


class Point(BaseModel):
    """A point in image pixel space."""

    x: float
    y: float


class Size(BaseModel):
    """Pixel dimensions of a drawing surface."""

    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class BoundingBox(BaseModel):
    """Axis-aligned rectangle in image pixel space (top-left origin)."""

    x: float = Field(..., description="Left edge in image pixels")
    y: float = Field(..., description="Top edge in image pixels")
    width: float = Field(..., ge=0, description="Box width in image pixels")
    height: float = Field(..., ge=0, description="Box height in image pixels")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


class ImageStatus(str, Enum):
    """Cached labeling status of an image."""

    UNLABELED = "unlabeled"
    LABELED = "labeled"


class ImageRecord(BaseModel):
    """An image as supplied by the image provider."""

    id: int
    original_filename: str
    pixel_source: str = Field(
        ..., description="URL, store-relative path, or base64 data URL"
    )
    status: ImageStatus = ImageStatus.UNLABELED


class Label(BaseModel):
    """A category label."""

    id: int
    name: str


class LabelCreate(BaseModel):
    """Request model for creating a label."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)


class Annotation(BaseModel):
    """A bounding box committed to the store with a label."""

    id: int = Field(..., description="Store-assigned identifier")
    image_id: int
    label_id: int
    bounding_box: BoundingBox


class AnnotationCreate(BaseModel):
    """Request model for creating an annotation on an image."""

    label_id: int
    bounding_box: BoundingBox


class StoreIndex(BaseModel):
    """On-disk index of the reference store."""

    images: list[ImageRecord] = Field(default_factory=list)
    labels: list[Label] = Field(default_factory=list)
    annotations: list[Annotation] = Field(default_factory=list)
    next_image_id: int = 1
    next_label_id: int = 1
    next_annotation_id: int = 1
