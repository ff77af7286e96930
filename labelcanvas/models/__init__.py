"""Data models for the annotation canvas."""

from labelcanvas.models.annotations import (
    DELETE_AFFORDANCE_SIZE,
    MIN_BOX_SIZE,
    Annotation,
    AnnotationCreate,
    BoundingBox,
    ImageRecord,
    ImageStatus,
    Label,
    LabelCreate,
    Point,
    Size,
    StoreIndex,
)

__all__ = [
    "DELETE_AFFORDANCE_SIZE",
    "MIN_BOX_SIZE",
    "Annotation",
    "AnnotationCreate",
    "BoundingBox",
    "ImageRecord",
    "ImageStatus",
    "Label",
    "LabelCreate",
    "Point",
    "Size",
    "StoreIndex",
]
