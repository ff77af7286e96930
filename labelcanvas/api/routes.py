"""FastAPI routes for the reference annotation store."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from labelcanvas.config import get_data_dir, get_upload_rate_limit
from labelcanvas.models.annotations import (
    Annotation,
    AnnotationCreate,
    ImageRecord,
    Label,
    LabelCreate,
)
from labelcanvas.services.store_service import (
    AnnotationNotFoundError,
    DuplicateLabelError,
    ImageNotFoundError,
    LabelNotFoundError,
    StoreService,
)

router = APIRouter()

# Rate limiter for upload protection (configurable via env)
_upload_rate_limit = get_upload_rate_limit()
limiter = Limiter(key_func=get_remote_address)


def get_store_service() -> StoreService:
    """Dependency for the store service."""
    return StoreService(get_data_dir())


StoreDep = Annotated[StoreService, Depends(get_store_service)]


@router.get("/health")
def health_check() -> dict[str, str]:
    """Health check endpoint for API availability."""
    return {"status": "healthy", "api": "ready"}


# Image endpoints
@router.get("/images", response_model=list[ImageRecord])
def list_images(service: StoreDep) -> list[ImageRecord]:
    """List all images with their labeling status."""
    return service.list_images()


@router.post("/images", response_model=ImageRecord)
@limiter.limit(_upload_rate_limit)
async def upload_image(
    request: Request,
    file: Annotated[UploadFile, File(...)],
    service: StoreDep,
) -> ImageRecord:
    """Upload a new image."""
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    content = await file.read()
    try:
        return service.add_image(file.filename, content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.get("/images/{image_id}")
def get_image(image_id: int, service: StoreDep) -> FileResponse:
    """Get the bitmap of an image."""
    path = service.get_image_path(image_id)
    if path is None:
        raise HTTPException(status_code=404, detail="Image not found")
    return FileResponse(path)


# Annotation endpoints
@router.get("/images/{image_id}/annotations", response_model=list[Annotation])
def get_annotations(image_id: int, service: StoreDep) -> list[Annotation]:
    """Get all annotations for an image."""
    try:
        return service.get_annotations(image_id)
    except ImageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.post("/images/{image_id}/annotations", response_model=Annotation)
def add_annotation(
    image_id: int,
    annotation: AnnotationCreate,
    service: StoreDep,
) -> Annotation:
    """Add a new annotation to an image."""
    try:
        return service.add_annotation(image_id, annotation)
    except ImageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except LabelNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


@router.delete("/annotations/{annotation_id}")
def delete_annotation(annotation_id: int, service: StoreDep) -> dict[str, bool]:
    """Delete an annotation."""
    try:
        service.delete_annotation(annotation_id)
    except AnnotationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"success": True}


# Label endpoints
@router.get("/labels", response_model=list[Label])
def list_labels(service: StoreDep) -> list[Label]:
    """List all labels."""
    return service.list_labels()


@router.post("/labels", response_model=Label)
def create_label(create: LabelCreate, service: StoreDep) -> Label:
    """Create a new label."""
    try:
        return service.create_label(create)
    except DuplicateLabelError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
