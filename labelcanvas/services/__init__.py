"""Services for the annotation canvas."""

from labelcanvas.services.canvas_controller import CanvasController
from labelcanvas.services.interaction import InteractionMachine
from labelcanvas.services.renderer import ImageDecoder
from labelcanvas.services.store_service import StoreService
from labelcanvas.services.sync_gateway import AnnotationSyncGateway
from labelcanvas.services.workspace import AnnotationWorkspace

__all__ = [
    "AnnotationSyncGateway",
    "AnnotationWorkspace",
    "CanvasController",
    "ImageDecoder",
    "InteractionMachine",
    "StoreService",
]
