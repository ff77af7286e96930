"""Canvas controller: pointer input, rendering and store reconciliation.

Pointer handling and rendering run synchronously on the caller's thread.
Image decoding and store calls run on a worker pool; their results are
applied to the workspace when they arrive and announced through the
``on_frame`` and error listeners, which may therefore fire from a worker
thread.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor

from PIL import Image

from labelcanvas.config import get_min_box_size
from labelcanvas.errors import (
    CanvasError,
    ImageLoadFailure,
    InvalidTransition,
    LabelNotFound,
    NoLabelsAvailable,
    SyncFailure,
)
from labelcanvas.geometry import CanvasBounds, PointerEvent, to_image_space
from labelcanvas.models.annotations import (
    Annotation,
    BoundingBox,
    ImageRecord,
    Point,
    Size,
)
from labelcanvas.services.interaction import InteractionMachine
from labelcanvas.services.renderer import (
    ImageDecoder,
    RenderStyle,
    render_error_frame,
    render_frame,
)
from labelcanvas.services.sync_gateway import AnnotationSyncGateway
from labelcanvas.services.workspace import AnnotationWorkspace

logger = logging.getLogger(__name__)

FrameListener = Callable[[Image.Image], None]
ErrorListener = Callable[[CanvasError], None]


class CanvasController:
    """Drives one annotation canvas for the currently selected image."""

    def __init__(
        self,
        workspace: AnnotationWorkspace,
        gateway: AnnotationSyncGateway,
        decoder: ImageDecoder,
        executor: Executor | None = None,
        style: RenderStyle | None = None,
        min_box_size: float | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            workspace: Owner of the annotation lists and labels.
            gateway: Client for the remote annotation store.
            decoder: Resolves image pixel sources to bitmaps.
            executor: Pool for decodes and store calls. A private thread
                pool is created when omitted and shut down by ``close``.
            style: Render style.
            min_box_size: Smallest drawable box, defaults to configuration.
        """
        self.workspace = workspace
        self.gateway = gateway
        self.decoder = decoder
        self.style = style or RenderStyle()
        self.machine = InteractionMachine(
            min_box_size if min_box_size is not None else get_min_box_size()
        )
        self.on_frame: FrameListener | None = None

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="labelcanvas"
        )
        self._lock = threading.RLock()
        self._image: ImageRecord | None = None
        self._bitmap: Image.Image | None = None
        self._load_error: ImageLoadFailure | None = None
        self._decode_future: Future | None = None
        self._error_listeners: list[ErrorListener] = []
        self._unsubscribe = workspace.subscribe(self._on_workspace_change)

    @property
    def image(self) -> ImageRecord | None:
        return self._image

    @property
    def hovered_annotation_id(self) -> int | None:
        return self.machine.hovered_annotation_id

    @property
    def pending_box(self) -> BoundingBox | None:
        return self.machine.pending_box

    @property
    def awaiting_label(self) -> bool:
        """Whether a drawn box waits for the label-selection step."""
        return self.machine.awaiting_label

    @property
    def canvas_size(self) -> Size | None:
        """Backing pixel size of the surface, known once the image decoded."""
        with self._lock:
            if self._bitmap is None:
                return None
            return Size(width=self._bitmap.width, height=self._bitmap.height)

    def annotations(self) -> tuple[Annotation, ...]:
        if self._image is None:
            return ()
        return self.workspace.annotations_for(self._image.id)

    def add_error_listener(self, listener: ErrorListener) -> None:
        """Receive SyncFailure notifications."""
        self._error_listeners.append(listener)

    def select_image(self, image: ImageRecord) -> Future:
        """Make ``image`` the active image.

        Interaction state is reset before anything else happens, so no hover
        or pending box from the previous image can reach a frame of the new
        one. Decoding runs in the background; a decode that finishes after
        another image was selected is dropped.

        Returns:
            Future resolving to the decoded bitmap, or None if decoding failed
            or the result was stale.
        """
        with self._lock:
            self.machine.reset()
            if (
                self._image is not None
                and self._image.id == image.id
                and self._decode_future is not None
                and (self._bitmap is not None or not self._decode_future.done())
            ):
                self._image = image
                return self._decode_future

            self._image = image
            self._bitmap = None
            self._load_error = None
            logger.debug("Selected image %s", image.id)
            self._decode_future = self._executor.submit(self._decode, image)
            return self._decode_future

    def pointer_down(
        self, event: PointerEvent, bounds: CanvasBounds
    ) -> Future | None:
        """Handle a press.

        Returns:
            Future of the delete call when the press hit a delete glyph.
        """
        with self._lock:
            point = self._to_image_space(event, bounds)
            if point is None:
                return None
            request = self.machine.pointer_down(point, self.annotations())
        future = None
        if request is not None:
            future = self._executor.submit(self._delete, request.annotation_id)
        self._emit_frame()
        return future

    def pointer_move(self, event: PointerEvent, bounds: CanvasBounds) -> None:
        with self._lock:
            point = self._to_image_space(event, bounds)
            if point is None:
                return
            self.machine.pointer_move(point, self.annotations())
        self._emit_frame()

    def pointer_up(self, event: PointerEvent, bounds: CanvasBounds) -> None:
        with self._lock:
            if self._bitmap is None:
                return
            point = self._to_image_space(event, bounds)
            self.machine.pointer_up(point)
        self._emit_frame()

    def pointer_leave(self) -> None:
        with self._lock:
            self.machine.pointer_leave()
        self._emit_frame()

    def confirm(self, label_id: int) -> Future:
        """Commit the awaiting box with an existing label.

        The controller returns to idle immediately; the store call runs in the
        background and a failure is reported through the error listeners.

        Raises:
            InvalidTransition: If no box is awaiting a label.
            NoLabelsAvailable: If the label list is empty. The box stays
                pending.
            LabelNotFound: If ``label_id`` is not a known label. The box stays
                pending.

        Returns:
            Future resolving to the created Annotation, or None on failure.
        """
        with self._lock:
            image = self._require_awaiting()
            labels = self.workspace.labels()
            if not labels:
                raise NoLabelsAvailable()
            if all(label.id != label_id for label in labels):
                raise LabelNotFound(label_id)
            box = self.machine.take_pending()
        future = self._executor.submit(self._create, image.id, label_id, box)
        self._emit_frame()
        return future

    def confirm_new_label(self, name: str) -> Future:
        """Create a label, then commit the awaiting box with it.

        Raises:
            InvalidTransition: If no box is awaiting a label.
            ValueError: If ``name`` is blank. The box stays pending.

        Returns:
            Future resolving to the created Annotation, or None on failure.
        """
        with self._lock:
            image = self._require_awaiting()
            if not name.strip():
                raise ValueError("Label name is required")
            box = self.machine.take_pending()
        future = self._executor.submit(
            self._create_with_new_label, image.id, name.strip(), box
        )
        self._emit_frame()
        return future

    def cancel(self) -> None:
        """Discard the awaiting box."""
        with self._lock:
            self.machine.cancel()
        self._emit_frame()

    def render(self) -> Image.Image | None:
        """Render the current frame.

        Returns:
            None while no image is selected or its decode is in flight, an
            error placeholder if it failed to load, otherwise the frame.
        """
        with self._lock:
            if self._image is None:
                return None
            if self._load_error is not None:
                return render_error_frame(style=self.style)
            if self._bitmap is None:
                return None
            bitmap = self._bitmap
            annotations = self.annotations()
            pending_box = self.machine.pending_box
            hovered = self.machine.hovered_annotation_id
        return render_frame(
            bitmap,
            annotations,
            pending_box,
            hovered,
            self.workspace.labels_by_id(),
            self.style,
        )

    def close(self) -> None:
        """Detach from the workspace and stop the private worker pool."""
        self._unsubscribe()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _to_image_space(
        self, event: PointerEvent, bounds: CanvasBounds
    ) -> Point | None:
        if self._bitmap is None:
            return None
        size = Size(width=self._bitmap.width, height=self._bitmap.height)
        return to_image_space(event, bounds, size)

    def _require_awaiting(self) -> ImageRecord:
        if self._image is None or not self.machine.awaiting_label:
            raise InvalidTransition("No box is awaiting a label")
        return self._image

    def _decode(self, image: ImageRecord) -> Image.Image | None:
        try:
            bitmap = self.decoder.decode(image)
            error = None
        except ImageLoadFailure as err:
            logger.warning("%s", err)
            bitmap = None
            error = err

        with self._lock:
            if self._image is None or self._image.id != image.id:
                logger.debug("Dropping stale decode of image %s", image.id)
                return None
            self._bitmap = bitmap
            self._load_error = error
        self._emit_frame()
        return bitmap

    def _create(
        self, image_id: int, label_id: int, box: BoundingBox
    ) -> Annotation | None:
        try:
            annotation = self.gateway.create(image_id, label_id, box)
        except SyncFailure as err:
            self._report(err)
            return None
        self.workspace.add_annotation(annotation)
        return annotation

    def _create_with_new_label(
        self, image_id: int, name: str, box: BoundingBox
    ) -> Annotation | None:
        try:
            label = self.workspace.create_label(name)
        except SyncFailure as err:
            self._report(err)
            return None
        return self._create(image_id, label.id, box)

    def _delete(self, annotation_id: int) -> bool:
        try:
            self.gateway.delete(annotation_id)
        except SyncFailure as err:
            self._report(err)
            return False
        if not self.workspace.remove_annotation(annotation_id):
            logger.debug("Annotation %s already removed locally", annotation_id)
        return True

    def _report(self, error: CanvasError) -> None:
        logger.warning("%s", error)
        for listener in list(self._error_listeners):
            listener(error)

    def _on_workspace_change(self, image_id: int) -> None:
        image = self._image
        if image is not None and image.id == image_id:
            self._emit_frame()

    def _emit_frame(self) -> None:
        if self.on_frame is None:
            return
        frame = self.render()
        if frame is not None:
            self.on_frame(frame)
