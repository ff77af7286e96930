"""Frame rendering for the annotation canvas.

``render_frame`` is a pure function of its arguments: it draws on a copy of
the bitmap and never touches the annotations, labels or boxes it is given.
"""

import base64
import binascii
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from io import BytesIO

import httpx
from PIL import Image, ImageColor, ImageDraw, ImageFont

from labelcanvas.errors import ImageLoadFailure
from labelcanvas.geometry import delete_affordance_rect
from labelcanvas.models.annotations import (
    Annotation,
    BoundingBox,
    ImageRecord,
    Label,
    Size,
)

logger = logging.getLogger(__name__)

Color = tuple[int, int, int]


@dataclass(frozen=True)
class RenderStyle:
    """Colors and stroke widths used to draw a frame."""

    stroke_width: int = 4
    hover_stroke_width: int = 6
    hover_color: str = "#ffd400"
    pending_color: str = "#00f6d2"
    pending_width: int = 3
    dash: tuple[int, int] = (5, 5)
    tag_text_color: str = "#ffffff"
    tag_padding: int = 3
    delete_fill: str = "#e74c3c"
    delete_mark: str = "#ffffff"
    error_background: str = "#1a1d21"
    error_text: str = "#e0e0e0"
    placeholder_size: tuple[int, int] = (640, 480)


def label_color(label_id: int) -> Color:
    """Stable per-label stroke color."""
    hue = (label_id * 47) % 360
    return ImageColor.getrgb(f"hsl({hue}, 70%, 60%)")


class ImageDecoder:
    """Resolves an image's pixel source to a decoded Pillow image."""

    def __init__(self, client: httpx.Client | None = None) -> None:
        """Initialize the decoder.

        Args:
            client: HTTP client used for URL sources. Relative sources are
                resolved against its base URL.
        """
        self.client = client

    def decode(self, image: ImageRecord) -> Image.Image:
        """Fetch and decode an image.

        Raises:
            ImageLoadFailure: If the source cannot be fetched or decoded.
        """
        content = self._read_source(image)
        try:
            bitmap = Image.open(BytesIO(content))
            bitmap.load()
        except (OSError, ValueError, Image.DecompressionBombError) as err:
            raise ImageLoadFailure(image.id, f"Invalid image data: {err}") from err
        return bitmap.convert("RGB")

    def _read_source(self, image: ImageRecord) -> bytes:
        source = image.pixel_source
        if source.startswith("data:"):
            _, _, payload = source.partition(",")
            try:
                return base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError) as err:
                raise ImageLoadFailure(
                    image.id, f"Invalid inline image payload: {err}"
                ) from err

        if self.client is None:
            raise ImageLoadFailure(image.id, "No HTTP client configured")
        logger.debug("Fetching image %s from %s", image.id, source)
        try:
            response = self.client.get(source)
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as err:
            raise ImageLoadFailure(image.id, str(err)) from err
        return response.content


def render_frame(
    bitmap: Image.Image,
    annotations: Sequence[Annotation],
    pending_box: BoundingBox | None,
    hovered_annotation_id: int | None,
    labels_by_id: Mapping[int, Label],
    style: RenderStyle = RenderStyle(),
) -> Image.Image:
    """Draw one frame.

    The surface has the bitmap's natural size. Annotations are drawn in list
    order so later ones end up on top; the pending box is drawn last, dashed.

    Args:
        bitmap: The decoded image.
        annotations: Committed annotations for the image.
        pending_box: Box being drawn or awaiting a label, if any.
        hovered_annotation_id: Annotation under the pointer, if any.
        labels_by_id: Known labels for tag text.
        style: Colors and stroke widths.

    Returns:
        A new RGB image.
    """
    frame = bitmap.convert("RGB")
    draw = ImageDraw.Draw(frame)
    font = ImageFont.load_default()

    for annotation in annotations:
        box = annotation.bounding_box
        hovered = annotation.id == hovered_annotation_id
        if hovered:
            color: Color = ImageColor.getrgb(style.hover_color)
            width = style.hover_stroke_width
        else:
            color = label_color(annotation.label_id)
            width = style.stroke_width
        draw.rectangle(_corners(box), outline=color, width=width)

        label = labels_by_id.get(annotation.label_id)
        if label is not None:
            _draw_tag(draw, font, box, label.name, color, style)
        if hovered:
            _draw_delete_glyph(draw, delete_affordance_rect(box), style)

    if pending_box is not None:
        _draw_dashed_rectangle(
            draw,
            pending_box,
            ImageColor.getrgb(style.pending_color),
            style.pending_width,
            style.dash,
        )

    return frame


def render_error_frame(
    size: Size | None = None,
    message: str = "Could not load image.",
    style: RenderStyle = RenderStyle(),
) -> Image.Image:
    """Placeholder frame shown when the image failed to load."""
    if size is None:
        width, height = style.placeholder_size
        size = Size(width=width, height=height)
    frame = Image.new("RGB", (size.width, size.height), style.error_background)
    draw = ImageDraw.Draw(frame)
    font = ImageFont.load_default()
    left, top, right, bottom = draw.textbbox((0, 0), message, font=font)
    x = (size.width - (right - left)) / 2
    y = (size.height - (bottom - top)) / 2
    draw.text((x, y), message, fill=style.error_text, font=font)
    return frame


def _corners(box: BoundingBox) -> tuple[float, float, float, float]:
    return (box.x, box.y, box.right, box.bottom)


def _draw_tag(
    draw: ImageDraw.ImageDraw,
    font: ImageFont.ImageFont | ImageFont.FreeTypeFont,
    box: BoundingBox,
    text: str,
    fill: Color,
    style: RenderStyle,
) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    tag_width = right - left + 2 * style.tag_padding
    tag_height = bottom - top + 2 * style.tag_padding
    # Sit above the box; drop inside it when the box touches the top edge.
    tag_y = box.y - tag_height
    if tag_y < 0:
        tag_y = box.y
    draw.rectangle(
        (box.x, tag_y, box.x + tag_width, tag_y + tag_height), fill=fill
    )
    draw.text(
        (box.x + style.tag_padding - left, tag_y + style.tag_padding - top),
        text,
        fill=style.tag_text_color,
        font=font,
    )


def _draw_delete_glyph(
    draw: ImageDraw.ImageDraw, rect: BoundingBox, style: RenderStyle
) -> None:
    draw.rectangle(_corners(rect), fill=style.delete_fill)
    inset = rect.width / 4
    draw.line(
        (rect.x + inset, rect.y + inset, rect.right - inset, rect.bottom - inset),
        fill=style.delete_mark,
        width=2,
    )
    draw.line(
        (rect.x + inset, rect.bottom - inset, rect.right - inset, rect.y + inset),
        fill=style.delete_mark,
        width=2,
    )


def _draw_dashed_rectangle(
    draw: ImageDraw.ImageDraw,
    box: BoundingBox,
    color: Color,
    width: int,
    dash: tuple[int, int],
) -> None:
    x0, y0, x1, y1 = _corners(box)
    edges = (
        ((x0, y0), (x1, y0)),
        ((x1, y0), (x1, y1)),
        ((x1, y1), (x0, y1)),
        ((x0, y1), (x0, y0)),
    )
    for start, end in edges:
        _draw_dashed_line(draw, start, end, color, width, dash)


def _draw_dashed_line(
    draw: ImageDraw.ImageDraw,
    start: tuple[float, float],
    end: tuple[float, float],
    color: Color,
    width: int,
    dash: tuple[int, int],
) -> None:
    on, off = dash
    dx = end[0] - start[0]
    dy = end[1] - start[1]
    length = (dx * dx + dy * dy) ** 0.5
    if length == 0:
        return
    ux, uy = dx / length, dy / length
    offset = 0.0
    while offset < length:
        segment_end = min(offset + on, length)
        draw.line(
            (
                start[0] + ux * offset,
                start[1] + uy * offset,
                start[0] + ux * segment_end,
                start[1] + uy * segment_end,
            ),
            fill=color,
            width=width,
        )
        offset += on + off
