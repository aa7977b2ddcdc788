"""Annotation operations: highlight, arrow, text label, zoom, and combinations.

Each operation accepts an image as a file path, encoded bytes, or a PIL Image,
plus an element bounding box and (partial) options, and returns new PNG bytes.
Options are merged over the defaults in ``annotation_config`` before any
geometry or compositing happens. Annotations never change the canvas size;
only the zoom operations do.

Usage:
    png = add_highlight("shot.png", {"x": 100, "y": 100, "width": 200, "height": 50})
    png = add_annotations(png, box, {"arrow": {"direction": "left"},
                                     "label": {"text": "Click here"}})
    save_image(png, "annotated.png")
"""

import logging
import time
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .annotation_config import (
    ArrowOptions,
    HighlightOptions,
    LabelOptions,
    MultiAnnotationOptions,
    ZoomOptions,
    resolve_color,
    resolve_options,
)
from .annotation_renderer import (
    ImageSource,
    Line,
    Polygon,
    Primitive,
    RectFill,
    RectStroke,
    TextRun,
    color_with_opacity,
    composite_overlay,
    crop_and_resize,
    encode_png,
    load_image,
)
from .geometry import (
    arrow_endpoints,
    arrowhead_triangle,
    estimate_label_size,
    label_placement,
    pad_and_clamp,
)
from .models import BoundingBox, Point

logger = logging.getLogger(__name__)

BoxLike = Union[BoundingBox, Mapping[str, Any]]
OptionsLike = Union[None, Mapping[str, Any], Any]

HIGHLIGHT_CORNER_RADIUS = 4


def highlight_primitives(
    box: BoundingBox, options: HighlightOptions, image_width: int, image_height: int
) -> list[Primitive]:
    """Stroke-only rounded frame around the padded, clamped box."""
    frame = pad_and_clamp(box, options.padding, image_width, image_height)
    unclipped_width = box.width + options.padding * 2
    unclipped_height = box.height + options.padding * 2
    if (frame.width, frame.height) != (unclipped_width, unclipped_height):
        logger.warning("Highlight clipped to fit image: box=%s frame=%s", box, frame)
    return [
        RectStroke(
            box=frame,
            color=resolve_color(options.border_color),
            width=options.border_width,
            radius=HIGHLIGHT_CORNER_RADIUS,
        )
    ]


def arrow_primitives(box: BoundingBox, options: ArrowOptions) -> list[Primitive]:
    """Shaft plus filled arrowhead pointing at the box."""
    color = resolve_color(options.color)
    explicit = Point(*options.from_point) if options.from_point else None
    start, end = arrow_endpoints(box, options.direction, options.length, explicit)
    head = arrowhead_triangle(start, end, options.head_size)
    return [
        Line(start=start, end=end, color=color, width=options.stroke_width),
        Polygon(points=head, color=color),
    ]


def label_primitives(
    box: BoundingBox,
    text: str,
    options: LabelOptions,
    image_width: int,
    image_height: int,
) -> list[Primitive]:
    """Rounded background sized to the estimated text extent, with the text inside."""
    label_width, label_height = estimate_label_size(text, options.font_size, options.padding)
    corner = label_placement(
        box,
        options.position,
        label_width,
        label_height,
        options.offset,
        image_width,
        image_height,
    )
    background = color_with_opacity(
        resolve_color(options.background_color), options.background_opacity
    )
    return [
        RectFill(
            box=BoundingBox(corner.x, corner.y, label_width, label_height),
            color=background,
            radius=options.border_radius,
        ),
        TextRun(
            position=Point(corner.x + options.padding, corner.y + options.padding),
            text=text,
            color=resolve_color(options.text_color),
            font_size=options.font_size,
            font_family=options.font_family,
            font_weight=options.font_weight,
        ),
    ]


def _apply(image: ImageSource, primitives_for, operation: str) -> bytes:
    """Decode ``image``, composite the primitives built for its size, encode PNG."""
    start_time = time.perf_counter()
    base = load_image(image)
    primitives = primitives_for(base.width, base.height)
    result = encode_png(composite_overlay(base, primitives))
    logger.debug(
        "%s: size=%dx%d primitives=%d render=%dms",
        operation,
        base.width,
        base.height,
        len(primitives),
        int((time.perf_counter() - start_time) * 1000),
    )
    return result


def add_highlight(image: ImageSource, box: BoxLike, options: OptionsLike = None) -> bytes:
    """Outline the element with a rounded frame.

    Args:
        image: File path, encoded bytes, or PIL Image.
        box: Element bounds.
        options: HighlightOptions or a partial mapping
            (defaults: border #FF0000, width 3, padding 5).

    Returns:
        PNG bytes, same dimensions as the input.

    Raises:
        ImageDecodeError: If the image cannot be decoded.
    """
    box = BoundingBox.coerce(box)
    opts = resolve_options(HighlightOptions, options)
    return _apply(image, lambda w, h: highlight_primitives(box, opts, w, h), "highlight")


def zoom_output_size(region: BoundingBox, options: ZoomOptions) -> tuple[int, int]:
    """Output size for a zoom: explicit dimensions win, otherwise region × scale."""
    return (
        options.output_width or round(region.width * options.scale),
        options.output_height or round(region.height * options.scale),
    )


def zoom_to_area(image: ImageSource, box: BoxLike, options: OptionsLike = None) -> bytes:
    """Crop the padded, clamped region around the element and resize it.

    Args:
        image: File path, encoded bytes, or PIL Image.
        box: Element bounds.
        options: ZoomOptions or a partial mapping (defaults: scale 2, padding 50).

    Returns:
        PNG bytes of the zoomed region.

    Raises:
        ImageDecodeError: If the image cannot be decoded.
        ValueError: If the region falls outside the image.
    """
    box = BoundingBox.coerce(box)
    opts = resolve_options(ZoomOptions, options)
    base = load_image(image)
    region = pad_and_clamp(box, opts.padding, base.width, base.height)
    output_size = zoom_output_size(region, opts)
    logger.debug("zoom: region=%s output=%dx%d", region, *output_size)
    return encode_png(crop_and_resize(base, region, output_size))


def highlight_and_zoom(
    image: ImageSource,
    box: BoxLike,
    annotation_options: OptionsLike = None,
    zoom_options: OptionsLike = None,
) -> bytes:
    """Highlight the element, then zoom into it.

    The zoom step pads the original element box with its own padding; it does
    not frame the highlight rectangle.
    """
    highlighted = add_highlight(image, box, annotation_options)
    return zoom_to_area(highlighted, box, zoom_options)


def add_arrow(image: ImageSource, box: BoxLike, options: OptionsLike = None) -> bytes:
    """Draw an arrow pointing at the element.

    Args:
        image: File path, encoded bytes, or PIL Image.
        box: Element bounds.
        options: ArrowOptions or a partial mapping (defaults: #FF0000, stroke 3,
            head 12, length 60, direction "top").

    Returns:
        PNG bytes, same dimensions as the input.
    """
    box = BoundingBox.coerce(box)
    opts = resolve_options(ArrowOptions, options)
    return _apply(image, lambda w, h: arrow_primitives(box, opts), "arrow")


def add_text_label(
    image: ImageSource, box: BoxLike, text: str, options: OptionsLike = None
) -> bytes:
    """Place a text label next to the element.

    Args:
        image: File path, encoded bytes, or PIL Image.
        box: Element bounds.
        text: Label text.
        options: LabelOptions or a partial mapping (defaults: white bold 14px
            text on black at 0.8 opacity, position "top", padding 8, radius 4,
            offset 10).

    Returns:
        PNG bytes, same dimensions as the input.
    """
    box = BoundingBox.coerce(box)
    opts = resolve_options(LabelOptions, options)
    return _apply(image, lambda w, h: label_primitives(box, text, opts, w, h), "label")


def _multi_options(options: Union[MultiAnnotationOptions, Mapping[str, Any]]) -> MultiAnnotationOptions:
    if isinstance(options, MultiAnnotationOptions):
        return options
    return MultiAnnotationOptions.from_dict(options)


def add_annotations(
    image: ImageSource,
    box: BoxLike,
    options: Union[MultiAnnotationOptions, Mapping[str, Any]],
) -> bytes:
    """Apply highlight, arrow and label (whichever are present) in that order.

    Each step draws on the output of the previous one, so a label may cover an
    earlier arrow.

    Returns:
        PNG bytes. With no annotations requested, the source re-encoded as PNG.
    """
    box = BoundingBox.coerce(box)
    multi = _multi_options(options)

    result = encode_png(load_image(image))
    if multi.highlight is not None:
        result = add_highlight(result, box, multi.highlight)
    if multi.arrow is not None:
        result = add_arrow(result, box, multi.arrow)
    if multi.label is not None:
        result = add_text_label(result, box, multi.label.text, multi.label.options)
    return result


def annotation_overlay(
    image_size: tuple[int, int],
    box: BoxLike,
    options: Union[MultiAnnotationOptions, Mapping[str, Any]],
) -> list[Primitive]:
    """Vector primitives that ``add_annotations`` would draw for an image of ``image_size``."""
    box = BoundingBox.coerce(box)
    multi = _multi_options(options)
    width, height = image_size

    primitives: list[Primitive] = []
    if multi.highlight is not None:
        primitives += highlight_primitives(box, multi.highlight, width, height)
    if multi.arrow is not None:
        primitives += arrow_primitives(box, multi.arrow)
    if multi.label is not None:
        primitives += label_primitives(box, multi.label.text, multi.label.options, width, height)
    return primitives


def save_image(image: ImageSource, output_path: Union[str, Path]) -> Path:
    """Write an image to disk; the format follows the file suffix.

    Returns:
        The path written.
    """
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    decoded = load_image(image)
    if path.suffix.lower() in (".jpg", ".jpeg"):
        decoded = decoded.convert("RGB")
    decoded.save(path, format=None if path.suffix else "PNG")
    return path
