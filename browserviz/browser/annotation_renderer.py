"""Pillow-based compositor for annotation overlays and zoom crops.

Vector primitives (rectangle stroke, rectangle fill, line, polygon, text run)
are rasterized onto a transparent overlay the size of the source image, and the
overlay is alpha-composited onto a copy of the source. Inputs are never
mutated. The same primitives can be serialized to an SVG document.
"""

import io
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Sequence, Union

from PIL import Image, ImageColor, ImageDraw, ImageFont

from .annotation_config import hex_to_rgba
from .errors import ImageDecodeError
from .models import BoundingBox, Point

logger = logging.getLogger(__name__)

ImageSource = Union[str, Path, bytes, bytearray, Image.Image]
Color = Union[str, tuple[int, ...]]


@dataclass(frozen=True)
class RectStroke:
    """Outline of a (optionally rounded) rectangle."""

    box: BoundingBox
    color: Color
    width: float
    radius: float = 0


@dataclass(frozen=True)
class RectFill:
    """Filled (optionally rounded) rectangle."""

    box: BoundingBox
    color: Color
    radius: float = 0


@dataclass(frozen=True)
class Line:
    """Straight stroke with round caps."""

    start: Point
    end: Point
    color: Color
    width: float


@dataclass(frozen=True)
class Polygon:
    """Filled polygon."""

    points: tuple[Point, ...]
    color: Color


@dataclass(frozen=True)
class TextRun:
    """Single line of text whose top-left corner sits at ``position``."""

    position: Point
    text: str
    color: Color
    font_size: int
    font_family: str = "sans-serif"
    font_weight: str = "bold"


Primitive = Union[RectStroke, RectFill, Line, Polygon, TextRun]


def load_image(source: ImageSource) -> Image.Image:
    """Decode ``source`` into a new RGBA image.

    Args:
        source: File path, encoded image bytes, or a PIL Image (copied).

    Returns:
        RGBA image owned by the caller.

    Raises:
        ImageDecodeError: If the source cannot be read or has no dimensions.
    """
    if isinstance(source, Image.Image):
        image = source.convert("RGBA")
    else:
        stream = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        try:
            with Image.open(stream) as opened:
                opened.load()
                image = opened.convert("RGBA")
        except OSError as e:
            raise ImageDecodeError(f"Could not read image: {e}") from e

    if not image.width or not image.height:
        raise ImageDecodeError("Could not read image dimensions")
    return image


def encode_png(image: Image.Image) -> bytes:
    """Encode an image as PNG bytes."""
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def color_with_opacity(color: str, opacity: float) -> tuple[int, int, int, int]:
    """RGBA tuple for ``color`` at ``opacity`` (0..1).

    Raises:
        ValueError: If Pillow does not recognize the color.
    """
    rgba = hex_to_rgba(color, opacity)
    if isinstance(rgba, tuple):
        return rgba
    r, g, b = ImageColor.getrgb(color)[:3]
    return (r, g, b, round(max(0.0, min(1.0, opacity)) * 255))


def _is_bold(weight: str) -> bool:
    weight = str(weight).lower()
    if weight.isdigit():
        return int(weight) >= 600
    return weight in ("bold", "bolder")


@lru_cache(maxsize=32)
def load_font(size: int, family: str = "sans-serif", weight: str = "bold") -> ImageFont.ImageFont:
    """Load a TrueType font for ``family``/``weight``, falling back to Pillow's default."""
    bold = _is_bold(weight)
    if family in ("sans-serif", "sans"):
        candidates = (
            ["DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf"]
            if bold
            else ["DejaVuSans.ttf", "Arial.ttf", "arial.ttf"]
        )
    else:
        candidates = [f"{family}-Bold.ttf", f"{family}.ttf"] if bold else [f"{family}.ttf"]

    for name in candidates:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue

    logger.debug("No TrueType font for family=%s weight=%s; using default", family, weight)
    return ImageFont.load_default(size=size)


def _rect_coords(box: BoundingBox) -> list[float]:
    return [box.x, box.y, box.x + max(0, box.width), box.y + max(0, box.height)]


def draw_primitive(draw: ImageDraw.ImageDraw, primitive: Primitive) -> None:
    """Rasterize one primitive onto ``draw``."""
    if isinstance(primitive, RectStroke):
        draw.rounded_rectangle(
            _rect_coords(primitive.box),
            radius=primitive.radius,
            outline=primitive.color,
            width=max(1, round(primitive.width)),
        )
    elif isinstance(primitive, RectFill):
        draw.rounded_rectangle(
            _rect_coords(primitive.box),
            radius=primitive.radius,
            fill=primitive.color,
        )
    elif isinstance(primitive, Line):
        width = max(1, round(primitive.width))
        draw.line(
            [primitive.start.as_tuple(), primitive.end.as_tuple()],
            fill=primitive.color,
            width=width,
        )
        # Round caps
        r = width / 2
        for p in (primitive.start, primitive.end):
            draw.ellipse([p.x - r, p.y - r, p.x + r, p.y + r], fill=primitive.color)
    elif isinstance(primitive, Polygon):
        draw.polygon([p.as_tuple() for p in primitive.points], fill=primitive.color)
    elif isinstance(primitive, TextRun):
        font = load_font(primitive.font_size, primitive.font_family, primitive.font_weight)
        draw.text(primitive.position.as_tuple(), primitive.text, fill=primitive.color, font=font)
    else:
        raise TypeError(f"Unsupported overlay primitive: {type(primitive).__name__}")


def render_overlay(size: tuple[int, int], primitives: Sequence[Primitive]) -> Image.Image:
    """Rasterize ``primitives`` onto a transparent RGBA overlay of ``size``."""
    overlay = Image.new("RGBA", size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(overlay, "RGBA")
    for primitive in primitives:
        draw_primitive(draw, primitive)
    return overlay


def composite_overlay(source: ImageSource, primitives: Sequence[Primitive]) -> Image.Image:
    """Alpha-composite rasterized ``primitives`` over ``source``.

    Returns:
        New RGBA image with the same dimensions as the source.

    Raises:
        ImageDecodeError: If the source cannot be decoded.
    """
    image = load_image(source)
    overlay = render_overlay(image.size, primitives)
    return Image.alpha_composite(image, overlay)


def crop_and_resize(
    source: ImageSource,
    region: BoundingBox,
    output_size: tuple[int, int],
) -> Image.Image:
    """Crop ``region`` (rounded to whole pixels) and resize with Lanczos.

    Raises:
        ImageDecodeError: If the source cannot be decoded.
        ValueError: If the rounded region or the output size is empty.
    """
    image = load_image(source)
    left, top = round(region.x), round(region.y)
    width, height = round(region.width), round(region.height)
    if width <= 0 or height <= 0:
        raise ValueError(f"Crop region is empty: {region}")
    if output_size[0] <= 0 or output_size[1] <= 0:
        raise ValueError(f"Output size must be positive, got {output_size}")

    cropped = image.crop((left, top, left + width, top + height))
    return cropped.resize(output_size, Image.Resampling.LANCZOS)


def escape_markup(text: str) -> str:
    """Escape the five reserved XML characters."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def _svg_color(color: Color) -> str:
    if isinstance(color, str):
        return escape_markup(color)
    r, g, b = color[:3]
    alpha = color[3] / 255 if len(color) > 3 else 1
    return f"rgba({r},{g},{b},{alpha:.3g})"


def _svg_element(primitive: Primitive) -> str:
    if isinstance(primitive, (RectStroke, RectFill)):
        box = primitive.box
        paint = (
            f'fill="none" stroke="{_svg_color(primitive.color)}" stroke-width="{primitive.width}"'
            if isinstance(primitive, RectStroke)
            else f'fill="{_svg_color(primitive.color)}"'
        )
        return (
            f'<rect x="{box.x}" y="{box.y}" width="{box.width}" height="{box.height}" '
            f'rx="{primitive.radius}" ry="{primitive.radius}" {paint}/>'
        )
    if isinstance(primitive, Line):
        return (
            f'<line x1="{primitive.start.x}" y1="{primitive.start.y}" '
            f'x2="{primitive.end.x}" y2="{primitive.end.y}" '
            f'stroke="{_svg_color(primitive.color)}" stroke-width="{primitive.width}" '
            f'stroke-linecap="round"/>'
        )
    if isinstance(primitive, Polygon):
        points = " ".join(f"{p.x},{p.y}" for p in primitive.points)
        return f'<polygon points="{points}" fill="{_svg_color(primitive.color)}"/>'
    if isinstance(primitive, TextRun):
        # SVG text is positioned by its baseline
        baseline = primitive.position.y + primitive.font_size * 0.8
        return (
            f'<text x="{primitive.position.x}" y="{baseline}" '
            f'fill="{_svg_color(primitive.color)}" '
            f'font-family="{escape_markup(primitive.font_family)}" '
            f'font-size="{primitive.font_size}" '
            f'font-weight="{escape_markup(str(primitive.font_weight))}">'
            f"{escape_markup(primitive.text)}</text>"
        )
    raise TypeError(f"Unsupported overlay primitive: {type(primitive).__name__}")


def overlay_to_svg(size: tuple[int, int], primitives: Sequence[Primitive]) -> str:
    """Serialize ``primitives`` as a standalone SVG document of ``size``."""
    width, height = size
    body = "\n  ".join(_svg_element(p) for p in primitives)
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{width}" height="{height}">\n'
        f"  {body}\n"
        f"</svg>\n"
    )
