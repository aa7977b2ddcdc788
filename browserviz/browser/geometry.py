"""Geometry for annotation placement: padded boxes, arrows, labels, zoom regions.

Every function here is pure. Boxes are in source-image pixels and may extend
past the image; results are clamped to the image unless noted.

Examples:
    Pad a box and clamp it to the image:
        >>> box = BoundingBox(100, 100, 200, 50)
        >>> pad_and_clamp(box, 5, 800, 600)
        BoundingBox(x=95, y=95, width=210, height=60)

    A box near the bottom-right edge is cut at the image border:
        >>> pad_and_clamp(BoundingBox(750, 550, 100, 100), 5, 800, 600)
        BoundingBox(x=745, y=545, width=55, height=55)

    Arrow coming from above points at the top edge midpoint:
        >>> arrow_endpoints(box, "top", 60)
        (Point(x=200.0, y=40.0), Point(x=200.0, y=100.0))

    Zoom region with context, never smaller than 200px where the image allows:
        >>> roi_expand(BoundingBox(10, 10, 20, 20), 1280, 720, context_padding=50)
        BoundingBox(x=0, y=0, width=200, height=200)
"""

from __future__ import annotations

import math
from typing import Optional

from .models import BoundingBox, Point

# Unit vectors pointing away from the box, keyed by direction/position name
DIRECTION_VECTORS: dict[str, tuple[int, int]] = {
    "top": (0, -1),
    "bottom": (0, 1),
    "left": (-1, 0),
    "right": (1, 0),
    "top-left": (-1, -1),
    "top-right": (1, -1),
    "bottom-left": (-1, 1),
    "bottom-right": (1, 1),
}

ARROWHEAD_ANGLE = math.pi / 6  # 30 degrees either side of the shaft
CHAR_WIDTH_FACTOR = 0.6  # Average glyph width as a fraction of font size
LABEL_MARGIN = 5  # Minimum gap between a label and the image border
MIN_ROI_SIZE = 200


def pad_and_clamp(
    box: BoundingBox, padding: float, image_width: int, image_height: int
) -> BoundingBox:
    """Grow ``box`` by ``padding`` on every side, then clamp to the image.

    The origin is clamped to (0, 0) and the size is cut at the right/bottom
    edges. The result lies inside the image whenever the image has positive
    dimensions and the original box intersects it.

    Args:
        box: Element bounds.
        padding: Pixels added on each side.
        image_width: Image width in pixels.
        image_height: Image height in pixels.

    Returns:
        New BoundingBox.
    """
    x = max(0, box.x - padding)
    y = max(0, box.y - padding)
    width = min(image_width - x, box.width + padding * 2)
    height = min(image_height - y, box.height + padding * 2)
    return BoundingBox(x=x, y=y, width=width, height=height)


def _direction_vector(direction: str) -> tuple[int, int]:
    try:
        return DIRECTION_VECTORS[direction]
    except KeyError:
        raise ValueError(f"Unknown direction '{direction}'") from None


def arrow_target(box: BoundingBox, direction: str) -> Point:
    """Point on the perimeter of ``box`` that faces ``direction``.

    Axis directions give the midpoint of that edge; diagonals give the corner.
    """
    dx, dy = _direction_vector(direction)
    return Point(
        x=box.x + box.width * (dx + 1) / 2 if dx else box.x + box.width / 2,
        y=box.y + box.height * (dy + 1) / 2 if dy else box.y + box.height / 2,
    )


def arrow_endpoints(
    box: BoundingBox,
    direction: str,
    length: float,
    explicit_from: Optional[Point] = None,
) -> tuple[Point, Point]:
    """Compute the (from, to) points of an arrow pointing at ``box``.

    ``to`` sits on the box perimeter facing ``direction``. ``from`` is ``to``
    moved outward by ``length``; diagonal arrows move ``length * cos(45°)``
    along each axis so the shaft keeps the requested length.

    Args:
        box: Target element bounds.
        direction: One of the eight compass directions.
        length: Shaft length in pixels.
        explicit_from: Caller-supplied tail; ignored when None or (0, 0). A
            point on either axis, e.g. (0, 120), is still honored; only the
            origin itself means "compute".

    Returns:
        (from_point, to_point).

    Raises:
        ValueError: If direction is not supported.
    """
    to = arrow_target(box, direction)

    if explicit_from is not None and (explicit_from.x, explicit_from.y) != (0, 0):
        return explicit_from, to

    dx, dy = _direction_vector(direction)
    step = length * math.cos(math.pi / 4) if dx and dy else length
    start = Point(x=to.x + dx * step, y=to.y + dy * step)
    return start, to


def arrowhead_triangle(
    start: Point, end: Point, head_size: float
) -> tuple[Point, Point, Point]:
    """Triangle for a filled arrowhead at ``end``.

    Returns:
        (tip, left, right) where left/right are ``head_size`` back from the tip,
        rotated ±30° from the reverse shaft direction.
    """
    angle = math.atan2(end.y - start.y, end.x - start.x)
    left = Point(
        x=end.x - head_size * math.cos(angle - ARROWHEAD_ANGLE),
        y=end.y - head_size * math.sin(angle - ARROWHEAD_ANGLE),
    )
    right = Point(
        x=end.x - head_size * math.cos(angle + ARROWHEAD_ANGLE),
        y=end.y - head_size * math.sin(angle + ARROWHEAD_ANGLE),
    )
    return end, left, right


def estimate_label_size(text: str, font_size: float, padding: float) -> tuple[float, float]:
    """Approximate label box size from character count (not real text metrics)."""
    width = len(text) * font_size * CHAR_WIDTH_FACTOR + padding * 2
    height = font_size + padding * 2
    return width, height


def label_placement(
    box: BoundingBox,
    position: str,
    label_width: float,
    label_height: float,
    offset: float,
    image_width: int,
    image_height: int,
) -> Point:
    """Top-left corner for a label placed around ``box``.

    Sides center the label along that side, corners put it diagonally outside
    the box, and ``center`` centers it on the box. The label is then clamped so
    it stays at least ``LABEL_MARGIN`` pixels inside the image.

    Args:
        box: Target element bounds.
        position: One of the eight directions, or "center".
        label_width: Label width in pixels.
        label_height: Label height in pixels.
        offset: Gap between the box and the label.
        image_width: Image width in pixels.
        image_height: Image height in pixels.

    Returns:
        Label top-left corner.
    """
    center = box.center

    if position == "center":
        x = center.x - label_width / 2
        y = center.y - label_height / 2
    else:
        dx, dy = _direction_vector(position)
        if dx < 0:
            x = box.x - label_width - offset
        elif dx > 0:
            x = box.right + offset
        else:
            x = center.x - label_width / 2
        if dy < 0:
            y = box.y - label_height - offset
        elif dy > 0:
            y = box.bottom + offset
        else:
            y = center.y - label_height / 2

    x = max(LABEL_MARGIN, min(image_width - label_width - LABEL_MARGIN, x))
    y = max(LABEL_MARGIN, min(image_height - label_height - LABEL_MARGIN, y))
    return Point(x=x, y=y)


def roi_expand(
    box: BoundingBox,
    image_width: int,
    image_height: int,
    context_padding: float,
    min_size: float = MIN_ROI_SIZE,
) -> BoundingBox:
    """Expand ``box`` into a readable viewing region.

    Same clamp-and-pad as ``pad_and_clamp``, then grows width/height to at
    least ``min_size`` (never shrinking) and re-clamps against the image. If
    the image is smaller than ``min_size`` on an axis, that dimension saturates
    at the space remaining from the clamped origin.
    """
    region = pad_and_clamp(box, context_padding, image_width, image_height)
    width = max(region.width, min_size)
    height = max(region.height, min_size)
    return BoundingBox(
        x=region.x,
        y=region.y,
        width=min(width, image_width - region.x),
        height=min(height, image_height - region.y),
    )
