"""Snapshot parsing and focus heuristics for agent-browser pages.

Snapshot text is free-form: lines without a ``[ref=...]`` marker are ignored,
and lines that do not match the ``role "name"`` pattern still produce an
element (role ``unknown``, no name). Parsing never fails.
"""

import logging
import re
from typing import Optional

from .geometry import roi_expand
from .models import BoundingBox, RefElement

logger = logging.getLogger(__name__)

REF_MARKER = re.compile(r"\[ref=([^\]]+)\]")
ROLE_AND_NAME = re.compile(r'^[\s-]*(\w+)\s+"([^"]*)"')
ACTION_REF = re.compile(r"@e\d+")

UNKNOWN_ROLE = "unknown"

# Checked in order; the first role with any match wins
PRIORITY_ROLES = ("button", "textbox", "link", "checkbox", "combobox")

DEFAULT_CONTEXT_PADDING = 100


def parse_snapshot(snapshot: str) -> list[RefElement]:
    """Extract interactive elements from snapshot text, in line order.

    Examples:
        >>> parse_snapshot('- button "Add" [ref=e7]')
        [RefElement(ref='@e7', role='button', name='Add', box=None)]
        >>> parse_snapshot('- heading "Title"')
        []
    """
    elements = []
    for line in snapshot.splitlines():
        ref_match = REF_MARKER.search(line)
        if not ref_match:
            continue
        role_match = ROLE_AND_NAME.match(line)
        elements.append(
            RefElement(
                ref=f"@{ref_match.group(1)}",
                role=role_match.group(1) if role_match else UNKNOWN_ROLE,
                name=role_match.group(2) if role_match else None,
            )
        )
    return elements


def suggest_focus_element(
    snapshot: str, last_action: Optional[str] = None
) -> Optional[RefElement]:
    """Pick the element most worth visualizing.

    1. No elements: None.
    2. No last action: the first element.
    3. Last action names a ref (``@e12``): that element, or the first element
       if the ref is not in the snapshot.
    4. Otherwise the first element with the highest-priority role present,
       falling back to the first element.
    """
    elements = parse_snapshot(snapshot)
    if not elements:
        return None

    if not last_action:
        return elements[0]

    ref_match = ACTION_REF.search(last_action)
    if ref_match:
        target = ref_match.group(0)
        found = next((e for e in elements if e.ref == target), None)
        if found is None:
            logger.info("Ref %s not in snapshot; focusing first element", target)
            return elements[0]
        return found

    for role in PRIORITY_ROLES:
        found = next((e for e in elements if e.role == role), None)
        if found is not None:
            return found

    return elements[0]


def calculate_optimal_zoom_region(
    box: BoundingBox,
    image_width: int,
    image_height: int,
    context_padding: float = DEFAULT_CONTEXT_PADDING,
) -> BoundingBox:
    """Zoom region around an element with surrounding context.

    Pads by ``context_padding``, enforces a 200px minimum where the image
    allows, and never leaves the image.
    """
    return roi_expand(BoundingBox.coerce(box), image_width, image_height, context_padding)
