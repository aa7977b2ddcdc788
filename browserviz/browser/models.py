"""Data model shared by the annotation, focus and recording layers.

Examples:
    Creating a BoundingBox:
        >>> box = BoundingBox(x=100, y=100, width=200, height=50)
        >>> box.center
        Point(x=200.0, y=125.0)

    Reading an element box returned by agent-browser:
        >>> BoundingBox.from_dict({"x": 10, "y": 20, "width": 30, "height": 40})
        BoundingBox(x=10, y=20, width=30, height=40)

    A parsed snapshot element:
        >>> RefElement(ref="@e7", role="button", name="Add")
        RefElement(ref='@e7', role='button', name='Add', box=None)
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .annotation_config import GifRecordingOptions


@dataclass(frozen=True)
class Point:
    """Pixel coordinates, possibly fractional."""

    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class BoundingBox:
    """Rectangle in source-image pixel space.

    Boxes are not required to lie inside the image; every consumer clamps.

    Attributes:
        x: X-coordinate of the top-left corner.
        y: Y-coordinate of the top-left corner.
        width: Width in pixels (must be >= 0).
        height: Height in pixels (must be >= 0).
    """

    x: int | float
    y: int | float
    width: int | float
    height: int | float

    def validate(self) -> None:
        """Validate that width and height are non-negative.

        Raises:
            ValueError: If width or height is < 0
        """
        if self.width < 0:
            raise ValueError(f"BoundingBox width must be >= 0, got {self.width}")
        if self.height < 0:
            raise ValueError(f"BoundingBox height must be >= 0, got {self.height}")

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict[str, int | float]:
        """Convert to JSON-serializable dict."""
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BoundingBox:
        """Reconstruct BoundingBox from dict.

        Raises:
            KeyError: If required keys are missing
        """
        return cls(
            x=data["x"], y=data["y"], width=data["width"], height=data["height"]
        )

    @classmethod
    def coerce(cls, value: Union[BoundingBox, dict[str, Any], tuple, list]) -> BoundingBox:
        """Accept a BoundingBox, a box dict, or an (x, y, width, height) sequence."""
        if isinstance(value, BoundingBox):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        if isinstance(value, (tuple, list)) and len(value) == 4:
            return cls(*value)
        raise TypeError(f"Cannot interpret {value!r} as a bounding box")

    @classmethod
    def parse(cls, text: str) -> BoundingBox:
        """Parse an ``x,y,width,height`` string.

        Raises:
            ValueError: If the string does not hold four numbers
        """
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Box must be x,y,width,height, got '{text}'")
        box = cls(*(float(p) for p in parts))
        box.validate()
        return box


@dataclass
class RefElement:
    """Interactive element parsed from an agent-browser snapshot.

    Attributes:
        ref: Stable reference id, e.g. ``@e5``.
        role: Accessibility role, or ``unknown`` when the line had no role/name.
        name: Accessible name, if the snapshot line carried one.
        box: Bounding box, once looked up.
    """

    ref: str
    role: str
    name: Optional[str] = None
    box: Optional[BoundingBox] = None

    def describe(self) -> str:
        """One-line description used by the CLI listings."""
        if self.name:
            return f'{self.ref} - {self.role}: "{self.name}"'
        return f"{self.ref} - {self.role}"


@dataclass(frozen=True)
class ScreencastMetadata:
    """Viewport metadata attached to a pushed screencast frame."""

    offset_top: float = 0
    page_scale_factor: float = 1
    device_width: int = 0
    device_height: int = 0
    scroll_offset_x: float = 0
    scroll_offset_y: float = 0
    timestamp: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScreencastMetadata:
        return cls(
            offset_top=data.get("offsetTop", 0),
            page_scale_factor=data.get("pageScaleFactor", 1),
            device_width=data.get("deviceWidth", 0),
            device_height=data.get("deviceHeight", 0),
            scroll_offset_x=data.get("scrollOffsetX", 0),
            scroll_offset_y=data.get("scrollOffsetY", 0),
            timestamp=data.get("timestamp"),
        )


@dataclass(frozen=True)
class ScreencastFrame:
    """One pushed frame: base64 image data plus viewport metadata."""

    data: str
    metadata: ScreencastMetadata = field(default_factory=ScreencastMetadata)
    session_id: Optional[int] = None

    @classmethod
    def from_message(cls, message: dict[str, Any]) -> Optional[ScreencastFrame]:
        """Build a frame from a decoded stream message.

        Returns:
            ScreencastFrame, or None if the message is not a frame message.
        """
        if message.get("type") != "frame" or not message.get("data"):
            return None
        metadata = message.get("metadata")
        return cls(
            data=message["data"],
            metadata=ScreencastMetadata.from_dict(metadata)
            if isinstance(metadata, dict)
            else ScreencastMetadata(),
            session_id=message.get("sessionId"),
        )


@dataclass
class RecordingState:
    """Mutable state of one recorder instance.

    Attributes:
        is_recording: Whether frames are currently accepted.
        start_time: Wall-clock time recording started.
        frames: Captured PNG frames in capture order.
        options: Recording options in effect.
    """

    is_recording: bool = False
    start_time: Optional[float] = None
    frames: list[bytes] = field(default_factory=list)
    options: GifRecordingOptions = field(default_factory=GifRecordingOptions)

    def reset(self, options: GifRecordingOptions) -> None:
        """Begin a new recording with the given options."""
        self.options = options
        self.frames = []
        self.start_time = time.time()
        self.is_recording = True

    def copy(self) -> RecordingState:
        return RecordingState(
            is_recording=self.is_recording,
            start_time=self.start_time,
            frames=list(self.frames),
            options=self.options,
        )
