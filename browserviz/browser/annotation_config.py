"""Centralized option records for annotation, zoom and recording.

Public callers pass partial options (a mapping with only the keys they care
about, or a fully built dataclass). ``resolve_options`` merges them over the
documented defaults so that geometry and compositing code always works from a
fully populated record.
"""

import os
import re
from dataclasses import dataclass, field, fields, replace
from typing import Any, Mapping, Optional, Type, TypeVar, Union

T = TypeVar("T")

ARROW_DIRECTIONS = (
    "top",
    "bottom",
    "left",
    "right",
    "top-left",
    "top-right",
    "bottom-left",
    "bottom-right",
)

LABEL_POSITIONS = ARROW_DIRECTIONS + ("center",)

# Closed palette of named colors
COLOR_PRESETS: Mapping[str, str] = {
    "red": "#FF0000",
    "blue": "#0066FF",
    "green": "#00CC00",
    "yellow": "#FFCC00",
    "orange": "#FF6600",
    "purple": "#9933FF",
    "cyan": "#00CCCC",
    "magenta": "#FF00FF",
    "white": "#FFFFFF",
    "black": "#000000",
}

_HEX_COLOR = re.compile(r"^#?([0-9a-f]{2})([0-9a-f]{2})([0-9a-f]{2})$", re.IGNORECASE)


def resolve_color(color: str) -> str:
    """Resolve a palette name to its hex value.

    Unknown tokens are returned unchanged and treated as already-literal colors.

    Examples:
        >>> resolve_color("red")
        '#FF0000'
        >>> resolve_color("#123456")
        '#123456'
    """
    return COLOR_PRESETS.get(color, color)


def hex_to_rgba(color: str, opacity: float = 1.0) -> Union[tuple[int, int, int, int], str]:
    """Convert a six-digit hex color plus opacity (0..1) to an RGBA tuple.

    Non-hex colors are returned unchanged for the renderer to interpret.
    """
    match = _HEX_COLOR.match(color)
    if not match:
        return color
    r, g, b = (int(part, 16) for part in match.groups())
    return (r, g, b, round(max(0.0, min(1.0, opacity)) * 255))


@dataclass
class HighlightOptions:
    """Highlight frame drawn around an element.

    Attributes:
        border_color: Palette name or literal color.
        border_width: Stroke width in pixels.
        padding: Space between the element box and the frame.
    """

    border_color: str = "#FF0000"
    border_width: int = 3
    padding: int | float = 5


@dataclass
class ZoomOptions:
    """Crop-and-resize parameters.

    ``output_width``/``output_height`` of 0 mean "derive from scale"; any
    non-zero value overrides the scale-derived size exactly.
    """

    scale: float = 2.0
    padding: int | float = 50
    output_width: int = 0
    output_height: int = 0


@dataclass
class ArrowOptions:
    """Arrow pointing at an element.

    Attributes:
        color: Palette name or literal color.
        stroke_width: Line width in pixels.
        head_size: Arrowhead side length in pixels.
        length: Distance from the tail to the element edge.
        direction: Side of the element the arrow comes from.
        from_point: Explicit tail position; (0, 0) or None means "compute".
    """

    color: str = "#FF0000"
    stroke_width: int = 3
    head_size: int | float = 12
    length: int | float = 60
    direction: str = "top"
    from_point: Optional[tuple[float, float]] = None


@dataclass
class LabelOptions:
    """Text label placed next to an element."""

    text_color: str = "#FFFFFF"
    background_color: str = "#000000"
    background_opacity: float = 0.8
    font_size: int = 14
    font_family: str = "sans-serif"
    font_weight: str = "bold"
    position: str = "top"
    padding: int | float = 8
    border_radius: int | float = 4
    offset: int | float = 10


@dataclass
class LabelSpec:
    """Label text plus its style options."""

    text: str
    options: LabelOptions = field(default_factory=LabelOptions)


@dataclass
class MultiAnnotationOptions:
    """Any combination of highlight, arrow and label, applied in that order."""

    highlight: Optional[HighlightOptions] = None
    arrow: Optional[ArrowOptions] = None
    label: Optional[LabelSpec] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MultiAnnotationOptions":
        """Build from a partial mapping such as ``{"highlight": {}, "label": {"text": "Go"}}``.

        A present-but-empty entry enables that annotation with default styling.
        """
        highlight = data.get("highlight")
        arrow = data.get("arrow")
        label = data.get("label")
        label_spec = None
        if label is not None:
            if isinstance(label, LabelSpec):
                label_spec = label
            else:
                label_spec = LabelSpec(
                    text=str(label["text"]),
                    options=resolve_options(LabelOptions, label.get("options")),
                )
        return cls(
            highlight=None if highlight is None else resolve_options(HighlightOptions, highlight),
            arrow=None if arrow is None else resolve_options(ArrowOptions, arrow),
            label=label_spec,
        )


@dataclass
class GifRecordingOptions:
    """Recording and GIF encoding options.

    Attributes:
        frame_rate: Target frames per second.
        quality: 1-30, lower is better (drives the palette size).
        repeat: Loop count passed to the encoder (0 = infinite, -1 = no loop).
        width: Output width, 0 to use the first frame's width.
        height: Output height, 0 to use the first frame's height.
    """

    frame_rate: int = 10
    quality: int = 10
    repeat: int = 0
    width: int = 0
    height: int = 0

    @property
    def frame_interval_ms(self) -> float:
        return 1000 / self.frame_rate


@dataclass
class AgentBrowserConfig:
    """Where to find agent-browser, its screencast stream, and ffmpeg."""

    stream_url: str = "ws://localhost:9223"
    session: str = "default"
    binary: str = "agent-browser"
    ffmpeg: str = "ffmpeg"

    @classmethod
    def from_env(cls) -> "AgentBrowserConfig":
        """Load configuration from environment variables with defaults."""
        return cls(
            stream_url=os.getenv("BROWSER_VIZ_STREAM_URL", "ws://localhost:9223"),
            session=os.getenv("BROWSER_VIZ_SESSION", "default"),
            binary=os.getenv("AGENT_BROWSER_BIN", "agent-browser"),
            ffmpeg=os.getenv("FFMPEG_BIN", "ffmpeg"),
        )


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)([A-Z])", r"_\1", key).lower()


# camelCase keys whose snake_case spelling differs from the field name
_FIELD_ALIASES = {"from": "from_point"}


def resolve_options(cls: Type[T], overrides: Union[None, T, Mapping[str, Any]] = None) -> T:
    """Merge partial options over the defaults of ``cls``.

    Args:
        cls: Options dataclass (HighlightOptions, ZoomOptions, ...).
        overrides: None, an instance of ``cls``, or a mapping of field values.
            Mapping keys may be snake_case or camelCase; None values are ignored.

    Returns:
        Fully populated ``cls`` instance.

    Raises:
        ValueError: On unknown keys, or an unsupported direction/position.
    """
    if overrides is None:
        resolved = cls()
    elif isinstance(overrides, cls):
        resolved = replace(overrides)
    else:
        names = {f.name for f in fields(cls)}
        values = {}
        for key, value in overrides.items():
            name = _FIELD_ALIASES.get(key, _snake_case(key))
            if name not in names:
                raise ValueError(f"Unknown {cls.__name__} option: {key}")
            if value is not None:
                values[name] = value
        resolved = cls(**values)

    _check_choices(resolved)
    return resolved


def _check_choices(options: Any) -> None:
    if isinstance(options, ArrowOptions):
        if options.direction not in ARROW_DIRECTIONS:
            raise ValueError(
                f"Unknown arrow direction '{options.direction}'. "
                f"Expected one of: {', '.join(ARROW_DIRECTIONS)}"
            )
        point = options.from_point
        if point is not None and not isinstance(point, tuple):
            if isinstance(point, Mapping):
                options.from_point = (point["x"], point["y"])
            elif hasattr(point, "x"):
                options.from_point = (point.x, point.y)
            else:
                options.from_point = tuple(point)
    elif isinstance(options, LabelOptions):
        if options.position not in LABEL_POSITIONS:
            raise ValueError(
                f"Unknown label position '{options.position}'. "
                f"Expected one of: {', '.join(LABEL_POSITIONS)}"
            )
    elif isinstance(options, GifRecordingOptions):
        if options.frame_rate <= 0:
            raise ValueError(f"frame_rate must be > 0, got {options.frame_rate}")
