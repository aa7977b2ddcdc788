from .errors import (
    BrowserVizError,
    ImageDecodeError,
    ExternalCommandError,
    StreamConnectionError,
    NoFramesError,
)
from .models import (
    Point,
    BoundingBox,
    RefElement,
    ScreencastMetadata,
    ScreencastFrame,
    RecordingState,
)
from .annotation_config import (
    COLOR_PRESETS,
    ARROW_DIRECTIONS,
    LABEL_POSITIONS,
    HighlightOptions,
    ZoomOptions,
    ArrowOptions,
    LabelOptions,
    LabelSpec,
    MultiAnnotationOptions,
    GifRecordingOptions,
    AgentBrowserConfig,
    resolve_color,
    resolve_options,
)
from .geometry import (
    pad_and_clamp,
    arrow_endpoints,
    arrowhead_triangle,
    estimate_label_size,
    label_placement,
    roi_expand,
)
from .annotation_renderer import (
    load_image,
    encode_png,
    composite_overlay,
    crop_and_resize,
    escape_markup,
    overlay_to_svg,
)
from .annotator import (
    add_highlight,
    zoom_to_area,
    highlight_and_zoom,
    add_arrow,
    add_text_label,
    add_annotations,
    annotation_overlay,
    save_image,
)
from .focus_detector import (
    parse_snapshot,
    suggest_focus_element,
    calculate_optimal_zoom_region,
)
from .agent_browser import (
    run_command,
    get_ref_bounding_box,
    get_snapshot,
    get_screenshot,
    send_command,
    get_all_ref_boxes,
)
from .gif_recorder import GifRecorder, record_with_screenshots, generate_gif

__all__ = [
    "BrowserVizError",
    "ImageDecodeError",
    "ExternalCommandError",
    "StreamConnectionError",
    "NoFramesError",
    "Point",
    "BoundingBox",
    "RefElement",
    "ScreencastMetadata",
    "ScreencastFrame",
    "RecordingState",
    "COLOR_PRESETS",
    "ARROW_DIRECTIONS",
    "LABEL_POSITIONS",
    "HighlightOptions",
    "ZoomOptions",
    "ArrowOptions",
    "LabelOptions",
    "LabelSpec",
    "MultiAnnotationOptions",
    "GifRecordingOptions",
    "AgentBrowserConfig",
    "resolve_color",
    "resolve_options",
    "pad_and_clamp",
    "arrow_endpoints",
    "arrowhead_triangle",
    "estimate_label_size",
    "label_placement",
    "roi_expand",
    "load_image",
    "encode_png",
    "composite_overlay",
    "crop_and_resize",
    "escape_markup",
    "overlay_to_svg",
    "add_highlight",
    "zoom_to_area",
    "highlight_and_zoom",
    "add_arrow",
    "add_text_label",
    "add_annotations",
    "annotation_overlay",
    "save_image",
    "parse_snapshot",
    "suggest_focus_element",
    "calculate_optimal_zoom_region",
    "run_command",
    "get_ref_bounding_box",
    "get_snapshot",
    "get_screenshot",
    "send_command",
    "get_all_ref_boxes",
    "GifRecorder",
    "record_with_screenshots",
    "generate_gif",
]
