"""Tests for option records, merge step and color palette."""

import unittest
from unittest.mock import patch

from browserviz.browser.annotation_config import (
    AgentBrowserConfig,
    ArrowOptions,
    COLOR_PRESETS,
    GifRecordingOptions,
    HighlightOptions,
    LabelOptions,
    LabelSpec,
    MultiAnnotationOptions,
    ZoomOptions,
    hex_to_rgba,
    resolve_color,
    resolve_options,
)
from browserviz.browser.models import Point


class TestResolveColor(unittest.TestCase):
    """Tests for palette lookup."""

    def test_known_names(self):
        self.assertEqual(resolve_color("red"), "#FF0000")
        self.assertEqual(resolve_color("blue"), "#0066FF")
        self.assertEqual(resolve_color("green"), "#00CC00")
        self.assertEqual(resolve_color("yellow"), "#FFCC00")

    def test_literal_passes_through(self):
        self.assertEqual(resolve_color("#123456"), "#123456")
        self.assertEqual(resolve_color("rgb(1, 2, 3)"), "rgb(1, 2, 3)")

    def test_palette_is_all_hex(self):
        for name, value in COLOR_PRESETS.items():
            self.assertRegex(value, r"^#[0-9A-F]{6}$", name)


class TestHexToRgba(unittest.TestCase):

    def test_converts_with_opacity(self):
        self.assertEqual(hex_to_rgba("#000000", 0.8), (0, 0, 0, 204))
        self.assertEqual(hex_to_rgba("FF6600"), (255, 102, 0, 255))

    def test_opacity_clamped(self):
        self.assertEqual(hex_to_rgba("#FFFFFF", 2.0)[3], 255)
        self.assertEqual(hex_to_rgba("#FFFFFF", -1)[3], 0)

    def test_non_hex_returned_unchanged(self):
        self.assertEqual(hex_to_rgba("navy", 0.5), "navy")


class TestResolveOptions(unittest.TestCase):
    """Tests for merging partial options over defaults."""

    def test_none_gives_defaults(self):
        opts = resolve_options(HighlightOptions)
        self.assertEqual(opts, HighlightOptions("#FF0000", 3, 5))

    def test_partial_mapping_keeps_other_defaults(self):
        opts = resolve_options(HighlightOptions, {"padding": 10})
        self.assertEqual(opts.padding, 10)
        self.assertEqual(opts.border_color, "#FF0000")
        self.assertEqual(opts.border_width, 3)

    def test_camel_case_keys(self):
        opts = resolve_options(LabelOptions, {"backgroundOpacity": 0.5, "fontSize": 20})
        self.assertEqual(opts.background_opacity, 0.5)
        self.assertEqual(opts.font_size, 20)

    def test_none_values_ignored(self):
        opts = resolve_options(ZoomOptions, {"scale": None, "padding": 0})
        self.assertEqual(opts.scale, 2.0)
        self.assertEqual(opts.padding, 0)

    def test_instance_is_copied(self):
        original = ZoomOptions(scale=3)
        resolved = resolve_options(ZoomOptions, original)
        self.assertEqual(resolved, original)
        self.assertIsNot(resolved, original)

    def test_unknown_key_raises(self):
        with self.assertRaises(ValueError):
            resolve_options(ZoomOptions, {"zoomLevel": 3})

    def test_unknown_direction_raises(self):
        with self.assertRaises(ValueError):
            resolve_options(ArrowOptions, {"direction": "up"})

    def test_unknown_position_raises(self):
        with self.assertRaises(ValueError):
            resolve_options(LabelOptions, {"position": "middle"})

    def test_center_position_allowed_for_labels(self):
        self.assertEqual(resolve_options(LabelOptions, {"position": "center"}).position, "center")

    def test_from_alias_normalizes_point(self):
        self.assertEqual(resolve_options(ArrowOptions, {"from": {"x": 5, "y": 6}}).from_point, (5, 6))
        self.assertEqual(resolve_options(ArrowOptions, {"from_point": Point(1, 2)}).from_point, (1, 2))
        self.assertEqual(resolve_options(ArrowOptions, {"from_point": [3, 4]}).from_point, (3, 4))

    def test_frame_rate_must_be_positive(self):
        with self.assertRaises(ValueError):
            resolve_options(GifRecordingOptions, {"frameRate": 0})


class TestMultiAnnotationOptions(unittest.TestCase):

    def test_empty_mapping_enables_nothing(self):
        multi = MultiAnnotationOptions.from_dict({})
        self.assertIsNone(multi.highlight)
        self.assertIsNone(multi.arrow)
        self.assertIsNone(multi.label)

    def test_empty_entry_enables_defaults(self):
        multi = MultiAnnotationOptions.from_dict({"highlight": {}, "arrow": {"direction": "left"}})
        self.assertEqual(multi.highlight, HighlightOptions())
        self.assertEqual(multi.arrow.direction, "left")

    def test_label_with_options(self):
        multi = MultiAnnotationOptions.from_dict(
            {"label": {"text": "Go", "options": {"position": "bottom"}}}
        )
        self.assertEqual(multi.label.text, "Go")
        self.assertEqual(multi.label.options.position, "bottom")

    def test_label_spec_passes_through(self):
        spec = LabelSpec("Hi")
        self.assertIs(MultiAnnotationOptions.from_dict({"label": spec}).label, spec)


class TestGifRecordingOptions(unittest.TestCase):

    def test_defaults(self):
        opts = GifRecordingOptions()
        self.assertEqual((opts.frame_rate, opts.quality, opts.repeat), (10, 10, 0))
        self.assertEqual(opts.frame_interval_ms, 100)

    def test_interval_follows_rate(self):
        self.assertEqual(GifRecordingOptions(frame_rate=5).frame_interval_ms, 200)


class TestAgentBrowserConfig(unittest.TestCase):

    @patch.dict("os.environ", {}, clear=True)
    def test_defaults(self):
        config = AgentBrowserConfig.from_env()
        self.assertEqual(config.stream_url, "ws://localhost:9223")
        self.assertEqual(config.session, "default")
        self.assertEqual(config.binary, "agent-browser")
        self.assertEqual(config.ffmpeg, "ffmpeg")

    @patch.dict(
        "os.environ",
        {
            "BROWSER_VIZ_STREAM_URL": "ws://example:9000",
            "BROWSER_VIZ_SESSION": "demo",
            "AGENT_BROWSER_BIN": "/opt/ab",
            "FFMPEG_BIN": "/opt/ffmpeg",
        },
        clear=True,
    )
    def test_reads_environment(self):
        config = AgentBrowserConfig.from_env()
        self.assertEqual(config.stream_url, "ws://example:9000")
        self.assertEqual(config.session, "demo")
        self.assertEqual(config.binary, "/opt/ab")
        self.assertEqual(config.ffmpeg, "/opt/ffmpeg")
