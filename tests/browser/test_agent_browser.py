"""Tests for the agent-browser subprocess wrapper."""

import base64
import json
import subprocess
import unittest
from unittest.mock import patch

from browserviz.browser.agent_browser import (
    get_all_ref_boxes,
    get_ref_bounding_box,
    get_screenshot,
    get_snapshot,
    run_command,
    send_command,
)
from browserviz.browser.annotation_config import AgentBrowserConfig
from browserviz.browser.errors import ExternalCommandError, ImageDecodeError
from browserviz.browser.models import BoundingBox


CONFIG = AgentBrowserConfig(session="default", binary="agent-browser")


def _completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestRunCommand(unittest.TestCase):
    """Tests for run_command."""

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_builds_argv_with_session(self, mock_run):
        mock_run.return_value = _completed("ok")
        result = run_command(["get", "box", "@e5"], "demo", ["--json"], CONFIG)

        self.assertEqual(result, "ok")
        argv = mock_run.call_args[0][0]
        self.assertEqual(argv, ["agent-browser", "get", "box", "@e5", "-s", "demo", "--json"])

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_default_session_from_config(self, mock_run):
        mock_run.return_value = _completed("")
        run_command(["snapshot"], config=AgentBrowserConfig(session="work"))
        self.assertEqual(mock_run.call_args[0][0][-2:], ["-s", "work"])

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_nonzero_exit_surfaces_stderr(self, mock_run):
        mock_run.return_value = _completed(returncode=1, stderr="Element @e9 not found\n")
        with self.assertRaises(ExternalCommandError) as ctx:
            run_command(["get", "box", "@e9"], config=CONFIG)

        self.assertEqual(str(ctx.exception), "Element @e9 not found")
        self.assertEqual(ctx.exception.returncode, 1)
        self.assertEqual(ctx.exception.command[0], "agent-browser")

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_nonzero_exit_without_stderr(self, mock_run):
        mock_run.return_value = _completed(returncode=3)
        with self.assertRaisesRegex(ExternalCommandError, "Command failed with code 3"):
            run_command(["snapshot"], config=CONFIG)

    @patch("browserviz.browser.agent_browser.subprocess.run", side_effect=FileNotFoundError)
    def test_missing_binary(self, _mock_run):
        with self.assertRaisesRegex(ExternalCommandError, "not found"):
            run_command(["snapshot"], config=CONFIG)


class TestGetRefBoundingBox(unittest.TestCase):

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_wrapped_response(self, mock_run):
        payload = {"success": True, "data": {"box": {"x": 1, "y": 2, "width": 3, "height": 4}}}
        mock_run.return_value = _completed(json.dumps(payload))
        self.assertEqual(get_ref_bounding_box("@e1", config=CONFIG), BoundingBox(1, 2, 3, 4))

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_bare_response(self, mock_run):
        mock_run.return_value = _completed('{"x": 10, "y": 20, "width": 30, "height": 40}')
        self.assertEqual(get_ref_bounding_box("@e1", config=CONFIG), BoundingBox(10, 20, 30, 40))

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_invalid_json(self, mock_run):
        mock_run.return_value = _completed("not json")
        with self.assertRaisesRegex(ExternalCommandError, "Failed to parse JSON"):
            get_ref_bounding_box("@e1", config=CONFIG)

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_incomplete_box(self, mock_run):
        for stdout in ('{"x": 1, "y": 2}', '{"data": {"box": {"x": 1}}}'):
            mock_run.return_value = _completed(stdout)
            with self.assertRaisesRegex(ExternalCommandError, "Could not parse bounding box"):
                get_ref_bounding_box("@e1", config=CONFIG)

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_missing_box(self, mock_run):
        mock_run.return_value = _completed('{"success": false}')
        with self.assertRaisesRegex(ExternalCommandError, "Could not parse bounding box"):
            get_ref_bounding_box("@e1", config=CONFIG)


class TestSnapshotAndScreenshot(unittest.TestCase):

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_snapshot_interactive_flag(self, mock_run):
        mock_run.return_value = _completed('- button "Go" [ref=e1]')
        self.assertIn("[ref=e1]", get_snapshot(config=CONFIG))
        self.assertEqual(mock_run.call_args[0][0][-1], "-i")

        get_snapshot(interactive=False, config=CONFIG)
        self.assertNotIn("-i", mock_run.call_args[0][0])

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_screenshot_base64(self, mock_run):
        mock_run.return_value = _completed(base64.b64encode(b"\x89PNGdata").decode() + "\n")
        self.assertEqual(get_screenshot(image_format="png", config=CONFIG), b"\x89PNGdata")
        argv = mock_run.call_args[0][0]
        self.assertEqual(argv[1], "screenshot")
        self.assertEqual(argv[-3:], ["--format", "png", "--base64"])

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_screenshot_invalid_base64(self, mock_run):
        mock_run.return_value = _completed("%%% not base64 %%%")
        with self.assertRaises(ImageDecodeError):
            get_screenshot(config=CONFIG)

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_screenshot_to_path(self, mock_run):
        import tempfile
        from pathlib import Path

        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "shot.png"
            path.write_bytes(b"written-by-cli")
            mock_run.return_value = _completed("")

            self.assertEqual(get_screenshot(output_path=path, config=CONFIG), b"written-by-cli")
            self.assertEqual(mock_run.call_args[0][0][-2:], ["-o", str(path)])

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_send_command(self, mock_run):
        mock_run.return_value = _completed("started")
        self.assertEqual(send_command("screencast_start", config=CONFIG), "started")
        self.assertEqual(mock_run.call_args[0][0], ["agent-browser", "screencast_start", "-s", "default"])


class TestGetAllRefBoxes(unittest.TestCase):

    @patch("browserviz.browser.agent_browser.subprocess.run")
    def test_skips_failed_lookups(self, mock_run):
        snapshot = '- button "A" [ref=e1]\n- link "B" [ref=e2]\n- textbox "C" [ref=e3]'
        mock_run.side_effect = [
            _completed(snapshot),
            _completed('{"x": 1, "y": 1, "width": 1, "height": 1}'),
            _completed(returncode=1, stderr="detached"),
            _completed('{"x": 3, "y": 3, "width": 3, "height": 3}'),
        ]

        with self.assertLogs("browserviz.browser.agent_browser", level="WARNING"):
            boxes = get_all_ref_boxes(config=CONFIG)

        self.assertEqual(list(boxes), ["@e1", "@e3"])
        self.assertEqual(boxes["@e3"], BoundingBox(3, 3, 3, 3))
