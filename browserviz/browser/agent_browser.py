"""Subprocess wrapper around the agent-browser CLI.

Each call runs ``agent-browser <command> ... -s <session>`` and treats exit
code 0 as success. Any other exit surfaces the process's stderr verbatim as an
``ExternalCommandError``. Nothing is retried.
"""

import base64
import binascii
import json
import logging
import subprocess
from pathlib import Path
from typing import Optional, Sequence, Union

from .annotation_config import AgentBrowserConfig
from .errors import ExternalCommandError, ImageDecodeError
from .focus_detector import parse_snapshot
from .models import BoundingBox

logger = logging.getLogger(__name__)


def run_command(
    args: Sequence[str],
    session: Optional[str] = None,
    flags: Sequence[str] = (),
    config: Optional[AgentBrowserConfig] = None,
) -> str:
    """Run one agent-browser command and return its stdout.

    Args:
        args: Command and positional arguments, e.g. ``["get", "box", "@e5"]``.
        session: Session name (defaults to the configured session).
        flags: Extra flags appended after the session option.
        config: CLI location and defaults (environment-derived if None).

    Returns:
        Captured standard output.

    Raises:
        ExternalCommandError: If the binary is missing or exits nonzero.
    """
    cfg = config or AgentBrowserConfig.from_env()
    argv = [cfg.binary, *args, "-s", session or cfg.session, *flags]
    logger.debug("Running: %s", " ".join(argv))

    try:
        completed = subprocess.run(argv, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise ExternalCommandError(
            f"{cfg.binary} not found. Make sure agent-browser is installed.",
            command=argv,
        ) from e

    if completed.returncode != 0:
        stderr = completed.stderr or ""
        raise ExternalCommandError(
            stderr.strip() or f"Command failed with code {completed.returncode}",
            command=argv,
            returncode=completed.returncode,
            stderr=stderr,
        )
    return completed.stdout


def get_ref_bounding_box(
    ref: str,
    session: Optional[str] = None,
    config: Optional[AgentBrowserConfig] = None,
) -> BoundingBox:
    """Bounding box of a snapshot element.

    Accepts either ``{"data": {"box": {...}}}`` or a bare ``{x, y, width, height}``.

    Raises:
        ExternalCommandError: If the command fails or the response has no box.
    """
    stdout = run_command(["get", "box", ref], session, ["--json"], config)
    try:
        result = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise ExternalCommandError(f"Failed to parse JSON: {stdout}") from e

    box = None
    if isinstance(result, dict):
        data = result.get("data")
        if isinstance(data, dict) and isinstance(data.get("box"), dict):
            box = data["box"]
        elif "x" in result:
            box = result
    if box is not None:
        try:
            return BoundingBox.from_dict(box)
        except (KeyError, TypeError):
            logger.debug("Incomplete box in response: %s", stdout)
    raise ExternalCommandError("Could not parse bounding box from response")


def get_snapshot(
    session: Optional[str] = None,
    interactive: bool = True,
    config: Optional[AgentBrowserConfig] = None,
) -> str:
    """Textual accessibility snapshot of the current page."""
    return run_command(["snapshot"], session, ["-i"] if interactive else [], config)


def get_screenshot(
    session: Optional[str] = None,
    output_path: Optional[Union[str, Path]] = None,
    image_format: Optional[str] = None,
    config: Optional[AgentBrowserConfig] = None,
) -> bytes:
    """Screenshot of the current page as encoded image bytes.

    Args:
        session: Session name.
        output_path: If given, agent-browser writes the file and it is read back;
            otherwise the image is returned inline as base64.
        image_format: Optional ``--format`` value (e.g. "png").
        config: CLI configuration.

    Raises:
        ExternalCommandError: If the command fails.
        ImageDecodeError: If the inline payload is not valid base64.
    """
    flags: list[str] = []
    if image_format:
        flags += ["--format", image_format]
    if output_path:
        flags += ["-o", str(output_path)]
    else:
        flags.append("--base64")

    stdout = run_command(["screenshot"], session, flags, config)

    if output_path:
        return Path(output_path).read_bytes()
    try:
        return base64.b64decode(stdout.strip(), validate=True)
    except binascii.Error as e:
        raise ImageDecodeError(f"Screenshot output is not valid base64: {e}") from e


def send_command(
    command: str,
    session: Optional[str] = None,
    config: Optional[AgentBrowserConfig] = None,
) -> str:
    """Run a bare agent-browser command such as ``screencast_start``."""
    return run_command([command], session, (), config)


def get_all_ref_boxes(
    session: Optional[str] = None,
    config: Optional[AgentBrowserConfig] = None,
) -> dict[str, BoundingBox]:
    """Bounding boxes for every interactive element in the current snapshot.

    Elements whose box lookup fails are skipped.

    Returns:
        Mapping of ref to box, in snapshot order.
    """
    elements = parse_snapshot(get_snapshot(session, True, config))
    boxes: dict[str, BoundingBox] = {}
    for element in elements:
        try:
            boxes[element.ref] = get_ref_bounding_box(element.ref, session, config)
        except ExternalCommandError as e:
            logger.warning("No bounding box for %s: %s", element.ref, e)
    return boxes
