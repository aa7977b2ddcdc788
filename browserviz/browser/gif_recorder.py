"""Record browser sessions as animated GIFs.

Two capture strategies feed the same encode step:

1. **Push** (``GifRecorder``): frames arrive over the agent-browser screencast
   websocket. Frames arriving faster than the target frame rate are dropped,
   never queued, and frames arriving while not recording are discarded.

2. **Poll** (``record_with_screenshots``): a screenshot is requested, then the
   loop sleeps one frame interval, until the duration has elapsed. There is no
   drift correction and no mid-loop cancellation.

Frames are buffered in memory and handed to ffmpeg in capture order only
after capture stops.

Usage (push):
    recorder = GifRecorder()
    recorder.connect()
    recorder.start_recording({"frame_rate": 10})
    # ... drive the browser ...
    recorder.stop_recording("session.gif")
    recorder.disconnect()

Usage (poll):
    record_with_screenshots(5000, "session.gif", {"frame_rate": 5})
"""

import base64
import binascii
import json
import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Union

import websocket
from PIL import Image

from .agent_browser import get_screenshot, send_command
from .annotation_config import AgentBrowserConfig, GifRecordingOptions, resolve_options
from .annotation_renderer import encode_png, load_image
from .errors import (
    ExternalCommandError,
    ImageDecodeError,
    NoFramesError,
    StreamConnectionError,
)
from .models import RecordingState, ScreencastFrame

logger = logging.getLogger(__name__)

OptionsLike = Union[None, GifRecordingOptions, Mapping[str, Any]]

FALLBACK_SIZE = (800, 600)
MAX_PALETTE_COLORS = 256
MIN_PALETTE_COLORS = 24


def palette_colors(quality: int) -> int:
    """Palette size for a 1-30 quality value (1 = best = 256 colors)."""
    q = min(30, max(1, quality))
    span = MAX_PALETTE_COLORS - MIN_PALETTE_COLORS
    return round(MAX_PALETTE_COLORS - (q - 1) * span / 29)


def build_ffmpeg_command(
    output_path: Union[str, Path],
    options: GifRecordingOptions,
    width: int,
    height: int,
    ffmpeg: str = "ffmpeg",
) -> list[str]:
    """ffmpeg argv reading PNGs from stdin and writing a palette-optimized GIF."""
    rate = options.frame_rate
    filters = (
        f"fps={rate},scale={width}:{height}:flags=lanczos,split[s0][s1];"
        f"[s0]palettegen=max_colors={palette_colors(options.quality)}[p];[s1][p]paletteuse"
    )
    return [
        ffmpeg,
        "-y",
        "-f", "image2pipe",
        "-framerate", str(rate),
        "-i", "-",
        "-vf", filters,
        "-loop", str(options.repeat),
        str(output_path),
    ]


def generate_gif(
    frames: Sequence[bytes],
    output_path: Union[str, Path],
    options: OptionsLike = None,
    ffmpeg: str = "ffmpeg",
) -> Path:
    """Encode ``frames`` (in order) into a GIF at ``output_path``.

    Output size is the explicit width/height, else the first frame's size.

    Raises:
        NoFramesError: If ``frames`` is empty.
        ImageDecodeError: If a frame cannot be decoded.
        ExternalCommandError: If ffmpeg is missing or exits nonzero.
    """
    if not frames:
        raise NoFramesError("No frames to encode")

    opts = resolve_options(GifRecordingOptions, options)
    first = load_image(frames[0])
    width = opts.width or first.width or FALLBACK_SIZE[0]
    height = opts.height or first.height or FALLBACK_SIZE[1]

    stream = b"".join(encode_png(load_image(frame)) for frame in frames)

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    cmd = build_ffmpeg_command(path, opts, width, height, ffmpeg)
    logger.debug("Running: %s", " ".join(cmd))

    try:
        completed = subprocess.run(cmd, input=stream, capture_output=True, check=False)
    except FileNotFoundError as e:
        raise ExternalCommandError(
            f"ffmpeg error: {e}. Make sure ffmpeg is installed.", command=cmd
        ) from e

    if completed.returncode != 0:
        stderr = completed.stderr.decode("utf-8", errors="replace")
        logger.error("ffmpeg failed (code %d): %s", completed.returncode, stderr.strip())
        raise ExternalCommandError(
            stderr.strip() or f"ffmpeg exited with code {completed.returncode}",
            command=cmd,
            returncode=completed.returncode,
            stderr=stderr,
        )

    logger.info("GIF saved to: %s (%d frames, %dx%d)", path, len(frames), width, height)
    return path


class GifRecorder:
    """Records screencast frames pushed over the agent-browser websocket.

    Frame handling runs on the websocket thread; start/stop run on the caller's
    thread. All RecordingState access goes through one lock.
    """

    def __init__(self, config: Optional[AgentBrowserConfig] = None):
        self._config = config or AgentBrowserConfig.from_env()
        self._state = RecordingState()
        self._lock = threading.Lock()
        self._last_frame_time: Optional[float] = None
        self._ws: Optional[websocket.WebSocketApp] = None
        self._ws_thread: Optional[threading.Thread] = None
        self._opened = threading.Event()
        self._connect_error: Optional[Exception] = None

    @property
    def config(self) -> AgentBrowserConfig:
        return self._config

    @property
    def state(self) -> RecordingState:
        """Snapshot of the current recording state."""
        with self._lock:
            return self._state.copy()

    @property
    def is_recording(self) -> bool:
        with self._lock:
            return self._state.is_recording

    def connect(self, timeout: float = 10.0) -> None:
        """Open the screencast websocket and wait until it is connected.

        Raises:
            StreamConnectionError: If the connection fails or times out.
        """
        self._opened.clear()
        self._connect_error = None
        self._ws = websocket.WebSocketApp(
            self._config.stream_url,
            on_open=self._on_open,
            on_message=self._on_message,
            on_error=self._on_error,
            on_close=self._on_close,
        )
        self._ws_thread = threading.Thread(
            target=self._ws.run_forever, name="screencast-stream", daemon=True
        )
        self._ws_thread.start()

        if not self._opened.wait(timeout):
            self.disconnect()
            raise StreamConnectionError(
                f"Timed out connecting to {self._config.stream_url} after {timeout}s"
            )
        if self._connect_error is not None:
            error = self._connect_error
            self.disconnect()
            raise StreamConnectionError(
                f"Could not connect to {self._config.stream_url}: {error}"
            ) from error

    def disconnect(self) -> None:
        """Close the websocket connection, if any."""
        if self._ws is not None:
            self._ws.close()
            self._ws = None
        if self._ws_thread is not None:
            self._ws_thread.join(timeout=2)
            self._ws_thread = None

    def _on_open(self, ws) -> None:
        logger.info("Connected to agent-browser screencast: %s", self._config.stream_url)
        self._opened.set()

    def _on_message(self, ws, message) -> None:
        self.handle_message(message)

    def _on_error(self, ws, error) -> None:
        logger.error("WebSocket error: %s", error)
        if not self._opened.is_set():
            self._connect_error = error
            self._opened.set()

    def _on_close(self, ws, close_status_code, close_msg) -> None:
        logger.info("WebSocket connection closed")

    def handle_message(self, raw: Union[str, bytes]) -> None:
        """Process one stream message.

        Non-JSON, non-frame and undecodable messages are ignored. A frame is
        kept only while recording and only if a full frame interval has passed
        since the last kept frame.
        """
        if not self.is_recording:
            return

        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-JSON stream message")
            return
        if not isinstance(message, dict):
            return
        frame = ScreencastFrame.from_message(message)
        if frame is None:
            return

        now = time.monotonic() * 1000
        with self._lock:
            if not self._state.is_recording:
                return
            interval = self._state.options.frame_interval_ms
            if self._last_frame_time is not None and now - self._last_frame_time < interval:
                logger.debug("Dropping frame (%.0fms since last)", now - self._last_frame_time)
                return
            self._last_frame_time = now
            options = self._state.options

        try:
            png = self._process_frame(frame, options)
        except ImageDecodeError as e:
            logger.warning("Dropping undecodable frame: %s", e)
            return

        with self._lock:
            if self._state.is_recording:
                self._state.frames.append(png)

    @staticmethod
    def _process_frame(frame: ScreencastFrame, options: GifRecordingOptions) -> bytes:
        try:
            data = base64.b64decode(frame.data, validate=True)
        except (binascii.Error, TypeError, ValueError) as e:
            raise ImageDecodeError(f"Frame payload is not valid base64: {e}") from e

        image = load_image(data)
        if options.width and options.height:
            image = image.resize((options.width, options.height), Image.Resampling.LANCZOS)
        return encode_png(image)

    def start_recording(self, options: OptionsLike = None) -> None:
        """Reset the frame buffer and start accepting frames.

        Also asks agent-browser to start the screencast; if that fails the
        existing stream is used.
        """
        opts = resolve_options(GifRecordingOptions, options)
        with self._lock:
            self._state.reset(opts)
            self._last_frame_time = None

        try:
            send_command("screencast_start", config=self._config)
        except ExternalCommandError as e:
            logger.warning(
                "Could not start screencast via command, relying on existing stream: %s", e
            )

        logger.info("Recording started (%d fps)", opts.frame_rate)

    def stop_recording(self, output_path: Union[str, Path]) -> Path:
        """Stop accepting frames and encode what was captured.

        Raises:
            NoFramesError: If no frames were captured.
            ExternalCommandError: If ffmpeg fails.
        """
        with self._lock:
            self._state.is_recording = False
            frames = list(self._state.frames)
            options = self._state.options

        try:
            send_command("screencast_stop", config=self._config)
        except ExternalCommandError as e:
            logger.warning("Could not stop screencast via command: %s", e)

        if not frames:
            raise NoFramesError("No frames recorded")

        logger.info("Generating GIF from %d frames...", len(frames))
        try:
            return generate_gif(frames, output_path, options, self._config.ffmpeg)
        finally:
            with self._lock:
                self._state.frames = []


def record_with_screenshots(
    duration_ms: float,
    output_path: Union[str, Path],
    options: OptionsLike = None,
    session: Optional[str] = None,
    config: Optional[AgentBrowserConfig] = None,
) -> Path:
    """Record by polling screenshots for ``duration_ms``, then encode a GIF.

    A failed screenshot is logged and skipped; the loop keeps going.

    Raises:
        NoFramesError: If no screenshot succeeded.
        ExternalCommandError: If ffmpeg fails.
    """
    cfg = config or AgentBrowserConfig.from_env()
    opts = resolve_options(GifRecordingOptions, options)
    interval = opts.frame_interval_ms / 1000
    frames: list[bytes] = []

    logger.info("Recording for %dms at %dfps...", duration_ms, opts.frame_rate)
    start_time = time.monotonic()
    while (time.monotonic() - start_time) * 1000 < duration_ms:
        try:
            frames.append(get_screenshot(session, image_format="png", config=cfg))
        except (ExternalCommandError, ImageDecodeError) as e:
            logger.warning("Frame capture failed: %s", e)
        time.sleep(interval)

    if not frames:
        raise NoFramesError("No frames captured")

    logger.info("Captured %d frames, generating GIF...", len(frames))
    return generate_gif(frames, output_path, opts, cfg.ffmpeg)
