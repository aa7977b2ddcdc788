"""Exception types raised by the browser visualization core."""

from typing import Optional, Sequence


class BrowserVizError(Exception):
    """Base class for all browserviz failures."""


class ImageDecodeError(BrowserVizError):
    """Raised when a raster source cannot be decoded or has no usable dimensions."""


class ExternalCommandError(BrowserVizError):
    """Raised when agent-browser or ffmpeg exits nonzero or cannot be run.

    Attributes:
        command: The argv that was executed.
        returncode: Process exit code (None if the process never started).
        stderr: Captured standard error text.
    """

    def __init__(
        self,
        message: str,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        super().__init__(message)
        self.command = list(command) if command else []
        self.returncode = returncode
        self.stderr = stderr


class StreamConnectionError(BrowserVizError):
    """Raised when the screencast websocket cannot be opened."""


class NoFramesError(BrowserVizError):
    """Raised when a recording finishes with nothing to encode."""
