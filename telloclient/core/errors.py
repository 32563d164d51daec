# telloclient/core/errors.py
from __future__ import annotations


class TelloError(Exception):
    """
    Base class for all expected operational errors in telloclient.
    """

    #: Stable machine-readable identifier (CLI exit mapping, logs)
    code: str = "unknown"

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Configuration / caller input (nothing reaches the network)
# ---------------------------------------------------------------------------

class ConfigError(TelloError):
    """
    Configuration file missing, unreadable or inconsistent.
    """
    code = "config_error"


class ValidationError(TelloError):
    """
    Malformed caller input, rejected before the command is queued.

    Examples:
      - empty command text
      - move distance outside 20..500 cm
      - non-integer rotation angle
    """
    code = "validation_error"


# ---------------------------------------------------------------------------
# Link lifecycle
# ---------------------------------------------------------------------------

class DeviceConnectError(TelloError):
    """
    Sockets could not be bound or the link could not be started.

    Examples:
      - port 8889 already in use
      - permission denied
    """
    code = "device_connect_error"


class DroneNotRespondingError(TelloError):
    """
    Sockets are up but the drone refused or ignored SDK mode entry.
    """
    code = "drone_not_responding"


# ---------------------------------------------------------------------------
# Video
# ---------------------------------------------------------------------------

class VideoError(TelloError):
    code = "video_error"


class DecoderUnavailableError(VideoError):
    """
    The external decoder binary (ffmpeg) could not be found or started.
    """
    code = "decoder_unavailable"


class StreamEndedError(VideoError):
    """
    A frame consumer was waiting when the decoder stream terminated.
    """
    code = "stream_ended"


class FrameTimeout(VideoError):
    code = "frame_timeout"
