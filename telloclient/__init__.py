"""Tello SDK client: queued UDP command dispatch and MJPEG frame reassembly."""

from .app.config import TelloConfig
from .app.loader import load_config
from .protocol.response import CommandResponse
from .runtime.client import TelloClient
from .telemetry.state import TelloState

__all__ = ["TelloClient", "TelloConfig", "load_config", "CommandResponse", "TelloState"]

__version__ = "0.1.0"
