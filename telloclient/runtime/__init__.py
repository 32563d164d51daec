from .client import TelloClient
from .events import EventBus
from .link import DroneLink

__all__ = ["TelloClient", "EventBus", "DroneLink"]
