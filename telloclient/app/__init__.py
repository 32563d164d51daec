from .config import TelloConfig, CommandRange
from .loader import load_config, DEFAULT_CONFIG_PATH

__all__ = ["TelloConfig", "CommandRange", "load_config", "DEFAULT_CONFIG_PATH"]
