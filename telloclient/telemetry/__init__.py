from .state import TelloState, parse_state

__all__ = ["TelloState", "parse_state"]
