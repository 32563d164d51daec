from .command_trace import CommandTraceLogger

__all__ = ["CommandTraceLogger"]
