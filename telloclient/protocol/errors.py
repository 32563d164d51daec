# telloclient/protocol/errors.py

class ProtocolError(Exception):
    """Base for command-protocol failures (timeouts, rejections, send errors)."""

class CommandTimeout(ProtocolError):
    def __init__(self, cmd: str, timeout_s: float, attempts: int):
        super().__init__(
            f"{cmd} timed out after {attempts} attempt(s) of {timeout_s}s (max retries exceeded)"
        )
        self.cmd = cmd
        self.timeout_s = timeout_s
        self.attempts = attempts

class CommandRejected(ProtocolError):
    def __init__(self, cmd: str, message: str):
        super().__init__(f"{cmd} rejected by drone: {message!r}")
        self.cmd = cmd
        self.message = message

class SendFailed(ProtocolError):
    def __init__(self, cmd: str, reason: str = "send_failed"):
        super().__init__(f"{cmd} send failed ({reason})")
        self.cmd = cmd
        self.reason = reason

class CommandSuperseded(ProtocolError):
    def __init__(self, cmd: str):
        super().__init__(f"{cmd} superseded by emergency")
        self.cmd = cmd

class DisconnectedError(ProtocolError):
    def __init__(self, cmd: str):
        super().__init__(f"{cmd} aborted: disconnected")
        self.cmd = cmd
