# telloclient/protocol/engine.py
from __future__ import annotations

import enum
import logging
import re
import threading
import time
from collections import deque
from concurrent.futures import Future
from typing import Callable, Deque, Optional, Protocol as TypingProtocol

from telloclient.core.errors import ValidationError
from telloclient.interfaces.command_sink import CommandEvent, CommandSink
from telloclient.transport.errors import TransportError

from ._internal.pending_command import PendingCommand
from ._internal.pump_worker import PumpWorker
from .errors import (
    CommandSuperseded,
    CommandTimeout,
    DisconnectedError,
    ProtocolError,
    SendFailed,
)
from .response import CommandResponse, decode_reply

DEFAULT_TIMEOUT_S = 5.0
DEFAULT_MAX_RETRIES = 3
RETRY_BACKOFF_S = 0.4
EMERGENCY_COMMAND = "emergency"
REPLY_MAX_BYTES = 1518

_COMMAND_TEXT = re.compile(r"^[\x20-\x7E]+$")


class TransportIO(TypingProtocol):
    """Minimal datagram I/O interface for CommandDispatcher."""
    def write(self, data: bytes) -> int: ...
    def read(self, n: int) -> bytes: ...


class DispatchState(str, enum.Enum):
    IDLE = "idle"
    EXECUTING = "executing"
    EMERGENCY = "emergency"


def _failed_future(exc: BaseException) -> Future:
    fut: Future = Future()
    fut.set_exception(exc)
    return fut


def _event_kind(exc: BaseException) -> str:
    if isinstance(exc, CommandTimeout):
        return "timeout"
    if isinstance(exc, SendFailed):
        return "send_failed"
    if isinstance(exc, CommandSuperseded):
        return "superseded"
    if isinstance(exc, DisconnectedError):
        return "disconnected"
    return "error"


class CommandDispatcher:
    """
    Serializes plaintext commands over a datagram transport.

    One command is in flight at a time. Each command gets up to `max_retries`
    attempts; only timeouts are retried, a well-formed refusal from the drone
    is returned as a non-success CommandResponse. Priority commands jump the
    queue (never the executing command). An emergency drops the queue and is
    sent once, without retry.

    Threads: a dispatch worker owns dequeue and attempt execution; an RX worker
    reads replies and hands them over through on_reply(). Queue, state and the
    reply slot are guarded by one Condition; sends happen outside of it.
    """

    def __init__(
        self,
        transport: TransportIO,
        *,
        cmd_timeout_s: float = DEFAULT_TIMEOUT_S,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_s: float = RETRY_BACKOFF_S,
        emergency_command: str = EMERGENCY_COMMAND,
        idle_wait_s: float = 0.1,
        cmd_sink: Optional[CommandSink] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.transport = transport
        self.cmd_timeout_s = float(cmd_timeout_s)
        self.max_retries = int(max_retries)
        self.backoff_s = float(backoff_s)
        self.emergency_command = emergency_command
        self.idle_wait_s = float(idle_wait_s)

        self._log = logger or logging.getLogger(__name__)
        self._cmd_sink = cmd_sink

        # Called with the text of every valid reply (solicited or not).
        self.on_response: Optional[Callable[[str], None]] = None

        self._cond = threading.Condition(threading.Lock())
        self._queue: Deque[PendingCommand] = deque()
        self._state = DispatchState.IDLE
        self._current: Optional[PendingCommand] = None
        self._emergency: Optional[PendingCommand] = None   # requested, not yet taken by the worker
        self._awaiting: Optional[PendingCommand] = None    # attempt currently waiting for a reply
        self._replies: Deque[CommandResponse] = deque()
        self._closed = False

        self._threads_lock = threading.Lock()
        self._dispatch_thread: Optional[PumpWorker] = None
        self._rx_thread: Optional[PumpWorker] = None

    # ---------------- State ----------------
    @property
    def state(self) -> DispatchState:
        with self._cond:
            return self._state

    @property
    def queue_depth(self) -> int:
        with self._cond:
            return len(self._queue)

    @property
    def executing(self) -> Optional[str]:
        with self._cond:
            return self._current.command if self._current is not None else None

    @property
    def is_closed(self) -> bool:
        with self._cond:
            return self._closed

    # ---------------- Command API ----------------
    def submit(
        self,
        command: str,
        *,
        priority: bool = False,
        timeout_s: Optional[float] = None,
        max_retries: Optional[int] = None,
    ) -> Future:
        """Queue a command; the returned Future settles exactly once."""
        timeout_s = self.cmd_timeout_s if timeout_s is None else timeout_s
        max_retries = self.max_retries if max_retries is None else max_retries

        try:
            self._validate(command, timeout_s, max_retries)
        except ValidationError as e:
            self._log.warning("CMD_INVALID cmd=%r reason=%s", command, e.message)
            return _failed_future(e)

        pending = PendingCommand(command.strip(), timeout_s, max_retries, priority=priority)
        self._attach_sink(pending)

        with self._cond:
            closed = self._closed
            if not closed:
                if priority:
                    self._queue.appendleft(pending)
                else:
                    self._queue.append(pending)
                depth = len(self._queue)
                self._cond.notify_all()

        if closed:
            pending.set_exception(DisconnectedError(pending.command))
            return pending.future

        self._log.debug("CMD_QUEUED cmd=%s priority=%s depth=%d", pending.command, priority, depth)
        self._ensure_dispatch_thread()
        return pending.future

    def send_cmd(self, command: str, **kwargs) -> CommandResponse:
        """Blocking submit(); raises the command's failure, if any."""
        return self.submit(command, **kwargs).result()

    def emergency(self) -> Future:
        """
        Drop every queued command and send the emergency command once.

        A command that is executing when the emergency arrives stops at its
        next wait and settles with CommandSuperseded. Repeated requests made
        before the worker picks the emergency up share its Future.
        """
        pending = PendingCommand(
            self.emergency_command, self.cmd_timeout_s, 1, priority=True, emergency=True
        )

        with self._cond:
            closed = self._closed
            waiting = self._emergency
            if waiting is not None and not closed:
                self._log.info("EMERGENCY_COALESCED id=%s", waiting.request_id)
                return waiting.future
            self._attach_sink(pending)
            if not closed:
                superseded = list(self._queue)
                self._queue.clear()
                self._emergency = pending
                self._state = DispatchState.EMERGENCY
                executing = self._current
                self._cond.notify_all()

        if closed:
            pending.set_exception(DisconnectedError(pending.command))
            return pending.future

        for p in superseded:
            p.set_exception(CommandSuperseded(p.command))

        self._log.warning(
            "EMERGENCY_REQUESTED superseded=%d executing=%s",
            len(superseded),
            executing.command if executing is not None else None,
        )
        self._ensure_dispatch_thread()
        return pending.future

    def close(self) -> None:
        """
        Tear down: reject everything still pending with DisconnectedError and
        stop the workers. In-flight sends are not flushed.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            dropped = list(self._queue)
            self._queue.clear()
            if self._emergency is not None:
                dropped.append(self._emergency)
                self._emergency = None
            self._state = DispatchState.IDLE
            self._replies.clear()
            self._cond.notify_all()

        for p in dropped:
            p.set_exception(DisconnectedError(p.command))

        self._log.info("DISPATCHER_CLOSED dropped=%d", len(dropped))
        self.stop_rx_thread()
        self._stop_dispatch_thread()

    # ---------------- Reply intake ----------------
    def on_reply(self, data: bytes) -> None:
        """Hand one inbound datagram to the outstanding attempt, if any."""
        resp = decode_reply(data)
        if resp is None:
            self._log.warning("REPLY_INVALID len=%d raw=%r", len(data), bytes(data[:32]))
            return

        with self._cond:
            pending = self._awaiting
            if pending is not None:
                self._replies.append(resp)
                self._cond.notify_all()

        if pending is None:
            self._log.warning("REPLY_UNSOLICITED reply=%r", resp.message)
        else:
            self._log.debug("REPLY cmd=%s reply=%r", pending.command, resp.message)

        cb = self.on_response
        if cb is not None:
            try:
                cb(resp.message)
            except Exception:
                self._log.exception("ON_RESPONSE_CALLBACK_ERROR")

    def _pump_rx(self) -> None:
        data = self.transport.read(REPLY_MAX_BYTES)
        if data:
            self.on_reply(data)

    # ---------------- Workers ----------------
    def start_rx_thread(self) -> None:
        with self._threads_lock:
            if self._rx_thread is None or not self._rx_thread.is_alive():
                self._rx_thread = PumpWorker(self._pump_rx, name="cmd-rx", logger=self._log)
                self._rx_thread.start()
                self._log.info("RX_THREAD_STARTED")

    def stop_rx_thread(self) -> None:
        with self._threads_lock:
            worker, self._rx_thread = self._rx_thread, None
        if worker is not None:
            worker.stop()
            if worker is not threading.current_thread():
                worker.join()
            self._log.info("RX_THREAD_STOPPED")

    def _ensure_dispatch_thread(self) -> None:
        with self._threads_lock:
            if self.is_closed:
                return
            if self._dispatch_thread is None or not self._dispatch_thread.is_alive():
                self._dispatch_thread = PumpWorker(self._dispatch_next, name="dispatch", logger=self._log)
                self._dispatch_thread.start()

    def _stop_dispatch_thread(self) -> None:
        with self._threads_lock:
            worker, self._dispatch_thread = self._dispatch_thread, None
        if worker is None:
            return
        worker.stop()
        with self._cond:
            self._cond.notify_all()
        # Settle callbacks run on the worker; close() may be called from one.
        if worker is not threading.current_thread():
            worker.join()

    # ---------------- Dispatch loop ----------------
    def _dispatch_next(self) -> None:
        with self._cond:
            pending = self._take_next_locked()
            if pending is None:
                self._cond.wait(self.idle_wait_s)
                return
        self._execute(pending)

    def _take_next_locked(self) -> Optional[PendingCommand]:
        if self._closed:
            return None

        if self._emergency is not None:
            pending, self._emergency = self._emergency, None
            self._current = pending
            return pending

        if self._state is not DispatchState.IDLE:
            return None

        while self._queue:
            pending = self._queue.popleft()
            if pending.cancelled():
                self._log.debug("CMD_SKIPPED_CANCELLED cmd=%s", pending.command)
                continue
            self._state = DispatchState.EXECUTING
            self._current = pending
            return pending
        return None

    def _execute(self, pending: PendingCommand) -> None:
        resp: Optional[CommandResponse] = None
        error: Optional[BaseException] = None
        try:
            resp = self._run_attempts(pending)
        except ProtocolError as e:
            error = e
        except Exception as e:
            self._log.exception("CMD_DISPATCH_ERROR cmd=%s", pending.command)
            error = e

        with self._cond:
            self._current = None
            self._awaiting = None
            if not self._closed:
                self._state = (
                    DispatchState.EMERGENCY if self._emergency is not None else DispatchState.IDLE
                )
            self._cond.notify_all()

        if error is not None:
            pending.set_exception(error)
        else:
            pending.set_result(resp)

    def _run_attempts(self, pending: PendingCommand) -> CommandResponse:
        for attempt in range(1, pending.max_retries + 1):
            pending.attempts = attempt
            with self._cond:
                self._check_interrupt_locked(pending)
                self._replies.clear()
                self._awaiting = pending

            self._sink_emit(
                CommandEvent(
                    name=pending.command,
                    kind="send",
                    request_id=str(pending.request_id),
                    payload={"attempt": attempt, "max_retries": pending.max_retries},
                )
            )
            self._log.debug("CMD_SEND cmd=%s attempt=%d/%d", pending.command, attempt, pending.max_retries)

            try:
                self.transport.write(pending.payload)
            except (TransportError, OSError) as e:
                with self._cond:
                    self._awaiting = None
                self._log.error("CMD_SEND_FAILED cmd=%s attempt=%d err=%s", pending.command, attempt, e)
                raise SendFailed(pending.command, str(e)) from None

            resp = self._await_reply(pending)
            if resp is not None:
                if not resp.success:
                    self._log.warning("CMD_REJECTED cmd=%s reply=%r", pending.command, resp.message)
                elif attempt > 1:
                    self._log.info("CMD_OK_AFTER_RETRY cmd=%s attempts=%d", pending.command, attempt)
                return resp

            self._log.warning(
                "CMD_TIMEOUT cmd=%s attempt=%d/%d timeout_s=%.3f",
                pending.command,
                attempt,
                pending.max_retries,
                pending.timeout_s,
            )
            if attempt < pending.max_retries:
                self._backoff(pending)

        raise CommandTimeout(pending.command, pending.timeout_s, pending.attempts)

    def _await_reply(self, pending: PendingCommand) -> Optional[CommandResponse]:
        """Next reply for this attempt, or None once timeout_s has elapsed."""
        deadline = time.monotonic() + pending.timeout_s
        with self._cond:
            while True:
                self._check_interrupt_locked(pending)
                if self._replies:
                    self._awaiting = None
                    return self._replies.popleft()
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    self._awaiting = None
                    return None
                self._cond.wait(remaining)

    def _backoff(self, pending: PendingCommand) -> None:
        deadline = time.monotonic() + self.backoff_s
        with self._cond:
            while True:
                self._check_interrupt_locked(pending)
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return
                self._cond.wait(remaining)

    def _check_interrupt_locked(self, pending: PendingCommand) -> None:
        if self._closed:
            self._awaiting = None
            raise DisconnectedError(pending.command)
        if not pending.emergency and self._emergency is not None:
            self._awaiting = None
            raise CommandSuperseded(pending.command)

    # ---------------- Validation ----------------
    @staticmethod
    def _validate(command: str, timeout_s: float, max_retries: int) -> None:
        if not isinstance(command, str) or not command.strip():
            raise ValidationError("Command must be a non-empty string.")
        if not _COMMAND_TEXT.match(command.strip()):
            raise ValidationError(
                "Command must be printable ASCII.",
                details={"command": command},
            )
        if isinstance(timeout_s, bool) or not isinstance(timeout_s, (int, float)) or timeout_s <= 0:
            raise ValidationError(
                f"timeout_s must be a positive number (got {timeout_s!r}).",
                details={"command": command},
            )
        if isinstance(max_retries, bool) or not isinstance(max_retries, int) or max_retries < 1:
            raise ValidationError(
                f"max_retries must be an integer >= 1 (got {max_retries!r}).",
                details={"command": command},
            )

    # ---------------- Command trace ----------------
    def _attach_sink(self, pending: PendingCommand) -> None:
        if self._cmd_sink is None:
            return

        start_ts = pending.created_at  # perf_counter base

        def _on_done(fut: Future) -> None:
            rtt_ms = (time.perf_counter() - start_ts) * 1000.0
            payload = {
                "attempts": pending.attempts,
                "priority": pending.priority,
                "emergency": pending.emergency,
                "rtt_ms": rtt_ms,
            }

            if fut.cancelled():
                kind = "cancelled"
            else:
                exc = fut.exception()
                if exc is None:
                    resp = fut.result()
                    kind = "ok" if resp.success else "rejected"
                    payload["response"] = resp.message
                else:
                    kind = _event_kind(exc)
                    payload["error"] = str(exc)

            self._sink_emit(
                CommandEvent(
                    name=pending.command,
                    kind=kind,
                    request_id=str(pending.request_id),
                    payload=payload,
                )
            )

        pending.add_done_callback(_on_done)

    def _sink_emit(self, event: CommandEvent) -> None:
        if self._cmd_sink is None:
            return
        try:
            self._cmd_sink.on_command(event)
        except Exception:
            self._log.exception("CMD_SINK_ERROR cmd=%s kind=%s", event.name, event.kind)

    # ---------------- Factory ----------------
    @classmethod
    def create(
        cls,
        transport: TransportIO,
        *,
        cmd_timeout_s: float = DEFAULT_TIMEOUT_S,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_s: float = RETRY_BACKOFF_S,
        cmd_sink: Optional[CommandSink] = None,
        logger: Optional[logging.Logger] = None,
        on_response: Optional[Callable[[str], None]] = None,
    ) -> "CommandDispatcher":
        dispatcher = cls(
            transport,
            cmd_timeout_s=cmd_timeout_s,
            max_retries=max_retries,
            backoff_s=backoff_s,
            cmd_sink=cmd_sink,
            logger=logger,
        )
        dispatcher.on_response = on_response
        dispatcher.start_rx_thread()
        return dispatcher
