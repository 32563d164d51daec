# telloclient/runtime/link.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from telloclient.app.config import TelloConfig
from telloclient.core.errors import DeviceConnectError
from telloclient.interfaces.command_sink import CommandSink
from telloclient.protocol._internal.pump_worker import PumpWorker
from telloclient.protocol.commands import TelloCommands
from telloclient.protocol.engine import CommandDispatcher
from telloclient.transport.base import Transport
from telloclient.transport.errors import TransportError, TransportOpenError
from telloclient.transport.registry import TransportDriverRegistry

STATE_MAX_BYTES = 1518


@dataclass
class DroneLink:
    """
    Host/drone link: command socket + dispatcher, state socket + receiver.

    Responsibilities:
      - build and open the command and state transports
      - create the CommandDispatcher (and its RX thread)
      - forward raw state datagrams to `on_state`
      - translate low-level failures into operator-safe errors
    """

    config: TelloConfig = field(default_factory=TelloConfig)
    cmd_sink: Optional[CommandSink] = None
    logger: Optional[logging.Logger] = None
    drivers: Optional[TransportDriverRegistry] = None
    command_transport: Optional[Transport] = None
    state_transport: Optional[Transport] = None
    on_state: Optional[Callable[[bytes], None]] = None
    on_response: Optional[Callable[[str], None]] = None

    def __post_init__(self) -> None:
        self._log = self.logger or logging.getLogger(__name__)
        self._drivers = self.drivers or TransportDriverRegistry.default()
        self._dispatcher: Optional[CommandDispatcher] = None
        self._commands: Optional[TelloCommands] = None
        self._state_worker: Optional[PumpWorker] = None

    @property
    def is_started(self) -> bool:
        return self._dispatcher is not None and not self._dispatcher.is_closed

    @property
    def dispatcher(self) -> CommandDispatcher:
        if self._dispatcher is None:
            raise RuntimeError("DroneLink not started (dispatcher is None)")
        return self._dispatcher

    @property
    def commands(self) -> TelloCommands:
        if self._commands is None:
            raise RuntimeError("DroneLink not started (commands is None)")
        return self._commands

    def _build_transports(self) -> None:
        cfg = self.config
        try:
            if self.command_transport is None:
                self.command_transport = self._drivers.create(
                    "udp",
                    local_port=cfg.cmd_port,
                    peer_host=cfg.drone_ip,
                    peer_port=cfg.cmd_port,
                    bind_host=cfg.bind_host,
                    timeout=cfg.socket_timeout_s,
                )
            if self.state_transport is None:
                self.state_transport = self._drivers.create(
                    "udp",
                    local_port=cfg.state_port,
                    bind_host=cfg.bind_host,
                    timeout=cfg.socket_timeout_s,
                )
        except TransportError as e:
            raise DeviceConnectError(
                "Failed to construct UDP transports.",
                hint=str(e),
                details={"drone_ip": cfg.drone_ip},
            ) from None

    def start(self) -> None:
        if self.is_started:
            return

        self._build_transports()
        if self.command_transport is None or self.state_transport is None:
            raise RuntimeError("DroneLink transports not built")

        try:
            self.command_transport.open()
            self.state_transport.open()
        except TransportOpenError as e:
            self._log.exception("TRANSPORT_OPEN_FAILED")
            self._close_transports()
            raise DeviceConnectError(
                "Could not bind drone sockets.",
                hint=str(e),
                details={"cmd_port": self.config.cmd_port, "state_port": self.config.state_port},
            ) from None
        except TransportError as e:
            self._log.exception("TRANSPORT_OPEN_ERROR")
            self._close_transports()
            raise DeviceConnectError(
                "Transport error while opening drone sockets.",
                hint=str(e),
            ) from None

        self._dispatcher = CommandDispatcher.create(
            self.command_transport,
            cmd_timeout_s=self.config.cmd_timeout_s,
            max_retries=self.config.max_retries,
            backoff_s=self.config.retry_backoff_s,
            cmd_sink=self.cmd_sink,
            logger=self._log,
            on_response=self._on_response,
        )
        self._commands = TelloCommands(self._dispatcher, self.config)

        self._state_worker = PumpWorker(self._pump_state, name="state-rx", logger=self._log)
        self._state_worker.start()
        self._log.info(
            "LINK_STARTED drone=%s cmd_port=%d state_port=%d",
            self.config.drone_ip,
            self.config.cmd_port,
            self.config.state_port,
        )

    def _pump_state(self) -> None:
        transport = self.state_transport
        if transport is None:
            raise RuntimeError("DroneLink state transport is None")
        data = transport.read(STATE_MAX_BYTES)
        if data:
            cb = self.on_state
            if cb is not None:
                cb(data)

    def _on_response(self, text: str) -> None:
        cb = self.on_response
        if cb is not None:
            cb(text)

    def stop(self) -> None:
        """Reject queued commands, stop receivers, then release the sockets."""
        if self._dispatcher is not None:
            # kept after close(); late submits settle with DisconnectedError
            try:
                self._dispatcher.close()
            except Exception:
                self._log.exception("Failed to close dispatcher")

        if self._state_worker is not None:
            self._state_worker.stop()
            self._state_worker.join()
            self._state_worker = None

        self._close_transports()
        self._log.info("LINK_STOPPED")

    def _close_transports(self) -> None:
        for t in (self.command_transport, self.state_transport):
            if t is None:
                continue
            try:
                t.close()
            except Exception:
                self._log.exception("Failed to close transport %s", type(t).__name__)

    def __enter__(self) -> "DroneLink":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
