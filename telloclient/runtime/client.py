# telloclient/runtime/client.py
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from typing import Callable, Optional

from telloclient.app.config import TelloConfig
from telloclient.core.errors import DroneNotRespondingError, FrameTimeout, StreamEndedError
from telloclient.interfaces.command_sink import CommandSink
from telloclient.protocol.commands import TelloCommands
from telloclient.protocol.engine import CommandDispatcher
from telloclient.protocol.errors import DisconnectedError, ProtocolError
from telloclient.protocol.response import CommandResponse
from telloclient.telemetry.state import TelloState, parse_state
from telloclient.video.assembler import FrameAssembler, FrameIterator
from telloclient.video.decoder import DecoderProcess

from . import events
from .events import EventBus
from .link import DroneLink

ONE_SHOT_INPUT_ARGS = ("-y", "-fflags", "nobuffer", "-flags", "low_delay")


class TelloClient:
    """
    High-level Tello client: command link, telemetry, video and events.

    Events (see runtime.events): state(TelloState), frame(bytes),
    response(str), emergency(CommandResponse), stream-ended(str),
    video-start(CommandResponse), video-stop(CommandResponse).
    """

    def __init__(
        self,
        config: Optional[TelloConfig] = None,
        *,
        cmd_sink: Optional[CommandSink] = None,
        logger: Optional[logging.Logger] = None,
        link: Optional[DroneLink] = None,
    ):
        self.config = config or TelloConfig()
        self._log = logger or logging.getLogger(__name__)
        self.events = EventBus(logger=self._log)

        self._link = link or DroneLink(config=self.config, cmd_sink=cmd_sink, logger=self._log)
        self._link.on_state = self._on_state_datagram
        self._link.on_response = self._on_response

        self.assembler = FrameAssembler(
            max_buffer=self.config.max_frame_buffer,
            poll_interval_s=self.config.frame_poll_interval_s,
            logger=self._log,
        )
        self.assembler.subscribe(self._on_frame)
        self.assembler.on_end(self._on_stream_end)

        self._lock = threading.RLock()
        self._decoder: Optional[DecoderProcess] = None
        self._state: Optional[TelloState] = None
        self._connected = False
        self._video_connected = False

    # ---------------- Events ----------------
    def on(self, kind: str, cb: Callable[..., None]) -> Callable[..., None]:
        return self.events.on(kind, cb)

    def once(self, kind: str, cb: Callable[..., None]) -> Callable[..., None]:
        return self.events.once(kind, cb)

    def off(self, kind: str, cb: Callable[..., None]) -> None:
        self.events.off(kind, cb)

    def _on_state_datagram(self, data: bytes) -> None:
        state = parse_state(data.decode("ascii", errors="replace"))
        with self._lock:
            self._state = state
        self.events.emit(events.STATE, state)

    def _on_response(self, text: str) -> None:
        self.events.emit(events.RESPONSE, text)

    def _on_frame(self, frame: bytes) -> None:
        self.events.emit(events.FRAME, frame)

    def _on_stream_end(self, reason: str) -> None:
        self.events.emit(events.STREAM_ENDED, reason)

    # ---------------- Lifecycle ----------------
    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def dispatcher(self) -> CommandDispatcher:
        return self._link.dispatcher

    @property
    def commands(self) -> TelloCommands:
        return self._link.commands

    def connect(self) -> None:
        """Bind sockets and enter SDK mode."""
        with self._lock:
            if self._connected:
                return
            self._link.start()
            self._connected = True

        try:
            resp = self.commands.enter_sdk_mode()
        except ProtocolError as e:
            self.disconnect()
            raise DroneNotRespondingError(
                "Drone did not answer the SDK mode command.",
                hint=f"Check you are on the drone's Wi-Fi ({self.config.drone_ip}). {e}",
            ) from None

        if not resp.success:
            self.disconnect()
            raise DroneNotRespondingError(
                f"An error occurred when entering SDK mode: {resp.message}",
                details={"reply": resp.message},
            )
        self._log.info("SDK_MODE_OK drone=%s", self.config.drone_ip)

    def disconnect(self) -> None:
        """Stop the decoder, reject queued commands, then release the sockets."""
        with self._lock:
            if not self._connected:
                return
            self._connected = False
            self._video_connected = False
        self._stop_decoder()
        self._link.stop()
        self._log.info("DISCONNECTED")

    def __enter__(self) -> "TelloClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disconnect()

    # ---------------- Commands ----------------
    def _cmds(self, op: str) -> TelloCommands:
        if not self._connected:
            raise DisconnectedError(op)
        return self._link.commands

    def submit(self, command: str, **kwargs) -> Future:
        """Queue a raw SDK command; see CommandDispatcher.submit."""
        if not self._connected:
            fut: Future = Future()
            fut.set_exception(DisconnectedError(command))
            return fut
        return self._link.dispatcher.submit(command, **kwargs)

    def send_command(self, command: str, **kwargs) -> CommandResponse:
        return self.submit(command, **kwargs).result()

    def takeoff(self) -> CommandResponse:
        return self._cmds("takeoff").takeoff()

    def land(self) -> CommandResponse:
        return self._cmds("land").land()

    def up(self, distance: int) -> CommandResponse:
        return self._cmds("up").up(distance)

    def down(self, distance: int) -> CommandResponse:
        return self._cmds("down").down(distance)

    def left(self, distance: int) -> CommandResponse:
        return self._cmds("left").left(distance)

    def right(self, distance: int) -> CommandResponse:
        return self._cmds("right").right(distance)

    def forward(self, distance: int) -> CommandResponse:
        return self._cmds("forward").forward(distance)

    def back(self, distance: int) -> CommandResponse:
        return self._cmds("back").back(distance)

    def cw(self, degrees: int) -> CommandResponse:
        return self._cmds("cw").cw(degrees)

    def ccw(self, degrees: int) -> CommandResponse:
        return self._cmds("ccw").ccw(degrees)

    def set_wifi(self, ssid: str, password: str) -> CommandResponse:
        return self._cmds("set_wifi").set_wifi(ssid, password)

    def query_battery(self) -> int:
        return self._cmds("query_battery").query_battery()

    def query_temperature(self) -> int:
        return self._cmds("query_temperature").query_temperature()

    def emergency(self) -> CommandResponse:
        """Stop motors now. Drops every queued command; never retried."""
        try:
            resp = self._cmds("emergency").emergency().result()
            self.events.emit(events.EMERGENCY, resp)
            return resp
        finally:
            self._stop_decoder()

    # ---------------- Telemetry ----------------
    def get_state(self) -> Optional[TelloState]:
        with self._lock:
            return self._state

    def get_battery(self) -> float:
        state = self.get_state()
        return state.bat if state is not None and state.bat is not None else -1

    def get_temperature(self) -> float:
        state = self.get_state()
        if state is None or state.templ is None or state.temph is None:
            return -1
        return (state.templ + state.temph) / 2

    def is_flying(self) -> bool:
        state = self.get_state()
        return state is not None and (state.h or 0) > 0

    def get_flying_time(self) -> float:
        state = self.get_state()
        return state.time if state is not None and state.time is not None else 0

    # ---------------- Video ----------------
    @property
    def video_connected(self) -> bool:
        return self._video_connected

    @property
    def decoder_running(self) -> bool:
        decoder = self._decoder
        return decoder is not None and decoder.is_running

    def start_video(self) -> CommandResponse:
        if self._video_connected:
            return CommandResponse(True, "Video already started.")
        resp = self._cmds("streamon").streamon()
        self.events.emit(events.VIDEO_START, resp)
        if resp.success:
            self._video_connected = True
        return resp

    def stop_video(self) -> CommandResponse:
        if not self._video_connected:
            return CommandResponse(True, "Video already stopped.")
        resp = self._cmds("streamoff").streamoff()
        self.events.emit(events.VIDEO_STOP, resp)
        self._stop_decoder()
        self._video_connected = False
        return resp

    def _new_decoder(self, assembler: FrameAssembler, **kwargs) -> DecoderProcess:
        return DecoderProcess(
            assembler,
            self.config.video_url,
            ffmpeg_path=self.config.ffmpeg_path,
            logger=self._log,
            **kwargs,
        )

    def start_decoder(self) -> None:
        """Run ffmpeg on the video port and publish frames as they are cut."""
        if self.decoder_running:
            return
        if not self._video_connected:
            self.start_video()
        decoder = self._new_decoder(self.assembler, input_args=self.config.ffmpeg_args)
        decoder.start()
        self._decoder = decoder

    def stop_decoder(self) -> None:
        self._stop_decoder()

    def _stop_decoder(self) -> None:
        decoder, self._decoder = self._decoder, None
        if decoder is not None:
            try:
                decoder.stop()
            except Exception:
                self._log.exception("Failed to stop decoder")

    def capture_frame(self, timeout_s: float = 3.0) -> bytes:
        """
        One JPEG frame. Uses the live decoder when running, otherwise spawns a
        one-shot ffmpeg that exits after the first frame.
        """
        if not self._video_connected:
            self.start_video()
        if self.decoder_running:
            return self.assembler.next_frame(timeout_s)

        assembler = FrameAssembler(max_buffer=self.config.max_frame_buffer, logger=self._log)
        decoder = self._new_decoder(assembler, input_args=ONE_SHOT_INPUT_ARGS, frames=1)
        got: list = []
        ready = threading.Event()

        def _first(frame: bytes) -> None:
            if not got:
                got.append(frame)
            ready.set()

        # subscribe before start so a fast decoder cannot slip the frame past us
        assembler.subscribe(_first)
        assembler.on_end(lambda _reason: ready.set())
        decoder.start()
        try:
            if not ready.wait(timeout_s):
                raise FrameTimeout("Timeout while waiting for frame.", details={"timeout_s": timeout_s})
            if got:
                return got[0]
            raise StreamEndedError(
                "Decoder exited before a frame was captured.",
                details={"reason": assembler.end_reason},
            )
        finally:
            decoder.stop()

    def stream_frames(self) -> FrameIterator:
        """Pull iterator over frames; ends once the decoder stops and the backlog drains."""
        return self.assembler.frames()
