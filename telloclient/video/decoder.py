# telloclient/video/decoder.py
from __future__ import annotations

import logging
import shutil
import signal
import subprocess
import threading
from typing import List, Optional, Sequence

from telloclient.core.errors import DecoderUnavailableError

from .assembler import FrameAssembler

READ_CHUNK = 65536


def build_ffmpeg_args(
    input_url: str,
    *,
    input_args: Sequence[str] = (),
    frames: Optional[int] = None,
) -> List[str]:
    """ffmpeg arguments turning the drone's H.264 feed into an MJPEG byte stream on stdout."""
    args = list(input_args) + ["-i", input_url]
    if frames is not None:
        args += ["-frames:v", str(int(frames))]
    args += ["-f", "image2pipe", "-pix_fmt", "yuvj420p", "-vcodec", "mjpeg", "-"]
    return args


class DecoderProcess:
    """
    External decoder (ffmpeg) feeding a FrameAssembler.

    stdout is pumped into the assembler on a daemon thread; stderr is drained
    into debug logs. When stdout hits EOF the assembler is told the stream
    ended, so pull consumers resolve instead of hanging.
    """

    def __init__(
        self,
        assembler: FrameAssembler,
        input_url: str,
        *,
        ffmpeg_path: str = "ffmpeg",
        input_args: Sequence[str] = (),
        frames: Optional[int] = None,
        stop_timeout_s: float = 2.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.assembler = assembler
        self.input_url = input_url
        self.ffmpeg_path = ffmpeg_path
        self.input_args = tuple(input_args)
        self.frames = frames
        self.stop_timeout_s = float(stop_timeout_s)
        self._log = logger or logging.getLogger(__name__)

        self._proc: Optional[subprocess.Popen] = None
        self._stdout_thread: Optional[threading.Thread] = None
        self._stderr_thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        proc = self._proc
        return proc is not None and proc.poll() is None

    @property
    def returncode(self) -> Optional[int]:
        proc = self._proc
        return proc.returncode if proc is not None else None

    def resolve_binary(self) -> str:
        path = shutil.which(self.ffmpeg_path)
        if path is None:
            raise DecoderUnavailableError(
                f"ffmpeg binary not found: {self.ffmpeg_path!r}",
                hint="Install ffmpeg or set video.ffmpeg_path in the config.",
                details={"ffmpeg_path": self.ffmpeg_path},
            )
        return path

    def start(self) -> None:
        with self._lock:
            if self.is_running:
                return

            binary = self.resolve_binary()
            argv = [binary] + build_ffmpeg_args(
                self.input_url, input_args=self.input_args, frames=self.frames
            )

            self.assembler.reset()
            self.assembler.open()
            try:
                self._proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
            except OSError as e:
                self.assembler.end_stream(f"decoder failed to start: {e}")
                raise DecoderUnavailableError(
                    "Failed to start ffmpeg.",
                    hint=str(e),
                    details={"argv": argv},
                ) from None

            self._log.info("DECODER_STARTED pid=%s url=%s", self._proc.pid, self.input_url)

            self._stdout_thread = threading.Thread(
                target=self._pump_stdout, args=(self._proc,), daemon=True, name="telloclient-decoder-out"
            )
            self._stderr_thread = threading.Thread(
                target=self._drain_stderr, args=(self._proc,), daemon=True, name="telloclient-decoder-err"
            )
            self._stdout_thread.start()
            self._stderr_thread.start()

    def _pump_stdout(self, proc: subprocess.Popen) -> None:
        stream = proc.stdout
        try:
            while True:
                chunk = stream.read1(READ_CHUNK) if hasattr(stream, "read1") else stream.read(READ_CHUNK)
                if not chunk:
                    break
                self.assembler.feed(chunk)
        except (OSError, ValueError):
            # pipe closed under us by stop()
            self._log.debug("DECODER_STDOUT_CLOSED pid=%s", proc.pid)
        finally:
            code = proc.wait()
            self.assembler.end_stream(f"decoder exited (code={code})")
            self._log.info("DECODER_EXITED pid=%s code=%s", proc.pid, code)

    def _drain_stderr(self, proc: subprocess.Popen) -> None:
        stream = proc.stderr
        try:
            for line in stream:
                text = line.decode("utf-8", errors="replace").rstrip()
                if text:
                    # ffmpeg progress uses \r; keep the newest segment
                    self._log.debug("DECODER %s", text.split("\r")[-1])
        except (OSError, ValueError):
            self._log.debug("DECODER_STDERR_CLOSED pid=%s", proc.pid)

    def stop(self) -> None:
        """Interrupt ffmpeg, escalate to kill if it does not exit in time."""
        with self._lock:
            proc, self._proc = self._proc, None
        if proc is None:
            return

        if proc.poll() is None:
            try:
                proc.send_signal(signal.SIGINT)
                proc.wait(timeout=self.stop_timeout_s)
            except subprocess.TimeoutExpired:
                self._log.warning("DECODER_KILL pid=%s", proc.pid)
                proc.kill()
                proc.wait(timeout=self.stop_timeout_s)
            except OSError:
                self._log.exception("DECODER_STOP_FAILED pid=%s", proc.pid)

        for t in (self._stdout_thread, self._stderr_thread):
            if t is not None and t is not threading.current_thread():
                t.join(timeout=self.stop_timeout_s)
        self._stdout_thread = None
        self._stderr_thread = None

        self.assembler.end_stream(f"decoder stopped (code={proc.returncode})")
        self._log.info("DECODER_STOPPED pid=%s code=%s", proc.pid, proc.returncode)
