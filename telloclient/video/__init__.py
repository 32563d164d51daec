from .assembler import FrameAssembler, FrameIterator, JPEG_SOI, JPEG_EOI, MAX_BUFFER_BYTES
from .decoder import DecoderProcess, build_ffmpeg_args

__all__ = [
    "FrameAssembler", "FrameIterator", "JPEG_SOI", "JPEG_EOI", "MAX_BUFFER_BYTES",
    "DecoderProcess", "build_ffmpeg_args",
]
