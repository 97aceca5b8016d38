"""Frame ingestion, storage, and grid tiling for tiled video playback."""

from .decode import FfmpegDecodeSource
from .errors import DecodeError, EmptyStreamError, FramesError, IngestionError, PipeClosedError
from .geometry import layout
from .ingest import FrameAccumulator, ingest
from .models import BYTES_PER_PIXEL, CellRect, GridSpec
from .store import FrameStore
from .tiles import crop_tile, frame_image

__all__ = [
    "BYTES_PER_PIXEL",
    "CellRect",
    "DecodeError",
    "EmptyStreamError",
    "FfmpegDecodeSource",
    "FrameAccumulator",
    "FrameStore",
    "FramesError",
    "GridSpec",
    "IngestionError",
    "PipeClosedError",
    "crop_tile",
    "frame_image",
    "ingest",
    "layout",
]
