"""
export.py
---------
Writes a copy of the clip with the offset baked in.

The source is opened twice. One instance is shifted with ``-itsoffset`` and
contributes the video, the other contributes the audio unshifted; both are
re-encoded into a single MP4. Offset 0 runs through the same path.
"""
import logging
import os
from typing import List, Optional

from . import config
from .engine import TranscodeEngine, get_engine
from .errors import EngineError, ExportError
from .media import MediaAsset
from .utils import ensure_dir, move_into_place, remove_quietly

logger = logging.getLogger(__name__)


def input_offset_seconds(offset_ms: float) -> float:
    """Input-level time offset applied to the video instance."""
    delay_seconds = abs(offset_ms) / 1000
    return -delay_seconds if offset_ms > 0 else delay_seconds


def build_export_args(input_path: str, offset_ms: float, output_path: str) -> List[str]:
    return [
        "-i", input_path,
        "-itsoffset", str(input_offset_seconds(offset_ms)),
        "-i", input_path,
        "-map", "1:v",
        "-map", "0:a",
        "-c:v", config.VIDEO_CODEC,
        "-c:a", config.AUDIO_CODEC,
        "-preset", config.ENCODE_PRESET,
        output_path,
    ]


def output_path_for(asset: MediaAsset, export_dir: str = config.EXPORT_DIR) -> str:
    stem = os.path.splitext(os.path.basename(asset.name))[0]
    return os.path.join(export_dir, f"{stem}_synced.mp4")


def export(asset: MediaAsset,
           offset_ms: float,
           output_path: Optional[str] = None,
           engine: Optional[TranscodeEngine] = None) -> str:
    """
    Remux ``asset`` with ``offset_ms`` applied.

    Always reads the original upload, never the preview copy.

    Returns:
        Path of the corrected file.
    Raises:
        ExportError: the engine failed; nothing is left at ``output_path``.
    """
    engine = engine or get_engine()
    output_path = output_path or output_path_for(asset)
    ensure_dir(os.path.dirname(os.path.abspath(output_path)))
    root, _ = os.path.splitext(output_path)
    partial_path = root + ".partial.mp4"

    logger.info("Exporting %s with offset %s ms -> %s", asset.name, offset_ms, output_path)
    try:
        engine.run(build_export_args(asset.path, offset_ms, partial_path))
        move_into_place(partial_path, output_path)
    except EngineError as e:
        remove_quietly(partial_path)
        raise ExportError(f"Export failed: {e}", diagnostic=e.diagnostic) from e
    except OSError as e:
        remove_quietly(partial_path)
        raise ExportError(f"Export failed: {e}", diagnostic=str(e)) from e
    return output_path
