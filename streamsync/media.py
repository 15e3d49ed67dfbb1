"""
media.py
---------
The user's working file and the preview normalizer.

Functions:
- validate_file: rejects unsupported extensions and oversize files.
- normalize: produces a previewable copy of containers the preview surface
  cannot play, leaving the original upload untouched for analysis and export.
"""
import logging
import os
import tempfile
from dataclasses import dataclass
from typing import Callable, Optional

from . import config
from .engine import TranscodeEngine, get_engine
from .errors import EngineError, NormalizationError, ValidationError
from .utils import ensure_dir, file_extension, remove_quietly

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str], None]


@dataclass
class MediaAsset:
    """
    One selected clip.

    ``path`` is always the original upload. ``preview_path`` is what the
    preview streams play; it equals ``path`` unless a conversion took place.
    """
    name: str
    path: str
    size: int
    extension: str
    preview_path: str

    @property
    def converted(self) -> bool:
        return self.preview_path != self.path

    def release(self):
        """Drop the preview copy created for this asset, if any."""
        if self.converted:
            remove_quietly(self.preview_path)

    def to_dict(self):
        return {
            "name": self.name,
            "size": self.size,
            "extension": self.extension,
            "converted": self.converted,
        }


def validate_file(name: str, size: int) -> str:
    """
    Check a candidate file before any processing.

    Returns:
        The lower-cased extension.
    Raises:
        ValidationError: extension not accepted or file larger than 1 GiB.
    """
    ext = file_extension(name)
    if ext not in config.ALLOWED_EXTENSIONS:
        raise ValidationError("Unsupported file!")
    if size > config.MAX_UPLOAD_BYTES:
        raise ValidationError("Max file size is 1GB")
    return ext


def needs_conversion(name: str) -> bool:
    return file_extension(name) in config.CONVERT_EXTENSIONS


def preview_path_for(name: str, preview_dir: str) -> str:
    """Unique .mp4 path under ``preview_dir`` for one conversion."""
    stem = os.path.splitext(os.path.basename(name))[0]
    fd, path = tempfile.mkstemp(prefix=stem + "_", suffix=".mp4", dir=preview_dir)
    os.close(fd)
    return path


def normalize(path: str,
              name: Optional[str] = None,
              engine: Optional[TranscodeEngine] = None,
              preview_dir: str = config.PREVIEW_DIR,
              on_progress: Optional[ProgressCallback] = None) -> MediaAsset:
    """
    Wrap a selected file as a MediaAsset, converting it for preview if needed.

    Args:
        path: Location of the uploaded file.
        name: Display name (defaults to the basename of ``path``).
        engine: Transcoding engine, only touched when a conversion is needed.
        preview_dir: Where converted preview copies are written.
        on_progress: Receives advisory progress text.
    Raises:
        ValidationError: see validate_file.
        NormalizationError: the conversion failed.
    """
    name = name or os.path.basename(path)
    size = os.path.getsize(path)
    ext = validate_file(name, size)
    progress = on_progress or (lambda text: None)

    if not needs_conversion(name):
        return MediaAsset(name=name, path=path, size=size, extension=ext, preview_path=path)

    engine = engine or get_engine()
    ensure_dir(preview_dir)
    out_path = preview_path_for(name, preview_dir)

    progress(f"Converting {ext.upper()} → MP4 for preview...")
    logger.info("Converting %s for preview -> %s", name, out_path)
    try:
        engine.run([
            "-i", path,
            "-c:v", config.VIDEO_CODEC,
            "-preset", config.ENCODE_PRESET,
            out_path,
        ])
    except EngineError as e:
        remove_quietly(out_path)
        raise NormalizationError(f"Could not convert {name}: {e}", diagnostic=e.diagnostic) from e

    progress(f"{ext.upper()} converted successfully!")
    return MediaAsset(name=name, path=path, size=size, extension=ext, preview_path=out_path)
