"""
playback.py
-----------
Host-side playback streams for the dual-stream preview.

Each stream plays one side of the clip through its own ffplay process: the
video stream without audio, the audio stream without a window. Pausing kills
the process and remembers how far it got, so the next play resumes there.
"""
import logging
import subprocess
import threading
import time
from typing import Optional

from . import config
from .utils import ffmpeg_exists

logger = logging.getLogger(__name__)

VIDEO = "video"
AUDIO = "audio"


def ffplay_exists() -> bool:
    return ffmpeg_exists(config.FFPLAY_BIN)


class PlaybackStream:
    """One playback-capable handle (video-only or audio-only)."""

    def __init__(self, kind: str, binary: str = config.FFPLAY_BIN):
        if kind not in (VIDEO, AUDIO):
            raise ValueError(f"Unknown stream kind: {kind}")
        self.kind = kind
        self.binary = binary
        self.source: Optional[str] = None
        self._position = 0.0
        self._started_at: Optional[float] = None
        self._proc: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    @property
    def is_playing(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    @property
    def current_time(self) -> float:
        with self._lock:
            if self._started_at is None:
                return self._position
            return self._position + (time.monotonic() - self._started_at)

    def load(self, path: str):
        self.pause()
        self.source = path
        self._position = 0.0

    def _command(self):
        cmd = [self.binary, "-autoexit", "-loglevel", "error", "-ss", f"{self._position:.3f}"]
        if self.kind == VIDEO:
            cmd += ["-an", "-window_title", "StreamSync preview"]
        else:
            cmd += ["-vn", "-nodisp"]
        return cmd + [self.source]

    def play(self):
        with self._lock:
            if self.source is None or self.is_playing:
                return
            self._proc = subprocess.Popen(
                self._command(), stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL
            )
            self._started_at = time.monotonic()
        logger.debug("%s stream playing from %.3fs", self.kind, self._position)

    def pause(self):
        with self._lock:
            if self._started_at is not None:
                self._position += time.monotonic() - self._started_at
                self._started_at = None
            proc, self._proc = self._proc, None
        if proc is not None and proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=2)
            except subprocess.TimeoutExpired:
                proc.kill()

    def rewind(self):
        with self._lock:
            self._position = 0.0
            if self._started_at is not None:
                self._started_at = time.monotonic()

    def release(self):
        self.pause()
        self.source = None
        self._position = 0.0
