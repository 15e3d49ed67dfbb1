"""
preview.py
----------
Dual-stream preview controller.

Plays the video and the audio of the clip with a start-time skew equal to the
current offset: for a positive offset the video starts at once and the audio
joins ``offset`` ms later, for a negative one the audio goes first. At most one
delayed start (wake-up) is pending at any time; every preview() or stop()
cancels the previous one before doing anything else.
"""
import enum
import logging
import threading
from typing import Callable

from .offset_store import OffsetStore

logger = logging.getLogger(__name__)


class PreviewState(enum.Enum):
    IDLE = "idle"
    PLAYING = "playing"


def timer_scheduler(delay_sec: float, callback: Callable[[], None]):
    """Default scheduler: a daemon threading.Timer, already started."""
    timer = threading.Timer(delay_sec, callback)
    timer.daemon = True
    timer.start()
    return timer


class PreviewController:
    """
    Owns the two playback streams and the pending wake-up handle.

    Args:
        video: Stream showing the picture.
        audio: Stream playing the sound.
        offsets: Store read on every preview().
        scheduler: ``scheduler(delay_sec, callback)`` returning a handle with
            ``cancel()``.
    """

    def __init__(self, video, audio, offsets: OffsetStore, scheduler=timer_scheduler):
        self.video = video
        self.audio = audio
        self.offsets = offsets
        self.scheduler = scheduler
        self.state = PreviewState.IDLE
        self._pending = None
        # Bumped on every preview()/stop(); a wake-up from an older session is ignored.
        self._generation = 0
        self._lock = threading.RLock()

    @property
    def has_media(self) -> bool:
        return self.video.source is not None and self.audio.source is not None

    @property
    def has_pending_wakeup(self) -> bool:
        return self._pending is not None

    def attach(self, path: str):
        """Point both streams at a newly selected clip."""
        self.stop()
        self.video.load(path)
        self.audio.load(path)

    def detach(self):
        self.stop()
        self.video.release()
        self.audio.release()

    def preview(self):
        with self._lock:
            if not self.has_media:
                return
            self._cancel_pending()
            for stream in (self.video, self.audio):
                stream.pause()
                stream.rewind()

            delay_ms = float(self.offsets.get())
            if delay_ms >= 0:
                lead, lagging = self.video, self.audio
            else:
                lead, lagging = self.audio, self.video

            generation = self._generation
            lead.play()
            self._pending = self.scheduler(abs(delay_ms) / 1000.0, lambda: self._wake(generation, lagging))
            self.state = PreviewState.PLAYING
            logger.info("Preview started: %s first, %s after %.0f ms", lead.kind, lagging.kind, abs(delay_ms))

    def stop(self):
        with self._lock:
            self._cancel_pending()
            self.video.pause()
            self.audio.pause()
            self.state = PreviewState.IDLE

    def _cancel_pending(self):
        self._generation += 1
        pending, self._pending = self._pending, None
        if pending is not None:
            pending.cancel()

    def _wake(self, generation: int, stream):
        with self._lock:
            if generation != self._generation:
                return
            self._pending = None
            stream.play()
