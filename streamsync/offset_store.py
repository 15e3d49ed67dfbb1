"""
offset_store.py
---------------
Single source of truth for the audio/video offset in milliseconds.

Positive values mean the audio lags the video and has to be delayed,
negative values mean the audio leads.
"""
import enum
import logging
import threading
from typing import Callable, List

from . import config

logger = logging.getLogger(__name__)


class Provenance(enum.Enum):
    DEFAULT = "default"
    SERVER = "server"
    USER = "user"


Listener = Callable[[float, Provenance], None]


def clamp_offset(ms: float) -> float:
    return max(config.OFFSET_MIN_MS, min(config.OFFSET_MAX_MS, ms))


def to_control_value(ms: float) -> int:
    """Value a stepped slider would display for ``ms``."""
    step = config.OFFSET_STEP_MS
    return int(round(clamp_offset(ms) / step) * step)


class OffsetStore:
    """Holds the current candidate offset and where it came from."""

    def __init__(self):
        self._value = 0
        self._provenance = Provenance.DEFAULT
        self._detection_received = False
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener):
        self._listeners.append(listener)

    def get(self) -> float:
        with self._lock:
            return self._value

    @property
    def provenance(self) -> Provenance:
        return self._provenance

    @property
    def detection_received(self) -> bool:
        """True once a detected offset has been stored for the current asset."""
        return self._detection_received

    def set_from_detection(self, ms: float):
        # Stored verbatim; the control reconciles it with its own bounds.
        self._set(ms, Provenance.SERVER)
        self._detection_received = True

    def set_from_user(self, ms: float):
        self._set(clamp_offset(ms), Provenance.USER)

    def reset(self):
        """Back to 0 for a freshly selected asset."""
        with self._lock:
            self._detection_received = False
        self._set(0, Provenance.DEFAULT)

    def _set(self, ms, provenance: Provenance):
        with self._lock:
            self._value = ms
            self._provenance = provenance
        logger.debug("Offset set to %s ms (%s)", ms, provenance.value)
        for listener in list(self._listeners):
            listener(ms, provenance)
