"""
engine.py
---------
Process-wide wrapper around the ffmpeg executable.

The engine is loaded lazily: the first caller (or the web app at start-up)
resolves the binary and probes it, every other caller waits until that load
has finished. Operations never assume the engine is ready; they go through
``run`` which awaits readiness first.
"""
import enum
import logging
import shutil
import subprocess
import threading
from typing import Callable, List, Optional, Sequence

from . import config
from .errors import EngineError, EngineUnavailableError

logger = logging.getLogger(__name__)

LogListener = Callable[[str], None]


class EngineState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class TranscodeEngine:
    """Command-execution capability over ffmpeg."""

    def __init__(self, binary: str = config.FFMPEG_BIN, timeout_sec: float = config.ENGINE_TIMEOUT_SEC):
        self.binary = binary
        self.timeout_sec = timeout_sec
        self.state = EngineState.UNINITIALIZED
        self.version = ""
        self._path: Optional[str] = None
        self._failure = ""
        self._lock = threading.Lock()
        self._loaded = threading.Event()
        self._listeners: List[LogListener] = []

    def on_log(self, listener: LogListener):
        """Register a callback receiving every stderr line of every run."""
        self._listeners.append(listener)

    def remove_log_listener(self, listener: LogListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def load(self) -> EngineState:
        """
        Resolve and probe the ffmpeg binary.

        Only the first call does any work; concurrent callers block until it
        has finished. Returns the resulting state.
        """
        with self._lock:
            if self.state is not EngineState.UNINITIALIZED:
                owner = False
            else:
                self.state = EngineState.LOADING
                owner = True
        if not owner:
            self._loaded.wait()
            return self.state

        try:
            path = shutil.which(self.binary)
            if path is None:
                raise FileNotFoundError(f"{self.binary} not found on PATH")
            probe = subprocess.run([path, "-version"], capture_output=True, text=True, timeout=30)
            if probe.returncode != 0:
                raise RuntimeError(probe.stderr.strip() or f"exit status {probe.returncode}")
            self._path = path
            self.version = probe.stdout.splitlines()[0] if probe.stdout else ""
            self.state = EngineState.READY
            logger.info("Transcoding engine ready: %s", self.version or path)
        except (OSError, RuntimeError, subprocess.TimeoutExpired) as e:
            self._failure = str(e)
            self.state = EngineState.FAILED
            logger.error("Transcoding engine failed to load: %s", e)
        finally:
            self._loaded.set()
        return self.state

    def load_in_background(self) -> threading.Thread:
        thread = threading.Thread(target=self.load, name="engine-load", daemon=True)
        thread.start()
        return thread

    def ensure_ready(self):
        """Block until the engine is loaded; raise if loading failed."""
        if self.load() is not EngineState.READY:
            raise EngineUnavailableError(
                f"Transcoding engine unavailable: {self._failure}", diagnostic=self._failure
            )

    def run(self, args: Sequence[str]) -> str:
        """
        Execute ffmpeg with ``args`` and return its stderr log.

        Raises:
            EngineError: non-zero exit status or timeout, with the stderr tail.
        """
        self.ensure_ready()
        cmd = [self._path, "-hide_banner", "-y", *[str(a) for a in args]]
        logger.info("Running: %s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout_sec)
        except subprocess.TimeoutExpired:
            raise EngineError(f"ffmpeg timed out after {self.timeout_sec:.0f}s")
        except OSError as e:
            raise EngineError(f"ffmpeg could not be started: {e}", diagnostic=str(e))

        stderr = result.stderr or ""
        for line in stderr.splitlines():
            logger.debug("ffmpeg: %s", line)
            for listener in list(self._listeners):
                listener(line)

        if result.returncode != 0:
            tail = "\n".join(stderr.strip().splitlines()[-10:])
            raise EngineError(f"ffmpeg exited with status {result.returncode}", diagnostic=tail)
        return stderr


_engine: Optional[TranscodeEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> TranscodeEngine:
    """Shared engine instance for the whole process."""
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = TranscodeEngine()
        return _engine
