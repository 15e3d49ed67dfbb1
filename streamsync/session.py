"""
session.py
----------
One user's offset-correction workflow.

The session owns the selected MediaAsset, the OffsetStore, the preview
controller and the collaborators used by the long-running operations. Every
public operation catches workflow errors at its boundary, logs the detail and
leaves a single user-visible message in ``error``.
"""
import logging
import os
import threading
from contextlib import contextmanager
from typing import Optional

from . import config
from .analysis import AnalysisClient, AnalysisResult
from .engine import TranscodeEngine, get_engine
from .errors import AnalysisError, BusyError, StreamSyncError, ValidationError
from .export import export as export_asset, output_path_for
from .media import MediaAsset, normalize, validate_file
from .offset_store import OffsetStore, to_control_value
from .playback import AUDIO, VIDEO, PlaybackStream
from .preview import PreviewController, timer_scheduler

logger = logging.getLogger(__name__)

UPLOAD_FAILED = "Upload failed."


class SyncSession:

    def __init__(self,
                 engine: Optional[TranscodeEngine] = None,
                 video=None,
                 audio=None,
                 analysis_client: Optional[AnalysisClient] = None,
                 scheduler=timer_scheduler,
                 preview_dir: str = config.PREVIEW_DIR,
                 export_dir: str = config.EXPORT_DIR):
        self.engine = engine or get_engine()
        self.offsets = OffsetStore()
        self.preview_controller = PreviewController(
            video or PlaybackStream(VIDEO),
            audio or PlaybackStream(AUDIO),
            self.offsets,
            scheduler=scheduler,
        )
        self.analysis = analysis_client or AnalysisClient(self.offsets, scheduler=scheduler)
        self.analysis.offsets = self.offsets
        self.analysis.preview = self
        self.preview_dir = preview_dir
        self.export_dir = export_dir

        self.asset: Optional[MediaAsset] = None
        self.last_result: Optional[AnalysisResult] = None
        self.output_path: Optional[str] = None
        self.error = ""
        self.message = ""
        self.engine_log = ""
        self._busy = set()
        self._lock = threading.Lock()
        self.engine.on_log(self._on_engine_log)

    # -- state helpers -------------------------------------------------

    def busy(self, kind: str) -> bool:
        return kind in self._busy

    @contextmanager
    def _operation(self, kind: str):
        with self._lock:
            if kind in self._busy:
                raise BusyError(f"{kind.capitalize()} is already running.")
            self._busy.add(kind)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(kind)

    def _fail(self, message: str, exc: Exception):
        logger.error("%s (%s)", message, exc, exc_info=True)
        self.error = message

    def _on_engine_log(self, line: str):
        self.engine_log = line

    # -- operations ----------------------------------------------------

    def select(self, path: str, name: Optional[str] = None, size: Optional[int] = None,
               analyze: bool = False) -> bool:
        """
        Register a new clip.

        Validation happens before the engine or the network is touched. The
        previous asset is released only once the new one is usable.
        """
        name = name or os.path.basename(path)
        try:
            with self._operation("select"):
                if size is not None:
                    validate_file(name, size)
                self.error = ""
                asset = normalize(path, name=name, engine=self.engine,
                                  preview_dir=self.preview_dir, on_progress=self._progress)
                self._replace_asset(asset)
        except ValidationError as e:
            logger.warning("Selection rejected: %s (%s)", name, e)
            self.error = str(e)
            return False
        except StreamSyncError as e:
            self._fail(str(e), e)
            return False

        logger.info("Selected %s (%d bytes, converted=%s)", asset.name, asset.size, asset.converted)
        if analyze:
            return self.analyze() is not None
        return True

    def _replace_asset(self, asset: MediaAsset):
        previous = self.asset
        self.analysis.cancel_auto_preview()
        self.preview_controller.detach()
        if previous is not None:
            previous.release()
        self.asset = asset
        self.offsets.reset()
        self.last_result = None
        self.output_path = None
        self.preview_controller.attach(asset.preview_path)

    def analyze(self) -> Optional[AnalysisResult]:
        if self.asset is None:
            return None
        try:
            with self._operation("analyze"):
                self.message = "Processing..."
                result = self.analysis.analyze(self.asset)
        except AnalysisError as e:
            self.message = ""
            self._fail(UPLOAD_FAILED, e)
            return None
        except BusyError as e:
            self._fail(str(e), e)
            return None

        self.last_result = result
        self.error = ""
        self.message = "Offset received. Use preview or save corrected version."
        logger.info(result.summary())
        return result

    def set_offset(self, ms: float) -> float:
        self.offsets.set_from_user(ms)
        return self.offsets.get()

    def preview(self):
        if self.busy("export"):
            self.error = "Export in progress, preview is unavailable."
            return
        self.preview_controller.preview()

    def stop(self):
        self.analysis.cancel_auto_preview()
        self.preview_controller.stop()

    def export(self, output_path: Optional[str] = None) -> Optional[str]:
        if self.asset is None:
            self.error = "Select a file first"
            return None
        try:
            with self._operation("export"):
                self.preview_controller.stop()
                self.message = "Saving corrected version..."
                offset_ms = self.offsets.get()
                path = export_asset(self.asset, offset_ms,
                                    output_path=output_path or self._default_output(),
                                    engine=self.engine)
        except StreamSyncError as e:
            self.message = ""
            self._fail(str(e), e)
            return None

        self.output_path = path
        self.error = ""
        self.message = f"Corrected version saved: {path}"
        return path

    def close(self):
        self.preview_controller.detach()
        if self.asset is not None:
            self.asset.release()
            self.asset = None
        self.engine.remove_log_listener(self._on_engine_log)

    def _default_output(self) -> str:
        return output_path_for(self.asset, self.export_dir)

    def _progress(self, text: str):
        self.message = text

    def snapshot(self):
        """JSON-ready view of the session for the web surface."""
        offset = self.offsets.get()
        return {
            "asset": self.asset.to_dict() if self.asset else None,
            "offset_ms": offset,
            "control_value": to_control_value(offset),
            "provenance": self.offsets.provenance.value,
            "offset_received": self.offsets.detection_received,
            "result": self.last_result.to_dict() if self.last_result else None,
            "preview_state": self.preview_controller.state.value,
            "output_ready": self.output_path is not None,
            "busy": sorted(self._busy),
            "engine": self.engine.state.value,
            "engine_log": self.engine_log,
            "message": self.message,
            "error": self.error,
        }
