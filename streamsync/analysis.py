"""
analysis.py
-----------
Client for the remote offset-detection service.

The original upload is posted as a single multipart field ``video``; the
service answers with ``{offset_frames, confidence, offset_ms}``. A detected
offset is written to the OffsetStore and, after a short settling delay, the
preview is started so the corrected alignment is shown right away.
"""
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from . import config
from .errors import AnalysisError
from .media import MediaAsset
from .offset_store import OffsetStore
from .preview import timer_scheduler

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Response of the detection service."""

    offset_frames: Optional[float]
    confidence: Optional[float]
    offset_ms: Optional[float]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        offset_ms = data.get("offset_ms")
        if offset_ms is None:
            offset_ms = data.get("offsetMs")
        return cls(
            offset_frames=_number(data, "offset_frames"),
            confidence=_number(data, "confidence"),
            offset_ms=None if offset_ms is None else float(offset_ms),
        )

    def summary(self) -> str:
        return (f"Sync Complete! Frames: {self.offset_frames} "
                f"Confidence: {self.confidence} Offset(ms): {self.offset_ms}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "offset_frames": self.offset_frames,
            "confidence": self.confidence,
            "offset_ms": self.offset_ms,
        }


def _number(data: Dict[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    return None if value is None else float(value)


class AnalysisClient:
    """
    Uploads clips for offset detection.

    Args:
        offsets: Store updated with the detected offset.
        preview: Controller whose preview() is invoked after a detection.
        url: Detection endpoint.
        settle_ms: Delay before the automatic preview.
        scheduler: Same contract as PreviewController's scheduler.
    """

    def __init__(self,
                 offsets: OffsetStore,
                 preview=None,
                 url: str = config.ANALYSIS_URL,
                 timeout_sec: float = config.ANALYSIS_TIMEOUT_SEC,
                 settle_ms: float = config.PREVIEW_SETTLE_MS,
                 scheduler=timer_scheduler,
                 session: Optional[requests.Session] = None):
        self.offsets = offsets
        self.preview = preview
        self.url = url
        self.timeout_sec = timeout_sec
        self.settle_ms = settle_ms
        self.scheduler = scheduler
        self.http = session or requests.Session()
        self._auto_preview = None

    def analyze(self, asset: MediaAsset) -> AnalysisResult:
        """
        Send the original upload of ``asset`` for detection.

        Raises:
            AnalysisError: network failure, non-2xx status or malformed body.
        """
        logger.info("Uploading %s (%d bytes) to %s", asset.name, asset.size, self.url)
        try:
            with open(asset.path, "rb") as fh:
                response = self.http.post(
                    self.url,
                    files={"video": (os.path.basename(asset.name), fh)},
                    timeout=self.timeout_sec,
                )
        except (requests.RequestException, OSError) as e:
            raise AnalysisError(f"Upload failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise AnalysisError(
                f"Malformed response (status {response.status_code})", status_code=response.status_code
            ) from e

        if not response.ok:
            detail = data.get("error") if isinstance(data, dict) else None
            raise AnalysisError(
                f"Server error {response.status_code}: {detail or 'unknown error'}",
                status_code=response.status_code,
            )
        if not isinstance(data, dict):
            raise AnalysisError("Malformed response: expected a JSON object", status_code=response.status_code)

        try:
            result = AnalysisResult.from_dict(data)
        except (TypeError, ValueError) as e:
            raise AnalysisError(f"Malformed response: {e}", status_code=response.status_code) from e

        logger.info("Detection result for %s: %s", asset.name, result.to_dict())
        if result.offset_ms is not None:
            self.offsets.set_from_detection(result.offset_ms)
            if self.preview is not None:
                self._schedule_preview()
        return result

    def _schedule_preview(self):
        self.cancel_auto_preview()
        handle = None

        def fire():
            if self._auto_preview is not handle:
                return
            self._auto_preview = None
            self.preview.preview()

        handle = self.scheduler(self.settle_ms / 1000.0, fire)
        self._auto_preview = handle

    def cancel_auto_preview(self):
        """Drop a pending post-detection preview, if any."""
        pending, self._auto_preview = self._auto_preview, None
        if pending is not None:
            pending.cancel()
