"""
Configuration settings for StreamSync.

Every value can be overridden with a ``STREAMSYNC_<NAME>`` environment variable.
"""
import os
import tempfile


def _env(name, default):
    return os.environ.get("STREAMSYNC_" + name, default)


# Use system temp directory
TEMP_BASE = _env("TEMP_BASE", os.path.join(tempfile.gettempdir(), "streamsync"))

# Directories
UPLOAD_DIR = os.path.join(TEMP_BASE, "uploads")
PREVIEW_DIR = os.path.join(TEMP_BASE, "preview")
EXPORT_DIR = os.path.join(TEMP_BASE, "exports")
LOG_DIR = _env("LOG_DIR", "logs")

# Ensure directories exist
os.makedirs(UPLOAD_DIR, exist_ok=True)
os.makedirs(PREVIEW_DIR, exist_ok=True)
os.makedirs(EXPORT_DIR, exist_ok=True)

# Remote offset detection
ANALYSIS_URL = _env("ANALYSIS_URL", "http://172.236.110.221:5000/api/upload")
ANALYSIS_TIMEOUT_SEC = float(_env("ANALYSIS_TIMEOUT_SEC", "600"))
UPSTREAM_URL = _env("UPSTREAM_URL", ANALYSIS_URL)

# Accepted input
ALLOWED_EXTENSIONS = {"mp4", "webm", "mov", "mkv", "avi"}
CONVERT_EXTENSIONS = {"avi"}
MAX_UPLOAD_BYTES = 1024 * 1024 * 1024

# Manual offset control (milliseconds)
OFFSET_MIN_MS = -2000
OFFSET_MAX_MS = 2000
OFFSET_STEP_MS = 10

# Delay before the automatic preview that follows a detection
PREVIEW_SETTLE_MS = 400

# Transcoding engine
FFMPEG_BIN = _env("FFMPEG_BIN", "ffmpeg")
FFPLAY_BIN = _env("FFPLAY_BIN", "ffplay")
ENGINE_TIMEOUT_SEC = float(_env("ENGINE_TIMEOUT_SEC", "3600"))
ENCODE_PRESET = "veryfast"
VIDEO_CODEC = "libx264"
AUDIO_CODEC = "aac"

# Web UI
HOST = _env("HOST", "127.0.0.1")
PORT = int(_env("PORT", "5050"))
