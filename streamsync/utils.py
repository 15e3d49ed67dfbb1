"""
utils.py
---------
Helper utilities for file handling and logging.
"""

import os
import logging
import logging.handlers
import shutil
import subprocess

from . import config


def ffmpeg_exists(binary: str = config.FFMPEG_BIN) -> bool:
    try:
        subprocess.run([binary, "-version"], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        return True
    except FileNotFoundError:
        return False


def ensure_dir(path: str):
    """Create directory if it doesn't exist."""
    os.makedirs(path, exist_ok=True)


def remove_quietly(path: str):
    """Delete a file if it is still there."""
    if path and os.path.exists(path):
        try:
            os.remove(path)
        except OSError as e:
            logging.getLogger(__name__).warning("Could not remove %s: %s", path, e)


def file_extension(name: str) -> str:
    """Lower-cased extension without the dot ('' when there is none)."""
    return os.path.splitext(name)[1].lstrip(".").lower()


def move_into_place(src: str, dst: str):
    ensure_dir(os.path.dirname(dst) or ".")
    shutil.move(src, dst)


def configure_logging(log_dir: str = config.LOG_DIR, level: int = logging.INFO):
    """Setup centralized logging to file and console."""
    ensure_dir(log_dir)
    log_file = os.path.join(log_dir, "streamsync.log")

    # Format: Time - LoggerName - Level - Message
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    # 1. Rotating File Handler (10MB, 5 backups)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=10*1024*1024, backupCount=5
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    # 2. Console Handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    # Clean up any existing handlers to avoid duplication
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.info("Logging initialized. Writing to %s", log_file)
    return log_file
