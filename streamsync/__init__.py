"""
StreamSync: audio/video offset correction.

Detects (remotely), previews and bakes in the time skew between the audio and
the video of a single clip.
"""

__version__ = "0.1.0"
