"""Shared pytest fixtures for StreamSync tests."""
import os
from typing import List

import pytest

from streamsync.engine import EngineState
from streamsync.errors import EngineError
from streamsync.offset_store import OffsetStore


class FakeStream:
    """Playback stream that records play/pause calls instead of spawning ffplay."""

    def __init__(self, kind, clock=None):
        self.kind = kind
        self.clock = clock
        self.source = None
        self.playing = False
        self.position = 0.0
        self.events = []

    @property
    def is_playing(self):
        return self.playing

    def load(self, path):
        self.pause()
        self.source = path
        self.position = 0.0

    def play(self):
        self.playing = True
        self.events.append(("play", self.clock.now if self.clock else None))

    def pause(self):
        self.playing = False
        self.events.append(("pause", self.clock.now if self.clock else None))

    def rewind(self):
        self.position = 0.0
        self.events.append(("rewind", self.clock.now if self.clock else None))

    def release(self):
        self.pause()
        self.source = None

    def started_at(self) -> List[float]:
        return [t for name, t in self.events if name == "play"]


class ScheduledCall:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler driven by a manual clock; nothing fires until advance()."""

    def __init__(self):
        self.now = 0.0
        self.calls: List[ScheduledCall] = []

    def __call__(self, delay_sec, callback):
        call = ScheduledCall(self.now + delay_sec, callback)
        self.calls.append(call)
        return call

    @property
    def pending(self):
        return [c for c in self.calls if not c.cancelled and not c.fired]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [c for c in self.pending if c.due <= target]
            if not due:
                break
            call = min(due, key=lambda c: c.due)
            self.now = call.due
            call.fired = True
            call.callback()
        self.now = target


class FakeEngine:
    """Stands in for the ffmpeg wrapper; writes the output file it is asked for."""

    def __init__(self, fail=False, diagnostic="Invalid data found when processing input"):
        self.state = EngineState.READY
        self.fail = fail
        self.diagnostic = diagnostic
        self.calls = []
        self.listeners = []
        self.on_run = None

    def on_log(self, listener):
        self.listeners.append(listener)

    def remove_log_listener(self, listener):
        if listener in self.listeners:
            self.listeners.remove(listener)

    def run(self, args):
        self.calls.append(list(args))
        if self.on_run is not None:
            self.on_run(args)
        for listener in self.listeners:
            listener("frame=  10 fps=0.0")
        if self.fail:
            raise EngineError("ffmpeg exited with status 1", diagnostic=self.diagnostic)
        with open(args[-1], "wb") as fh:
            fh.write(b"encoded")
        return ""


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def streams(scheduler):
    return FakeStream("video", scheduler), FakeStream("audio", scheduler)


@pytest.fixture()
def store():
    return OffsetStore()


@pytest.fixture()
def engine():
    return FakeEngine()


@pytest.fixture()
def make_clip(tmp_path):
    def _make(name, content=b"\x00\x00\x00\x18ftypmp42"):
        path = os.path.join(str(tmp_path), name)
        with open(path, "wb") as fh:
            fh.write(content)
        return path
    return _make
