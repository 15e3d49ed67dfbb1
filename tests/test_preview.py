"""Tests for the dual-stream preview controller."""
import pytest

from streamsync.preview import PreviewController, PreviewState


@pytest.fixture()
def controller(streams, store, scheduler):
    video, audio = streams
    ctl = PreviewController(video, audio, store, scheduler=scheduler)
    ctl.attach("clip.mp4")
    return ctl


class TestPreview:

    @pytest.mark.parametrize("offset", [10, 300, 1234, 2000])
    def test_positive_offset_delays_audio(self, controller, store, scheduler, offset):
        store.set_from_user(offset)
        controller.preview()

        assert controller.video.is_playing
        assert not controller.audio.is_playing

        scheduler.advance(offset / 1000.0 - 0.001)
        assert not controller.audio.is_playing

        scheduler.advance(0.002)
        assert controller.audio.is_playing
        assert controller.video.started_at() == [0.0]
        assert controller.audio.started_at() == [pytest.approx(offset / 1000.0)]

    @pytest.mark.parametrize("offset", [-10, -300, -2000])
    def test_negative_offset_delays_video(self, controller, store, scheduler, offset):
        store.set_from_user(offset)
        controller.preview()

        assert controller.audio.is_playing
        assert not controller.video.is_playing

        scheduler.advance(abs(offset) / 1000.0)
        assert controller.video.is_playing
        assert controller.video.started_at() == [pytest.approx(abs(offset) / 1000.0)]

    def test_zero_offset_starts_both_together(self, controller, scheduler):
        controller.preview()
        scheduler.advance(0)
        assert controller.video.started_at() == [0.0]
        assert controller.audio.started_at() == [0.0]

    def test_preview_rewinds_both_streams(self, controller):
        controller.video.position = 5.0
        controller.audio.position = 7.0
        controller.preview()
        assert controller.video.position == 0.0
        assert controller.audio.position == 0.0
        assert controller.state is PreviewState.PLAYING

    def test_uses_unclamped_detected_offset(self, controller, store, scheduler):
        store.set_from_detection(2500)
        controller.preview()
        scheduler.advance(2.499)
        assert not controller.audio.is_playing
        scheduler.advance(0.002)
        assert controller.audio.is_playing

    def test_without_media_does_nothing(self, streams, store, scheduler):
        video, audio = streams
        ctl = PreviewController(video, audio, store, scheduler=scheduler)
        ctl.preview()
        assert ctl.state is PreviewState.IDLE
        assert scheduler.calls == []


class TestReentrancy:

    def test_second_preview_supersedes_first_wakeup(self, controller, store, scheduler):
        store.set_from_user(500)
        controller.preview()
        scheduler.advance(0.2)
        controller.preview()

        assert len(scheduler.pending) == 1

        # The first wake-up would have been due at 0.5s.
        scheduler.advance(0.35)
        assert not controller.audio.is_playing

        scheduler.advance(0.2)
        assert controller.audio.is_playing
        assert controller.audio.started_at() == [pytest.approx(0.7)]

    def test_stale_wakeup_is_ignored_even_if_it_fires(self, controller, store, scheduler):
        store.set_from_user(500)
        controller.preview()
        stale = scheduler.calls[-1]
        controller.stop()

        # A timer thread that already started running cannot be cancelled.
        stale.callback()
        assert not controller.audio.is_playing

    def test_stop_pauses_and_cancels(self, controller, store, scheduler):
        store.set_from_user(-800)
        controller.preview()
        controller.stop()

        assert controller.state is PreviewState.IDLE
        assert not controller.video.is_playing
        assert not controller.audio.is_playing
        assert not controller.has_pending_wakeup
        assert scheduler.pending == []

        scheduler.advance(5)
        assert not controller.video.is_playing
        assert not controller.audio.is_playing

    def test_stop_keeps_position(self, controller, store):
        controller.preview()
        controller.video.position = 3.0
        controller.stop()
        assert controller.video.position == 3.0

    def test_preview_never_mutates_offset(self, controller, store, scheduler):
        store.set_from_detection(321)
        controller.preview()
        scheduler.advance(1)
        controller.stop()
        assert store.get() == 321
