"""Tests for the offset store."""
import pytest

from streamsync.offset_store import OffsetStore, Provenance, clamp_offset, to_control_value


class TestOffsetStore:

    def test_starts_at_zero(self, store):
        assert store.get() == 0
        assert store.provenance is Provenance.DEFAULT
        assert not store.detection_received

    def test_detection_is_stored_verbatim(self, store):
        store.set_from_detection(1234)
        assert store.get() == 1234
        assert store.provenance is Provenance.SERVER
        assert store.detection_received

    def test_detection_is_not_clamped_or_rounded(self, store):
        store.set_from_detection(2345.67)
        assert store.get() == 2345.67

    @pytest.mark.parametrize("value,expected", [
        (5000, 2000),
        (-5000, -2000),
        (2000, 2000),
        (-2000, -2000),
        (123, 123),
    ])
    def test_user_value_is_clamped(self, store, value, expected):
        store.set_from_user(value)
        assert store.get() == expected
        assert store.provenance is Provenance.USER

    def test_user_value_is_not_rounded_to_step(self, store):
        store.set_from_user(123.4)
        assert store.get() == 123.4

    def test_reset_clears_detection(self, store):
        store.set_from_detection(300)
        store.reset()
        assert store.get() == 0
        assert store.provenance is Provenance.DEFAULT
        assert not store.detection_received

    def test_listeners_are_notified(self, store):
        seen = []
        store.subscribe(lambda ms, provenance: seen.append((ms, provenance)))
        store.set_from_detection(40)
        store.set_from_user(-9000)
        assert seen == [(40, Provenance.SERVER), (-2000, Provenance.USER)]


class TestControlValue:

    def test_clamp(self):
        assert clamp_offset(2500) == 2000
        assert clamp_offset(-2500) == -2000

    def test_rounds_to_nearest_step(self):
        assert to_control_value(1234) == 1230
        assert to_control_value(1236) == 1240
        assert to_control_value(-44) == -40

    def test_clamps_before_rounding(self):
        assert to_control_value(4321.5) == 2000
