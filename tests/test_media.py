"""Tests for file validation and preview normalization."""
import os
from unittest.mock import patch

import pytest

from streamsync.errors import NormalizationError, ValidationError
from streamsync.media import needs_conversion, normalize, validate_file

GIB = 1024 * 1024 * 1024


class TestValidateFile:

    @pytest.mark.parametrize("name", ["clip.mp4", "clip.WEBM", "a.b.mov", "clip.Mkv", "clip.AVI"])
    def test_accepts_supported_extensions(self, name):
        assert validate_file(name, 1024) == os.path.splitext(name)[1][1:].lower()

    @pytest.mark.parametrize("name", ["notes.txt", "clip", "clip.mp3", "clip.mp4.exe"])
    def test_rejects_other_extensions(self, name):
        with pytest.raises(ValidationError, match="Unsupported file!"):
            validate_file(name, 1024)

    def test_rejects_oversize(self):
        with pytest.raises(ValidationError, match="Max file size is 1GB"):
            validate_file("clip.mp4", 2 * GIB)

    def test_accepts_exactly_one_gib(self):
        assert validate_file("clip.mp4", GIB) == "mp4"


class TestNormalize:

    def test_mp4_is_not_converted(self, make_clip, engine, tmp_path):
        path = make_clip("clip.mp4")
        asset = normalize(path, engine=engine, preview_dir=str(tmp_path / "preview"))

        assert engine.calls == []
        assert asset.path == path
        assert asset.preview_path == path
        assert not asset.converted

    @pytest.mark.parametrize("name", ["clip.avi", "clip.AVI", "clip.Avi"])
    def test_avi_is_converted_for_preview(self, make_clip, engine, tmp_path, name):
        path = make_clip(name)
        preview_dir = str(tmp_path / "preview")
        progress = []
        asset = normalize(path, engine=engine, preview_dir=preview_dir, on_progress=progress.append)

        assert len(engine.calls) == 1
        args = engine.calls[0]
        assert args[:2] == ["-i", path]
        assert "libx264" in args and "veryfast" in args
        assert os.path.dirname(asset.preview_path) == preview_dir
        assert os.path.basename(asset.preview_path).startswith("clip_")
        assert asset.preview_path.endswith(".mp4")
        assert os.path.exists(asset.preview_path)
        # The original upload stays the asset used for analysis and export.
        assert asset.path == path
        assert asset.converted
        assert progress[0].startswith("Converting")
        assert progress[-1].endswith("converted successfully!")

    def test_conversion_failure_raises_with_diagnostic(self, make_clip, tmp_path):
        from conftest import FakeEngine
        engine = FakeEngine(fail=True, diagnostic="moov atom not found")
        path = make_clip("broken.avi")

        with pytest.raises(NormalizationError) as excinfo:
            normalize(path, engine=engine, preview_dir=str(tmp_path / "preview"))
        assert excinfo.value.diagnostic == "moov atom not found"

    def test_txt_rejected_before_engine(self, make_clip, engine, tmp_path):
        path = make_clip("notes.txt")
        with pytest.raises(ValidationError):
            normalize(path, engine=engine, preview_dir=str(tmp_path))
        assert engine.calls == []

    def test_oversize_rejected_before_engine(self, make_clip, engine, tmp_path):
        path = make_clip("big.avi")
        with patch("streamsync.media.os.path.getsize", return_value=2 * GIB):
            with pytest.raises(ValidationError, match="1GB"):
                normalize(path, engine=engine, preview_dir=str(tmp_path))
        assert engine.calls == []

    def test_release_removes_only_preview_copy(self, make_clip, engine, tmp_path):
        path = make_clip("clip.avi")
        asset = normalize(path, engine=engine, preview_dir=str(tmp_path / "preview"))
        asset.release()
        assert not os.path.exists(asset.preview_path)
        assert os.path.exists(path)

    def test_needs_conversion(self):
        assert needs_conversion("x.AVI")
        assert not needs_conversion("x.mkv")

    def test_same_stem_conversions_get_distinct_copies(self, engine, tmp_path):
        first_dir, second_dir = tmp_path / "a", tmp_path / "b"
        first_dir.mkdir()
        second_dir.mkdir()
        (first_dir / "clip.avi").write_bytes(b"one")
        (second_dir / "clip.AVI").write_bytes(b"two")
        preview_dir = str(tmp_path / "preview")

        first = normalize(str(first_dir / "clip.avi"), engine=engine, preview_dir=preview_dir)
        second = normalize(str(second_dir / "clip.AVI"), engine=engine, preview_dir=preview_dir)
        assert first.preview_path != second.preview_path
