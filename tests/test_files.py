"""Tests for the file primitives behind the stores."""

import os
import stat
from unittest.mock import patch

import numpy as np
import pytest

from kard.store.files import (
    DEFAULT_FILE_MODE,
    copy_atomic,
    decode_image,
    delete_quietly,
    encode_png,
    ensure_directory,
    read_bytes,
    read_bytes_or_none,
    write_atomic,
)
from kard.utils.error_handler import StorageError


class TestEnsureDirectory:

    def test_creates_parents(self, tmp_path):
        target = tmp_path / "a" / "b"
        assert ensure_directory(target) == target
        assert target.is_dir()

    def test_file_in_the_way(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x", encoding="utf-8")
        with pytest.raises(StorageError):
            ensure_directory(blocker)
        with pytest.raises(StorageError):
            ensure_directory(blocker / "child")


class TestAtomicWrites:
    """Test write-then-rename semantics."""

    def test_write_creates_and_replaces(self, tmp_path):
        target = tmp_path / "card.json"
        write_atomic(target, b"first")
        write_atomic(target, b"second")
        assert target.read_bytes() == b"second"

    def test_no_temporary_files_left(self, tmp_path):
        write_atomic(tmp_path / "card.json", b"data")
        assert [p.name for p in tmp_path.iterdir()] == ["card.json"]

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permission bits")
    def test_written_files_follow_umask(self, tmp_path):
        """Records and copies are readable like files created with open()."""
        mask = os.umask(0)
        os.umask(mask)
        expected = 0o666 & ~mask

        write_atomic(tmp_path / "card.json", b"data")
        source = tmp_path / "in.png"
        source.write_bytes(b"png")
        copy_atomic(source, tmp_path / "out.png")

        assert stat.S_IMODE((tmp_path / "card.json").stat().st_mode) == expected
        assert stat.S_IMODE((tmp_path / "out.png").stat().st_mode) == expected
        assert DEFAULT_FILE_MODE == expected

    def test_failed_replace_keeps_old_content(self, tmp_path):
        """A failure before the rename leaves the target untouched."""
        target = tmp_path / "card.json"
        target.write_bytes(b"old")

        with patch("kard.store.files.os.replace", side_effect=OSError("rename failed")):
            with pytest.raises(StorageError):
                write_atomic(target, b"new")

        assert target.read_bytes() == b"old"
        assert [p.name for p in tmp_path.iterdir()] == ["card.json"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(StorageError):
            write_atomic(tmp_path / "missing" / "card.json", b"data")

    def test_copy_overwrites_destination(self, tmp_path):
        source = tmp_path / "in.png"
        source.write_bytes(b"\x89PNG new")
        destination = tmp_path / "out.png"
        destination.write_bytes(b"old")

        copy_atomic(source, destination)

        assert destination.read_bytes() == b"\x89PNG new"
        assert source.exists()

    def test_copy_missing_source(self, tmp_path):
        with pytest.raises(StorageError):
            copy_atomic(tmp_path / "missing.png", tmp_path / "out.png")
        assert not (tmp_path / "out.png").exists()


class TestReadsAndDeletes:

    def test_read_bytes(self, tmp_path):
        path = tmp_path / "x"
        path.write_bytes(b"abc")
        assert read_bytes(path) == b"abc"
        assert read_bytes_or_none(path) == b"abc"

    def test_read_missing(self, tmp_path):
        with pytest.raises(StorageError):
            read_bytes(tmp_path / "missing")
        assert read_bytes_or_none(tmp_path / "missing") is None

    def test_delete_quietly(self, tmp_path):
        path = tmp_path / "x"
        path.write_bytes(b"abc")
        assert delete_quietly(path) is True
        assert delete_quietly(path) is False
        assert not os.path.exists(path)

    def test_delete_directory_is_not_raised(self, tmp_path):
        directory = tmp_path / "dir"
        directory.mkdir()
        assert delete_quietly(directory) is False
        assert directory.exists()


class TestImagePayloads:
    """Test image encoding and decoding."""

    def test_bytes_pass_through(self, png_bytes):
        assert encode_png(png_bytes) == png_bytes
        assert encode_png(bytearray(b"raw")) == b"raw"
        assert encode_png(memoryview(b"raw")) == b"raw"

    def test_array_encoded_as_png(self):
        image = np.zeros((4, 5), dtype=np.uint8)
        data = encode_png(image)
        assert data.startswith(b"\x89PNG\r\n\x1a\n")
        assert decode_image(data).shape == (4, 5)

    def test_alpha_channel_kept(self):
        image = np.zeros((3, 3, 4), dtype=np.uint8)
        image[..., 3] = 128
        decoded = decode_image(encode_png(image))
        assert decoded.shape == (3, 3, 4)
        assert (decoded[..., 3] == 128).all()

    def test_unsupported_payload(self):
        with pytest.raises(StorageError):
            encode_png("not an image")

    def test_decode_garbage(self):
        assert decode_image(b"") is None
        assert decode_image(b"definitely not a png") is None
