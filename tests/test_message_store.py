"""Tests for MessageStore — saves raw message bytes to .eml files."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import expected_filename

from imap_sync.core.exceptions import DirectoryError, WriteError
from imap_sync.storage.message_store import MessageStore


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestEnsureDirectory:
    """ensure_directory() creates the messages directory if it does not exist."""

    def test_creates_nested_directory(self, messages_dir: Path) -> None:
        MessageStore(messages_dir).ensure_directory()
        assert messages_dir.is_dir()

    def test_owner_only_permissions(self, messages_dir: Path) -> None:
        MessageStore(messages_dir).ensure_directory()
        assert _mode(messages_dir) & 0o077 == 0
        assert _mode(messages_dir.parent) & 0o077 == 0

    def test_existing_parents_keep_their_mode(self, tmp_path: Path) -> None:
        parent = tmp_path / "shared"
        parent.mkdir()
        parent.chmod(0o755)

        MessageStore(parent / "messages").ensure_directory()

        assert _mode(parent) == 0o755
        assert _mode(parent / "messages") & 0o077 == 0

    def test_existing_directory_is_fine(self, tmp_path: Path) -> None:
        store = MessageStore(tmp_path)
        store.ensure_directory()
        store.ensure_directory()
        assert tmp_path.is_dir()

    def test_parent_is_a_file_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(DirectoryError, match="Error creating email directory"):
            MessageStore(blocker / "messages").ensure_directory()


class TestRecordFor:
    """record_for() resolves the path and checks existence once."""

    def test_missing_file(self, tmp_path: Path) -> None:
        record = MessageStore(tmp_path).record_for("<abc@example.com>")

        assert record.exists is False
        assert record.path == tmp_path / expected_filename("<abc@example.com>")
        assert record.fingerprint == record.path.stem

    def test_existing_file(self, tmp_path: Path) -> None:
        (tmp_path / expected_filename("<abc@example.com>")).write_bytes(b"old")

        record = MessageStore(tmp_path).record_for("<abc@example.com>")

        assert record.exists is True


class TestWrite:
    """write() publishes the full body atomically and never clobbers."""

    def test_content_preserved_exactly(self, tmp_path: Path) -> None:
        store = MessageStore(tmp_path)
        body = b"From: a@example.com\r\nSubject: Hi\r\n\r\nBody \xff\xfe bytes\r\n"
        path = store.write(tmp_path / "m.eml", body)

        assert path.read_bytes() == body

    def test_file_permissions(self, tmp_path: Path) -> None:
        path = MessageStore(tmp_path).write(tmp_path / "m.eml", b"Hello")
        assert _mode(path) == 0o600

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        MessageStore(tmp_path).write(tmp_path / "m.eml", b"Hello")
        assert [p.name for p in tmp_path.iterdir()] == ["m.eml"]

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        target = tmp_path / "m.eml"
        target.write_bytes(b"original")

        with pytest.raises(WriteError, match="Refusing to overwrite"):
            MessageStore(tmp_path).write(target, b"replacement")

        assert target.read_bytes() == b"original"
        assert [p.name for p in tmp_path.iterdir()] == ["m.eml"]

    def test_failed_write_leaves_nothing_behind(self, tmp_path: Path) -> None:
        target = tmp_path / "m.eml"

        with patch("imap_sync.storage.message_store.os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(WriteError, match="disk full"):
                MessageStore(tmp_path).write(target, b"Hello")

        assert not target.exists()
        assert list(tmp_path.iterdir()) == []

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        target = tmp_path / "absent" / "m.eml"
        with pytest.raises(WriteError):
            MessageStore(tmp_path / "absent").write(target, b"Hello")

    def test_empty_body(self, tmp_path: Path) -> None:
        path = MessageStore(tmp_path).write(tmp_path / "empty.eml", b"")
        assert path.read_bytes() == b""
        assert os.path.getsize(path) == 0
