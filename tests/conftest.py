"""Shared fixtures for IMAP sync tests."""

from __future__ import annotations

import hashlib
from collections.abc import Callable, Generator, Iterable
from pathlib import Path
from typing import Any

import pytest

from imap_sync.config.settings import ImapSyncSettings
from imap_sync.core.models import FetchedMessage, FolderInfo

ENV_VARS = (
    "IMAP_SERVER",
    "IMAP_USERNAME",
    "IMAP_PASSWORD",
    "IMAP_MAILBOX",
    "IMAP_MESSAGES_DIR",
    "IMAP_LOG_LEVEL",
    "IMAP_TIMEOUT_SECONDS",
    "IMAP_STOP_ON_ERROR",
)


def expected_filename(message_id: str) -> str:
    """Reference file name: hex of the first 31 bytes of SHA-512, plus .eml."""
    return hashlib.sha512(message_id.encode("utf-8")).digest()[:31].hex() + ".eml"


class FakeSession:
    """In-memory stand-in for ImapSession."""

    def __init__(
        self,
        messages: Iterable[FetchedMessage] = (),
        *,
        select_error: Exception | None = None,
        stream_error: Exception | None = None,
        close_error: Exception | None = None,
        before_next: Callable[[FetchedMessage], None] | None = None,
    ) -> None:
        self.messages = list(messages)
        self.select_error = select_error
        self.stream_error = stream_error
        self.close_error = close_error
        self.before_next = before_next
        self.selected: str | None = None
        self.closed = False
        self.yielded: list[int] = []

    def select(self, folder: str) -> FolderInfo:
        if self.select_error:
            raise self.select_error
        self.selected = folder
        return FolderInfo(name=folder, exists=len(self.messages))

    def stream_messages(self) -> Generator[FetchedMessage, None, None]:
        previous: FetchedMessage | None = None
        for message in self.messages:
            if previous is not None and self.before_next:
                self.before_next(previous)
            self.yielded.append(message.uid)
            yield message
            previous = message
        if self.stream_error:
            raise self.stream_error

    def close(self) -> None:
        self.closed = True
        if self.close_error:
            raise self.close_error


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep IMAP_* variables and any local .env file out of the tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def messages_dir(tmp_path: Path) -> Path:
    """Target directory for synced messages (not created yet)."""
    return tmp_path / "mail" / "messages"


@pytest.fixture
def settings(messages_dir: Path) -> ImapSyncSettings:
    """Settings pointing to a temporary messages directory."""
    return ImapSyncSettings(
        server="mail.example.com:993",
        username="alice@example.com",
        password="secret",
        mailbox="INBOX",
        messages_dir=messages_dir,
    )


@pytest.fixture
def make_message() -> Callable[..., FetchedMessage]:
    """Factory for FetchedMessage objects."""

    def _make(uid: int, message_id: str | None = None, body: bytes | None = None) -> FetchedMessage:
        return FetchedMessage(
            uid=uid,
            message_id=f"<msg{uid}@example.com>" if message_id is None else message_id,
            body=body if body is not None else f"Subject: test {uid}\r\n\r\nBody {uid}\r\n".encode(),
            subject=f"test {uid}",
        )

    return _make


@pytest.fixture
def session_factory() -> Callable[[FakeSession], Callable[..., Any]]:
    """Wrap a FakeSession into a session factory that records its call arguments."""

    def _factory(session: FakeSession) -> Callable[..., Any]:
        def connect(*args: Any, **kwargs: Any) -> FakeSession:
            connect.calls.append((args, kwargs))  # type: ignore[attr-defined]
            return session

        connect.calls = []  # type: ignore[attr-defined]
        return connect

    return _factory
