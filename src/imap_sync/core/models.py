"""Frozen dataclasses for the IMAP sync domain model."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class FetchedMessage:
    """A single message as streamed from the server."""

    uid: int
    message_id: str
    body: bytes
    subject: str = ""


@dataclass(frozen=True)
class FolderInfo:
    """Selected folder state reported by the server."""

    name: str
    exists: int = 0
    uid_validity: int | None = None
    read_only: bool = True


@dataclass(frozen=True)
class LocalMessageRecord:
    """Where a message lives on disk and whether it was already there."""

    fingerprint: str
    path: Path
    exists: bool


@dataclass(frozen=True)
class SyncResult:
    """Paths of previously downloaded and newly written messages, in server order.

    Only messages still present on the server are listed.
    """

    existing_emails: tuple[Path, ...] = field(default_factory=tuple)
    new_emails: tuple[Path, ...] = field(default_factory=tuple)

    @property
    def total(self) -> int:
        return len(self.existing_emails) + len(self.new_emails)


@dataclass
class SyncProgress:
    """Mutable progress tracker for sync status reporting."""

    messages_seen: int = 0
    messages_new: int = 0
    messages_existing: int = 0
    messages_failed: int = 0
    current_stage: str = "idle"
