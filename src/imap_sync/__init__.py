"""IMAP Sync - Download an IMAP folder to a directory of .eml files, once per message."""

import logging

from imap_sync.core.models import (
    FetchedMessage,
    FolderInfo,
    LocalMessageRecord,
    SyncProgress,
    SyncResult,
)
from imap_sync.core.naming import fingerprint, message_path
from imap_sync.pipeline.syncer import MailboxSyncer, sync

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "FetchedMessage",
    "FolderInfo",
    "LocalMessageRecord",
    "MailboxSyncer",
    "SyncProgress",
    "SyncResult",
    "fingerprint",
    "message_path",
    "sync",
]
