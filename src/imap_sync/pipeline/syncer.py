"""Sync orchestrator: connect → select → stream → classify → write."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from imap_sync.config.settings import ImapSyncSettings, load_settings
from imap_sync.core.exceptions import ConfigError, ImapSyncError, LogoutError
from imap_sync.core.imap_client import ImapSession
from imap_sync.core.models import FetchedMessage, SyncProgress, SyncResult
from imap_sync.storage.message_store import MessageStore

SessionFactory = Callable[..., ImapSession]


class MailboxSyncer:
    """Downloads every not-yet-stored message of one IMAP folder.

    Each message is identified by its Message-ID and stored under a file name
    derived from it. A file that already exists is taken as proof of an
    earlier successful download and is never re-fetched or rewritten.
    """

    def __init__(
        self,
        settings: ImapSyncSettings | None = None,
        *,
        session_factory: SessionFactory | None = None,
        store: MessageStore | None = None,
        logger: logging.Logger | None = None,
        on_progress: Callable[[SyncProgress], None] | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._session_factory = session_factory or ImapSession.connect
        self._store = store or MessageStore(self._settings.messages_dir)
        self._log = logger or logging.getLogger(__name__)
        self._on_progress = on_progress
        self._progress = SyncProgress()

    @property
    def progress(self) -> SyncProgress:
        return self._progress

    @property
    def on_progress(self) -> Callable[[SyncProgress], None] | None:
        return self._on_progress

    @on_progress.setter
    def on_progress(self, callback: Callable[[SyncProgress], None] | None) -> None:
        self._on_progress = callback

    def sync(self, password: str | None = None) -> SyncResult:
        """Run one sync pass.

        Args:
            password: Login password (defaults to settings.password).

        Returns:
            SyncResult listing existing and newly written paths in server order.

        Raises:
            ConfigError: If required settings are missing.
            ImapSyncError: On any directory, network, auth, folder, stream or
                write failure. Logout failures are only logged.
        """
        settings = self._settings
        settings.validate_required()
        if password is None:
            password = settings.password_value()
        if password is None:
            raise ConfigError("No password given")

        self._progress = SyncProgress(current_stage="connect")
        self._notify()

        try:
            self._store.ensure_directory()

            self._log.debug(
                "Connecting to server %s as %s", settings.server, settings.username
            )
            session = self._session_factory(
                settings.server,
                settings.username,
                password,
                timeout=settings.timeout_seconds,
            )

            try:
                result = self._sync_folder(session, settings.mailbox)
            finally:
                try:
                    session.close()
                except LogoutError as e:
                    self._log.error(
                        "Error on logout from server %s (user %s): %s",
                        settings.server, settings.username, e,
                    )
        except ImapSyncError as e:
            self._progress.current_stage = f"error: {e}"
            self._notify()
            raise

        self._progress.current_stage = "complete"
        self._notify()
        self._log.info(
            "Finished syncing %s: %d new, %d existing",
            settings.mailbox, len(result.new_emails), len(result.existing_emails),
        )
        return result

    def _sync_folder(self, session: ImapSession, mailbox: str) -> SyncResult:
        """Select the mailbox and classify every message it lists."""
        self._progress.current_stage = "select"
        self._notify()
        folder = session.select(mailbox)
        self._log.debug("Selected mailbox %s with %d messages", mailbox, folder.exists)

        self._progress.current_stage = "fetch"
        self._notify()

        existing: list[Path] = []
        new: list[Path] = []

        for message in session.stream_messages():
            self._progress.messages_seen += 1
            try:
                path, is_new = self._store_message(message)
            except ImapSyncError as e:
                if self._settings.stop_on_error:
                    raise
                self._log.error("Failed to store message UID %s: %s", message.uid, e)
                self._progress.messages_failed += 1
                self._notify()
                continue

            if is_new:
                new.append(path)
                self._progress.messages_new += 1
            else:
                existing.append(path)
                self._progress.messages_existing += 1
            self._notify()

        return SyncResult(existing_emails=tuple(existing), new_emails=tuple(new))

    def _store_message(self, message: FetchedMessage) -> tuple[Path, bool]:
        """Write a message unless its file already exists.

        Returns:
            (path, is_new) for the message.
        """
        if not message.message_id:
            self._log.warning(
                "Message UID %s has no Message-ID; it shares a file name with "
                "every other message lacking one",
                message.uid,
            )

        record = self._store.record_for(message.message_id)
        if record.exists:
            self._log.debug("Message %s already stored at %s", message.message_id, record.path)
            return record.path, False

        self._log.info("Writing message %s to %s", message.message_id, record.path)
        self._store.write(record.path, message.body)
        return record.path, True

    def _notify(self) -> None:
        """Send progress update to callback if registered."""
        if self._on_progress:
            self._on_progress(self._progress)


def sync(
    server: str,
    username: str,
    password: str,
    mailbox: str,
    messages_dir: Path | str = "messages",
    *,
    logger: logging.Logger | None = None,
) -> SyncResult:
    """Download all not-yet-downloaded messages of mailbox into messages_dir.

    Convenience wrapper around MailboxSyncer for callers that do not use
    ImapSyncSettings.
    """
    settings = load_settings(
        server=server,
        username=username,
        mailbox=mailbox,
        messages_dir=Path(messages_dir),
    )
    return MailboxSyncer(settings, logger=logger).sync(password)
