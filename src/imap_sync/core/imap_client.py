"""IMAP session: TLS connect, login, folder select, and streaming message fetch."""

from __future__ import annotations

import logging
import ssl
from collections.abc import Generator
from email.header import decode_header, make_header
from typing import Any

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError, LoginError

from imap_sync.core.exceptions import (
    AuthenticationError,
    ConfigError,
    FolderError,
    HandshakeError,
    LogoutError,
    NetworkError,
    StreamError,
)
from imap_sync.core.models import FetchedMessage, FolderInfo

logger = logging.getLogger(__name__)

DEFAULT_IMAPS_PORT = 993

# BODY.PEEK[] leaves the \Seen flag alone; the server answers with BODY[].
FETCH_ITEMS = [b"ENVELOPE", b"BODY.PEEK[]"]
BODY_KEY = b"BODY[]"
ENVELOPE_KEY = b"ENVELOPE"


def parse_server_address(address: str) -> tuple[str, int]:
    """Split "host:port" into its parts.

    Args:
        address: Server address, e.g. "mail.example.com:993". The port is
            optional and defaults to 993.

    Returns:
        (host, port) tuple.

    Raises:
        ConfigError: If the host is empty or the port is not a valid number.
    """
    address = address.strip()
    host, sep, port_str = address.rpartition(":")
    if not sep:
        host, port_str = address, ""
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    if not host:
        raise ConfigError(f"Invalid server address {address!r}: missing host")
    if not port_str:
        return host, DEFAULT_IMAPS_PORT
    try:
        port = int(port_str)
    except ValueError as e:
        raise ConfigError(f"Invalid server address {address!r}: bad port") from e
    if not 0 < port < 65536:
        raise ConfigError(f"Invalid server address {address!r}: port out of range")
    return host, port


def _decode_text(raw: bytes | None) -> str:
    """Decode an envelope string, resolving RFC 2047 encoded words."""
    if not raw:
        return ""
    text = raw.decode("utf-8", errors="replace")
    try:
        return str(make_header(decode_header(text)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return text


def _decode_message_id(raw: bytes | None) -> str:
    if not raw:
        return ""
    # surrogateescape keeps the exact server bytes for fingerprinting
    return raw.decode("utf-8", errors="surrogateescape")


class ImapSession:
    """An authenticated IMAP connection for a single folder.

    Use ImapSession.connect() to create one. The session streams messages one
    at a time; it does not support concurrent or out-of-order retrieval.
    """

    def __init__(self, client: IMAPClient, server: str, username: str) -> None:
        self._client = client
        self._server = server
        self._username = username
        self._folder: str | None = None

    @classmethod
    def connect(
        cls,
        server: str,
        username: str,
        password: str,
        *,
        timeout: float | None = None,
        ssl_context: ssl.SSLContext | None = None,
    ) -> ImapSession:
        """Open a TLS connection, wait for the greeting, and log in.

        Args:
            server: "host:port" address of the IMAP server.
            username: Login name.
            password: Login password.
            timeout: Socket timeout in seconds.
            ssl_context: Custom TLS context (defaults to system trust store).

        Returns:
            A logged-in ImapSession.

        Raises:
            ConfigError: If the server address is malformed.
            HandshakeError: If TLS negotiation or the greeting fails.
            NetworkError: If the server cannot be reached.
            AuthenticationError: If the credentials are rejected.
        """
        host, port = parse_server_address(server)
        logger.debug("Connecting to %s:%d as %s", host, port, username)

        try:
            client = IMAPClient(
                host, port=port, ssl=True, ssl_context=ssl_context, timeout=timeout
            )
        except ssl.SSLError as e:
            raise HandshakeError(f"TLS handshake with {server} failed: {e}") from e
        except IMAPClientError as e:
            raise HandshakeError(f"Error waiting for greeting from {server}: {e}") from e
        except OSError as e:
            raise NetworkError(f"Error connecting to {server}: {e}") from e

        logger.debug("Greeting received from %s, logging in", server)

        try:
            client.login(username, password)
        except (LoginError, IMAPClientError, OSError) as e:
            message = f"Error while logging in to {server}: {e}"
            try:
                client.logout()
            except (IMAPClientError, OSError) as logout_err:
                message = f"{message}\n(logout error: {logout_err})"
            if isinstance(e, IMAPClientError):
                raise AuthenticationError(message) from e
            raise NetworkError(message) from e

        logger.debug("Logged in as %s on %s", username, server)
        return cls(client, server, username)

    @property
    def server(self) -> str:
        return self._server

    @property
    def username(self) -> str:
        return self._username

    def select(self, folder: str) -> FolderInfo:
        """Select a folder read-only.

        Raises:
            FolderError: If the folder does not exist or cannot be accessed.
        """
        try:
            response: dict[bytes, Any] = self._client.select_folder(folder, readonly=True)
        except (IMAPClientError, OSError) as e:
            raise FolderError(f"Error selecting mailbox {folder}: {e}") from e

        self._folder = folder
        info = FolderInfo(
            name=folder,
            exists=int(response.get(b"EXISTS", 0)),
            uid_validity=response.get(b"UIDVALIDITY"),
            read_only=b"READ-ONLY" in response,
        )
        logger.debug(
            "Selected mailbox %s: %d messages (uidvalidity=%s)",
            folder, info.exists, info.uid_validity,
        )
        return info

    def stream_messages(self) -> Generator[FetchedMessage, None, None]:
        """Yield every message of the selected folder in server order.

        Each message is fetched only when the consumer asks for the next one,
        so at most one message body is held in memory at a time.

        Raises:
            StreamError: If no folder is selected, or listing/fetch fails.
        """
        if self._folder is None:
            raise StreamError("No mailbox selected")

        try:
            uids = list(self._client.search("ALL"))
        except (IMAPClientError, OSError) as e:
            raise StreamError(f"Error listing mailbox {self._folder}: {e}") from e

        logger.debug("Listing %d messages in %s", len(uids), self._folder)

        for uid in uids:
            try:
                response = self._client.fetch([uid], FETCH_ITEMS)
            except (IMAPClientError, OSError) as e:
                raise StreamError(f"Error fetching message UID {uid}: {e}") from e

            data = response.get(uid)
            if data is None:
                logger.warning("Message UID %s disappeared before it was fetched", uid)
                continue

            body = data.get(BODY_KEY)
            if body is None:
                raise StreamError(f"Server returned no body for message UID {uid}")

            envelope = data.get(ENVELOPE_KEY)
            message_id = _decode_message_id(envelope.message_id if envelope else None)
            subject = _decode_text(envelope.subject if envelope else None)
            logger.debug("Fetched message UID %s (%s)", uid, message_id)

            yield FetchedMessage(uid=uid, message_id=message_id, body=bytes(body), subject=subject)

    def close(self) -> None:
        """Log out and close the connection.

        Raises:
            LogoutError: If the logout exchange fails.
        """
        try:
            self._client.logout()
        except (IMAPClientError, OSError) as e:
            raise LogoutError(f"Error on logout from {self._server}: {e}") from e
        logger.debug("Logged out from %s", self._server)

    def __enter__(self) -> ImapSession:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
