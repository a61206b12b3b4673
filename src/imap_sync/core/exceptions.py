"""Custom exceptions for IMAP sync."""


class ImapSyncError(Exception):
    """Base exception for all IMAP sync errors."""


class ConfigError(ImapSyncError):
    """Missing or invalid invocation parameters."""


class DirectoryError(ImapSyncError):
    """Target message directory could not be created."""


class NetworkError(ImapSyncError):
    """Connection to the IMAP server could not be established."""


class HandshakeError(NetworkError):
    """TLS handshake or server greeting failed."""


class AuthenticationError(ImapSyncError):
    """Server rejected the login credentials."""


class FolderError(ImapSyncError):
    """Mailbox folder does not exist or cannot be selected."""


class StreamError(ImapSyncError):
    """Message listing or message content could not be read."""


class WriteError(ImapSyncError):
    """Message content could not be written to disk."""


class LogoutError(ImapSyncError):
    """Session teardown failed."""
