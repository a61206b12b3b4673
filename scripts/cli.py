"""Command line entry point: copy emails from an IMAP mailbox to local .eml files."""

from __future__ import annotations

import argparse
import getpass
import logging
import sys

from imap_sync.config.settings import ImapSyncSettings, load_settings
from imap_sync.core.exceptions import ConfigError, ImapSyncError
from imap_sync.pipeline.syncer import MailboxSyncer

logger = logging.getLogger("imap_sync.cli")


def setup_logging(level: str) -> None:
    """Configure logging with timestamp, level, and short source location."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(filename)s:%(lineno)d:%(funcName)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def get_password(username: str, server: str) -> str:
    """Prompt for the password without echo."""
    return getpass.getpass(f"Enter IMAP Password for {username} on {server}: ")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="imap-sync copies emails from an IMAP mailbox to your computer"
    )
    parser.add_argument(
        "--server",
        help="sync from this mail server and port (e.g. mail.example.com:993)",
    )
    parser.add_argument("--username", help="username for logging into the mail server")
    parser.add_argument(
        "--mailbox",
        help="mailbox to read messages from (typically INBOX or INBOX/subfolder)",
    )
    parser.add_argument(
        "--messages-dir",
        dest="messages_dir",
        help="local directory to save messages in (default: messages)",
    )
    parser.add_argument("--log-level", dest="log_level", help="logging level (default: INFO)")
    parser.add_argument(
        "--keep-going",
        action="store_true",
        dest="keep_going",
        help="log messages that fail to save and continue instead of aborting",
    )
    return parser


def settings_from_args(args: argparse.Namespace) -> ImapSyncSettings:
    """Build settings from environment/.env, with command line flags taking precedence."""
    overrides = {
        name: value
        for name in ("server", "username", "mailbox", "messages_dir", "log_level")
        if (value := getattr(args, name, None))
    }
    if getattr(args, "keep_going", False):
        overrides["stop_on_error"] = False
    return load_settings(**overrides)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = settings_from_args(args)
        settings.validate_required()
    except ConfigError as e:
        parser.print_usage(sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(settings.log_level)

    try:
        password = settings.password_value() or get_password(settings.username, settings.server)
        result = MailboxSyncer(settings).sync(password)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except ImapSyncError as e:
        logger.error("Sync failed: %s", e)
        sys.exit(1)

    print(
        f"Synced {settings.mailbox}: {len(result.new_emails)} new, "
        f"{len(result.existing_emails)} already present"
    )


if __name__ == "__main__":
    main()
