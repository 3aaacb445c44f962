"""
navsync CLI - inspect and sync local settings and links.

Usage:
    navsync status [--json]
    navsync pull
    navsync push
    navsync sync
    navsync remote on|off
    navsync show settings|links [--json]
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Optional

from navsync.cli.commands import (
    cmd_pull,
    cmd_push,
    cmd_remote,
    cmd_show,
    cmd_status,
    cmd_sync,
)
from navsync.config import NavSyncConfig, get_config
from navsync.errors import StorageUnavailableError
from navsync.storage import HttpRemoteStore, LocalStore, SyncEngine, open_kv_store

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


@dataclass
class NavSyncApp:
    """The wired-up objects a command operates on."""

    config: NavSyncConfig
    local: LocalStore
    remote: HttpRemoteStore
    engine: SyncEngine


def build_app(config: Optional[NavSyncConfig] = None) -> NavSyncApp:
    config = config or get_config()
    remote = HttpRemoteStore.from_config(config)
    try:
        store = open_kv_store(config)
    except StorageUnavailableError as e:
        logger.warning(f"Local storage unavailable, using defaults: {e}")
        store = None
    local = LocalStore(
        store,
        remote,
        settings_key=config.settings_key,
        links_key=config.links_key,
        remote_flag_key=config.remote_flag_key,
    )
    return NavSyncApp(config=config, local=local, remote=remote, engine=SyncEngine(local, remote))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="navsync",
        description="Local-first settings and links with cloud sync",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_status = subparsers.add_parser("status", help="Show sync status")
    p_status.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    subparsers.add_parser("pull", help="Overwrite local data with remote data")
    subparsers.add_parser("push", help="Overwrite remote data with local data")
    subparsers.add_parser("sync", help="Two-way sync, newest side wins")

    p_remote = subparsers.add_parser("remote", help="Toggle saving through to remote")
    p_remote.add_argument("remote_action", choices=["on", "off"])

    p_show = subparsers.add_parser("show", help="Show local settings or links")
    p_show.add_argument("record", choices=["settings", "links"])
    p_show.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        app = build_app()

        if args.command == "status":
            code = cmd_status(args, app)
        elif args.command == "pull":
            code = cmd_pull(args, app)
        elif args.command == "push":
            code = cmd_push(args, app)
        elif args.command == "sync":
            code = cmd_sync(args, app)
        elif args.command == "remote":
            code = cmd_remote(args, app)
        elif args.command == "show":
            code = cmd_show(args, app)
        else:
            parser.error(f"Unknown command: {args.command}")
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)

    sys.exit(code)


if __name__ == "__main__":
    main()
