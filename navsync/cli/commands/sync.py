"""Sync commands for the navsync CLI."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from navsync.types import links_to_list

if TYPE_CHECKING:
    from navsync.cli.__main__ import NavSyncApp

logger = logging.getLogger(__name__)


def _format_timestamp(ms: int) -> str:
    if not ms:
        return "never"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def cmd_status(args, app: "NavSyncApp") -> int:
    """Show login state, the remote sync flag and local timestamps."""
    status = app.engine.get_sync_status()
    if args.json:
        print(json.dumps(status, indent=2))
        return 0

    print("navsync status")
    print("=" * 40)
    print(f"Remote:        {app.remote.backend_url or 'not configured'}")
    print(f"Logged in:     {'yes' if status['logged_in'] else 'no'}")
    print(f"Remote sync:   {'on' if status['remote_sync_enabled'] else 'off'}")
    print(f"Settings:      {_format_timestamp(status['settings_last_modified'])}")
    print(f"Links:         {_format_timestamp(status['links_last_modified'])}")
    return 0


def _run_sync_operation(name: str, operation) -> int:
    ok = asyncio.run(operation())
    if ok:
        print(f"✓ {name} complete")
        return 0
    print(f"✗ {name} failed or not logged in")
    return 1


def cmd_pull(args, app: "NavSyncApp") -> int:
    """Overwrite local records with the remote copy."""
    return _run_sync_operation("Pull", app.engine.pull)


def cmd_push(args, app: "NavSyncApp") -> int:
    """Overwrite remote records with the local copy."""
    return _run_sync_operation("Push", app.engine.push)


def cmd_sync(args, app: "NavSyncApp") -> int:
    """Reconcile both sides by timestamp."""
    if not app.remote.is_logged_in():
        print("✗ Not logged in (set NAVSYNC_BACKEND_URL and NAVSYNC_AUTH_TOKEN)")
        return 1

    changed = asyncio.run(app.engine.sync())
    if changed:
        print("✓ Sync complete, changes applied")
    elif app.remote.is_logged_in():
        print("✓ Already in sync")
    else:
        # A failed sync clears the session
        print("✗ Sync failed, session cleared")
        return 1
    return 0


def cmd_remote(args, app: "NavSyncApp") -> int:
    """Turn saving-through to the remote store on or off."""
    enabled = args.remote_action == "on"
    app.local.set_remote_sync_enabled(enabled)
    print(f"Remote sync {'enabled' if enabled else 'disabled'}")
    return 0


def cmd_show(args, app: "NavSyncApp") -> int:
    """Print the current settings or links."""
    if args.record == "settings":
        data = app.local.get_settings().to_dict()
        if args.json:
            print(json.dumps(data, indent=2, ensure_ascii=False))
        else:
            for key, value in data.items():
                print(f"{key:16} {value}")
        return 0

    links = app.local.get_links()
    if args.json:
        print(json.dumps(links_to_list(links), indent=2, ensure_ascii=False))
    else:
        for link in links:
            category = f" [{link.category}]" if link.category else ""
            print(f"{link.id:>4}  {link.name}{category}  {link.url}")
    return 0
