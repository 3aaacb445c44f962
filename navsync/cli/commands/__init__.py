"""CLI command modules for navsync."""

from navsync.cli.commands.sync import (
    cmd_pull,
    cmd_push,
    cmd_remote,
    cmd_show,
    cmd_status,
    cmd_sync,
)

__all__ = [
    "cmd_pull",
    "cmd_push",
    "cmd_remote",
    "cmd_show",
    "cmd_status",
    "cmd_sync",
]
