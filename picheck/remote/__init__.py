"""
PiCheck Remote Module

Queries a Raspberry Pi (or any Linux host) over SSH.

Example:
    from picheck.remote import QueryService, collect_snapshot

    with QueryService("raspberrypi.local", "pi") as service:
        service.connect_with_key("~/.ssh/id_ed25519")
        snapshot = collect_snapshot(service)
"""

from picheck.remote.query_service import (
    CmdResult,
    QueryService,
)
from picheck.remote.snapshot import (
    SystemSnapshot,
    collect_snapshot,
)

__all__ = [
    "CmdResult",
    "QueryService",
    "SystemSnapshot",
    "collect_snapshot",
]
