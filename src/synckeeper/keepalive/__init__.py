"""Keepalive engine for chat-web sessions.

This package provides:
- SessionRecord and SessionRegistry for per-identity session state
- KeepaliveHandler protocol and SyncCheckHandler for the remote probe
- KeepaliveScheduler for the per-identity keepalive tasks
"""

from synckeeper.keepalive.handler import (
    KeepaliveHandler,
    ProbeOutcome,
    ProbeResult,
    SyncCheckHandler,
    parse_synccheck,
)
from synckeeper.keepalive.scheduler import (
    TICK_INTERVAL_SECONDS,
    KeepaliveScheduler,
    KeepaliveTask,
    TaskState,
)
from synckeeper.keepalive.state import (
    SessionRecord,
    SessionRegistry,
)

__all__ = [
    # Handler protocol
    "KeepaliveHandler",
    "ProbeOutcome",
    "ProbeResult",
    "SyncCheckHandler",
    "parse_synccheck",
    # Scheduling
    "KeepaliveScheduler",
    "KeepaliveTask",
    "TaskState",
    "TICK_INTERVAL_SECONDS",
    # State management
    "SessionRecord",
    "SessionRegistry",
]
