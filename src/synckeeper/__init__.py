"""synckeeper - keep chat-web sessions alive.

Register the tokens of an already authenticated web client once and
synckeeper keeps issuing synccheck calls so the session does not expire
from inactivity.

This package provides:
- Per-identity keepalive scheduling with debounce
- A synccheck probe client with strict response classification
- An HTTP registration interface and a CLI to serve it

Example:
    >>> from synckeeper import KeepaliveScheduler, SessionRegistry, SyncCheckHandler
    >>> scheduler = KeepaliveScheduler(SessionRegistry(), SyncCheckHandler())
    >>> # Inside a running event loop:
    >>> scheduler.register(record)
"""

from synckeeper.config import SynckeeperSettings, get_settings
from synckeeper.exceptions import (
    MalformedResponseError,
    RegistrationError,
    SynckeeperError,
)
from synckeeper.keepalive import (
    KeepaliveHandler,
    KeepaliveScheduler,
    ProbeOutcome,
    ProbeResult,
    SessionRecord,
    SessionRegistry,
    SyncCheckHandler,
)

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Keepalive
    "KeepaliveHandler",
    "KeepaliveScheduler",
    "ProbeOutcome",
    "ProbeResult",
    "SessionRecord",
    "SessionRegistry",
    "SyncCheckHandler",
    # Configuration
    "SynckeeperSettings",
    "get_settings",
    # Exceptions
    "SynckeeperError",
    "RegistrationError",
    "MalformedResponseError",
]
