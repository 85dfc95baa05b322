"""Session records and the per-identity keepalive registry.

This module holds the data the keepalive scheduler works from. It is
intentionally separated from the scheduler to keep the registry free of
any task or network concerns.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx


@dataclass(frozen=True)
class SessionRecord:
    """Credentials needed to reproduce a synccheck call for one identity.

    A record is replaced wholesale on re-registration, never mutated.

    Attributes:
        uin: Identity of the chat-web user owning the session.
        base_url: Base endpoint URL of the remote web client.
        sid: Session id issued by the remote service.
        skey: Session key issued by the remote service.
        synckey: Sync key sent with each probe.
        cookies: Authentication cookies carried on each probe.
    """

    uin: str
    base_url: str
    sid: str
    skey: str
    synckey: str
    cookies: httpx.Cookies = field(default_factory=httpx.Cookies, repr=False, compare=False)


class SessionRegistry:
    """Latest session record and last activity time, keyed by identity.

    Both mappings are always written together, so an identity is present in
    both or in neither. The registry is used from the event loop thread
    only; each operation is a plain dict write and completes without
    yielding, which makes it atomic with respect to its key.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self.clock = clock
        self._records: dict[str, SessionRecord] = {}
        self._last_activity: dict[str, float] = {}

    def upsert(self, uin: str, record: SessionRecord) -> bool:
        """Store a record and mark the identity as active now.

        Args:
            uin: Identity to store the record under.
            record: Replacement record for the identity.

        Returns:
            True if the identity already had an entry (and so a running task).
        """
        existed = uin in self._records
        self._records[uin] = record
        self._last_activity[uin] = self.clock()
        return existed

    def touch(self, uin: str) -> None:
        """Mark the identity as active now. Absent identities are ignored."""
        if uin in self._records:
            self._last_activity[uin] = self.clock()

    def read(self, uin: str) -> SessionRecord | None:
        """Return the current record, or None if the entry was torn down."""
        return self._records.get(uin)

    def last_activity(self, uin: str) -> float | None:
        """Return the last registration or successful probe time."""
        return self._last_activity.get(uin)

    def remove(self, uin: str) -> None:
        """Delete both entries for the identity. Idempotent."""
        self._records.pop(uin, None)
        self._last_activity.pop(uin, None)

    def identities(self) -> list[str]:
        """List the identities currently registered."""
        return list(self._records)

    def __contains__(self, uin: object) -> bool:
        return uin in self._records

    def __len__(self) -> int:
        return len(self._records)
