"""Shared fixtures for unit tests."""

import asyncio
from collections.abc import Awaitable, Callable

import httpx
import pytest

from synckeeper.keepalive.handler import ProbeOutcome
from synckeeper.keepalive.state import SessionRecord, SessionRegistry


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedHandler:
    """KeepaliveHandler returning queued outcomes and recording each call.

    Each call records ``(time, record, last_activity)`` where last_activity
    is read from the registry when the call is made.
    """

    def __init__(
        self,
        clock: FakeClock,
        outcomes: list[ProbeOutcome | Exception],
        registry: SessionRegistry | None = None,
    ) -> None:
        self._clock = clock
        self._outcomes = list(outcomes)
        self._registry = registry
        self.calls: list[tuple[float, SessionRecord, float | None]] = []

    async def probe(self, record: SessionRecord) -> ProbeOutcome:
        last = self._registry.last_activity(record.uin) if self._registry else None
        self.calls.append((self._clock(), record, last))
        outcome = self._outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def registry(clock: FakeClock) -> SessionRegistry:
    return SessionRegistry(clock=clock)


@pytest.fixture
def make_sleep(clock: FakeClock):
    """Factory for sleep coroutines that advance the fake clock instead of waiting.

    The optional ``on_wake`` callback gets the 1-based wake count after the
    clock moved and before control returns to the sleeper.
    """

    def _make(
        on_wake: Callable[[int], None] | None = None,
    ) -> Callable[[float], Awaitable[None]]:
        wakes = 0

        async def _sleep(seconds: float) -> None:
            nonlocal wakes
            clock.advance(seconds)
            wakes += 1
            if on_wake is not None:
                on_wake(wakes)
            await asyncio.sleep(0)

        return _sleep

    return _make


@pytest.fixture
def scripted_handler(clock: FakeClock, registry: SessionRegistry):
    """Factory for a ScriptedHandler bound to the shared clock and registry."""

    def _make(outcomes: list[ProbeOutcome | Exception]) -> ScriptedHandler:
        return ScriptedHandler(clock, outcomes, registry=registry)

    return _make


@pytest.fixture
def make_record():
    """Factory for session records carrying a single wxuin cookie."""

    def _make(
        uin: str = "U1",
        synckey: str = "SK1",
        sid: str = "SID1",
        skey: str = "@crypt_abc",
        base_url: str = "https://wx.qq.com/",
    ) -> SessionRecord:
        cookies = httpx.Cookies()
        cookies.set("wxuin", uin, domain="wx.qq.com", path="/")
        return SessionRecord(
            uin=uin,
            base_url=base_url,
            sid=sid,
            skey=skey,
            synckey=synckey,
            cookies=cookies,
        )

    return _make
