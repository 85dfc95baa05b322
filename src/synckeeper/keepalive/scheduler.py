"""Per-identity keepalive tasks.

Each registered identity gets one asyncio task that wakes on a fixed tick,
decides whether a probe is needed, and tears its registry entry down when
the remote side reports the session is gone.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import StrEnum

import structlog

from synckeeper.keepalive.handler import KeepaliveHandler, ProbeOutcome, ProbeResult
from synckeeper.keepalive.state import SessionRecord, SessionRegistry
from synckeeper.logging import get_logger

LOG = get_logger(__name__)

TICK_INTERVAL_SECONDS = 60.0

SleepFunc = Callable[[float], Awaitable[None]]


class TaskState(StrEnum):
    """States a keepalive task moves through on every tick.

    WAITING -> DEBOUNCE_CHECK -> SKIP | PROBING
    PROBING -> CLASSIFYING -> CONTINUE | TERMINATED
    SKIP and CONTINUE loop back to WAITING. TERMINATED is final.
    """

    WAITING = "waiting"
    DEBOUNCE_CHECK = "debounce_check"
    SKIP = "skip"
    PROBING = "probing"
    CLASSIFYING = "classifying"
    CONTINUE = "continue"
    TERMINATED = "terminated"


class KeepaliveTask:
    """State machine keeping one identity's session warm.

    The task only ever leaves through TERMINATED, and the registry entry is
    removed on the way out no matter how it got there.
    """

    def __init__(
        self,
        uin: str,
        registry: SessionRegistry,
        handler: KeepaliveHandler,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.uin = uin
        self.state = TaskState.WAITING
        self.outcome: ProbeOutcome | None = None
        self.probe_count = 0
        self._registry = registry
        self._handler = handler
        self._tick_interval = tick_interval
        self._sleep = sleep
        self._steps: dict[TaskState, Callable[[], Awaitable[TaskState]]] = {
            TaskState.WAITING: self._wait,
            TaskState.DEBOUNCE_CHECK: self._debounce_check,
            TaskState.SKIP: self._skip,
            TaskState.PROBING: self._probe,
            TaskState.CLASSIFYING: self._classify,
            TaskState.CONTINUE: self._continue,
        }

    async def run(self) -> None:
        """Run ticks until the session terminates.

        Every event logged while the task runs carries its ``uin``.
        """
        with structlog.contextvars.bound_contextvars(uin=self.uin):
            LOG.debug("keepalive_started")
            try:
                while self.state is not TaskState.TERMINATED:
                    self.state = await self._steps[self.state]()
            except Exception:
                LOG.exception("keepalive_task_failed", state=self.state.value)
                self.state = TaskState.TERMINATED
            finally:
                self._registry.remove(self.uin)
                LOG.debug("keepalive_ended", probes=self.probe_count)

    async def _wait(self) -> TaskState:
        await self._sleep(self._tick_interval)
        return TaskState.DEBOUNCE_CHECK

    async def _debounce_check(self) -> TaskState:
        last_activity = self._registry.last_activity(self.uin)
        if last_activity is None:
            return TaskState.TERMINATED
        # Registration and successful probes both count as recent activity.
        if self._registry.clock() - last_activity < self._tick_interval:
            return TaskState.SKIP
        return TaskState.PROBING

    async def _skip(self) -> TaskState:
        LOG.debug("keepalive_skipped")
        return TaskState.WAITING

    async def _probe(self) -> TaskState:
        record = self._registry.read(self.uin)
        if record is None:
            return TaskState.TERMINATED
        LOG.debug("keepalive_probing", synckey=record.synckey)
        self.probe_count += 1
        self.outcome = await self._handler.probe(record)
        return TaskState.CLASSIFYING

    async def _classify(self) -> TaskState:
        outcome = self.outcome
        assert outcome is not None  # Always set by _probe
        if outcome.is_alive:
            self._registry.touch(self.uin)
            LOG.debug("keepalive_refreshed", selector=outcome.selector)
            return TaskState.CONTINUE

        if outcome.result is ProbeResult.TRANSPORT_FAILURE:
            LOG.error("keepalive_transport_failure", error=outcome.detail)
            return TaskState.TERMINATED
        if outcome.result is ProbeResult.MALFORMED_RESPONSE:
            LOG.error("keepalive_malformed_response", body=outcome.detail)
            return TaskState.TERMINATED
        LOG.info("keepalive_remote_rejected", retcode=outcome.retcode)
        return TaskState.TERMINATED

    async def _continue(self) -> TaskState:
        self.outcome = None
        return TaskState.WAITING


class KeepaliveScheduler:
    """Owns the keepalive task of every registered identity.

    Example:
        >>> scheduler = KeepaliveScheduler(SessionRegistry(), SyncCheckHandler())
        >>> scheduler.register(record)  # inside a running event loop
        True
    """

    def __init__(
        self,
        registry: SessionRegistry,
        handler: KeepaliveHandler,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize the scheduler.

        Args:
            registry: Registry shared by registration and tasks.
            handler: Probe issued on each due tick.
            tick_interval: Seconds between ticks, also the debounce threshold.
            sleep: Coroutine used to wait between ticks.
        """
        self.registry = registry
        self.handler = handler
        self.tick_interval = tick_interval
        self._sleep = sleep
        self._tasks: dict[str, asyncio.Task[None]] = {}

    def register(self, record: SessionRecord) -> bool:
        """Store a session record and start its task on first sighting.

        Must be called from within the running event loop.

        Args:
            record: New or replacement session record.

        Returns:
            True if a new task was started, False if one was already running.
        """
        existed = self.registry.upsert(record.uin, record)
        if existed:
            LOG.debug("keepalive_record_updated", uin=record.uin)
            return False

        task = KeepaliveTask(
            record.uin,
            self.registry,
            self.handler,
            tick_interval=self.tick_interval,
            sleep=self._sleep,
        )
        handle = asyncio.get_running_loop().create_task(task.run(), name=f"keepalive-{record.uin}")
        self._tasks[record.uin] = handle
        handle.add_done_callback(lambda done: self._forget(record.uin, done))
        return True

    def task_for(self, uin: str) -> "asyncio.Task[None] | None":
        """Return the live task for an identity, if any."""
        return self._tasks.get(uin)

    def _forget(self, uin: str, done: "asyncio.Task[None]") -> None:
        # A fresh registration may already own the slot.
        if self._tasks.get(uin) is done:
            del self._tasks[uin]

    async def aclose(self) -> None:
        """Cancel every task and wait for their cleanup to finish."""
        tasks = dict(self._tasks)
        for task in tasks.values():
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks.values(), return_exceptions=True)
        # A task cancelled before its first step never reaches its own cleanup.
        for uin in tasks:
            self.registry.remove(uin)
        LOG.debug("keepalive_scheduler_closed", cancelled=len(tasks))

    def __len__(self) -> int:
        return len(self._tasks)
