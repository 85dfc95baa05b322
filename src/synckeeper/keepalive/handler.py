"""Keepalive handler protocol and the synccheck implementation.

This module defines the KeepaliveHandler protocol the scheduler probes
through, plus the synccheck handler that talks to the chat-web endpoint.
"""

import time
from collections.abc import Callable
from http.cookiejar import CookieJar, DefaultCookiePolicy
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, runtime_checkable

import httpx

from synckeeper.config import DEFAULT_USER_AGENT
from synckeeper.exceptions import MalformedResponseError
from synckeeper.keepalive.state import SessionRecord

SYNCCHECK_PATH = "cgi-bin/mmwebwx-bin/synccheck"

_SYNCCHECK_PREFIX = "window.synccheck={"


class ProbeResult(StrEnum):
    """Classification of a single synccheck probe."""

    OK = "ok"
    TRANSPORT_FAILURE = "transport_failure"
    MALFORMED_RESPONSE = "malformed_response"
    REMOTE_REJECTED = "remote_rejected"


@dataclass(frozen=True)
class ProbeOutcome:
    """Result of a synccheck probe.

    Attributes:
        result: How the probe was classified.
        retcode: Status code from the response body, when it parsed.
        selector: Selector from the response body, when it parsed.
        detail: Error text or offending body for failed probes.
    """

    result: ProbeResult
    retcode: str | None = None
    selector: str | None = None
    detail: str = ""

    @property
    def is_alive(self) -> bool:
        return self.result is ProbeResult.OK


@dataclass(frozen=True)
class SyncCheckStatus:
    """Fields embedded in a synccheck response body."""

    retcode: str
    selector: str


def _read_digits_field(body: str, pos: int, name: str, terminator: str) -> tuple[str, int] | None:
    """Read ``name:"<digits>"`` followed by ``terminator`` starting at ``pos``.

    Returns:
        The digits and the position just past the terminator, or None.
    """
    head = f'{name}:"'
    if not body.startswith(head, pos):
        return None
    start = pos + len(head)
    end = body.find('"', start)
    if end == -1:
        return None
    value = body[start:end]
    if not (value.isascii() and value.isdigit()):
        return None
    if not body.startswith(terminator, end + 1):
        return None
    return value, end + 1 + len(terminator)


def parse_synccheck(body: str) -> SyncCheckStatus:
    """Extract retcode and selector from a synccheck response body.

    The body must contain ``window.synccheck={retcode:"N",selector:"N"}``
    exactly, with ASCII digits for both values. Anything around that
    literal is ignored.

    Args:
        body: Raw response text.

    Returns:
        SyncCheckStatus with the retcode and selector strings.

    Raises:
        MalformedResponseError: If no occurrence matches the expected shape.
    """
    start = body.find(_SYNCCHECK_PREFIX)
    while start != -1:
        pos = start + len(_SYNCCHECK_PREFIX)
        retcode = _read_digits_field(body, pos, "retcode", ",")
        if retcode is not None:
            selector = _read_digits_field(body, retcode[1], "selector", "}")
            if selector is not None:
                return SyncCheckStatus(retcode=retcode[0], selector=selector[0])
        start = body.find(_SYNCCHECK_PREFIX, start + 1)
    raise MalformedResponseError("synccheck body does not match expected format", body=body)


def _no_store_cookies() -> CookieJar:
    # The client is shared by every identity, so it must never keep cookies
    # from one session's responses and send them with another's probes.
    return CookieJar(policy=DefaultCookiePolicy(allowed_domains=[]))


@runtime_checkable
class KeepaliveHandler(Protocol):
    """Protocol for the probe the scheduler issues on each tick.

    Implementations must not raise for expected failures; they classify
    them into a ProbeOutcome instead. They hold no per-identity state and
    perform no retries. A probe that never returns stalls only the task
    awaiting it.
    """

    async def probe(self, record: SessionRecord) -> ProbeOutcome:
        """Issue one keepalive probe for the session.

        Args:
            record: Current session record for the identity.

        Returns:
            Classified probe outcome.
        """
        ...


class SyncCheckHandler:
    """Keepalive handler that calls the chat-web synccheck endpoint.

    Example:
        >>> handler = SyncCheckHandler()
        >>> await handler.probe(record)
        ProbeOutcome(result=<ProbeResult.OK: 'ok'>, retcode='0', selector='2', detail='')
    """

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float | None = None,
        clock: Callable[[], float] = time.time,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize synccheck handler.

        Args:
            user_agent: User-Agent header sent with each probe.
            timeout: Request timeout in seconds. None leaves it to the transport.
            clock: Source of the ``r`` query parameter.
            client: Shared async client. One is created and owned when omitted.
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self._clock = clock
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(cookies=_no_store_cookies())

    def build_params(self, record: SessionRecord) -> dict[str, str | int]:
        """Build the synccheck query parameters for a record."""
        return {
            "r": int(self._clock()),
            "sid": record.sid,
            "uin": record.uin,
            "skey": record.skey,
            "synckey": record.synckey,
        }

    def build_request(self, record: SessionRecord) -> httpx.Request:
        """Build the synccheck GET carrying the record's cookies."""
        request = self._client.build_request(
            "GET",
            record.base_url + SYNCCHECK_PATH,
            params=self.build_params(record),
            headers={"User-Agent": self.user_agent},
            timeout=httpx.Timeout(self.timeout),
        )
        record.cookies.set_cookie_header(request)
        return request

    async def probe(self, record: SessionRecord) -> ProbeOutcome:
        """Call synccheck once and classify the response.

        Args:
            record: Current session record for the identity.

        Returns:
            ProbeOutcome describing the call.
        """
        try:
            response = await self._client.send(self.build_request(record))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            detail = str(exc) or type(exc).__name__
            return ProbeOutcome(ProbeResult.TRANSPORT_FAILURE, detail=detail)

        if not response.is_success:
            return ProbeOutcome(
                ProbeResult.TRANSPORT_FAILURE,
                detail=f"HTTP {response.status_code}",
            )

        body = response.text
        if not body:
            return ProbeOutcome(ProbeResult.TRANSPORT_FAILURE, detail="empty response body")

        try:
            status = parse_synccheck(body)
        except MalformedResponseError as exc:
            return ProbeOutcome(ProbeResult.MALFORMED_RESPONSE, detail=exc.body)

        if status.retcode != "0":
            return ProbeOutcome(
                ProbeResult.REMOTE_REJECTED,
                retcode=status.retcode,
                selector=status.selector,
            )
        return ProbeOutcome(ProbeResult.OK, retcode=status.retcode, selector=status.selector)

    async def aclose(self) -> None:
        """Close the underlying client if this handler created it."""
        if self._owns_client:
            await self._client.aclose()
