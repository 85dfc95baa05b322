"""Turn credential registration requests into keepalive sessions.

The registration payload carries the tokens of an already authenticated
chat-web client plus the cookies it holds. This module validates the
payload, builds the cookie jar the probes will carry, and hands the
resulting record to the scheduler.
"""

from __future__ import annotations

from urllib.parse import urlsplit

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from synckeeper.exceptions import RegistrationError
from synckeeper.keepalive.scheduler import KeepaliveScheduler
from synckeeper.keepalive.state import SessionRecord
from synckeeper.logging import get_logger

LOG = get_logger(__name__)


class CookiePayload(BaseModel):
    """A single cookie as captured by the web client."""

    name: str = Field(min_length=1)
    value: str
    domain: str = Field(min_length=1)


class RegistrationPayload(BaseModel):
    """Body of a credential registration request."""

    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field(alias="baseURL", min_length=1)
    sid: str
    uin: str = Field(min_length=1)
    skey: str
    synckey: str
    cookies: list[CookiePayload]

    @field_validator("uin", mode="before")
    @classmethod
    def _coerce_numeric_uin(cls, value: object) -> object:
        # Web clients send uin as a JSON number.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


def _domain_matches(host: str, domain: str) -> bool:
    domain = domain.lstrip(".").lower()
    host = host.lower()
    return host == domain or host.endswith("." + domain)


def build_cookie_jar(base_url: str, cookies: list[CookiePayload]) -> httpx.Cookies:
    """Build the cookie jar sent with every probe for a session.

    Args:
        base_url: Base endpoint URL the cookies belong to.
        cookies: Cookies captured by the web client.

    Returns:
        Cookies holding every cookie with path ``/``.

    Raises:
        RegistrationError: If the base URL is not an absolute http(s) URL, or
            a cookie's domain does not cover the base URL host.
    """
    parts = urlsplit(base_url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise RegistrationError(f"baseURL must be an absolute http(s) URL: {base_url!r}")

    jar = httpx.Cookies()
    for cookie in cookies:
        if not _domain_matches(parts.hostname, cookie.domain):
            raise RegistrationError(
                f"cookie {cookie.name!r} domain {cookie.domain!r} "
                f"does not match host {parts.hostname!r}"
            )
        jar.set(cookie.name, cookie.value, domain=cookie.domain, path="/")
    return jar


def build_session_record(payload: RegistrationPayload) -> SessionRecord:
    """Build the immutable session record for a registration payload."""
    return SessionRecord(
        uin=payload.uin,
        base_url=payload.base_url,
        sid=payload.sid,
        skey=payload.skey,
        synckey=payload.synckey,
        cookies=build_cookie_jar(payload.base_url, payload.cookies),
    )


def register_credential(scheduler: KeepaliveScheduler, payload: RegistrationPayload) -> bool:
    """Register a session and start keeping it alive.

    Args:
        scheduler: Scheduler owning the keepalive tasks.
        payload: Validated registration request.

    Returns:
        True if a new keepalive task was started for the identity.

    Raises:
        RegistrationError: If the payload cannot be turned into a session record.
    """
    record = build_session_record(payload)
    started = scheduler.register(record)
    LOG.info(
        "credential_registered",
        uin=record.uin,
        cookie_count=len(record.cookies),
        new_session=started,
    )
    return started
