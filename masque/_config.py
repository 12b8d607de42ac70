"""Client configuration and per-call request parameters."""

import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, NamedTuple

from masque._fingerprint import synthesize
from masque._profiles import (
    Impersonate,
    ImpersonateOS,
    resolve_identity,
    resolve_os,
)

DEFAULT_TIMEOUT = datetime.timedelta(seconds=30)

Timeout = datetime.timedelta | float | int | None


class BasicAuth(NamedTuple):
    username: str
    password: str = ""


def coerce_auth(value) -> BasicAuth | None:
    """Accept BasicAuth, a (user, password) pair, or None."""
    if value is None or isinstance(value, BasicAuth):
        return value
    if isinstance(value, (tuple, list)) and 1 <= len(value) <= 2:
        return BasicAuth(*value)
    raise TypeError(
        f"auth must be a (username, password) pair, got {type(value).__name__}"
    )


def normalize_timeout(val: Timeout) -> datetime.timedelta | None:
    """Convert a timeout to timedelta. Non-positive means no deadline."""
    if val is None:
        return None
    if not isinstance(val, datetime.timedelta):
        val = datetime.timedelta(seconds=float(val))
    if val <= datetime.timedelta(0):
        return None
    return val


@dataclass(frozen=True)
class ClientConfig:
    """Immutable snapshot of client-level settings.

    Clients swap in a new snapshot on every setter call, so a request
    that is being assembled always sees one consistent configuration.
    """

    headers: Mapping[str, str] = field(default_factory=dict)
    auth: BasicAuth | None = None
    auth_bearer: str | None = None
    params: Mapping[str, Any] = field(default_factory=dict)
    proxy: str | None = None
    timeout: datetime.timedelta | None = DEFAULT_TIMEOUT
    impersonate: Impersonate | None = None
    impersonate_os: ImpersonateOS | None = None
    verify: bool = True
    ca_cert_file: str | None = None
    referer: bool = True
    cookie_store: bool = True

    @classmethod
    def from_options(
        cls,
        *,
        impersonate: "str | Impersonate | None" = None,
        impersonate_os: "str | ImpersonateOS | None" = None,
        headers: Mapping[str, str] | None = None,
        auth=None,
        auth_bearer: str | None = None,
        params: Mapping[str, Any] | None = None,
        proxy: str | None = None,
        timeout: Timeout = DEFAULT_TIMEOUT,
        verify: bool = True,
        ca_cert_file: str | None = None,
        referer: bool = True,
        cookie_store: bool = True,
    ) -> "ClientConfig":
        """Validate loose option values into a config snapshot.

        Unknown impersonation tokens fail here, at construction time.
        """
        return cls(
            headers=dict(headers or {}),
            auth=coerce_auth(auth),
            auth_bearer=auth_bearer or None,
            params=dict(params or {}),
            proxy=proxy or None,
            timeout=normalize_timeout(timeout),
            impersonate=resolve_identity(impersonate),
            impersonate_os=resolve_os(impersonate_os),
            verify=bool(verify),
            ca_cert_file=ca_cert_file or None,
            referer=bool(referer),
            cookie_store=bool(cookie_store),
        )

    def evolve(self, **changes) -> "ClientConfig":
        return replace(self, **changes)

    def impersonation_headers(self) -> Mapping[str, str]:
        """Headers derived from the impersonated identity (empty if none)."""
        if self.impersonate is None:
            return {}
        return synthesize(self.impersonate, self.impersonate_os).headers


@dataclass
class RequestParams:
    """Per-call overrides. Never stored on the client.

    Exactly one body representation is used; see ``build_request`` for
    the precedence between ``content``, ``data``, ``json`` and ``files``.
    """

    params: Mapping[str, Any] | None = None
    headers: Mapping[str, str] | None = None
    cookies: Mapping[str, str] | None = None
    auth: BasicAuth | tuple | None = None
    auth_bearer: str | None = None
    timeout: Timeout = None
    content: bytes | None = None
    data: Mapping[str, Any] | None = None
    json: Any = None
    files: Mapping[str, str] | None = None
