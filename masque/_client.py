"""Client -- synchronous HTTP client wrapping rnet.blocking.Client."""

import logging
import time
from typing import Any, Mapping

from rnet.exceptions import TimeoutError as RnetTimeoutError

from masque._base import build_request, validate_url
from masque._config import (
    DEFAULT_TIMEOUT,
    ClientConfig,
    RequestParams,
    Timeout,
    coerce_auth,
    normalize_timeout,
)
from masque._cookies import format_set_cookie, jar_cookies
from masque._errors import RequestTimeout, TransportError
from masque._profiles import (
    Impersonate,
    ImpersonateOS,
    resolve_identity,
    resolve_os,
)
from masque._response import Response
from masque._transport import build_transport, validate_proxy

logger = logging.getLogger("masque")


def _is_timeout(exc: Exception) -> bool:
    return isinstance(exc, (RnetTimeoutError, TimeoutError))


class Client:
    """HTTP client that presents itself as a chosen browser/OS.

    Requests may be sent from several threads at once. Setters swap the
    configuration snapshot without locking, so changing settings while
    requests are in flight is left to the caller to coordinate.
    """

    def __init__(
        self,
        *,
        impersonate: "str | Impersonate | None" = None,
        impersonate_os: "str | ImpersonateOS | None" = None,
        headers: Mapping[str, str] | None = None,
        auth=None,
        auth_bearer: str | None = None,
        params: Mapping[str, Any] | None = None,
        proxy: str | None = None,
        timeout: Timeout = DEFAULT_TIMEOUT,
        cookie_store: bool = True,
        referer: bool = True,
        verify: bool = True,
        ca_cert_file: str | None = None,
    ):
        self._config = ClientConfig.from_options(
            impersonate=impersonate,
            impersonate_os=impersonate_os,
            headers=headers,
            auth=auth,
            auth_bearer=auth_bearer,
            params=params,
            proxy=proxy,
            timeout=timeout,
            verify=verify,
            ca_cert_file=ca_cert_file,
            referer=referer,
            cookie_store=cookie_store,
        )
        self._client = build_transport(self._config)
        logger.debug(
            "Client created with impersonate=%s, os=%s, timeout=%s",
            self._config.impersonate.value if self._config.impersonate else None,
            self._config.impersonate_os.value if self._config.impersonate_os else None,
            self._config.timeout,
        )

    # -- configuration ------------------------------------------------------

    @property
    def config(self) -> ClientConfig:
        """Current configuration snapshot."""
        return self._config

    def _update(self, *, rebuild: bool = False, **changes) -> None:
        self._config = self._config.evolve(**changes)
        if rebuild:
            # The new transport starts with an empty in-memory cookie jar
            self._client = build_transport(self._config)
            logger.debug("Transport rebuilt after config change")

    @property
    def headers(self) -> dict[str, str]:
        """Effective client-level headers: impersonation, then persistent."""
        merged = dict(self._config.impersonation_headers())
        merged.update(self._config.headers)
        return merged

    def set_headers(self, headers: Mapping[str, str] | None) -> None:
        """Replace the persistent headers (impersonation headers are kept)."""
        self._update(headers=dict(headers or {}))

    @property
    def impersonate(self) -> Impersonate | None:
        return self._config.impersonate

    def set_impersonate(self, impersonate: "str | Impersonate | None") -> None:
        identity = resolve_identity(impersonate)
        self._update(impersonate=identity)
        logger.info("Impersonating %s", identity.value if identity else "nothing")

    @property
    def impersonate_os(self) -> ImpersonateOS | None:
        return self._config.impersonate_os

    def set_impersonate_os(self, impersonate_os: "str | ImpersonateOS | None") -> None:
        os = resolve_os(impersonate_os)
        self._update(impersonate_os=os)
        logger.info("Impersonation OS set to %s", os.value if os else "default")

    @property
    def proxy(self) -> str | None:
        return self._config.proxy

    def set_proxy(self, proxy: str | None) -> None:
        if proxy:
            validate_proxy(proxy)
        self._update(proxy=proxy or None, rebuild=True)

    @property
    def auth(self):
        return self._config.auth

    def set_auth(self, auth) -> None:
        self._update(auth=coerce_auth(auth))

    @property
    def auth_bearer(self) -> str | None:
        return self._config.auth_bearer

    def set_auth_bearer(self, token: str | None) -> None:
        self._update(auth_bearer=token or None)

    @property
    def params(self) -> dict[str, Any]:
        return dict(self._config.params)

    def set_params(self, params: Mapping[str, Any] | None) -> None:
        self._update(params=dict(params or {}))

    @property
    def timeout(self):
        return self._config.timeout

    def set_timeout(self, timeout: Timeout) -> None:
        self._update(timeout=normalize_timeout(timeout))

    # -- cookies ------------------------------------------------------------

    def get_cookies(self, url: str) -> dict[str, str]:
        """Cookies the store would send to ``url`` (name -> value)."""
        if not self._config.cookie_store:
            return {}
        validate_url(url)
        return jar_cookies(self._client.cookie_jar, url)

    def set_cookies(self, url: str, cookies: Mapping[str, str]) -> None:
        """Store cookies for ``url``'s domain with ``Path=/``."""
        if not self._config.cookie_store:
            return
        validate_url(url)
        for name, value in cookies.items():
            self._client.cookie_jar.add(format_set_cookie(name, value), url)

    # -- requests -----------------------------------------------------------

    def request(self, method: str, url: str, **kwargs) -> Response:
        """Send one request.

        Keyword arguments are the per-call overrides of RequestParams:
        ``params``, ``headers``, ``cookies``, ``auth``, ``auth_bearer``,
        ``timeout``, ``content``, ``data``, ``json`` and ``files``.
        Transport failures raise TransportError (RequestTimeout for
        deadlines); nothing is retried.
        """
        call = RequestParams(**kwargs)
        prepared = build_request(method, url, self._config, call)

        logger.debug(
            "%s %s (timeout=%s)", prepared.method, prepared.url, prepared.timeout
        )
        start_time = time.monotonic()
        try:
            raw = self._client.request(
                prepared.rnet_method, prepared.url, **prepared.send_kwargs()
            )
        except Exception as e:
            if _is_timeout(e):
                secs = (
                    prepared.timeout.total_seconds()
                    if prepared.timeout is not None
                    else None
                )
                raise RequestTimeout(prepared.url, secs) from e
            raise TransportError(prepared.url, str(e)) from e

        final_url = getattr(raw, "url", None)
        return Response(
            status_code=raw.status.as_int(),
            url=str(final_url) if final_url else prepared.url,
            raw=raw,
            elapsed=time.monotonic() - start_time,
        )

    def get(self, url: str, **kwargs) -> Response:
        return self.request("GET", url, **kwargs)

    def head(self, url: str, **kwargs) -> Response:
        return self.request("HEAD", url, **kwargs)

    def options(self, url: str, **kwargs) -> Response:
        return self.request("OPTIONS", url, **kwargs)

    def delete(self, url: str, **kwargs) -> Response:
        return self.request("DELETE", url, **kwargs)

    def post(self, url: str, **kwargs) -> Response:
        return self.request("POST", url, **kwargs)

    def put(self, url: str, **kwargs) -> Response:
        return self.request("PUT", url, **kwargs)

    def patch(self, url: str, **kwargs) -> Response:
        return self.request("PATCH", url, **kwargs)

    def batch(self, max_workers: int | None = None):
        """Start a fan-out batch of requests sent through this client."""
        from masque._async import Batch

        return Batch(self, max_workers=max_workers)

    def close(self) -> None:
        # rnet.blocking.Client frees its connection pool when collected
        pass

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
