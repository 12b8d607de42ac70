"""masque -- HTTP client that impersonates browser and OS fingerprints."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("masque-http")
except PackageNotFoundError:
    __version__ = "0.0.0"

from masque._async import AsyncClient, Batch, BatchResult
from masque._client import Client
from masque._config import BasicAuth, ClientConfig, RequestParams
from masque._errors import (
    BodyEncodingError,
    DecodeError,
    FileAccessError,
    HTTPStatusError,
    InvalidURL,
    MasqueError,
    RequestCancelled,
    RequestTimeout,
    TLSConfigurationError,
    TransportError,
    UnknownIdentity,
    UnknownOS,
)
from masque._fingerprint import (
    BrowserProfile,
    generate_sec_ch_ua,
    get_browser_profile,
    synthesize,
)
from masque._profiles import Impersonate, ImpersonateOS
from masque._response import Response

__all__ = [
    "__version__",
    "Client",
    "AsyncClient",
    "Batch",
    "BatchResult",
    "Response",
    "ClientConfig",
    "RequestParams",
    "BasicAuth",
    "Impersonate",
    "ImpersonateOS",
    "BrowserProfile",
    "synthesize",
    "get_browser_profile",
    "generate_sec_ch_ua",
    "MasqueError",
    "UnknownIdentity",
    "UnknownOS",
    "InvalidURL",
    "BodyEncodingError",
    "FileAccessError",
    "TLSConfigurationError",
    "TransportError",
    "RequestTimeout",
    "DecodeError",
    "HTTPStatusError",
    "RequestCancelled",
    "request",
    "get",
    "post",
    "put",
    "delete",
    "head",
    "options",
    "patch",
]

# Silent by default; callers opt in via logging.getLogger("masque").setLevel(...)
logging.getLogger("masque").addHandler(logging.NullHandler())

# Keyword arguments of the one-shot helpers that configure the throwaway client
_CLIENT_OPTIONS = frozenset({
    "impersonate",
    "impersonate_os",
    "proxy",
    "verify",
    "ca_cert_file",
    "cookie_store",
    "referer",
})


def request(method: str, url: str, **kwargs) -> Response:
    """Module-level convenience: one request on a throwaway Client.

    Client options (``impersonate``, ``impersonate_os``, ``proxy``,
    ``verify``, ``ca_cert_file``, ``cookie_store``, ``referer``) configure
    the client; everything else is passed through as call parameters.
    """
    client_options = {k: kwargs.pop(k) for k in list(kwargs) if k in _CLIENT_OPTIONS}
    with Client(**client_options) as c:
        return c.request(method, url, **kwargs)


def get(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot GET."""
    return request("GET", url, **kwargs)


def post(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot POST."""
    return request("POST", url, **kwargs)


def put(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot PUT."""
    return request("PUT", url, **kwargs)


def delete(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot DELETE."""
    return request("DELETE", url, **kwargs)


def head(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot HEAD."""
    return request("HEAD", url, **kwargs)


def options(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot OPTIONS."""
    return request("OPTIONS", url, **kwargs)


def patch(url: str, **kwargs) -> Response:
    """Module-level convenience: one-shot PATCH."""
    return request("PATCH", url, **kwargs)
