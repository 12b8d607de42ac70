"""Request assembly -- merges client config and call params, zero network I/O."""

import base64
import datetime
import json
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlencode, urlsplit

from rnet import Method

from masque._config import (
    ClientConfig,
    RequestParams,
    coerce_auth,
    normalize_timeout,
)
from masque._cookies import format_cookie_header
from masque._errors import BodyEncodingError, FileAccessError, InvalidURL

logger = logging.getLogger("masque")

_METHOD_MAP: dict[str, Method] = {
    "GET": Method.GET,
    "HEAD": Method.HEAD,
    "OPTIONS": Method.OPTIONS,
    "DELETE": Method.DELETE,
    "POST": Method.POST,
    "PUT": Method.PUT,
    "PATCH": Method.PATCH,
}

# Only these methods carry a request body; body params are ignored otherwise.
_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"


def to_method(method: str) -> Method:
    """Convert a string HTTP method to rnet Method enum."""
    try:
        return _METHOD_MAP[method.upper()]
    except KeyError:
        raise ValueError(f"Unknown HTTP method: {method}") from None


@dataclass
class PreparedRequest:
    """A fully assembled outgoing request, ready for the transport."""

    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None = None
    timeout: datetime.timedelta | None = None

    @property
    def rnet_method(self) -> Method:
        return to_method(self.method)

    def send_kwargs(self) -> dict:
        """Keyword arguments for ``rnet.blocking.Client.request``."""
        kwargs: dict[str, Any] = {"headers": dict(self.headers)}
        if self.body is not None:
            kwargs["body"] = self.body
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        return kwargs


# ---------------------------------------------------------------------------
# Headers (case-insensitive names, one value each)
# ---------------------------------------------------------------------------


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    lower = name.lower()
    for key, value in headers.items():
        if key.lower() == lower:
            return value
    return None


def set_header(headers: dict[str, str], name: str, value: str) -> None:
    """Set a header, replacing any existing spelling of the same name."""
    lower = name.lower()
    for key in [k for k in headers if k.lower() == lower]:
        del headers[key]
    headers[name] = value


def merge_headers(headers: dict[str, str], overrides: Mapping[str, str]) -> None:
    for name, value in overrides.items():
        set_header(headers, name, value)


# ---------------------------------------------------------------------------
# URL + query string
# ---------------------------------------------------------------------------


def validate_url(url: str) -> None:
    """Raise InvalidURL unless url is an absolute http(s) URL with a host."""
    try:
        parts = urlsplit(url)
        parts.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise InvalidURL(url, str(e)) from e
    if parts.scheme.lower() not in ("http", "https"):
        raise InvalidURL(url, f"unsupported scheme {parts.scheme!r}")
    if not parts.hostname:
        raise InvalidURL(url, "missing host")


def apply_params(url: str, *param_sets: Mapping[str, Any] | None) -> str:
    """Append query parameters to a URL.

    Sets are appended in order and never deduplicated: a key present in
    more than one set appears once per set. Any existing query string and
    fragment are preserved.
    """
    encoded = [urlencode(p, doseq=True) for p in param_sets if p]
    if not encoded:
        return url
    base, hash_mark, fragment = url.partition("#")
    if "?" not in base:
        sep = "?"
    elif base.endswith(("?", "&")):
        sep = ""
    else:
        sep = "&"
    return base + sep + "&".join(encoded) + hash_mark + fragment


# ---------------------------------------------------------------------------
# Body encoding
# ---------------------------------------------------------------------------


def _quote_disposition(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def encode_multipart(
    files: Mapping[str, str], boundary: str | None = None
) -> tuple[bytes, str]:
    """Encode field -> file path as multipart/form-data.

    Every file is read before anything is returned, so an unreadable file
    leaves no partial body behind.
    """
    boundary = boundary or secrets.token_hex(16)
    chunks: list[bytes] = []
    for field_name, path in files.items():
        file_path = Path(path)
        try:
            data = file_path.read_bytes()
        except OSError as e:
            raise FileAccessError(str(path), e.strerror or str(e)) from e
        chunks.append(
            (
                f"--{boundary}\r\n"
                "Content-Disposition: form-data; "
                f'name="{_quote_disposition(field_name)}"; '
                f'filename="{_quote_disposition(file_path.name)}"\r\n'
                "Content-Type: application/octet-stream\r\n\r\n"
            ).encode("utf-8")
        )
        chunks.append(data)
        chunks.append(b"\r\n")
    chunks.append(f"--{boundary}--\r\n".encode("utf-8"))
    return b"".join(chunks), f"multipart/form-data; boundary={boundary}"


def encode_body(
    method: str, params: RequestParams
) -> tuple[bytes | None, str | None]:
    """Pick one body representation and serialize it.

    Precedence: raw ``content`` > ``json`` > form ``data`` > ``files``.
    Raw content never gets a Content-Type; callers set one via headers.
    """
    if method.upper() not in _BODY_METHODS:
        if any(
            v is not None
            for v in (params.content, params.data, params.json, params.files)
        ):
            logger.debug("Ignoring request body for %s", method.upper())
        return None, None

    if params.content is not None:
        content = params.content
        if isinstance(content, str):
            content = content.encode("utf-8")
        return bytes(content), None

    if params.json is not None:
        try:
            body = json.dumps(
                params.json, separators=(",", ":"), ensure_ascii=False
            )
        except (TypeError, ValueError) as e:
            raise BodyEncodingError("json", str(e)) from e
        return body.encode("utf-8"), JSON_CONTENT_TYPE

    if params.data is not None:
        try:
            body = urlencode(params.data, doseq=True)
        except TypeError as e:
            raise BodyEncodingError("form", str(e)) from e
        return body.encode("utf-8"), FORM_CONTENT_TYPE

    if params.files is not None:
        return encode_multipart(params.files)

    return None, None


# ---------------------------------------------------------------------------
# Assembly
# ---------------------------------------------------------------------------


def _basic_auth_value(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode("utf-8"))
    return "Basic " + token.decode("ascii")


def resolve_timeout(
    config: ClientConfig, params: RequestParams
) -> datetime.timedelta | None:
    """Call-level timeout wins; None from either side means no deadline."""
    if params.timeout is not None:
        return normalize_timeout(params.timeout)
    return config.timeout


def build_request(
    method: str,
    url: str,
    config: ClientConfig,
    params: RequestParams | None = None,
) -> PreparedRequest:
    """Assemble one outgoing request from client config and call params.

    Header precedence, lowest to highest: impersonation profile, client
    headers, body Content-Type, call headers, call cookies, basic auth,
    bearer token. Referer is only injected when nothing set it.
    """
    params = params or RequestParams()
    method = method.upper()
    to_method(method)
    validate_url(url)

    url = apply_params(url, params.params, config.params)
    body, content_type = encode_body(method, params)

    headers: dict[str, str] = {}
    merge_headers(headers, config.impersonation_headers())
    merge_headers(headers, config.headers)
    if content_type:
        set_header(headers, "Content-Type", content_type)
    if params.headers:
        merge_headers(headers, params.headers)

    if params.cookies:
        set_header(headers, "Cookie", format_cookie_header(params.cookies))

    auth = coerce_auth(params.auth) or config.auth
    if auth is not None:
        set_header(headers, "Authorization", _basic_auth_value(*auth))

    # Applied after basic auth, so a bearer token wins the header
    bearer = params.auth_bearer or config.auth_bearer
    if bearer:
        set_header(headers, "Authorization", f"Bearer {bearer}")

    if config.referer and get_header(headers, "Referer") is None:
        parts = urlsplit(url)
        if parts.path not in ("", "/"):
            host = parts.netloc.rpartition("@")[2]
            set_header(headers, "Referer", f"{parts.scheme}://{host}/")

    return PreparedRequest(
        method=method,
        url=url,
        headers=headers,
        body=body,
        timeout=resolve_timeout(config, params),
    )
