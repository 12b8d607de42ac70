"""Cookie helpers: Set-Cookie parsing, Cookie header serialization, jar reads."""

import logging
from typing import Iterable, Mapping
from urllib.parse import urlparse

logger = logging.getLogger("masque")


def extract_domain(url: str) -> str | None:
    """Extract hostname from a URL."""
    return urlparse(url).hostname


def parse_set_cookie(raw: str) -> tuple[str, str] | None:
    """Extract (name, value) from a Set-Cookie header value."""
    pair = raw.split(";", 1)[0]
    eq = pair.find("=")
    if eq <= 0:
        return None
    name = pair[:eq].strip()
    if not name:
        return None
    value = pair[eq + 1:].strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        value = value[1:-1]
    return name, value


def cookies_from_headers(raw_values: Iterable) -> dict[str, str]:
    """Collect name -> value from raw Set-Cookie values (bytes or str).

    Later values for the same name win, matching how a jar would store them.
    """
    cookies: dict[str, str] = {}
    for raw in raw_values:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        parsed = parse_set_cookie(str(raw))
        if parsed:
            cookies[parsed[0]] = parsed[1]
    return cookies


def format_cookie_header(cookies: Mapping[str, str]) -> str:
    """Serialize cookies as a Cookie header value: ``a=1; b=2``."""
    return "; ".join(f"{name}={value}" for name, value in cookies.items())


def format_set_cookie(name: str, value: str) -> str:
    """Set-Cookie string used to seed a jar for a URL."""
    return f"{name}={value}; Path=/"


def _domain_matches(host: str, cookie_domain: str | None) -> bool:
    if not cookie_domain:
        return True
    cookie_domain = cookie_domain.lstrip(".").lower()
    return host == cookie_domain or host.endswith("." + cookie_domain)


def _path_matches(path: str, cookie_path: str | None) -> bool:
    if not cookie_path or cookie_path == "/":
        return True
    if path == cookie_path:
        return True
    prefix = cookie_path if cookie_path.endswith("/") else cookie_path + "/"
    return path.startswith(prefix)


def jar_cookies(jar, url: str) -> dict[str, str]:
    """Read the cookies a jar would send to ``url`` as name -> value.

    Domain scoping follows the jar's stored domain; public-suffix rules
    were already enforced by the jar when the cookies were stored.
    """
    host = (extract_domain(url) or "").lower()
    path = urlparse(url).path or "/"
    result: dict[str, str] = {}
    for cookie in jar.get_all():
        domain = getattr(cookie, "domain", None)
        cookie_path = getattr(cookie, "path", None)
        if _domain_matches(host, domain) and _path_matches(path, cookie_path):
            result[cookie.name] = cookie.value
    return result
