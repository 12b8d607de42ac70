"""Header synthesis: User-Agent templates, family header dialects, sec-ch-ua."""

import functools
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from masque._profiles import (
    Family,
    Impersonate,
    ImpersonateOS,
    resolve_identity,
    resolve_os,
)

logger = logging.getLogger("masque")

# Used when an identity token carries no version segment.
DEFAULT_VERSION = "133"

DEFAULT_OS = ImpersonateOS.WINDOWS

# ---------------------------------------------------------------------------
# Declarative tables
# ---------------------------------------------------------------------------

_BASE_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}

_ACCEPT = {
    Family.CHROME: (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8,"
        "application/signed-exchange;v=b3;q=0.7"
    ),
    Family.FIREFOX: (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,*/*;q=0.8"
    ),
    Family.SAFARI: (
        "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
    ),
}

_FIREFOX_ACCEPT_LANGUAGE = "en-US,en;q=0.5"

_NAVIGATION_HEADERS = {
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Upgrade-Insecure-Requests": "1",
}

_BRANDS = {
    "chrome": "Google Chrome",
    "edge": "Microsoft Edge",
}

_IOS = ImpersonateOS.IOS
_MAC = ImpersonateOS.MACOS

# (product, os) -> User-Agent template. Version numbers in the templates are
# placeholders; _patch_version rewrites them for the requested identity.
# Safari and okhttp keys use a device key instead of an OS.
_USER_AGENTS: dict[tuple[str, object], str] = {
    ("chrome", ImpersonateOS.WINDOWS): (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Safari/537.36"
    ),
    ("chrome", _MAC): (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Safari/537.36"
    ),
    ("chrome", ImpersonateOS.LINUX): (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Safari/537.36"
    ),
    ("chrome", ImpersonateOS.ANDROID): (
        "Mozilla/5.0 (Linux; Android 10; K) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/133.0.0.0 Mobile Safari/537.36"
    ),
    ("chrome", _IOS): (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_7 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "CriOS/133.0.0.0 Mobile/15E148 Safari/604.1"
    ),
    ("edge", ImpersonateOS.WINDOWS): (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0"
    ),
    ("edge", _MAC): (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0"
    ),
    ("edge", ImpersonateOS.LINUX): (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36 Edg/131.0.0.0"
    ),
    ("edge", ImpersonateOS.ANDROID): (
        "Mozilla/5.0 (Linux; Android 10; K) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Mobile Safari/537.36 EdgA/131.0.0.0"
    ),
    ("edge", _IOS): (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_7 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/17.0 EdgiOS/131.0.0.0 Mobile/15E148 Safari/605.1.15"
    ),
    ("firefox", ImpersonateOS.WINDOWS): (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:133.0) "
        "Gecko/20100101 Firefox/133.0"
    ),
    ("firefox", _MAC): (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:133.0) "
        "Gecko/20100101 Firefox/133.0"
    ),
    ("firefox", ImpersonateOS.LINUX): (
        "Mozilla/5.0 (X11; Linux x86_64; rv:133.0) "
        "Gecko/20100101 Firefox/133.0"
    ),
    ("firefox", ImpersonateOS.ANDROID): (
        "Mozilla/5.0 (Android 14; Mobile; rv:133.0) "
        "Gecko/133.0 Firefox/133.0"
    ),
    ("firefox", _IOS): (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 17_7 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "FxiOS/133.0 Mobile/15E148 Safari/605.1.15"
    ),
    ("safari", "macos"): (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/18.2 Safari/605.1.15"
    ),
    ("safari", "ios"): (
        "Mozilla/5.0 (iPhone; CPU iPhone OS 18_2 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/18.2 Mobile/15E148 Safari/604.1"
    ),
    ("safari", "ipad"): (
        "Mozilla/5.0 (iPad; CPU OS 18_2 like Mac OS X) "
        "AppleWebKit/605.1.15 (KHTML, like Gecko) "
        "Version/18.2 Mobile/15E148 Safari/604.1"
    ),
    ("okhttp", None): "okhttp/4.9.0",
}

# product -> version substitution rules: (pattern, formatter)
_VERSION_RULES: dict[str, list[tuple[re.Pattern, str]]] = {
    "chrome": [
        (re.compile(r"\b(Chrome|CriOS)/[\d.]+"), r"\g<1>/{full}"),
    ],
    "edge": [
        (re.compile(r"\bChrome/[\d.]+"), "Chrome/{full}"),
        (re.compile(r"\b(Edg|EdgA|EdgiOS)/[\d.]+"), r"\g<1>/{full}"),
    ],
    "firefox": [
        (re.compile(r"\brv:[\d.]+"), "rv:{major}.0"),
        (re.compile(r"\bGecko/\d+\.\d+"), "Gecko/{major}.0"),
        (re.compile(r"\b(Firefox|FxiOS)/[\d.]+"), r"\g<1>/{major}.0"),
    ],
    "safari": [
        (re.compile(r"\bVersion/[\d.]+"), "Version/{version}"),
        (re.compile(r"\bOS \d+(?:_\d+)+ like"), "OS {ios} like"),
    ],
    "okhttp": [
        (re.compile(r"\bokhttp/[\d.]+"), "okhttp/{triple}"),
    ],
}


# ---------------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BrowserProfile:
    """A coherent (User-Agent, headers) pair for one identity/OS."""

    impersonate: Impersonate
    os: ImpersonateOS
    user_agent: str
    headers: Mapping[str, str]


def extract_version(token: str) -> str:
    """Return the version segment of an identity token.

    Tokens without a version segment fall back to DEFAULT_VERSION rather
    than failing. Catalogued identities always carry one.
    """
    parts = token.rsplit("_", 1)
    if len(parts) > 1 and parts[1]:
        return parts[1]
    logger.warning(
        "No version in identity %r, using default %s", token, DEFAULT_VERSION
    )
    return DEFAULT_VERSION


def generate_sec_ch_ua(major_version: str, brand: str = "Google Chrome") -> str:
    """Low-entropy sec-ch-ua: product, Chromium, fixed GREASE brand."""
    return (
        f'"{brand}";v="{major_version}", '
        f'"Chromium";v="{major_version}", '
        '"Not-A.Brand";v="99"'
    )


def _template_key(identity: Impersonate, os: ImpersonateOS) -> tuple:
    product = identity.product
    if identity.family is Family.SAFARI:
        # Safari only ships on Apple platforms
        return product, identity.variant or "macos"
    if identity.family is Family.NONE:
        return product, None
    return product, os


def _patch_version(template: str, product: str, version: str) -> str:
    parts = version.split(".")
    subs = {
        "version": version,
        "major": parts[0],
        "full": f"{parts[0]}.0.0.0",
        "triple": ".".join((parts + ["0", "0"])[:3]),
        "ios": "_".join((parts + ["0"])[:max(2, len(parts))]),
    }
    ua = template
    for pattern, replacement in _VERSION_RULES.get(product, []):
        ua = pattern.sub(replacement.format(**subs), ua)
    return ua


def user_agent_for(identity: Impersonate, os: ImpersonateOS | None = None) -> str:
    """Pick the (family, OS) User-Agent template and patch in the version."""
    os = os or DEFAULT_OS
    template = _USER_AGENTS[_template_key(identity, os)]
    return _patch_version(template, identity.product, extract_version(identity.value))


@functools.lru_cache(maxsize=None)
def synthesize(
    identity: Impersonate, os: ImpersonateOS | None = None
) -> BrowserProfile:
    """Build the header set and User-Agent for an identity/OS pair.

    Deterministic and memoized: the same pair always returns the same
    profile object.
    """
    os = os or DEFAULT_OS
    family = identity.family
    version = extract_version(identity.value)

    headers = dict(_BASE_HEADERS)
    if family is Family.CHROME:
        major = version.split(".")[0]
        headers["Accept"] = _ACCEPT[family]
        headers["sec-ch-ua"] = generate_sec_ch_ua(
            major, _BRANDS.get(identity.product, _BRANDS["chrome"])
        )
        headers["sec-ch-ua-mobile"] = "?1" if os.is_mobile else "?0"
        headers["sec-ch-ua-platform"] = f'"{os.value}"'
        headers.update(_NAVIGATION_HEADERS)
    elif family is Family.FIREFOX:
        headers["Accept"] = _ACCEPT[family]
        headers["Accept-Language"] = _FIREFOX_ACCEPT_LANGUAGE
        headers.update(_NAVIGATION_HEADERS)
    elif family is Family.SAFARI:
        headers["Accept"] = _ACCEPT[family]

    user_agent = user_agent_for(identity, os)
    headers["User-Agent"] = user_agent

    logger.debug(
        "Synthesized profile %s/%s: %s", identity.value, os.value, user_agent
    )
    return BrowserProfile(
        impersonate=identity,
        os=os,
        user_agent=user_agent,
        headers=MappingProxyType(headers),
    )


def get_browser_profile(
    browser: "str | Impersonate", os: "str | ImpersonateOS | None" = None
) -> BrowserProfile:
    """Resolve untyped tokens and synthesize their profile."""
    identity = resolve_identity(browser)
    if identity is None:
        raise ValueError("browser identity is required")
    return synthesize(identity, resolve_os(os))
