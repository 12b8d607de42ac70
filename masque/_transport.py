"""Transport setup: proxy, TLS trust, and rnet client construction."""

import functools
import logging
import os
import platform
import subprocess
from urllib.parse import urlsplit

import certifi
import rnet.blocking
from rnet import CertStore, Proxy

from masque._config import ClientConfig
from masque._errors import InvalidURL, TLSConfigurationError

logger = logging.getLogger("masque")

# Consulted in order, only when the option was not set explicitly.
PROXY_ENV_VARS = ("MASQUE_PROXY", "HTTPS_PROXY")
CA_BUNDLE_ENV_VARS = ("MASQUE_CA_BUNDLE", "CA_CERT_FILE")

_LINUX_CA_PATHS = (
    "/etc/ssl/certs/ca-certificates.crt",
    "/etc/pki/tls/certs/ca-bundle.crt",
    "/etc/ssl/ca-bundle.pem",
)

_PROXY_SCHEMES = ("http", "https", "socks4", "socks4a", "socks5", "socks5h")


def _first_env(names: tuple[str, ...]) -> str | None:
    for name in names:
        value = os.environ.get(name)
        if value:
            return value
    return None


def resolve_proxy(proxy: str | None) -> str | None:
    """Explicit proxy, else the first non-empty proxy env var."""
    return proxy or _first_env(PROXY_ENV_VARS)


def resolve_ca_bundle(ca_cert_file: str | None) -> str | None:
    """Explicit CA bundle, else the first non-empty CA env var."""
    return ca_cert_file or _first_env(CA_BUNDLE_ENV_VARS)


def validate_proxy(proxy: str) -> None:
    parts = urlsplit(proxy)
    if parts.scheme.lower() not in _PROXY_SCHEMES or not parts.hostname:
        raise InvalidURL(proxy, "proxy must be scheme://host[:port]")


def load_cert_store(path: str) -> CertStore:
    """Load a PEM bundle into an rnet CertStore or raise TLSConfigurationError."""
    try:
        with open(path, "rb") as f:
            pem = f.read()
    except OSError as e:
        raise TLSConfigurationError(path, e.strerror or str(e)) from e
    if b"-----BEGIN CERTIFICATE-----" not in pem:
        raise TLSConfigurationError(path, "no PEM certificates found")
    try:
        return CertStore.from_pem_stack(pem)
    except Exception as e:
        raise TLSConfigurationError(path, str(e)) from e


def _read_system_pem() -> bytes | None:
    if platform.system() == "Darwin":
        result = subprocess.run(
            [
                "security",
                "find-certificate",
                "-a",
                "-p",
                "/System/Library/Keychains/SystemRootCertificates.keychain",
            ],
            capture_output=True,
        )
        if result.returncode == 0 and result.stdout:
            return result.stdout
    elif platform.system() == "Linux":
        for path in _LINUX_CA_PATHS:
            try:
                with open(path, "rb") as f:
                    return f.read()
            except FileNotFoundError:
                continue
    return None


@functools.lru_cache(maxsize=1)
def system_cert_store() -> CertStore | None:
    """System trust store, falling back to certifi; None means rnet defaults."""
    try:
        pem = _read_system_pem()
        if pem is None:
            with open(certifi.where(), "rb") as f:
                pem = f.read()
        return CertStore.from_pem_stack(pem)
    except Exception:
        logger.debug("Failed to load system certs", exc_info=True)
        return None


def transport_kwargs(config: ClientConfig) -> dict:
    """Build kwargs for rnet client construction from a config snapshot.

    Resolved env values are used here only and never written back into
    the config.
    """
    kwargs: dict = {"cookie_store": config.cookie_store}

    proxy = resolve_proxy(config.proxy)
    if proxy:
        validate_proxy(proxy)
        kwargs["proxies"] = [Proxy.all(proxy)]

    if not config.verify:
        logger.warning(
            "TLS verification disabled: certificates will not be checked"
        )
        kwargs["verify"] = False
        return kwargs

    ca_bundle = resolve_ca_bundle(config.ca_cert_file)
    if ca_bundle:
        kwargs["verify"] = load_cert_store(ca_bundle)
    else:
        store = system_cert_store()
        kwargs["verify"] = store if store is not None else True
    return kwargs


def build_transport(config: ClientConfig) -> rnet.blocking.Client:
    """Construct the blocking rnet client for a config snapshot."""
    kwargs = transport_kwargs(config)
    logger.debug(
        "Transport built: proxy=%s, verify=%s, cookie_store=%s",
        "yes" if "proxies" in kwargs else "no",
        config.verify,
        config.cookie_store,
    )
    return rnet.blocking.Client(**kwargs)
