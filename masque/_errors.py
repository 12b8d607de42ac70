"""Typed exceptions for masque."""

from concurrent.futures import CancelledError


class MasqueError(Exception):
    """Base exception for all masque errors."""


class UnknownIdentity(MasqueError, ValueError):
    """Impersonation token is not in the browser catalogue."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown impersonation identity: {token!r}")


class UnknownOS(MasqueError, ValueError):
    """Impersonation OS token is not one of the supported platforms."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown impersonation OS: {token!r}")


class InvalidURL(MasqueError, ValueError):
    """URL could not be parsed or lacks a usable scheme/host."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class BodyEncodingError(MasqueError, ValueError):
    """Request body could not be serialized."""

    def __init__(self, kind: str, reason: str):
        self.kind = kind
        self.reason = reason
        super().__init__(f"Failed to encode {kind} body: {reason}")


class FileAccessError(MasqueError, OSError):
    """A file referenced by a multipart upload could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read file {path!r}: {reason}")


class TLSConfigurationError(MasqueError):
    """CA bundle could not be loaded."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load CA bundle {path!r}: {reason}")


class TransportError(MasqueError):
    """Network-level failure while sending a request."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class RequestTimeout(TransportError, TimeoutError):
    """Request exceeded its timeout deadline."""

    def __init__(self, url: str, timeout_secs: float | None):
        self.timeout_secs = timeout_secs
        if timeout_secs is None:
            reason = "timed out"
        else:
            reason = f"exceeded {timeout_secs:.1f}s timeout"
        super().__init__(url, reason)


class DecodeError(MasqueError, ValueError):
    """Response body could not be decoded (JSON or charset)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to decode response from {url}: {reason}")


class HTTPStatusError(MasqueError):
    """HTTP error raised by raise_for_status()."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"HTTP {status_code} at {url}")


class RequestCancelled(MasqueError, CancelledError):
    """A batched request was cancelled before it started."""

    def __init__(self, request_id: str, url: str):
        self.request_id = request_id
        self.url = url
        super().__init__(f"Request {request_id!r} to {url} was cancelled")
