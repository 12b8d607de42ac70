"""Response -- lazy, memoizing wrapper around a raw rnet response."""

import codecs
import json
import logging
from typing import Any, Iterator

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, ProcessingInstruction

from masque._cookies import cookies_from_headers
from masque._errors import DecodeError, HTTPStatusError, TransportError

logger = logging.getLogger("masque")

DEFAULT_ENCODING = "utf-8"

_NON_TEXT_NODES = (Comment, Declaration, Doctype, ProcessingInstruction)


def charset_from_content_type(content_type: str) -> str | None:
    """Return the ``charset=`` parameter of a Content-Type, unquoted."""
    for part in content_type.split(";")[1:]:
        key, _, value = part.strip().partition("=")
        if key.strip().lower() == "charset":
            value = value.strip().strip("\"'")
            return value or None
    return None


def _decode_headers(header_map) -> dict[str, str]:
    """Decode rnet HeaderMap to a lowercase-key dict, first value per key.

    Use ``Response.get_all`` for repeated headers such as Set-Cookie.
    """
    result: dict[str, str] = {}
    for raw_key in header_map.keys():
        k = raw_key.decode("ascii", errors="replace").lower()
        if k in result:
            continue
        raw = header_map.get(k)
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        result[k] = "" if raw is None else str(raw)
    return result


def flatten_markup(markup: str) -> str:
    """Concatenate every text node of a parsed HTML document."""
    soup = BeautifulSoup(markup, "html.parser")
    return "".join(
        s for s in soup.find_all(string=True)
        if not isinstance(s, _NON_TEXT_NODES)
    )


class Response:
    """Friendly response object wrapping a raw rnet response.

    The body is read from the transport at most once, on first access of
    ``content`` (or anything derived from it); every later accessor
    reuses the cached bytes. Decoded text and headers are memoized the
    same way.
    """

    __slots__ = (
        "status_code",
        "url",
        "elapsed",
        "_raw",
        "_content",
        "_encoding",
        "_text",
        "_headers",
        "_cookies",
    )

    def __init__(
        self,
        *,
        status_code: int,
        url: str,
        raw=None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        elapsed: float = 0.0,
    ):
        self.status_code = status_code
        self.url = url
        self.elapsed = elapsed
        self._raw = raw
        if content is None and raw is None:
            content = b""
        self._content = content
        self._encoding: str | None = None
        self._text: tuple[str, str] | None = None
        self._headers = (
            {k.lower(): v for k, v in headers.items()}
            if headers is not None
            else ({} if raw is None else None)
        )
        self._cookies: dict[str, str] | None = None

    # -- body ---------------------------------------------------------------

    @property
    def content(self) -> bytes:
        """Raw response body as bytes (read once, then cached)."""
        if self._content is None:
            try:
                self._content = self._raw.bytes()
            except Exception as e:
                raise TransportError(self.url, f"body read: {e}") from e
        return self._content

    @property
    def encoding(self) -> str:
        """Charset from Content-Type, else UTF-8. Assignable."""
        if self._encoding is None:
            charset = charset_from_content_type(
                self.headers.get("content-type", "")
            )
            self._encoding = charset or DEFAULT_ENCODING
        return self._encoding

    @encoding.setter
    def encoding(self, value: str) -> None:
        self._encoding = value

    @property
    def text(self) -> str:
        """Body decoded with ``encoding``.

        Unknown charsets decode as UTF-8; undecodable bytes fall back to
        UTF-8 with replacement instead of raising.
        """
        encoding = self.encoding
        if self._text is not None and self._text[0] == encoding:
            return self._text[1]
        try:
            info = codecs.lookup(encoding)
        except LookupError:
            info = None
        # base64, zlib, rot13 and friends are codecs but not charsets
        if info is None or not info._is_text_encoding:
            logger.debug("Unknown charset %r, decoding as utf-8", encoding)
            codec = DEFAULT_ENCODING
        else:
            codec = info.name
        try:
            text = self.content.decode(codec)
        except UnicodeDecodeError:
            logger.debug(
                "Body is not valid %s, falling back to utf-8 for %s",
                codec,
                self.url,
            )
            text = self.content.decode(DEFAULT_ENCODING, errors="replace")
        self._text = (encoding, text)
        return text

    def json(self, **kwargs) -> Any:
        try:
            return json.loads(self.content, **kwargs)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DecodeError(self.url, str(e)) from e

    def stream(self) -> Iterator[bytes]:
        """Iterate over the body in chunks.

        Streams straight from the transport when the body has not been
        read yet; the body then belongs to the caller and ``content`` is
        empty afterwards. Otherwise yields the cached content.
        """
        if self._content is not None:
            if self._content:
                yield self._content
            return
        self._content = b""
        try:
            for chunk in self._raw.stream():
                yield chunk
        except Exception as e:
            raise TransportError(self.url, f"body stream: {e}") from e

    @property
    def text_markdown(self) -> str:
        return flatten_markup(self.text)

    @property
    def text_plain(self) -> str:
        return flatten_markup(self.text)

    @property
    def text_rich(self) -> str:
        return flatten_markup(self.text)

    # -- headers and cookies ------------------------------------------------

    @property
    def headers(self) -> dict[str, str]:
        """Response headers with lowercase keys (first value per key)."""
        if self._headers is None:
            self._headers = _decode_headers(self._raw.headers)
        return self._headers

    def get_all(self, key: str) -> list[str]:
        """Return all values for a header key (e.g. individual Set-Cookie entries)."""
        if self._raw is None:
            val = self.headers.get(key.lower(), "")
            return [val] if val else []
        return [v.decode("utf-8", errors="replace") if isinstance(v, bytes) else v
                for v in self._raw.headers.get_all(key.lower())]

    @property
    def cookies(self) -> dict[str, str]:
        """Cookies set by this response (name -> value)."""
        if self._cookies is None:
            self._cookies = cookies_from_headers(self.get_all("set-cookie"))
        return self._cookies

    # -- status -------------------------------------------------------------

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def raise_for_status(self) -> None:
        if not self.ok:
            raise HTTPStatusError(self.status_code, self.url)

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}]>"
