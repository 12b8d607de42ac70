"""Shared mock objects and client factories for masque tests."""

from concurrent.futures import ThreadPoolExecutor
from urllib.parse import urlparse

from masque._async import AsyncClient
from masque._client import Client
from masque._config import ClientConfig

# ---------------------------------------------------------------------------
# Mock rnet types
# ---------------------------------------------------------------------------


class MockStatus:
    def __init__(self, code: int):
        self._code = code

    def as_int(self) -> int:
        return self._code


class MockHeaderMap:
    """Mock rnet HeaderMap with bytes keys and bytes values.

    Accepts a dict or a list of (name, value) pairs so repeated headers
    such as Set-Cookie can be expressed.
    """

    def __init__(self, data=None):
        self._raw: dict[bytes, list[bytes]] = {}
        items = data.items() if isinstance(data, dict) else (data or [])
        for k, v in items:
            bk = k.lower().encode("ascii")
            self._raw.setdefault(bk, []).append(v.encode("utf-8"))

    def keys(self):
        return list(self._raw.keys())

    def __getitem__(self, key):
        if isinstance(key, str):
            key = key.lower().encode("ascii")
        return self._raw[key][0]

    def get(self, key):
        try:
            return self[key]
        except KeyError:
            return None

    def get_all(self, key):
        if isinstance(key, str):
            key = key.lower().encode("ascii")
        return list(self._raw.get(key, []))


class MockResponse:
    """Mock rnet response whose body can be consumed only once."""

    def __init__(
        self,
        status_code: int = 200,
        headers=None,
        body: bytes | str = b"",
        url: str | None = None,
        chunks: list[bytes] | None = None,
    ):
        self.status = MockStatus(status_code)
        self.headers = MockHeaderMap(headers)
        if url is not None:
            self.url = url
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._chunks = chunks
        self.read_count = 0

    def bytes(self):
        self.read_count += 1
        if self.read_count > 1:
            return b""
        return self._body

    def stream(self):
        self.read_count += 1
        yield from self._chunks if self._chunks is not None else [self._body]


class FailingBodyResponse(MockResponse):
    def bytes(self):
        raise ConnectionResetError("connection reset by peer")


class MockCookie:
    def __init__(self, name, value, domain=None, path="/"):
        self.name = name
        self.value = value
        self.domain = domain
        self.path = path


class MockJar:
    """Mock cookie jar: add() parses name=value, get_all() lists cookies."""

    def __init__(self, cookies: list[MockCookie] | None = None):
        self.added = []
        self._cookies = list(cookies or [])

    def add(self, cookie_str, url):
        self.added.append((cookie_str, url))
        name, _, value = cookie_str.split(";", 1)[0].partition("=")
        self._cookies = [c for c in self._cookies if c.name != name]
        self._cookies.append(MockCookie(name, value, urlparse(url).hostname))

    def get_all(self):
        return list(self._cookies)


class MockClient:
    """Mock rnet client that returns responses from a sequence.

    Tracks request_count, last_kwargs and request_log. An Exception in
    the sequence is raised instead of returned.
    """

    def __init__(self, responses=None, cookie_jar: MockJar | None = None):
        self._responses = responses or [MockResponse(200)]
        self._index = 0
        self.request_count = 0
        self.last_kwargs: dict = {}
        self.request_log: list[tuple] = []
        self.cookie_jar = cookie_jar or MockJar()

    def request(self, method, url, **kwargs):
        self.last_kwargs = kwargs
        resp = self._responses[min(self._index, len(self._responses) - 1)]
        self._index += 1
        self.request_count += 1
        self.request_log.append((method, url, kwargs))
        if isinstance(resp, Exception):
            raise resp
        return resp


class RoutingClient(MockClient):
    """Mock rnet client that answers by URL (safe to use from threads)."""

    def __init__(self, routes: dict):
        super().__init__()
        self._routes = routes

    def request(self, method, url, **kwargs):
        self.request_log.append((method, url, kwargs))
        resp = self._routes[url.split("?", 1)[0]]
        if isinstance(resp, Exception):
            raise resp
        return resp


# ---------------------------------------------------------------------------
# Client factories (no transport construction, no network)
# ---------------------------------------------------------------------------


def make_client(responses=None, mock=None, **options) -> tuple[Client, MockClient]:
    mock = mock or MockClient(responses)
    client = Client.__new__(Client)
    client._config = ClientConfig.from_options(**options)
    client._client = mock
    return client, mock


def make_async_client(
    mock=None, max_workers: int = 4, **options
) -> tuple[AsyncClient, MockClient]:
    mock = mock or MockClient()
    client = AsyncClient.__new__(AsyncClient)
    client._config = ClientConfig.from_options(**options)
    client._client = mock
    client._executor = ThreadPoolExecutor(max_workers=max_workers)
    return client, mock
