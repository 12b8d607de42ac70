"""Concurrent dispatch: future-returning client and fan-out batches."""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from dataclasses import dataclass

from masque._client import Client
from masque._errors import RequestCancelled
from masque._response import Response

logger = logging.getLogger("masque")

DEFAULT_MAX_WORKERS = 10


@dataclass
class BatchResult:
    """Outcome of one batched request: a response or the error it raised."""

    response: Response | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None


class AsyncClient(Client):
    """Client whose ``*_async`` methods return ``concurrent.futures.Future``.

    Requests run on a bounded thread pool shared by the client. The
    blocking methods inherited from Client keep working as before.
    """

    def __init__(self, *, max_workers: int = DEFAULT_MAX_WORKERS, **options):
        super().__init__(**options)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="masque"
        )

    def request_async(self, method: str, url: str, **kwargs) -> "Future[Response]":
        return self._executor.submit(self.request, method, url, **kwargs)

    def get_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("GET", url, **kwargs)

    def head_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("HEAD", url, **kwargs)

    def options_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("OPTIONS", url, **kwargs)

    def delete_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("DELETE", url, **kwargs)

    def post_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("POST", url, **kwargs)

    def put_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("PUT", url, **kwargs)

    def patch_async(self, url: str, **kwargs) -> "Future[Response]":
        return self.request_async("PATCH", url, **kwargs)

    def close(self) -> None:
        """Wait for queued requests, then release the worker threads."""
        self._executor.shutdown(wait=True)


class Batch:
    """Fan out many requests through one client and collect them by id.

    A failed request never affects the others; its exception is kept in
    that id's BatchResult. Usage::

        with client.batch() as batch:
            batch.add("home", "GET", "https://example.com/")
            batch.add("api", "POST", "https://example.com/api", json={"q": 1})
            results = batch.wait()
    """

    def __init__(self, client: Client, max_workers: int | None = None):
        self._client = client
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or DEFAULT_MAX_WORKERS,
            thread_name_prefix="masque-batch",
        )
        self._lock = threading.Lock()
        self._futures: dict[str, Future] = {}
        self._urls: dict[str, str] = {}
        self._results: dict[str, BatchResult] = {}

    def _record(self, request_id: str, result: BatchResult) -> None:
        with self._lock:
            self._results[request_id] = result

    def _run(self, request_id: str, method: str, url: str, params: dict) -> None:
        try:
            response = self._client.request(method, url, **params)
        except Exception as e:
            logger.debug("Batch task %s failed: %s", request_id, e)
            self._record(request_id, BatchResult(error=e))
        else:
            logger.debug(
                "Batch task %s finished with %d", request_id, response.status_code
            )
            self._record(request_id, BatchResult(response=response))

    def add(self, request_id: str, method: str, url: str, **params) -> None:
        """Queue one request. Ids must be unique within the batch."""
        with self._lock:
            if request_id in self._futures:
                raise ValueError(f"Duplicate batch request id: {request_id!r}")
            self._urls[request_id] = url
            self._futures[request_id] = self._executor.submit(
                self._run, request_id, method, url, params
            )

    def cancel(self, request_id: str) -> bool:
        """Cancel a request that has not started yet.

        Returns False when it is already running or finished; its result
        is then whatever the request produces.
        """
        future = self._futures[request_id]
        if not future.cancel():
            return False
        self._record(
            request_id,
            BatchResult(error=RequestCancelled(request_id, self._urls[request_id])),
        )
        return True

    def wait(self, timeout: float | None = None) -> dict[str, BatchResult]:
        """Block until every queued request is done and return results by id.

        With a timeout, ids still running when it expires are absent from
        the returned mapping.
        """
        with self._lock:
            futures = list(self._futures.values())
        wait_futures(futures, timeout=timeout)
        with self._lock:
            return dict(self._results)

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
