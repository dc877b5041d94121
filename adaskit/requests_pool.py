"""A fixed pool of inference requests, each either idle or in use."""

from __future__ import annotations

import threading
from typing import Any, Callable, Iterable, Optional, Protocol


class InferRequest(Protocol):
    """What the pool and the pipeline need from an inference request."""

    def set_callback(self, callback: Callable[[Optional[BaseException]], None]) -> None: ...

    def start_async(self) -> None: ...

    def wait(self) -> None: ...

    def get_tensor(self, name: str) -> Any: ...


class RequestsPool:
    """Hands out idle requests and takes them back once their work is done.

    Every method except :meth:`wait_for_total_completion` is thread safe.
    """

    def __init__(self, requests: Iterable[InferRequest]) -> None:
        self._requests: list[InferRequest] = list(requests)
        self._busy: list[bool] = [False] * len(self._requests)
        self._in_use = 0
        self._lock = threading.Lock()

    def _index_of(self, request: InferRequest) -> int:
        for index, candidate in enumerate(self._requests):
            if candidate is request:
                return index
        raise ValueError("request does not belong to this pool")

    def get_idle_request(self) -> InferRequest | None:
        """Mark the first idle request as in use and return it, or None if all are busy."""
        with self._lock:
            for index, busy in enumerate(self._busy):
                if not busy:
                    self._busy[index] = True
                    self._in_use += 1
                    return self._requests[index]
            return None

    def set_request_idle(self, request: InferRequest) -> None:
        """Return a request to the idle state.

        Raises ValueError if the request is not part of the pool or is not in use.
        """
        with self._lock:
            index = self._index_of(request)
            if not self._busy[index]:
                raise ValueError("request is not in use")
            self._busy[index] = False
            self._in_use -= 1

    def in_use_count(self) -> int:
        with self._lock:
            return self._in_use

    def is_idle_request_available(self) -> bool:
        with self._lock:
            return self._in_use < len(self._requests)

    def wait_for_total_completion(self) -> None:
        """Wait for every request that is in use.

        No lock is held here: requests become idle in their completion
        callbacks, which take the lock themselves.
        """
        for request, busy in list(zip(self._requests, self._busy)):
            if busy:
                request.wait()

    def infer_requests(self) -> list[InferRequest]:
        """All requests of the pool, in order."""
        with self._lock:
            return list(self._requests)