"""Testing utilities for exercising getters without a live server.

Provides an in-memory HTTP router backed by :class:`httpx.MockTransport`, a
context manager yielding clients bound to such transports, and a dispatcher
double that records recursive fetches and materialises fake trees.
"""

from __future__ import annotations

import contextlib
import json
from collections import defaultdict, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import (
    Callable,
    Deque,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
    Union,
)

import httpx

__all__ = [
    "MockServer",
    "RecordingDispatcher",
    "RequestRecord",
    "ResponseSpec",
    "mock_http_client",
]

Handler = Callable[[httpx.Request], httpx.Response]


@contextlib.contextmanager
def mock_http_client(
    handler: Union[Handler, httpx.BaseTransport], **client_kwargs
) -> Iterator[httpx.Client]:
    """Yield an :class:`httpx.Client` whose requests are served by ``handler``."""

    transport = handler if isinstance(handler, httpx.BaseTransport) else httpx.MockTransport(handler)
    client = httpx.Client(transport=transport, **client_kwargs)
    try:
        yield client
    finally:
        client.close()


@dataclass
class ResponseSpec:
    """HTTP response definition served by :class:`MockServer`."""

    status: int = 200
    body: Union[bytes, str] = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    method: str = "GET"
    stream: Optional[Iterable[Union[bytes, str]]] = None

    def serialise_body(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return json.dumps(self.body).encode("utf-8")


@dataclass
class RequestRecord:
    """Captured HTTP request emitted by a getter during tests."""

    method: str
    url: httpx.URL
    headers: Mapping[str, str]

    @property
    def path(self) -> str:
        return self.url.path

    @property
    def params(self) -> Dict[str, str]:
        return dict(self.url.params)


class MockServer:
    """Route ``(method, path)`` pairs to queued or sticky responses.

    Responses queued with :meth:`add` are served once each in order; the last
    one for a route keeps being served once the queue would run dry.
    Unrouted requests answer 404.
    """

    def __init__(self) -> None:
        self._responses: Dict[Tuple[str, str], Deque[ResponseSpec]] = defaultdict(deque)
        self.requests: List[RequestRecord] = []

    def add(self, path: str, spec: Optional[ResponseSpec] = None, **kwargs) -> "MockServer":
        """Queue ``spec`` (or ``ResponseSpec(**kwargs)``) for ``path``."""

        spec = spec or ResponseSpec(**kwargs)
        self._responses[(spec.method.upper(), path)].append(spec)
        return self

    def requests_for(self, method: str, path: Optional[str] = None) -> List[RequestRecord]:
        return [
            record
            for record in self.requests
            if record.method == method.upper() and (path is None or record.path == path)
        ]

    def _next(self, method: str, path: str) -> Optional[ResponseSpec]:
        queue = self._responses.get((method, path))
        if not queue:
            return None
        if len(queue) > 1:
            return queue.popleft()
        return queue[0]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(
            RequestRecord(
                method=request.method,
                url=request.url,
                headers=dict(request.headers),
            )
        )
        spec = self._next(request.method.upper(), request.url.path or "/")
        if spec is None:
            return httpx.Response(404, request=request)

        if spec.stream is not None:

            def iterator() -> Iterator[bytes]:
                for chunk in spec.stream or []:
                    yield chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

            return httpx.Response(
                spec.status, headers=dict(spec.headers), content=iterator(), request=request
            )

        return httpx.Response(
            spec.status,
            headers=dict(spec.headers),
            content=spec.serialise_body(),
            request=request,
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


class RecordingDispatcher:
    """Dispatch double that records calls and writes fake trees.

    Args:
        trees: Per-locator mapping of relative file paths to contents written
            beneath the destination when that locator is dispatched.
        error: Exception raised after recording each call.
    """

    def __init__(
        self,
        trees: Optional[Mapping[str, Mapping[str, Union[bytes, str]]]] = None,
        *,
        error: Optional[BaseException] = None,
    ) -> None:
        self.trees = dict(trees or {})
        self.error = error
        self.calls: List[Tuple[Path, str]] = []

    def __call__(self, dst: Union[str, Path], src: str) -> None:
        destination = Path(dst)
        self.calls.append((destination, src))
        if self.error is not None:
            raise self.error
        destination.mkdir(parents=True, exist_ok=True)
        for relative, content in self.trees.get(src, {}).items():
            target = destination / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            data = content.encode("utf-8") if isinstance(content, str) else content
            target.write_bytes(data)
