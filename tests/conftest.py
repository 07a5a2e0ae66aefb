"""Shared pytest fixtures for resilienthttp tests."""

from typing import Callable, Iterable, Optional

import httpx

from resilienthttp.config import AsyncClientConfig, ClientConfig
from resilienthttp.retry import BackoffPolicy, CancelSignal


class TrackingStream(httpx.SyncByteStream):
    """Response body that remembers whether it was released."""

    def __init__(self, body: bytes = b"") -> None:
        self.body = body
        self.closed = False

    def __iter__(self):
        yield self.body

    def close(self) -> None:
        self.closed = True


class AsyncTrackingStream(httpx.AsyncByteStream):
    def __init__(self, body: bytes = b"") -> None:
        self.body = body
        self.closed = False

    async def __aiter__(self):
        yield self.body

    async def aclose(self) -> None:
        self.closed = True


class RecordingBackoff(BackoffPolicy):
    """Backoff that never sleeps and records the attempts it was called with."""

    def __init__(self) -> None:
        self.attempts: list[int] = []

    def get_delay(self, attempt: int) -> float:
        return 0.0

    def pause(self, attempt: int, cancel: Optional[CancelSignal] = None) -> None:
        self.attempts.append(attempt)

    async def apause(self, attempt: int, cancel: Optional[CancelSignal] = None) -> None:
        self.attempts.append(attempt)


def sequence_handler(
    statuses: Iterable[int],
    streams: Optional[list] = None,
    body: bytes = b"",
    asynchronous: bool = False,
) -> Callable[[httpx.Request], httpx.Response]:
    """Answer successive requests with the given statuses, repeating the last one.

    Every response body stream is appended to ``streams`` when given.
    """
    remaining = list(statuses)
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        status = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        stream = AsyncTrackingStream(body) if asynchronous else TrackingStream(body)
        if streams is not None:
            streams.append(stream)
        return httpx.Response(status, stream=stream)

    handler.calls = calls  # type: ignore[attr-defined]
    return handler


def make_config(handler, **kwargs) -> ClientConfig:
    """Create a ClientConfig backed by httpx.MockTransport."""
    kwargs.setdefault("backoff", RecordingBackoff())
    transport = httpx.MockTransport(handler)
    return ClientConfig(transport=httpx.Client(transport=transport), **kwargs)


def make_async_config(handler, **kwargs) -> AsyncClientConfig:
    kwargs.setdefault("backoff", RecordingBackoff())
    transport = httpx.MockTransport(handler)
    return AsyncClientConfig(transport=httpx.AsyncClient(transport=transport), **kwargs)
