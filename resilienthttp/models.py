"""Request and response wrappers around httpx values."""

from __future__ import annotations

import re
from typing import Any, AsyncIterator, Callable, Iterator, Mapping, Optional, Union

import httpx

from resilienthttp.errors import ConstructionError
from resilienthttp.retry import CancelSignal

# RFC 9110 token characters.
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_SCHEMES = ("http", "https")

BodyFactory = Callable[[], Any]
Body = Union[None, bytes, bytearray, str, BodyFactory, Any]


def _validate_method(method: str) -> str:
    if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
        raise ConstructionError(f"invalid method {method!r}")
    return method.upper()


def _validate_url(url: Union[str, httpx.URL]) -> httpx.URL:
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConstructionError(f"invalid url {url!r}: {exc}") from exc
    if parsed.scheme not in _SCHEMES:
        raise ConstructionError(f"unsupported url scheme in {url!r}")
    if not parsed.host:
        raise ConstructionError(f"url {url!r} has no host")
    return parsed


def _is_stream(body: Any) -> bool:
    return (
        hasattr(body, "read")
        or hasattr(body, "__iter__")
        or hasattr(body, "__aiter__")
    )


class Request:
    """A replayable description of one outgoing call.

    ``body`` may be bytes or str (resent as-is on every attempt), a zero
    argument callable returning fresh content for every attempt, or a
    single-use stream (iterable of bytes or file-like). A single-use stream
    can be sent once; building the request again raises ConstructionError.
    """

    def __init__(
        self,
        method: str,
        url: Union[str, httpx.URL],
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> None:
        self.method = _validate_method(method)
        self.url = _validate_url(url)
        try:
            self.headers = httpx.Headers(headers)
        except (TypeError, ValueError) as exc:
            raise ConstructionError(f"invalid headers: {exc}") from exc
        if cancel is not None and not (hasattr(cancel, "is_set") and hasattr(cancel, "wait")):
            raise ConstructionError("cancel must provide is_set() and wait()")
        self.cancel = cancel

        if body is None or isinstance(body, (bytes, str)):
            self._kind = "content"
        elif isinstance(body, bytearray):
            body = bytes(body)
            self._kind = "content"
        elif callable(body) and not _is_stream(body):
            self._kind = "factory"
        elif _is_stream(body):
            self._kind = "stream"
        else:
            raise ConstructionError(f"unsupported body type {type(body).__name__}")
        self._body = body
        self._sent = False

    def __repr__(self) -> str:
        return f"<Request [{self.method} {self.url}]>"

    @property
    def replayable(self) -> bool:
        return self._kind != "stream"

    @property
    def cancelled(self) -> bool:
        return self.cancel is not None and self.cancel.is_set()

    def _content(self) -> Any:
        if self._kind == "factory":
            return self._body()
        if self._kind == "stream":
            if self._sent:
                raise ConstructionError(
                    "request body is a single-use stream and was already sent; "
                    "pass bytes or a body factory to allow retries"
                )
            if hasattr(self._body, "read") and not hasattr(self._body, "__iter__"):
                return self._body.read()
        return self._body

    def build(self, client: Union[httpx.Client, httpx.AsyncClient]) -> httpx.Request:
        """Create the transport-native request for one attempt."""
        content = self._content()
        self._sent = True
        return client.build_request(
            self.method,
            self.url,
            content=content,
            headers=self.headers,
        )


def new_request(
    method: str,
    url: Union[str, httpx.URL],
    body: Body = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Request:
    """Build a request without a cancellation signal."""
    return Request(method, url, body=body, headers=headers)


def new_request_with_cancel(
    cancel: CancelSignal,
    method: str,
    url: Union[str, httpx.URL],
    body: Body = None,
    headers: Optional[Mapping[str, str]] = None,
) -> Request:
    """Build a request that honors ``cancel`` during attempts and backoff."""
    if cancel is None:
        raise ConstructionError("cancel signal is required")
    return Request(method, url, body=body, headers=headers, cancel=cancel)


class Response:
    """Final response of a retried request.

    Wraps an ``httpx.Response`` whose body may still be streaming. The caller
    owns it and should ``close()`` it (or use it as a context manager).
    """

    def __init__(self, raw: httpx.Response, attempt: int = 1) -> None:
        self._raw = raw
        self.attempt = attempt

    def __repr__(self) -> str:
        return f"<Response [{self.status_code}] attempt={self.attempt}>"

    def __enter__(self) -> "Response":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    async def __aenter__(self) -> "Response":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def status_code(self) -> int:
        return self._raw.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._raw.headers

    @property
    def url(self) -> httpx.URL:
        return self._raw.url

    @property
    def is_closed(self) -> bool:
        return self._raw.is_closed

    @property
    def content(self) -> bytes:
        """Body bytes. Only available after ``read()``/``aread()``."""
        return self._raw.content

    @property
    def text(self) -> str:
        return self._raw.text

    def json(self, **kwargs: Any) -> Any:
        return self._raw.json(**kwargs)

    def read(self) -> bytes:
        return self._raw.read()

    def iter_bytes(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        return self._raw.iter_bytes(chunk_size)

    def close(self) -> None:
        self._raw.close()

    async def aread(self) -> bytes:
        return await self._raw.aread()

    def aiter_bytes(self, chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
        return self._raw.aiter_bytes(chunk_size)

    async def aclose(self) -> None:
        await self._raw.aclose()
