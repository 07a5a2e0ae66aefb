"""Retry loop over httpx with pluggable predicate and backoff."""

from __future__ import annotations

import enum
import logging
from typing import Any, Mapping, Optional, Union

import httpx

from resilienthttp.config import (
    DEFAULT_TIMEOUT,
    AsyncClientConfig,
    ClientConfig,
    RetryConfig,
    default_async_config,
    default_config,
)
from resilienthttp.errors import CancellationError, RetryExhausted, TransportError
from resilienthttp.models import Body, Request, Response, new_request
from resilienthttp.retry import CancelSignal

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    SUCCESS = "success"
    RETRY = "retry"
    EXHAUSTED = "exhausted"


def classify(config: RetryConfig, status_code: int, attempt: int) -> Outcome:
    """Decide what the loop does with a response from ``attempt``.

    A status the predicate declines is terminal: below 500 it is handed to
    the caller, from 500 up it ends the loop as exhausted. A status the
    predicate accepts is retried while attempts remain.
    """
    if config.retry_predicate.should_retry(status_code):
        return Outcome.RETRY if attempt < config.retry_budget else Outcome.EXHAUSTED
    if status_code < 500:
        return Outcome.SUCCESS
    return Outcome.EXHAUSTED


def _exhausted(
    config: RetryConfig,
    last_status: Optional[int],
    response: Optional[Response],
    last_error: Optional[BaseException],
) -> RetryExhausted:
    logger.error(
        "all retries failed: budget=%d last_status=%s",
        config.retry_budget,
        "no response" if last_status is None else last_status,
    )
    return RetryExhausted(config.retry_budget, last_status, response, last_error)


def do(config: ClientConfig, request: Request) -> Response:
    """Send ``request`` with retries and backoff.

    Returns the first response the retry predicate does not ask to retry,
    as long as its status is below 500. The caller owns it.

    Raises:
        RetryExhausted: every attempt failed, the predicate declined a
            server error, or a failed attempt cannot be repeated because its
            body was a single-use stream. Carries the last response, left open.
        TransportError: no response and ``retry_on_transport_error`` is off.
        CancellationError: the request's cancellation signal fired.
    """
    budget = config.retry_budget
    last_status: Optional[int] = None
    last_error: Optional[BaseException] = None

    for attempt in range(1, budget + 1):
        if request.cancelled:
            raise CancellationError(attempt=attempt)

        try:
            raw = config.transport.send(request.build(config.transport), stream=True)
        except httpx.TransportError as exc:
            logger.warning(
                "attempt %d/%d failed as no response was generated: %s",
                attempt, budget, exc,
            )
            if not config.retry_on_transport_error:
                raise TransportError(str(exc), attempt=attempt) from exc
            last_status, last_error = None, exc
            if not request.replayable:
                raise _exhausted(config, None, None, exc) from exc
            if attempt < budget:
                config.backoff.pause(attempt, request.cancel)
            continue

        try:
            if request.cancelled:
                raise CancellationError(attempt=attempt)
            last_status, last_error = raw.status_code, None
            outcome = classify(config, raw.status_code, attempt)
            if outcome is Outcome.RETRY and not request.replayable:
                logger.warning(
                    "attempt %d/%d failed with status %d and its body cannot be resent",
                    attempt, budget, raw.status_code,
                )
                outcome = Outcome.EXHAUSTED
        except BaseException:
            raw.close()
            raise

        if outcome is Outcome.SUCCESS:
            logger.debug("attempt %d/%d got status %d", attempt, budget, raw.status_code)
            return Response(raw, attempt)
        if outcome is Outcome.EXHAUSTED:
            raise _exhausted(config, last_status, Response(raw, attempt), None)

        logger.warning("attempt %d/%d failed with status %d", attempt, budget, raw.status_code)
        raw.close()
        config.backoff.pause(attempt, request.cancel)

    raise _exhausted(config, last_status, None, last_error) from last_error


async def ado(config: AsyncClientConfig, request: Request) -> Response:
    """Async counterpart of :func:`do`.

    Task cancellation propagates as ``asyncio.CancelledError``. The request's
    cancellation signal is checked around every attempt and during backoff.
    """
    budget = config.retry_budget
    last_status: Optional[int] = None
    last_error: Optional[BaseException] = None

    for attempt in range(1, budget + 1):
        if request.cancelled:
            raise CancellationError(attempt=attempt)

        try:
            raw = await config.transport.send(request.build(config.transport), stream=True)
        except httpx.TransportError as exc:
            logger.warning(
                "attempt %d/%d failed as no response was generated: %s",
                attempt, budget, exc,
            )
            if not config.retry_on_transport_error:
                raise TransportError(str(exc), attempt=attempt) from exc
            last_status, last_error = None, exc
            if not request.replayable:
                raise _exhausted(config, None, None, exc) from exc
            if attempt < budget:
                await config.backoff.apause(attempt, request.cancel)
            continue

        try:
            if request.cancelled:
                raise CancellationError(attempt=attempt)
            last_status, last_error = raw.status_code, None
            outcome = classify(config, raw.status_code, attempt)
            if outcome is Outcome.RETRY and not request.replayable:
                logger.warning(
                    "attempt %d/%d failed with status %d and its body cannot be resent",
                    attempt, budget, raw.status_code,
                )
                outcome = Outcome.EXHAUSTED
        except BaseException:
            await raw.aclose()
            raise

        if outcome is Outcome.SUCCESS:
            logger.debug("attempt %d/%d got status %d", attempt, budget, raw.status_code)
            return Response(raw, attempt)
        if outcome is Outcome.EXHAUSTED:
            raise _exhausted(config, last_status, Response(raw, attempt), None)

        logger.warning("attempt %d/%d failed with status %d", attempt, budget, raw.status_code)
        await raw.aclose()
        await config.backoff.apause(attempt, request.cancel)

    raise _exhausted(config, last_status, None, last_error) from last_error


class ResilientClient:
    """Synchronous HTTP client that retries transient server failures.

    Usage:
        with ResilientClient() as client:
            response = client.get("http://localhost:8001/goals-list")
            print(response.read())
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = config is None
        self._config = config or default_config(timeout=timeout)

    @property
    def config(self) -> ClientConfig:
        return self._config

    def __enter__(self) -> "ResilientClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying transport if this client created it."""
        if self._owns_client:
            self._config.transport.close()

    def do(self, request: Request) -> Response:
        return do(self._config, request)

    def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        *,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> Response:
        return self.do(Request(method, url, body=body, headers=headers, cancel=cancel))

    def get(
        self,
        url: Union[str, httpx.URL],
        *,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> Response:
        return self.request("GET", url, headers=headers, cancel=cancel)


class AsyncResilientClient:
    """Async client for callers running inside an event loop.

    Usage:
        async with AsyncResilientClient() as client:
            response = await client.get("http://localhost:8001/goals-list")
            print(await response.aread())
    """

    def __init__(
        self,
        config: Optional[AsyncClientConfig] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = config is None
        self._config = config or default_async_config(timeout=timeout)

    @property
    def config(self) -> AsyncClientConfig:
        return self._config

    async def __aenter__(self) -> "AsyncResilientClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._config.transport.aclose()

    async def do(self, request: Request) -> Response:
        return await ado(self._config, request)

    async def request(
        self,
        method: str,
        url: Union[str, httpx.URL],
        *,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> Response:
        return await self.do(Request(method, url, body=body, headers=headers, cancel=cancel))

    async def get(
        self,
        url: Union[str, httpx.URL],
        *,
        headers: Optional[Mapping[str, str]] = None,
        cancel: Optional[CancelSignal] = None,
    ) -> Response:
        return await self.request("GET", url, headers=headers, cancel=cancel)


def get(
    url: Union[str, httpx.URL],
    *,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Response:
    """One-shot GET with the default configuration.

    The body is read into memory before the transport is closed, so the
    returned response (or the one attached to RetryExhausted) stays usable.
    """
    request = new_request("GET", url, headers=headers)
    with ResilientClient(timeout=timeout) as client:
        try:
            response = client.do(request)
        except RetryExhausted as exc:
            if exc.response is not None:
                exc.response.read()
            raise
        response.read()
        return response
