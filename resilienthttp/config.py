"""Immutable retry configuration."""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, Field

from resilienthttp.retry import (
    BackoffPolicy,
    ExponentialBackoff,
    RetryPredicate,
    ServerErrorPredicate,
)

DEFAULT_RETRY_BUDGET = 4
DEFAULT_TIMEOUT = 30.0  # seconds


class RetryConfig(BaseModel):
    """Retry budget and policies, shared by the sync and async loops.

    ``retry_budget`` is the maximum number of attempts, including the first.
    """

    retry_budget: int = Field(default=DEFAULT_RETRY_BUDGET, ge=1)
    retry_predicate: RetryPredicate = Field(default_factory=ServerErrorPredicate)
    backoff: BackoffPolicy = Field(default_factory=ExponentialBackoff)
    # When False, a transport failure is raised immediately instead of
    # consuming an attempt.
    retry_on_transport_error: bool = True

    model_config = {"frozen": True, "arbitrary_types_allowed": True}


class ClientConfig(RetryConfig):
    transport: httpx.Client


class AsyncClientConfig(RetryConfig):
    transport: httpx.AsyncClient


def default_config(*, timeout: float = DEFAULT_TIMEOUT, **overrides: Any) -> ClientConfig:
    """Return a fresh configuration with its own transport."""
    transport = httpx.Client(timeout=timeout)
    try:
        return ClientConfig(transport=transport, **overrides)
    except Exception:
        transport.close()
        raise


def default_async_config(
    *, timeout: float = DEFAULT_TIMEOUT, **overrides: Any
) -> AsyncClientConfig:
    # An AsyncClient can only be closed from a running loop, so the overrides
    # are validated before it is created.
    RetryConfig(**overrides)
    return AsyncClientConfig(transport=httpx.AsyncClient(timeout=timeout), **overrides)
