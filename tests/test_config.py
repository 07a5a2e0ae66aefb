"""Configuration validation tests."""

from unittest.mock import patch

import httpx
import pytest
from pydantic import ValidationError

from resilienthttp.config import (
    AsyncClientConfig,
    ClientConfig,
    default_async_config,
    default_config,
)
from resilienthttp.retry import (
    ExponentialBackoff,
    NoBackoff,
    ServerErrorPredicate,
    StatusCodePredicate,
)


class TestClientConfig:
    def test_defaults(self):
        config = default_config()
        try:
            assert config.retry_budget == 4
            assert isinstance(config.retry_predicate, ServerErrorPredicate)
            assert isinstance(config.backoff, ExponentialBackoff)
            assert config.backoff.base_delay == 1.0
            assert config.backoff.max_delay == 16.0
            assert config.backoff.jitter == 0.5
            assert config.retry_on_transport_error is True
            assert isinstance(config.transport, httpx.Client)
            assert config.transport.timeout == httpx.Timeout(30.0)
        finally:
            config.transport.close()

    def test_overrides(self):
        config = default_config(
            timeout=5.0,
            retry_budget=2,
            retry_predicate=StatusCodePredicate(),
            backoff=NoBackoff(),
        )
        try:
            assert config.retry_budget == 2
            assert isinstance(config.retry_predicate, StatusCodePredicate)
            assert config.transport.timeout == httpx.Timeout(5.0)
        finally:
            config.transport.close()

    def test_default_config_is_fresh_each_call(self):
        first = default_config()
        second = default_config()
        try:
            assert first is not second
            assert first.transport is not second.transport
            assert first.backoff is not second.backoff
        finally:
            first.transport.close()
            second.transport.close()

    @pytest.mark.parametrize("budget", [0, -1])
    def test_budget_below_one_is_rejected(self, budget):
        with httpx.Client() as transport:
            with pytest.raises(ValidationError):
                ClientConfig(transport=transport, retry_budget=budget)

    def test_default_config_rejects_zero_budget(self):
        with pytest.raises(ValidationError):
            default_config(retry_budget=0)

    def test_is_frozen(self):
        with httpx.Client() as transport:
            config = ClientConfig(transport=transport)
            with pytest.raises(ValidationError):
                config.retry_budget = 10

    def test_policies_must_be_strategy_objects(self):
        with httpx.Client() as transport:
            with pytest.raises(ValidationError):
                ClientConfig(transport=transport, retry_predicate=lambda status: True)
            with pytest.raises(ValidationError):
                ClientConfig(transport=transport, backoff=lambda attempt: None)

    def test_transport_type_is_checked(self):
        with pytest.raises(ValidationError):
            ClientConfig(transport="http://example.com")


class TestAsyncClientConfig:
    async def test_defaults(self):
        config = default_async_config()
        try:
            assert config.retry_budget == 4
            assert isinstance(config.transport, httpx.AsyncClient)
        finally:
            await config.transport.aclose()

    def test_invalid_overrides_create_no_transport(self):
        with patch("resilienthttp.config.httpx.AsyncClient") as async_client:
            with pytest.raises(ValidationError):
                default_async_config(retry_budget=0)
        async_client.assert_not_called()

    def test_rejects_sync_transport(self):
        with httpx.Client() as transport:
            with pytest.raises(ValidationError):
                AsyncClientConfig(transport=transport)
