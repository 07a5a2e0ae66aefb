"""resilienthttp -- HTTP requests with retry and exponential backoff."""

from resilienthttp.client import (
    AsyncResilientClient,
    ResilientClient,
    ado,
    do,
    get,
)
from resilienthttp.config import (
    AsyncClientConfig,
    ClientConfig,
    RetryConfig,
    default_async_config,
    default_config,
)
from resilienthttp.errors import (
    CancellationError,
    ConstructionError,
    ResilientHTTPError,
    RetryExhausted,
    TransportError,
)
from resilienthttp.models import (
    Request,
    Response,
    new_request,
    new_request_with_cancel,
)
from resilienthttp.retry import (
    BackoffPolicy,
    ConstantBackoff,
    ExponentialBackoff,
    NoBackoff,
    RetryPredicate,
    ServerErrorPredicate,
    StatusCodePredicate,
)

__version__ = "0.1.0"

__all__ = [
    "AsyncClientConfig",
    "AsyncResilientClient",
    "BackoffPolicy",
    "CancellationError",
    "ClientConfig",
    "ConstantBackoff",
    "ConstructionError",
    "ExponentialBackoff",
    "NoBackoff",
    "Request",
    "ResilientClient",
    "ResilientHTTPError",
    "Response",
    "RetryConfig",
    "RetryExhausted",
    "RetryPredicate",
    "ServerErrorPredicate",
    "StatusCodePredicate",
    "TransportError",
    "ado",
    "default_async_config",
    "default_config",
    "do",
    "get",
    "new_request",
    "new_request_with_cancel",
]
