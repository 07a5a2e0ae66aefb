"""resilienthttp error types."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from resilienthttp.models import Response


class ResilientHTTPError(Exception):
    """Base error for request construction and retry outcomes."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 0,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, message={self.message!r}, "
            f"status_code={self.status_code})"
        )


class ConstructionError(ResilientHTTPError):
    """Malformed request inputs. Never retried."""

    def __init__(self, message: str) -> None:
        super().__init__("INVALID_REQUEST", message)


class TransportError(ResilientHTTPError):
    """The call never produced a response (DNS, connect, timeout)."""

    def __init__(self, message: str, attempt: int = 0) -> None:
        super().__init__("TRANSPORT_ERROR", message)
        self.attempt = attempt


class CancellationError(ResilientHTTPError):
    """The request's cancellation signal fired mid-attempt or mid-backoff."""

    def __init__(self, message: str = "request cancelled", attempt: int = 0) -> None:
        super().__init__("CANCELLED", message)
        self.attempt = attempt


class RetryExhausted(ResilientHTTPError):
    """All attempts were consumed without a terminal response.

    ``response`` is the last response observed (left open so the caller can
    inspect headers and body), or None if every attempt failed at the
    transport level. ``last_error`` is the last transport failure, if any.
    """

    def __init__(
        self,
        retry_budget: int,
        last_status: Optional[int] = None,
        response: Optional["Response"] = None,
        last_error: Optional[BaseException] = None,
    ) -> None:
        status = "no response" if last_status is None else str(last_status)
        super().__init__(
            "RETRY_EXHAUSTED",
            f"request failed after {retry_budget} attempts: last status={status}",
            status_code=last_status or 0,
        )
        self.retry_budget = retry_budget
        self.last_status = last_status
        self.response = response
        self.last_error = last_error
