# harness/errors.py
"""
Exception hierarchy for the harness.

Each error carries an ErrorKind so reports and outcomes can be bucketed
without isinstance chains.
"""

from __future__ import annotations

from typing import Any, List, Optional, TYPE_CHECKING

from harness.models import ErrorKind

if TYPE_CHECKING:
    from harness.models import ResponseRecord, ValidationOutcome


class HarnessError(Exception):
    """Base exception for harness errors"""
    kind: ErrorKind = ErrorKind.VALIDATION


class TransportError(HarnessError):
    """Network, DNS or timeout failure; no response was received"""
    kind = ErrorKind.TRANSPORT

    def __init__(self, method: str, url: str, original: Optional[BaseException] = None):
        self.method = method
        self.url = url
        self.original = original
        reason = f"{type(original).__name__}: {original}" if original else "unknown transport failure"
        super().__init__(f"{method} {url} failed: {reason}")


class MalformedResponseError(HarnessError):
    """Response body was expected to be JSON but is not"""
    kind = ErrorKind.MALFORMED_RESPONSE

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"Malformed JSON response: {detail}")


class InvalidStateError(HarnessError):
    """Workflow method called from the wrong state (test bug, not an API failure)"""
    kind = ErrorKind.INVALID_STATE

    def __init__(self, state: Any, operation: str):
        self.state = state
        self.operation = operation
        state_name = getattr(state, "value", state)
        super().__init__(f"Cannot call {operation}() while workflow is {state_name}")


class ValidationFailure(HarnessError):
    """An expectation was not met"""
    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        expected: Any = None,
        actual: Any = None,
        outcomes: Optional[List["ValidationOutcome"]] = None,
    ):
        self.expected = expected
        self.actual = actual
        self.outcomes = list(outcomes or [])
        super().__init__(message)


class AuthenticationFailed(ValidationFailure):
    """Login did not produce a usable session"""

    def __init__(self, record: "ResponseRecord", detail: str):
        self.record = record
        super().__init__(
            f"Authentication failed: {detail}",
            expected="200 with data.token and data.user._id",
            actual=record.status_code,
        )


class ConfigurationError(HarnessError):
    """Missing config key or unresolved path parameter"""
    kind = ErrorKind.CONFIGURATION

    def __init__(self, key: str, detail: str = "missing required value"):
        self.key = key
        self.detail = detail
        super().__init__(f"Configuration error for '{key}': {detail}")
