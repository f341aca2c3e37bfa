"""
Error taxonomy for the outreach metrics pipeline.

Every failure that crosses the fetch boundary is converted into a
FetchError(kind, message) before it reaches the presentation layer.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


# Error kinds (normalized)
NETWORK = "network"
SERVER = "server"
VALIDATION = "validation"
EMPTY_RESULT = "empty_result"
UNEXPECTED = "unexpected"


class MetricsError(Exception):
    """Base class for all pipeline errors."""

    kind = UNEXPECTED

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_fetch_error(self) -> "FetchError":
        return FetchError(kind=self.kind, message=self.message)


class NetworkError(MetricsError):
    """Transport failure or timeout talking to the backend."""

    kind = NETWORK


class ServerError(MetricsError):
    """Backend answered with a non-2xx status."""

    kind = SERVER

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ValidationError(MetricsError):
    """Malformed input or malformed response envelope."""

    kind = VALIDATION


class EmptyResultError(MetricsError):
    """The backend returned zero workspaces."""

    kind = EMPTY_RESULT


@dataclass(frozen=True)
class FetchError:
    """Normalized error exposed to the presentation layer."""
    kind: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


def normalize_error(exc: BaseException) -> FetchError:
    """
    Convert any exception raised during a fetch into a FetchError.

    Args:
        exc: Exception caught at the orchestration boundary

    Returns:
        FetchError with one of the normalized kinds
    """
    if isinstance(exc, MetricsError):
        return exc.to_fetch_error()
    message = str(exc) or exc.__class__.__name__
    return FetchError(kind=UNEXPECTED, message=message)


def format_server_message(body: Any, status_code: int) -> str:
    """
    Build a display message from an error response body.

    Bodies look like {"error": "...", "details": "..."}; details are optional.
    """
    if isinstance(body, dict):
        error = body.get("error")
        details = body.get("details")
        if error and details:
            return f"{error}: {details}"
        if error:
            return str(error)
    return f"Request failed with status {status_code}"
