"""
HTTP faults - faults that carry an explicit status code and message.

Guards, pipes and handlers raise these to control the error response.
The default exception filter recognizes the ``status`` + ``message`` shape
on any error, so third-party exceptions with the same attributes are
formatted the same way.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .core import Fault, FaultDomain


STATUS_PHRASES: Dict[int, str] = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    409: "Conflict",
    422: "Unprocessable Entity",
    429: "Too Many Requests",
    500: "Internal Server Error",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
}


def status_phrase(status: int) -> str:
    """Reason phrase for a status code."""
    return STATUS_PHRASES.get(status, "Unknown Error")


class HttpFault(Fault):
    """
    Fault with an HTTP status code.

    Example:
        raise HttpFault(418, "I'm a teapot")
    """

    domain = FaultDomain.FLOW

    def __init__(
        self,
        status: int,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        domain: Optional[FaultDomain] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.status = status
        super().__init__(
            code=code or getattr(self, "code", None) or f"HTTP_{status}",
            message=message if message is not None else status_phrase(status),
            domain=domain,
            metadata=metadata,
        )


class BadRequestFault(HttpFault):
    code = "BAD_REQUEST"
    domain = FaultDomain.VALIDATION

    def __init__(self, message: str = "Bad request parameters", **kwargs):
        super().__init__(400, message, **kwargs)


class UnauthorizedFault(HttpFault):
    code = "UNAUTHORIZED"
    domain = FaultDomain.SECURITY

    def __init__(self, message: str = "Unauthorized", **kwargs):
        super().__init__(401, message, **kwargs)


class AccessDeniedFault(HttpFault):
    code = "ACCESS_DENIED"
    domain = FaultDomain.SECURITY

    def __init__(self, message: str = "Access denied", **kwargs):
        super().__init__(403, message, **kwargs)


class NotFoundFault(HttpFault):
    code = "NOT_FOUND"
    domain = FaultDomain.ROUTING

    def __init__(self, message: str = "Resource not found", **kwargs):
        super().__init__(404, message, **kwargs)


class ConflictFault(HttpFault):
    code = "CONFLICT"

    def __init__(self, message: str = "Resource conflict", **kwargs):
        super().__init__(409, message, **kwargs)


class InternalServerFault(HttpFault):
    code = "INTERNAL_ERROR"
    domain = FaultDomain.SYSTEM

    def __init__(self, message: str = "Internal server error", **kwargs):
        super().__init__(500, message, **kwargs)


class ValidationFault(HttpFault):
    """
    Input rejected by a validating pipe.

    ``errors`` maps a field path to the list of messages for that field.
    """

    code = "VALIDATION_FAILED"
    domain = FaultDomain.VALIDATION

    def __init__(
        self,
        errors: Dict[str, List[str]],
        message: Optional[str] = None,
        **kwargs,
    ):
        self.errors = errors
        if message is None:
            message = ", ".join(
                msg for messages in errors.values() for msg in messages
            ) or "Validation failed"
        super().__init__(400, message, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = self.errors
        return data
