"""
Fault base type.

A ``Fault`` is an exception that also carries a stable machine-readable
``code``, the ``FaultDomain`` it belongs to and free-form ``metadata``.
Error bodies produced by the built-in filters include the code.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class FaultDomain(str, Enum):
    """Functional area a fault comes from."""

    DI = "di"
    ROUTING = "routing"
    SECURITY = "security"
    VALIDATION = "validation"
    FLOW = "flow"
    SYSTEM = "system"


class Fault(Exception):
    """
    Exception with a code, a domain and metadata.

    ``code``, ``message`` and ``domain`` fall back to class attributes, so
    subclasses usually only declare them once:

        class QuotaFault(Fault):
            code = "QUOTA_EXCEEDED"
            message = "Quota exceeded"
            domain = FaultDomain.FLOW
    """

    code: Optional[str] = None
    message: Optional[str] = None
    domain: Optional[FaultDomain] = None

    def __init__(
        self,
        code: Optional[str] = None,
        message: Optional[str] = None,
        *,
        domain: Optional[FaultDomain] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        if code is not None:
            self.code = code
        if message is not None:
            self.message = message
        if domain is not None:
            self.domain = FaultDomain(domain)

        missing = [name for name in ("code", "message", "domain") if getattr(self, name) is None]
        if missing:
            raise TypeError(f"{type(self).__name__} needs {', '.join(missing)}")

        self.metadata: Dict[str, Any] = dict(metadata or {})
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, domain={self.domain.value!r})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "metadata": self.metadata,
        }
