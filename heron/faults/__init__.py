"""
Heron Faults - structured error taxonomy.

Faults are exceptions with a stable code, a message and a domain. HTTP
faults additionally carry the status code used when they are turned into
a response by the exception filters.
"""

from .core import Fault, FaultDomain
from .http import (
    HttpFault,
    BadRequestFault,
    UnauthorizedFault,
    AccessDeniedFault,
    NotFoundFault,
    ConflictFault,
    InternalServerFault,
    ValidationFault,
    status_phrase,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "HttpFault",
    "BadRequestFault",
    "UnauthorizedFault",
    "AccessDeniedFault",
    "NotFoundFault",
    "ConflictFault",
    "InternalServerFault",
    "ValidationFault",
    "status_phrase",
]
