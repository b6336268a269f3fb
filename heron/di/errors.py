"""
DI-specific error types with diagnostics.

These are configuration-time errors: they surface while the application
is being assembled, not while requests are served.
"""

from typing import List, Optional


class DIError(Exception):
    """Base exception for DI errors."""
    pass


class ProviderNotFoundError(DIError):
    """Service not found for requested token."""

    def __init__(
        self,
        token: str,
        candidates: Optional[List[str]] = None,
        requested_by: Optional[str] = None,
    ):
        self.token = token
        self.candidates = candidates or []
        self.requested_by = requested_by

        msg = f"Service not found: {token}"

        if requested_by:
            msg += f"\nRequested by: {requested_by}"

        if self.candidates:
            msg += "\n\nSimilar tokens:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        msg += "\n\nSuggested fixes:"
        msg += f"\n  - Register a provider for {token}"
        msg += "\n  - Add the provider to the providers list of an imported module"

        super().__init__(msg)


class DependencyCycleError(DIError):
    """Circular constructor dependency detected."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle

        msg = "Detected dependency cycle:"
        for i, token in enumerate(cycle):
            arrow = " -> " if i < len(cycle) - 1 else ""
            msg += f"\n  {token}{arrow}"

        msg += "\n\nSuggested fixes:"
        msg += "\n  - Inject a string token and resolve it lazily from the container"
        msg += "\n  - Extract the shared logic into a third service"

        super().__init__(msg)
