"""Error taxonomy for the DCF engine.

All errors are deterministic functions of the input and surface
synchronously to the caller.  Nothing here performs I/O.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError


class DCFError(Exception):
    """Base class for every error raised by the engine."""


class InvalidInputError(DCFError, ValueError):
    """A project input (or engine assumption) violates its domain.

    Raised before any cash-flow computation starts.  ``errors`` holds the
    individual field problems in pydantic's error-list shape, so an API layer
    can hand them straight back to the form.
    """

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors: list[dict[str, Any]] = errors or []

    @classmethod
    def from_validation_error(cls, exc: ValidationError, what: str) -> InvalidInputError:
        """Wrap a pydantic ValidationError, naming every offending field."""
        errors = exc.errors(include_url=False, include_context=False)
        fields = ", ".join(".".join(str(p) for p in e["loc"]) or "<root>" for e in errors)
        return cls(f"Invalid {what}: {fields}", errors)


class InvalidRateError(InvalidInputError):
    """Discount rate ≤ −1: the discount base (1 + r) is zero or negative."""


class DivergentIRRError(DCFError, ArithmeticError):
    """The IRR root-finder could not produce a finite rate.

    Raised when f'(r) vanishes, the iterate leaves the finite domain, or the
    iteration stalls at a clamp bound without reaching a root.
    """
