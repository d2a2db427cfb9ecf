"""
Error taxonomy for the projection engine.

Fatal (raised to the caller):
  - InvalidConfiguration:   input rejected before any simulation work
  - ComputationTimeout:     iteration/time budget exceeded, partial results discarded

Recoverable (reported through ProjectionResult.warnings):
  - UpstreamDataUnavailable: raised by collaborator providers, downgraded to a
                              warning unless the caller asks for strict mode
  - InsolvencyWarning:       never raised, rendered into the warnings list
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional


class ProjectionError(Exception):
    """Base class for all engine errors."""


class InvalidConfiguration(ProjectionError, ValueError):
    """Structurally invalid input, with field-level detail."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors: List[Dict[str, str]] = list(errors or [])

    @classmethod
    def from_validation_error(cls, exc) -> "InvalidConfiguration":
        """Build from a pydantic ``ValidationError``."""
        details = []
        for err in exc.errors():
            loc = ".".join(str(part) for part in err.get("loc", ())) or "__root__"
            details.append({"field": loc, "message": err.get("msg", "invalid value")})
        fields = ", ".join(d["field"] for d in details)
        return cls(f"Invalid projection configuration ({fields})", details)

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        lines = [base] + [f"  {e['field']}: {e['message']}" for e in self.errors]
        return "\n".join(lines)


class ComputationTimeout(ProjectionError):
    """The engine exceeded its allotted time or iteration budget."""

    def __init__(self, message: str, *, completed_iterations: int = 0):
        super().__init__(message)
        self.completed_iterations = completed_iterations


class UpstreamDataUnavailable(ProjectionError):
    """A collaborator (accounts, recurring transactions, goals) could not supply data."""

    def __init__(self, source: str, message: str = ""):
        super().__init__(message or f"{source} data unavailable")
        self.source = source


@dataclass(frozen=True)
class InsolvencyWarning:
    """Assets could not cover a drawdown in ``year``; the gap was clamped away."""
    year: int
    shortfall: float

    def __str__(self) -> str:
        return (
            f"Insolvency in year {self.year}: assets exhausted, "
            f"{self.shortfall:,.0f} of obligations could not be funded"
        )
