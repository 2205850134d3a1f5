"""Pydantic models for the retrieval side of the bridge."""

from typing import Any

from pydantic import BaseModel, Field


class StructuredQueryResult(BaseModel):
    """Outcome of the optional graph query step.

    Either ``rows`` holds the graph result or ``error`` explains why the step
    failed. Callers decide how a failure is surfaced.
    """

    query: str | None = None
    rows: list[dict[str, Any]] = Field(default_factory=list)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, reason: str, query: str | None = None) -> "StructuredQueryResult":
        return cls(query=query, error=reason)
