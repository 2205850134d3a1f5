"""Outcome models produced by indexing workers and the aggregated report."""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from shared.models.vector import VectorRecord


class ChunkSucceeded(BaseModel):
    kind: Literal["success"] = "success"
    chunk_id: str
    records: list[VectorRecord]


class ChunkFailed(BaseModel):
    kind: Literal["failed"] = "failed"
    chunk_id: str
    reason: str


class ChunkSkipped(BaseModel):
    kind: Literal["skipped"] = "skipped"
    chunk_id: str
    reason: str
    estimated_tokens: int = 0


class ChunkSplit(BaseModel):
    """A chunk that exceeded the token budget and was indexed in ``parts`` pieces."""

    kind: Literal["split"] = "split"
    chunk_id: str
    records: list[VectorRecord]
    parts: int


ChunkOutcome = Annotated[
    Union[ChunkSucceeded, ChunkFailed, ChunkSkipped, ChunkSplit],
    Field(discriminator="kind"),
]


class IndexingReport(BaseModel):
    """Tally of one indexing run.

    Split chunks count as succeeded; ``split_parts`` is the number of
    sub-chunks they were broken into.
    """

    total: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    split_parts: int = 0
    records_written: int = 0
    failed_chunk_ids: list[str] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.skipped

    def record(self, outcome: ChunkOutcome) -> list[VectorRecord]:
        """Add one outcome to the tally and return the records it carries."""
        if isinstance(outcome, ChunkSucceeded):
            self.succeeded += 1
            return outcome.records
        if isinstance(outcome, ChunkSplit):
            self.succeeded += 1
            self.split_parts += outcome.parts
            return outcome.records
        if isinstance(outcome, ChunkSkipped):
            self.skipped += 1
            self.failed_chunk_ids.append(f"{outcome.chunk_id} (too large)")
            return []
        self.failed += 1
        self.failed_chunk_ids.append(outcome.chunk_id)
        return []
