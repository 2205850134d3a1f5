"""Models exchanged with the vector store."""

from pydantic import BaseModel, Field


class VectorRecord(BaseModel):
    """A chunk together with its embedding, as written to the vector store.

    Attributes:
        id:       Unique id inside the store. Re-using an id replaces the record.
        vector:   Embedding; reconciled to the store dimension on upsert.
        text:     Chunk text returned with search hits.
        metadata: Flat string metadata (source, strategy, parent id, ...).
    """

    id: str
    vector: list[float]
    text: str
    metadata: dict[str, str] = Field(default_factory=dict)


class SearchResult(BaseModel):
    """A single similarity hit. Higher score means more similar."""

    id: str
    text: str
    score: float
    metadata: dict[str, str] = Field(default_factory=dict)


class IndexStats(BaseModel):
    """Read-only snapshot of the vector index."""

    document_count: int
    vector_dimension: int
    index_location: str
