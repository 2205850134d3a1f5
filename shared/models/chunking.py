"""Chunking strategies and chunk candidate models."""

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ChunkingStrategy(str, Enum):
    """Closed set of chunking strategies.

    The first four split raw text; the remaining six group ontology axioms and
    are handled by the structured chunkers.
    """

    WORD = "WordChunking"
    SENTENCE = "SentenceChunking"
    PARAGRAPH = "ParagraphChunking"
    FIXED_SIZE = "FixedSizeChunking"

    CLASS_BASED = "ClassBasedChunking"
    ANNOTATION_BASED = "AnnotationBasedChunking"
    NAMESPACE_BASED = "NamespaceBasedChunking"
    DEPTH_BASED = "DepthBasedChunking"
    MODULE_EXTRACTION = "ModuleExtractionChunking"
    SIZE_BASED = "SizeBasedChunking"

    @property
    def is_structured(self) -> bool:
        return self not in _TEXT_STRATEGIES

    @classmethod
    def resolve(cls, name: "str | ChunkingStrategy | None", logger: logging.Logger | None = None) -> "ChunkingStrategy":
        """Look up a strategy by name.

        An empty name yields the text default (WordChunking). An unknown name
        falls back to ClassBasedChunking and logs a warning instead of raising.

        Args:
            name (str | ChunkingStrategy | None): Strategy name as configured.
            logger (logging.Logger | None): Logger used for the fallback warning.

        Returns:
            ChunkingStrategy: The resolved strategy.
        """
        if isinstance(name, ChunkingStrategy):
            return name
        if not name or not name.strip():
            return cls.WORD
        try:
            return cls(name.strip())
        except ValueError:
            (logger or logging.getLogger(__name__)).warning(
                "Unknown chunking strategy '%s', falling back to %s", name, cls.CLASS_BASED.value
            )
            return cls.CLASS_BASED


_TEXT_STRATEGIES = frozenset({
    ChunkingStrategy.WORD,
    ChunkingStrategy.SENTENCE,
    ChunkingStrategy.PARAGRAPH,
    ChunkingStrategy.FIXED_SIZE,
})


class Chunk(BaseModel):
    """A bounded span of text ready to be embedded. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    source_metadata: dict[str, str] = Field(default_factory=dict)


class GraphChunk(BaseModel):
    """A chunk candidate fetched from the graph backend for bulk indexing.

    Attributes:
        text: Textual rendering of a node and its outgoing relationships.
        metadata: Raw node properties; stringified when stored.
    """

    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)
