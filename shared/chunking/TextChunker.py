"""Text chunking strategies.

All strategies are deterministic, linear in the input length and keep chunks
in document order. For non-empty input the result is never empty: when a
strategy yields nothing the whole input is returned as a single chunk.
"""

import re

from shared.models.chunking import ChunkingStrategy

WORDS_PER_CHUNK = 100
CHARS_PER_CHUNK = 500

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_PARAGRAPH_BOUNDARY = re.compile(r"\n\s*\n")


def _split_words(text: str) -> list[str]:
    words = text.split()
    return [
        " ".join(words[start:start + WORDS_PER_CHUNK])
        for start in range(0, len(words), WORDS_PER_CHUNK)
    ]


def _split_sentences(text: str) -> list[str]:
    return [sentence for sentence in _SENTENCE_BOUNDARY.split(text) if sentence]


def _split_paragraphs(text: str) -> list[str]:
    return [paragraph for paragraph in _PARAGRAPH_BOUNDARY.split(text) if paragraph]


def _split_fixed_size(text: str) -> list[str]:
    return [text[start:start + CHARS_PER_CHUNK] for start in range(0, len(text), CHARS_PER_CHUNK)]


_SPLITTERS = {
    ChunkingStrategy.WORD: _split_words,
    ChunkingStrategy.SENTENCE: _split_sentences,
    ChunkingStrategy.PARAGRAPH: _split_paragraphs,
    ChunkingStrategy.FIXED_SIZE: _split_fixed_size,
}


def chunk_text(text: str, strategy: ChunkingStrategy = ChunkingStrategy.WORD) -> list[str]:
    """Split text into chunks according to the given strategy.

    Structured (ontology) strategies have no meaning for raw text and use
    word chunking.

    Args:
        text (str): The input text.
        strategy (ChunkingStrategy): The text strategy to apply.

    Returns:
        list[str]: Ordered chunks. Empty only if ``text`` is empty.
    """
    if not text:
        return []
    splitter = _SPLITTERS.get(strategy, _split_words)
    chunks = splitter(text)
    return chunks if chunks else [text]
