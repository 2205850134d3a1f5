"""Size policing for structured chunks before they are embedded.

Token counts are estimated as ``len(text) // 3``, a conservative ratio for
the hosted tokenizers. Chunks above SKIP_TOKEN_LIMIT are rejected, chunks
above SPLIT_TOKEN_LIMIT are split into pieces of at most SUB_CHUNK_TOKENS,
each piece starting with the chunk's header block.
"""

from shared.exceptions import ChunkTooLarge

CHARS_PER_TOKEN = 3
SKIP_TOKEN_LIMIT = 50_000
SPLIT_TOKEN_LIMIT = 6_000
SUB_CHUNK_TOKENS = 5_000
HEADER_MAX_LINES = 10


def estimate_tokens(text: str) -> int:
    return len(text) // CHARS_PER_TOKEN


def extract_header_block(lines: list[str]) -> list[str]:
    """Return the leading run of non-blank lines, at most HEADER_MAX_LINES long."""
    header: list[str] = []
    for line in lines[:HEADER_MAX_LINES]:
        if not line.strip():
            break
        header.append(line)
    return header


def split_large_chunk(text: str, max_tokens: int = SUB_CHUNK_TOKENS) -> list[str]:
    """Split text on line boundaries into pieces of at most ``max_tokens`` estimated tokens.

    Every piece starts with the header block, followed by a blank line. The
    repeated header is limited to half of a piece; header lines past that
    limit move to the start of the body. Lines that do not fit into a piece
    on their own are cut by characters.

    Args:
        text (str): The rendered chunk.
        max_tokens (int): Token budget per piece, header included.

    Returns:
        list[str]: The pieces in source order, never empty. A text within budget comes back unchanged.
    """
    if estimate_tokens(text) <= max_tokens:
        return [text]

    lines = text.split("\n")
    header = extract_header_block(lines)
    body = lines[len(header):]
    while body and not body[0].strip():
        body = body[1:]

    budget_chars = max_tokens * CHARS_PER_TOKEN
    kept: list[str] = []
    used = 1  # blank separator line
    for index, line in enumerate(header):
        if used + len(line) + 1 > budget_chars // 2:
            body = header[index:] + body
            break
        kept.append(line)
        used += len(line) + 1
    prefix = "\n".join(kept) + "\n\n" if kept else ""
    body_budget = budget_chars - len(prefix)

    pieces: list[str] = []
    current = ""
    for line in body:
        candidate = line + "\n"
        if len(current) + len(candidate) <= body_budget:
            current += candidate
            continue
        if current:
            pieces.append(prefix + current)
            current = ""
        while len(candidate) > body_budget:
            pieces.append(prefix + candidate[:body_budget])
            candidate = candidate[body_budget:]
        current = candidate
    if current.strip():
        pieces.append(prefix + current)
    if not pieces:
        # only whitespace after the header
        pieces.append(prefix.rstrip("\n") or text[:budget_chars])
    return pieces


def police_chunk(chunk_id: str, text: str) -> list[tuple[str, str]]:
    """Apply the size policy to one rendered chunk.

    Returns:
        list[tuple[str, str]]: ``(id, text)`` pairs to embed. A split chunk yields
        ids suffixed ``-part-1``, ``-part-2``, ...

    Raises:
        ChunkTooLarge: If the chunk exceeds SKIP_TOKEN_LIMIT.
    """
    tokens = estimate_tokens(text)
    if tokens > SKIP_TOKEN_LIMIT:
        raise ChunkTooLarge(chunk_id, tokens, len(text))
    if tokens <= SPLIT_TOKEN_LIMIT:
        return [(chunk_id, text)]
    pieces = split_large_chunk(text, SUB_CHUNK_TOKENS)
    return [(f"{chunk_id}-part-{index}", piece) for index, piece in enumerate(pieces, start=1)]
