import logging
import math
import re

logger = logging.getLogger(__name__)

# Boundary kinds in priority order. Each entry is (pattern, offset into the
# match where the cut goes); the cut position starts the next chunk.
BREAK_PATTERNS = [
    (re.compile(r"\n\n"), 0),  # paragraph break
    (re.compile(r"\n"), 0),  # line break
    (re.compile(r"[.!?]\s"), 1),  # sentence end, cut after the punctuation
    (re.compile(r", "), 1),  # comma, cut after it
    (re.compile(r" "), 0),  # bare space
]


def normalize_text(text: str) -> str:
    """
    Normalize line endings and strip a leading byte-order mark.
    Args:
        text (str): Raw text as downloaded or read from disk.
    Returns:
        str: The text with ``\\r\\n``/``\\r`` converted to ``\\n``.
    """
    text = text.lstrip("\ufeff")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def find_break_point(content: str, floor: int, end: int) -> int | None:
    """
    Find the best cut position in ``content[floor:end]``.

    Boundaries are tried in priority order and, within one kind, the one
    closest to ``end`` wins.

    Args:
        content (str): The text being segmented.
        floor (int): Lowest acceptable cut position.
        end (int): Highest acceptable cut position.
    Returns:
        int | None: The cut position, or None if the window has no boundary.
    """
    if floor > end:
        return None

    # let a boundary straddle ``end`` (e.g. ". " with the space just past it)
    window = content[floor : end + 1]
    for pattern, offset in BREAK_PATTERNS:
        cut = None
        for match in pattern.finditer(window):
            position = floor + match.start() + offset
            if floor <= position <= end:
                cut = position
        if cut is not None:
            return cut
    return None


def chunk_content(
    content: str, max_chunk_size: int = 6000, lookback_window: int = 100
) -> list[str]:
    """
    Split text into evenly sized chunks cut at natural boundaries.

    The text is divided into ``ceil(len / max_chunk_size)`` chunks of roughly
    equal length. Each cut is moved back, within a small window, to the best
    boundary available (paragraph, line, sentence, comma, space); if the
    window holds none the text is hard-cut. Chunks are contiguous and
    trimmed, none is empty and none is longer than ``max_chunk_size``.

    Args:
        content (str): The full text.
        max_chunk_size (int): Maximum characters per chunk.
        lookback_window (int): Upper bound on how far back a cut may move.
    Returns:
        list[str]: The chunks, in order.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")

    text = content.strip()
    if not text:
        return []

    total_length = len(text)
    if total_length <= max_chunk_size:
        return [text]

    chunk_count = math.ceil(total_length / max_chunk_size)
    effective_size = math.ceil(total_length / chunk_count)
    window = min(lookback_window, effective_size // 10)

    chunks = []
    position = 0
    for k in range(1, chunk_count):
        candidate = min(k * effective_size, position + max_chunk_size)
        # never leave more text than the remaining chunks can hold
        floor = max(
            candidate - window,
            position + 1,
            total_length - (chunk_count - k) * max_chunk_size,
        )
        cut = find_break_point(text, floor, candidate)
        if cut is None:
            cut = candidate

        chunk = text[position:cut].strip()
        if chunk:
            chunks.append(chunk)
        position = cut

    last = text[position:].strip()
    if last:
        chunks.append(last)

    logger.debug(
        f"Created {len(chunks)} chunks with sizes: {', '.join(str(len(c)) for c in chunks)}"
    )
    return chunks
