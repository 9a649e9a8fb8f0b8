"""Split a message batch into time windows or token-bounded, conversation-aware chunks."""

from __future__ import annotations

import logging
import math
import re
from datetime import timedelta

from .config import DEFAULT_GAP_MINUTES, OVERSHOOT_TOLERANCE
from .estimator import sort_messages
from .exceptions import ChunkIndexError, InvalidDurationError
from .formatter import format_message
from .models import Chunk, ConversationBreak, Message
from .tokens import TokenCounter

logger = logging.getLogger(__name__)

_DURATION_RE = re.compile(r"([0-9]+)([mhdw])")
_DURATION_UNITS = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


def _make_chunk(
    messages: list[Message], token_count: int, natural_break: bool | None = None
) -> Chunk:
    return Chunk(
        messages=messages,
        token_count=token_count,
        start_time=messages[0].timestamp,
        end_time=messages[-1].timestamp,
        natural_break=natural_break,
    )


def detect_conversation_breaks(
    sorted_messages: list[Message], gap_minutes: float = DEFAULT_GAP_MINUTES
) -> list[ConversationBreak]:
    """Find silence gaps of at least ``gap_minutes`` between adjacent messages.

    ``sorted_messages`` must already be ordered oldest-first; indices in the
    returned breaks refer to positions in that list.
    """
    threshold = timedelta(minutes=gap_minutes)
    breaks: list[ConversationBreak] = []

    for i in range(1, len(sorted_messages)):
        prev, curr = sorted_messages[i - 1], sorted_messages[i]
        gap = curr.timestamp - prev.timestamp
        if gap >= threshold:
            breaks.append(
                ConversationBreak(
                    after_index=i - 1,
                    before_index=i,
                    # Round half up, not to even
                    gap_minutes=math.floor(gap / timedelta(minutes=1) + 0.5),
                    gap=gap,
                    before_message_id=prev.id,
                    after_message_id=curr.id,
                )
            )

    return breaks


def parse_duration(duration: str) -> timedelta:
    """Parse ``<positive integer><unit>`` where unit is one of m, h, d, w.

    Durations too long for a timedelta are clamped to ``timedelta.max``,
    which puts every message in a single window.
    """
    match = _DURATION_RE.fullmatch(duration) if isinstance(duration, str) else None
    digits = match.group(1).lstrip("0") if match else ""
    if not digits:
        raise InvalidDurationError(duration)
    try:
        return int(digits) * _DURATION_UNITS[match.group(2)]
    except (OverflowError, ValueError):
        # ValueError: past the int string conversion limit
        return timedelta.max


def chunk_by_time(
    messages: list[Message], duration: str, counter: TokenCounter
) -> list[Chunk]:
    """Bucket messages into fixed-length windows.

    Each window starts at its first message and runs for ``duration``; the
    last window may be shorter. Natural breaks are not computed here, so
    every chunk has ``natural_break=None``.
    """
    period = parse_duration(duration)
    if not messages:
        return []

    ordered = sort_messages(messages)
    chunks: list[Chunk] = []
    current: list[Message] = []
    current_tokens = 0
    window_start = ordered[0].timestamp

    for msg in ordered:
        if msg.timestamp - window_start >= period and current:
            chunks.append(_make_chunk(current, current_tokens))
            current = []
            current_tokens = 0
            window_start = msg.timestamp

        current.append(msg)
        current_tokens += counter.count(format_message(msg))

    if current:
        chunks.append(_make_chunk(current, current_tokens))

    logger.debug("Split %d messages into %d %s windows", len(ordered), len(chunks), duration)
    return chunks


def chunk_by_tokens(
    messages: list[Message],
    max_tokens: int,
    counter: TokenCounter,
    gap_minutes: float = DEFAULT_GAP_MINUTES,
    overshoot: float = OVERSHOOT_TOLERANCE,
) -> list[Chunk]:
    """Split messages into chunks of about ``max_tokens`` tokens.

    When the next message would push a chunk over budget, the chunk is
    closed only if that message starts a new conversation (a silence gap
    of at least ``gap_minutes``) or if the total would pass
    ``max_tokens * overshoot``. The first case is marked
    ``natural_break=True``; a hard split is marked ``False``. The final
    chunk is always marked ``True``. A message larger than the budget on
    its own is never split and ends up alone in its chunk.
    """
    if max_tokens < 1:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")
    if overshoot < 1:
        raise ValueError(f"overshoot must be at least 1.0, got {overshoot}")
    if not messages:
        return []

    ordered = sort_messages(messages)
    breaks = detect_conversation_breaks(ordered, gap_minutes)
    break_before = {b.before_index for b in breaks}
    hard_limit = max_tokens * overshoot

    chunks: list[Chunk] = []
    current: list[Message] = []
    current_tokens = 0

    for i, msg in enumerate(ordered):
        msg_tokens = counter.count(format_message(msg))
        projected = current_tokens + msg_tokens

        would_exceed = projected > max_tokens and len(current) > 0
        is_natural_break = i in break_before

        if would_exceed and (is_natural_break or projected > hard_limit):
            chunks.append(_make_chunk(current, current_tokens, is_natural_break))
            current = []
            current_tokens = 0

        current.append(msg)
        current_tokens += msg_tokens

    if current:
        chunks.append(_make_chunk(current, current_tokens, True))

    logger.debug(
        "Split %d messages into %d chunks (max %d tokens, %d breaks)",
        len(ordered),
        len(chunks),
        max_tokens,
        len(breaks),
    )
    return chunks


def chunk_messages(
    messages: list[Message],
    counter: TokenCounter,
    by_time: str | None = None,
    by_tokens: int | None = None,
    gap_minutes: float = DEFAULT_GAP_MINUTES,
) -> list[Chunk]:
    """Chunk with whichever strategy was asked for. Exactly one must be given."""
    if (by_time is None) == (by_tokens is None):
        raise ValueError("Specify exactly one of by_time or by_tokens")
    if by_time is not None:
        return chunk_by_time(messages, by_time, counter)
    return chunk_by_tokens(messages, by_tokens, counter, gap_minutes=gap_minutes)


def get_chunk(chunks: list[Chunk], index: int) -> Chunk:
    """Return ``chunks[index]``, raising ChunkIndexError outside ``[0, len)``."""
    if not 0 <= index < len(chunks):
        raise ChunkIndexError(index, len(chunks))
    return chunks[index]


def get_chunk_content(chunks: list[Chunk], index: int) -> str | None:
    """Formatted text of one chunk, one message per line. None if out of range."""
    try:
        chunk = get_chunk(chunks, index)
    except ChunkIndexError:
        return None
    return "\n".join(format_message(m) for m in chunk.messages)
