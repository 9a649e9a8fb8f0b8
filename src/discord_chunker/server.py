"""FastMCP server exposing channel estimation and chunking tools."""

from __future__ import annotations

import logging
import sys

from mcp.server.fastmcp import FastMCP

from .chunker import chunk_messages, get_chunk
from .config import DEFAULT_GAP_MINUTES, DEFAULT_LIMIT
from .estimator import estimate_tokens
from .exceptions import DiscordChunkerError
from .fetcher import fetch_messages
from .models import Chunk, Message
from .render import format_chunk_summaries, format_chunk_text, format_estimate_text
from .tokens import TokenCounter

# Logging to stderr only — stdout is the MCP JSON-RPC transport
logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "discord-chunker",
    instructions=(
        "Estimate and chunk Discord channel history for reading in pieces. "
        "Use estimate_channel to see how many tokens a channel holds. "
        "Use chunk_channel to split it by time window or token budget. "
        "Use get_chunk_content to read one chunk, passing the same chunking options."
    ),
)

# Built once — loading the tiktoken encoding is the slow part
_counter: TokenCounter | None = None


def _get_counter() -> TokenCounter:
    global _counter
    if _counter is None:
        _counter = TokenCounter()
    return _counter


def _load(channel_id: str, limit: int) -> list[Message]:
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    messages = fetch_messages(channel_id, limit=limit)
    if not messages:
        raise DiscordChunkerError(f"No messages found in channel {channel_id}")
    return messages


def _chunk(
    channel_id: str,
    limit: int,
    by_time: str | None,
    by_tokens: int | None,
    gap_minutes: int,
) -> tuple[list[Message], list[Chunk]]:
    if gap_minutes < 0:
        raise ValueError(f"gap_minutes must be at least 0, got {gap_minutes}")
    messages = _load(channel_id, limit)
    chunks = chunk_messages(
        messages, _get_counter(), by_time=by_time, by_tokens=by_tokens, gap_minutes=gap_minutes
    )
    return messages, chunks


@mcp.tool()
def estimate_channel(channel_id: str, limit: int = DEFAULT_LIMIT) -> str:
    """Estimate how many tokens a Discord channel's recent history uses.

    Args:
        channel_id: Discord channel ID
        limit: Maximum number of messages to fetch (default 100)
    """
    try:
        messages = _load(channel_id, limit)
    except (DiscordChunkerError, ValueError) as e:
        return f"Error: {e}"

    return format_estimate_text(estimate_tokens(messages, _get_counter()))


@mcp.tool()
def chunk_channel(
    channel_id: str,
    by_time: str | None = None,
    by_tokens: int | None = None,
    gap_minutes: int = DEFAULT_GAP_MINUTES,
    limit: int = DEFAULT_LIMIT,
) -> str:
    """Split a Discord channel into chunks and list them.

    Give exactly one of by_time or by_tokens.

    Args:
        channel_id: Discord channel ID
        by_time: Window length such as "1h", "1d" or "1w"
        by_tokens: Token budget per chunk, e.g. 4000
        gap_minutes: Minutes of silence that mark a conversation break (default 30)
        limit: Maximum number of messages to fetch (default 100)
    """
    try:
        messages, chunks = _chunk(channel_id, limit, by_time, by_tokens, gap_minutes)
    except (DiscordChunkerError, ValueError) as e:
        return f"Error: {e}"

    lines = [format_chunk_summaries(channel_id, len(messages), chunks), ""]
    lines.append("Use get_chunk_content(channel_id, index, ...) with the same options to read a chunk.")
    return "\n".join(lines)


@mcp.tool()
def get_chunk_content(
    channel_id: str,
    index: int,
    by_time: str | None = None,
    by_tokens: int | None = None,
    gap_minutes: int = DEFAULT_GAP_MINUTES,
    limit: int = DEFAULT_LIMIT,
) -> str:
    """Read the full text of one chunk (0-indexed).

    Args:
        channel_id: Discord channel ID
        index: Chunk number from chunk_channel, starting at 0
        by_time: Window length such as "1h", "1d" or "1w"
        by_tokens: Token budget per chunk, e.g. 4000
        gap_minutes: Minutes of silence that mark a conversation break (default 30)
        limit: Maximum number of messages to fetch (default 100)
    """
    try:
        _, chunks = _chunk(channel_id, limit, by_time, by_tokens, gap_minutes)
        selected = get_chunk(chunks, index)
    except (DiscordChunkerError, ValueError) as e:
        return f"Error: {e}"

    logger.debug("Serving chunk %d/%d of %s", index + 1, len(chunks), channel_id)
    return format_chunk_text(selected, index, len(chunks))
