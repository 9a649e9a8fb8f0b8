"""Text and JSON-ready renderings of estimates and chunks."""

from __future__ import annotations

from .formatter import format_message, format_timestamp
from .models import Chunk, Estimate

RULE = "═" * 63


def _ts(value) -> str | None:
    return format_timestamp(value) if value is not None else None


def estimate_dict(channel_id: str, estimate: Estimate) -> dict:
    return {
        "channelId": channel_id,
        "messageCount": estimate.message_count,
        "totalTokens": estimate.total_tokens,
        "byAuthor": {
            name: {"messages": s.messages, "tokens": s.tokens}
            for name, s in estimate.by_author.items()
        },
        "oldestMessage": _ts(estimate.oldest),
        "newestMessage": _ts(estimate.newest),
    }


def format_estimate_text(estimate: Estimate) -> str:
    lines = [
        "Discord Channel Token Estimate",
        "═" * 30,
        f"Total messages: {estimate.message_count}",
        f"Total tokens: ~{estimate.total_tokens}",
        "",
        "By Author:",
    ]

    ranked = sorted(estimate.by_author.items(), key=lambda kv: kv[1].tokens, reverse=True)
    for author, stats in ranked:
        pct = estimate.percentage(author)
        lines.append(
            f"  {author}: {stats.messages} msgs, ~{stats.tokens} tokens ({pct:.1f}%)"
        )

    return "\n".join(lines)


def chunk_summary_dict(chunk: Chunk, index: int) -> dict:
    return {
        "index": index,
        "messageCount": chunk.message_count,
        "tokenCount": chunk.token_count,
        "startTime": format_timestamp(chunk.start_time),
        "endTime": format_timestamp(chunk.end_time),
        "naturalBreak": chunk.natural_break,
        "messageIds": chunk.message_ids,
    }


def chunks_dict(channel_id: str, total_messages: int, chunks: list[Chunk]) -> dict:
    return {
        "channelId": channel_id,
        "totalMessages": total_messages,
        "chunkCount": len(chunks),
        "chunks": [chunk_summary_dict(c, i) for i, c in enumerate(chunks)],
    }


def chunk_detail_dict(channel_id: str, chunks: list[Chunk], index: int, content: str) -> dict:
    detail = chunk_summary_dict(chunks[index], index)
    del detail["index"]
    return {
        "channelId": channel_id,
        "chunkIndex": index,
        "totalChunks": len(chunks),
        **detail,
        "content": content,
    }


def format_chunk_summaries(channel_id: str, total_messages: int, chunks: list[Chunk]) -> str:
    lines = [f"Channel {channel_id}: {total_messages} messages → {len(chunks)} chunks", ""]

    for i, c in enumerate(chunks, 1):
        note = " [natural break]" if c.natural_break else ""
        lines.append(f"Chunk {i}: {c.message_count} msgs, ~{c.token_count} tokens{note}")
        start = format_timestamp(c.start_time)[:16]
        end = format_timestamp(c.end_time)[:16]
        lines.append(f"  Time: {start} → {end}")

    return "\n".join(lines)


def format_chunk_text(chunk: Chunk, index: int, total: int) -> str:
    lines = [
        RULE,
        f"CHUNK {index + 1}/{total} | {chunk.message_count} messages | ~{chunk.token_count} tokens",
        f"Time: {format_timestamp(chunk.start_time)} → {format_timestamp(chunk.end_time)}",
        RULE,
        "",
    ]
    lines.extend(format_message(m) for m in chunk.messages)
    lines.append("")
    return "\n".join(lines)
