"""Render messages into the canonical text used for counting and chunk content."""

from __future__ import annotations

from datetime import datetime, timezone

from .config import EMBED_PREVIEW_CHARS
from .models import Embed, Message


def format_timestamp(ts: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. ``2024-01-01T12:00:00.000Z``."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_author(msg: Message) -> str:
    return msg.author.global_name or msg.author.username or "Unknown"


def _embed_label(embed: Embed) -> str:
    if embed.title:
        return embed.title
    if embed.description:
        return embed.description[:EMBED_PREVIEW_CHARS]
    return "untitled"


def format_message(msg: Message) -> str:
    """Format a message as ``[timestamp] author: content [markers]``."""
    markers = [f"[Attachment: {a.filename}]" for a in msg.attachments]
    markers += [f"[Embed: {_embed_label(e)}]" for e in msg.embeds]

    content = msg.content
    if markers:
        content = f"{content} {' '.join(markers)}"

    return f"[{format_timestamp(msg.timestamp)}] {resolve_author(msg)}: {content}"
