"""Whole-batch token estimates, broken down by author."""

from __future__ import annotations

from .formatter import format_message, resolve_author
from .models import AuthorStats, Estimate, Message
from .tokens import TokenCounter


def sort_messages(messages: list[Message]) -> list[Message]:
    """Return a new list ordered oldest-first. Ties keep their input order."""
    return sorted(messages, key=lambda m: m.timestamp)


def estimate_tokens(messages: list[Message], counter: TokenCounter) -> Estimate:
    total_tokens = 0
    by_author: dict[str, AuthorStats] = {}

    for msg in messages:
        tokens = counter.count(format_message(msg))
        total_tokens += tokens

        stats = by_author.setdefault(resolve_author(msg), AuthorStats())
        stats.messages += 1
        stats.tokens += tokens

    timestamps = [m.timestamp for m in messages]
    return Estimate(
        message_count=len(messages),
        total_tokens=total_tokens,
        by_author=by_author,
        oldest=min(timestamps) if timestamps else None,
        newest=max(timestamps) if timestamps else None,
    )
