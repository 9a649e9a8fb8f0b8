"""Shared fixtures: message factory and a deterministic token encoding."""

from datetime import datetime, timedelta, timezone

import pytest

from discord_chunker.models import Message
from discord_chunker.tokens import TokenCounter

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class ContentTokens:
    """Fake encoding: a message whose content is "7" costs 7 tokens."""

    def encode(self, text):
        return [0] * int(text.rsplit(": ", 1)[1])


@pytest.fixture(autouse=True)
def no_tiktoken(monkeypatch):
    """Never download or load real BPE files during tests."""
    monkeypatch.setattr("discord_chunker.tokens._load_encoding", lambda model: None)


@pytest.fixture
def counter():
    return TokenCounter(encoding=ContentTokens())


def make_message(msg_id, minutes, content="", author="alice", **extra):
    data = {
        "id": str(msg_id),
        "timestamp": (T0 + timedelta(minutes=minutes)).isoformat(),
        "author": author if isinstance(author, dict) else {"id": f"u-{author}", "username": author},
        "content": content,
    }
    data.update(extra)
    return Message.model_validate(data)


def costed(*pairs):
    """Build messages from (minutes, tokens) pairs, ids "m0", "m1", ..."""
    return [make_message(f"m{i}", minutes, str(tokens)) for i, (minutes, tokens) in enumerate(pairs)]
