"""Data models for Discord messages, conversation breaks and chunks."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, field_validator


class Author(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    username: str | None = None
    global_name: str | None = None


class Attachment(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    filename: str = ""


class Embed(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    title: str | None = None
    description: str | None = None


class Message(BaseModel):
    """A single Discord message. Read-only once parsed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    timestamp: datetime
    author: Author = Author()
    content: str = ""
    attachments: list[Attachment] = []
    embeds: list[Embed] = []

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        # Snowflakes sometimes arrive as JSON numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("content", mode="before")
    @classmethod
    def _none_content(cls, value):
        return "" if value is None else value

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ConversationBreak(BaseModel):
    """A silence gap between two chronologically adjacent messages."""

    after_index: int
    before_index: int
    gap_minutes: int
    gap: timedelta
    before_message_id: str
    after_message_id: str


class Chunk(BaseModel):
    """A contiguous run of sorted messages with token and time aggregates.

    ``natural_break`` is ``None`` for time-window chunks, where break
    detection does not apply.
    """

    messages: list[Message]
    token_count: int
    start_time: datetime
    end_time: datetime
    natural_break: bool | None = None

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def message_ids(self) -> list[str]:
        return [m.id for m in self.messages]


class AuthorStats(BaseModel):
    messages: int = 0
    tokens: int = 0


class Estimate(BaseModel):
    message_count: int
    total_tokens: int
    by_author: dict[str, AuthorStats] = {}
    oldest: datetime | None = None
    newest: datetime | None = None

    def percentage(self, author: str) -> float:
        """Share of the total tokens written by ``author``, to one decimal."""
        stats = self.by_author.get(author)
        if stats is None or self.total_tokens == 0:
            return 0.0
        # Round half up, not to even
        return (2000 * stats.tokens + self.total_tokens) // (2 * self.total_tokens) / 10
