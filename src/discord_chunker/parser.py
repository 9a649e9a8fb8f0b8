"""Parse raw Discord message payloads into Message models."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from .models import Message

logger = logging.getLogger(__name__)


def extract_messages(payload: Any) -> list[dict[str, Any]]:
    """Pull the raw message list out of a gateway response or saved export.

    Accepts ``{"payload": {"messages": [...]}}``, ``{"messages": [...]}`` or
    a bare list.
    """
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return []

    inner = payload.get("payload")
    if isinstance(inner, dict) and inner.get("messages"):
        return inner["messages"]
    return payload.get("messages") or []


def parse_message(raw: dict[str, Any]) -> Message | None:
    """Parse a single raw message. Returns None if it cannot be parsed."""
    try:
        return Message.model_validate(raw)
    except ValidationError as e:
        msg_id = raw.get("id", "unknown") if isinstance(raw, dict) else "unknown"
        logger.warning(
            "Skipping message %s: %d validation error(s)", msg_id, e.error_count()
        )
        return None


def parse_messages(data: list[Any]) -> list[Message]:
    """Parse a list of raw messages, dropping invalid entries and duplicate ids."""
    messages: list[Message] = []
    seen: set[str] = set()

    for raw in data:
        msg = parse_message(raw)
        if msg is None:
            continue
        if msg.id in seen:
            logger.debug("Dropping duplicate message %s", msg.id)
            continue
        seen.add(msg.id)
        messages.append(msg)

    return messages
