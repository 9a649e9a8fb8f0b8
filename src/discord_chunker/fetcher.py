"""Fetch Discord channel history through the OpenClaw gateway CLI."""

from __future__ import annotations

import json
import logging
import subprocess
import time
from pathlib import Path

from .config import (
    DEFAULT_LIMIT,
    FETCH_PAGE_DELAY,
    FETCH_PAGE_SIZE,
    FETCH_TIMEOUT,
    OPENCLAW_BIN,
)
from .exceptions import FetchError
from .models import Message
from .parser import extract_messages, parse_messages

logger = logging.getLogger(__name__)


def _build_command(
    channel_id: str, count: int, before: str | None, after: str | None
) -> list[str]:
    cmd = [
        OPENCLAW_BIN, "message", "read",
        "--channel", "discord",
        "--target", channel_id,
        "--limit", str(count),
        "--json",
    ]
    if before:
        cmd += ["--before", before]
    if after and not before:
        cmd += ["--after", after]
    return cmd


def _run_openclaw(cmd: list[str]) -> subprocess.CompletedProcess:
    logger.debug("Running: %s", " ".join(cmd))
    try:
        return subprocess.run(cmd, capture_output=True, text=True, timeout=FETCH_TIMEOUT)
    except subprocess.TimeoutExpired as e:
        raise FetchError(f"openclaw timed out after {FETCH_TIMEOUT}s") from e
    except FileNotFoundError as e:
        raise FetchError(
            f"'{OPENCLAW_BIN}' not found. Install OpenClaw or set DISCORD_CHUNKER_OPENCLAW_BIN"
        ) from e


def fetch_messages(
    channel_id: str,
    limit: int = DEFAULT_LIMIT,
    before: str | None = None,
    after: str | None = None,
) -> list[Message]:
    """Fetch up to ``limit`` messages, newest first, paging backwards in time.

    Discord caps each request at 100 messages, so larger limits are paged
    using the oldest id seen so far as the ``--before`` cursor. A failed
    page ends pagination and whatever was already fetched is returned.
    """
    raw_messages: list[dict] = []
    cursor = before
    remaining = limit

    while remaining > 0:
        count = min(FETCH_PAGE_SIZE, remaining)
        result = _run_openclaw(_build_command(channel_id, count, cursor, after))

        if result.returncode != 0:
            logger.error("Failed to fetch messages: %s", result.stderr.strip())
            break

        try:
            page = extract_messages(json.loads(result.stdout))
        except json.JSONDecodeError:
            logger.error("Failed to fetch messages: gateway returned invalid JSON")
            break

        if not page:
            break

        raw_messages.extend(page)
        remaining -= len(page)

        # Discord returns newest first, so the last entry is the oldest
        oldest = page[-1]
        oldest_id = oldest.get("id") if isinstance(oldest, dict) else None
        if oldest_id is None or oldest_id == "":
            logger.warning("Stopping pagination: oldest message on page has no id")
            break
        cursor = str(oldest_id)
        if len(page) < count:
            break

        if remaining > 0:
            time.sleep(FETCH_PAGE_DELAY)

    logger.info("Fetched %d messages from channel %s", len(raw_messages), channel_id)
    return parse_messages(raw_messages)


def load_messages_file(path: str | Path) -> list[Message]:
    """Load messages from a saved gateway response or JSON export."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return parse_messages(extract_messages(data))
