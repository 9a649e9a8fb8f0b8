"""CLI interface for discord-chunker."""

from __future__ import annotations

import json
import logging
import sys

import click

from . import __version__
from .chunker import chunk_messages, get_chunk, get_chunk_content
from .config import DEFAULT_GAP_MINUTES, DEFAULT_LIMIT
from .estimator import estimate_tokens
from .exceptions import ChunkIndexError, FetchError, InvalidDurationError
from .fetcher import fetch_messages, load_messages_file
from .models import Message
from .render import (
    chunk_detail_dict,
    chunks_dict,
    estimate_dict,
    format_chunk_summaries,
    format_chunk_text,
    format_estimate_text,
)
from .tokens import TokenCounter


_SOURCE_OPTIONS = [
    click.option("--limit", default=DEFAULT_LIMIT, show_default=True,
                 type=click.IntRange(min=1), help="Max messages to fetch"),
    click.option("--before", metavar="MSG_ID", help="Fetch messages before this ID"),
    click.option("--after", metavar="MSG_ID", help="Fetch messages after this ID"),
    click.option("--input", "input_path", type=click.Path(exists=True, dir_okay=False),
                 help="Read messages from a saved JSON payload instead of fetching"),
    click.option("--format", "fmt", type=click.Choice(["text", "json"]), default="text",
                 show_default=True, help="Output format"),
]

_CHUNKING_OPTIONS = [
    click.option("--by-time", metavar="DURATION", help="Chunk by time period (e.g. 1h, 1d, 1w)"),
    click.option("--by-tokens", type=click.IntRange(min=1), metavar="MAX",
                 help="Chunk by token count (e.g. 4000)"),
    click.option("--gap-minutes", default=DEFAULT_GAP_MINUTES, show_default=True,
                 type=click.IntRange(min=0), help="Conversation break threshold"),
]


def _apply(options):
    def decorator(f):
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


def _load_messages(
    channel_id: str,
    limit: int,
    before: str | None,
    after: str | None,
    input_path: str | None,
) -> list[Message]:
    if input_path:
        click.echo(f"Reading messages from {input_path}...", err=True)
        try:
            messages = load_messages_file(input_path)
        except (OSError, ValueError) as e:
            raise click.ClickException(f"Could not read {input_path}: {e}") from e
    else:
        click.echo(f"Fetching up to {limit} messages from channel {channel_id}...", err=True)
        try:
            messages = fetch_messages(channel_id, limit=limit, before=before, after=after)
        except FetchError as e:
            raise click.ClickException(str(e)) from e

    click.echo(f"Fetched {len(messages)} messages", err=True)
    if not messages:
        raise click.ClickException("No messages found")
    return messages


def _build_chunks(messages, counter, by_time, by_tokens, gap_minutes):
    if by_time is None and by_tokens is None:
        raise click.UsageError("must specify --by-time or --by-tokens")
    if by_time is not None and by_tokens is not None:
        raise click.UsageError("--by-time and --by-tokens are mutually exclusive")
    try:
        return chunk_messages(
            messages, counter, by_time=by_time, by_tokens=by_tokens, gap_minutes=gap_minutes
        )
    except InvalidDurationError as e:
        raise click.BadParameter(str(e), param_hint="'--by-time'") from e


def _echo_json(data: dict):
    click.echo(json.dumps(data, indent=2, ensure_ascii=False))


@click.group()
@click.version_option(version=__version__, prog_name="discord-chunker")
@click.option("-v", "--verbose", is_flag=True, help="Log progress details to stderr")
def cli(verbose: bool):
    """discord-chunker — Token estimation and conversation-aware chunking.

    Fetch a Discord channel through OpenClaw (or read a saved payload with
    --input), then estimate its size or split it into chunks that fit a
    model's context window, preferring to cut at quiet gaps in the
    conversation.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


@cli.command()
@click.argument("channel_id")
@_apply(_SOURCE_OPTIONS)
def estimate(channel_id, limit, before, after, input_path, fmt):
    """Estimate total tokens in a channel.

    Example:
        discord-chunker estimate 1234567890 --limit 500
    """
    messages = _load_messages(channel_id, limit, before, after, input_path)
    result = estimate_tokens(messages, TokenCounter())

    if fmt == "json":
        _echo_json(estimate_dict(channel_id, result))
    else:
        click.echo(format_estimate_text(result))


@cli.command()
@click.argument("channel_id")
@_apply(_SOURCE_OPTIONS)
@_apply(_CHUNKING_OPTIONS)
@click.option("--summary-only", is_flag=True, help="Only show chunk summaries, not content")
def chunk(channel_id, limit, before, after, input_path, fmt, by_time, by_tokens,
          gap_minutes, summary_only):
    """Divide a channel into chunks.

    Examples:
        discord-chunker chunk 1234567890 --by-time 1d --summary-only
        discord-chunker chunk 1234567890 --by-tokens 4000 --gap-minutes 15
    """
    messages = _load_messages(channel_id, limit, before, after, input_path)
    chunks = _build_chunks(messages, TokenCounter(), by_time, by_tokens, gap_minutes)

    if fmt == "json":
        _echo_json(chunks_dict(channel_id, len(messages), chunks))
        return

    click.echo()
    click.echo(format_chunk_summaries(channel_id, len(messages), chunks))

    if not summary_only:
        click.echo()
        click.echo(click.style("--- Full Chunks ---", bold=True))
        click.echo()
        for i, c in enumerate(chunks):
            click.echo(format_chunk_text(c, i, len(chunks)))


@cli.command("get-chunk")
@click.argument("channel_id")
@click.argument("index", type=int)
@_apply(_SOURCE_OPTIONS)
@_apply(_CHUNKING_OPTIONS)
def get_chunk_cmd(channel_id, index, limit, before, after, input_path, fmt, by_time,
                  by_tokens, gap_minutes):
    """Get the content of chunk INDEX (0-indexed).

    Example:
        discord-chunker get-chunk 1234567890 0 --by-tokens 4000
    """
    messages = _load_messages(channel_id, limit, before, after, input_path)
    chunks = _build_chunks(messages, TokenCounter(), by_time, by_tokens, gap_minutes)

    try:
        selected = get_chunk(chunks, index)
    except ChunkIndexError as e:
        raise click.ClickException(str(e)) from e

    if fmt == "json":
        content = get_chunk_content(chunks, index)
        _echo_json(chunk_detail_dict(channel_id, chunks, index, content))
    else:
        click.echo(format_chunk_text(selected, index, len(chunks)))


@cli.command()
def serve():
    """Start the MCP server (stdio transport).

    Exposes estimate, chunk and get-chunk as tools so an agent can read a
    channel piece by piece.
    """
    from .server import mcp

    mcp.run(transport="stdio")
