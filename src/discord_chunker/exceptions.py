"""Exception hierarchy for discord-chunker."""


class DiscordChunkerError(Exception):
    """Base exception for all discord-chunker errors."""


class InvalidDurationError(DiscordChunkerError, ValueError):
    """A time-window duration did not match ``<positive integer><m|h|d|w>``."""

    def __init__(self, duration: object):
        self.duration = duration
        super().__init__(
            f"Invalid duration format: {duration}. Use formats like 1h, 1d, 1w"
        )


class ChunkIndexError(DiscordChunkerError, IndexError):
    """A chunk index fell outside the chunks that were produced."""

    def __init__(self, index: int, total: int):
        self.index = index
        self.total = total
        if total:
            detail = f"out of range (0-{total - 1})"
        else:
            detail = "out of range (no chunks)"
        super().__init__(f"Chunk index {index} {detail}")

    @property
    def valid_range(self) -> range:
        return range(self.total)


class FetchError(DiscordChunkerError):
    """The message source could not be run."""
