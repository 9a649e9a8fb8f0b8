"""Token counting with tiktoken and a character-length fallback."""

from __future__ import annotations

import logging
import math
from typing import Any, Protocol, Sequence

from .config import CHARS_PER_TOKEN, FALLBACK_ENCODING, TIKTOKEN_MODEL

logger = logging.getLogger(__name__)


class Encoding(Protocol):
    def encode(self, text: str) -> Sequence[Any]: ...


def heuristic_token_count(text: str | None) -> int:
    """Roughly four characters per token for English text."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _load_encoding(model: str) -> Encoding | None:
    """Load the tiktoken encoding for ``model``, or None if tiktoken is unusable."""
    try:
        import tiktoken

        try:
            return tiktoken.encoding_for_model(model)
        except KeyError:
            logger.warning(
                "tiktoken: unknown model '%s', falling back to %s", model, FALLBACK_ENCODING
            )
            return tiktoken.get_encoding(FALLBACK_ENCODING)
    except Exception:
        logger.warning(
            "tiktoken unavailable, estimating ~%d chars per token",
            CHARS_PER_TOKEN,
            exc_info=True,
        )
        return None


class TokenCounter:
    """Counts tokens in formatted message text.

    The encoder is loaded once, when the counter is built. If it cannot be
    loaded the counter uses the character heuristic for its whole lifetime;
    if it fails on a particular text, that one text is estimated instead.
    """

    def __init__(
        self, model: str | None = TIKTOKEN_MODEL, encoding: Encoding | None = None
    ):
        self.model = model
        if encoding is None and model is not None:
            encoding = _load_encoding(model)
        self._encoding = encoding

    @classmethod
    def heuristic(cls) -> TokenCounter:
        """A counter that never touches tiktoken."""
        return cls(model=None)

    @property
    def is_exact(self) -> bool:
        return self._encoding is not None

    def count(self, text: str | None) -> int:
        if not text:
            return 0
        if self._encoding is not None:
            try:
                return len(self._encoding.encode(text))
            except Exception:
                logger.debug("Encoder failed on %d chars, using heuristic", len(text))
        return heuristic_token_count(text)

    __call__ = count
