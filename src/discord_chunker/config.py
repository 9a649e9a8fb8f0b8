"""Central configuration for chunking defaults and the message source."""

import os

# Fetching — the OpenClaw gateway CLI reads Discord history for us
OPENCLAW_BIN = os.environ.get("DISCORD_CHUNKER_OPENCLAW_BIN", "openclaw")
DEFAULT_LIMIT = int(os.environ.get("DISCORD_CHUNKER_LIMIT", "100"))
FETCH_PAGE_SIZE = 100  # Discord API maximum per request
FETCH_PAGE_DELAY = float(os.environ.get("DISCORD_CHUNKER_PAGE_DELAY", "0.1"))  # seconds
FETCH_TIMEOUT = float(os.environ.get("DISCORD_CHUNKER_FETCH_TIMEOUT", "60"))  # seconds

# Chunking parameters
DEFAULT_GAP_MINUTES = int(os.environ.get("DISCORD_CHUNKER_GAP_MINUTES", "30"))
OVERSHOOT_TOLERANCE = float(os.environ.get("DISCORD_CHUNKER_OVERSHOOT", "1.1"))

# Token counting
TIKTOKEN_MODEL = os.environ.get("DISCORD_CHUNKER_TIKTOKEN_MODEL", "gpt-4")
FALLBACK_ENCODING = "cl100k_base"
CHARS_PER_TOKEN = 4  # Heuristic when no encoder is available

# Formatting
EMBED_PREVIEW_CHARS = 50
