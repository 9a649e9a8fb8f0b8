"""discord-chunker: token estimation and conversation-aware chunking for Discord channels."""

__version__ = "0.1.0"
