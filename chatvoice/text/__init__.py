"""Text segmentation and chat message filtering.

This package provides the word-safe chunker used before provider requests and the
rule chain that decides which chat messages are spoken.
"""

from .chunking import OverlongTokenPolicy, TextChunker, split
from .message_filter import MessageFilter, MessageRule, default_rules

__all__ = [
    "MessageFilter",
    "MessageRule",
    "OverlongTokenPolicy",
    "TextChunker",
    "default_rules",
    "split",
]
