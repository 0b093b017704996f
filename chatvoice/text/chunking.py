"""Word-safe text segmentation for length-limited synthesis requests.

Responsibilities:
- Split chat text into order-preserving chunks no longer than a provider limit.
- Cut only after whitespace or punctuation unless forced splitting is requested.
"""

from __future__ import annotations

from enum import Enum
import string

from ..errors import OverlongTokenError

_EXTRA_SPACES = frozenset({"\ufeff", "\u00a0"})
_PUNCTUATION = frozenset(string.punctuation) | frozenset("。、？！「」（）")


class OverlongTokenPolicy(str, Enum):
    """How to treat a window that contains no whitespace or punctuation."""

    FAIL = "fail"
    FORCE_SPLIT = "force_split"


def is_boundary_character(character: str) -> bool:
    """Return whether a chunk may end right after `character`."""

    return character.isspace() or character in _EXTRA_SPACES or character in _PUNCTUATION


class TextChunker:
    """Split text into bounded chunks with whitespace/punctuation boundaries."""

    def __init__(self, policy: OverlongTokenPolicy = OverlongTokenPolicy.FAIL) -> None:
        """Initialize the chunker with an overlong-token policy."""

        self.policy = OverlongTokenPolicy(policy)

    def split(self, text: str, max_len: int) -> list[str]:
        """Split `text` into chunks of at most `max_len` code points.

        Args:
            text: Input text; an empty string yields a single empty chunk.
            max_len: Maximum chunk length in Unicode code points.

        Returns:
            Ordered chunks whose concatenation equals `text`.

        Raises:
            ValueError: If `max_len` is smaller than one.
            OverlongTokenError: If a token exceeds `max_len` and the policy is `FAIL`.
        """

        if max_len < 1:
            raise ValueError("`max_len` must be at least 1.")

        chunks: list[str] = []
        start = 0
        text_length = len(text)
        while True:
            if text_length - start <= max_len:
                chunks.append(text[start:])
                return chunks

            end = self._resolve_end(text, start, max_len)
            chunks.append(text[start : end + 1])
            start = end + 1

    def _resolve_end(self, text: str, start: int, max_len: int) -> int:
        """Resolve the inclusive end index of the chunk starting at `start`."""

        end = start + max_len - 1
        if is_boundary_character(text[end]) or (
            end + 1 < len(text) and is_boundary_character(text[end + 1])
        ):
            return end

        for index in range(end, start - 1, -1):
            if is_boundary_character(text[index]):
                return index

        if self.policy is OverlongTokenPolicy.FORCE_SPLIT:
            return end
        raise OverlongTokenError(text[start : start + max_len], max_len)


def split(
    text: str,
    max_len: int,
    policy: OverlongTokenPolicy = OverlongTokenPolicy.FAIL,
) -> list[str]:
    """Split `text` with a one-off `TextChunker`."""

    return TextChunker(policy).split(text, max_len)
