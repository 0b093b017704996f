"""Chat message pre-filtering before synthesis.

Responsibilities:
- Suppress command-like and empty messages that must not be spoken.
- Replace unspeakable fragments (emoji, URIs, code blocks) with short placeholders.
"""

from __future__ import annotations

import re
from typing import Protocol

URI_PLACEHOLDER = "。URI省略。"
CODE_PLACEHOLDER = "。コード省略。"


class MessageRule(Protocol):
    """Protocol for message filter rules.

    A rule returns the transformed message, or `None` to suppress it entirely.
    """

    def apply(self, text: str) -> str | None:
        """Apply a single filtering step."""


class SuppressCommandPrefix:
    """Suppress legacy `~` command messages."""

    def apply(self, text: str) -> str | None:
        return None if text.startswith("~") else text


class SuppressPing:
    """Suppress the literal legacy `ping` command."""

    def apply(self, text: str) -> str | None:
        return None if text == "ping" else text


class SuppressSemicolon:
    """Suppress `;`-prefixed messages while keeping `;;`-prefixed ones."""

    def apply(self, text: str) -> str | None:
        if text.startswith(";") and not text.startswith(";;"):
            return None
        return text


class RemoveEmoji:
    """Remove custom emoji tokens such as `<:name:123...>` and `:name:`."""

    _PATTERN = re.compile(r"(<:\w+:\d{18}>|:\w+:)")

    def apply(self, text: str) -> str | None:
        return self._PATTERN.sub("", text)


class ReplaceUri:
    """Replace URI-like tokens with a spoken placeholder."""

    _PATTERN = re.compile(r"\S+:\S+")

    def __init__(self, placeholder: str = URI_PLACEHOLDER) -> None:
        self.placeholder = placeholder

    def apply(self, text: str) -> str | None:
        return self._PATTERN.sub(self.placeholder, text)


class ReplaceCodeBlock:
    """Replace single-line fenced code blocks with a spoken placeholder."""

    _PATTERN = re.compile(r"(?m)```.+```")

    def __init__(self, placeholder: str = CODE_PLACEHOLDER) -> None:
        self.placeholder = placeholder

    def apply(self, text: str) -> str | None:
        return self._PATTERN.sub(self.placeholder, text)


class SuppressWhitespace:
    """Suppress messages that are empty after trimming."""

    def apply(self, text: str) -> str | None:
        return text if text.strip() else None


def default_rules(
    uri_placeholder: str = URI_PLACEHOLDER,
    code_placeholder: str = CODE_PLACEHOLDER,
) -> list[MessageRule]:
    """Return the ordered rule list used for chat messages."""

    return [
        SuppressCommandPrefix(),
        SuppressPing(),
        SuppressSemicolon(),
        RemoveEmoji(),
        ReplaceUri(uri_placeholder),
        ReplaceCodeBlock(code_placeholder),
        SuppressWhitespace(),
    ]


class MessageFilter:
    """Apply filter rules in order, stopping at the first suppression."""

    def __init__(self, rules: list[MessageRule] | None = None) -> None:
        """Initialize the filter with explicit rules or the default chain."""

        self.rules = rules if rules is not None else default_rules()

    def apply(self, text: str) -> str | None:
        """Return speakable text, or `None` when the message must stay silent."""

        current: str | None = text
        for rule in self.rules:
            current = rule.apply(current)
            if current is None:
                return None
        return current
