"""Compaction of a G-code token stream into line-oriented output.

Each token is handled on its own, in order:

* axis and feedrate words (first character ``X``, ``Y``, ``Z`` or ``F``) are
  appended to the current line after a single space,
* comments (first character ``;``) are dropped,
* anything else starts a new line.

A new line is started by writing ``"\\n"`` before the token, so the output
begins with an empty line when the first token is a command, and begins with
a space when the first token is a coordinate. Nothing is written after the
last token. Consumers of existing output files rely on this exact layout.
"""

import io
import logging
from enum import Enum
from typing import Iterable, TextIO

from usgcode.core.error_handling import OutputError

logger = logging.getLogger(__name__)

COORDINATE_PREFIXES = ("X", "Y", "Z", "F")
COMMENT_PREFIX = ";"


class TokenClass(Enum):
    """How a token is placed in the output."""

    COORDINATE = "coordinate"
    COMMENT = "comment"
    COMMAND = "command"


def classify_token(token: str) -> TokenClass:
    """Classify a token by its first character (case-sensitive)."""
    if token.startswith(COORDINATE_PREFIXES):
        return TokenClass.COORDINATE
    if token.startswith(COMMENT_PREFIX):
        return TokenClass.COMMENT
    return TokenClass.COMMAND


class CommandStreamCompactor:
    """Writes tokens to a text stream as they arrive."""

    def __init__(self, stream: TextIO) -> None:
        self.stream = stream
        self.lines_written = 0
        self.comments_dropped = 0

    def write_token(self, token: str) -> None:
        """Write a single token."""
        token_class = classify_token(token)

        if token_class is TokenClass.COMMENT:
            self.comments_dropped += 1
            return

        if token_class is TokenClass.COORDINATE:
            text = f" {token}"
        else:
            text = f"\n{token}"
            self.lines_written += 1

        try:
            self.stream.write(text)
        except OSError as e:
            raise OutputError(
                f"Couldn't write to file: {e}", details={"token": token}
            ) from e

    def write(self, tokens: Iterable[str]) -> int:
        """Write all tokens and return the number of command lines written."""
        for token in tokens:
            self.write_token(token)

        logger.debug(
            f"Compacted stream: {self.lines_written} lines, "
            f"{self.comments_dropped} comments dropped"
        )
        return self.lines_written


def compact_tokens(tokens: Iterable[str]) -> str:
    """Render tokens to a string using the same rules as the file writer."""
    buffer = io.StringIO()
    CommandStreamCompactor(buffer).write(tokens)
    return buffer.getvalue()
