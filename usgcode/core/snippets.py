"""Parsing of short G-code snippets such as tool start/stop sequences."""

import re
from typing import Optional, Tuple

from usgcode.core.error_handling import ConfigurationError

WORD_PATTERN = re.compile(r"^[A-Za-z][+-]?(?:\d+(?:\.\d*)?|\.\d+)$")


def parse_snippet(text: str, name: str = "snippet") -> Tuple[str, ...]:
    """Split a snippet into command tokens.

    Words are separated by whitespace and must be a letter followed by a
    number (``M3``, ``G0``, ``Z-1.5``). A ``;`` starts a comment that runs to
    the end of its line and is kept as a single comment token.

    Raises:
        ConfigurationError: if a word is not a valid G-code word
    """
    tokens = []
    for line in text.splitlines():
        code, sep, comment = line.partition(";")
        for word in code.split():
            if not WORD_PATTERN.match(word):
                raise ConfigurationError(
                    f"Could not parse {name} {text!r}: invalid word {word!r}",
                    details={"snippet": text, "word": word},
                )
            tokens.append(word[0].upper() + word[1:])
        if sep:
            tokens.append(f";{comment.strip()}")
    return tuple(tokens)


def parse_optional_snippet(
    text: Optional[str], name: str = "snippet"
) -> Tuple[str, ...]:
    """Parse a snippet that may be unset; None and blank give no tokens."""
    if text is None or not text.strip():
        return ()
    return parse_snippet(text, name)
