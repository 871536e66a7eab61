# ================================================================================
# Dynamic-Attribute Predicates
# ================================================================================
#
# Partial-match helpers shared by the plain strategies and the CSS/XPath
# sub-evaluators. All comparisons are case-sensitive code point comparisons
# with no locale folding.
#
# Whitespace is exactly space, tab, newline and carriage return.
#
# ================================================================================

import re
from typing import List


WHITESPACE = " \t\n\r"

_WHITESPACE_RUN = re.compile(r"[ \t\n\r]+")


def normalize_space(text: str) -> str:
    """
    Strip leading/trailing whitespace and collapse inner runs to one space.

    Example:
        >>> normalize_space("  a \\t\\n  b  ")
        'a b'
    """
    if not text:
        return ""
    return _WHITESPACE_RUN.sub(" ", text).strip(" ")


def split_words(value: str) -> List[str]:
    """Tokenize a whitespace-separated list such as a ``class`` attribute."""
    stripped = value.strip(WHITESPACE) if value else ""
    if not stripped:
        return []
    return _WHITESPACE_RUN.split(stripped)


def contains(value: str, sub: str) -> bool:
    return sub in value


def starts_with(value: str, prefix: str) -> bool:
    return value.startswith(prefix)


def ends_with(value: str, suffix: str) -> bool:
    return value.endswith(suffix)


def has_word(value: str, word: str) -> bool:
    """``~=`` semantics: ``word`` is one of the whitespace-separated tokens."""
    if not word or any(ch in WHITESPACE for ch in word):
        return False
    return word in split_words(value)


def hyphen_prefix(value: str, prefix: str) -> bool:
    """``|=`` semantics: exactly ``prefix`` or ``prefix`` followed by ``-``."""
    return value == prefix or value.startswith(prefix + "-")


__all__ = [
    "WHITESPACE",
    "normalize_space",
    "split_words",
    "contains",
    "starts_with",
    "ends_with",
    "has_word",
    "hyphen_prefix",
]
