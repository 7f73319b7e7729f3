"""Normalize raw text before keyword matching."""
import re
import unicodedata

_WHITESPACE_RE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Decompose accented characters and drop the combining marks."""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def collapse_whitespace(text: str) -> str:
    """Strip whitespace, collapse multiple spaces."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def normalize_text(text: str | None) -> str:
    """Lowercase, strip accents and collapse whitespace.

    "  Ação  Rápida " -> "acao rapida". Empty or missing input yields "".
    """
    if not text:
        return ""
    return collapse_whitespace(strip_accents(text.lower()))
