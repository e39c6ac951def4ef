"""Text helpers for titles and identifiers."""

import hashlib
import re
import unicodedata

_INVISIBLE_RE = re.compile(r"[\u200b\u200c\u200d\ufeff]")
_SPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"\W+")


def clean_text(text: str | None) -> str:
    """
    Normalize a title or description for comparison.

    Applies NFKC, collapses runs of whitespace and strips zero-width
    characters that platforms like to leave in pasted captions.
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFKC", text)
    text = _INVISIBLE_RE.sub("", _SPACE_RE.sub(" ", text))
    return text.strip()


def significant_words(text: str | None, min_length: int = 4) -> list[str]:
    """
    Split text into lowercase words, keeping those of at least min_length.

    Args:
        text: Source text (title, description).
        min_length: Shortest word to keep.

    Returns:
        Words in order of appearance.
    """
    words = _WORD_RE.split(clean_text(text).lower())
    return [w for w in words if len(w) >= min_length]


def stable_id(*parts: object, length: int = 16) -> str:
    """Deterministic short id derived from the given parts."""
    key = "|".join(str(part) for part in parts)
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:length]
