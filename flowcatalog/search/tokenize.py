# flowcatalog/search/tokenize.py
import re
from typing import List

# "httpRequest" -> "http Request", "HTTPRequest" -> "HTTP Request"
_CAMEL_RE = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SPLIT_RE = re.compile(r"[^0-9a-z]+")

STOP_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in", "into",
    "is", "it", "of", "on", "or", "that", "the", "this", "to", "with", "your",
})


def tokenize(text: str, drop_stop_words: bool = True) -> List[str]:
    """Lowercase tokens of `text`, camelCase and punctuation split."""
    if not text:
        return []
    text = _ACRONYM_RE.sub(r"\1 \2", text)
    text = _CAMEL_RE.sub(r"\1 \2", text)
    tokens = [t for t in _SPLIT_RE.split(text.lower()) if t]
    if drop_stop_words:
        tokens = [t for t in tokens if t not in STOP_WORDS]
    return tokens


def normalize_phrase(text: str) -> str:
    """Whole-string form used for exact name/alias matching."""
    return " ".join((text or "").lower().split())
