"""Text normalization helpers shared by the sentiment classifier."""

import re
from typing import List

_TOKEN_PATTERN = re.compile(r"[a-z0-9']+")


def normalize_text(text: str) -> str:
    """Normalize free text for lexical matching.

    Normalization steps:
    - Convert to lowercase
    - Remove common punctuation
    - Collapse whitespace

    Example:
        >>> normalize_text("  Very  GOOD, on time!  ")
        'very good on time'
    """
    normalized = text.lower()
    normalized = re.sub(r"[,;.:!?()[\]{}\"<>/\\]", " ", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def tokenize(text: str) -> List[str]:
    """Split text into lowercase word tokens.

    Apostrophes are kept inside tokens so contractions like ``didn't``
    survive as a single token.

    Example:
        >>> tokenize("Didn't show up. Rude!")
        ["didn't", 'show', 'up', 'rude']
    """
    return [token.strip("'") for token in _TOKEN_PATTERN.findall(normalize_text(text)) if token.strip("'")]
