"""
Label and whitespace normalization shared by the locator and the extractor.
"""

import re

# Footnote markers such as (1), (2,3), 1/, * and daggers
FOOTNOTE_PATTERNS = [
    r"\(\s*\d+(?:\s*,\s*\d+)*\s*\)",
    r"\b\d+/",
    r"[*†‡]+",
]
TRAILING_PUNCT_RE = re.compile(r"[\s:;,.…]+$")
SPACE_RE = re.compile(r"\s+")
NON_WORD_RE = re.compile(r"[^a-z0-9]+")


def collapse_whitespace(text: str) -> str:
    """Turn any run of whitespace, including non-breaking spaces, into one space."""
    return SPACE_RE.sub(" ", text.replace("\xa0", " ")).strip()


def clean_label(text: str) -> str:
    """Trim a row label and strip footnote markers and trailing punctuation."""
    label = collapse_whitespace(text)
    for pattern in FOOTNOTE_PATTERNS:
        label = re.sub(pattern, " ", label)
    label = collapse_whitespace(label)
    return TRAILING_PUNCT_RE.sub("", label)


def normalize_label(text: str) -> str:
    """Matching key: lower case, & spelled out, punctuation folded to spaces."""
    key = clean_label(text).lower().replace("&", " and ")
    return NON_WORD_RE.sub(" ", key).strip()
