"""Company name normalization and token-overlap scoring."""

import re
from typing import Iterable, List, Set

CORPORATE_SUFFIXES = {
    "ltd",
    "limited",
    "pvt",
    "private",
    "co",
    "company",
    "corp",
    "corporation",
    "inc",
    "incorporated",
    "llp",
    "plc",
}

_POSSESSIVE = re.compile(r"(\w)['’`]s\b")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]+")
_SPACES = re.compile(r"\s+")


def normalize_name(name: str) -> str:
    """Canonical form of a company name for comparison.

    Lowercases, folds possessives (``reddy's`` -> ``reddys``), replaces
    punctuation with spaces, drops corporate suffixes and collapses
    whitespace.
    """
    if not name:
        return ""
    text = name.lower()
    text = _POSSESSIVE.sub(r"\1s", text)
    text = text.replace("&", " and ")
    text = _NON_ALNUM.sub(" ", text)
    tokens = [t for t in _SPACES.split(text) if t and t not in CORPORATE_SUFFIXES]
    return " ".join(tokens)


def name_tokens(name: str) -> List[str]:
    """Whitespace tokens of the normalized name."""
    normalized = normalize_name(name)
    return normalized.split() if normalized else []


def token_overlap(a: Iterable[str], b: Iterable[str]) -> float:
    """|common tokens| / min(|a|, |b|) over token sets; 0 when either is empty."""
    set_a: Set[str] = set(a)
    set_b: Set[str] = set(b)
    if not set_a or not set_b:
        return 0.0
    return len(set_a & set_b) / min(len(set_a), len(set_b))


def passes_token_guard(extracted: List[str], reference: List[str]) -> bool:
    """A single-token name never matches a multi-token reference name."""
    return not (len(set(extracted)) == 1 and len(set(reference)) > 1)
