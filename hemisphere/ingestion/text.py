"""
Text Normalization
==================

Pure helpers shared by the ingestion boundary and the edge builders.

GUARANTEES:
- Same input -> same output (no locale or clock dependence)
- normalize() is idempotent
"""

from __future__ import annotations
import re
from typing import FrozenSet

LABEL_WORDS = 8
MIN_TOKEN_LENGTH = 3

# Unicode letters and digits; underscore counts as punctuation.
_TOKEN_RE = re.compile(r"[^\W_]+(?:-[^\W_]+)*")
_NON_WORD_RE = re.compile(r"[^\w\s-]|_")

STOPWORDS: FrozenSet[str] = frozenset("""
a about above after again against all also am an and any are around as at
be because been before being below between both but by can could did do does
doing down during each even ever every few for from further get gets getting
had has have having he her here hers him his how however i if in into is it
its itself just lot lots may me more most much must my no nor not now of off
often on once only or other our ours out over own really same she should so
some still such than that the their theirs them then there these they thing
things this those through to too under until up upon us very was way we well
were what when where which while who whom why will with within without would
you your yours
""".split())


def normalize(text: str) -> str:
    """
    Casefold, strip punctuation (keeping hyphens), collapse whitespace.

    Text made only of symbols keeps its casefolded form, so it never
    collapses to the empty key.
    """
    folded = " ".join(text.casefold().split())
    cleaned = " ".join(_NON_WORD_RE.sub(" ", folded).split())
    return cleaned or folded


def make_label(text: str, max_words: int = LABEL_WORDS) -> str:
    """Display label: the first few words of the text, original casing."""
    words = text.split()
    label = " ".join(words[:max_words])
    return label.rstrip(".,;:!?")


def label_key(text: str) -> str:
    """Identity key for a node: the normalized form of its label."""
    return normalize(make_label(text)) or normalize(text)


def tokenize(text: str) -> FrozenSet[str]:
    """Content tokens used for similarity."""
    return frozenset(
        t for t in _TOKEN_RE.findall(text.casefold())
        if len(t) >= MIN_TOKEN_LENGTH and t not in STOPWORDS
    )


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def word_count(text: str) -> int:
    return len(text.split())
