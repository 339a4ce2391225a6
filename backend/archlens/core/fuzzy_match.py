"""Fuzzy Match — near-duplicate oracle used by the canvas merge engine.

Invariants:
    - All functions are pure (no IO, no state) — the matcher never mutates canvas data
    - similarity() is a Jaccard score in [0, 1]; 0 when either side has no tokens
    - is_near_duplicate() is False whenever either canonical form is empty

Design Decisions:
    - Layered policy: containment → partial overlap → Jaccard. Pure Jaccard punishes
      short phrases; pure containment over-triggers on generic ones
    - Token set = unigrams (> 2 chars) + adjacent bigrams, so "pub sub" still meets "pubsub"
    - TextMatcher Protocol: merge engine depends on the interface, not this heuristic
      (ADR: swap in trigram / edit-distance without touching call sites)
    - Thresholds kept as the empirically tuned constants (0.4 / 0.72), overridable via settings
"""

import re
from dataclasses import dataclass
from typing import Protocol

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")
_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_CHARS = 3
MIN_SHARED_TOKENS = 2


@dataclass(frozen=True)
class MatchThresholds:
    """Tunable cut-offs for is_near_duplicate."""
    partial_overlap_ratio: float = 0.4
    jaccard: float = 0.72


DEFAULT_THRESHOLDS = MatchThresholds()


class TextMatcher(Protocol):
    """Structural contract for dedupe oracles."""
    def similarity(self, a: str, b: str) -> float: ...
    def is_near_duplicate(self, a: str, b: str) -> bool: ...


# -- Canonical forms -----------------------------------------------------------

def canonicalize(text: str | None) -> str:
    """Lowercase, punctuation → spaces, whitespace collapsed."""
    if not text:
        return ""
    lowered = text.strip().lower()
    return _WHITESPACE.sub(" ", _NON_ALNUM.sub(" ", lowered)).strip()


def _unigrams(canonical: str) -> list[str]:
    return [t for t in canonical.split(" ") if len(t) >= MIN_TOKEN_CHARS]


def token_set(text: str | None) -> set[str]:
    """Unigrams longer than 2 chars plus adjacent-pair bigrams (no separator)."""
    tokens = _unigrams(canonicalize(text))
    result = set(tokens)
    for left, right in zip(tokens, tokens[1:]):
        result.add(f"{left}{right}")
    return result


# -- Scores --------------------------------------------------------------------

def similarity(a: str | None, b: str | None) -> float:
    """Jaccard similarity over token sets."""
    a_set = token_set(a)
    b_set = token_set(b)
    if not a_set or not b_set:
        return 0.0
    union = len(a_set | b_set)
    return len(a_set & b_set) / union if union else 0.0


def is_near_duplicate(
    a: str | None, b: str | None,
    thresholds: MatchThresholds = DEFAULT_THRESHOLDS,
) -> bool:
    """Decide whether two phrases describe the same canvas item."""
    a_canon = canonicalize(a)
    b_canon = canonicalize(b)
    if not a_canon or not b_canon:
        return False

    if _contains_either_way(a_canon, b_canon):
        return True
    a_compact = a_canon.replace(" ", "")
    b_compact = b_canon.replace(" ", "")
    if _contains_either_way(a_compact, b_compact):
        return True

    a_set = token_set(a_canon)
    b_set = token_set(b_canon)
    shared = len(a_set & b_set)
    smallest = min(len(a_set), len(b_set))
    if (
        shared >= MIN_SHARED_TOKENS and smallest > 0
        and shared / smallest >= thresholds.partial_overlap_ratio
    ):
        return True

    return similarity(a_canon, b_canon) >= thresholds.jaccard


def _contains_either_way(a: str, b: str) -> bool:
    return a == b or a in b or b in a


class TokenJaccardMatcher:
    """Default TextMatcher — layered containment / overlap / Jaccard policy."""

    def __init__(self, thresholds: MatchThresholds = DEFAULT_THRESHOLDS):
        self.thresholds = thresholds

    def similarity(self, a: str, b: str) -> float:
        return similarity(a, b)

    def is_near_duplicate(self, a: str, b: str) -> bool:
        return is_near_duplicate(a, b, self.thresholds)


DEFAULT_MATCHER: TextMatcher = TokenJaccardMatcher()
