"""
Scope set normalization.

Graph stores a grant's scopes as one space-delimited string. Callers hand us
scopes as a single string, several command-line tokens, or any mix of the two,
delimited by spaces and/or commas. Everything is reduced to a frozenset so
comparisons are set comparisons, never string comparisons.
"""

import re
from typing import FrozenSet, Iterable, List, Union

ScopeSet = FrozenSet[str]

_DELIMITERS = re.compile(r"[\s,]+")


def normalize(raw: Union[str, Iterable[str], None]) -> ScopeSet:
    """
    Split raw scope input into a canonical set of tokens.

    Splits on any run of whitespace and commas, drops empty tokens and collapses
    exact duplicates. Case is preserved: "User.Read" and "user.read" are distinct.
    """
    if raw is None:
        return frozenset()
    chunks = [raw] if isinstance(raw, str) else list(raw)
    tokens = set()
    for chunk in chunks:
        tokens.update(t for t in _DELIMITERS.split(chunk or "") if t)
    return frozenset(tokens)


def ordered(scopes: Iterable[str]) -> List[str]:
    """Return scopes in canonical (ordinal ascending) order."""
    return sorted(scopes)


def serialize(scopes: Iterable[str]) -> str:
    """Join scopes into Graph's wire format: single spaces, canonical order."""
    return " ".join(ordered(scopes))
