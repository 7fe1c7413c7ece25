"""Map a loosely typed ailment name onto a remedy in a catalog.

Matching runs as a fixed cascade and the first hit wins, so the same
``(catalog, query)`` pair always resolves to the same remedy:

1. exact, case-sensitive name
2. case-insensitive name
3. case-insensitive name with surrounding whitespace trimmed on both sides
4. case-insensitive name against the query variants from
   :func:`query_variants`, as is and then trimmed, variants in order,
   catalog entries in load order
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from remedy_api import Remedy

logger = logging.getLogger(__name__)


def _fold(value: str) -> str:
    return value.lower()


def title_case(text: str) -> str:
    """Upper-case the first letter of each space separated word, lower the rest."""

    return " ".join(word[:1].upper() + word[1:] for word in text.lower().split(" "))


def query_variants(query: str) -> List[str]:
    return [
        query.lower(),
        query.upper(),
        title_case(query),
        query.replace(" ", ""),
        query.replace("-", " "),
    ]


def _find_exact(remedies: List[Remedy], query: str) -> Optional[Remedy]:
    for remedy in remedies:
        if remedy.name == query:
            return remedy
    return None


def _find_folded(remedies: List[Remedy], query: str, *, trim: bool = False) -> Optional[Remedy]:
    target = _fold(query.strip() if trim else query)
    for remedy in remedies:
        name = remedy.name.strip() if trim else remedy.name
        if _fold(name) == target:
            return remedy
    return None


def resolve(catalog: Optional[Iterable[Remedy]], query: Optional[str]) -> Optional[Remedy]:
    """Return the remedy matching ``query`` or ``None`` when nothing matches."""

    if catalog is None or not query:
        return None
    remedies = list(catalog)
    if not remedies:
        return None

    match = _find_exact(remedies, query)
    if match is None:
        match = _find_folded(remedies, query)
    if match is None:
        match = _find_folded(remedies, query, trim=True)
    if match is None:
        for variant in query_variants(query):
            match = _find_folded(remedies, variant) or _find_folded(remedies, variant, trim=True)
            if match is not None:
                break

    if match is None:
        logger.debug("No remedy matches %r", query)
    elif match.name != query:
        logger.debug("Resolved %r to remedy %r", query, match.name)
    return match


__all__ = ["query_variants", "resolve", "title_case"]
