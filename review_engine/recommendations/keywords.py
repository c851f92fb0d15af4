from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import KeywordEntry

# Order breaks ties in preference inference and reason building.
DEFAULT_TERMS: tuple[str, ...] = (
    "spicy",
    "mildly spicy",
    "not spicy",
    "numbing",
    "mild",
    "ambience",
    "clean",
    "hygiene",
    "service",
    "attitude",
    "queue",
    "wait",
    "value",
    "price",
    "expensive",
    "cheap",
    "portion",
)


@dataclass(frozen=True)
class KeywordDictionary:
    terms: tuple[str, ...] = DEFAULT_TERMS

    def __iter__(self):
        return iter(self.terms)

    def __contains__(self, term: object) -> bool:
        return isinstance(term, str) and term.lower() in self.terms


DEFAULT_DICTIONARY = KeywordDictionary()


def mentions(text: str | None, keyword: str | None) -> bool:
    """Case-insensitive substring test; blank keywords never match."""
    if not text or not keyword or not keyword.strip():
        return False
    return keyword.lower() in text.lower()


def extract_keywords(
    review_id: int,
    text: str | None,
    dictionary: KeywordDictionary = DEFAULT_DICTIONARY,
) -> list[KeywordEntry]:
    """Return one weight-1.0 entry per dictionary term found in the text."""
    if not text or not text.strip():
        return []
    lowered = text.lower()
    return [
        KeywordEntry(review_id=review_id, keyword=term, weight=1.0)
        for term in dictionary
        if term in lowered
    ]


def _tag_names(*groups: Iterable[str] | None) -> list[str]:
    names: list[str] = []
    for group in groups:
        for name in group or []:
            if name and name not in names:
                names.append(name)
    return names


def infer_preference(
    explicit: str | None,
    subject_tags: Iterable[str] | None,
    collection_tags: Iterable[str] | None,
    dictionary: KeywordDictionary = DEFAULT_DICTIONARY,
) -> str | None:
    """
    Pick the single effective preference for a request.

    An explicit, non-blank preference is returned as given. Otherwise the
    first dictionary term contained in any subject or collection tag name
    wins; ``None`` when no tag mentions a dictionary term.
    """
    if explicit is not None and explicit.strip():
        return explicit

    names = _tag_names(subject_tags, collection_tags)
    if not names:
        return None

    for term in dictionary:
        if any(mentions(name, term) for name in names):
            return term
    return None


def collect_keywords(
    effective_preference: str | None,
    subject_tags: Iterable[str] | None,
    collection_tags: Iterable[str] | None,
    dictionary: KeywordDictionary = DEFAULT_DICTIONARY,
) -> tuple[str, ...]:
    """
    Build the ordered keyword set used for reranking and reasons.

    Every dictionary term found in any tag name is collected, plus the
    effective preference. Dictionary members keep dictionary order; a
    preference outside the dictionary goes last.
    """
    names = _tag_names(subject_tags, collection_tags)
    pref = effective_preference.strip() if effective_preference else ""

    keywords: list[str] = []
    for term in dictionary:
        if term == pref.lower() or any(mentions(name, term) for name in names):
            keywords.append(term)

    if pref and pref.lower() not in keywords:
        keywords.append(pref)
    return tuple(keywords)
