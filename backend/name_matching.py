"""Name matching: fuzzy resolution for free text and scored member search."""

import logging
import re
from typing import Iterable

from rapidfuzz.distance import Levenshtein

from family_tree import IndexedPerson, PersonIndex

logger = logging.getLogger("vanshavali.name_matching")

MIN_TOKEN_LENGTH = 3
FUZZY_SIMILARITY_THRESHOLD = 0.7
MATCH_THRESHOLD = 0.5

SEARCH_MODES = ("all", "name", "father", "year")
SEARCH_RESULT_LIMIT = 20

TOKEN_PUNCTUATION = "?!.,;:'\"()।"


def edit_similarity(a: str, b: str) -> float:
    """1 - edit distance / longer length, so identical strings score 1.0."""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 0.0
    return 1.0 - Levenshtein.distance(a, b) / max_len


def _tokens(text: str) -> list[str]:
    tokens = (token.strip(TOKEN_PUNCTUATION) for token in text.split())
    return [token for token in tokens if token]


def find_best_match(persons: Iterable[IndexedPerson], query: str) -> IndexedPerson | None:
    """
    Find the person a free-text query is most likely about.

    A query containing someone's full name (native or romanized) returns
    that person immediately. Otherwise every query token of 3+ characters
    is scored against every person: a substring hit scores token length
    over name length, and an edit-distance similarity above 0.7 against a
    name part scores that similarity. The best score wins if above 0.5.
    """
    query = query.lower()
    query_tokens = [t for t in _tokens(query) if len(t) >= MIN_TOKEN_LENGTH]

    best_match = None
    highest_score = 0.0

    for person in persons:
        name_full = person.name.lower()
        name_en = (person.name_en or "").lower()

        if (name_full and name_full in query) or (name_en and name_en in query):
            logger.debug(f"Full name match: {person.name}")
            return person

        parts = [part for part in name_full.split() + name_en.split() if len(part) >= MIN_TOKEN_LENGTH]
        longest_name = max(len(name_full), len(name_en)) or 1

        for token in query_tokens:
            if token in name_full or token in name_en:
                score = len(token) / longest_name
                if score > highest_score:
                    highest_score = score
                    best_match = person

            for part in parts:
                similarity = edit_similarity(token, part)
                if similarity > FUZZY_SIMILARITY_THRESHOLD and similarity > highest_score:
                    highest_score = similarity
                    best_match = person

    if best_match is not None and highest_score > MATCH_THRESHOLD:
        logger.debug(f"Fuzzy match: {best_match.name} (score {highest_score:.2f})")
        return best_match
    return None


def find_person_by_name(persons: Iterable[IndexedPerson], name: str) -> IndexedPerson | None:
    """First person whose native or romanized name is exactly the given text."""
    name = name.strip()
    for person in persons:
        if person.name == name or person.name_en == name:
            return person
    return None


def search_members(
    index: PersonIndex,
    query: str,
    mode: str = "all",
    limit: int = SEARCH_RESULT_LIMIT,
) -> list[IndexedPerson]:
    """
    Score members for the search box and autocomplete.

    Name matches count in every mode; parent name matches count in 'all'
    and 'father' modes; birth year digits count in 'all' and 'year' modes.
    """
    if mode not in SEARCH_MODES:
        raise ValueError(f"Unknown search mode '{mode}'. Use one of: {', '.join(SEARCH_MODES)}")

    query_lower = query.strip().lower()
    query_digits = re.sub(r"[^0-9]", "", query)
    if not query_lower:
        return []

    results = []
    for person in index:
        names = [n.lower() for n in (person.name, person.name_en) if n]
        score = 0

        if any(n == query_lower for n in names):
            score += 100
        elif any(n.startswith(query_lower) for n in names):
            score += 50
        elif any(query_lower in n for n in names):
            score += 25

        if mode in ("all", "father"):
            parent = index.parent_of(person)
            if parent:
                parent_name = parent.name.lower()
                if parent_name == query_lower:
                    score += 80
                elif query_lower in parent_name:
                    score += 20

        if mode in ("all", "year") and query_digits and person.birth_year is not None:
            year = str(person.birth_year)
            if year == query_digits:
                score += 90
            elif query_digits in year:
                score += 30

        if score > 0:
            results.append((score, person))

    # sort is stable, so equal scores keep index order
    results.sort(key=lambda r: r[0], reverse=True)
    return [person for _, person in results[:limit]]
