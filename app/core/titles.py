"""Title text helpers shared by the classifier, resolver and catalog lookup."""

from __future__ import annotations

import re

from app.core.franchises import SEQUEL_SUFFIXES

COMMON_WORDS: frozenset[str] = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "will", "would", "should", "could",
    "yes", "no", "ok", "okay", "sure", "yeah", "yep", "nope",
    "how", "what", "when", "where", "why", "who", "which",
    "sequel", "sequels", "recommendation", "recommend", "suggest",
    "better", "good", "bad", "great", "awesome", "terrible",
    "recent", "latest", "new", "old", "classic", "modern",
})

MOVIE_KEYWORDS: tuple[str, ...] = (
    "movie", "film", "watch", "seen", "director", "actor", "actress",
    "rating", "imdb", "review", "plot", "genre", "cast", "trailer",
)

GREETINGS: tuple[str, ...] = (
    "hi", "hello", "hey", "hi there", "hello there",
    "good morning", "good afternoon", "good evening",
    "how are you", "whats up", "what's up", "sup",
)

_YEAR = re.compile(r"\b(19\d{2}|20\d{2})\b")
_ANY_YEAR = re.compile(r"(\d{4})")
_ACTOR = re.compile(
    r"\b(?:with|starring)\s+([a-z][a-z\s.'-]*?)(?:\s+(?:19|20)\d{2})?\s*$",
    re.IGNORECASE,
)

# Conversation-side base title: drop year, subtitle and sequel number
_BASE_STEPS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s*\(\d{4}\)"), ""),
    (re.compile(r":\s*.+$"), ""),
    (re.compile(r"\s*-\s*.+$"), ""),
    (re.compile(r"\s*part\s+\d+", re.IGNORECASE), ""),
    (re.compile(r"\s*\d+$"), ""),
)

# Catalog-side base title: drop actor qualifier, year and subtitle
_CATALOG_BASE_STEPS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s+with\s+.+$", re.IGNORECASE), ""),
    (re.compile(r"\s+starring\s+.+$", re.IGNORECASE), ""),
    (re.compile(r"\s*\d{4}$"), ""),
    (re.compile(r"\s*\(\d{4}\)"), ""),
    (re.compile(r":\s*.+$"), ""),
    (re.compile(r"\s*-\s*.+$"), ""),
)


def is_common_word(text: str) -> bool:
    return text.lower().strip() in COMMON_WORDS


def contains_movie_keywords(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in MOVIE_KEYWORDS)


def is_greeting(text: str) -> bool:
    normalized = text.lower().strip()
    return any(
        normalized == greeting
        or normalized.startswith(greeting + " ")
        or normalized.endswith(" " + greeting)
        for greeting in GREETINGS
    )


def base_title(title: str) -> str:
    """Franchise root of a discussed title: "Wonder Woman 1984" -> "Wonder Woman"."""
    for pattern, repl in _BASE_STEPS:
        title = pattern.sub(repl, title, count=1)
    return title.strip()


def catalog_base_title(title: str) -> str:
    """Search root for the catalog: "Ace 2025 with Vijay Sethupathi" -> "Ace"."""
    for pattern, repl in _CATALOG_BASE_STEPS:
        title = pattern.sub(repl, title, count=1)
    return title.strip()


def requested_year(title: str) -> str | None:
    match = _YEAR.search(title)
    return match.group(1) if match else None


def requested_actor(title: str) -> str | None:
    match = _ACTOR.search(title.strip())
    if not match:
        return None
    actor = match.group(1).strip()
    # "The Girl with the Dragon Tattoo" names no actor
    if not actor or actor.split()[0].lower() in ("the", "a", "an"):
        return None
    return actor


def generic_sequels(base: str, original_title: str | None = None) -> list[str]:
    """Sequel guesses for a title with no known franchise entry.

    The base title with each common sequel suffix, then the full original
    title with " 2", then the next three years when the original carried one.
    """
    candidates = [f"{base}{suffix}" for suffix in SEQUEL_SUFFIXES]
    if original_title:
        candidates.append(f"{original_title} 2")
        year_match = _ANY_YEAR.search(original_title)
        if year_match:
            year = int(year_match.group(1))
            candidates.extend(f"{base} {year + step}" for step in (1, 2, 3))
    return candidates


def parse_year(value: str | None) -> int:
    """Leading four-digit year of an OMDb ``Year`` field ("2011–2019" -> 2011)."""
    if not value:
        return 0
    match = re.match(r"\s*(\d{4})", value)
    return int(match.group(1)) if match else 0
