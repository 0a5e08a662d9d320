"""Catalog lookup: resolves candidate titles to movie metadata.

Per title, in order: the user's own store, then OMDb. Within OMDb a title
goes through every layer before the next title is tried:

1. qualified search when the title carries a year or an actor
2. exact-title fetch
3. textual variations (years, countries, franchise entries, sequel forms)
4. keyword search on the base title, reordered, then a detail fetch
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.franchises import (
    COUNTRIES,
    FRANCHISE_LATEST,
    KNOWN_KOREAN_TITLES,
    SEQUEL_SUFFIXES,
    SPECIFIC_TITLES,
)
from app.core.logging import get_logger
from app.core.titles import catalog_base_title, parse_year, requested_actor, requested_year
from app.core.trace import StepTrace
from app.models.movie import Movie
from app.services.movie_store import MovieStore, movie_store
from app.services.omdb import OmdbClient, SearchHit

logger = get_logger(__name__)

ACTOR_SIMILARITY_THRESHOLD = 0.7
UNIVERSAL_VARIATION_LIMIT = 6

_COUNTRY = re.compile(rf"({'|'.join(COUNTRIES)})", re.IGNORECASE)
_FOUR_DIGITS = re.compile(r"(\d{4})")
_RECENT_YEAR = re.compile(r"20(?:2[3-9]|[3-9]\d)")
_NON_ALPHA = re.compile(r"[^a-z\s]")


@dataclass
class CatalogHit:
    """A resolved movie, either a stored row or a raw OMDb payload."""

    source: str  # store | omdb
    searched_title: str
    row: Movie | None = None
    payload: dict[str, Any] | None = None

    @property
    def data(self) -> Movie | dict[str, Any]:
        return self.row if self.row is not None else self.payload


class _ActorMismatch(Exception):
    """The qualified search found the film but not with the requested actor."""


# ── Actor matching ───────────────────────────────────────────────────


def edit_distance(a: str, b: str) -> int:
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - edit_distance(longer, shorter)) / len(longer)


def fuzzy_actor_match(a: str, b: str) -> bool:
    norm_a = _NON_ALPHA.sub("", a.lower()).strip()
    norm_b = _NON_ALPHA.sub("", b.lower()).strip()
    return (
        norm_a in norm_b
        or norm_b in norm_a
        or similarity(norm_a, norm_b) > ACTOR_SIMILARITY_THRESHOLD
    )


def actor_in_cast(actor: str, cast: str) -> bool:
    wanted = actor.lower().strip()
    names = [name.strip().lower() for name in cast.split(",") if name.strip()]
    return any(
        wanted in name or name in wanted or fuzzy_actor_match(name, wanted)
        for name in names
    )


# ── Variations and ordering ──────────────────────────────────────────


def search_variations(title: str) -> list[str]:
    """Alternative exact titles to try for a query-derived title, de-duplicated in order."""
    variations: list[str] = []
    base = catalog_base_title(title)
    base_lower = base.lower()
    title_lower = title.lower()

    year = requested_year(title)
    if year:
        if int(year) >= 2020:
            variations += [f"{base} {year}", f"{base} ({year})"]
        if year == "1984" and "wonder woman" in base_lower:
            variations += ["Wonder Woman 1984", "Wonder Woman: 1984"]

    actor = requested_actor(title)
    if actor:
        variations += [f"{base} {actor}", f"{base} starring {actor}"]

    if _FOUR_DIGITS.search(title):
        variations.append(base)

    country = _COUNTRY.search(title)
    if country:
        without_country = " ".join(_COUNTRY.sub("", title).split())
        if country.group(1).lower() == "korean":
            for known, titles in KNOWN_KOREAN_TITLES.items():
                if known in without_country.lower():
                    variations += titles
                    break
            variations += [f"{without_country} Korean", f"{without_country} South Korea"]
        variations.append(without_country)

    any_year = _FOUR_DIGITS.search(title)
    if any_year:
        variations.append(f"{base} {any_year.group(1)}")

    franchise = next((entries for key, entries in FRANCHISE_LATEST.items() if key in base_lower), None)
    if franchise:
        variations += franchise
    else:
        universal = [f"{base}{suffix}" for suffix in SEQUEL_SUFFIXES]
        variations += universal[:UNIVERSAL_VARIATION_LIMIT]

    for key, mapped in SPECIFIC_TITLES.items():
        if key in title_lower:
            variations += mapped
            break

    seen: set[str] = {title.lower()}
    unique: list[str] = []
    for variation in variations:
        variation = variation.strip()
        if variation and variation.lower() not in seen:
            seen.add(variation.lower())
            unique.append(variation)
    return unique


def sort_search_hits(hits: list[SearchHit], search_title: str) -> list[SearchHit]:
    """Exact requested year first, then closest; newest first for "recent" queries."""
    year = requested_year(search_title)
    if year:
        wanted = int(year)
        return sorted(
            hits,
            key=lambda h: (parse_year(h.year) != wanted, abs(parse_year(h.year) - wanted)),
        )

    lowered = search_title.lower()
    if "recent" in lowered or "latest" in lowered or _RECENT_YEAR.search(search_title):
        return sorted(hits, key=lambda h: parse_year(h.year), reverse=True)

    return list(hits)


# ── Lookup ───────────────────────────────────────────────────────────


class CatalogLookup:
    def __init__(
        self,
        store: MovieStore | None = None,
        omdb: OmdbClient | None = None,
    ) -> None:
        self.store = store or movie_store
        self.omdb = omdb or OmdbClient()

    async def lookup(
        self,
        db: AsyncSession | None,
        titles: list[str],
        user_id: str | None,
        trace: StepTrace,
    ) -> CatalogHit | None:
        """First title that resolves in the user store or OMDb wins."""
        for title in titles:
            row = await self._search_store(db, title, user_id, trace)
            if row is not None:
                return CatalogHit(source="store", searched_title=title, row=row)

            payload = await self._search_omdb(title, trace)
            if payload is not None:
                return CatalogHit(source="omdb", searched_title=title, payload=payload)

        trace.fail("CATALOG_LOOKUP", {"found": False, "searchedTitles": titles})
        return None

    async def _search_store(
        self,
        db: AsyncSession | None,
        title: str,
        user_id: str | None,
        trace: StepTrace,
    ) -> Movie | None:
        if not user_id or db is None:
            trace.skip("SEARCH_DATABASE", "No user ID provided")
            return None
        try:
            row = await self.store.find_by_title(db, title, user_id)
        except Exception as e:
            logger.warning("movie_store_search_failed", title=title, error=str(e))
            trace.fail("SEARCH_DATABASE", {"title": title}, error=str(e))
            return None

        if row is None:
            trace.skip("SEARCH_DATABASE", {"found": False, "title": title})
            return None
        trace.success("SEARCH_DATABASE", {"movieId": str(row.id), "title": row.title, "searchedTitle": title})
        return row

    async def _search_omdb(self, title: str, trace: StepTrace) -> dict[str, Any] | None:
        if not self.omdb.enabled:
            trace.fail("SEARCH_OMDB", "OMDB API key not available")
            return None

        year = requested_year(title)
        actor = requested_actor(title)
        trace.start("SEARCH_OMDB", {"title": title, "requestedYear": year, "requestedActor": actor})

        try:
            if year or actor:
                found = await self._qualified_search(title, year, actor, trace)
                if found:
                    return found

            exact = await self.omdb.get_by_title(title)
            if exact:
                trace.success("OMDB_EXACT_SEARCH", {"title": exact.get("Title"), "year": exact.get("Year")})
                return exact
            trace.skip("OMDB_EXACT_SEARCH", {"title": title})

            for variation in search_variations(title):
                found = await self.omdb.get_by_title(variation)
                if found:
                    trace.success(
                        "OMDB_VARIATION_SEARCH",
                        {"searchedVariation": variation, "foundTitle": found.get("Title")},
                    )
                    return found

            return await self._keyword_search(title, trace)

        except _ActorMismatch as e:
            trace.skip("OMDB_ACTOR_MISMATCH", {"title": title, "requestedActor": actor, "movie": str(e)})
            return None
        except Exception as e:
            logger.warning("omdb_lookup_failed", title=title, error=str(e))
            trace.fail("SEARCH_OMDB", f"Network error for title: {title}", error=str(e))
            return None

    async def _qualified_search(
        self,
        title: str,
        year: str | None,
        actor: str | None,
        trace: StepTrace,
    ) -> dict[str, Any] | None:
        base = catalog_base_title(title)
        hits = await self.omdb.search(base)
        if year:
            wanted = int(year)
            hits = [h for h in hits if h.year == year or abs(parse_year(h.year) - wanted) <= 1]
        if not hits:
            trace.skip("OMDB_SPECIFIC_SEARCH", {"baseTitle": base, "requestedYear": year})
            return None

        details = await self.omdb.get_by_id(hits[0].imdb_id)
        if not details:
            return None
        if actor and not actor_in_cast(actor, details.get("Actors", "")):
            raise _ActorMismatch(f"{details.get('Title')} ({details.get('Year')})")

        trace.success(
            "OMDB_SPECIFIC_SEARCH",
            {"title": details.get("Title"), "year": details.get("Year"), "requestedYear": year, "requestedActor": actor},
        )
        return details

    async def _keyword_search(self, title: str, trace: StepTrace) -> dict[str, Any] | None:
        hits = await self.omdb.search(catalog_base_title(title))
        if not hits:
            trace.skip("OMDB_SEARCH_API", {"title": title, "reason": "No results"})
            return None

        first = sort_search_hits(hits, title)[0]
        details = await self.omdb.get_by_id(first.imdb_id)
        if not details:
            trace.fail("OMDB_DETAIL_FETCH", {"imdbID": first.imdb_id})
            return None

        trace.success(
            "OMDB_SEARCH_API",
            {"foundResults": len(hits), "title": details.get("Title"), "year": details.get("Year")},
        )
        return details
