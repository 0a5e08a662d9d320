"""Title resolver: turns a movie query into candidate titles.

Strategies, in order, stopping at the first that decides:

1. direct bypass: "<title> <year>" / "<title> with <actor>" is used verbatim
2. contextual rules against the conversation's last discussed movie
3. model-assisted extraction (may answer with a sentinel label instead)
4. regex fallback over common phrasings, then the cleaned query itself

A strategy can also *defer*: the query is about the conversation rather
than a lookup (sentinel label, "recommend something like it"), and the
caller should answer conversationally instead of asking for a title.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from app.config import get_settings
from app.core.franchises import COUNTRIES, SEQUEL_MAP, find_franchise
from app.core.logging import get_logger
from app.core.titles import base_title, generic_sequels, is_common_word
from app.core.trace import StepStatus, StepTrace
from app.schemas.memory import ConversationMemory
from app.services.prompts import SENTINEL_LABELS, TITLE_EXTRACTION_PROMPT

if TYPE_CHECKING:
    from app.services.llm import LLMClient

logger = get_logger(__name__)
settings = get_settings()

EXTRACTION_HISTORY_MESSAGES = 4
EXTRACTION_HISTORY_MOVIES = 2


class ResolutionSource(StrEnum):
    DIRECT = "direct_bypass"
    CONTEXTUAL = "contextual"
    MODEL = "model"
    REGEX = "regex"
    NONE = "none"


@dataclass
class Resolution:
    titles: list[str] = field(default_factory=list)
    source: ResolutionSource = ResolutionSource.NONE
    # Sentinel label or contextual intent when the query should go to conversation
    deferred: str | None = None
    detail: str | None = None

    @property
    def is_deferred(self) -> bool:
        return self.deferred is not None


# ── Direct bypass ────────────────────────────────────────────────────

DIRECT_SPECIFIC = re.compile(
    r"^[a-z][a-z\s:'-]*\s+(?:19\d{2}|20\d{2}|with\s+[a-z\s]+)$",
    re.IGNORECASE,
)


# ── Contextual rules ─────────────────────────────────────────────────


class ContextCategory(StrEnum):
    SEQUEL = "sequel"
    SPECIFIC_MENTION = "specific_movie_mention"
    RECOMMENDATION = "recommendation"
    COMPARISON = "comparison"
    CLARIFICATION = "clarification"
    DIRECT_REFERENCE = "direct_reference"
    RECENT = "recent"
    ORIGINAL = "original"
    YEAR_SPECIFIC = "year_specific"
    COUNTRY_SPECIFIC = "country_specific"


def _phrases(*phrases: str) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(p).replace(r"\ ", r"\s+") for p in phrases)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)


# Evaluated top to bottom; phrases match on word boundaries only
CONTEXT_RULES: tuple[tuple[ContextCategory, re.Pattern[str]], ...] = (
    (ContextCategory.SEQUEL, _phrases(
        "sequel", "sequels", "follow up", "follow-up", "next one", "part 2", "part ii",
        "part two", "second one", "second part",
    )),
    (ContextCategory.SPECIFIC_MENTION, _phrases("glass onion", "onion glass")),
    (ContextCategory.RECOMMENDATION, _phrases(
        "recommendation", "recommend", "suggest", "similar", "like that", "different",
        "another", "else",
    )),
    (ContextCategory.COMPARISON, _phrases("better", "compare", "vs", "versus")),
    (ContextCategory.CLARIFICATION, _phrases("no", "not that", "wrong", "korean")),
    (ContextCategory.DIRECT_REFERENCE, _phrases("that movie", "that film", "it", "this movie", "this film")),
    (ContextCategory.RECENT, _phrases("recent", "latest", "newer", "new one", "newest")),
    (ContextCategory.ORIGINAL, _phrases("original", "first", "older", "classic")),
    (ContextCategory.YEAR_SPECIFIC, re.compile(r"\b(?:19|20)\d{2}\b")),
    (ContextCategory.COUNTRY_SPECIFIC, _phrases(*COUNTRIES)),
)

# "Batman Returns", "Dune 2021" mentioned while another movie is in context
DIRECT_SPECIFICATION = re.compile(
    r"([a-z][a-z\s:'-]+(?:\s+\d{4}|\s+returns|\s+rises|\s+begins))",
    re.IGNORECASE,
)
_LEAD_IN = re.compile(
    r"^(?:how\s+(?:is|was|about)|how's|hows|what\s+about|tell\s+me\s+about|about|"
    r"give\s+recommendation\s+for|review)\s+",
    re.IGNORECASE,
)
_SPECIFIER_SUFFIX = re.compile(r"\s+(?:\d{4}|returns|rises|begins)$", re.IGNORECASE)
_WANTS_OTHER = re.compile(r"\b(?:different|another|else)\b", re.IGNORECASE)
_WANTS_SEQUEL = CONTEXT_RULES[0][1]
_PUNCT = re.compile(r"[^\w\s]")


def _title_key(title: str) -> str:
    return " ".join(_PUNCT.sub("", title.lower()).split())


@dataclass
class ContextualResult:
    category: str
    title: str | None = None
    suppressed: bool = False


def next_sequel(memory: ConversationMemory) -> str | None:
    """Sequel of the last discussed movie, skipping entries already discussed."""
    last = memory.last_movie
    if last is None:
        return None
    base = base_title(last.title)
    discussed = {_title_key(t) for t in memory.discussed_titles()}

    franchise = find_franchise(base, SEQUEL_MAP)
    if franchise:
        _, sequels = franchise
        for sequel in sequels:
            if _title_key(sequel) not in discussed:
                return sequel
        return sequels[0]

    return generic_sequels(base or last.title, last.title)[0]


def resolve_contextual(query: str, memory: ConversationMemory) -> ContextualResult | None:
    """Resolve a query against the last discussed movie.

    Returns None when no contextual rule applies, a result with a title
    when one does, or a suppressed result when the user wants advice
    rather than a lookup.
    """
    last = memory.last_movie
    if last is None:
        return None

    text = query.strip()
    lowered = text.lower()
    last_key = last.title.lower()

    direct = DIRECT_SPECIFICATION.search(text)
    if direct and len(direct.group(1)) > 3:
        candidate = _LEAD_IN.sub("", direct.group(1).strip()).strip()
        root = _SPECIFIER_SUFFIX.sub("", candidate)
        if _usable(root) and candidate.lower() != last_key:
            return ContextualResult("direct_movie_specification", title=candidate)

    if last_key in lowered:
        if _WANTS_OTHER.search(lowered):
            return None
        if not _WANTS_SEQUEL.search(lowered):
            return ContextualResult("direct_movie_mention", title=last.title)

    base = base_title(last.title)
    for category, pattern in CONTEXT_RULES:
        match = pattern.search(lowered)
        if not match:
            continue

        if category == ContextCategory.SEQUEL:
            return ContextualResult(category, title=next_sequel(memory))
        if category == ContextCategory.SPECIFIC_MENTION:
            return ContextualResult(category, title="Glass Onion")
        if category in (ContextCategory.RECOMMENDATION, ContextCategory.COMPARISON):
            return ContextualResult(category, suppressed=True)
        if category == ContextCategory.CLARIFICATION:
            if "korean" in lowered:
                return ContextualResult(category, title=f"{base} Korean")
            return ContextualResult(category, title=base)
        if category == ContextCategory.DIRECT_REFERENCE:
            return ContextualResult(category, title=last.title)
        if category in (ContextCategory.RECENT, ContextCategory.ORIGINAL):
            return ContextualResult(category, title=base)
        if category == ContextCategory.YEAR_SPECIFIC:
            return ContextualResult(category, title=f"{base} {match.group(0)}")
        if category == ContextCategory.COUNTRY_SPECIFIC:
            return ContextualResult(category, title=f"{base} {match.group(0).lower()}")

    return None


# ── Regex fallback ───────────────────────────────────────────────────

_TITLE_CHARS = r"[a-z0-9\s&:'-]"

FALLBACK_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("how_is", re.compile(rf"^(?:how\s+is|how\s+was|how's|hows)\s+({_TITLE_CHARS}+?)\s*\??$", re.IGNORECASE)),
    ("recommend", re.compile(
        rf"^(?:give\s+recommendation\s+for|recommend|review)\s+({_TITLE_CHARS}+?)\s*\??$",
        re.IGNORECASE,
    )),
    ("about", re.compile(
        rf"^(?:what\s+about|how\s+about|tell\s+me\s+about|about)\s+({_TITLE_CHARS}+?)\s*\??$",
        re.IGNORECASE,
    )),
    ("quoted", re.compile(r"[\"“”]([^\"“”]+)[\"“”]")),
    ("title_year", re.compile(r"\b([A-Z][a-zA-Z\s&:'-]*?\s+(?:19|20)\d{2})\b")),
    ("country", re.compile(
        rf"((?:[a-z]+\s+)*?[a-z]+\s+(?:{'|'.join(COUNTRIES)})|(?:{'|'.join(COUNTRIES)})(?:\s+[a-z]+)+)",
        re.IGNORECASE,
    )),
)

_MOVIE_WORD = re.compile(r"\b(?:movie|film)\b", re.IGNORECASE)
_TRAILING_PUNCT = re.compile(r"[?!.]+$")


def _clean(candidate: str) -> str:
    candidate = _MOVIE_WORD.sub("", candidate.replace('"', ""))
    candidate = _TRAILING_PUNCT.sub("", candidate.strip())
    return " ".join(candidate.split())


def _usable(candidate: str) -> bool:
    return len(candidate) > 2 and not is_common_word(candidate)


def extract_titles_with_regex(query: str) -> tuple[list[str], str | None]:
    """Pull candidate titles out of common phrasings.

    Returns the titles and the name of the pattern that produced them.
    """
    text = query.strip()
    for name, pattern in FALLBACK_PATTERNS:
        titles = [_clean(m) for m in pattern.findall(text)]
        titles = [t for t in titles if _usable(t)]
        if titles:
            return titles, name

    fallback = _clean(text)
    if not _usable(fallback):
        return [], None
    return [fallback], "cleaned_query"


# ── Model-assisted extraction ────────────────────────────────────────


def build_extraction_context(memory: ConversationMemory) -> str:
    recent = memory.recent_messages(EXTRACTION_HISTORY_MESSAGES)
    if not recent:
        return ""
    context = "\n".join(f"{m.role}: {m.content}" for m in recent)
    movies = memory.discussed_movies[-EXTRACTION_HISTORY_MOVIES:]
    if movies:
        context += "\n\nRecently discussed: " + ", ".join(
            f"{m.title} ({m.genre or 'Unknown'})" for m in movies
        )
    return context


class TitleResolver:
    def __init__(self, llm: LLMClient | None = None) -> None:
        self.llm = llm

    async def resolve(
        self,
        query: str,
        memory: ConversationMemory,
        trace: StepTrace,
    ) -> Resolution:
        text = query.strip()
        trace.start("EXTRACT_MOVIE_TITLES", {"query": text})

        if DIRECT_SPECIFIC.match(text):
            title = _LEAD_IN.sub("", text)
            trace.success("EXTRACT_MOVIE_TITLES", {"source": ResolutionSource.DIRECT.value, "titles": [title]})
            return Resolution([title], ResolutionSource.DIRECT)

        resolution = self._resolve_contextual(text, memory, trace)
        if resolution is not None:
            return resolution

        resolution = await self._resolve_with_model(text, memory, trace)
        if resolution is not None:
            return resolution

        titles, pattern = extract_titles_with_regex(text)
        if titles:
            trace.success("EXTRACT_MOVIE_TITLES", {"source": ResolutionSource.REGEX.value, "titles": titles, "pattern": pattern})
            return Resolution(titles, ResolutionSource.REGEX, detail=pattern)

        trace.fail("EXTRACT_MOVIE_TITLES", {"source": ResolutionSource.REGEX.value, "titles": []})
        return Resolution()

    def _resolve_contextual(
        self,
        text: str,
        memory: ConversationMemory,
        trace: StepTrace,
    ) -> Resolution | None:
        if not memory.discussed_movies:
            trace.skip("HANDLE_CONTEXTUAL_QUERIES", "No conversation history")
            return None

        result = resolve_contextual(text, memory)
        if result is None:
            trace.skip("HANDLE_CONTEXTUAL_QUERIES", "No contextual patterns matched")
            return None

        details = {
            "type": result.category,
            "originalMovie": memory.last_movie.title,
            "returnedTitle": result.title,
        }
        if result.suppressed:
            trace.skip("HANDLE_CONTEXTUAL_QUERIES", {**details, "reason": "advice_requested"})
            return Resolution(source=ResolutionSource.CONTEXTUAL, deferred=result.category)
        if not result.title:
            trace.skip("HANDLE_CONTEXTUAL_QUERIES", details)
            return None

        trace.success("HANDLE_CONTEXTUAL_QUERIES", details)
        return Resolution([result.title], ResolutionSource.CONTEXTUAL, detail=result.category)

    async def _resolve_with_model(
        self,
        text: str,
        memory: ConversationMemory,
        trace: StepTrace,
    ) -> Resolution | None:
        if self.llm is None:
            trace.skip("LLM_TITLE_EXTRACTION", "No language model configured")
            return None

        prompt = TITLE_EXTRACTION_PROMPT.format(
            context=build_extraction_context(memory),
            query=text,
        )
        try:
            completion = await self.llm.complete(
                [{"role": "user", "content": prompt}],
                temperature=settings.title_extraction_temperature,
                max_tokens=settings.title_extraction_max_tokens,
                step="title_extraction",
            )
        except Exception as e:
            logger.warning("title_extraction_failed", error=str(e))
            trace.fail("LLM_TITLE_EXTRACTION", "Model extraction failed", error=str(e))
            return None

        memory.add_tokens(completion.tokens_used)
        extracted = completion.text.strip().strip("\"'").strip()

        if extracted in SENTINEL_LABELS:
            trace.log(
                "LLM_TITLE_EXTRACTION",
                StepStatus.SKIP,
                {"responseType": extracted, "reason": "Not a movie search query"},
                tokens_used=completion.tokens_used,
            )
            return Resolution(source=ResolutionSource.MODEL, deferred=extracted)

        if extracted and extracted.upper() != "N/A":
            trace.success(
                "LLM_TITLE_EXTRACTION",
                {"titles": [extracted]},
                tokens_used=completion.tokens_used,
            )
            return Resolution([extracted], ResolutionSource.MODEL)

        trace.skip("LLM_TITLE_EXTRACTION", "Empty extraction")
        return None
