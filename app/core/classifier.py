"""Query classifier: decides whether a message is general chat or a movie lookup.

Pure pattern matching over the trimmed, lower-cased query. The rule tables
are ordered and evaluated top to bottom; the first matching stage wins:

1. explicit lookups ("how is X", "tell me about X", "recommend X", bare
   titles, "X movie")
2. comparisons and other conversational follow-ups
3. bare affirmative / negative replies
4. recommendation requests without a specific movie in them
5. movie context, greetings and the short-message heuristic

Bare-title shaped rules in stage 1 are *guarded*: they do not fire when the
query reads as conversational (it would otherwise swallow "yes" or
"which is better").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from app.core.titles import contains_movie_keywords, is_greeting
from app.schemas.memory import ConversationMemory

SHORT_QUERY_CHARS = 50


class QueryKind(StrEnum):
    MOVIE_LOOKUP = "movie_lookup"
    MOVIE_CONTEXT = "movie_context"
    COMPARISON = "comparison"
    SIMPLE_RESPONSE = "simple_response"
    PREFERENCE = "preference"
    GENERAL_RECOMMENDATION = "general_recommendation"
    SIMILAR_RECOMMENDATION = "similar_recommendation"
    FOLLOW_UP = "follow_up"
    GREETING = "greeting"
    SMALL_TALK = "small_talk"


@dataclass(frozen=True)
class Rule:
    pattern: re.Pattern[str]
    kind: QueryKind
    guarded: bool = False

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


@dataclass(frozen=True)
class Classification:
    is_general: bool
    kind: QueryKind
    reason: str
    matched_pattern: str | None = None

    def as_details(self) -> dict:
        return {
            "isGeneral": self.is_general,
            "subtype": self.kind.value,
            "reason": self.reason,
            "matchedPattern": self.matched_pattern,
        }


def _rule(pattern: str, kind: QueryKind, guarded: bool = False) -> Rule:
    return Rule(re.compile(pattern, re.IGNORECASE), kind, guarded)


_ARTICLE_LOOKAHEAD = r"(?!(?:a|an|some|any)\b)"

_GENRES = r"good|great|best|slow\s+burn|action|thriller|drama|comedy|horror|sci-fi|romance|mystery"

# Words that open an open-ended request rather than a title
_REQUEST_WORDS = (
    r"(?:similar|something|anything|more|like|me|us|a|an|some|any|other|another|"
    rf"{_GENRES}|scary|funny|romantic|family|animated|better|different|underrated|"
    r"hidden\s+gem|classic|recent|new|old|movies?|films?)"
)

# ── Stage 1: explicit lookups ────────────────────────────────────────

LOOKUP_RULES: tuple[Rule, ...] = (
    _rule(r"^(?:how\s+is|how\s+was|how's|hows)\s+[a-z0-9]", QueryKind.MOVIE_LOOKUP),
    _rule(
        rf"^(?:what\s+about|how\s+about|tell\s+me\s+about|about)\s+{_ARTICLE_LOOKAHEAD}[a-z0-9][a-z0-9\s:'-]*\??$",
        QueryKind.MOVIE_LOOKUP,
    ),
    _rule(r"^(?:give\s+recommendation\s+for|review)\s+[a-z0-9]", QueryKind.MOVIE_LOOKUP),
    _rule(
        rf"^(?:recommend|suggest)\s+(?!{_REQUEST_WORDS}\b)(?!.*\s(?:or|vs\.?|versus)\s)"
        r"(?!.*\b(?:movies|films)\b)[a-z0-9][a-z0-9\s:'-]*\??$",
        QueryKind.MOVIE_LOOKUP,
    ),
    _rule(r"^[a-z][a-z\s:'-]+$", QueryKind.MOVIE_LOOKUP, guarded=True),
    _rule(r"(?:movie|film)\s+[a-z]", QueryKind.MOVIE_LOOKUP, guarded=True),
    _rule(r"[a-z]+\s+(?:movie|film)$", QueryKind.MOVIE_LOOKUP, guarded=True),
)

# ── Stage 2: comparisons and conversational follow-ups ───────────────

COMPARISON_RULES: tuple[Rule, ...] = (
    _rule(r"^(?:which\s+one\s+is\s+better|which\s+is\s+better|what's\s+better|whats\s+better)", QueryKind.COMPARISON),
    _rule(r"\bwhich\s+(?:one\s+)?is\s+better\b", QueryKind.COMPARISON),
    _rule(r"^(?:so\s+this\s+is\s+better|is\s+this\s+better|better\s+than)", QueryKind.PREFERENCE),
    _rule(r"^(?:which\s+one|which\s+movie|what\s+about)\b", QueryKind.COMPARISON),
    _rule(r"^(?:compare|comparison|vs|versus)\b", QueryKind.COMPARISON),
    _rule(r"[a-z0-9]\s+(?:vs\.?|versus)\s+[a-z0-9]", QueryKind.COMPARISON),
    _rule(r"^(?:what\s+do\s+you\s+think\s+about|your\s+opinion|do\s+you\s+prefer)", QueryKind.PREFERENCE),
    _rule(r"^(?:recommend|suggest)\s+(?:similar|something\s+similar|more\s+like)", QueryKind.SIMILAR_RECOMMENDATION),
    _rule(
        r"^(?:can\s+you\s+recommend|could\s+you\s+recommend|please\s+recommend)\s+(?:similar|something\s+similar)",
        QueryKind.SIMILAR_RECOMMENDATION,
    ),
    _rule(
        r"^(?:can\s+you\s+recommend|could\s+you\s+recommend|please\s+recommend)\s+something",
        QueryKind.GENERAL_RECOMMENDATION,
    ),
    _rule(r"""^[a-z\s'"-]+\s+or\s+[a-z\s'"-]+\??$""", QueryKind.COMPARISON),
    _rule(r"^(?:that\s+one|this\s+one|the\s+first\s+one|the\s+second\s+one|that\s+movie|this\s+movie)", QueryKind.FOLLOW_UP),
    _rule(r"^(?:more\s+about|tell\s+me\s+more\s+about|what\s+else\s+about)", QueryKind.FOLLOW_UP),
)

# ── Stage 3: bare replies ────────────────────────────────────────────

AFFIRMATIVE_RULE = _rule(r"^(?:yes|yeah|yep|sure|no|nope|not\s+really|maybe)[.!]?$", QueryKind.SIMPLE_RESPONSE)

# ── Stage 4: recommendation requests ─────────────────────────────────

RECOMMENDATION_RULES: tuple[Rule, ...] = (
    _rule(r"^(?:recommend|suggest|any\s+recommendations|what\s+should\s+i\s+watch)(?!\s+similar|\s+like)", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:recommend\s+something|suggest\s+something|any\s+good\s+movies|something\s+different|better\s+movie)$", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:give\s+me|show\s+me|find\s+me)\s+(?:a|some|any)?\s*(?:good|better|different)?\s*(?:movie|film)", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:give\s+me|show\s+me|find\s+me)\s+(?:some|any)?\s*(?:recommendations|suggestions)", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:can\s+you\s+recommend|could\s+you\s+recommend|please\s+recommend)\s*(?:similar|something|a\s+movie)", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:recommend|suggest)\s+(?:similar|something\s+similar)\s*(?:movie|film)?", QueryKind.SIMILAR_RECOMMENDATION),
    _rule(rf"^(?:suggest|recommend)\s+(?:a|an|some)?\s*(?:{_GENRES})\s*(?:movie|film)", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:suggest|recommend)\s+(?:a|an|some)?\s*(?:slow\s+burn|underrated|hidden\s+gem|classic|recent|new|old)\s*(?:movie|film)?", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:any\s+good|what\s+are\s+some\s+good|can\s+you\s+suggest|what\s+about\s+some)\b", QueryKind.GENERAL_RECOMMENDATION),
    _rule(r"^(?:what\s+about|how\s+about)\s+(?:a|an|some)?\s*(?:good|slow\s+burn|action|thriller|drama|comedy)?\s*(?:movie|film)", QueryKind.GENERAL_RECOMMENDATION),
)

# ── Stage 5: movie context and small talk ────────────────────────────

_COUNTRY = r"korean|japanese|french|italian|spanish|chinese"

MOVIE_CONTEXT_RULES: tuple[Rule, ...] = tuple(
    _rule(pattern, QueryKind.MOVIE_CONTEXT)
    for pattern in (
        r"^(?:no|nope|not\s+that|different|wrong|another)[,\s]+[a-z]",
        r"(?:recent|latest|newer|new\s+one|newest)\s+[a-z]",
        r"(?:original|first|older|classic)\s+[a-z]",
        r"(?:that\s+movie|that\s+film|this\s+movie|this\s+film)",
        r"\b(?:for|about)\s+.+",
        rf"(?:{_COUNTRY}).*(?:movie|film)",
        rf"(?:movie|film).*(?:{_COUNTRY})",
        r"20\d{2}",
        r"(?:sequel|its\s+sequel|part\s+2|part\s+ii|part\s+two)\s+[a-z]",
        r"^[a-z][a-z\s:'-]+\s+(?:19\d{2}|20\d{2})$",
        r"^(?:it's|its)\s+(?:part\s+two|part\s+2|part\s+ii|sequel)",
        r"(?:part\s+two|part\s+2|part\s+ii)$",
        r"(?:glass\s+onion|onion\s+glass)",
        r"\b(?:the|its|a|any|next)\s+sequels?\b",
    )
)

SMALL_TALK_RULES: tuple[Rule, ...] = tuple(
    _rule(pattern, QueryKind.SMALL_TALK)
    for pattern in (
        r"^(?:hi|hello|hey|thanks|thank\s+you|ok|okay|cool|nice|great|awesome)[.!]*$",
        r"^(?:what\s+do\s+you\s+think|any\s+other|anything\s+else|what\s+about|how\s+about)",
        r"^(?:tell\s+me\s+more|more\s+info|details|explain)",
    )
)

TITLE_SHAPE = re.compile(r"^[a-z][a-z\s:'-]+(?:\s\d{4})?$", re.IGNORECASE)
_ALTERNATIVE = re.compile(r"\s(?:or|vs\.?|versus)\s", re.IGNORECASE)


def _first_match(rules: tuple[Rule, ...], text: str) -> Rule | None:
    for rule in rules:
        if rule.matches(text):
            return rule
    return None


def looks_conversational(text: str) -> bool:
    """True when a bare-title shaped query is really chat ("yes", "thanks", "A or B")."""
    return (
        is_greeting(text)
        or _ALTERNATIVE.search(text) is not None
        or AFFIRMATIVE_RULE.matches(text)
        or _first_match(COMPARISON_RULES, text) is not None
        or _first_match(RECOMMENDATION_RULES, text) is not None
        or _first_match(SMALL_TALK_RULES, text) is not None
    )


def looks_like_title(text: str) -> bool:
    return len(text) > 3 and TITLE_SHAPE.match(text) is not None


def classify(query: str, memory: ConversationMemory | None = None) -> Classification:
    """Classify a user query as general conversation or a movie lookup.

    Only the query text is read; ``memory`` is accepted for the pipeline's
    calling convention and no rule consults it.
    """
    text = query.strip().lower()
    conversational = looks_conversational(text)

    for rule in LOOKUP_RULES:
        if rule.guarded and conversational:
            continue
        if rule.matches(text):
            return Classification(False, rule.kind, "movie_query_detected", rule.pattern.pattern)

    rule = _first_match(COMPARISON_RULES, text)
    if rule:
        return Classification(True, rule.kind, "comparison_request", rule.pattern.pattern)

    if AFFIRMATIVE_RULE.matches(text):
        return Classification(True, QueryKind.SIMPLE_RESPONSE, "contextual_response", AFFIRMATIVE_RULE.pattern.pattern)

    recommendation = _first_match(RECOMMENDATION_RULES, text)
    context = _first_match(MOVIE_CONTEXT_RULES, text)
    if recommendation and not context:
        return Classification(
            True, recommendation.kind, "general_recommendation_request", recommendation.pattern.pattern
        )

    if context:
        return Classification(False, QueryKind.MOVIE_CONTEXT, "movie_context_detected", context.pattern.pattern)

    if is_greeting(text):
        return Classification(True, QueryKind.GREETING, "greeting")

    small_talk = _first_match(SMALL_TALK_RULES, text)
    if small_talk:
        return Classification(True, QueryKind.SMALL_TALK, "small_talk", small_talk.pattern.pattern)

    if looks_like_title(text):
        return Classification(False, QueryKind.MOVIE_LOOKUP, "movie_title_pattern", TITLE_SHAPE.pattern)

    if len(text) < SHORT_QUERY_CHARS and not contains_movie_keywords(text):
        return Classification(True, QueryKind.SMALL_TALK, "short_without_movie_keywords")

    return Classification(False, QueryKind.MOVIE_LOOKUP, "default_movie_query")
