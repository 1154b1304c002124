"""Query classification and lexical re-ranking of search candidates.

Raw vector similarity does poorly on enumerable list content such as holiday
names, so a query is matched against a small table of classes and, when one
applies, candidates whose text carries that class's vocabulary are moved to
the front.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Sequence, TypeVar

from leavebot.retrieval.vector_index import SearchResult

logger = logging.getLogger(__name__)

_LEAVE_TYPES = (
    r"parental leave|sick leave|earned leave|casual leave|medical leave"
    r"|leave policy|leave application|leave balance"
)

HOLIDAY_QUERY_RE = re.compile(
    r"\b(holiday|holidays|festival|celebration|mandatory holiday|optional holiday|public holiday)\b",
    re.IGNORECASE,
)
LEAVE_TYPE_RE = re.compile(rf"\b({_LEAVE_TYPES})\b", re.IGNORECASE)
LEAVE_QUERY_RE = re.compile(rf"\b({_LEAVE_TYPES}|days.*leave|leave.*days)\b", re.IGNORECASE)

HOLIDAY_CONTENT_RE = re.compile(r"holiday|mandatory|optional|festival", re.IGNORECASE)
LEAVE_CONTENT_RE = re.compile(
    rf"\b({_LEAVE_TYPES}|days.*leave|leave.*days|15 days|12 days|26 weeks|30 days)\b",
    re.IGNORECASE,
)

MIN_EXPANDED_FETCH = 15


@dataclass(frozen=True, slots=True)
class QueryClass:
    name: str
    match: re.Pattern[str]
    boost: re.Pattern[str]
    exclude: re.Pattern[str] | None = None
    expand_fetch: bool = False

    def applies_to(self, query: str) -> bool:
        if not self.match.search(query):
            return False
        return self.exclude is None or not self.exclude.search(query)

    def boosts(self, content: str) -> bool:
        return bool(self.boost.search(content))


# The holiday row excludes leave-type vocabulary so that a query such as
# "parental leave on national holidays" is boosted as a leave question.
DEFAULT_CLASSES: tuple[QueryClass, ...] = (
    QueryClass(
        name="holiday",
        match=HOLIDAY_QUERY_RE,
        exclude=LEAVE_TYPE_RE,
        boost=HOLIDAY_CONTENT_RE,
        expand_fetch=True,
    ),
    QueryClass(
        name="leave_policy",
        match=LEAVE_QUERY_RE,
        boost=LEAVE_CONTENT_RE,
    ),
)

T = TypeVar("T", bound=SearchResult)


def classify(query: str, classes: Sequence[QueryClass] = DEFAULT_CLASSES) -> QueryClass | None:
    """Return the first class that applies to the query, if any."""
    for query_class in classes:
        if query_class.applies_to(query):
            return query_class
    return None


def fetch_size(top_k: int, query_class: QueryClass | None) -> int:
    if query_class is not None and query_class.expand_fetch:
        return max(top_k * 2, MIN_EXPANDED_FETCH)
    return top_k


def rerank(candidates: Sequence[T], query_class: QueryClass | None) -> list[T]:
    """Stable-sort boosted candidates first, then by ascending distance."""
    if query_class is None:
        return list(candidates)
    ranked = sorted(
        candidates,
        key=lambda item: (not query_class.boosts(item.content), item.distance),
    )
    logger.debug(
        "Re-ranked %s candidates for %s query (%s boosted)",
        len(ranked),
        query_class.name,
        sum(1 for item in ranked if query_class.boosts(item.content)),
    )
    return ranked


__all__ = [
    "QueryClass",
    "DEFAULT_CLASSES",
    "MIN_EXPANDED_FETCH",
    "classify",
    "fetch_size",
    "rerank",
]
