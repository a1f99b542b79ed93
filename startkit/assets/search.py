"""Search — scores catalog entries against a query and optional tag filter.

Query terms are regular expressions matched case-insensitively. Every term
must match at least one of an entry's fields (AND across terms):

- name match: 3
- description match: 1
- any tag match: 1 (counted once)

The total score is the sum over all terms. Tags given separately act as an
OR filter: an entry passes if any of its tags equals any filter tag,
ignoring case. Scoring never looks at where an entry came from, so the same
functions serve the registry index and installed documents.
"""

from __future__ import annotations

import re
from typing import Iterable

from startkit.assets.installed import catalog_entries
from startkit.assets.models import CatalogEntry, Category, SearchResult
from startkit.document.nodes import Document
from startkit.errors import ValidationError
from startkit.registry.models import CatalogIndex

MIN_QUERY_LENGTH = 3

NAME_WEIGHT = 3
DESCRIPTION_WEIGHT = 1
TAG_WEIGHT = 1
TAG_ONLY_SCORE = 1


def _split(raw: str) -> list[str]:
    return raw.replace(",", " ").split()


def parse_query(raw: str) -> list[str]:
    """Split a query into unique patterns, keeping the first spelling of each.

    Deduplication ignores case, but the kept pattern is not lowercased so
    case-sensitive escapes like \\S or \\D survive.
    """
    seen: set[str] = set()
    patterns: list[str] = []
    for part in _split(raw):
        key = part.lower()
        if key not in seen:
            seen.add(key)
            patterns.append(part)
    return patterns


def parse_search_terms(raw: str) -> list[str]:
    """Split a query into unique lowercase terms for plain substring filters."""
    return [p.lower() for p in parse_query(raw)]


def compile_patterns(patterns: list[str]) -> list[re.Pattern[str]]:
    """Compile every pattern case-insensitively; one bad pattern fails the whole query."""
    compiled = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern, re.IGNORECASE))
        except re.error as e:
            raise ValidationError(f"invalid search pattern '{pattern}': {e}") from e
    return compiled


def validate_query(patterns: list[str], tags: list[str]) -> None:
    """Reject empty queries, and short queries unless tags are given."""
    if not patterns and not tags:
        raise ValidationError("query or tags required")
    total = sum(len(p) for p in patterns)
    if not tags and total < MIN_QUERY_LENGTH:
        raise ValidationError(f"query must be at least {MIN_QUERY_LENGTH} characters")


def score(entry: CatalogEntry, patterns: list[re.Pattern[str]]) -> int:
    """Score an entry against all patterns; 0 if any pattern matches nothing."""
    if not patterns:
        return 0

    total = 0
    for pattern in patterns:
        term_score = 0
        if pattern.search(entry.name):
            term_score += NAME_WEIGHT
        if pattern.search(entry.description):
            term_score += DESCRIPTION_WEIGHT
        if any(pattern.search(tag) for tag in entry.tags):
            term_score += TAG_WEIGHT

        if term_score == 0:
            return 0
        total += term_score
    return total


def matches_any_tag(entry_tags: list[str], tags: list[str]) -> bool:
    """Case-insensitive exact match of any filter tag against any entry tag."""
    wanted = {t.lower() for t in tags}
    return any(t.lower() in wanted for t in entry_tags)


def match(entry: CatalogEntry, patterns: list[re.Pattern[str]], tags: list[str]) -> int:
    """Combined score for an entry, or 0 when it is excluded.

    Patterns and tags together require both; tags alone give a nominal
    score; patterns alone use the pattern score.
    """
    if patterns and tags:
        if not matches_any_tag(entry.tags, tags):
            return 0
        return score(entry, patterns)
    if tags:
        return TAG_ONLY_SCORE if matches_any_tag(entry.tags, tags) else 0
    return score(entry, patterns)


def sort_results(results: list[SearchResult]) -> list[SearchResult]:
    """Score descending, then category precedence, then name."""
    return sorted(results, key=lambda r: (-r.score, r.category.order, r.name))


def search_entries(
    entries: Iterable[CatalogEntry], query: str, tags: list[str] | None = None
) -> list[SearchResult]:
    """Validate the query and return matching entries, best first."""
    tags = [t for t in (tags or []) if t.strip()]
    patterns = parse_query(query)
    validate_query(patterns, tags)
    compiled = compile_patterns(patterns)

    results = []
    for entry in entries:
        entry_score = match(entry, compiled, tags)
        if entry_score > 0:
            results.append(SearchResult(entry=entry, score=entry_score))
    return sort_results(results)


def search_index(index: CatalogIndex, query: str, tags: list[str] | None = None) -> list[SearchResult]:
    """Search every category of a registry index snapshot."""
    return search_entries(index.entries(), query, tags)


def search_installed(
    doc: Document, category: Category, query: str, tags: list[str] | None = None
) -> list[SearchResult]:
    """Search the entries installed in one category document."""
    return search_entries(catalog_entries(doc, category), query, tags)
