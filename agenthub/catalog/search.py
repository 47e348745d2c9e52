# -*- coding: utf-8 -*-
"""
Catalog Search - Filtered, full-text and paginated artifact queries.

Queries are assembled from a typed predicate builder: every filter value
is a bound parameter and column names come from a fixed whitelist, so no
user-supplied text ends up in SQL. Free-text queries go through the FTS5
index; results in that mode are re-ranked by a relevance score computed
alongside (never stored on) the artifacts.

Author
------
Agent Hub contributors

License
-------
MIT License
Copyright (c) 2026 Agent Hub contributors
See LICENSE file for full text.

Created
-------
2026-09-18

Modified
--------
2026-10-11
"""

# Standard library
import math
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

# Agent Hub internal
from agenthub.catalog.database import CatalogStore
from agenthub.catalog.errors import ValidationError
from agenthub.catalog.models import (
    Artifact,
    SearchHit,
    SearchQuery,
    SearchResult,
    utc_now,
)

DEFAULT_PAGE_SIZE = 50

SORT_OPTIONS = ('relevance', 'rating', 'downloads', 'updated')

# Scalar columns usable with Predicate.in_
_IN_COLUMNS = ('type', 'category', 'difficulty', 'catalog_id')
# JSON array columns usable with Predicate.contains_any
_ARRAY_COLUMNS = ('language', 'framework', 'tags')

_ORDER_BY = {
    'rating': "json_extract(a.metadata, '$.rating') DESC NULLS LAST, a.name ASC",
    'downloads': "json_extract(a.metadata, '$.downloads') DESC NULLS LAST, a.name ASC",
    'updated': "json_extract(a.metadata, '$.lastUpdated') DESC NULLS LAST, a.name ASC",
    'relevance': "a.name ASC",
}


def _escape_like(value: str) -> str:
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def tokenize(text: str) -> List[str]:
    """Split free text on whitespace, dropping empty tokens."""
    return [t for t in text.split() if t]


def build_match_expression(text: str) -> Optional[str]:
    """FTS5 expression ORing each token as a quoted prefix term.

    Returns None when the text has no tokens.
    """
    tokens = tokenize(text)
    if not tokens:
        return None
    return " OR ".join('"{}"*'.format(t.replace('"', '""')) for t in tokens)


class Predicate:
    """AND of parameterized WHERE clauses over the ``a`` (artifacts) alias."""

    def __init__(self) -> None:
        self._clauses: List[str] = []
        self.params: List[object] = []

    def in_(self, column: str, values: Sequence[str]) -> 'Predicate':
        """``column IN (...)``; no-op for an empty list."""
        if column not in _IN_COLUMNS:
            raise ValueError(f"Column not filterable: {column!r}")
        if values:
            placeholders = ", ".join("?" for _ in values)
            self._clauses.append(f"a.{column} IN ({placeholders})")
            self.params.extend(values)
        return self

    def contains_any(self, column: str, values: Sequence[str]) -> 'Predicate':
        """Any of the values appears as an element of a JSON array column."""
        if column not in _ARRAY_COLUMNS:
            raise ValueError(f"Column not filterable: {column!r}")
        if values:
            ors = " OR ".join(f"a.{column} LIKE ? ESCAPE '\\'" for _ in values)
            self._clauses.append(f"({ors})")
            # Elements are serialized as JSON strings, hence the quotes.
            self.params.extend(f'%"{_escape_like(v)}"%' for v in values)
        return self

    def match(self, expression: str) -> 'Predicate':
        self._clauses.append("artifacts_fts MATCH ?")
        self.params.append(expression)
        return self

    def sql(self) -> str:
        return " AND ".join(self._clauses) if self._clauses else "1=1"


def _filter_predicate(query: SearchQuery) -> Predicate:
    return (
        Predicate()
        .in_('type', query.type)
        .in_('category', query.category)
        .in_('difficulty', query.difficulty)
        .in_('catalog_id', query.catalog)
        .contains_any('language', query.language)
        .contains_any('framework', query.framework)
        .contains_any('tags', query.tags)
    )


def score_artifact(
    artifact: Artifact,
    query: str,
    now: Optional[datetime] = None,
) -> float:
    """Relevance of an artifact to a free-text query.

    +10 if the name contains the query, +5 per tag containing any query
    token, +3 if the description contains the query, +2 per keyword
    containing any token, plus log10(downloads), the rating, and a
    recency boost that decays from 5 to 0 over 150 days.
    """
    now = now or utc_now()
    query_lower = query.lower()
    terms = tokenize(query_lower)
    score = 0.0

    if query_lower in artifact.name.lower():
        score += 10
    score += 5 * sum(
        1 for tag in artifact.tags if any(t in tag.lower() for t in terms)
    )
    if query_lower in artifact.description.lower():
        score += 3
    score += 2 * sum(
        1 for kw in artifact.keywords if any(t in kw.lower() for t in terms)
    )

    downloads = artifact.downloads
    if downloads and downloads > 0:
        score += math.log10(downloads)
    rating = artifact.rating
    if rating:
        score += rating
    updated = artifact.last_updated
    if updated is not None:
        days_since = (now - updated).total_seconds() / 86400
        score += max(0.0, 5 - days_since / 30)
    return score


def rank(
    artifacts: Sequence[Artifact],
    query: str,
    now: Optional[datetime] = None,
) -> List[Tuple[Artifact, float]]:
    """Pair artifacts with their relevance score, best first (stable)."""
    scored = [(a, score_artifact(a, query, now)) for a in artifacts]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored


class SearchEngine:
    """Answers search queries against the catalog store.

    Parameters
    ----------
    store : CatalogStore
    """

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def search(self, query: Optional[SearchQuery] = None) -> SearchResult:
        """Run a search.

        Parameters
        ----------
        query : Optional[SearchQuery]
            Filters, free text, sort and page. All artifacts when None.

        Returns
        -------
        SearchResult
            One page of hits with ``total`` counted across all pages.

        Raises
        ------
        ValidationError
            On an unknown sort option or a page/page size below 1.
        """
        query = query or SearchQuery()
        sort_by = query.sort_by or 'relevance'
        if sort_by not in SORT_OPTIONS:
            raise ValidationError(f"Unknown sort option: {sort_by!r}")
        page = query.page or 1
        page_size = query.page_size or DEFAULT_PAGE_SIZE
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be at least 1")
        offset = (page - 1) * page_size

        predicate = _filter_predicate(query)
        expression = build_match_expression(query.query) if query.query else None
        if expression is not None:
            predicate.match(expression)
            source = (
                "artifacts a INNER JOIN artifacts_fts "
                "ON a.row_id = artifacts_fts.rowid"
            )
        else:
            source = "artifacts a"

        where = predicate.sql()
        # Count, page and installed flags must all see the same snapshot.
        with self._store.read():
            count_row = self._store.fetch_one(
                f"SELECT COUNT(*) AS count FROM {source} WHERE {where}",
                predicate.params,
            )
            total = count_row['count']

            rows = self._store.fetch_all(
                f"SELECT a.* FROM {source} WHERE {where} "
                f"ORDER BY {_ORDER_BY[sort_by]}, a.catalog_id ASC, a.id ASC "
                f"LIMIT ? OFFSET ?",
                list(predicate.params) + [page_size, offset],
            )
            artifacts = [Artifact.from_row(r) for r in rows]
            installed = self._store.installed_keys([a.key for a in artifacts])

        if expression is not None and sort_by == 'relevance':
            artifacts = [a for a, _ in rank(artifacts, query.query)]

        hits = [SearchHit(artifact=a, installed=a.key in installed) for a in artifacts]

        return SearchResult(
            hits=hits,
            total=total,
            page=page,
            page_size=page_size,
            has_more=offset + len(hits) < total,
        )

    def get_artifact(self, catalog_id: str, artifact_id: str) -> Optional[Artifact]:
        return self._store.get_artifact(catalog_id, artifact_id)

    def get_all_categories(self) -> List[str]:
        rows = self._store.fetch_all(
            "SELECT DISTINCT category FROM artifacts ORDER BY category"
        )
        return [r['category'] for r in rows]

    def get_all_tags(self) -> List[str]:
        """Every tag used by any artifact, sorted."""
        rows = self._store.fetch_all(
            "SELECT DISTINCT value FROM artifacts, json_each(artifacts.tags) "
            "ORDER BY value"
        )
        return [r['value'] for r in rows]
