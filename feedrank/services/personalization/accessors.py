"""
Data Accessors

Reads the personalization inputs from the store and turns raw rows into
model records. Store failures degrade to empty results so one missing
input never fails a feed request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Set, TypeVar

from ...db.supabase_client import SupabaseClient, SupabaseError
from .models import (
    Article,
    ArticleFilters,
    InteractionRecord,
    PortfolioHolding,
    UserInterest,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HISTORY_LIMIT = 1000


def _postgrest_quote(value: str) -> str:
    """Quote a value for use inside a PostgREST ``in.(...)`` list."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _isoformat_z(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class PersonalizationRepository:
    """Store reads for the personalization pipeline."""

    def __init__(self, client: SupabaseClient, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self._client = client
        self._history_limit = history_limit

    async def _select(self, table: str, **kwargs: Any) -> Optional[List[Dict[str, Any]]]:
        try:
            return await self._client.select(table, **kwargs)
        except SupabaseError as e:
            logger.warning(f"Failed to read {table}: {e}")
            return None

    @staticmethod
    def _convert(rows: Iterable[Dict[str, Any]], factory: Callable[[Dict[str, Any]], T], kind: str) -> List[T]:
        records: List[T] = []
        for row in rows:
            try:
                records.append(factory(row))
            except (TypeError, ValueError, AttributeError, OverflowError) as e:
                logger.debug(f"Skipping malformed {kind} row: {e}")
        return records

    async def fetch_interests(self, user_id: str) -> List[UserInterest]:
        """Declared interests, highest priority first."""
        rows = await self._select(
            "user_interests",
            filters={"user_id": f"eq.{user_id}"},
            order="priority_level.desc",
        )
        if not rows:
            return []
        return self._convert(rows, UserInterest.from_record, "interest")

    async def fetch_portfolio(self, user_id: str) -> List[PortfolioHolding]:
        """Holdings, largest allocation first."""
        rows = await self._select(
            "user_portfolio",
            filters={"user_id": f"eq.{user_id}"},
            order="weight.desc.nullslast",
        )
        if not rows:
            return []
        return self._convert(rows, PortfolioHolding.from_record, "portfolio")

    async def fetch_history(self, user_id: str, limit: Optional[int] = None) -> List[InteractionRecord]:
        """Interaction history, newest first. Always read fresh."""
        rows = await self._select(
            "user_news_history",
            filters={"user_id": f"eq.{user_id}"},
            order="created_at.desc",
            limit=limit or self._history_limit,
        )
        if not rows:
            return []
        return self._convert(rows, InteractionRecord.from_record, "history")

    async def fetch_articles(
        self,
        filters: ArticleFilters,
        page: int = 1,
        now: Optional[datetime] = None,
    ) -> List[Article]:
        """
        Candidate pool for ranking.

        Active articles published within ``max_age_hours``, newest first.
        ``min_sentiment`` is checked against the converted sentiment score,
        so rows that only carry a label are filtered by their mapped value.
        """
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=filters.max_age_hours)
        page = max(1, page)

        rows = await self._select(
            "news_articles",
            filters={
                "is_active": "eq.true",
                "published_at": f"gte.{_isoformat_z(cutoff)}",
            },
            order="published_at.desc",
            limit=filters.limit,
            offset=(page - 1) * filters.limit,
        )
        if not rows:
            return []

        articles = self._convert(rows, Article.from_record, "article")
        if filters.min_sentiment is not None:
            # Unlabelled rows filter as neutral (0.0)
            articles = [
                a for a in articles
                if (a.sentiment_score if a.sentiment_score is not None else 0.0) >= filters.min_sentiment
            ]
        return articles

    async def fetch_bookmarks(self, user_id: str, article_ids: Sequence[str]) -> Set[str]:
        """Ids among ``article_ids`` the user has bookmarked."""
        if not article_ids:
            return set()

        id_list = ",".join(_postgrest_quote(str(a)) for a in article_ids)
        rows = await self._select(
            "user_bookmarks",
            columns="article_id",
            filters={
                "user_id": f"eq.{user_id}",
                "article_id": f"in.({id_list})",
            },
        )
        if not rows:
            return set()
        return {str(row["article_id"]) for row in rows if row.get("article_id")}
