"""Tests for pagination, request validation and response assembly."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from feedrank.services.personalization import (
    Article,
    PersonalizedFeedQuery,
    RankedArticle,
    SortMode,
    applied_filters,
    build_feed_response,
    format_article,
    normalize_pagination,
    paginate,
    validation_error_detail,
)

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


def ranked_list(count, scored=True):
    return [
        RankedArticle(
            article=Article(id=f"a{i:02d}", title=f"Title {i}", published_at=NOW - timedelta(hours=i)),
            relevance_score=round(1.0 - i / 100, 6) if scored else None,
        )
        for i in range(count)
    ]


# =============================================================================
# Pagination
# =============================================================================


class TestPaginate:

    def test_first_page_has_more(self):
        page = paginate(ranked_list(25), page=1, limit=10)
        assert len(page.items) == 10
        assert page.total == 25
        assert page.has_more is True

    def test_last_partial_page(self):
        page = paginate(ranked_list(25), page=3, limit=10)
        assert [item.id for item in page.items] == ["a20", "a21", "a22", "a23", "a24"]
        assert page.has_more is False

    def test_exact_boundary(self):
        page = paginate(ranked_list(20), page=2, limit=10)
        assert len(page.items) == 10
        assert page.has_more is False

    def test_past_the_end_is_empty(self):
        page = paginate(ranked_list(25), page=4, limit=10)
        assert page.items == []
        assert page.has_more is False
        assert page.total == 25

    def test_pages_reconstruct_ranked_list(self):
        ranked = ranked_list(47)
        collected = []
        page_number = 1
        while True:
            page = paginate(ranked, page=page_number, limit=10)
            collected.extend(page.items)
            if not page.has_more:
                break
            page_number += 1

        assert [item.id for item in collected] == [item.id for item in ranked]

    def test_never_exceeds_limit(self):
        page = paginate(ranked_list(300), page=1, limit=500)
        assert page.limit == 100
        assert len(page.items) == 100

    @pytest.mark.parametrize(
        "page,limit,expected",
        [(0, 20, (1, 20)), (-3, 20, (1, 20)), (2, 0, (2, 1)), (1, 101, (1, 100))],
    )
    def test_normalize_pagination(self, page, limit, expected):
        assert normalize_pagination(page, limit) == expected


# =============================================================================
# Request validation
# =============================================================================


class TestPersonalizedFeedQuery:

    def test_defaults(self):
        query = PersonalizedFeedQuery()
        assert (query.page, query.limit, query.max_age_hours) == (1, 20, 168)
        assert query.sort_by == SortMode.RELEVANCE
        assert query.include_bookmarks is False
        assert query.min_sentiment is None

    def test_string_values_parsed(self):
        query = PersonalizedFeedQuery(
            page="2",
            limit="50",
            sort_by="latest",
            include_bookmarks="true",
            min_sentiment="0.2",
            max_age_hours="24",
        )
        assert query.page == 2
        assert query.limit == 50
        assert query.sort_by == SortMode.LATEST
        assert query.include_bookmarks is True
        assert query.min_sentiment == 0.2
        assert query.max_age_hours == 24

    def test_documented_clamping(self):
        query = PersonalizedFeedQuery(page=0, limit=1000, min_sentiment=-4, max_age_hours=9999)
        assert query.page == 1
        assert query.limit == 100
        assert query.min_sentiment == -1.0
        assert query.max_age_hours == 720

    def test_lower_bounds_clamped(self):
        query = PersonalizedFeedQuery(page=-5, limit=0, min_sentiment=3, max_age_hours=0)
        assert (query.page, query.limit, query.min_sentiment, query.max_age_hours) == (1, 1, 1.0, 1)

    @pytest.mark.parametrize(
        "params",
        [
            {"page": "two"},
            {"limit": "1.5"},
            {"max_age_hours": "week"},
            {"min_sentiment": "high"},
            {"min_sentiment": "nan"},
            {"sort_by": "popular"},
            {"include_bookmarks": "maybe"},
        ],
    )
    def test_invalid_values_rejected(self, params):
        with pytest.raises(ValidationError):
            PersonalizedFeedQuery(**params)

    def test_frozen(self):
        query = PersonalizedFeedQuery()
        with pytest.raises(ValidationError):
            query.page = 3

    def test_error_detail_uses_query_names(self):
        with pytest.raises(ValidationError) as exc_info:
            PersonalizedFeedQuery(sort_by="popular")

        detail = validation_error_detail(exc_info.value.errors())
        assert detail.startswith("Invalid sortBy parameter: ")

    def test_error_detail_strips_location_prefix(self):
        errors = [{"loc": ("query", "maxAge"), "msg": "Input should be a valid integer"}]
        assert validation_error_detail(errors) == "Invalid maxAge parameter: Input should be a valid integer"


# =============================================================================
# Response assembly
# =============================================================================


class TestResponseAssembly:

    def test_applied_filters(self):
        query = PersonalizedFeedQuery(min_sentiment=0.2, max_age_hours=48, include_bookmarks=True)
        assert applied_filters(query) == ["minSentiment:0.2", "maxAge:48", "sortBy:relevance", "includeBookmarks"]

    def test_applied_filters_without_optional(self):
        assert applied_filters(PersonalizedFeedQuery()) == ["maxAge:168", "sortBy:relevance"]

    @pytest.mark.parametrize("value,expected", [(-4, "minSentiment:-1"), (1, "minSentiment:1"), (0, "minSentiment:0")])
    def test_whole_sentiment_bounds_render_without_decimal(self, value, expected):
        assert applied_filters(PersonalizedFeedQuery(min_sentiment=value))[0] == expected

    def test_format_article(self):
        item = RankedArticle(
            article=Article(
                id="a1",
                title="Chip stocks rally",
                url="https://example.com/a1",
                published_at=NOW,
                keywords=("chips",),
                related_stocks=("NVDA",),
                sentiment_score=0.7,
                sentiment_label="positive",
            ),
            relevance_score=0.8,
            is_bookmarked=True,
        )
        formatted = format_article(item)

        assert formatted.published_at == "2026-01-15T12:00:00+00:00"
        assert formatted.keywords == ["chips"]
        assert formatted.is_bookmarked is True
        assert "related_stocks" not in formatted.model_dump()

    def test_feed_uses_camel_case(self):
        page = paginate(ranked_list(3), page=1, limit=2)
        feed = build_feed_response(page, "u1", ["maxAge:168"], 12.34567)
        body = feed.model_dump(by_alias=True)

        assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "hasMore": True}
        assert body["personalization"]["userId"] == "u1"
        assert body["personalization"]["relevanceScores"] == {"a00": 1.0, "a01": 0.99}
        assert body["personalization"]["appliedFilters"] == ["maxAge:168"]
        assert body["personalization"]["processingTime"] == 12.346

    def test_latest_feed_has_no_scores(self):
        page = paginate(ranked_list(3, scored=False), page=1, limit=10)
        feed = build_feed_response(page, None, [], 1.0)
        assert feed.personalization.relevance_scores == {}
        assert feed.personalization.user_id is None
