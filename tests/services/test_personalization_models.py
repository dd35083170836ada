"""Tests for record conversion from store rows."""

from datetime import datetime, timezone

import pytest

from feedrank.services.personalization import (
    Article,
    ArticleFilters,
    InteractionRecord,
    PortfolioHolding,
    UserInterest,
)
from feedrank.services.personalization.models import parse_timestamp, sentiment_label_to_score


class TestArticleFromRecord:

    def test_label_maps_to_score(self):
        positive = Article.from_record({"id": "1", "sentiment_label": "Positive"})
        negative = Article.from_record({"id": "2", "sentiment": "negative"})
        neutral = Article.from_record({"id": "3", "sentiment_label": "mixed"})

        assert positive.sentiment_score == 0.7
        assert positive.sentiment_label == "positive"
        assert negative.sentiment_score == -0.3
        assert neutral.sentiment_score == 0.0

    def test_numeric_score_wins_and_is_clamped(self):
        article = Article.from_record({"id": "1", "sentiment_score": 2.5, "sentiment_label": "negative"})
        assert article.sentiment_score == 1.0

    def test_no_sentiment_information(self):
        article = Article.from_record({"id": "1"})
        assert article.sentiment_score is None
        assert article.sentiment_label == "neutral"

    def test_keywords_from_comma_string(self):
        article = Article.from_record({"id": "1", "keywords": "ai, chips ,,semis"})
        assert article.keywords == ("ai", "chips", "semis")

    def test_tags_merged_into_keywords(self):
        article = Article.from_record({"id": "1", "keywords": ["AI", "chips"], "tags": ["ai", "earnings"]})
        assert article.keywords == ("AI", "chips", "earnings")

    def test_tags_only(self):
        article = Article.from_record({"id": "1", "tags": "fed,rates"})
        assert article.keywords == ("fed", "rates")

    def test_related_stocks_upper_cased(self):
        article = Article.from_record({"id": "1", "related_stocks": ["aapl", {"code": "msft"}]})
        assert article.related_stocks == ("AAPL", "MSFT")

    def test_source_fallbacks(self):
        assert Article.from_record({"id": "1", "source_domain": "example.com"}).source == "example.com"
        assert Article.from_record({"id": "2"}).source == "Unknown"

    def test_published_at_parsed_to_utc(self):
        article = Article.from_record({"id": "1", "published_at": "2026-01-15T09:30:00Z"})
        assert article.published_at == datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)

    def test_bad_timestamp_becomes_none(self):
        assert Article.from_record({"id": "1", "published_at": "yesterday"}).published_at is None

    def test_missing_id_rejected(self):
        with pytest.raises(ValueError):
            Article.from_record({"title": "No id"})


class TestProfileRecords:

    def test_interest_priority_clamped(self):
        high = UserInterest.from_record({"user_id": "u1", "interest_category": "tech", "priority_level": 9})
        low = UserInterest.from_record({"user_id": "u1", "interest_category": "tech", "priority_level": 0})
        missing = UserInterest.from_record({"user_id": "u1", "interest_category": "tech"})

        assert high.priority == 5
        assert low.priority == 1
        assert missing.priority == 1

    def test_interest_terms_are_case_folded(self):
        interest = UserInterest.from_record({
            "interest_category": "Tech",
            "interest_keywords": ["AI", "Chips"],
        })
        assert interest.terms == frozenset({"tech", "ai", "chips"})

    def test_holding_code_upper_cased(self):
        holding = PortfolioHolding.from_record({"user_id": "u1", "stock_code": " aapl ", "weight": "12.5"})
        assert holding.stock_code == "AAPL"
        assert holding.weight == 12.5

    def test_negative_weight_dropped(self):
        holding = PortfolioHolding.from_record({"stock_code": "AAPL", "weight": -3})
        assert holding.weight is None

    def test_history_row(self):
        record = InteractionRecord.from_record({
            "user_id": "u1",
            "news_article_id": 42,
            "is_liked": True,
            "interest_match_keywords": "ai,chips",
            "interaction_metadata": {"sentiment": "positive"},
        })
        assert record.article_id == "42"
        assert record.is_positive
        assert record.matched_keywords == ("ai", "chips")
        assert record.metadata == {"sentiment": "positive"}


class TestHelpers:

    def test_fingerprint_identical_for_equal_filters(self):
        first = ArticleFilters(limit=200, max_age_hours=168, min_sentiment=0.2)
        second = ArticleFilters(limit=200, max_age_hours=168, min_sentiment=0.2)
        assert first.fingerprint() == second.fingerprint()
        assert first.fingerprint() == '{"limit":200,"maxAge":168,"minSentiment":0.2}'

    def test_fingerprint_differs_by_filter(self):
        assert (
            ArticleFilters(limit=200, max_age_hours=168).fingerprint()
            != ArticleFilters(limit=200, max_age_hours=24).fingerprint()
        )

    def test_naive_timestamp_assumed_utc(self):
        assert parse_timestamp("2026-01-15T09:30:00") == datetime(2026, 1, 15, 9, 30, tzinfo=timezone.utc)

    def test_unknown_label(self):
        assert sentiment_label_to_score(None) == 0.0
        assert sentiment_label_to_score("bullish") == 0.0
