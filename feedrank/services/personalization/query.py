"""Validated request parameters for personalized feeds."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from .models import SortMode
from .pagination import DEFAULT_LIMIT, MAX_LIMIT

DEFAULT_PAGE = 1
DEFAULT_MAX_AGE_HOURS = 168
MAX_AGE_HOURS = 720

# Model field -> query string name, for error messages
PARAM_NAMES = {
    "page": "page",
    "limit": "limit",
    "sort_by": "sortBy",
    "include_bookmarks": "includeBookmarks",
    "min_sentiment": "minSentiment",
    "max_age_hours": "maxAge",
}


class PersonalizedFeedQuery(BaseModel):
    """
    One feed request.

    Out-of-range numbers are clamped (page >= 1, limit 1-100, maxAge 1-720,
    minSentiment -1..1). Values of the wrong type raise a ValidationError.
    """

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: SortMode = SortMode.RELEVANCE
    include_bookmarks: bool = False
    min_sentiment: Optional[float] = Field(default=None, allow_inf_nan=False)
    max_age_hours: int = DEFAULT_MAX_AGE_HOURS

    class Config:
        frozen = True

    @field_validator("page")
    @classmethod
    def clamp_page(cls, v: int) -> int:
        return max(1, v)

    @field_validator("limit")
    @classmethod
    def clamp_limit(cls, v: int) -> int:
        return max(1, min(MAX_LIMIT, v))

    @field_validator("max_age_hours")
    @classmethod
    def clamp_max_age(cls, v: int) -> int:
        return max(1, min(MAX_AGE_HOURS, v))

    @field_validator("min_sentiment")
    @classmethod
    def clamp_min_sentiment(cls, v: Optional[float]) -> Optional[float]:
        if v is None:
            return None
        return max(-1.0, min(1.0, v))


def validation_error_detail(errors: Iterable[Dict[str, Any]]) -> str:
    """First validation error as ``Invalid <param> parameter: <reason>``."""
    for error in errors:
        loc = [part for part in error.get("loc", ()) if part not in ("query", "body")]
        name = str(loc[-1]) if loc else "request"
        return f"Invalid {PARAM_NAMES.get(name, name)} parameter: {error.get('msg', 'invalid value')}"
    return "Invalid request parameters"
