"""
Personalization Context

One per request: the ranking inputs, held by reference, plus a telemetry
slot the ranker and the request handler write into.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .models import (
    Article,
    InteractionRecord,
    PerformanceMetrics,
    PortfolioHolding,
    UserInterest,
)


@dataclass
class PersonalizationContext:
    user_id: Optional[str]
    interests: Sequence[UserInterest]
    portfolio: Sequence[PortfolioHolding]
    history: Sequence[InteractionRecord]
    articles: Sequence[Article]
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def record_algorithms(self, algorithms: List[str]) -> None:
        self.performance_metrics.algorithms_used = list(algorithms)

    def record_processing_time(self, elapsed_ms: float) -> None:
        self.performance_metrics.processing_time_ms = round(elapsed_ms, 3)


def build_context(
    user_id: Optional[str],
    interests: Sequence[UserInterest],
    portfolio: Sequence[PortfolioHolding],
    history: Sequence[InteractionRecord],
    articles: Sequence[Article],
) -> PersonalizationContext:
    """Assemble the context. The input sequences are not copied."""
    return PersonalizationContext(
        user_id=user_id,
        interests=interests,
        portfolio=portfolio,
        history=history,
        articles=articles,
    )
