import os

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the legacy single-key Supabase variable."""

        super().model_post_init(__context)

        if not self.supabase_anon_key and not self.supabase_service_role_key:
            fallback = os.getenv("SUPABASE_KEY")
            if fallback:
                object.__setattr__(self, "supabase_anon_key", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Backing store (Supabase PostgREST)
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_anon_key: str = Field(
        default="",
        description="Supabase anon key",
        validation_alias=AliasChoices("supabase_anon_key", "SUPABASE_ANON_KEY"),
    )
    supabase_service_role_key: str = Field(
        default="",
        description="Supabase service role key (bypasses RLS, preferred for backend reads)",
    )
    request_timeout_seconds: int = Field(default=10, description="Store request timeout")

    # Cache Settings
    cache_ttl_seconds: int = Field(default=300, description="Cache TTL in seconds")
    max_cache_size: int = Field(default=1000, description="Maximum cache size")
    cache_coalesce_fetches: bool = Field(
        default=False,
        description="Share one in-flight fetch between concurrent misses of the same key",
    )

    # Ranking defaults
    min_relevance_score: float = Field(
        default=0.05,
        ge=0.0,
        description="Articles scoring below this are dropped from personalized feeds",
    )
    default_max_age_hours: int = Field(default=168, ge=1, le=720, description="Default article age window")
    history_limit: int = Field(default=1000, ge=1, description="Interaction records loaded per request")
    candidate_pool_multiplier: int = Field(
        default=10,
        ge=1,
        description="Candidate pool size as a multiple of the requested page size",
    )
    candidate_pool_cap: int = Field(default=500, ge=1, description="Upper bound on the candidate pool")
    weight_keyword_match: float = Field(default=0.4, ge=0.0, description="Keyword match weight")
    weight_symbol_match: float = Field(default=0.3, ge=0.0, description="Portfolio symbol match weight")
    weight_sentiment: float = Field(default=0.2, ge=0.0, description="Sentiment affinity weight")
    weight_time_decay: float = Field(default=0.1, ge=0.0, description="Recency weight")

    # Performance monitoring
    performance_target_ms: float = Field(default=500.0, gt=0, description="Ranking time target")
    performance_critical_ms: float = Field(default=1000.0, gt=0, description="Ranking time alert threshold")

    cancel_fetches_on_disconnect: bool = Field(
        default=False,
        description="Cancel in-flight store fetches when the client goes away",
    )

    @property
    def supabase_key(self) -> str:
        """Key used for store access; the service role key wins when both are set."""
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def supabase_key_type(self) -> str:
        if self.supabase_service_role_key:
            return "service_role"
        if self.supabase_anon_key:
            return "anon"
        return "missing"

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


# Global settings instance
settings = Settings()
