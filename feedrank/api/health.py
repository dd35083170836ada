import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import settings
from ..db import SupabaseError, get_supabase_client
from ..services.cache import FeedCache, get_feed_cache

router = APIRouter()


async def check_store() -> Dict[str, Any]:
    """Probe the article table with a one-row read."""
    if not settings.has_supabase:
        return {"status": "unconfigured", "key_type": settings.supabase_key_type}

    started = time.perf_counter()
    try:
        await get_supabase_client().select("news_articles", columns="id", limit=1)
    except SupabaseError as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "response_time_ms": round((time.perf_counter() - started) * 1000, 1),
        }
    return {
        "status": "healthy",
        "key_type": settings.supabase_key_type,
        "response_time_ms": round((time.perf_counter() - started) * 1000, 1),
    }


@router.get("/healthz")
async def health_check(
    store: Dict[str, Any] = Depends(check_store),
    cache: FeedCache = Depends(get_feed_cache),
) -> JSONResponse:
    """Health check endpoint that verifies store reachability and reports cache usage"""
    stats = cache.stats()
    healthy = store["status"] == "healthy"

    body = {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": {"database": store},
        "cache": {
            "size": stats.size,
            "max_size": stats.max_size,
            "hits": stats.hits,
            "misses": stats.misses,
        },
    }

    return JSONResponse(
        body,
        status_code=503 if store["status"] == "unhealthy" else 200,
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
