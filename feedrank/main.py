from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api import health, news
from .config import settings
from .db import close_supabase_client
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware
from .services.personalization import validation_error_detail

setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Release the pooled store connections
    await close_supabase_client()


# Create FastAPI app
app = FastAPI(
    title="Feedrank API",
    description="Personalized news ranking backend",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=list(news.FEED_HEADERS),
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed query parameters are client errors with a single readable reason
    return JSONResponse(status_code=400, content={"detail": validation_error_detail(exc.errors())})


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(news.router, tags=["News"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Feedrank API",
        "version": "0.1.0",
        "description": "Personalized news ranking backend",
        "docs": "/docs",
        "health": "/healthz",
        "feeds": ["/news", "/news/personalized"],
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "feedrank.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
