"""
Main FastAPI application.
Brings together the versioned opp routers and configuration.
"""

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fbopen.api import health, v0, v1
from fbopen.config import get_settings
from fbopen.models.search_engine import engine

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


class UTF8JSONResponse(JSONResponse):
    """JSON responses that state their charset."""
    media_type = "application/json; charset=utf-8"


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await engine.close()


# Create FastAPI app
app = FastAPI(
    title="FBOpen API",
    description="Search over federal business opportunities",
    version="1.0.0",
    default_response_class=UTF8JSONResponse,
    lifespan=lifespan,
)

# Read-only public API, any origin may call it
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(v0.router)
app.include_router(v1.router)
app.include_router(health.router)


@app.get("/")
async def root():
    """Root endpoint - API info."""
    return {
        "name": "FBOpen API",
        "version": "1.0.0",
        "docs": "/docs",
        "endpoints": {
            "v0_search": "GET /v0/opps",
            "v1_search": "GET /v1/opps",
            "v1_opp": "GET /v1/opp/{id}",
            "health": "GET /health",
        },
    }
