"""
main.py — FastAPI Application Entry Point

The "front door" of the backend: wires configuration, logging, CORS and the
report routers together.

Run with:  uvicorn docreport.main:app --app-dir backend --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import reports
from .config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Create the FastAPI app instance
app = FastAPI(
    title=settings.APP_NAME,
    description="Turns uploaded documents (plus optional web search) into a structured report.",
    version="1.0.0",
)

# ── CORS Middleware ──────────────────────────────────────────────
# Merge default + extra CORS origins (from EXTRA_CORS_ORIGINS env var)
_cors_origins = list(settings.CORS_ORIGINS)
if settings.EXTRA_CORS_ORIGINS:
    _cors_origins += [o.strip() for o in settings.EXTRA_CORS_ORIGINS.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Register API Routers ────────────────────────────────────────
app.include_router(reports.router, prefix="/api/reports", tags=["Reports"])


@app.get("/", tags=["Health"])
async def root():
    """Health check endpoint — confirms the server is running."""
    return {
        "status": "running",
        "service": settings.APP_NAME,
        "version": "1.0.0",
        "docs": "/docs",
        "providers": {
            "gemini": settings.has_gemini,
            "groq": settings.has_groq,
            "search": settings.has_serp,
        },
    }


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy"}
