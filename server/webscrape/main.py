"""
WebScrape - FastAPI Application Entry Point

Oracle-driven crawler with single/connected/deep scopes, a multi-phase
research pipeline, and exports to JSON, CSV, Markdown, text, SQL and HTML.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import router as api_router
from .config import config


app = FastAPI(
    title=config.APP_NAME,
    description=config.APP_DESCRIPTION,
    version=config.APP_VERSION,
)

# CORS middleware for the browser frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(config.cors.ALLOWED_ORIGINS),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": config.APP_NAME,
        "version": config.APP_VERSION,
        "oracle_configured": bool(config.API_KEY),
    }
