"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
from fastapi.middleware.cors import CORSMiddleware

from stockgenius import __version__
from stockgenius.config import get_settings
from stockgenius.db.database import init_db

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events.

    Args:
        app: FastAPI application instance.
    """
    # Startup
    if settings.debug:
        init_db()
    yield


app = FastAPI(
    title=settings.app_name,
    description="Inventory tracking service holding categories and stock items per owner",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Import and include routers
from stockgenius.categories.router import router as categories_router
from stockgenius.items.router import router as items_router

# API routes
app.include_router(categories_router, prefix="/api/categories", tags=["categories"])
app.include_router(items_router, prefix="/api/items", tags=["items"])


@app.get("/health")
async def health_check():
    """Liveness probe used by clients to detect connectivity.

    Returns:
        dict: Health status.
    """
    return {"status": "healthy", "app": settings.app_name}


@app.get("/manifest.json")
async def manifest():
    """Serve the installable web app manifest.

    Returns:
        dict: Web app manifest JSON.
    """
    return {
        "name": f"{settings.app_name} - Inventory",
        "short_name": settings.app_name,
        "description": "Track stock items, categories and photos",
        "start_url": "/",
        "display": "standalone",
        "background_color": "#ffffff",
        "theme_color": "#2563eb",
        "orientation": "portrait-primary",
        "scope": "/",
        "lang": "en",
        "icons": [
            {
                "src": "/icon-192x192.png",
                "sizes": "192x192",
                "type": "image/png",
                "purpose": "any maskable",
            },
            {
                "src": "/icon-512x512.png",
                "sizes": "512x512",
                "type": "image/png",
                "purpose": "any maskable",
            },
        ],
        "categories": ["productivity", "utilities"],
    }
