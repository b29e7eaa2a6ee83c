import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.routes import router
from app.core.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Logs the effective configuration on startup.
    """
    # Startup
    logger.info("Starting Batch Scraper on http://%s:%d", settings.HOST, settings.PORT)
    if settings.DEFAULT_PROXY:
        logger.info("Fallback proxy configured")
    else:
        logger.warning("No fallback proxy configured (DEFAULT_PROXY unset)")

    yield

    # Shutdown
    logger.info("Shutting down Batch Scraper...")

app = FastAPI(
    title="Batch Scraper",
    description="API for fetching batches of URLs under a rate limit",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# Include API routes
app.include_router(router)

@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "service": "Batch Scraper",
        "version": "1.0.0",
        "endpoints": {
            "scrape": "POST /api/scrape",
            "health": "GET /health"
        }
    }

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
