"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pagewise.api.recommendation_routes import router as recommendation_router
from pagewise.api.task_routes import router as task_router
from pagewise.api.tracking_routes import router as tracking_router
from pagewise.infrastructure.database.connection import init_db

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Pagewise application")
    await init_db()
    logger.info("Database initialized")
    yield
    logger.info("Shutting down Pagewise application")


app = FastAPI(
    title="Pagewise",
    description="Prompt-driven book discovery with Fresh and Smart modes",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recommendation_router)
app.include_router(tracking_router)
app.include_router(task_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
