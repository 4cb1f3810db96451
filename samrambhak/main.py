"""
Samrambhak - Main Application

FastAPI backend with:
- PostgreSQL for platform data
- MongoDB for the admin activity log
- Session-token authentication
- Uploaded media served from /media

Run: uvicorn samrambhak.main:app --reload
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from samrambhak import __version__
from samrambhak.api.routes import api_router
from samrambhak.core.config import get_settings
from samrambhak.core.errors import register_exception_handlers
from samrambhak.core.logging_config import configure_logging
from samrambhak.db.mongodb import init_mongo_indexes, test_mongo_connection
from samrambhak.db.postgres import test_postgres_connection

settings = get_settings()
configure_logging(settings.log_level)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Samrambhak",
    description="""
    Community, business and jobs platform backend.

    Every feature is one POST handler under /api whose JSON body names an `action`.
    Errors are always returned as {"error": "<message>"}.

    ## Handlers
    - **mobile-auth / password-reset**: mobile number + password accounts, session tokens
    - **profiles / upload-avatar / email verification**
    - **posts**: feed, likes, comments, reports
    - **manage-community**: communities, membership, discussions, permissions
    - **businesses**: listings and follows
    - **manage-jobs**: job board and applications
    - **promotions / notifications**
    - **admin-manage / admin-post-actions / manage-blocked-words**: admin panel
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

register_exception_handlers(app)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")

# Uploaded avatars
app.mount(settings.media_url, StaticFiles(directory=settings.media_root, check_dir=False), name="media")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except Exception:
        logger.exception("MongoDB index initialization failed")


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check."""
    return {
        "status": "healthy",
        "database": "connected" if test_postgres_connection() else "disconnected",
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
