from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from sqlalchemy import text
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from snapshare.config import settings
from snapshare.db.session import AsyncSessionLocal, close_db, init_db
from snapshare.api import auth, users, follow, posts, comments, messages, stories, notifications, ws
from snapshare.api.errors import register_exception_handlers
from snapshare.services.redis_service import RedisService
from snapshare.tasks.maintenance import start_background_jobs, stop_background_jobs
from snapshare.utils.rate_limit import limiter

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} ({settings.ENVIRONMENT})...")

    await init_db()

    background_tasks = []
    if settings.background_jobs_enabled:
        background_tasks = start_background_jobs()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await stop_background_jobs(background_tasks)
    await RedisService().close()
    await close_db()

def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Photo sharing social API: posts, stories, follows and direct messages",
        docs_url=f"{settings.API_PREFIX}/docs",
        redoc_url=f"{settings.API_PREFIX}/redoc",
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan
    )

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    prefix = settings.API_PREFIX
    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Authentication"])
    app.include_router(users.router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(follow.router, prefix=f"{prefix}/users", tags=["Follow"])
    app.include_router(posts.router, prefix=f"{prefix}/posts", tags=["Posts"])
    app.include_router(comments.router, prefix=f"{prefix}/comments", tags=["Comments"])
    app.include_router(messages.router, prefix=f"{prefix}/messages", tags=["Messages"])
    app.include_router(stories.router, prefix=f"{prefix}/stories", tags=["Stories"])
    app.include_router(notifications.router, prefix=f"{prefix}/notifications", tags=["Notifications"])
    app.include_router(ws.router, tags=["WebSocket"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        database = "connected"
        try:
            async with AsyncSessionLocal() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Health check database query failed: {e}")
            database = "unavailable"

        return {
            "status": "healthy" if database == "connected" else "degraded",
            "database": database,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "snapshare.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
