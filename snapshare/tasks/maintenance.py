"""
Periodic maintenance: the expired-story sweep and counter reconciliation.

The jobs run either inside the API process (an asyncio loop started from the
app lifespan) or on a Celery worker driven by beat.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, List

from celery import Celery
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from snapshare.config import settings
from snapshare.db.session import AsyncSessionLocal, enable_sqlite_foreign_keys
from snapshare.services.counter_service import CounterReconciler
from snapshare.services.story_service import StoryService

logger = logging.getLogger(__name__)

celery_app = Celery(
    "snapshare",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL
)

celery_app.conf.beat_schedule = {
    "sweep-expired-stories": {
        "task": "snapshare.sweep_expired_stories",
        "schedule": float(settings.STORY_SWEEP_INTERVAL_SECONDS),
    },
    "reconcile-counters": {
        "task": "snapshare.reconcile_counters",
        "schedule": float(settings.COUNTER_RECONCILE_INTERVAL_SECONDS),
    },
}

SessionFactory = Callable[[], AsyncSession]


async def sweep_expired_stories(session_factory: SessionFactory = AsyncSessionLocal) -> int:
    """Delete every story past its expiry"""
    async with session_factory() as db:
        removed = await StoryService(db).delete_expired_stories()
    logger.info(f"Story sweep removed {removed} expired stories")
    return removed


async def reconcile_counters(session_factory: SessionFactory = AsyncSessionLocal) -> Dict[str, int]:
    """Recompute denormalized counters from the relationship tables"""
    async with session_factory() as db:
        return await CounterReconciler(db).reconcile()


def _run_in_worker(job: Callable[[SessionFactory], Awaitable]):
    """Run an async job from a Celery worker on its own short-lived engine"""

    async def runner():
        engine = create_async_engine(settings.database_url, poolclass=NullPool)
        if "sqlite" in settings.database_url:
            enable_sqlite_foreign_keys(engine.sync_engine)
        try:
            factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            return await job(factory)
        finally:
            await engine.dispose()

    return asyncio.run(runner())


@celery_app.task(name="snapshare.sweep_expired_stories")
def sweep_expired_stories_task() -> int:
    return _run_in_worker(sweep_expired_stories)


@celery_app.task(name="snapshare.reconcile_counters")
def reconcile_counters_task() -> Dict[str, int]:
    return _run_in_worker(reconcile_counters)


async def run_periodically(name: str, interval_seconds: float, job: Callable[[], Awaitable]) -> None:
    """Run job now and then every interval_seconds until cancelled"""
    while True:
        try:
            await job()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Background job {name} failed: {e}")
        await asyncio.sleep(interval_seconds)


def start_background_jobs() -> List[asyncio.Task]:
    jobs = [
        ("sweep_expired_stories", settings.STORY_SWEEP_INTERVAL_SECONDS, sweep_expired_stories),
        ("reconcile_counters", settings.COUNTER_RECONCILE_INTERVAL_SECONDS, reconcile_counters),
    ]
    tasks = [
        asyncio.create_task(run_periodically(name, interval, job), name=name)
        for name, interval, job in jobs
    ]
    logger.info(f"Started {len(tasks)} background jobs")
    return tasks


async def stop_background_jobs(tasks: List[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    logger.info("Background jobs stopped")
