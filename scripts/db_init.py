#!/usr/bin/env python3
"""
Schema management for SnapShare.

    python scripts/db_init.py {create,check,drop,reset,reconcile} [--confirm]

Each command runs on a single event loop with its own engine, which is
disposed before the loop closes.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from snapshare.config import settings
from snapshare.db.session import enable_sqlite_foreign_keys
from snapshare.models import Base
from snapshare.tasks.maintenance import reconcile_counters

logger = logging.getLogger("snapshare.scripts.db_init")

DESTRUCTIVE_COMMANDS = ("drop", "reset")


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    url = url or settings.database_url
    engine = create_async_engine(url, poolclass=NullPool)
    if "sqlite" in url:
        enable_sqlite_foreign_keys(engine.sync_engine)
    return engine


async def create_tables(engine: AsyncEngine) -> List[str]:
    """Create missing tables; returns every table name present afterwards"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())


async def drop_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def reset(engine: AsyncEngine) -> List[str]:
    """Drop and recreate the schema in one pass"""
    await drop_tables(engine)
    return await create_tables(engine)


async def ping(engine: AsyncEngine) -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database unreachable: {e}")
        return False
    return True


async def reconcile(engine: AsyncEngine) -> Dict[str, int]:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return await reconcile_counters(session_factory)


COMMANDS = {
    "create": create_tables,
    "check": ping,
    "drop": drop_tables,
    "reset": reset,
    "reconcile": reconcile,
}


async def run(command: str, url: Optional[str] = None):
    engine = build_engine(url)
    try:
        return await COMMANDS[command](engine)
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="SnapShare database schema tool")
    parser.add_argument("command", choices=sorted(COMMANDS))
    parser.add_argument("--confirm", action="store_true", help="required by drop and reset")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    if args.command in DESTRUCTIVE_COMMANDS and not args.confirm:
        logger.error(f"'{args.command}' deletes every table; rerun with --confirm")
        return 2

    logger.info(f"Running '{args.command}' against {settings.database_url}")
    result = asyncio.run(run(args.command))

    if args.command == "check":
        return 0 if result else 1

    logger.info(f"'{args.command}' finished: {result if result is not None else 'ok'}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
