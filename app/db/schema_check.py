"""
Create any missing ledger tables.

Run once per environment with DATABASE_URL set:
  python -m app.db.schema_check
"""
import asyncio

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

from app.core.config import get_settings
from app.db.session import Base, build_engine, init_models


async def ensure_tables(db_engine: AsyncEngine) -> None:
    async with db_engine.connect() as conn:
        existing = set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))

    await init_models(db_engine)

    missing = sorted(set(Base.metadata.tables) - existing)
    if missing:
        print("Created missing tables: " + ", ".join(missing))
    else:
        print("All required tables already exist in the database.")


async def main() -> None:
    engine = build_engine(get_settings().database_url)
    try:
        await ensure_tables(engine)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
