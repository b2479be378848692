"""Apply pending SQL migrations from ``backend/migrations`` in filename order."""

from __future__ import annotations

import asyncio
import logging
import pathlib
import sys

BACKEND_ROOT = pathlib.Path(__file__).resolve().parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from heritage.infra import postgres  # noqa: E402

MIGRATIONS_DIR = BACKEND_ROOT / "migrations"

logger = logging.getLogger("heritage.migrations")


async def apply_migrations(directory: pathlib.Path = MIGRATIONS_DIR) -> list[str]:
    paths = sorted(directory.glob("*.sql"))
    if not paths:
        raise SystemExit("no migration files found")
    applied_now: list[str] = []
    pool = await postgres.init_pool()
    try:
        async with pool.acquire() as conn:
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            applied = {row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")}
            for path in paths:
                version = path.name.split("_", 1)[0]
                if version in applied:
                    continue
                async with conn.transaction():
                    await conn.execute(path.read_text())
                    await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", version)
                logger.info("applied migration", extra={"migration": path.name})
                applied_now.append(path.name)
    finally:
        await postgres.close_pool()
    return applied_now


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    names = asyncio.run(apply_migrations())
    print(f"Applied {len(names)} migration(s): {', '.join(names) or '-'}")
