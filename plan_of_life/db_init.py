from __future__ import annotations

from sqlalchemy import text as sql_text

from plan_of_life.db import get_engine


NORMS_TABLE = "user_norms"
COMPLETIONS_TABLE = "daily_completions"


async def init_db():
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {NORMS_TABLE} (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    norm_name TEXT NOT NULL,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    is_default INTEGER NOT NULL DEFAULT 0,
                    display_order INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {COMPLETIONS_TABLE} (
                    user_id TEXT NOT NULL,
                    norm_name TEXT NOT NULL,
                    completed_date TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    PRIMARY KEY (user_id, norm_name, completed_date)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"CREATE INDEX IF NOT EXISTS idx_{NORMS_TABLE}_user_order "
                f"ON {NORMS_TABLE} (user_id, display_order)"
            )
        )
        await conn.execute(
            sql_text(
                f"CREATE INDEX IF NOT EXISTS idx_{COMPLETIONS_TABLE}_user_date "
                f"ON {COMPLETIONS_TABLE} (user_id, completed_date)"
            )
        )
        await conn.execute(
            sql_text(
                f"CREATE UNIQUE INDEX IF NOT EXISTS uq_{NORMS_TABLE}_default_name "
                f"ON {NORMS_TABLE} (user_id, norm_name) WHERE is_default = 1"
            )
        )
