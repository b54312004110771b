from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from plan_of_life.db import get_sessionmaker
from plan_of_life.db_init import NORMS_TABLE, COMPLETIONS_TABLE
from plan_of_life.errors import AlreadySeeded, InvariantViolation, NotFound, StorageError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_NORMS = [
    "Morning Offering",
    "Morning Prayer",
    "Holy Mass",
    "Angelus",
    "Visit To The Blessed Sacrament",
    "Holy Rosary",
    "Spiritual Reading",
    "Examination Of Conscience",
    "Three Purity Hail Maries",
]

NORM_NAME_MAX_LENGTH = 80

NORM_SELECT_COLUMNS = [
    "id",
    "user_id",
    "norm_name",
    "is_active",
    "is_default",
    "display_order",
    "created_at",
]


def _new_id() -> str:
    return uuid4().hex


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def _normalize_norm_name(value) -> str:
    return " ".join(str(value or "").split()).strip()[:NORM_NAME_MAX_LENGTH]


def _normalize_norm_row(row) -> dict:
    if not row:
        return {}
    payload = dict(row)
    payload["is_active"] = bool(payload.get("is_active"))
    payload["is_default"] = bool(payload.get("is_default"))
    payload["display_order"] = int(payload.get("display_order") or 0)
    created_at = payload.get("created_at")
    if created_at is not None and hasattr(created_at, "isoformat"):
        payload["created_at"] = created_at.isoformat()
    return payload


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _require_norm_name(norm_name: str) -> str:
    name = _normalize_norm_name(norm_name)
    if not name:
        raise ValidationError("Norm name cannot be empty")
    return name


def _require_range(start: date, end: date) -> None:
    if start > end:
        raise ValidationError("Start date must not be after end date")


@asynccontextmanager
async def _session():
    session_factory = get_sessionmaker()
    try:
        async with session_factory() as session:
            yield session
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Storage operation failed: %s", exc)
        raise StorageError("Storage unavailable, please try again") from exc


# Norm registry


async def list_norms(user_id: str, active_only: bool = False) -> list[dict]:
    active_clause = "AND is_active = 1" if active_only else ""
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT {', '.join(NORM_SELECT_COLUMNS)}
                FROM {NORMS_TABLE}
                WHERE user_id = :user_id
                  {active_clause}
                ORDER BY display_order, created_at, id
                """
            ),
            {"user_id": user_id},
        )).mappings().all()
    return [_normalize_norm_row(row) for row in rows]


async def get_norm(user_id: str, norm_id: str) -> dict:
    async with _session() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT {', '.join(NORM_SELECT_COLUMNS)} FROM {NORMS_TABLE} "
                "WHERE user_id = :user_id AND id = :id"
            ),
            {"user_id": user_id, "id": norm_id},
        )).mappings().fetchone()
    if not row:
        raise NotFound("Norm not found")
    return _normalize_norm_row(row)


async def count_norms(user_id: str) -> int:
    async with _session() as session:
        count = (await session.execute(
            sql_text(f"SELECT COUNT(*) FROM {NORMS_TABLE} WHERE user_id = :user_id"),
            {"user_id": user_id},
        )).scalar_one()
    return int(count or 0)


async def count_active_norms(user_id: str) -> int:
    async with _session() as session:
        count = (await session.execute(
            sql_text(
                f"SELECT COUNT(*) FROM {NORMS_TABLE} "
                "WHERE user_id = :user_id AND is_active = 1"
            ),
            {"user_id": user_id},
        )).scalar_one()
    return int(count or 0)


async def seed_defaults(user_id: str) -> None:
    created_at = _now_iso()
    rows = [
        {
            "id": _new_id(),
            "user_id": user_id,
            "norm_name": name,
            "display_order": index,
            "created_at": created_at,
        }
        for index, name in enumerate(DEFAULT_NORMS, start=1)
    ]
    async with _session() as session:
        existing = (await session.execute(
            sql_text(f"SELECT COUNT(*) FROM {NORMS_TABLE} WHERE user_id = :user_id"),
            {"user_id": user_id},
        )).scalar_one()
        if int(existing or 0) > 0:
            raise AlreadySeeded("Norms already exist for this user")
        # A concurrent first load may pass the count check too; the partial
        # unique index on default names turns its second insert into a no-op.
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {NORMS_TABLE}
                    (id, user_id, norm_name, is_active, is_default, display_order, created_at)
                VALUES (:id, :user_id, :norm_name, 1, 1, :display_order, :created_at)
                ON CONFLICT DO NOTHING
                """
            ),
            rows,
        )
        await session.commit()
    logger.info("Seeded %s default norms for user %s", len(rows), user_id)


async def ensure_seeded(user_id: str, active_only: bool = False) -> list[dict]:
    norms = await list_norms(user_id, active_only=active_only)
    if norms:
        return norms
    if await count_norms(user_id) > 0:
        # Norms exist but every one of them is inactive.
        return norms
    try:
        await seed_defaults(user_id)
    except AlreadySeeded:
        logger.debug("Concurrent seeding detected for user %s", user_id)
    return await list_norms(user_id, active_only=active_only)


async def add_custom_norm(user_id: str, name: str) -> dict:
    name = _normalize_norm_name(name)
    if not name:
        raise ValidationError("Please enter a norm name")
    payload = {
        "id": _new_id(),
        "user_id": user_id,
        "norm_name": name,
        "created_at": _now_iso(),
    }
    async with _session() as session:
        current_max = (await session.execute(
            sql_text(
                f"SELECT COALESCE(MAX(display_order), 0) FROM {NORMS_TABLE} "
                "WHERE user_id = :user_id"
            ),
            {"user_id": user_id},
        )).scalar_one()
        payload["display_order"] = int(current_max or 0) + 1
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {NORMS_TABLE}
                    (id, user_id, norm_name, is_active, is_default, display_order, created_at)
                VALUES (:id, :user_id, :norm_name, 1, 0, :display_order, :created_at)
                """
            ),
            payload,
        )
        await session.commit()
    return {**payload, "is_active": True, "is_default": False}


async def set_active(user_id: str, norm_id: str, active: bool) -> None:
    async with _session() as session:
        current = (await session.execute(
            sql_text(
                f"SELECT is_active FROM {NORMS_TABLE} "
                "WHERE user_id = :user_id AND id = :id"
            ),
            {"user_id": user_id, "id": norm_id},
        )).fetchone()
        if current is None:
            raise NotFound("Norm not found")
        if bool(current[0]) == bool(active):
            return
        await session.execute(
            sql_text(
                f"UPDATE {NORMS_TABLE} SET is_active = :is_active "
                "WHERE user_id = :user_id AND id = :id"
            ),
            {"user_id": user_id, "id": norm_id, "is_active": int(bool(active))},
        )
        await session.commit()


async def delete_norm(user_id: str, norm_id: str) -> None:
    async with _session() as session:
        current = (await session.execute(
            sql_text(
                f"SELECT is_default FROM {NORMS_TABLE} "
                "WHERE user_id = :user_id AND id = :id"
            ),
            {"user_id": user_id, "id": norm_id},
        )).fetchone()
        if current is None:
            raise NotFound("Norm not found")
        if bool(current[0]):
            raise InvariantViolation("Cannot delete default norms. You can disable them instead.")
        await session.execute(
            sql_text(f"DELETE FROM {NORMS_TABLE} WHERE user_id = :user_id AND id = :id"),
            {"user_id": user_id, "id": norm_id},
        )
        await session.commit()


async def reorder(user_id: str, ordered_ids: list[str]) -> None:
    ordered_ids = [str(item) for item in ordered_ids or []]
    if len(set(ordered_ids)) != len(ordered_ids):
        raise ValidationError("Norm order contains duplicate ids")
    async with _session() as session:
        rows = (await session.execute(
            sql_text(f"SELECT id FROM {NORMS_TABLE} WHERE user_id = :user_id"),
            {"user_id": user_id},
        )).fetchall()
        existing = {row[0] for row in rows}
        if set(ordered_ids) != existing:
            raise ValidationError("Norm order must list every norm exactly once")
        if not ordered_ids:
            return
        # One transaction for every row: readers never see a half-applied order.
        await session.execute(
            sql_text(
                f"UPDATE {NORMS_TABLE} SET display_order = :display_order "
                "WHERE user_id = :user_id AND id = :id"
            ),
            [
                {"user_id": user_id, "id": norm_id, "display_order": position}
                for position, norm_id in enumerate(ordered_ids, start=1)
            ],
        )
        await session.commit()


# Completion ledger


async def is_completed(user_id: str, norm_name: str, day: date) -> bool:
    norm_name = _require_norm_name(norm_name)
    async with _session() as session:
        row = (await session.execute(
            sql_text(
                f"""
                SELECT 1 FROM {COMPLETIONS_TABLE}
                WHERE user_id = :user_id
                  AND norm_name = :norm_name
                  AND completed_date = :completed_date
                LIMIT 1
                """
            ),
            {"user_id": user_id, "norm_name": norm_name, "completed_date": day.isoformat()},
        )).fetchone()
    return row is not None


async def toggle_completion(user_id: str, norm_name: str, day: date) -> bool:
    norm_name = _require_norm_name(norm_name)
    params = {"user_id": user_id, "norm_name": norm_name, "completed_date": day.isoformat()}
    async with _session() as session:
        deleted = await session.execute(
            sql_text(
                f"""
                DELETE FROM {COMPLETIONS_TABLE}
                WHERE user_id = :user_id
                  AND norm_name = :norm_name
                  AND completed_date = :completed_date
                """
            ),
            params,
        )
        if deleted.rowcount:
            await session.commit()
            logger.debug("Unmarked %r on %s for user %s", norm_name, params["completed_date"], user_id)
            return False
        # A racing insert for the same key is absorbed by the primary key.
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {COMPLETIONS_TABLE} (user_id, norm_name, completed_date, created_at)
                VALUES (:user_id, :norm_name, :completed_date, :created_at)
                ON CONFLICT (user_id, norm_name, completed_date) DO NOTHING
                """
            ),
            {**params, "created_at": _now_iso()},
        )
        await session.commit()
    logger.debug("Marked %r on %s for user %s", norm_name, params["completed_date"], user_id)
    return True


async def list_completions_in_range(user_id: str, start: date, end: date) -> set[tuple[date, str]]:
    _require_range(start, end)
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT completed_date, norm_name
                FROM {COMPLETIONS_TABLE}
                WHERE user_id = :user_id
                  AND completed_date BETWEEN :start_date AND :end_date
                """
            ),
            {"user_id": user_id, "start_date": start.isoformat(), "end_date": end.isoformat()},
        )).fetchall()
    return {(_as_date(row[0]), str(row[1])) for row in rows}


async def count_by_date(user_id: str, start: date, end: date) -> dict[date, int]:
    _require_range(start, end)
    async with _session() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT completed_date, COUNT(*) AS total
                FROM {COMPLETIONS_TABLE}
                WHERE user_id = :user_id
                  AND completed_date BETWEEN :start_date AND :end_date
                GROUP BY completed_date
                """
            ),
            {"user_id": user_id, "start_date": start.isoformat(), "end_date": end.isoformat()},
        )).fetchall()
    return {_as_date(row[0]): int(row[1]) for row in rows if int(row[1] or 0) > 0}
