from __future__ import annotations

import asyncio

import pytest

from plan_of_life import repositories
from plan_of_life.errors import AlreadySeeded, InvariantViolation, NotFound, ValidationError


def _names(norms):
    return [norm["norm_name"] for norm in norms]


def test_seed_defaults_inserts_starter_norms_in_order(database):
    asyncio.run(repositories.seed_defaults("user-1"))
    norms = asyncio.run(repositories.list_norms("user-1"))

    assert _names(norms) == repositories.DEFAULT_NORMS
    assert [norm["display_order"] for norm in norms] == list(range(1, len(repositories.DEFAULT_NORMS) + 1))
    assert all(norm["is_default"] and norm["is_active"] for norm in norms)


def test_seed_defaults_refuses_when_norms_exist(database):
    asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    with pytest.raises(AlreadySeeded):
        asyncio.run(repositories.seed_defaults("user-1"))
    assert _names(asyncio.run(repositories.list_norms("user-1"))) == ["Pray"]


def test_ensure_seeded_only_seeds_empty_users(database):
    first = asyncio.run(repositories.ensure_seeded("user-1"))
    second = asyncio.run(repositories.ensure_seeded("user-1"))
    assert len(first) == len(repositories.DEFAULT_NORMS)
    assert [norm["id"] for norm in second] == [norm["id"] for norm in first]


def test_ensure_seeded_does_not_reseed_when_all_norms_inactive(database):
    norm = asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    asyncio.run(repositories.set_active("user-1", norm["id"], False))
    assert asyncio.run(repositories.ensure_seeded("user-1", active_only=True)) == []
    assert asyncio.run(repositories.count_norms("user-1")) == 1


def test_add_custom_norm_appends_after_current_maximum(database):
    first = asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    second = asyncio.run(repositories.add_custom_norm("user-1", "  Read   the   Gospel "))

    assert first["display_order"] == 1
    assert second["display_order"] == 2
    assert second["norm_name"] == "Read the Gospel"
    assert second["is_default"] is False
    assert second["is_active"] is True


def test_add_custom_norm_after_seed(database):
    asyncio.run(repositories.seed_defaults("user-1"))
    norm = asyncio.run(repositories.add_custom_norm("user-1", "Fasting"))
    assert norm["display_order"] == len(repositories.DEFAULT_NORMS) + 1


def test_add_custom_norm_rejects_blank_names(database):
    asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    with pytest.raises(ValidationError):
        asyncio.run(repositories.add_custom_norm("user-1", "  "))
    assert _names(asyncio.run(repositories.list_norms("user-1"))) == ["Pray"]


def test_delete_default_norm_is_rejected(database):
    norms = asyncio.run(repositories.ensure_seeded("user-1"))
    target = norms[2]
    with pytest.raises(InvariantViolation):
        asyncio.run(repositories.delete_norm("user-1", target["id"]))
    remaining = asyncio.run(repositories.list_norms("user-1"))
    assert target["id"] in [norm["id"] for norm in remaining]


def test_delete_custom_norm(database):
    keep = asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    drop = asyncio.run(repositories.add_custom_norm("user-1", "Read"))
    asyncio.run(repositories.delete_norm("user-1", drop["id"]))
    assert [norm["id"] for norm in asyncio.run(repositories.list_norms("user-1"))] == [keep["id"]]


def test_delete_unknown_norm(database):
    with pytest.raises(NotFound):
        asyncio.run(repositories.delete_norm("user-1", "missing"))


def test_set_active_filters_listing(database):
    pray = asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    asyncio.run(repositories.add_custom_norm("user-1", "Read"))

    asyncio.run(repositories.set_active("user-1", pray["id"], False))
    asyncio.run(repositories.set_active("user-1", pray["id"], False))

    assert _names(asyncio.run(repositories.list_norms("user-1", active_only=True))) == ["Read"]
    assert _names(asyncio.run(repositories.list_norms("user-1"))) == ["Pray", "Read"]
    assert asyncio.run(repositories.count_active_norms("user-1")) == 1

    asyncio.run(repositories.set_active("user-1", pray["id"], True))
    assert asyncio.run(repositories.count_active_norms("user-1")) == 2


def test_default_norm_can_be_deactivated_but_stays_default(database):
    norms = asyncio.run(repositories.ensure_seeded("user-1"))
    asyncio.run(repositories.set_active("user-1", norms[0]["id"], False))
    norm = asyncio.run(repositories.get_norm("user-1", norms[0]["id"]))
    assert norm["is_active"] is False
    assert norm["is_default"] is True


def test_set_active_is_scoped_to_owner(database):
    norm = asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    with pytest.raises(NotFound):
        asyncio.run(repositories.set_active("user-2", norm["id"], False))


def test_reorder_applies_supplied_permutation(database):
    norms = asyncio.run(repositories.ensure_seeded("user-1"))
    new_order = [norm["id"] for norm in reversed(norms)]

    asyncio.run(repositories.reorder("user-1", new_order))
    listed = asyncio.run(repositories.list_norms("user-1"))

    assert [norm["id"] for norm in listed] == new_order
    assert [norm["display_order"] for norm in listed] == list(range(1, len(norms) + 1))


@pytest.mark.parametrize("mutate", ["drop", "duplicate", "foreign"])
def test_reorder_rejects_non_permutations(database, mutate):
    a = asyncio.run(repositories.add_custom_norm("user-1", "A"))
    b = asyncio.run(repositories.add_custom_norm("user-1", "B"))
    other = asyncio.run(repositories.add_custom_norm("user-2", "C"))
    ids = {
        "drop": [b["id"]],
        "duplicate": [b["id"], b["id"], a["id"]],
        "foreign": [b["id"], a["id"], other["id"]],
    }[mutate]

    with pytest.raises(ValidationError):
        asyncio.run(repositories.reorder("user-1", ids))
    assert _names(asyncio.run(repositories.list_norms("user-1"))) == ["A", "B"]


def test_users_are_isolated(database):
    asyncio.run(repositories.add_custom_norm("user-1", "Pray"))
    assert asyncio.run(repositories.list_norms("user-2")) == []


def test_unreachable_store_raises_storage_error(database, tmp_path, monkeypatch):
    from plan_of_life import db
    from plan_of_life.errors import StorageError
    from plan_of_life.settings import reset_settings

    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'plan.db'}")
    reset_settings()
    asyncio.run(db.dispose_engine())

    with pytest.raises(StorageError):
        asyncio.run(repositories.list_norms("user-1"))


def test_concurrent_first_loads_seed_defaults_once(database):
    async def _first_loads():
        return await asyncio.gather(
            repositories.ensure_seeded("user-1"),
            repositories.ensure_seeded("user-1"),
        )

    asyncio.run(_first_loads())
    norms = asyncio.run(repositories.list_norms("user-1"))

    assert _names(norms) == repositories.DEFAULT_NORMS
    assert asyncio.run(repositories.count_active_norms("user-1")) == len(repositories.DEFAULT_NORMS)


def test_failed_commit_leaves_order_unchanged(database, monkeypatch):
    from sqlalchemy.exc import SQLAlchemyError
    from sqlalchemy.ext.asyncio import AsyncSession

    from plan_of_life.errors import StorageError

    norms = asyncio.run(repositories.ensure_seeded("user-1"))
    before = [norm["id"] for norm in norms]

    async def _failing_commit(self):
        raise SQLAlchemyError("commit failed")

    original_commit = AsyncSession.commit
    monkeypatch.setattr(AsyncSession, "commit", _failing_commit)
    with pytest.raises(StorageError):
        asyncio.run(repositories.reorder("user-1", before[::-1]))
    monkeypatch.setattr(AsyncSession, "commit", original_commit)

    listed = asyncio.run(repositories.list_norms("user-1"))
    assert [norm["id"] for norm in listed] == before
    assert [norm["display_order"] for norm in listed] == list(range(1, len(before) + 1))
