"""
Repository tests against an in-memory SQLite database.

The plan executor runs real SQL here, so these tests pin down the filtering,
grouping and ordering semantics of `LogRepository.aggregate`.
"""

from datetime import timedelta

import pytest

from dpslogs.modules.logs.constants import EntityType
from dpslogs.modules.logs.plan import build_plan
from dpslogs.modules.logs.schemas import LogFilter, UniqueEntity
from tests.conftest import BASE_TIME, VALTAN, VERTUS, VYKAS, make_log, minutes_after_base


async def _aggregate_ids(repository, creator_id=None, **filter_data):
    plan = build_plan(LogFilter.parse(filter_data), creator_id)
    return [row.id for row in await repository.aggregate(plan)]


@pytest.mark.unit
class TestCrud:
    """Insert / fetch / remove."""

    async def test_insert_assigns_id_and_timestamp(self, repository):
        created = await repository.insert(make_log(dps=1234.5))

        assert created.id
        assert created.created_at is not None
        assert created.created_at.tzinfo is not None
        assert created.dps == 1234.5

    async def test_fetch_returns_full_document(self, repository):
        created = await repository.insert(make_log(encounterName="Valtan G2", creator="user-1"))

        fetched = await repository.fetch(created.id)

        assert fetched is not None
        assert fetched.id == created.id
        assert fetched.creator == "user-1"
        assert fetched.model_extra["encounterName"] == "Valtan G2"
        assert [e.npc_id for e in fetched.entities] == [e.npc_id for e in created.entities]

    async def test_fetch_missing_returns_none(self, repository):
        assert await repository.fetch("missing") is None

    async def test_fetch_many_skips_missing(self, repository):
        a = await repository.insert(make_log())
        b = await repository.insert(make_log())

        fetched = await repository.fetch_many([a.id, "missing", b.id])

        assert {log.id for log in fetched} == {a.id, b.id}

    async def test_remove(self, repository):
        created = await repository.insert(make_log())

        assert await repository.remove(created.id) is True
        assert await repository.fetch(created.id) is None
        assert await repository.remove(created.id) is False

    async def test_remove_by_creator_only_touches_owner(self, repository):
        for _ in range(3):
            await repository.insert(make_log(creator="user-1"))
        kept = await repository.insert(make_log(creator="user-2"))

        removed = await repository.remove_by_creator("user-1")

        assert removed == 3
        assert await repository.fetch(kept.id) is not None
        assert await _aggregate_ids(repository) == [kept.id]


@pytest.mark.unit
class TestAggregate:
    """Plan execution semantics."""

    async def test_default_sort_is_dps_descending(self, repository):
        low = await repository.insert(make_log(dps=100))
        high = await repository.insert(make_log(dps=300))
        mid = await repository.insert(make_log(dps=200))

        assert await _aggregate_ids(repository) == [high.id, mid.id, low.id]

    async def test_one_row_per_log_despite_many_entities(self, repository):
        await repository.insert(
            make_log(players=((102, 60, 1500), (204, 60, 1510), (305, 60, 1520)))
        )

        assert len(await _aggregate_ids(repository)) == 1

    async def test_boss_filter_matches_any_entity(self, repository):
        both = await repository.insert(make_log(bosses=(VALTAN, VYKAS)))
        await repository.insert(make_log(bosses=(VERTUS,)))

        assert await _aggregate_ids(repository, bosses=[VYKAS]) == [both.id]

    async def test_class_filter(self, repository):
        bard = await repository.insert(make_log(players=((204, 60, 1500),)))
        await repository.insert(make_log(players=((102, 60, 1500),)))

        assert await _aggregate_ids(repository, classes=[204]) == [bard.id]

    async def test_gear_level_filter_applies_per_entity(self, repository):
        geared = await repository.insert(make_log(players=((102, 60, 1580),)))
        await repository.insert(make_log(players=((102, 60, 1400),)))

        assert await _aggregate_ids(repository, gearLevel=[1560, 1625]) == [geared.id]

    async def test_party_dps_minimum(self, repository):
        strong = await repository.insert(make_log(dps=5000))
        await repository.insert(make_log(dps=100))

        assert await _aggregate_ids(repository, partyDps=1000) == [strong.id]

    async def test_creator_restriction(self, repository):
        mine = await repository.insert(make_log(creator="user-1"))
        await repository.insert(make_log(creator="user-2"))

        assert await _aggregate_ids(repository, creator_id="user-1") == [mine.id]

    async def test_range_inclusive_and_newest_first(self, repository):
        before = await repository.insert(make_log(created_at=minutes_after_base(-1)))
        first = await repository.insert(make_log(created_at=minutes_after_base(0)))
        last = await repository.insert(make_log(created_at=minutes_after_base(10)))
        after = await repository.insert(make_log(created_at=minutes_after_base(11)))

        ids = await _aggregate_ids(
            repository,
            range=[BASE_TIME.isoformat(), (BASE_TIME + timedelta(minutes=10)).isoformat()],
        )

        assert ids == [last.id, first.id]
        assert before.id not in ids and after.id not in ids

    async def test_ties_broken_by_id_ascending(self, repository):
        created = [await repository.insert(make_log(dps=500)) for _ in range(4)]

        assert await _aggregate_ids(repository) == sorted(log.id for log in created)

    async def test_explicit_ascending_sort(self, repository):
        a = await repository.insert(make_log(dps=10))
        b = await repository.insert(make_log(dps=20))

        assert await _aggregate_ids(repository, sort=["dps", "asc"]) == [a.id, b.id]

    async def test_group_rows_carry_sort_keys(self, repository):
        created = await repository.insert(make_log(dps=42, created_at=BASE_TIME))

        (row,) = await repository.aggregate(build_plan(LogFilter()))

        assert row.id == created.id
        assert row.dps == 42
        assert row.created_at == BASE_TIME


@pytest.mark.unit
class TestUniqueEntities:
    async def test_distinct_pairs_ordered_by_type_then_id(self, repository):
        await repository.insert(make_log(bosses=(VYKAS,)))
        await repository.insert(make_log(bosses=(VALTAN,)))
        await repository.insert(make_log(bosses=(VALTAN,)))
        await repository.insert(make_log(bosses=(VERTUS,), boss_type="GUARDIAN"))

        found = await repository.unique_entities([EntityType.BOSS, EntityType.GUARDIAN])

        assert found == [
            UniqueEntity(VALTAN, EntityType.BOSS),
            UniqueEntity(VYKAS, EntityType.BOSS),
            UniqueEntity(VERTUS, EntityType.GUARDIAN),
        ]

    async def test_type_subset(self, repository):
        await repository.insert(make_log(bosses=(VALTAN,)))
        await repository.insert(make_log(bosses=(VERTUS,), boss_type="GUARDIAN"))

        found = await repository.unique_entities([EntityType.GUARDIAN])

        assert found == [UniqueEntity(VERTUS, EntityType.GUARDIAN)]

    async def test_players_never_reported(self, repository):
        await repository.insert(make_log())

        found = await repository.unique_entities([EntityType.BOSS])

        assert all(entity.type is EntityType.BOSS for entity in found)
