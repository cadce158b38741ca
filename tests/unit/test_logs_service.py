"""
Unit tests for the LogsService facade.

End-to-end over SQLite + fake cache: submission, retrieval, search and
deletion through the public surface.
"""

import logging

import pytest

from dpslogs.core.config import Config
from dpslogs.core.logging.logger import ContextFilter, get_log_context
from dpslogs.modules.logs.repository import LogRepository
from dpslogs.modules.logs.service import LogsService
from dpslogs.modules.shared.exceptions import NotFoundError, ValidationFailedError
from tests.conftest import VALTAN, VERTUS, make_log_data


@pytest.fixture
def service(database, fake_cache, fake_users, registry):
    return LogsService(
        store=LogRepository(database),
        cache=fake_cache,
        users=fake_users,
        registry=registry,
        strict_validation=False,
    )


@pytest.mark.asyncio
class TestSubmission:
    async def test_submit_validates_then_stores(self, service, user):
        created = await service.submit_log(make_log_data(), creator_id=user.id)

        fetched = await service.get_log_by_id(created.id, bypass_cache=True)
        assert fetched.creator == user.id

    async def test_submit_ignores_client_identity_fields(self, service):
        data = make_log_data(creator="spoofed")
        data["id"] = "chosen-id"

        created = await service.submit_log(data, creator_id="user-1")

        assert created.id != "chosen-id"
        assert created.creator == "user-1"

    async def test_invalid_log_never_persisted(self, service, mocker):
        spy = mocker.spy(service.records, "create")

        with pytest.raises(ValidationFailedError):
            await service.submit_log(make_log_data(bosses=(999,)), creator_id="user-1")

        assert spy.call_count == 0
        assert (await service.get_filtered_logs({})).total_found == 0

    async def test_validate_log_returns_parsed_log(self, service):
        log = await service.validate_log(make_log_data(bosses=(VALTAN, VERTUS)))
        assert len(log.non_players()) == 2

    async def test_validate_log_rejects_unsupported_boss(self, service, mocker):
        spy = mocker.spy(service.records, "create")

        with pytest.raises(ValidationFailedError) as exc_info:
            await service.validate_log(make_log_data(bosses=(999,)))

        assert exc_info.value.message == "999 is not a supported boss"
        assert spy.call_count == 0


@pytest.mark.asyncio
class TestQueries:
    async def test_filtered_logs_use_configured_page_size(self, service, monkeypatch):
        monkeypatch.setattr(Config, "SEARCH_PAGE_SIZE", 2)
        for dps in (1, 2, 3):
            await service.submit_log(make_log_data(dps=dps), creator_id="user-1")

        result = await service.get_filtered_logs({})

        assert result.total_pages == 2
        assert [log.dps for log in result.logs] == [3, 2]

    async def test_unique_entities(self, service):
        await service.submit_log(make_log_data(bosses=(VALTAN,)))
        await service.submit_log(make_log_data(bosses=(VERTUS,), boss_type="GUARDIAN"))

        found = await service.get_unique_entities()

        assert {(e.npc_id, e.type.value) for e in found} == {(VALTAN, "BOSS"), (VERTUS, "GUARDIAN")}


@pytest.mark.asyncio
class TestDeletion:
    async def test_delete_log(self, service):
        created = await service.submit_log(make_log_data())
        await service.get_log_by_id(created.id)

        assert await service.delete_log(created.id) is True

        with pytest.raises(NotFoundError):
            await service.get_log_by_id(created.id)

    async def test_delete_all_user_logs(self, service):
        for _ in range(3):
            await service.submit_log(make_log_data(), creator_id="user-1")
        await service.submit_log(make_log_data(), creator_id="user-2")

        assert await service.delete_all_user_logs("user-1") == 3
        assert (await service.get_filtered_logs({}, page_size=10)).total_found == 1


@pytest.mark.asyncio
class TestOperationContext:
    async def test_records_carry_operation_name(self, service, mocker):
        captured = []

        async def fake_search(log_filter, page_size):
            record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
            ContextFilter().filter(record)
            captured.append((record.operation, record.component))
            return mocker.MagicMock()

        mocker.patch.object(service.searcher, "search", side_effect=fake_search)

        await service.get_filtered_logs({})

        assert captured == [("get_filtered_logs", "logs")]
        assert get_log_context() == {}
