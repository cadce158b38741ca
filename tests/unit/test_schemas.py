"""
Unit tests for the log document and filter models.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from dpslogs.modules.logs.constants import EntityType
from dpslogs.modules.logs.schemas import GroupRow, Log, LogFilter, SearchResult
from dpslogs.modules.shared.exceptions import ErrorKind, InvalidInputError
from tests.conftest import make_log, make_log_data


@pytest.mark.unit
class TestLogFilterParsing:
    """LogFilter.parse turns request data into a filter or InvalidInputError."""

    def test_defaults(self):
        f = LogFilter.parse({})

        assert f.bosses == ()
        assert f.classes == ()
        assert f.range == ()
        assert tuple(f.level) == (0, 60)
        assert tuple(f.gear_level) == (302, 1625)
        assert f.party_dps == 0
        assert f.key is None
        assert f.sort is None
        assert f.page == 0

    def test_wire_names_accepted(self):
        f = LogFilter.parse({"gearLevel": [1400, 1500], "partyDps": 1000, "bosses": [2, 1]})

        assert f.gear_level == (1400, 1500)
        assert f.party_dps == 1000
        assert f.bosses == (1, 2)

    def test_blank_key_means_no_key(self):
        assert LogFilter.parse({"key": "  "}).key is None

    def test_negative_page_clamped(self):
        assert LogFilter.parse({"page": -4}).page == 0

    def test_clamped_filter_stays_frozen(self):
        f = LogFilter(page=-1)

        assert f.page == 0
        with pytest.raises(ValidationError):
            f.page = 3

    @pytest.mark.parametrize(
        "direction,expected",
        [(1, 1), (-1, -1), ("asc", 1), ("DESC", -1)],
    )
    def test_sort_direction_normalized(self, direction, expected):
        assert LogFilter.parse({"sort": ["dps", direction]}).sort == ("dps", expected)

    def test_empty_sort_is_absent(self):
        assert LogFilter.parse({"sort": []}).sort is None

    def test_naive_range_treated_as_utc(self):
        f = LogFilter.parse({"range": ["2023-01-01T00:00:00", "2023-01-02T00:00:00"]})
        assert f.range[0] == datetime(2023, 1, 1, tzinfo=timezone.utc)
        assert f.has_range

    @pytest.mark.parametrize(
        "data",
        [
            {"level": [60, 0]},
            {"gearLevel": [1600, 1500]},
            {"sort": ["name", 1]},
            {"sort": ["dps", 2]},
            {"range": ["2023-01-01T00:00:00Z"]},
            {"range": ["2023-02-01T00:00:00Z", "2023-01-01T00:00:00Z"]},
            {"partyDps": -1},
        ],
    )
    def test_malformed_values_rejected(self, data):
        with pytest.raises(InvalidInputError) as exc_info:
            LogFilter.parse(data)

        assert exc_info.value.kind is ErrorKind.INVALID_INPUT

    def test_parse_passes_filter_through(self):
        f = LogFilter(page=2)
        assert LogFilter.parse(f) is f


@pytest.mark.unit
class TestLogDocument:
    def test_unknown_fields_preserved(self):
        log = make_log(encounterName="Valtan G2")

        assert log.to_document()["encounterName"] == "Valtan G2"
        assert log.to_document()["damageStatistics"]["totalDamageDealt"] == 180000

    def test_document_excludes_store_fields(self):
        log = make_log(creator="user-1").model_copy(update={"id": "abc"})

        document = log.to_document()
        assert "id" not in document
        assert "creator" not in document
        assert "createdAt" not in document

    def test_entity_helpers(self):
        log = make_log(bosses=(1, 2), players=((102, 60, 1500), (204, 60, 1510)))

        assert len(log.players()) == 2
        assert [e.npc_id for e in log.non_players()] == [1, 2]
        assert log.non_players()[0].type is EntityType.BOSS

    def test_wire_roundtrip_uses_aliases(self):
        data = Log.model_validate(make_log_data(dps=5.5)).to_dict()

        assert data["damageStatistics"]["dps"] == 5.5
        assert "npcId" in data["entities"][0]


@pytest.mark.unit
class TestResultTypes:
    def test_group_row_dict_is_iso(self):
        row = GroupRow(id="a", created_at=datetime(2023, 1, 1), dps=1.0)

        assert row.to_dict()["createdAt"] == "2023-01-01T00:00:00+00:00"
        assert GroupRow.from_dict(row.to_dict()) == GroupRow(
            id="a", created_at=datetime(2023, 1, 1, tzinfo=timezone.utc), dps=1.0
        )

    def test_search_result_payload_shape(self):
        result = SearchResult(total_found=3, page=0, total_pages=1, logs=[make_log()])

        payload = result.to_dict()
        assert set(payload) == {"found", "page", "pages", "logs"}
        assert payload["found"] == 3

    def test_page_count_rounds_up(self):
        assert SearchResult.page_count(15, 10) == 2
        assert SearchResult.page_count(0, 10) == 0
