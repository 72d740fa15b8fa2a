# tests/test_repositories.py

"""
Repository Tests - in-memory store, record normalization and the
Snowflake repository with a mocked query layer
"""

import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from djrank.core.exceptions import DuplicateEntityException
from djrank.repositories.base import filter_writable, generate_performer_id, normalize_record
from djrank.repositories.memory_repository import InMemoryPerformerRepository
from djrank.repositories.performer_repository import SnowflakePerformerRepository



# NORMALIZATION TESTS


class TestNormalizeRecord:

    def test_json_columns_parsed(self):
        record = normalize_record({
            "id": 17,
            "name": "DJ",
            "criteria": '{"flow": 2}',
            "photos": '["a.jpg"]',
            "videos": None,
        })
        assert record["id"] == "17"
        assert record["criteria"] == {"flow": 2}
        assert record["photos"] == ["a.jpg"]
        assert record["videos"] == []

    def test_unreadable_json_defaults(self):
        record = normalize_record({"id": "1", "criteria": "{not json", "photos": ""})
        assert record["criteria"] == {}
        assert record["photos"] == []

    def test_flags_become_bools(self):
        record = normalize_record({"id": "1", "bonus_bold_risks": 1, "penalty_poor_energy": None})
        assert record["bonus_bold_risks"] is True
        assert record["penalty_poor_energy"] is False

    @pytest.mark.parametrize("tier, expected", [("S", "S"), ("F", "F"), ("Z", None), ("", None), (None, None)])
    def test_tier_validated(self, tier, expected):
        assert normalize_record({"id": "1", "tier": tier})["tier"] == expected

    def test_unknown_columns_dropped(self):
        assert "score" not in normalize_record({"id": "1", "score": 99})

    def test_filter_writable(self):
        assert filter_writable({"id": "1", "name": "DJ", "created_at": "x", "junk": 1}) == {"name": "DJ"}

    def test_generated_id_is_millis(self):
        performer_id = generate_performer_id()
        assert performer_id.isdigit()
        assert len(performer_id) >= 13



# IN-MEMORY REPOSITORY TESTS


class TestInMemoryRepository:

    def test_create_assigns_id_and_timestamps(self, repository):
        record = repository.create({"name": "DJ"})
        assert record["id"]
        assert record["created_at"] == record["updated_at"]
        assert record["tier"] is None
        assert record["criteria"] == {}

    def test_caller_timestamps_ignored(self, repository):
        old = datetime(2001, 1, 1, tzinfo=timezone.utc)
        record = repository.create({"name": "DJ", "created_at": old})
        assert record["created_at"] > old

    def test_duplicate_id(self, repository):
        repository.create({"id": "1", "name": "DJ"})
        with pytest.raises(DuplicateEntityException):
            repository.create({"id": "1", "name": "Other"})

    def test_generated_ids_unique(self, repository):
        ids = {repository.create({"name": f"DJ {i}"})["id"] for i in range(20)}
        assert len(ids) == 20

    def test_list_newest_first(self, repository):
        for i in range(3):
            repository.create({"id": str(i), "name": f"DJ {i}"})
        assert [r["id"] for r in repository.list_all()] == ["2", "1", "0"]

    def test_update_merges(self, repository):
        repository.create({"id": "1", "name": "DJ", "notes": "keep"})
        record = repository.update("1", {"tier": "A"})
        assert record["tier"] == "A"
        assert record["notes"] == "keep"
        assert record["updated_at"] >= record["created_at"]

    def test_update_unknown(self, repository):
        assert repository.update("nope", {"tier": "A"}) is None

    def test_update_ignores_id_change(self, repository):
        repository.create({"id": "1", "name": "DJ"})
        repository.update("1", {"id": "2"})
        assert repository.get_by_id("2") is None
        assert repository.get_by_id("1") is not None

    def test_returns_copies(self, repository):
        repository.create({"id": "1", "name": "DJ", "photos": ["a.jpg"]})
        record = repository.get_by_id("1")
        record["photos"].append("b.jpg")
        assert repository.get_by_id("1")["photos"] == ["a.jpg"]

    def test_delete(self, repository):
        repository.create({"id": "1", "name": "DJ"})
        assert repository.delete("1") is True
        assert repository.delete("1") is False
        assert repository.list_all() == []

    def test_seed_records(self):
        repository = InMemoryPerformerRepository([{"id": "a", "name": "A"}, {"id": "b", "name": "B"}])
        assert {r["id"] for r in repository.list_all()} == {"a", "b"}

    def test_clear(self, seeded_repository):
        seeded_repository.clear()
        assert seeded_repository.list_all() == []



# SNOWFLAKE REPOSITORY TESTS


SNOWFLAKE_ROW = {
    "ID": "1001",
    "NAME": "Queued DJ",
    "TIER": None,
    "CRITERIA": '{"flow": 1}',
    "PHOTOS": "[]",
    "VIDEOS": None,
    "BONUS_CROWD_CONTROL": False,
    "CREATED_AT": datetime(2024, 5, 1, 12, 0),
    "UPDATED_AT": datetime(2024, 5, 1, 12, 0),
}


class TestSnowflakeRepository:
    """Query building and row mapping with execute_query mocked."""

    @pytest.fixture
    def repo(self):
        return SnowflakePerformerRepository("performers")

    def test_list_all(self, repo):
        with patch.object(repo, "execute_query", return_value=[SNOWFLAKE_ROW]) as mock_query:
            records = repo.list_all()
        sql = mock_query.call_args[0][0]
        assert "ORDER BY created_at DESC" in sql
        assert records[0]["id"] == "1001"
        assert records[0]["criteria"] == {"flow": 1}
        assert records[0]["created_at"].tzinfo == timezone.utc

    def test_get_by_id_missing(self, repo):
        with patch.object(repo, "execute_query", return_value=None):
            assert repo.get_by_id("404") is None

    def test_create_serializes_json(self, repo):
        with patch.object(repo, "execute_query", side_effect=[1, SNOWFLAKE_ROW]) as mock_query:
            record = repo.create({"id": "1001", "name": "Queued DJ", "criteria": {"flow": 1}, "score": 3})
        insert_sql, params = mock_query.call_args_list[0][0][:2]
        assert "MERGE INTO performers" in insert_sql
        assert "WHEN NOT MATCHED THEN" in insert_sql
        assert "score" not in insert_sql
        assert params[0] == "1001"
        assert json.dumps({"flow": 1}) in params
        assert record["name"] == "Queued DJ"

    def test_create_placeholders_match_params(self, repo):
        with patch.object(repo, "execute_query", side_effect=[1, SNOWFLAKE_ROW]) as mock_query:
            repo.create({"name": "Queued DJ"})
        insert_sql, params = mock_query.call_args_list[0][0][:2]
        assert insert_sql.count("%s") == len(params)
        assert params[0] == params[1]

    def test_create_existing_id_is_duplicate(self, repo):
        # MERGE inserts nothing when the id is taken
        with patch.object(repo, "execute_query", return_value=0) as mock_query:
            with pytest.raises(DuplicateEntityException):
                repo.create({"id": "1001", "name": "Second Copy"})
        assert mock_query.call_count == 1

    def test_update_writes_only_given_columns(self, repo):
        with patch.object(repo, "execute_query", side_effect=[1, SNOWFLAKE_ROW]) as mock_query:
            repo.update("1001", {"tier": "A"})
        update_sql, params = mock_query.call_args_list[0][0][:2]
        assert "TIER = %s" in update_sql
        assert "UPDATED_AT = %s" in update_sql
        assert "NAME" not in update_sql
        assert params[0] == "A"
        assert params[-1] == "1001"

    def test_update_no_match(self, repo):
        with patch.object(repo, "execute_query", return_value=0):
            assert repo.update("404", {"tier": "A"}) is None

    def test_delete(self, repo):
        with patch.object(repo, "execute_query", return_value=1):
            assert repo.delete("1001") is True
        with patch.object(repo, "execute_query", return_value=0):
            assert repo.delete("1001") is False

    def test_ping(self, repo):
        with patch.object(repo, "execute_query", return_value={"OK": 1}):
            assert repo.ping() is True
