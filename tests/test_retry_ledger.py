"""Tests for the persistent retry ledger."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from autospec.core.exceptions import RetryExhaustedError, RetryLedgerError
from autospec.core.retry_ledger import RETRY_FILE_NAME, RetryLedger, RetryRecord, retry_key


class TestRetryRecord:
    """Test in-memory record behaviour."""

    def test_key_format(self):
        record = RetryRecord(spec_name="001-auth", phase="plan")
        assert record.key == "001-auth:plan"
        assert retry_key("001-auth", "plan") == record.key

    def test_increment_until_exhausted(self):
        record = RetryRecord(spec_name="s", phase="plan", max_retries=3)

        for expected in (1, 2, 3):
            record.increment()
            assert record.count == expected
            assert record.last_attempt is not None

        assert not record.can_retry()
        with pytest.raises(RetryExhaustedError) as exc_info:
            record.increment()

        assert record.count == 3
        assert exc_info.value.count == 3
        assert exc_info.value.max_retries == 3
        assert exc_info.value.exit_code == 2

    def test_zero_ceiling_is_immediately_exhausted(self):
        record = RetryRecord(spec_name="s", phase="plan", max_retries=0)

        assert not record.can_retry()
        with pytest.raises(RetryExhaustedError):
            record.increment()
        assert record.count == 0

    def test_reset_clears_count_and_timestamp(self):
        record = RetryRecord(spec_name="s", phase="plan", max_retries=3)
        record.increment()
        record.increment()

        record.reset()

        assert record.count == 0
        assert record.last_attempt is None
        assert record.remaining == 3

    def test_exhausted_error_mentions_reset_command(self):
        error = RetryExhaustedError("001-auth", "plan", 3, 3)
        assert "001-auth:plan" in str(error)
        assert error.reset_command == "autospec reset 001-auth --phase plan"


class TestRetryLedgerPersistence:
    """Test loading and saving the ledger file."""

    def test_load_missing_file_returns_fresh_record(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path / "state")

        record = ledger.load("001-auth", "plan", 3)

        assert record.count == 0
        assert record.last_attempt is None
        assert record.max_retries == 3
        assert not (tmp_path / "state").exists()

    def test_save_creates_directory_and_file(self, tmp_path: Path):
        state_dir = tmp_path / "nested" / "state"
        ledger = RetryLedger(state_dir)
        record = ledger.load("001-auth", "plan", 3)
        record.increment()

        ledger.save(record)

        data = json.loads((state_dir / RETRY_FILE_NAME).read_text())
        stored = data["retries"]["001-auth:plan"]
        assert stored["spec_name"] == "001-auth"
        assert stored["phase"] == "plan"
        assert stored["count"] == 1
        assert stored["max_retries"] == 3
        assert stored["last_attempt"] is not None

    def test_counts_survive_new_ledger_instances(self, tmp_path: Path):
        for expected in (1, 2, 3):
            record = RetryLedger(tmp_path).increment("001-auth", "plan", 3)
            assert record.count == expected

        with pytest.raises(RetryExhaustedError):
            RetryLedger(tmp_path).increment("001-auth", "plan", 3)

        assert RetryLedger(tmp_path).load("001-auth", "plan", 3).count == 3

    def test_current_ceiling_overrides_persisted(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path)
        ledger.increment("001-auth", "plan", 2)
        ledger.increment("001-auth", "plan", 2)

        record = ledger.load("001-auth", "plan", 5)

        assert record.count == 2
        assert record.max_retries == 5
        assert record.can_retry()

    def test_save_merges_with_other_records(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path)
        ledger.increment("001-auth", "plan", 3)
        ledger.increment("002-billing", "tasks", 3)
        ledger.increment("001-auth", "implement", 3)

        keys = [r.key for r in ledger.all_records()]
        assert keys == ["001-auth:implement", "001-auth:plan", "002-billing:tasks"]
        assert [r.phase for r in ledger.records_for_spec("001-auth")] == ["implement", "plan"]

    def test_save_does_not_lose_concurrent_writes_to_other_keys(self, tmp_path: Path):
        first = RetryLedger(tmp_path)
        second = RetryLedger(tmp_path)

        record = first.load("001-auth", "plan", 3)
        second.increment("002-billing", "tasks", 3)
        record.increment()
        first.save(record)

        assert second.load("002-billing", "tasks", 3).count == 1
        assert second.load("001-auth", "plan", 3).count == 1

    def test_reset_keeps_record_with_zero_count(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path)
        ledger.increment("001-auth", "plan", 3)

        ledger.reset("001-auth", "plan")

        data = json.loads((tmp_path / RETRY_FILE_NAME).read_text())
        assert data["retries"]["001-auth:plan"]["count"] == 0
        assert data["retries"]["001-auth:plan"]["last_attempt"] is None

    def test_saved_record_loads_back_equal(self, tmp_path: Path):
        record = RetryRecord(spec_name="001-auth", phase="plan", max_retries=3)
        record.increment()
        record.increment()

        RetryLedger(tmp_path).save(record)
        loaded = RetryLedger(tmp_path).load("001-auth", "plan", 3)

        assert loaded.model_dump() == record.model_dump()
        assert loaded.last_attempt == record.last_attempt

    def test_reset_is_idempotent(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path)

        fresh = ledger.reset("001-auth", "plan", 3)
        assert (fresh.count, fresh.last_attempt) == (0, None)

        ledger.increment("001-auth", "plan", 3)
        once = ledger.reset("001-auth", "plan", 3)
        twice = ledger.reset("001-auth", "plan", 3)

        assert once.model_dump() == twice.model_dump()
        assert ledger.load("001-auth", "plan", 3).model_dump() == twice.model_dump()
        assert twice.count == 0

    def test_no_temp_file_left_after_save(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path)
        ledger.increment("001-auth", "plan", 3)

        assert sorted(p.name for p in tmp_path.iterdir()) == [RETRY_FILE_NAME]


class TestRetryLedgerCorruption:
    """Test recovery from unreadable ledger files."""

    @pytest.mark.parametrize(
        "content",
        ["", "{not json", "[1, 2, 3]", '{"retries": {"x": {"count": "many"}}}'],
    )
    def test_corrupt_file_is_treated_as_empty(self, tmp_path: Path, content: str):
        (tmp_path / RETRY_FILE_NAME).write_text(content)
        ledger = RetryLedger(tmp_path)

        record = ledger.load("001-auth", "plan", 3)

        assert record.count == 0
        assert ledger.all_records() == []

    def test_null_retries_map_is_accepted(self, tmp_path: Path):
        (tmp_path / RETRY_FILE_NAME).write_text('{"retries": null}')

        assert RetryLedger(tmp_path).load("001-auth", "plan", 3).count == 0

    def test_corrupt_file_is_backed_up_on_save(self, tmp_path: Path):
        ledger_file = tmp_path / RETRY_FILE_NAME
        ledger_file.write_text("{garbage")
        ledger = RetryLedger(tmp_path)

        record = ledger.load("001-auth", "plan", 3)
        record.increment()
        ledger.save(record)

        backups = list(tmp_path.glob(f"{RETRY_FILE_NAME}.*.bak"))
        assert len(backups) == 1
        assert backups[0].read_text() == "{garbage"
        assert json.loads(ledger_file.read_text())["retries"]["001-auth:plan"]["count"] == 1


class TestRetryLedgerAtomicity:
    """Test that failed writes never damage the canonical file."""

    def test_failed_rename_leaves_previous_file_intact(self, tmp_path: Path):
        ledger = RetryLedger(tmp_path)
        ledger.increment("001-auth", "plan", 3)
        before = (tmp_path / RETRY_FILE_NAME).read_text()

        record = ledger.load("001-auth", "plan", 3)
        record.increment()
        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(RetryLedgerError):
                ledger.save(record)

        assert (tmp_path / RETRY_FILE_NAME).read_text() == before
        assert not (tmp_path / f"{RETRY_FILE_NAME}.tmp").exists()
        assert RetryLedger(tmp_path).load("001-auth", "plan", 3).count == 1

    def test_unwritable_state_dir_raises(self, tmp_path: Path):
        blocker = tmp_path / "state"
        blocker.write_text("not a directory")
        ledger = RetryLedger(blocker)

        record = ledger.load("001-auth", "plan", 3)
        with pytest.raises(RetryLedgerError):
            ledger.save(record)
