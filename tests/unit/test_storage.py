"""
Unit tests for SQLite storage and the storage manager.
"""

import sqlite3

import pytest

from dutch_auction.core.auction import AuctionRecord, TokenRef
from dutch_auction.core.config import AuctionConfig
from dutch_auction.core.storage import SQLiteAdapter, StorageManager
from dutch_auction.crypto import address_from_label


def make_record(label, kicked_at=0, available=0):
    return AuctionRecord(
        auction_id="0x" + label.encode().hex().ljust(64, "0"),
        from_token=TokenRef(address=address_from_label(label), scaler=1, symbol=label),
        to_token=TokenRef(address=address_from_label("want"), scaler=1, symbol="WANT"),
        receiver=address_from_label("receiver"),
        kicked_at=kicked_at,
        initial_available=available,
        current_available=available,
    )


@pytest.fixture
def storage(tmp_path):
    manager = StorageManager(data_dir=tmp_path / "data")
    yield manager
    manager.close()


# =============================================================================
# SQLite Adapter Tests
# =============================================================================


class TestSQLiteAdapter:
    """Tests for the raw adapter."""

    def test_creates_parent_directory(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "nested" / "dir" / "a.db")
        assert (tmp_path / "nested" / "dir").exists()
        adapter.close()

    def test_meta(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "a.db")
        assert adapter.get_meta("missing") is None
        adapter.set_meta("k", "v1")
        adapter.set_meta("k", "v2")
        assert adapter.get_meta("k") == "v2"
        adapter.close()

    def test_positions(self, tmp_path):
        adapter = SQLiteAdapter(tmp_path / "a.db")
        assert adapter.next_position() == 0
        adapter.save_auction("0x01", "0xaa", 0, "{}")
        adapter.save_auction("0x02", "0xbb", 1, "{}")
        assert adapter.next_position() == 2
        assert adapter.get_position("0x02") == 1
        assert adapter.get_position("0x03") is None
        adapter.close()

    def test_large_take_amounts(self, tmp_path):
        """uint256 amounts survive storage."""
        adapter = SQLiteAdapter(tmp_path / "a.db")
        adapter.save_auction_with_take("0x01", "0xaa", 0, "{}", 5, 2**255, 2**200, "0xcc")
        takes = adapter.get_takes("0x01")
        assert takes == [{"timestamp": 5, "amount_taken": 2**255, "amount_needed": 2**200, "taker": "0xcc"}]
        adapter.close()


# =============================================================================
# Storage Manager Tests
# =============================================================================


class TestStorageManager:
    """Tests for registry persistence."""

    def test_empty(self, storage):
        assert storage.load_registry() is None
        assert storage.load_records() == []

    def test_registry_round_trip(self, storage):
        config = AuctionConfig.create(starting_price=123, has_minimum_price=True)
        storage.save_registry("0x" + "01" * 20, "0x" + "02" * 20, "0x" + "03" * 20, config)

        saved = storage.load_registry()
        assert saved["address"] == "0x" + "01" * 20
        assert saved["want"] == "0x" + "02" * 20
        assert saved["receiver"] == "0x" + "03" * 20
        assert saved["config"] == config

    def test_records_keep_enable_order(self, storage):
        for label in ("b", "a", "c"):
            storage.save_record(make_record(label))
        assert [r["from_token"]["symbol"] for r in storage.load_records()] == ["b", "a", "c"]

    def test_update_keeps_position(self, storage):
        first = make_record("a")
        storage.save_record(first)
        storage.save_record(make_record("b"))

        first.kicked_at = 99
        storage.save_record(first)

        rows = storage.load_records()
        assert [r["from_token"]["symbol"] for r in rows] == ["a", "b"]
        assert rows[0]["kicked_at"] == 99

    def test_record_round_trip(self, storage):
        record = make_record("a", kicked_at=10, available=2**180)
        storage.save_record(record)
        assert AuctionRecord.from_dict(storage.load_records()[0]) == record

    def test_delete(self, storage):
        record = make_record("a")
        storage.save_record(record)
        storage.delete_record(record.auction_id)
        assert storage.load_records() == []

    def test_record_take_writes_record_and_history(self, storage):
        record = make_record("a", kicked_at=10, available=100)
        storage.save_record(record)
        storage.save_record(make_record("b"))

        record.current_available = 40
        storage.record_take(record, 20, 60, 6, "0xcc")

        rows = storage.load_records()
        assert [r["from_token"]["symbol"] for r in rows] == ["a", "b"]
        assert rows[0]["current_available"] == 40
        assert storage.get_takes(record.auction_id)[0]["amount_taken"] == 60

    def test_record_take_is_all_or_nothing(self, storage):
        """A failed history insert leaves the saved record untouched."""
        record = make_record("a", kicked_at=10, available=100)
        storage.save_record(record)
        storage.adapter._get_conn().execute("DROP TABLE takes")

        record.current_available = 40
        with pytest.raises(sqlite3.OperationalError):
            storage.record_take(record, 20, 60, 6, "0xcc")

        assert storage.load_records()[0]["current_available"] == 100
