import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from dutch_auction.core.auction.record import AuctionRecord
from dutch_auction.core.config import AuctionConfig
from dutch_auction.core.storage.sqlite_adapter import SQLiteAdapter
from dutch_auction.utils.logger import get_logger

logger = get_logger("storage.manager")


class StorageManager:
    """
    Manages persistent storage for an auction registry.

    Coordinates data persistence using SQLite adapter.
    Handles:
    - Registry identity and configuration
    - Auction records (one row per enabled sell token)
    - Take history
    """

    def __init__(self, data_dir: Path, db_name: str = "auctions.db"):
        self.data_dir = Path(data_dir)
        self.db_path = self.data_dir / db_name
        self.adapter = SQLiteAdapter(self.db_path)

        logger.info(f"StorageManager initialized at {self.db_path}")

    def close(self):
        self.adapter.close()

    # =========================================================================
    # Registry Metadata
    # =========================================================================

    def save_registry(self, address: str, want: str, receiver: str, config: AuctionConfig):
        """Save the registry identity and its configuration."""
        self.adapter.set_meta("address", address)
        self.adapter.set_meta("want", want)
        self.adapter.set_meta("receiver", receiver)
        self.save_config(config)

    def save_config(self, config: AuctionConfig):
        self.adapter.set_meta("config", config.model_dump_json())

    def load_registry(self) -> Optional[Dict[str, Any]]:
        """
        Load the registry identity and configuration.

        Returns:
            Dict with address, want, receiver, config; None if never saved
        """
        address = self.adapter.get_meta("address")
        raw_config = self.adapter.get_meta("config")
        if address is None or raw_config is None:
            return None
        return {
            "address": address,
            "want": self.adapter.get_meta("want"),
            "receiver": self.adapter.get_meta("receiver"),
            "config": AuctionConfig.model_validate_json(raw_config),
        }

    # =========================================================================
    # Auction Records
    # =========================================================================

    def _position_of(self, auction_id: str) -> int:
        position = self.adapter.get_position(auction_id)
        return self.adapter.next_position() if position is None else position

    def save_record(self, record: AuctionRecord, position: Optional[int] = None):
        """Insert or update a record; new records go after existing ones."""
        if position is None:
            position = self._position_of(record.auction_id)
        self.adapter.save_auction(
            record.auction_id,
            record.from_token.address,
            position,
            json.dumps(record.to_dict()),
        )

    def delete_record(self, auction_id: str):
        self.adapter.delete_auction(auction_id)

    def load_records(self) -> List[Dict[str, Any]]:
        """Serialized records in enable order."""
        return [json.loads(data) for _, data in self.adapter.get_all_auctions()]

    # =========================================================================
    # Take History
    # =========================================================================

    def record_take(self, record: AuctionRecord, timestamp: int, amount_taken: int, amount_needed: int, taker: str):
        """Save the updated record together with its take; neither is written alone."""
        self.adapter.save_auction_with_take(
            record.auction_id,
            record.from_token.address,
            self._position_of(record.auction_id),
            json.dumps(record.to_dict()),
            timestamp,
            amount_taken,
            amount_needed,
            taker,
        )

    def get_takes(self, auction_id: str) -> List[Dict[str, Any]]:
        return self.adapter.get_takes(auction_id)
