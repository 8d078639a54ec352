"""
Persistent Storage Module.

Provides SQLite-backed persistence for:
- Registry identity and configuration
- Auction records
- Take history
"""

from dutch_auction.core.storage.sqlite_adapter import SQLiteAdapter
from dutch_auction.core.storage.storage_manager import StorageManager

__all__ = ["SQLiteAdapter", "StorageManager"]
