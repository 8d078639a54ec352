import sqlite3
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from dutch_auction.utils.logger import get_logger

logger = get_logger("storage.sqlite")


class SQLiteAdapter:
    """
    SQLite backend for registry persistence.

    Provides:
    1. Registry metadata (address, settlement token, receiver, config)
    2. Auction records keyed by auction id
    3. Take history
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._conn_local = threading.local()

        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_schema()

    def _get_conn(self) -> sqlite3.Connection:
        """Get or create connection for current thread."""
        if not hasattr(self._conn_local, "conn"):
            self._conn_local.conn = sqlite3.connect(
                self.db_path,
                timeout=30.0,
                check_same_thread=False
            )
            self._conn_local.conn.row_factory = sqlite3.Row
            # WAL lets readers run alongside the single writer
            self._conn_local.conn.execute("PRAGMA journal_mode=WAL;")
            self._conn_local.conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn_local.conn

    def _init_schema(self):
        """Initialize database schema."""
        conn = self._get_conn()
        with conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS registry_state (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
            """)

            # One row per enabled auction; position keeps enable order
            conn.execute("""
                CREATE TABLE IF NOT EXISTS auctions (
                    auction_id TEXT PRIMARY KEY,
                    from_token TEXT NOT NULL UNIQUE,
                    position INTEGER NOT NULL,
                    data TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_auction_pos ON auctions(position);")

            # amounts are TEXT: uint256 does not fit INTEGER
            conn.execute("""
                CREATE TABLE IF NOT EXISTS takes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    auction_id TEXT NOT NULL,
                    timestamp INTEGER NOT NULL,
                    amount_taken TEXT NOT NULL,
                    amount_needed TEXT NOT NULL,
                    taker TEXT NOT NULL
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS idx_take_auction ON takes(auction_id);")

    def close(self):
        """Close the connection of the current thread."""
        conn = getattr(self._conn_local, "conn", None)
        if conn is not None:
            conn.close()
            del self._conn_local.conn

    # =========================================================================
    # Registry State Operations
    # =========================================================================

    def set_meta(self, key: str, value: str):
        conn = self._get_conn()
        with conn:
            conn.execute("INSERT OR REPLACE INTO registry_state (key, value) VALUES (?, ?)", (key, value))

    def get_meta(self, key: str) -> Optional[str]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT value FROM registry_state WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row['value'] if row else None

    # =========================================================================
    # Auction Operations
    # =========================================================================

    def save_auction(self, auction_id: str, from_token: str, position: int, data: str):
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO auctions (auction_id, from_token, position, data) VALUES (?, ?, ?, ?)",
                (auction_id, from_token, position, data)
            )

    def delete_auction(self, auction_id: str):
        conn = self._get_conn()
        with conn:
            conn.execute("DELETE FROM auctions WHERE auction_id = ?", (auction_id,))

    def get_all_auctions(self) -> List[Tuple[str, str]]:
        """Get all (auction_id, data) in enable order."""
        conn = self._get_conn()
        cursor = conn.execute("SELECT auction_id, data FROM auctions ORDER BY position ASC")
        return [(row['auction_id'], row['data']) for row in cursor]

    def get_position(self, auction_id: str) -> Optional[int]:
        conn = self._get_conn()
        cursor = conn.execute("SELECT position FROM auctions WHERE auction_id = ?", (auction_id,))
        row = cursor.fetchone()
        return row['position'] if row else None

    def next_position(self) -> int:
        conn = self._get_conn()
        cursor = conn.execute("SELECT COALESCE(MAX(position), -1) + 1 AS pos FROM auctions")
        return cursor.fetchone()['pos']

    # =========================================================================
    # Take History
    # =========================================================================

    def save_auction_with_take(
        self,
        auction_id: str,
        from_token: str,
        position: int,
        data: str,
        timestamp: int,
        amount_taken: int,
        amount_needed: int,
        taker: str,
    ):
        """Update an auction row and append its take in one transaction."""
        conn = self._get_conn()
        with conn:
            conn.execute(
                "INSERT OR REPLACE INTO auctions (auction_id, from_token, position, data) VALUES (?, ?, ?, ?)",
                (auction_id, from_token, position, data)
            )
            conn.execute(
                "INSERT INTO takes (auction_id, timestamp, amount_taken, amount_needed, taker) VALUES (?, ?, ?, ?, ?)",
                (auction_id, timestamp, str(amount_taken), str(amount_needed), taker)
            )

    def get_takes(self, auction_id: str) -> List[Dict[str, Any]]:
        conn = self._get_conn()
        cursor = conn.execute(
            "SELECT timestamp, amount_taken, amount_needed, taker FROM takes WHERE auction_id = ? ORDER BY id ASC",
            (auction_id,)
        )
        return [
            {
                "timestamp": row['timestamp'],
                "amount_taken": int(row['amount_taken']),
                "amount_needed": int(row['amount_needed']),
                "taker": row['taker'],
            }
            for row in cursor
        ]
