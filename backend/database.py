import logging
import sqlite3
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional

from config import get_settings
from errors import InvalidSample, StoreUnavailable
from granularity import now_ms
from schemas import FAILED_LATENCY, Sample, Status

logger = logging.getLogger(__name__)


class SampleStore:
    """Per-entity, time-ordered latency samples backed by sqlite.

    Each entity has one series. Writes refresh the series expiry; a series whose
    expiry has passed reads as empty and is dropped on the next read.
    """

    def __init__(
        self,
        db_path: str,
        retention_ms: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.db_path = db_path
        self.retention_ms = retention_ms if retention_ms is not None else get_settings().retention_ms
        self.clock = clock
        self._schema_ready = False

    def get_connection(self) -> sqlite3.Connection:
        """Get a SQLite connection with appropriate settings."""
        conn = sqlite3.connect(self.db_path, timeout=5.0)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def get_db(self):
        """
        Context manager for database connections; sqlite errors become StoreUnavailable.

        Tables are created on the first successful connection, so an unreachable
        path fails the operation that needed it rather than construction.
        """
        try:
            conn = self.get_connection()
        except sqlite3.Error as e:
            raise StoreUnavailable(f"Cannot open store at {self.db_path}: {e}") from e
        try:
            if not self._schema_ready:
                self._create_schema(conn)
                self._schema_ready = True
            yield conn
        except sqlite3.Error as e:
            raise StoreUnavailable(str(e)) from e
        finally:
            conn.close()

    def init_db(self):
        """Initialize the database with required tables."""
        with self.get_db():
            pass

    def _create_schema(self, conn: sqlite3.Connection):
        cursor = conn.cursor()

        # id records arrival order, which breaks timestamp ties
        cursor.execute('''
        CREATE TABLE IF NOT EXISTS samples (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            entity_id TEXT NOT NULL,
            timestamp_ms INTEGER NOT NULL,
            latency_ms INTEGER NOT NULL,
            status TEXT NOT NULL
        )
        ''')

        cursor.execute('''
        CREATE INDEX IF NOT EXISTS idx_samples_entity_ts ON samples(entity_id, timestamp_ms)
        ''')

        cursor.execute('''
        CREATE TABLE IF NOT EXISTS series (
            entity_id TEXT PRIMARY KEY,
            expires_at_ms INTEGER NOT NULL
        )
        ''')

        conn.commit()

    def append(self, entity_id: str, sample: Optional[Sample]) -> None:
        if not entity_id:
            raise InvalidSample("entityId required")
        if sample is None or sample.latency_ms is None:
            raise InvalidSample("latencyMs required")

        expires_at = self.clock() + self.retention_ms
        with self.get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO samples (entity_id, timestamp_ms, latency_ms, status) VALUES (?, ?, ?, ?)",
                (entity_id, sample.timestamp, sample.latency_ms, sample.status.value),
            )
            cursor.execute(
                """
                INSERT INTO series (entity_id, expires_at_ms) VALUES (?, ?)
                ON CONFLICT(entity_id) DO UPDATE SET expires_at_ms = excluded.expires_at_ms
                """,
                (entity_id, expires_at),
            )
            conn.commit()

    def _drop_if_expired(self, conn: sqlite3.Connection, entity_id: str) -> bool:
        """Remove a series whose expiry has passed. Returns True if the series is gone or absent."""
        cursor = conn.cursor()
        cursor.execute("SELECT expires_at_ms FROM series WHERE entity_id = ?", (entity_id,))
        row = cursor.fetchone()
        if row is None:
            return True
        if row["expires_at_ms"] > self.clock():
            return False

        logger.info("Series %s expired, dropping it", entity_id)
        cursor.execute("DELETE FROM samples WHERE entity_id = ?", (entity_id,))
        cursor.execute("DELETE FROM series WHERE entity_id = ?", (entity_id,))
        conn.commit()
        return True

    def range_query(self, entity_id: str, from_ts: int, to_ts: int) -> List[Sample]:
        """Samples with from_ts <= timestamp <= to_ts, ordered by timestamp then arrival."""
        with self.get_db() as conn:
            if self._drop_if_expired(conn, entity_id):
                return []

            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT timestamp_ms, latency_ms, status
                FROM samples
                WHERE entity_id = ? AND timestamp_ms >= ? AND timestamp_ms <= ?
                ORDER BY timestamp_ms, id
                """,
                (entity_id, from_ts, to_ts),
            )
            return [
                Sample(
                    entity_id=entity_id,
                    timestamp=row["timestamp_ms"],
                    latency_ms=row["latency_ms"],
                    status=Status(row["status"]),
                )
                for row in cursor.fetchall()
            ]

    def prune(self, entity_id: str, older_than: int) -> int:
        """Delete samples with timestamp < older_than. Returns the number removed."""
        with self.get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "DELETE FROM samples WHERE entity_id = ? AND timestamp_ms < ?",
                (entity_id, older_than),
            )
            removed = cursor.rowcount
            conn.commit()

        if removed:
            logger.debug("Pruned %d samples from %s older than %d", removed, entity_id, older_than)
        return removed

    def downsample(self, entity_id: str, from_ts: int, to_ts: int, bucket_ms: int) -> List[Dict[str, float]]:
        """
        Average latency per time bucket, failed probes excluded.

        Args:
            entity_id: Series to read
            from_ts: Start timestamp in milliseconds (inclusive)
            to_ts: End timestamp in milliseconds (inclusive)
            bucket_ms: Bucket width in milliseconds

        Returns:
            list: {"timestamp": bucket_start, "latency": avg} ordered by bucket
        """
        with self.get_db() as conn:
            if self._drop_if_expired(conn, entity_id):
                return []

            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT (timestamp_ms / ?) * ? as bucket_start, AVG(latency_ms) as avg_latency
                FROM samples
                WHERE entity_id = ? AND timestamp_ms >= ? AND timestamp_ms <= ? AND latency_ms != ?
                GROUP BY bucket_start
                ORDER BY bucket_start
                """,
                (bucket_ms, bucket_ms, entity_id, from_ts, to_ts, FAILED_LATENCY),
            )
            return [{"timestamp": int(row[0]), "latency": float(row[1])} for row in cursor.fetchall()]


_store: Optional[SampleStore] = None


def get_store() -> SampleStore:
    """Process-wide store at the configured path."""
    global _store
    if _store is None:
        _store = SampleStore(get_settings().DATABASE_PATH)
    return _store
