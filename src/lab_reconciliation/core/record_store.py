# ============================================================================
# src/lab_reconciliation/core/record_store.py
# ============================================================================
"""
SQLite Record Store

Persists test records, result lines, canonical items and aliases.
Raw sqlite3, one connection per operation, JSON for list fields.
Inside transaction() all calls on the same thread share one connection and
commit together.
"""

import json
import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Iterator, List, Optional

from ..constants import UNMAPPED_CATEGORY
from ..utils.exceptions import PersistenceError
from .context import (
    AliasEntry,
    CanonicalItem,
    ResultStatus,
    TestRecordHeader,
    TestResultLine,
)
from .store_base import RecordStore

logger = logging.getLogger(__name__)

# Default location alongside other data DBs
DEFAULT_DB_PATH = Path(__file__).parent.parent.parent.parent / "data" / "lab_records.db"


def _to_date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


class SQLiteRecordStore(RecordStore):
    """
    SQLite-backed record store.

    Lines are unique on (record_id, canonical_id) and cascade-delete with
    their header. Canonical items with dependent lines cannot be deleted.
    """

    supports_transactions = True

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self._local = threading.local()
        self._init_database()

    # ------------------------------------------------------------------
    # Connections
    # ------------------------------------------------------------------
    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        tx_conn = getattr(self._local, 'conn', None)
        if tx_conn is not None:
            try:
                yield tx_conn
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e
            return

        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(str(e)) from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator["SQLiteRecordStore"]:
        """Atomic block. Nested calls join the outer transaction."""
        if getattr(self._local, 'conn', None) is not None:
            yield self
            return

        conn = self._connect()
        self._local.conn = conn
        try:
            yield self
            conn.commit()
        except Exception:
            conn.rollback()
            logger.warning("Transaction rolled back")
            raise
        finally:
            self._local.conn = None
            conn.close()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _init_database(self):
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = self._connect()
        cur = conn.cursor()

        cur.execute("""
            CREATE TABLE IF NOT EXISTS canonical_items (
                id              TEXT PRIMARY KEY,
                name            TEXT NOT NULL,
                display_name    TEXT,
                unit_default    TEXT,
                category        TEXT,
                organ_tags      TEXT NOT NULL DEFAULT '[]'
            )
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS item_aliases (
                alias           TEXT PRIMARY KEY COLLATE NOCASE,
                canonical_id    TEXT NOT NULL REFERENCES canonical_items(id) ON DELETE CASCADE,
                source_hint     TEXT,
                created_at      TEXT NOT NULL
            )
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS test_records (
                id              TEXT PRIMARY KEY,
                test_date       TEXT,
                hospital_name   TEXT,
                subject_id      TEXT,
                created_at      TEXT NOT NULL
            )
        """)

        cur.execute("""
            CREATE TABLE IF NOT EXISTS test_results (
                record_id           TEXT NOT NULL REFERENCES test_records(id) ON DELETE CASCADE,
                canonical_id        TEXT NOT NULL REFERENCES canonical_items(id),
                value               REAL NOT NULL,
                ref_min             REAL,
                ref_max             REAL,
                ref_text            TEXT,
                status              TEXT NOT NULL,
                unit                TEXT,
                raw_name            TEXT,
                raw_value           TEXT,
                source_document     TEXT,
                mapping_confidence  REAL,
                warnings            TEXT NOT NULL DEFAULT '[]',
                UNIQUE (record_id, canonical_id)
            )
        """)

        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_results_canonical
            ON test_results (canonical_id)
        """)
        cur.execute("""
            CREATE INDEX IF NOT EXISTS idx_records_subject
            ON test_records (subject_id)
        """)

        conn.commit()
        conn.close()
        logger.info(f"Record store initialized: {self.db_path}")

    # ------------------------------------------------------------------
    # Headers
    # ------------------------------------------------------------------
    def create_header(self, header: TestRecordHeader) -> TestRecordHeader:
        if not header.id:
            header.id = uuid.uuid4().hex
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO test_records (id, test_date, hospital_name, subject_id, created_at)
                VALUES (?, ?, ?, ?, ?)
            """, (
                header.id,
                header.test_date.isoformat() if header.test_date else None,
                header.hospital_name,
                header.subject_id,
                header.created_at.isoformat(),
            ))
        logger.info(f"Created test record {header.id}")
        return header

    def _row_to_header(self, row: sqlite3.Row) -> TestRecordHeader:
        return TestRecordHeader(
            id=row["id"],
            test_date=_to_date(row["test_date"]),
            hospital_name=row["hospital_name"],
            subject_id=row["subject_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_header(self, record_id: str) -> Optional[TestRecordHeader]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM test_records WHERE id = ?", (record_id,)).fetchone()
        return self._row_to_header(row) if row else None

    def list_headers(self, subject_id: Optional[str] = None) -> List[TestRecordHeader]:
        query = "SELECT * FROM test_records"
        params: list = []
        if subject_id:
            query += " WHERE subject_id = ?"
            params.append(subject_id)
        query += " ORDER BY test_date DESC, created_at DESC"

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_header(r) for r in rows]

    def update_header(
        self,
        record_id: str,
        test_date: Optional[date],
        hospital_name: Optional[str]
    ) -> None:
        with self._connection() as conn:
            conn.execute("""
                UPDATE test_records SET test_date = ?, hospital_name = ?
                WHERE id = ?
            """, (test_date.isoformat() if test_date else None, hospital_name, record_id))

    def delete_header(self, record_id: str) -> bool:
        """Delete a header by id. Returns True if a row was removed."""
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM test_records WHERE id = ?", (record_id,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.info(f"Deleted test record {record_id}")
        return deleted

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------
    def insert_lines(self, lines: List[TestResultLine]) -> None:
        rows = [(
            line.record_id,
            line.canonical_id,
            line.value,
            line.ref_min,
            line.ref_max,
            line.ref_text,
            line.status.value,
            line.unit,
            line.raw_name,
            line.raw_value,
            line.source_document,
            line.mapping_confidence,
            json.dumps(line.warnings),
        ) for line in lines]

        with self._connection() as conn:
            conn.executemany("""
                INSERT INTO test_results
                    (record_id, canonical_id, value, ref_min, ref_max, ref_text,
                     status, unit, raw_name, raw_value, source_document,
                     mapping_confidence, warnings)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (record_id, canonical_id) DO UPDATE SET
                    value = excluded.value,
                    ref_min = excluded.ref_min,
                    ref_max = excluded.ref_max,
                    ref_text = excluded.ref_text,
                    status = excluded.status,
                    unit = excluded.unit,
                    raw_name = excluded.raw_name,
                    raw_value = excluded.raw_value,
                    source_document = excluded.source_document,
                    mapping_confidence = excluded.mapping_confidence,
                    warnings = excluded.warnings
            """, rows)
        logger.info(f"Saved {len(rows)} result lines")

    def _row_to_line(self, row: sqlite3.Row) -> TestResultLine:
        return TestResultLine(
            record_id=row["record_id"],
            canonical_id=row["canonical_id"],
            value=row["value"],
            ref_min=row["ref_min"],
            ref_max=row["ref_max"],
            ref_text=row["ref_text"],
            status=ResultStatus(row["status"]),
            unit=row["unit"],
            raw_name=row["raw_name"],
            raw_value=row["raw_value"],
            source_document=row["source_document"],
            mapping_confidence=row["mapping_confidence"],
            warnings=json.loads(row["warnings"]),
        )

    def get_lines(self, record_id: str) -> List[TestResultLine]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT * FROM test_results WHERE record_id = ? ORDER BY rowid",
                (record_id,)
            ).fetchall()
        return [self._row_to_line(r) for r in rows]

    def reassign_line(self, from_record_id: str, canonical_id: str, to_record_id: str) -> None:
        with self._connection() as conn:
            cur = conn.execute("""
                UPDATE test_results SET record_id = ?
                WHERE record_id = ? AND canonical_id = ?
            """, (to_record_id, from_record_id, canonical_id))
            if cur.rowcount == 0:
                raise PersistenceError(
                    f"No line for {canonical_id} in record {from_record_id}"
                )

    def delete_line(self, record_id: str, canonical_id: str) -> bool:
        with self._connection() as conn:
            cur = conn.execute(
                "DELETE FROM test_results WHERE record_id = ? AND canonical_id = ?",
                (record_id, canonical_id)
            )
            return cur.rowcount > 0

    def count_lines_for_item(self, canonical_id: str) -> int:
        with self._connection() as conn:
            return conn.execute(
                "SELECT COUNT(*) FROM test_results WHERE canonical_id = ?",
                (canonical_id,)
            ).fetchone()[0]

    def move_item_lines(self, from_canonical_id: str, to_canonical_id: str) -> int:
        with self._connection() as conn:
            # Records that already carry the destination item keep their own line
            conn.execute("""
                DELETE FROM test_results
                WHERE canonical_id = ?
                  AND record_id IN (SELECT record_id FROM test_results WHERE canonical_id = ?)
            """, (from_canonical_id, to_canonical_id))
            cur = conn.execute(
                "UPDATE test_results SET canonical_id = ? WHERE canonical_id = ?",
                (to_canonical_id, from_canonical_id)
            )
            return cur.rowcount

    # ------------------------------------------------------------------
    # Vocabulary
    # ------------------------------------------------------------------
    def add_canonical_item(self, item: CanonicalItem) -> CanonicalItem:
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO canonical_items
                    (id, name, display_name, unit_default, category, organ_tags)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    name = excluded.name,
                    display_name = excluded.display_name,
                    unit_default = excluded.unit_default,
                    category = excluded.category,
                    organ_tags = excluded.organ_tags
            """, (
                item.id,
                item.name,
                item.display_name,
                item.unit_default,
                item.category,
                json.dumps(list(item.organ_tags)),
            ))
        return item

    def _row_to_item(self, row: sqlite3.Row) -> CanonicalItem:
        return CanonicalItem(
            id=row["id"],
            name=row["name"],
            display_name=row["display_name"],
            unit_default=row["unit_default"],
            category=row["category"],
            organ_tags=tuple(json.loads(row["organ_tags"])),
        )

    def get_canonical_item(self, canonical_id: str) -> Optional[CanonicalItem]:
        with self._connection() as conn:
            row = conn.execute("SELECT * FROM canonical_items WHERE id = ?", (canonical_id,)).fetchone()
        return self._row_to_item(row) if row else None

    def list_canonical_items(self, category: Optional[str] = None) -> List[CanonicalItem]:
        query = "SELECT * FROM canonical_items"
        params: list = []
        if category:
            query += " WHERE category = ?"
            params.append(category)
        query += " ORDER BY name"

        with self._connection() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_item(r) for r in rows]

    def delete_canonical_item(self, canonical_id: str) -> bool:
        with self._connection() as conn:
            cur = conn.execute("DELETE FROM canonical_items WHERE id = ?", (canonical_id,))
            return cur.rowcount > 0

    def ensure_unmapped_item(self, raw_name: str) -> CanonicalItem:
        name = raw_name.strip()
        with self._connection() as conn:
            row = conn.execute("""
                SELECT * FROM canonical_items
                WHERE category = ? AND name = ? COLLATE NOCASE
            """, (UNMAPPED_CATEGORY, name)).fetchone()
        if row:
            return self._row_to_item(row)

        item = CanonicalItem(
            id=f"unmapped-{uuid.uuid4().hex[:12]}",
            name=name,
            display_name=name,
            category=UNMAPPED_CATEGORY,
        )
        self.add_canonical_item(item)
        logger.info(f"Created unmapped item for '{name}'")
        return item

    def list_aliases(self) -> List[AliasEntry]:
        with self._connection() as conn:
            rows = conn.execute(
                "SELECT alias, canonical_id, source_hint FROM item_aliases ORDER BY created_at, alias"
            ).fetchall()
        return [AliasEntry(r["alias"], r["canonical_id"], r["source_hint"]) for r in rows]

    def upsert_alias(self, entry: AliasEntry) -> None:
        with self._connection() as conn:
            conn.execute("""
                INSERT INTO item_aliases (alias, canonical_id, source_hint, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT (alias) DO UPDATE SET
                    canonical_id = excluded.canonical_id,
                    source_hint = excluded.source_hint
            """, (entry.alias.strip(), entry.canonical_id, entry.source_hint, datetime.now().isoformat()))

    def reassign_aliases(self, from_canonical_id: str, to_canonical_id: str) -> int:
        with self._connection() as conn:
            cur = conn.execute(
                "UPDATE item_aliases SET canonical_id = ? WHERE canonical_id = ?",
                (to_canonical_id, from_canonical_id)
            )
            return cur.rowcount
