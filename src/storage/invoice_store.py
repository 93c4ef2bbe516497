"""
Invoice Store Module.

This module provides a SQLite store of record for invoice rows. It
implements the two persistence interfaces the consistency engine's
callers rely on: fetching the full snapshot and deleting one record.

Features:
    - Automatic schema creation
    - Batch insert
    - Snapshot fetch as InvoiceRecord objects
    - Per-record delete reporting success or failure

Author: ML Engineering Team
"""

import sqlite3
from pathlib import Path
from typing import Dict, List, Optional

from config import get_config
from src.models import InvoiceRecord
from src.utils.exceptions import DatabaseError, MissingRecordIdError
from src.utils.helpers import ensure_directory
from src.utils.logger import get_logger

logger = get_logger(__name__)


COLUMNS = [
    'invoice_id',
    'date',
    'company_name',
    'amount_without_vat_eur',
    'vat_amount_eur',
    'vat_number',
    'company_number',
    'invoice_type',
    'vat_rate',
    'tax_code',
]


class InvoiceStore:
    """
    Handles database operations for invoice records.

    Amounts are stored as TEXT so Decimal values survive a round trip
    without float rounding. Storage ids are the SQLite row ids, exposed
    as strings.

    Attributes:
        db_path: Path to the SQLite database file
        table_name: Name of the invoices table

    Example:
        >>> store = InvoiceStore("outputs/invoices.db")
        >>> store.insert_batch(records)
        >>> snapshot = store.get_all()
        >>> store.delete(snapshot[0])
        True
    """

    def __init__(self, db_path: Optional[str] = None) -> None:
        """
        Initialize the store.

        Args:
            db_path: Path to database file. If None, uses configuration.
        """
        if db_path:
            self.db_path = Path(db_path)
        else:
            self.db_path = Path(get_config("paths.database", "outputs/invoices.db"))

        self.table_name = get_config("storage.table_name", "invoices")

        ensure_directory(self.db_path.parent)
        self._create_tables()

        logger.info(f"InvoiceStore initialized (db: {self.db_path})")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _create_tables(self) -> None:
        """Create the invoices table if it doesn't exist."""
        create_sql = f"""
        CREATE TABLE IF NOT EXISTS {self.table_name} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            invoice_id TEXT,
            date TEXT,
            company_name TEXT,
            amount_without_vat_eur TEXT,
            vat_amount_eur TEXT,
            vat_number TEXT,
            company_number TEXT,
            invoice_type TEXT DEFAULT 'P',
            vat_rate TEXT,
            tax_code TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """

        try:
            conn = self._connect()
            try:
                cursor = conn.cursor()
                cursor.execute(create_sql)
                cursor.execute(f"""
                    CREATE INDEX IF NOT EXISTS idx_{self.table_name}_invoice_id
                    ON {self.table_name} (invoice_id)
                """)
                conn.commit()
            finally:
                conn.close()

            logger.debug("Database tables created/verified")

        except sqlite3.Error as e:
            raise DatabaseError("create tables", str(e))

    @staticmethod
    def _to_row(record: InvoiceRecord) -> tuple:
        def text(value):
            return None if value is None else str(value)

        return (
            record.external_invoice_id,
            record.date,
            record.company_name,
            text(record.amount_excl_vat),
            text(record.vat_amount),
            record.vat_number,
            record.company_number,
            record.direction_code,
            text(record.vat_rate),
            record.tax_code,
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> InvoiceRecord:
        data: Dict[str, object] = dict(row)
        data['id'] = str(data['id'])
        data.pop('created_at', None)
        return InvoiceRecord.from_dict(data)

    def insert(self, record: InvoiceRecord) -> InvoiceRecord:
        """
        Insert a single record.

        Args:
            record: Record to insert; its id, if any, is ignored.

        Returns:
            The record carrying its new storage id.

        Raises:
            DatabaseError: If insertion fails.
        """
        insert_sql = f"""
        INSERT INTO {self.table_name} ({', '.join(COLUMNS)})
        VALUES ({', '.join('?' for _ in COLUMNS)})
        """

        try:
            conn = self._connect()
            try:
                cursor = conn.cursor()
                cursor.execute(insert_sql, self._to_row(record))
                conn.commit()
                row_id = cursor.lastrowid
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("insert", str(e))

        logger.debug(f"Inserted record: {record.external_invoice_id} (id {row_id})")
        return record.with_id(str(row_id))

    def insert_batch(self, records: List[InvoiceRecord]) -> List[InvoiceRecord]:
        """
        Insert multiple records.

        Args:
            records: Records to insert.

        Returns:
            The inserted records with their storage ids.
        """
        stored = [self.insert(record) for record in records]
        logger.info(f"Batch insert complete: {len(stored)} inserted")
        return stored

    def get_all(self) -> List[InvoiceRecord]:
        """
        Retrieve the full snapshot.

        Returns:
            All records, ordered by storage id.
        """
        query = f"SELECT * FROM {self.table_name} ORDER BY id"

        try:
            conn = self._connect()
            try:
                rows = conn.execute(query).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("get_all", str(e))

        records = [self._from_row(row) for row in rows]
        logger.debug(f"Fetched {len(records)} invoices")
        return records

    def get_count(self) -> int:
        """Get the total number of records in the database."""
        try:
            conn = self._connect()
            try:
                return conn.execute(f"SELECT COUNT(*) FROM {self.table_name}").fetchone()[0]
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("get_count", str(e))

    def delete(self, record: InvoiceRecord) -> bool:
        """
        Delete one record by storage id.

        Args:
            record: Record to delete.

        Returns:
            True if a row was deleted, False if it no longer exists.

        Raises:
            MissingRecordIdError: If the record has no storage id.
            DatabaseError: If the delete statement fails.
        """
        if record.id is None or not str(record.id).strip():
            raise MissingRecordIdError(record.external_invoice_id)

        try:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    f"DELETE FROM {self.table_name} WHERE id = ?",
                    (record.id,)
                )
                deleted = cursor.rowcount > 0
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise DatabaseError("delete", str(e))

        if deleted:
            logger.debug(f"Deleted record: {record.external_invoice_id} (id {record.id})")
        return deleted
