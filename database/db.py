"""
Database connection and query module.

Provides a clean interface for database operations with support
for both PostgreSQL and SQLite backends.
"""

import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import asyncpg
import aiosqlite

from config import config
from errors import ConcurrentModificationError
from models.payment import Payment

logger = logging.getLogger(__name__)


class Database:
    """
    Async database connection manager.

    Supports PostgreSQL (production) and SQLite (development).
    Provides connection pooling and query execution methods.
    """

    def __init__(self, database_url: Optional[str] = None):
        """
        Initialize database manager.

        Args:
            database_url: Database connection URL. Uses config if not provided.
        """
        self.database_url = database_url or config.database.url
        self._pool = None
        self._sqlite_conn = None
        self._is_postgres = self.database_url.startswith('postgresql')

    async def connect(self) -> None:
        """Establish database connection(s)."""
        if self._is_postgres:
            logger.info("Connecting to PostgreSQL database...")
            self._pool = await asyncpg.create_pool(
                self.database_url,
                min_size=2,
                max_size=10,
                command_timeout=60
            )
        else:
            # SQLite for development
            db_path = self.database_url.replace('sqlite:///', '')
            logger.info(f"Connecting to SQLite database: {db_path}")
            self._sqlite_conn = await aiosqlite.connect(db_path)
            self._sqlite_conn.row_factory = aiosqlite.Row

        logger.info("Database connection established")

    async def disconnect(self) -> None:
        """Close database connection(s)."""
        if self._is_postgres and self._pool:
            await self._pool.close()
            self._pool = None
        elif self._sqlite_conn:
            await self._sqlite_conn.close()
            self._sqlite_conn = None

        logger.info("Database connection closed")

    async def execute(self, query: str, *args) -> str:
        """
        Execute a query without returning results.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            Status message from database, e.g. ``UPDATE 1``
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                return await conn.execute(query, *args)
        else:
            cursor = await self._sqlite_conn.execute(self._convert_params(query), args)
            await self._sqlite_conn.commit()
            command = query.split(None, 1)[0].upper()
            return f"{command} {cursor.rowcount}"

    async def fetch_one(self, query: str, *args) -> Optional[Dict[str, Any]]:
        """
        Execute a query and fetch one row.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            Row as dictionary or None if no results
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(query, *args)
                return dict(row) if row else None
        else:
            # Convert $1, $2 style params to ? for SQLite
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            row = await cursor.fetchone()
            if row:
                columns = [d[0] for d in cursor.description]
                return dict(zip(columns, row))
            return None

    async def fetch_all(self, query: str, *args) -> List[Dict[str, Any]]:
        """
        Execute a query and fetch all rows.

        Args:
            query: SQL query to execute
            *args: Query parameters

        Returns:
            List of rows as dictionaries
        """
        if self._is_postgres:
            async with self._pool.acquire() as conn:
                rows = await conn.fetch(query, *args)
                return [dict(row) for row in rows]
        else:
            sqlite_query = self._convert_params(query)
            cursor = await self._sqlite_conn.execute(sqlite_query, args)
            rows = await cursor.fetchall()
            if rows:
                columns = [d[0] for d in cursor.description]
                return [dict(zip(columns, row)) for row in rows]
            return []

    def _convert_params(self, query: str) -> str:
        """Convert PostgreSQL $1, $2 style params to SQLite ? style."""
        return re.sub(r'\$\d+', '?', query)

    def _timestamp(self, value: datetime):
        """Timestamps are native for PostgreSQL and ISO strings for SQLite."""
        if self._is_postgres:
            return value.replace(tzinfo=None)
        return value.isoformat()

    async def init_schema(self) -> None:
        """Initialize database schema from schema.sql file."""
        schema_path = os.path.join(os.path.dirname(__file__), 'schema.sql')

        with open(schema_path, 'r') as f:
            schema = f.read()

        # Drop comment lines, then split by semicolons
        schema = '\n'.join(
            line for line in schema.splitlines()
            if not line.strip().startswith('--')
        )
        statements = [s.strip() for s in schema.split(';') if s.strip()]

        for statement in statements:
            if not self._is_postgres:
                statement = statement.replace('SERIAL', 'INTEGER')

            try:
                if self._is_postgres:
                    async with self._pool.acquire() as conn:
                        await conn.execute(statement)
                else:
                    await self._sqlite_conn.execute(statement)
            except Exception as e:
                # Log but continue - some statements may fail on re-run
                logger.debug(f"Schema statement skipped: {e}")

        if not self._is_postgres:
            await self._sqlite_conn.commit()

        logger.info("Database schema initialized")

    # -------------------------------------------------------------------------
    # Payment Operations
    # -------------------------------------------------------------------------

    async def find_payments_by_reference(self, reference_id: str) -> List[Payment]:
        """Get all payments with a merchant reference."""
        rows = await self.fetch_all(
            "SELECT * FROM payments WHERE reference_id = $1",
            reference_id
        )
        return [Payment.from_dict(row) for row in rows]

    async def save_payment(self, payment: Payment) -> Payment:
        """
        Insert or update a payment.

        Updates only succeed if the stored version still matches the
        version the payment was loaded with; the version is then bumped.

        Args:
            payment: Payment to persist

        Returns:
            The same payment with id, version and updated_at refreshed

        Raises:
            ConcurrentModificationError: If the row changed since it was loaded
        """
        now = datetime.now(timezone.utc)

        if payment.id is None:
            return await self._insert_payment(payment, now)

        status = await self.execute(
            """
            UPDATE payments
            SET transaction_id = $1, amount = $2, currency = $3, status = $4,
                order_id = $5, order_number = $6, payment_method = $7,
                version = version + 1, updated_at = $8
            WHERE id = $9 AND version = $10
            """,
            payment.transaction_id, str(payment.amount), payment.currency,
            payment.status.value, payment.order_id, payment.order_number,
            payment.payment_method, self._timestamp(now),
            payment.id, payment.version
        )

        if _affected_rows(status) != 1:
            logger.warning(
                f"Concurrent update detected for payment {payment.short_reference()} "
                f"(version {payment.version})"
            )
            raise ConcurrentModificationError(payment.reference_id, payment.version)

        payment.version += 1
        payment.updated_at = now
        return payment

    async def _insert_payment(self, payment: Payment, now: datetime) -> Payment:
        """Insert a new payment row at version 1."""
        args = (
            payment.reference_id, payment.transaction_id, str(payment.amount),
            payment.currency, payment.status.value, payment.order_id,
            payment.order_number, payment.payment_method,
            self._timestamp(now), self._timestamp(now)
        )

        if self._is_postgres:
            result = await self.fetch_one(
                """
                INSERT INTO payments
                    (reference_id, transaction_id, amount, currency, status,
                     order_id, order_number, payment_method, version,
                     created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 1, $9, $10)
                RETURNING id
                """,
                *args
            )
            payment.id = result['id']
        else:
            # SQLite path: insert and read back the last row id
            await self.execute(
                """
                INSERT INTO payments
                    (reference_id, transaction_id, amount, currency, status,
                     order_id, order_number, payment_method, version,
                     created_at, updated_at)
                VALUES ($1, $2, $3, $4, $5, $6, $7, $8, 1, $9, $10)
                """,
                *args
            )
            cursor = await self._sqlite_conn.execute("SELECT last_insert_rowid()")
            row = await cursor.fetchone()
            payment.id = row[0]

        payment.version = 1
        payment.created_at = now
        payment.updated_at = now
        logger.debug(f"Inserted payment {payment.short_reference()} (id {payment.id})")
        return payment


def _affected_rows(status: str) -> int:
    """Row count from a status string such as ``UPDATE 1``."""
    try:
        return int(status.rsplit(' ', 1)[-1])
    except (ValueError, AttributeError):
        return 0

