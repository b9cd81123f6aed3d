"""
SQL Store for the Asset Library.

Executes parameterized SQL statements through the application's SQLAlchemy
session. The workflow core only depends on the StoreResult contract, not on
which relational engine (SQLite or Postgres) sits underneath.

Usage:
    store = Store(db.session)
    result = store.execute(
        'SELECT id, qc_status FROM assets WHERE id = :asset_id',
        {'asset_id': 7}
    )
    for row in result.rows:
        print(row['qc_status'])
"""

import logging
from typing import Any, Dict, List, Mapping, NamedTuple, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from asset_library.errors import StoreError


logger = logging.getLogger(__name__)


class StoreResult(NamedTuple):
    """Outcome of a single statement."""

    rows: List[Dict[str, Any]]
    last_inserted_id: Optional[int]
    rows_affected: int


class Store:
    """
    Thin parameterized-SQL executor bound to a SQLAlchemy session.

    Statements take part in the session's current transaction; committing is
    the caller's responsibility. Failures are logged with driver detail and
    re-raised as StoreError, never retried.
    """

    def __init__(self, db_session):
        self.db_session = db_session

    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> StoreResult:
        """
        Execute a parameterized statement.

        Args:
            sql: SQL text using :name placeholders
            params: Mapping of placeholder values

        Returns:
            StoreResult with rows (as dicts), last inserted id and rowcount

        Raises:
            StoreError: If the underlying engine reports a failure
        """
        try:
            result = self.db_session.execute(text(sql), dict(params or {}))
        except SQLAlchemyError as e:
            logger.error(f'Store statement failed: {e}')
            raise StoreError(original=e) from e

        if result.returns_rows:
            return StoreResult(
                rows=[dict(row) for row in result.mappings().all()],
                last_inserted_id=None,
                rows_affected=0
            )

        return StoreResult(
            rows=[],
            last_inserted_id=getattr(result, 'lastrowid', None) or None,
            rows_affected=max(result.rowcount or 0, 0)
        )

    def fetch_one(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Optional[Dict[str, Any]]:
        """Execute a query and return its first row, or None."""
        rows = self.execute(sql, params).rows
        return rows[0] if rows else None
