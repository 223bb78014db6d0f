"""
Schema validation for table specifications.

Confirms, through information_schema only, that a table and every column a
specification names exist before any mutating statement is issued.
"""

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from colshuffle.specs import TableSpec

logger = logging.getLogger(__name__)

UNIQUE_KEYS = ('PRI', 'UNI')
ON_UPDATE_MARKER = 'on update'


class ValidationResult:
    """Outcome of validating one table specification."""

    def __init__(self, spec: TableSpec):
        self.spec = spec
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.pinned_columns: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def __bool__(self):
        return self.ok

    def __repr__(self):
        return f"ValidationResult(table={self.spec.table!r}, ok={self.ok}, errors={self.errors!r})"


def table_exists(conn: Connection, database: str, table: str) -> bool:
    row = conn.execute(text(
        "SELECT TABLE_NAME FROM information_schema.TABLES "
        "WHERE TABLE_SCHEMA = :database AND TABLE_NAME = :table"
    ), {'database': database, 'table': table}).first()
    return row is not None


def get_column_rows(conn: Connection, database: Optional[str], table: str) -> List[Mapping]:
    """
    Catalog rows (column_name, column_key, extra) for a table, in ordinal
    order. ``database`` None means the connection's default database.
    """
    schema_clause = "TABLE_SCHEMA = :database" if database else "TABLE_SCHEMA = DATABASE()"
    params = {'table': table}
    if database:
        params['database'] = database
    return conn.execute(text(
        "SELECT COLUMN_NAME AS column_name, COLUMN_KEY AS column_key, EXTRA AS extra "
        "FROM information_schema.COLUMNS "
        f"WHERE {schema_clause} AND TABLE_NAME = :table "
        "ORDER BY ORDINAL_POSITION"
    ), params).mappings().all()


def get_table_columns(conn: Connection, database: str, table: str) -> Optional[Dict[str, str]]:
    """
    Fetch a table's columns from the catalog.

    Returns:
        {column_name: column_key} in ordinal order, where column_key is
        'PRI', 'UNI', 'MUL' or ''; None if the table does not exist
    """
    if not table_exists(conn, database, table):
        return None

    rows = get_column_rows(conn, database, table)
    return {r['column_name']: r['column_key'] or '' for r in rows}


def auto_update_columns(rows: Sequence[Mapping], spec: TableSpec) -> Tuple[str, ...]:
    """
    Non-target columns MySQL rewrites on every row update
    (``ON UPDATE CURRENT_TIMESTAMP``).
    """
    skip = set(spec.columns) | {spec.id_column}
    return tuple(
        r['column_name'] for r in rows
        if ON_UPDATE_MARKER in (r.get('extra') or '').lower() and r['column_name'] not in skip
    )


def validate_table(conn: Connection, database: str, spec: TableSpec) -> ValidationResult:
    """
    Check that the table, identifier column and target columns all exist.

    Every missing target column is reported, not just the first one. Columns
    with automatic update timestamps are recorded on the result so the
    shuffle can leave them alone.
    """
    result = ValidationResult(spec)

    try:
        if table_exists(conn, database, spec.table):
            rows = get_column_rows(conn, database, spec.table)
            columns = {r['column_name']: r['column_key'] or '' for r in rows}
        else:
            rows, columns = [], None
    except SQLAlchemyError as e:
        result.errors.append(
            f"Table '{spec.table}' could not be inspected in database '{database}': "
            f"{getattr(e, 'orig', None) or e}"
        )
        return result

    if columns is None:
        result.errors.append(f"Table '{spec.table}' not found in database '{database}'")
        return result

    if spec.id_column not in columns:
        result.errors.append(f"ID column '{spec.id_column}' not found in table '{spec.table}'")
    elif columns[spec.id_column] not in UNIQUE_KEYS:
        result.warnings.append(
            f"ID column '{spec.id_column}' in table '{spec.table}' has no primary or unique key; "
            f"uniqueness will be checked before shuffling"
        )

    for col in spec.columns:
        if col not in columns:
            result.errors.append(f"Column '{col}' not found in table '{spec.table}'")

    result.pinned_columns = auto_update_columns(rows, spec)
    if result.pinned_columns:
        logger.debug(f"Columns with automatic update timestamps in '{spec.table}': {result.pinned_columns}")

    for message in result.errors:
        logger.debug(message)
    return result
