"""
Column shuffling.

Permutes the values of the target columns across all rows of a table while
every row keeps its identifier and its other columns. A single UPDATE cannot
draw values without replacement from the column it is writing, so the random
order is materialized first:

    1. copy the target columns into a temporary table in random order,
       numbering the rows with an AUTO_INCREMENT sequence column
    2. copy the identifiers into a second temporary table in identifier
       order, numbered the same way
    3. UPDATE the table joined to both copies on matching sequence numbers
    4. drop both temporary tables

Steps 1-3 run inside one transaction, so a table is either fully shuffled or
left untouched.
"""

import logging
import secrets
import time
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from colshuffle.exceptions import ShuffleError, SpecError
from colshuffle.schema import auto_update_columns, get_column_rows
from colshuffle.settings import SessionSettings, relaxed_session
from colshuffle.specs import MAX_IDENTIFIER_LENGTH, TableSpec, check_identifier, quote_identifier

logger = logging.getLogger(__name__)

SEQUENCE_COLUMN = '_shuffle_rn'


def temp_table_name(prefix: str, table: str, suffix: str) -> str:
    """Build a temporary table name that fits MySQL's 64-character limit."""
    room = MAX_IDENTIFIER_LENGTH - len(prefix) - len(suffix) - 2
    return f"{prefix}_{table[:room]}_{suffix}"


class ShufflePlan:
    """
    The statement sequence that shuffles one table.

    ``pinned_columns`` are non-target columns the UPDATE assigns to
    themselves, which stops MySQL from refreshing ``ON UPDATE`` timestamps.
    None means they have not been looked up yet and the UPDATE pins nothing.
    """

    def __init__(self, spec: TableSpec, seed: Optional[int] = None, suffix: Optional[str] = None,
                 pinned_columns: Optional[Sequence[str]] = None):
        if SEQUENCE_COLUMN in (spec.id_column,) + spec.columns:
            raise ShuffleError(f"Column name '{SEQUENCE_COLUMN}' is reserved for the shuffle sequence")

        self.spec = spec
        self.seed = seed
        self.pinned_columns = None
        if pinned_columns is not None:
            self.pin(pinned_columns)
        suffix = suffix or secrets.token_hex(4)
        self.shuffled_table = temp_table_name('_shuffle', spec.table, suffix)
        self.order_table = temp_table_name('_order', spec.table, suffix)

        table = quote_identifier(spec.table)
        id_col = quote_identifier(spec.id_column)
        cols = [quote_identifier(c) for c in spec.columns]
        seq = quote_identifier(SEQUENCE_COLUMN)
        shuffled = quote_identifier(self.shuffled_table)
        order = quote_identifier(self.order_table)

        self.params = {'seed': seed} if seed is not None else {}
        rand = "RAND(:seed)" if seed is not None else "RAND()"
        sequence_def = f"{seq} BIGINT UNSIGNED NOT NULL AUTO_INCREMENT PRIMARY KEY"

        self.count_sql = (
            f"SELECT COUNT(*) AS total, COUNT(DISTINCT {id_col}) AS distinct_ids FROM {table}"
        )
        self.create_shuffled_sql = (
            f"CREATE TEMPORARY TABLE {shuffled} ({sequence_def})\n"
            f"SELECT {', '.join(cols)}\n"
            f"FROM {table}\n"
            f"ORDER BY {rand}"
        )
        self.create_order_sql = (
            f"CREATE TEMPORARY TABLE {order} ({sequence_def})\n"
            f"SELECT {id_col}\n"
            f"FROM {table}\n"
            f"ORDER BY {id_col}"
        )
        self._update_head = (
            f"UPDATE {table} AS original\n"
            f"JOIN {order} AS orig_order ON original.{id_col} = orig_order.{id_col}\n"
            f"JOIN {shuffled} AS shuffled ON shuffled.{seq} = orig_order.{seq}\n"
        )
        self._assignments = [f"original.{c} = shuffled.{c}" for c in cols]
        self.drop_sql = f"DROP TEMPORARY TABLE IF EXISTS {shuffled}, {order}"

    def pin(self, columns: Sequence[str]):
        """Set the columns the UPDATE writes back unchanged."""
        try:
            for name in columns:
                check_identifier(name, 'column')
        except SpecError as e:
            raise ShuffleError(f"Cannot preserve column in table '{self.spec.table}': {e}") from e
        targets = set(self.spec.columns) | {self.spec.id_column}
        self.pinned_columns = tuple(c for c in columns if c not in targets)

    @property
    def update_sql(self) -> str:
        assignments = list(self._assignments)
        for name in self.pinned_columns or ():
            col = quote_identifier(name)
            assignments.append(f"original.{col} = original.{col}")
        return self._update_head + "SET\n    " + ',\n    '.join(assignments)

    def statements(self) -> List[Tuple[str, dict]]:
        """The mutating statements in execution order, with their parameters."""
        return [
            (self.create_shuffled_sql, self.params),
            (self.create_order_sql, {}),
            (self.update_sql, {}),
            (self.drop_sql, {}),
        ]

    def render(self) -> List[str]:
        """Statements as text, with the seed inlined, for display."""
        rendered = []
        for sql, params in self.statements():
            if 'seed' in params:
                sql = sql.replace(':seed', str(params['seed']))
            rendered.append(sql + ';')
        return rendered


class ShuffleResult:
    """Result of shuffling one table."""

    def __init__(self, spec: TableSpec, rows: int = 0, elapsed: float = 0.0,
                 statements: Optional[List[str]] = None, dry_run: bool = False):
        self.spec = spec
        self.rows = rows
        self.elapsed = elapsed
        self.statements = statements or []
        self.dry_run = dry_run

    def __repr__(self):
        return (f"ShuffleResult(table={self.spec.table!r}, rows={self.rows}, "
                f"elapsed={self.elapsed:.2f}, dry_run={self.dry_run})")


def _execute_plan(conn: Connection, plan: ShufflePlan) -> int:
    """Run the plan in one transaction. Returns the number of rows shuffled."""
    spec = plan.spec
    try:
        with conn.begin():
            total, distinct_ids = conn.execute(text(plan.count_sql)).one()
            if total == 0:
                logger.info(f"Table '{spec.table}' is empty, nothing to shuffle")
                return 0
            if total != distinct_ids:
                raise ShuffleError(
                    f"ID column '{spec.id_column}' in table '{spec.table}' is not unique "
                    f"or contains NULLs ({total} rows, {distinct_ids} distinct ids)"
                )

            if plan.pinned_columns is None:
                plan.pin(auto_update_columns(get_column_rows(conn, None, spec.table), spec))
                if plan.pinned_columns:
                    logger.debug(f"Preserving {', '.join(plan.pinned_columns)} in '{spec.table}'")

            conn.execute(text(plan.create_shuffled_sql), plan.params)
            conn.execute(text(plan.create_order_sql))
            matched = conn.execute(text(plan.update_sql)).rowcount

            if matched != total:
                raise ShuffleError(
                    f"Shuffle of '{spec.table}' matched {matched} of {total} rows; rolled back"
                )
            return total
    except SQLAlchemyError as e:
        raise ShuffleError(f"Shuffle failed for '{spec.table}': {getattr(e, 'orig', None) or e}") from e
    finally:
        try:
            conn.execute(text(plan.drop_sql))
            conn.commit()
        except SQLAlchemyError as e:
            # closing the connection discards its temporary tables
            logger.warning(f"Could not drop temporary tables for '{spec.table}': {e}")
            conn.invalidate()


def shuffle_table(conn: Optional[Connection], spec: TableSpec, settings: Optional[SessionSettings] = None,
                  seed: Optional[int] = None, dry_run: bool = False,
                  pinned_columns: Optional[Sequence[str]] = None) -> ShuffleResult:
    """
    Shuffle the target columns of one validated table.

    Args:
        conn: Connection whose default database holds the table; must not
            be inside a transaction (unused for a dry run)
        spec: The table specification, already validated against the schema
        settings: Session settings applied for the duration of the shuffle
            and restored afterwards (None = leave the session as is)
        seed: Seed for RAND(), for a reproducible permutation
        dry_run: Only build the statements, execute nothing
        pinned_columns: Non-target columns with ``ON UPDATE`` timestamps, as
            found by validation (None = look them up in the catalog)

    Returns:
        ShuffleResult

    Raises:
        ShuffleError: if any statement fails; the table is left unchanged
    """
    plan = ShufflePlan(spec, seed=seed, pinned_columns=pinned_columns)

    if dry_run:
        return ShuffleResult(spec, statements=plan.render(), dry_run=True)

    logger.debug(f"Shuffle statements for '{spec.table}':\n" + '\n'.join(plan.render()))
    start = time.time()

    if settings is not None:
        try:
            with relaxed_session(conn, settings):
                rows = _execute_plan(conn, plan)
        except SQLAlchemyError as e:
            raise ShuffleError(
                f"Session settings could not be applied or restored for '{spec.table}': "
                f"{getattr(e, 'orig', None) or e}"
            ) from e
    else:
        rows = _execute_plan(conn, plan)

    elapsed = time.time() - start
    logger.info(f"Shuffled {rows} rows of '{spec.table}' in {elapsed:.2f}s")
    return ShuffleResult(spec, rows=rows, elapsed=elapsed, statements=plan.render())
