"""
Session-level settings applied while a table is being shuffled.

The bulk rewrite runs faster with a larger bulk-insert buffer and with
uniqueness and foreign-key checking deferred. Instead of flipping these for
the rest of the connection's life, ``relaxed_session`` applies them for one
block and puts the previous values back on every exit path.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import ClassVar, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

DEFAULT_BULK_INSERT_BUFFER_SIZE = 256 * 1024 * 1024


@dataclass(frozen=True)
class SessionSettings:
    """MySQL session variables used during a shuffle."""

    FIELDS: ClassVar[Tuple[str, ...]] = (
        'bulk_insert_buffer_size',
        'unique_checks',
        'foreign_key_checks',
    )

    bulk_insert_buffer_size: int = DEFAULT_BULK_INSERT_BUFFER_SIZE
    unique_checks: bool = False
    foreign_key_checks: bool = False

    def __post_init__(self):
        size = self.bulk_insert_buffer_size
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError(f"bulk_insert_buffer_size must be a non-negative integer, got {size!r}")
        for name in ('unique_checks', 'foreign_key_checks'):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false, got {getattr(self, name)!r}")

    def to_params(self) -> dict:
        return {
            'bulk_insert_buffer_size': self.bulk_insert_buffer_size,
            'unique_checks': int(self.unique_checks),
            'foreign_key_checks': int(self.foreign_key_checks),
        }

    @classmethod
    def from_row(cls, row) -> 'SessionSettings':
        return cls(
            bulk_insert_buffer_size=int(row['bulk_insert_buffer_size']),
            unique_checks=bool(int(row['unique_checks'])),
            foreign_key_checks=bool(int(row['foreign_key_checks'])),
        )


READ_SETTINGS_SQL = text(
    "SELECT @@SESSION.bulk_insert_buffer_size AS bulk_insert_buffer_size, "
    "@@SESSION.unique_checks AS unique_checks, "
    "@@SESSION.foreign_key_checks AS foreign_key_checks"
)

APPLY_SETTINGS_SQL = text(
    "SET SESSION bulk_insert_buffer_size = :bulk_insert_buffer_size, "
    "unique_checks = :unique_checks, "
    "foreign_key_checks = :foreign_key_checks"
)


def read_session_settings(conn: Connection) -> SessionSettings:
    """Read the connection's current values of the shuffle settings."""
    row = conn.execute(READ_SETTINGS_SQL).mappings().one()
    return SessionSettings.from_row(row)


def apply_session_settings(conn: Connection, settings: SessionSettings):
    conn.execute(APPLY_SETTINGS_SQL, settings.to_params())


@contextmanager
def relaxed_session(conn: Connection, settings: SessionSettings):
    """
    Apply ``settings`` to the session for the duration of the block.

    Usage:
        with relaxed_session(conn, SessionSettings()):
            shuffle_table(conn, spec)
        # previous session values are back in place here

    Any open transaction is rolled back before the previous values are
    restored. If restoring fails the connection is invalidated so it never
    returns to the pool with relaxed checks.

    Yields:
        SessionSettings: the values in effect before the block
    """
    prior = read_session_settings(conn)
    apply_session_settings(conn, settings)
    conn.commit()
    logger.debug(f"Session settings relaxed: {settings} (previous: {prior})")

    try:
        yield prior
    finally:
        if conn.in_transaction():
            conn.rollback()
        try:
            apply_session_settings(conn, prior)
            conn.commit()
            logger.debug("Session settings restored")
        except SQLAlchemyError as e:
            logger.error(f"Could not restore session settings, discarding connection: {e}")
            conn.invalidate()
            raise
