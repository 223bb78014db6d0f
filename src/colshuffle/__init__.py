"""
table-shuffle: anonymize MySQL tables by shuffling column values across rows.
"""

from colshuffle.exceptions import (
    ShufflerError,
    ConfigError,
    CredentialsError,
    DatabaseConnectionError,
    DatabaseNotFoundError,
    SpecError,
    ShuffleError,
)
from colshuffle.specs import TableSpec, parse_table_spec, parse_table_specs
from colshuffle.settings import SessionSettings, relaxed_session
from colshuffle.schema import ValidationResult, validate_table
from colshuffle.shuffle import ShufflePlan, ShuffleResult, shuffle_table
from colshuffle.runner import RunReport, ShuffleRunner, TableOutcome

__version__ = '0.1.0'

__all__ = [
    'ShufflerError', 'ConfigError', 'CredentialsError', 'DatabaseConnectionError',
    'DatabaseNotFoundError', 'SpecError', 'ShuffleError',
    'TableSpec', 'parse_table_spec', 'parse_table_specs',
    'SessionSettings', 'relaxed_session',
    'ValidationResult', 'validate_table',
    'ShufflePlan', 'ShuffleResult', 'shuffle_table',
    'RunReport', 'ShuffleRunner', 'TableOutcome',
]
