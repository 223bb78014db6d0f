"""
Table specifications.

A table specification names one table, the identifier column used to
reattach shuffled values, and the target columns whose values get permuted.
On the command line it is written as ``table:id_col:col1,col2,...``.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from colshuffle.exceptions import SpecError

# Table and column names are interpolated into SQL, so only plain
# alphanumeric/underscore identifiers are accepted.
IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z0-9_]+$')
MAX_IDENTIFIER_LENGTH = 64


def check_identifier(name: str, kind: str = 'identifier') -> str:
    """
    Validate a table or column name against the allow-list pattern.

    Returns:
        The name unchanged.

    Raises:
        SpecError: if the name is empty, too long, or has disallowed characters
    """
    if not name:
        raise SpecError(f"Empty {kind} name")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise SpecError(f"{kind.capitalize()} name '{name}' exceeds {MAX_IDENTIFIER_LENGTH} characters")
    if not IDENTIFIER_PATTERN.match(name):
        raise SpecError(f"{kind.capitalize()} name '{name}' may only contain letters, digits and underscores")
    return name


def quote_identifier(name: str) -> str:
    """Backtick-quote a validated identifier for MySQL."""
    return f"`{check_identifier(name)}`"


@dataclass(frozen=True)
class TableSpec:
    """One table to shuffle."""

    table: str
    id_column: str
    columns: Tuple[str, ...]

    def __post_init__(self):
        check_identifier(self.table, 'table')
        check_identifier(self.id_column, 'identifier column')
        if not self.columns:
            raise SpecError(f"No columns to shuffle given for table '{self.table}'")

        seen = set()
        for col in self.columns:
            check_identifier(col, 'column')
            if col == self.id_column:
                raise SpecError(
                    f"Identifier column '{col}' cannot also be shuffled in table '{self.table}'"
                )
            if col in seen:
                raise SpecError(f"Column '{col}' listed twice for table '{self.table}'")
            seen.add(col)

    def __str__(self):
        return f"{self.table}:{self.id_column}:{','.join(self.columns)}"

    @classmethod
    def from_mapping(cls, data: dict) -> 'TableSpec':
        """Build a spec from a config mapping with table/id/columns keys."""
        try:
            table = data['table']
            id_column = data.get('id') or data['id_column']
            columns = data['columns']
        except KeyError as e:
            raise SpecError(f"Table entry {data!r} is missing key {e}")

        if isinstance(columns, str):
            columns = columns.split(',')
        return cls(str(table).strip(), str(id_column).strip(),
                   tuple(str(c).strip() for c in columns))


def parse_table_spec(text: str) -> TableSpec:
    """
    Parse ``table:id_col:col1,col2,...`` into a TableSpec.

    Raises:
        SpecError: if the text is malformed or names invalid identifiers
    """
    parts = text.strip().split(':')
    if len(parts) != 3:
        raise SpecError(f"Invalid table specification '{text}' (expected table:id_col:col1,col2,...)")

    table, id_column, columns = (p.strip() for p in parts)
    column_list = tuple(c.strip() for c in columns.split(',')) if columns else ()
    return TableSpec(table, id_column, column_list)


def parse_table_specs(items: Iterable) -> List[Tuple[str, object]]:
    """
    Parse a sequence of spec strings or mappings.

    Malformed entries do not abort parsing; each entry comes back as
    ``(label, TableSpec)`` or ``(label, SpecError)`` so the caller can skip
    the bad ones and keep going.
    """
    parsed = []
    for item in items:
        if isinstance(item, dict):
            label = str(item.get('table', item))
            try:
                parsed.append((label, TableSpec.from_mapping(item)))
            except SpecError as e:
                parsed.append((label, e))
        else:
            label = str(item).split(':', 1)[0] or str(item)
            try:
                parsed.append((label, parse_table_spec(str(item))))
            except SpecError as e:
                parsed.append((label, e))
    return parsed
