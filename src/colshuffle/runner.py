"""
Run controller: validate then shuffle each requested table in turn.

A table that fails validation is skipped and a table whose shuffle fails is
reported; neither stops the run. Progress is reported through a reporter
object so the same loop drives both the CLI and plain logging.
"""

import logging
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from colshuffle.exceptions import ShuffleError, SpecError
from colshuffle.schema import ValidationResult, validate_table
from colshuffle.settings import SessionSettings
from colshuffle.shuffle import ShuffleResult, shuffle_table
from colshuffle.specs import TableSpec

logger = logging.getLogger(__name__)

STATUS_SHUFFLED = 'shuffled'
STATUS_PLANNED = 'planned'
STATUS_SKIPPED = 'skipped'
STATUS_FAILED = 'failed'


class TableOutcome:
    """What happened to one table specification."""

    def __init__(self, label: str, status: str, spec: Optional[TableSpec] = None,
                 messages: Optional[List[str]] = None, result: Optional[ShuffleResult] = None):
        self.label = label
        self.status = status
        self.spec = spec
        self.messages = messages or []
        self.result = result

    @property
    def succeeded(self) -> bool:
        return self.status in (STATUS_SHUFFLED, STATUS_PLANNED)

    def __repr__(self):
        return f"TableOutcome(label={self.label!r}, status={self.status!r})"


class RunReport:
    """Per-table outcomes of one run, in the order they were processed."""

    def __init__(self, database: str):
        self.database = database
        self.outcomes: List[TableOutcome] = []

    def add(self, outcome: TableOutcome):
        self.outcomes.append(outcome)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def all_succeeded(self) -> bool:
        return all(o.succeeded for o in self.outcomes)


class LogReporter:
    """Reports progress through the logging module only."""

    def validating(self, spec: TableSpec):
        logger.info(f"Validating structure for table '{spec.table}'...")

    def validation_warning(self, message: str):
        logger.warning(message)

    def skipped(self, label: str, reasons: List[str]):
        for reason in reasons:
            logger.warning(reason)
        logger.warning(f"Skipping '{label}' due to validation errors")

    def shuffling(self, spec: TableSpec):
        logger.info(f"Shuffling '{spec.table}' (ID: {spec.id_column}, Columns: {' '.join(spec.columns)})")

    def shuffled(self, result: ShuffleResult):
        logger.info(f"Successfully shuffled '{result.spec.table}' ({result.rows} rows)")

    def planned(self, result: ShuffleResult):
        logger.info(f"Dry run for '{result.spec.table}':\n" + '\n'.join(result.statements))

    def failed(self, spec: TableSpec, error: Exception):
        logger.error(f"Shuffle failed for '{spec.table}': {error}")


class ShuffleRunner:
    """Validate and shuffle a list of table specifications, one at a time."""

    def __init__(self, engine: Engine, database: str, settings: Optional[SessionSettings] = None,
                 seed: Optional[int] = None, dry_run: bool = False, reporter=None):
        """
        Args:
            engine: Engine whose default database is ``database``
            database: Name of the database holding the tables
            settings: Session settings applied while each table is shuffled
            seed: Seed for a reproducible permutation
            dry_run: Validate and plan only, never modify a table
            reporter: Progress reporter (defaults to LogReporter)
        """
        self.engine = engine
        self.database = database
        self.settings = settings
        self.seed = seed
        self.dry_run = dry_run
        self.reporter = reporter or LogReporter()

    def run(self, specs: Sequence[Tuple[str, Union[TableSpec, SpecError]]]) -> RunReport:
        """
        Process parsed specifications in order.

        Args:
            specs: (label, TableSpec or SpecError) pairs as produced by
                colshuffle.specs.parse_table_specs

        Returns:
            RunReport with one outcome per entry
        """
        report = RunReport(self.database)
        for label, spec in specs:
            report.add(self.process(label, spec))
        logger.debug(
            f"Run finished: {report.count(STATUS_SHUFFLED)} shuffled, {report.count(STATUS_PLANNED)} planned, "
            f"{report.count(STATUS_SKIPPED)} skipped, {report.count(STATUS_FAILED)} failed"
        )
        return report

    def process(self, label: str, spec: Union[TableSpec, SpecError]) -> TableOutcome:
        if isinstance(spec, SpecError):
            reasons = [str(spec)]
            self.reporter.skipped(label, reasons)
            return TableOutcome(label, STATUS_SKIPPED, messages=reasons)

        self.reporter.validating(spec)
        try:
            validation = self.validate(spec)
        except SQLAlchemyError as e:
            self.reporter.failed(spec, e)
            return TableOutcome(label, STATUS_FAILED, spec=spec, messages=[str(e)])

        for warning in validation.warnings:
            self.reporter.validation_warning(warning)
        if not validation.ok:
            self.reporter.skipped(spec.table, validation.errors)
            return TableOutcome(label, STATUS_SKIPPED, spec=spec, messages=validation.errors)

        self.reporter.shuffling(spec)
        try:
            result = self.shuffle(spec, validation.pinned_columns)
        except (ShuffleError, SQLAlchemyError) as e:
            self.reporter.failed(spec, e)
            return TableOutcome(label, STATUS_FAILED, spec=spec, messages=[str(e)])

        if result.dry_run:
            self.reporter.planned(result)
            return TableOutcome(label, STATUS_PLANNED, spec=spec, result=result)

        self.reporter.shuffled(result)
        return TableOutcome(label, STATUS_SHUFFLED, spec=spec, result=result)

    def validate(self, spec: TableSpec) -> ValidationResult:
        with self.engine.connect() as conn:
            return validate_table(conn, self.database, spec)

    def shuffle(self, spec: TableSpec, pinned_columns: Sequence[str] = ()) -> ShuffleResult:
        if self.dry_run:
            return shuffle_table(None, spec, seed=self.seed, dry_run=True, pinned_columns=pinned_columns)
        with self.engine.connect() as conn:
            return shuffle_table(conn, spec, settings=self.settings, seed=self.seed,
                                 pinned_columns=pinned_columns)
