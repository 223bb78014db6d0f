"""Shuffle command class."""

import logging
from typing import Optional, Sequence

import click

from cli.core.base import BaseCommand
from cli.core.utils import EXIT_SUCCESS, EXIT_ERROR, EXIT_PARTIAL, is_interactive
from cli.shuffle.display import ConsoleReporter, display_summary, display_usage
from colshuffle.config import load_config, session_settings_from_config
from colshuffle.runner import ShuffleRunner
from colshuffle.session import (
    check_connection,
    check_database,
    create_shuffle_engine,
    load_credentials,
)
from colshuffle.specs import parse_table_specs

logger = logging.getLogger(__name__)


class ShuffleCommand(BaseCommand):
    """Validate and shuffle the requested tables of one database."""

    def execute(self, database: Optional[str], table_specs: Sequence[str],
                config_path: Optional[str] = None, env_file: Optional[str] = None,
                defaults_file: Optional[str] = None, seed: Optional[int] = None,
                dry_run: bool = False, strict: bool = False, keep_checks: bool = False,
                assume_yes: bool = False, connect_timeout: Optional[int] = None) -> int:
        try:
            cfg = load_config(config_path)
            database = database or cfg['database']
            items = list(table_specs) or list(cfg['tables'])
            if not database or not items:
                display_usage(self.ctx)
                return EXIT_ERROR

            logger.info(f"Requested {len(items)} table(s) in database '{database}'")

            settings = session_settings_from_config(cfg, keep_checks=keep_checks)
            if seed is None:
                seed = cfg['seed']

            self.ctx.credentials = load_credentials(env_file=env_file, option_file=defaults_file)

            server = create_shuffle_engine(self.ctx.credentials, connect_timeout=connect_timeout)
            try:
                check_connection(server, self.ctx.credentials)
                check_database(server, database, self.ctx.credentials)
            finally:
                server.dispose()

            if not dry_run and not assume_yes and not self.confirm(database):
                self.console.print("Aborted.")
                return EXIT_ERROR

            engine = create_shuffle_engine(self.ctx.credentials, database=database,
                                           echo=False, connect_timeout=connect_timeout)
            try:
                runner = ShuffleRunner(
                    engine,
                    database,
                    settings=settings,
                    seed=seed,
                    dry_run=dry_run,
                    reporter=ConsoleReporter(self.ctx),
                )
                report = runner.run(parse_table_specs(items))
            finally:
                engine.dispose()

            display_summary(self.ctx, report)

            if strict and not report.all_succeeded:
                return EXIT_PARTIAL
            return EXIT_SUCCESS
        except Exception as e:
            return self.handle_exception(e)

    def confirm(self, database: str) -> bool:
        """
        Ask before modifying tables. Only an interactive terminal is asked;
        piped or scripted runs proceed as if --yes had been given.
        """
        if not is_interactive():
            logger.info("Input is not a terminal, proceeding without confirmation")
            return True

        self.console.print(
            f"WARNING: this will permanently shuffle column values in database '{database}'",
            style="bold yellow", markup=False,
        )
        try:
            return click.confirm("Are you sure you want to continue?", default=False)
        except click.Abort:
            # Ctrl-C or end of input at the prompt
            self.console.print()
            return False
