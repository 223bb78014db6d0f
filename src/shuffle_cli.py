#!/usr/bin/env python3
"""
table-shuffle CLI

Anonymizes MySQL tables by shuffling the values of selected columns across
rows, keeping each row's identifier and other columns intact.

Usage:
    table-shuffle mydb users:id:name,email orders:order_id:amount
    table-shuffle --dry-run mydb users:id:name,email
    table-shuffle --config shuffle.yaml
"""

import sys
import click

from cli.core.context import Context
from cli.shuffle.commands import ShuffleCommand
from colshuffle.logging_utils import setup_logging


pass_context = click.make_pass_decorator(Context, ensure=True)
CONTEXT_SETTINGS = dict(help_option_names=['-h', '--help'])


@click.command(context_settings=CONTEXT_SETTINGS)
@click.argument('database', required=False)
@click.argument('table_specs', nargs=-1)
@click.option('--config', 'config_path', type=click.Path(dir_okay=False),
              help='YAML file with database, tables and session settings')
@click.option('--env-file', type=click.Path(dir_okay=False),
              help='.env file with DB_USER/DB_PASSWORD/DB_HOST/DB_PORT (default: nearest .env)')
@click.option('--defaults-file', type=click.Path(dir_okay=False),
              help='MySQL option file with a [client] login profile')
@click.option('--seed', type=int, help='Seed for a reproducible shuffle order')
@click.option('--dry-run', is_flag=True, help='Validate and show the statements without modifying anything')
@click.option('--strict', is_flag=True, help='Exit with status 2 if any table was skipped or failed')
@click.option('--keep-checks', is_flag=True, help='Keep unique and foreign key checks on while shuffling')
@click.option('--yes', '-y', 'assume_yes', is_flag=True, help='Do not ask for confirmation')
@click.option('--connect-timeout', type=int, help='Seconds to wait when connecting to MySQL')
@click.option('--log-file', type=click.Path(dir_okay=False), help='Also write log records to this file')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging and highlighted SQL')
@pass_context
def cli(ctx: Context, database, table_specs, config_path, env_file, defaults_file, seed,
        dry_run, strict, keep_checks, assume_yes, connect_timeout, log_file, verbose):
    """Shuffle column values across the rows of DATABASE tables.

    Each TABLE_SPEC is table:id_column:col1,col2,... where id_column
    identifies rows and col1,col2,... are the columns whose values get
    shuffled.
    """
    ctx.verbose = verbose
    setup_logging(log_file=log_file, verbose=verbose)

    command = ShuffleCommand(ctx)
    exit_code = command.execute(
        database,
        table_specs,
        config_path=config_path,
        env_file=env_file,
        defaults_file=defaults_file,
        seed=seed,
        dry_run=dry_run,
        strict=strict,
        keep_checks=keep_checks,
        assume_yes=assume_yes,
        connect_timeout=connect_timeout,
    )
    sys.exit(exit_code)


if __name__ == '__main__':
    cli()
