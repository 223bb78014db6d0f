"""Exit codes and small helpers shared by CLI commands."""

import sys

EXIT_SUCCESS = 0
EXIT_ERROR = 1      # fatal: bad invocation, credentials, connection, database, config
EXIT_PARTIAL = 2    # --strict only: some tables were skipped or failed


def is_interactive() -> bool:
    """True when stdin is a terminal someone can answer prompts on."""
    return sys.stdin.isatty()
