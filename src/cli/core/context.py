"""Context class for table-shuffle CLI."""

import sys
from typing import Optional
from rich.console import Console

from colshuffle.session import Credentials


class Context:
    """Shared context for CLI commands."""

    def __init__(self):
        self.credentials: Optional[Credentials] = None
        self.verbose: bool = False
        self.console = Console()
        self.stderr_console = Console(file=sys.stderr)
