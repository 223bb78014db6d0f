"""Base command classes for table-shuffle CLI."""

from abc import ABC, abstractmethod
from rich.markup import escape

from cli.core.context import Context
from cli.core.utils import EXIT_ERROR


class BaseCommand(ABC):
    """Base class for all commands."""

    def __init__(self, ctx: Context):
        self.ctx = ctx
        self.console = ctx.console

    @abstractmethod
    def execute(self, **kwargs) -> int:
        """Execute command. Returns exit code."""
        pass

    def scrub(self, message: str) -> str:
        """Strip the database password from text about to be printed."""
        if self.ctx.credentials is not None:
            return self.ctx.credentials.scrub(message)
        return message

    def handle_exception(self, e: Exception) -> int:
        """Common error handling for fatal errors."""
        message = str(e) or type(e).__name__
        self.ctx.stderr_console.print(f"❌ Error: {escape(self.scrub(message))}", style="bold red")
        if self.ctx.verbose:
            import traceback
            self.ctx.stderr_console.print(escape(self.scrub(traceback.format_exc())), style="dim")
        return EXIT_ERROR
