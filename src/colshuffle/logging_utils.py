"""
Logging configuration for table-shuffle.
"""

import logging
import logging.handlers
import sys


def setup_logging(log_file=None, verbose=False):
    """
    Configure logging for a run.

    Progress lines for the operator are printed by the CLI on stdout; log
    records go to stderr (WARNING and up, or everything with verbose) and,
    when requested, to a rotating log file (INFO and up).

    Args:
        log_file: Path to log file (None = stderr only)
        verbose: Enable DEBUG level logging
    """
    format_str = '[%(asctime)s] %(levelname)s [%(name)s] %(message)s'
    formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = []

    # Console handler
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    handlers.append(console)

    # File handler
    if log_file:
        try:
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setFormatter(formatter)
            file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
            handlers.append(file_handler)
        except OSError as e:
            print(f"Warning: Could not create log file {log_file}: {e}", file=sys.stderr)

    level = min(h.level for h in handlers)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    # Suppress noisy libraries
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('pymysql').setLevel(logging.WARNING)
