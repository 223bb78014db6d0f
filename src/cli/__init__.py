"""Command-line interface for table-shuffle."""
