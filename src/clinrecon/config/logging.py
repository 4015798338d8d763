"""Console logging for reconciliation runs."""

from __future__ import annotations

import logging

# driver and engine loggers that flood DEBUG output with per-statement lines
_CHATTY_LOGGERS = ("aiosqlite", "sqlalchemy.engine")


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Log batch progress and run totals to the terminal.

    ``level=logging.DEBUG`` (``--verbose``) adds per-record detail from the
    passes while the database driver stays at INFO. ``force=True`` replaces
    handlers installed earlier, e.g. by a previous test.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.INFO))
