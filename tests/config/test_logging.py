from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from clinrecon.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Iterator

_DRIVER_LOGGERS = ("aiosqlite", "sqlalchemy.engine")


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    for name in _DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)


def test_verbose_logging_keeps_the_database_driver_at_info() -> None:
    configure_logging(level=logging.DEBUG, force=True)

    assert logging.getLogger().level == logging.DEBUG
    assert [logging.getLogger(name).level for name in _DRIVER_LOGGERS] == [
        logging.INFO,
        logging.INFO,
    ]


def test_quiet_logging_applies_to_the_driver_too() -> None:
    configure_logging(level=logging.WARNING, force=True)

    assert logging.getLogger("aiosqlite").level == logging.WARNING
