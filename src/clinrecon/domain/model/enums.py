"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class TimeGapClass(StrEnum):
    """Bucket for the creation-time distance between two near-duplicate records."""

    IMPORT_ERROR = "import_error"
    SAME_MINUTE = "same_minute"
    SAME_DAY = "same_day"
    NONE = "none"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY: dict[TimeGapClass, int] = {
    TimeGapClass.IMPORT_ERROR: 1,
    TimeGapClass.SAME_MINUTE: 2,
    TimeGapClass.SAME_DAY: 3,
    TimeGapClass.NONE: 4,
}


class ActionType(StrEnum):
    KEEP = "keep"
    DELETE = "delete"
    REASSIGN = "reassign"
    FLAG = "flag"
    REWINDOW = "rewindow"


class ErrorKind(StrEnum):
    TARGET_CASE_NOT_FOUND = "target_case_not_found"
    WRITE_CONFLICT = "write_conflict"
    MALFORMED_INPUT = "malformed_input"
