"""Error taxonomy for the reconciliation passes.

Per-record errors (``NotFoundError``, ``WriteConflictError``,
``MalformedInputError``) are caught by the passes and folded into the run's
error list. ``BackupWriteFailure`` and ``StoreUnavailable`` abort a run before
any mutation is attempted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from clinrecon.domain.model import ErrorKind

if TYPE_CHECKING:
    from collections.abc import Mapping


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class NotFoundError(ReconciliationError):
    """An expected target record or case is missing."""


class WriteConflictError(ReconciliationError):
    """The store rejected a write."""


class MalformedInputError(ReconciliationError, ValueError):
    """A supplied input entry cannot be parsed."""


class BackupWriteFailure(ReconciliationError):  # noqa: N818
    """The mandatory pre-mutation backup could not be written."""


class StoreUnavailable(ReconciliationError):  # noqa: N818
    """The store cannot be reached."""


ERROR_KIND_BY_EXCEPTION: dict[type[ReconciliationError], ErrorKind] = {
    NotFoundError: ErrorKind.TARGET_CASE_NOT_FOUND,
    WriteConflictError: ErrorKind.WRITE_CONFLICT,
    MalformedInputError: ErrorKind.MALFORMED_INPUT,
}


@dataclass(frozen=True, slots=True, kw_only=True)
class RecordError:
    """One recoverable failure collected during a bulk pass."""

    kind: ErrorKind
    message: str
    record_id: str | None = None
    context: Mapping[str, str] = field(default_factory=dict[str, str])

    @classmethod
    def from_exception(
        cls,
        exc: NotFoundError | WriteConflictError | MalformedInputError,
        *,
        record_id: str | None = None,
        context: Mapping[str, str] | None = None,
    ) -> RecordError:
        return cls(
            kind=ERROR_KIND_BY_EXCEPTION[type(exc)],
            message=str(exc),
            record_id=record_id,
            context=dict(context or {}),
        )
