"""Load correction mapping tables from JSON or CSV files."""

from __future__ import annotations

import csv
import json
from collections.abc import Mapping
from logging import getLogger
from typing import TYPE_CHECKING, cast

from pydantic import TypeAdapter, ValidationError

from clinrecon.domain.errors import MalformedInputError

from .schema import CorrectionMappingEntry, CorrectionMappingFile

if TYPE_CHECKING:
    from pathlib import Path

    from clinrecon.domain.reconciliation.reassign import CorrectionMapping

log = getLogger(__name__)

_ENTRIES = TypeAdapter(list[CorrectionMappingEntry])


def _read_json(path: Path) -> list[CorrectionMappingEntry]:
    payload: object = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, Mapping):
        return CorrectionMappingFile.model_validate(cast(Mapping[str, object], payload)).mappings
    return _ENTRIES.validate_python(payload)


def _read_csv(path: Path) -> list[CorrectionMappingEntry]:
    with path.open(newline="", encoding="utf-8-sig") as handle:
        rows = [
            {key.strip(): value for key, value in row.items() if key is not None}
            for row in csv.DictReader(handle)
        ]
    return _ENTRIES.validate_python(rows)


def load_correction_mappings(path: Path) -> list[CorrectionMapping]:
    """Read a mapping table; the format is picked from the file extension.

    JSON files hold either a list of entries or ``{"mappings": [...]}``. A file
    that cannot be read or validated raises ``MalformedInputError`` as a whole.
    """

    try:
        if path.suffix.lower() == ".csv":
            entries = _read_csv(path)
        else:
            entries = _read_json(path)
    except (OSError, ValueError, ValidationError) as exc:
        raise MalformedInputError(f"Cannot load correction mappings from {path}: {exc}") from exc
    log.info("Loaded %d correction mappings from %s", len(entries), path)
    return [entry.to_mapping() for entry in entries]
