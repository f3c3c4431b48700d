"""
Ingestion Layer

RESPONSIBILITY: Turn external label feeds and social data into fid-tagged
                user values
ALLOWED INPUTS: JSON Lines files, GitHub label mirror, Pinata hub, Wield
OUTPUTS: ImportReport (collection plus per-record errors)

WHAT THIS LAYER MUST NOT DO:
============================
- Abort a batch because of one bad record
- Compute aggregates
- Persist snapshots (storage layer's job)

BOUNDARY ENFORCEMENT:
=====================
Adapters hand the core a fully materialized batch. Validation failures and
collisions are reported as Error records, never raised past import_into().
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Tuple

from ..contracts.base import Error, Fid, InvalidDataPathError
from ..core.store import UserCollection
from .records import (
    ImportReport, LabelRecord, collision_errors_to_records, parse_label_lines,
)


logger = logging.getLogger(__name__)


# =============================================================================
# INGESTION ADAPTERS (Strategy pattern for different sources)
# =============================================================================

class IngestionAdapter(ABC):
    """
    Abstract base for source-specific ingestion adapters.

    pull() gathers the whole batch; import_into() folds it into a
    collection and reports what was skipped.
    """

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the type of source this adapter handles."""

    @abstractmethod
    def pull(self) -> Tuple[List[Tuple[Fid, object]], List[Error]]:
        """Return fid-tagged user values and the errors of rejected records."""

    def import_into(self, collection: Optional[UserCollection] = None) -> ImportReport:
        collection = collection if collection is not None else UserCollection()
        values, errors = self.pull()
        collisions = collection.add_user_value_iter(values)
        errors = errors + collision_errors_to_records(collisions)
        logger.info(
            "%s import: %d values, %d rejected, %d users total",
            self.source_type, len(values), len(errors), collection.user_count(),
        )
        return ImportReport(collection=collection, errors=errors)


class JsonlFileAdapter(IngestionAdapter):
    """
    Label records from a JSON Lines file or a directory of *.jsonl files.

    Directory files are read in name order.
    """

    def __init__(self, path):
        self._path = Path(path)

    @property
    def source_type(self) -> str:
        return "jsonl_file"

    def files(self) -> List[Path]:
        if self._path.is_file():
            return [self._path]
        if self._path.is_dir():
            return sorted(p for p in self._path.iterdir() if p.suffix == ".jsonl" and p.is_file())
        raise InvalidDataPathError(self._path)

    def pull(self) -> Tuple[List[Tuple[Fid, object]], List[Error]]:
        values: List[Tuple[Fid, object]] = []
        errors: List[Error] = []
        for file_path in self.files():
            with open(file_path, "rb") as handle:
                file_values, file_errors = parse_label_lines(handle, origin=str(file_path))
            values.extend(file_values)
            errors.extend(file_errors)
        return values, errors


def import_path(path, collection: Optional[UserCollection] = None) -> ImportReport:
    """Import a JSON Lines file or directory."""
    return JsonlFileAdapter(path).import_into(collection)


__all__ = [
    "IngestionAdapter", "JsonlFileAdapter", "import_path",
    "ImportReport", "LabelRecord", "parse_label_lines",
]
