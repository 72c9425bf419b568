"""Local persisted state: one JSON record array under a fixed key."""

import json
import logging
from pathlib import Path
from typing import Iterable

from loan_sync.exceptions import ParseError, QuotaError
from loan_sync.models import LoanRecord
from loan_sync.transfer.serialization import record_to_dict, records_from_list

logger = logging.getLogger(__name__)

DEFAULT_KEY = "clients"


class LocalStateFile:
    """Device-local key/value file holding the record array.

    The file is a JSON object; the record array lives under ``key``. Other
    keys are preserved on save.
    """

    def __init__(self, path: str | Path, key: str = DEFAULT_KEY) -> None:
        """Initialize local state file.

        Parameters
        ----------
        path : str | Path
            Location of the state file. Parent directories are created on save.
        key : str
            Entry holding the record array.
        """
        self.path = Path(path)
        self.key = key

    def _read_document(self) -> dict:
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Cannot read {self.path}: {e}") from e

        try:
            document = json.loads(text) if text.strip() else {}
        except ValueError as e:
            raise ParseError(f"Invalid JSON in {self.path}: {e}") from e
        if not isinstance(document, dict):
            raise ParseError(f"{self.path} does not hold a JSON object")
        return document

    def load(self) -> list[LoanRecord]:
        """Read the stored records.

        Missing or malformed content yields an empty list; the problem is
        logged, never raised.
        """
        try:
            records = records_from_list(self._read_document().get(self.key, []))
        except ParseError as e:
            logger.warning("Ignoring unreadable local state in %s: %s", self.path, e)
            return []

        logger.debug("Loaded %d records from %s", len(records), self.path)
        return records

    def save(self, records: Iterable[LoanRecord]) -> None:
        """Rewrite the stored record array in full.

        Raises
        ------
        QuotaError
            If the file cannot be written.
        """
        try:
            document = self._read_document()
        except ParseError:
            document = {}
        document[self.key] = [record_to_dict(record) for record in records]

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as e:
            raise QuotaError(f"Cannot write local state to {self.path}: {e}") from e
