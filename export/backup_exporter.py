"""JSON backup of a trading journal.

A backup is a JSON array of setup documents with exactly the stored field
set (score and rrRatio included as stored, nothing derived is added).
Loading a backup gives back equal setup records.
"""

import json
import logging
from pathlib import Path
from typing import Sequence

from journal.errors import BackupFormatError, SetupValidationError
from journal.models import Setup, setup_from_dict, setup_to_dict
from journal.utils import get_export_dir

logger = logging.getLogger(__name__)

BACKUP_FILENAME = "trading-journal-backup.json"


def to_json(setups: Sequence[Setup]) -> str:
    """Serialize setups to the backup document (pretty-printed JSON array)."""
    return json.dumps([setup_to_dict(s) for s in setups], indent=2)


def from_json(text: str) -> list:
    """Parse a backup document back into setups.

    Raises:
        BackupFormatError: if the text is not a JSON array of valid setups
    """
    try:
        documents = json.loads(text)
    except json.JSONDecodeError as e:
        raise BackupFormatError(f"Backup is not valid JSON: {e}") from e

    if not isinstance(documents, list):
        raise BackupFormatError("Backup must be a JSON array of setups")

    setups = []
    for i, document in enumerate(documents):
        try:
            setups.append(setup_from_dict(document))
        except SetupValidationError as e:
            raise BackupFormatError(f"Record {i} is invalid: {e}") from e
    return setups


class BackupExporter:
    """Writes a user's setups to a JSON backup file."""

    def __init__(self, setups: Sequence[Setup]):
        self.setups = list(setups)

    def export(self, output_path: str = None) -> str:
        """Write the backup file.

        Args:
            output_path: Path to save the backup. Defaults to
                backups/trading-journal-backup.json

        Returns:
            Path to the saved backup file
        """
        if output_path is None:
            output_path = str(get_export_dir() / BACKUP_FILENAME)

        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        Path(output_path).write_text(to_json(self.setups), encoding="utf-8")

        logger.info(f"Exported {len(self.setups)} setups to {output_path}")
        return output_path


def load_backup(path: str) -> list:
    """Read setups back from a backup file.

    Raises:
        BackupFormatError: if the file is missing, unreadable, or not a valid backup
    """
    path = Path(path)
    if not path.exists():
        raise BackupFormatError(f"Backup file not found: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (UnicodeDecodeError, OSError) as e:
        raise BackupFormatError(f"Could not read backup {path}: {e}") from e
    setups = from_json(text)
    logger.info(f"Loaded {len(setups)} setups from {path}")
    return setups
