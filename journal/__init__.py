"""Trading Journal - Core Package.

Usage:
    from journal.analytics import Analytics
    from journal.lifecycle import new_setup, close_setup
    from journal.models import Checklist, setup_from_dict, setup_to_dict
"""

from journal.analytics import Analytics, drawdown_series, filter_setups
from journal.errors import (
    JournalError, StorageError, SetupNotFoundError,
    InvalidTransitionError, BackupFormatError, SetupValidationError,
)
from journal.lifecycle import new_setup, close_setup, calculate_rr, calculate_score
from journal.models import (
    Checklist, RunningSetup, SkippedSetup, ExecutedSetup,
    setup_from_dict, setup_to_dict,
)

__all__ = [
    "Analytics",
    "drawdown_series",
    "filter_setups",
    "JournalError",
    "StorageError",
    "SetupNotFoundError",
    "InvalidTransitionError",
    "BackupFormatError",
    "SetupValidationError",
    "new_setup",
    "close_setup",
    "calculate_rr",
    "calculate_score",
    "Checklist",
    "RunningSetup",
    "SkippedSetup",
    "ExecutedSetup",
    "setup_from_dict",
    "setup_to_dict",
]
