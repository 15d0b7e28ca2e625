"""Exceptions raised by the journal: storage failures, bad records, bad transitions."""

from typing import Optional


class JournalError(Exception):
    """Base class for every error the journal raises on purpose."""


class SetupValidationError(JournalError):
    """Raised when a setup record has a missing or invalid field."""

    def __init__(self, reason: str, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        if field:
            super().__init__(f"Invalid setup field '{field}': {reason}")
        else:
            super().__init__(f"Invalid setup: {reason}")


class InvalidTransitionError(JournalError):
    """Raised when a setup is moved to a status its current status can't reach."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move a {current} setup to {target}")


class StorageError(JournalError):
    """Raised when the setup store fails. The caller may retry."""


class SetupNotFoundError(StorageError):
    """Raised when a setup id does not exist for the requesting user."""

    def __init__(self, user_id: str, setup_id: str):
        self.user_id = user_id
        self.setup_id = setup_id
        super().__init__(f"Setup {setup_id} not found for user {user_id}")


class BackupFormatError(JournalError):
    """Raised when a backup file can't be read back into setups."""
