"""Validation, recovery, migration and backup of persisted sessions.

Everything here is pure: no I/O, no shared mutable state.
"""

from companion.integrity.backup import create_backup, restore_from_backup
from companion.integrity.migration import migrate_session
from companion.integrity.recovery import SessionRecoverer, recover_session
from companion.integrity.validator import ValidationResult, validate_session

__all__ = [
    "SessionRecoverer",
    "ValidationResult",
    "create_backup",
    "migrate_session",
    "recover_session",
    "restore_from_backup",
    "validate_session",
]
