import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from pydantic import ValidationError

from companion.integrity import (
    create_backup,
    recover_session,
    restore_from_backup,
    validate_session,
)
from companion.integrity.migration import upgrade
from companion.models import Session
from companion.services.storage import SessionStorage

logger = logging.getLogger(__name__)


class SessionLoadError(ValueError):
    """Raised when stored data cannot be turned into a session at all."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or [message]


@dataclass
class LoadResult:
    session: Session
    repaired: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class SessionService:
    """Turn untrusted stored data into a schema-current session, and back.

    Loading runs validate -> recover (when needed) -> migrate. Callers can
    check ``LoadResult.repaired`` to tell the user that something was fixed.
    """

    def __init__(
        self,
        storage: SessionStorage | None = None,
        *,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.storage = storage or SessionStorage()
        self.id_factory = id_factory
        self.clock = clock

    # ------------------------------------------------------------------
    # Pure pipeline
    # ------------------------------------------------------------------

    @staticmethod
    def parse(text: str) -> Any:
        try:
            return json.loads(text)
        except (ValueError, RecursionError) as exc:
            raise SessionLoadError(f"Session data is not valid JSON: {exc}") from exc

    def load(self, raw: Any) -> LoadResult:
        validation = validate_session(raw, id_factory=self.id_factory, clock=self.clock)
        if not validation.repaired and not validation.valid:
            raise SessionLoadError(validation.errors[0], validation.errors)

        repaired = validation.repaired
        warnings = list(validation.warnings)

        source = validation.recovered if validation.recovered is not None else raw
        upgraded = upgrade(source)
        try:
            session = Session.model_validate(upgraded)
        except ValidationError as exc:
            # Recover after upgrading so inferred fields such as phase survive.
            session = recover_session(upgraded, id_factory=self.id_factory, clock=self.clock)
            repaired = True
            warnings.append(f"{exc.error_count()} malformed field(s) replaced with defaults")

        result = LoadResult(
            session=session,
            repaired=repaired,
            errors=list(validation.errors),
            warnings=warnings,
        )
        if result.repaired:
            logger.warning(
                "Session %s was repaired on load (%d errors, %d warnings)",
                result.session.id,
                len(result.errors),
                len(result.warnings),
            )
        return result

    def load_text(self, text: str) -> LoadResult:
        return self.load(self.parse(text))

    def backup(self, session: Session) -> str:
        return create_backup(session, clock=self.clock)

    @staticmethod
    def restore(text: str) -> Session | None:
        return restore_from_backup(text)

    # ------------------------------------------------------------------
    # Stored sessions
    # ------------------------------------------------------------------

    def open(self, session_id: str) -> LoadResult:
        return self.load_text(self.storage.read_text(session_id))

    def save(self, session: Session) -> None:
        self.storage.write_session(session)

    def write_backup(self, session: Session, session_id: str | None = None) -> str:
        """Back up *session* to storage and return the backup file name.

        Stored under *session_id* when given, else under the session's own id.
        """
        return self.storage.write_backup(session_id or session.id, self.backup(session))

    def restore_latest(self, session_id: str) -> Session | None:
        """Newest backup for *session_id* that restores cleanly, or None."""
        for filename in reversed(self.storage.list_backups(session_id)):
            session = self.restore(self.storage.read_backup(session_id, filename))
            if session is not None:
                return session
            logger.warning("Skipping unusable backup %s for session %s", filename, session_id)
        return None

    def delete(self, session_id: str) -> str | None:
        """Back up then delete a stored session.

        Returns the backup file name, or None if the stored data was
        unrecoverable and there was nothing to back up.
        """
        backup_name = None
        try:
            backup_name = self.write_backup(self.open(session_id).session, session_id)
        except SessionLoadError:
            logger.warning("Session %s is unrecoverable, deleting without backup", session_id)
        self.storage.delete(session_id)
        return backup_name
