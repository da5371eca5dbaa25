import json
import logging
import os
import re
import shutil
from datetime import datetime, timezone

from companion.config import settings
from companion.models import Session, SessionSummary

logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"

_SAFE_ID = re.compile(r"[A-Za-z0-9_-]+")


class InvalidSessionIdError(ValueError):
    pass


class SessionNotFoundError(LookupError):
    pass


class SessionStorage:
    """File layout for persisted sessions::

        <sessions_root>/<session_id>/session.json
        <backups_root>/<session_id>/<utc timestamp>.json

    Backups live outside the session directory so they survive ``delete``.
    """

    def __init__(self, root: str | None = None, backups_root: str | None = None) -> None:
        self.root = os.path.abspath(root or settings.sessions_root)
        self.backups_root = os.path.abspath(backups_root or settings.backups_root)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def sanitize_session_id(self, session_id: str) -> str:
        """Reject ids that are not plain ``[A-Za-z0-9_-]`` names."""
        if not isinstance(session_id, str) or not _SAFE_ID.fullmatch(session_id):
            logger.warning("Rejected session id %r", session_id)
            raise InvalidSessionIdError(f"Invalid session ID: {session_id!r}")
        # The pattern already excludes separators; this guards odd filesystems.
        resolved = os.path.abspath(os.path.join(self.root, session_id))
        if os.path.dirname(resolved) != self.root:
            logger.warning("Blocked path traversal for session id %r", session_id)
            raise InvalidSessionIdError(f"Invalid session ID: {session_id!r}")
        return session_id

    def session_dir(self, session_id: str) -> str:
        return os.path.join(self.root, self.sanitize_session_id(session_id))

    def session_path(self, session_id: str) -> str:
        return os.path.join(self.session_dir(session_id), SESSION_FILE)

    def backup_dir(self, session_id: str) -> str:
        return os.path.join(self.backups_root, self.sanitize_session_id(session_id))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def read_text(self, session_id: str) -> str:
        path = self.session_path(session_id)
        try:
            with open(path, encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            raise SessionNotFoundError(f"Session {session_id} not found") from None

    def write_session(self, session: Session) -> str:
        """Write ``session.json`` for *session* and return its path."""
        session_dir = self.session_dir(session.id)
        os.makedirs(session_dir, exist_ok=True)
        path = os.path.join(session_dir, SESSION_FILE)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2)
        return path

    def delete(self, session_id: str) -> None:
        session_dir = self.session_dir(session_id)
        if not os.path.isdir(session_dir):
            raise SessionNotFoundError(f"Session {session_id} not found")
        shutil.rmtree(session_dir)
        logger.info("Deleted session %s", session_id)

    def list_summaries(self) -> list[SessionSummary]:
        """Summaries of every readable session, most recently updated first.

        Unreadable or malformed files are skipped.
        """
        if not os.path.isdir(self.root):
            return []

        summaries: list[SessionSummary] = []
        for name in os.listdir(self.root):
            path = os.path.join(self.root, name, SESSION_FILE)
            if not os.path.isfile(path):
                continue
            try:
                with open(path, encoding="utf-8") as f:
                    data = json.load(f)
                summaries.append(
                    SessionSummary(
                        id=data["id"],
                        name=data["name"],
                        created_at=data["createdAt"],
                        updated_at=data["updatedAt"],
                        slide_count=len(data.get("slides") or []),
                    )
                )
            except (OSError, ValueError, KeyError, TypeError):
                logger.warning("Skipping unreadable session file %s", path)
                continue

        summaries.sort(key=lambda s: s.updated_at, reverse=True)
        return summaries

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def write_backup(self, session_id: str, text: str) -> str:
        """Store backup *text* for *session_id* and return its file name."""
        backup_dir = self.backup_dir(session_id)
        os.makedirs(backup_dir, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        filename = f"{stamp}.json"
        suffix = 1
        while os.path.exists(os.path.join(backup_dir, filename)):
            filename = f"{stamp}_{suffix}.json"
            suffix += 1
        with open(os.path.join(backup_dir, filename), "w", encoding="utf-8") as f:
            f.write(text)
        logger.info("Wrote backup %s for session %s", filename, session_id)
        return filename

    def list_backups(self, session_id: str) -> list[str]:
        """Backup file names for *session_id*, oldest first."""
        backup_dir = self.backup_dir(session_id)
        if not os.path.isdir(backup_dir):
            return []
        return sorted(n for n in os.listdir(backup_dir) if n.endswith(".json"))

    def read_backup(self, session_id: str, filename: str) -> str:
        with open(os.path.join(self.backup_dir(session_id), filename), encoding="utf-8") as f:
            return f.read()
