"""Forward schema migration for persisted sessions.

Each schema bump adds one ``(target_version, step)`` pair to ``MIGRATIONS``.
Steps run in ascending order and each runs only when the stored version is
below its target, so a v0 record passes through every step and a current one
through none. Steps may assume the fields that existed at the previous version
and fill in the ones introduced by theirs.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, Callable

from pydantic import ValidationError

from companion.integrity.decode import as_int, as_mapping
from companion.integrity.recovery import recover_session
from companion.models import CURRENT_SCHEMA_VERSION, Session, SessionPhase

logger = logging.getLogger(__name__)


def _to_v1(session: dict) -> None:
    """v1 introduced enhanced notes, the workflow phase and recording duration."""
    if session.get("enhancedNotes") is None:
        session["enhancedNotes"] = {}
    if not session.get("phase"):
        session["phase"] = _infer_phase(session).value
    if session.get("totalRecordingDuration") is None:
        session["totalRecordingDuration"] = 0


def _infer_phase(session: Mapping[str, Any]) -> SessionPhase:
    if session.get("isRecording"):
        return SessionPhase.RECORDING
    if as_mapping(session.get("enhancedNotes")):
        return SessionPhase.ENHANCED
    if as_mapping(session.get("transcripts")):
        return SessionPhase.READY_TO_ENHANCE
    return SessionPhase.IDLE


MIGRATIONS: tuple[tuple[int, Callable[[dict], None]], ...] = (
    (1, _to_v1),
)


def schema_version_of(data: Mapping[str, Any]) -> int:
    """Stored schema version; records written before versioning count as 0."""
    return as_int(data.get("schemaVersion")) or 0


def upgrade(data: Session | Mapping[str, Any]) -> dict:
    """Apply every pending migration step to a copy of *data*, in wire form.

    The input is never modified. The result carries ``schemaVersion`` set to
    the current version but is not otherwise checked.
    """
    if isinstance(data, Session):
        session = data.to_dict()
    else:
        session = copy.deepcopy(dict(data))

    version = schema_version_of(session)
    if version > CURRENT_SCHEMA_VERSION:
        logger.warning(
            "Session %s has schema version %d, newer than %d",
            session.get("id"),
            version,
            CURRENT_SCHEMA_VERSION,
        )

    for target, step in MIGRATIONS:
        if version < target:
            step(session)
            logger.info("Migrated session %s to schema version %d", session.get("id"), target)

    session["schemaVersion"] = CURRENT_SCHEMA_VERSION
    return session


def migrate_session(
    data: Session | Mapping[str, Any],
    *,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], str] | None = None,
) -> Session:
    """Upgrade *data* to the current schema and return it as a :class:`Session`.

    A session already at the current version comes back unchanged apart from
    ``schemaVersion``. If the upgraded record still does not form a valid
    session (fields the migration steps don't cover are missing or malformed),
    it is passed through :func:`recover_session`, which keeps everything the
    steps inferred.
    """
    upgraded = upgrade(data)
    try:
        return Session.model_validate(upgraded)
    except ValidationError as exc:
        logger.warning(
            "Session %s is malformed after migration (%d problems), recovering",
            upgraded.get("id"),
            exc.error_count(),
        )
        return recover_session(upgraded, id_factory=id_factory, clock=clock)
