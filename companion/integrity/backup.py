import json
import logging
from typing import Callable

from companion.integrity.migration import migrate_session
from companion.models import Session, utc_now_iso

logger = logging.getLogger(__name__)


def create_backup(session: Session, *, clock: Callable[[], str] | None = None) -> str:
    """Serialize *session* inside a backup envelope.

    Returns::

        {"backup": true, "timestamp": "<ISO-8601>", "session": {...}}
    """
    envelope = {
        "backup": True,
        "timestamp": (clock or utc_now_iso)(),
        "session": session.to_dict(),
    }
    return json.dumps(envelope)


def restore_from_backup(
    text: str,
    *,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], str] | None = None,
) -> Session | None:
    """Return the session inside a backup envelope, or None.

    None covers malformed JSON (including nesting too deep to decode) and
    JSON that is not an envelope: no truthy ``backup`` marker, or a
    ``session`` that is missing or not an object. An embedded session from
    an older schema, or one with damaged fields, goes through
    :func:`migrate_session`, so it comes back current and well-typed.
    Never raises.
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError, RecursionError):
        logger.warning("Backup is not valid JSON")
        return None

    if not isinstance(parsed, dict) or not parsed.get("backup") or not parsed.get("session"):
        logger.warning("JSON document is not a session backup")
        return None

    session = parsed["session"]
    if not isinstance(session, dict):
        logger.warning("Backup envelope holds a %s, not a session", type(session).__name__)
        return None

    return migrate_session(session, id_factory=id_factory, clock=clock)
