from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from companion.integrity import validate_session
from companion.services.sessions import LoadResult, SessionLoadError, SessionService
from companion.services.storage import InvalidSessionIdError, SessionNotFoundError

router = APIRouter(prefix="/api", tags=["sessions"])


def get_session_service() -> SessionService:
    return SessionService()


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _storage_errors(session_id: str, exc: Exception) -> HTTPException:
    if isinstance(exc, InvalidSessionIdError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return HTTPException(status_code=422, detail=str(exc))


def _load_payload(result: LoadResult) -> dict:
    return {
        "session": result.session.to_dict(),
        "repaired": result.repaired,
        "errors": result.errors,
        "warnings": result.warnings,
    }


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------


@router.post("/sessions/validate")
def validate(body: Any = Body(...)) -> dict:
    """Validation report for an arbitrary JSON document. Nothing is stored."""
    result = validate_session(body)
    return {
        "valid": result.valid,
        "errors": result.errors,
        "warnings": result.warnings,
        "recovered": result.recovered.to_dict() if result.recovered else None,
    }


# ------------------------------------------------------------------
# Session endpoints
# ------------------------------------------------------------------


@router.get("/sessions")
def list_sessions(service: SessionService = Depends(get_session_service)) -> list[dict]:
    return [summary.to_dict() for summary in service.storage.list_summaries()]


@router.get("/sessions/{session_id}")
def get_session(
    session_id: str, service: SessionService = Depends(get_session_service)
) -> dict:
    try:
        return _load_payload(service.open(session_id))
    except (InvalidSessionIdError, SessionNotFoundError, SessionLoadError) as e:
        raise _storage_errors(session_id, e)


@router.put("/sessions/{session_id}")
def save_session(
    session_id: str,
    body: Any = Body(...),
    service: SessionService = Depends(get_session_service),
) -> dict:
    """Store a session after running it through validation, recovery and migration."""
    try:
        service.storage.sanitize_session_id(session_id)
        result = service.load(body)
    except (InvalidSessionIdError, SessionLoadError) as e:
        raise _storage_errors(session_id, e)

    if result.session.id != session_id:
        raise HTTPException(
            status_code=400,
            detail=f"Session id {result.session.id!r} does not match path id {session_id!r}",
        )
    service.save(result.session)
    return _load_payload(result)


@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: str, service: SessionService = Depends(get_session_service)
) -> dict:
    """Delete a stored session. A backup is written first when possible."""
    try:
        backup = service.delete(session_id)
    except (InvalidSessionIdError, SessionNotFoundError) as e:
        raise _storage_errors(session_id, e)
    return {"session_id": session_id, "status": "deleted", "backup": backup}


# ------------------------------------------------------------------
# Backup endpoints
# ------------------------------------------------------------------


@router.post("/sessions/{session_id}/backup")
def backup_session(
    session_id: str, service: SessionService = Depends(get_session_service)
) -> dict:
    try:
        session = service.open(session_id).session
    except (InvalidSessionIdError, SessionNotFoundError, SessionLoadError) as e:
        raise _storage_errors(session_id, e)
    return {"session_id": session_id, "backup": service.write_backup(session, session_id)}


@router.post("/sessions/{session_id}/restore")
def restore_session(
    session_id: str, service: SessionService = Depends(get_session_service)
) -> dict:
    """Replace the stored session with its newest usable backup."""
    try:
        session = service.restore_latest(session_id)
    except InvalidSessionIdError as e:
        raise _storage_errors(session_id, e)
    if session is None:
        raise HTTPException(
            status_code=404, detail=f"No usable backup for session {session_id}"
        )
    service.save(session)
    return {"session_id": session_id, "status": "restored", "session": session.to_dict()}
