import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from companion.integrity.decode import as_int, as_list, as_mapping, as_str
from companion.integrity.recovery import recover_session
from companion.models import Session

logger = logging.getLogger(__name__)

NOT_AN_OBJECT = "Session data is null or not an object"


@dataclass
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    recovered: Session | None = None

    @property
    def repaired(self) -> bool:
        return self.recovered is not None


def validate_session(
    data: Any,
    *,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], str] | None = None,
) -> ValidationResult:
    """Classify *data* as valid, repairable or unrecoverable.

    ``errors`` are defects that make the record untrustworthy as-is; ``warnings``
    are defects that are safe to repair silently. If either list is non-empty a
    recovered session is attached (see :func:`recover_session`); a record with
    a bad id is still recovered but reported as not valid. Anything that is not
    a record at all is unrecoverable and gets no recovered session.
    """
    record = as_mapping(data)
    if record is None:
        logger.error("Rejecting session data of type %s", type(data).__name__)
        return ValidationResult(valid=False, errors=[NOT_AN_OBJECT])

    errors: list[str] = []
    warnings: list[str] = []

    if not as_str(record.get("id")):
        errors.append("Missing or invalid session ID")

    if not as_str(record.get("name")):
        warnings.append("Missing session name, will use default")

    if not as_str(record.get("createdAt")):
        warnings.append("Missing createdAt timestamp, will use current time")

    slides = as_list(record.get("slides"))
    if slides is None:
        warnings.append("Invalid slides array, will initialize empty")
    else:
        warnings.extend(f"Slide validation: {problem}" for problem in _slide_problems(slides))

    if _present_but_not(record, "notes", Mapping):
        warnings.append("Invalid notes object, will initialize empty")

    if _present_but_not(record, "transcripts", Mapping):
        warnings.append("Invalid transcripts object, will initialize empty")

    if _present_but_not(record, "aiConversations", list):
        warnings.append("Invalid AI conversations, will initialize empty")

    if not errors and not warnings:
        return ValidationResult(valid=True)

    for problem in errors:
        logger.error("Session validation error: %s", problem)
    for problem in warnings:
        logger.warning("Session validation warning: %s", problem)

    return ValidationResult(
        valid=not errors,
        errors=errors,
        warnings=warnings,
        recovered=recover_session(record, id_factory=id_factory, clock=clock),
    )


def _slide_problems(slides: list) -> list[str]:
    problems = []
    for position, slide in enumerate(slides):
        record = as_mapping(slide)
        if record is None:
            problems.append(f"Slide {position} is invalid")
            continue
        if not as_str(record.get("id")):
            problems.append(f"Slide {position} missing ID")
        if as_int(record.get("index")) is None:
            problems.append(f"Slide {position} missing index")
    return problems


def _present_but_not(record: Mapping[str, Any], key: str, expected: type) -> bool:
    value = record.get(key)
    return value is not None and not isinstance(value, expected)
