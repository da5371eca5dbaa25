import logging
from collections.abc import Mapping
from typing import Any, Callable

from companion.integrity.decode import (
    as_bool,
    as_int,
    as_list,
    as_mapping,
    as_number,
    as_str,
    or_default,
    or_else,
)
from companion.models import (
    CURRENT_SCHEMA_VERSION,
    AIConversation,
    AIMessage,
    EnhancedNote,
    EnhancementStatus,
    MessageRole,
    Note,
    Session,
    SessionFeedback,
    SessionPhase,
    Slide,
    TranscriptSegment,
    new_id,
    utc_now_iso,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSION_NAME = "Recovered Session"
DEFAULT_SLIDE_WIDTH = 800
DEFAULT_SLIDE_HEIGHT = 600


class SessionRecoverer:
    """Rebuild a fully well-typed :class:`Session` from a damaged record.

    Every field is decoded independently: a malformed field is replaced by a
    default (or a synthesized value) without affecting its neighbours.
    Collection entries that are not records are dropped, so collections may
    shrink. AI messages with an unknown role are dropped as well, since the
    role decides how a message is rendered and cannot be guessed.

    ``id_factory`` and ``clock`` supply new identifiers and ISO timestamps.
    Both default to the process-wide sources in :mod:`companion.models`;
    tests pass deterministic ones.
    """

    def __init__(
        self,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], str] | None = None,
    ) -> None:
        self.id_factory = id_factory or new_id
        self.clock = clock or utc_now_iso

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def recover(self, data: Any) -> Session:
        """Never raises. A non-record input yields an empty, freshly named session."""
        record = or_default(as_mapping(data), {})

        session = Session(
            id=or_else(as_str(record.get("id")), self.id_factory),
            name=or_default(as_str(record.get("name")), DEFAULT_SESSION_NAME),
            pdf_file_name=as_str(record.get("pdfFileName")),
            slides=self._slides(record.get("slides")),
            notes=self._keyed(record.get("notes"), self._note),
            enhanced_notes=self._keyed(record.get("enhancedNotes"), self._enhanced_note),
            transcripts=self._transcripts(record.get("transcripts")),
            ai_conversations=self._entries(record.get("aiConversations"), self._conversation),
            current_slide_index=or_default(as_int(record.get("currentSlideIndex")), 0),
            is_recording=or_default(as_bool(record.get("isRecording")), False),
            recording_start_time=as_number(record.get("recordingStartTime")),
            total_recording_duration=or_default(
                as_number(record.get("totalRecordingDuration")), 0
            ),
            phase=or_default(SessionPhase.parse(record.get("phase")), SessionPhase.IDLE),
            feedback=self._feedback(record.get("feedback")),
            created_at=or_else(as_str(record.get("createdAt")), self.clock),
            updated_at=or_else(as_str(record.get("updatedAt")), self.clock),
            schema_version=CURRENT_SCHEMA_VERSION,
        )
        logger.info(
            "Recovered session %s (%d slides, %d notes, %d conversations)",
            session.id,
            len(session.slides),
            len(session.notes),
            len(session.ai_conversations),
        )
        return session

    # ------------------------------------------------------------------
    # Collection helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _entries(value: Any, recover_one: Callable[[Mapping[str, Any]], Any]) -> list:
        """Recover each record in a list; non-records and rejected entries are dropped."""
        recovered = []
        for entry in or_default(as_list(value), []):
            record = as_mapping(entry)
            if record is None:
                continue
            item = recover_one(record)
            if item is not None:
                recovered.append(item)
        return recovered

    @staticmethod
    def _keyed(value: Any, recover_one: Callable[[Mapping[str, Any], str], Any]) -> dict:
        """Recover a slide-keyed mapping, forcing each value's slide id to its key."""
        recovered = {}
        for slide_id, entry in or_default(as_mapping(value), {}).items():
            record = as_mapping(entry)
            if record is not None:
                recovered[str(slide_id)] = recover_one(record, str(slide_id))
        return recovered

    def _transcripts(self, value: Any) -> dict[str, list[TranscriptSegment]]:
        recovered = {}
        for slide_id, segments in or_default(as_mapping(value), {}).items():
            if as_list(segments) is None:
                continue
            slide_id = str(slide_id)
            recovered[slide_id] = self._entries(
                segments, lambda seg: self._segment(seg, slide_id)
            )
        return recovered

    # ------------------------------------------------------------------
    # Entity recovery
    # ------------------------------------------------------------------

    def _slides(self, value: Any) -> list[Slide]:
        slides = []
        # The fallback id uses the original array position, so it can collide
        # with a neighbour's genuine id (e.g. "slide-1"). Collisions are kept.
        for position, entry in enumerate(or_default(as_list(value), [])):
            record = as_mapping(entry)
            if record is None:
                continue
            slides.append(
                Slide(
                    id=or_default(as_str(record.get("id")), f"slide-{position}"),
                    index=or_default(as_int(record.get("index")), position),
                    image_data=or_default(as_str(record.get("imageData")), ""),
                    width=or_default(as_int(record.get("width")), DEFAULT_SLIDE_WIDTH),
                    height=or_default(as_int(record.get("height")), DEFAULT_SLIDE_HEIGHT),
                    extracted_text=as_str(record.get("extractedText")),
                    viewed_at=as_number(record.get("viewedAt")),
                    viewed_until=as_number(record.get("viewedUntil")),
                )
            )
        return slides

    def _note(self, record: Mapping[str, Any], slide_id: str) -> Note:
        return Note(
            id=or_else(as_str(record.get("id")), self.id_factory),
            slide_id=slide_id,
            content=or_default(as_str(record.get("content")), ""),
            plain_text=or_default(as_str(record.get("plainText")), ""),
            created_at=or_else(as_str(record.get("createdAt")), self.clock),
            updated_at=or_else(as_str(record.get("updatedAt")), self.clock),
        )

    def _enhanced_note(self, record: Mapping[str, Any], slide_id: str) -> EnhancedNote:
        return EnhancedNote(
            id=or_else(as_str(record.get("id")), self.id_factory),
            slide_id=slide_id,
            content=or_default(as_str(record.get("content")), ""),
            plain_text=or_default(as_str(record.get("plainText")), ""),
            original_note_id=as_str(record.get("originalNoteId")),
            enhanced_at=or_else(as_str(record.get("enhancedAt")), self.clock),
            status=or_default(
                EnhancementStatus.parse(record.get("status")), EnhancementStatus.COMPLETE
            ),
            error=as_str(record.get("error")),
        )

    def _segment(self, record: Mapping[str, Any], slide_id: str) -> TranscriptSegment:
        return TranscriptSegment(
            id=or_else(as_str(record.get("id")), self.id_factory),
            slide_id=slide_id,
            text=or_default(as_str(record.get("text")), ""),
            start_time=or_default(as_number(record.get("startTime")), 0),
            end_time=or_default(as_number(record.get("endTime")), 0),
            confidence=or_default(as_number(record.get("confidence")), 0),
        )

    def _conversation(self, record: Mapping[str, Any]) -> AIConversation:
        return AIConversation(
            id=or_else(as_str(record.get("id")), self.id_factory),
            session_id=or_default(as_str(record.get("sessionId")), ""),
            messages=self._entries(record.get("messages"), self._message),
            created_at=or_else(as_str(record.get("createdAt")), self.clock),
        )

    def _message(self, record: Mapping[str, Any]) -> AIMessage | None:
        role = MessageRole.parse(record.get("role"))
        if role is None:
            logger.debug("Dropping AI message with invalid role %r", record.get("role"))
            return None
        return AIMessage(
            id=or_else(as_str(record.get("id")), self.id_factory),
            role=role,
            content=or_default(as_str(record.get("content")), ""),
            slide_context=as_str(record.get("slideContext")),
            timestamp=or_else(as_str(record.get("timestamp")), self.clock),
        )

    @staticmethod
    def _feedback(value: Any) -> SessionFeedback | None:
        record = as_mapping(value)
        if record is None:
            return None
        rating = as_int(record.get("rating"))
        text = as_str(record.get("feedback"))
        submitted_at = as_str(record.get("submittedAt"))
        if rating is None or text is None or submitted_at is None:
            return None
        return SessionFeedback(rating=rating, feedback=text, submitted_at=submitted_at)


def recover_session(
    data: Any,
    *,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], str] | None = None,
) -> Session:
    """Shortcut for ``SessionRecoverer(id_factory, clock).recover(data)``."""
    return SessionRecoverer(id_factory, clock).recover(data)
