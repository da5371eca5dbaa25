import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Bump this and append a step to ``integrity.migration.MIGRATIONS``.
CURRENT_SCHEMA_VERSION = 1


def new_id() -> str:
    """Default identifier source. uuid4 is safe to call from any thread."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    """Current UTC time as ``2024-01-31T12:00:00.000Z``."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class _ParseableEnum(str, Enum):
    @classmethod
    def parse(cls, value: Any):
        """Return the member whose value is *value*, or None for anything else."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class SessionPhase(_ParseableEnum):
    IDLE = "idle"
    RECORDING = "recording"
    READY_TO_ENHANCE = "ready_to_enhance"
    ENHANCING = "enhancing"
    ENHANCED = "enhanced"


class EnhancementStatus(_ParseableEnum):
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class MessageRole(_ParseableEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# ---------------------------------------------------------------------------
# Session entities
#
# Attributes are snake_case; the persisted JSON form is camelCase.
# ---------------------------------------------------------------------------


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """JSON-ready wire form. Optional fields that are unset are omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Slide(_Record):
    id: str
    index: int
    image_data: str  # encoded image payload
    width: int
    height: int
    extracted_text: str | None = None
    viewed_at: float | None = None
    viewed_until: float | None = None


class Note(_Record):
    id: str
    slide_id: str
    content: str  # rich-text HTML
    plain_text: str
    created_at: str
    updated_at: str


class EnhancedNote(_Record):
    id: str
    slide_id: str
    content: str
    plain_text: str
    original_note_id: str | None = None
    enhanced_at: str
    status: EnhancementStatus
    error: str | None = None


class TranscriptSegment(_Record):
    id: str
    slide_id: str
    text: str
    start_time: float  # ms from session start
    end_time: float
    confidence: float


class AIMessage(_Record):
    id: str
    role: MessageRole
    content: str
    slide_context: str | None = None
    timestamp: str | None = None


class AIConversation(_Record):
    id: str
    session_id: str
    messages: list[AIMessage]
    created_at: str


class SessionFeedback(_Record):
    rating: int
    feedback: str
    submitted_at: str


class Session(_Record):
    id: str
    name: str
    pdf_file_name: str | None = None
    slides: list[Slide]
    notes: dict[str, Note]  # keyed by slide id
    enhanced_notes: dict[str, EnhancedNote]  # keyed by slide id
    transcripts: dict[str, list[TranscriptSegment]]  # keyed by slide id
    ai_conversations: list[AIConversation]
    current_slide_index: int
    is_recording: bool
    recording_start_time: float | None = None
    total_recording_duration: float  # ms
    phase: SessionPhase
    feedback: SessionFeedback | None = None
    created_at: str
    updated_at: str
    schema_version: int


class SessionSummary(_Record):
    id: str
    name: str
    created_at: str
    updated_at: str
    slide_count: int
