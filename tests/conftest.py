"""
Shared pytest fixtures for companion tests.

Provides deterministic identifier and clock sources and realistic session
records in their persisted (camelCase JSON) form.
"""

import itertools

import pytest

from companion.models import CURRENT_SCHEMA_VERSION
from companion.services.sessions import SessionService
from companion.services.storage import SessionStorage

FIXED_NOW = "2025-01-15T09:30:00.000Z"


class CountingIds:
    """Deterministic id source: gen-1, gen-2, ..."""

    def __init__(self, prefix: str = "gen"):
        self.prefix = prefix
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self.prefix}-{next(self._counter)}"


@pytest.fixture
def ids():
    return CountingIds()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


def make_slide(**overrides) -> dict:
    slide = {
        "id": "slide-a",
        "index": 0,
        "imageData": "data:image/png;base64,AAAA",
        "width": 1920,
        "height": 1080,
    }
    slide.update(overrides)
    return slide


def make_session(**overrides) -> dict:
    """A complete, current-schema session record."""
    session = {
        "id": "session-1",
        "name": "Lecture 4: Graph Algorithms",
        "pdfFileName": "lecture-04.pdf",
        "slides": [
            make_slide(id="slide-a", index=0, extractedText="Dijkstra"),
            make_slide(id="slide-b", index=1),
        ],
        "notes": {
            "slide-a": {
                "id": "note-1",
                "slideId": "slide-a",
                "content": "<p>priority queue</p>",
                "plainText": "priority queue",
                "createdAt": "2025-01-10T10:00:00.000Z",
                "updatedAt": "2025-01-10T10:05:00.000Z",
            },
        },
        "enhancedNotes": {
            "slide-a": {
                "id": "enh-1",
                "slideId": "slide-a",
                "content": "<p>Dijkstra uses a priority queue.</p>",
                "plainText": "Dijkstra uses a priority queue.",
                "originalNoteId": "note-1",
                "enhancedAt": "2025-01-10T11:00:00.000Z",
                "status": "accepted",
            },
        },
        "transcripts": {
            "slide-a": [
                {
                    "id": "seg-1",
                    "slideId": "slide-a",
                    "text": "Let's look at shortest paths.",
                    "startTime": 0.0,
                    "endTime": 4200.0,
                    "confidence": 0.93,
                },
            ],
        },
        "aiConversations": [
            {
                "id": "conv-1",
                "sessionId": "session-1",
                "messages": [
                    {
                        "id": "msg-1",
                        "role": "user",
                        "content": "Why a heap?",
                        "timestamp": "2025-01-10T11:10:00.000Z",
                    },
                    {
                        "id": "msg-2",
                        "role": "assistant",
                        "content": "It gives O(log n) extraction.",
                        "slideContext": "slide-a",
                        "timestamp": "2025-01-10T11:10:05.000Z",
                    },
                ],
                "createdAt": "2025-01-10T11:10:00.000Z",
            },
        ],
        "currentSlideIndex": 1,
        "isRecording": False,
        "totalRecordingDuration": 4200.0,
        "phase": "enhanced",
        "createdAt": "2025-01-10T09:55:00.000Z",
        "updatedAt": "2025-01-10T11:10:05.000Z",
        "schemaVersion": CURRENT_SCHEMA_VERSION,
    }
    session.update(overrides)
    return session


def make_v0_session(**overrides) -> dict:
    """A record written before schema versioning: no phase, enhanced notes or duration."""
    session = make_session()
    for key in ("enhancedNotes", "phase", "totalRecordingDuration", "schemaVersion"):
        del session[key]
    session.update(overrides)
    return session


@pytest.fixture
def session_record():
    return make_session()


@pytest.fixture
def storage(tmp_path):
    return SessionStorage(str(tmp_path / "sessions"), str(tmp_path / "backups"))


@pytest.fixture
def service(storage, ids, clock):
    return SessionService(storage, id_factory=ids, clock=clock)
