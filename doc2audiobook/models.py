"""Data models for the doc2audiobook pipeline."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    PENDING = "pending"
    PARSING = "parsing"
    CONVERTING = "converting"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.FAILED)


class VoiceStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Segment:
    """A bounded slice of document text sent as one TTS request."""
    title: str
    content: str


@dataclass(frozen=True)
class ChapterOutline:
    """Chapter skeleton recorded before any audio exists."""
    index: int
    title: str
    char_count: int

    def to_dict(self) -> dict:
        return {"index": self.index, "title": self.title, "charCount": self.char_count}


@dataclass(frozen=True)
class ChapterMeta:
    """Timing of one synthesized segment inside the assembled audio."""
    title: str
    start_seconds: float
    duration_seconds: float

    @property
    def end_seconds(self) -> float:
        return self.start_seconds + self.duration_seconds

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "startSeconds": self.start_seconds,
            "durationSeconds": self.duration_seconds,
        }


ChapterEntry = Union[ChapterOutline, ChapterMeta]


@dataclass
class TTSConfig:
    """Voice-shaping parameters sent with every synthesis request.

    The defaults are tuned for long-form narration.
    """
    model_id: str = "eleven_multilingual_v2"
    stability: float = 0.6
    similarity_boost: float = 0.8
    style: float = 0.3
    use_speaker_boost: bool = True
    speed: float = 1.0
    output_format: str = "mp3_44100_128"


@dataclass
class VoiceProfile:
    """A stock voice or a voice cloned from a user sample."""
    id: str
    name: str
    kind: str  # "stock" or "clone"
    status: VoiceStatus = VoiceStatus.READY
    engine_voice_id: Optional[str] = None
    user_id: Optional[str] = None
    sample_path: Optional[str] = None
    description: str = ""
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_usable(self) -> bool:
        return self.status == VoiceStatus.READY and bool(self.engine_voice_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "status": self.status.value,
            "description": self.description,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class ConversionJob:
    """State of one document's end-to-end narration."""
    id: str
    user_id: str
    voice_id: str
    original_filename: str
    document_path: Optional[str] = None
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    chapters: list[ChapterEntry] = field(default_factory=list)
    audio_location: Optional[str] = None
    total_duration_seconds: Optional[float] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "chapters": [c.to_dict() for c in self.chapters],
            "audioLocation": self.audio_location,
            "totalDurationSeconds": self.total_duration_seconds,
            "originalFilename": self.original_filename,
            "voiceId": self.voice_id,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class SynthesisResult:
    """Output of the narration loop, in segment order."""
    buffers: list[bytes]
    chapters: list[ChapterMeta]
    total_duration_seconds: float


@dataclass
class ConversionTask:
    """Unit of work handed from the request path to a worker."""
    job_id: str
    user_id: str
    segments: list[Segment]
    engine_voice_id: str
    speed: float = 1.0
