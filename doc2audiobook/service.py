"""Audiobook service - the operations exposed to the web app and the CLI."""

import logging
import uuid
from pathlib import Path, PurePosixPath
from typing import Mapping, Optional

from doc2audiobook.audio.audio_utils import DurationFunction, duration_function
from doc2audiobook.config import Settings
from doc2audiobook.converter import Converter
from doc2audiobook.errors import InvalidInput, NotFound, NotReady, StorageError, Unauthorized
from doc2audiobook.jobs import JobStore
from doc2audiobook.metadata import export_metadata
from doc2audiobook.models import (
    ChapterOutline,
    ConversionJob,
    ConversionTask,
    JobStatus,
    TTSConfig,
    VoiceProfile,
)
from doc2audiobook.segmenter import segment
from doc2audiobook.storage import (
    AUDIOBOOKS_BUCKET,
    VOICE_SAMPLES_BUCKET,
    LocalObjectStorage,
    ObjectStorage,
    owner_of,
    user_path,
)
from doc2audiobook.text_extractor import extract
from doc2audiobook.tts import get_engine
from doc2audiobook.tts.base import TTSEngine
from doc2audiobook.voices import VoiceLibrary
from doc2audiobook.worker import ConversionWorker

logger = logging.getLogger(__name__)

MIN_SPEED = 0.7
MAX_SPEED = 1.2

PARSING_PROGRESS = 10
CONVERTING_PROGRESS = 20

PREVIEW_TEXT = (
    "Hello, I'll be your audiobook narrator. "
    "Let me read you a short passage from your manuscript."
)


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise Unauthorized("Unauthorized")
    return user_id


class AudiobookService:
    """Document-to-audiobook conversion for authenticated users."""

    def __init__(
        self,
        engine: TTSEngine,
        documents: ObjectStorage,
        voices: VoiceLibrary,
        jobs: Optional[JobStore] = None,
        worker_threads: int = 1,
        duration_of: Optional[DurationFunction] = None,
    ):
        self.engine = engine
        self.documents = documents
        self.voices = voices
        self.jobs = jobs or JobStore()
        converter_kwargs = {"duration_of": duration_of} if duration_of else {}
        self.converter = Converter(self.jobs, documents, engine, **converter_kwargs)
        self.worker = ConversionWorker(self.converter.run, threads=worker_threads)

    @classmethod
    def from_settings(cls, settings: Settings, engine: Optional[TTSEngine] = None) -> "AudiobookService":
        """Wire every component from configuration."""
        engine = engine or get_engine(settings.tts_engine, settings)
        root = Path(settings.storage_dir)
        return cls(
            engine=engine,
            documents=LocalObjectStorage(root / AUDIOBOOKS_BUCKET),
            voices=VoiceLibrary(engine, LocalObjectStorage(root / VOICE_SAMPLES_BUCKET)),
            worker_threads=settings.worker_threads,
            duration_of=duration_function(settings.exact_durations),
        )

    def close(self, wait: bool = True) -> None:
        """Shut down the worker and the engine.

        ``wait=False`` does not wait for conversions still in progress.
        """
        self.worker.stop(wait=wait)
        self.engine.close()

    # --- Documents ---

    def upload_document(self, user_id: str, filename: str, data: bytes) -> str:
        """Store a document in the user's namespace and return its path."""
        _require_user(user_id)
        if not data:
            raise InvalidInput("Document is empty")
        name = PurePosixPath(filename.replace("\\", "/")).name or "document.txt"
        path = user_path(user_id, f"{uuid.uuid4().hex}_{name}")
        self.documents.upload(path, data, "application/octet-stream")
        return path

    # --- Conversions ---

    def start_conversion(
        self,
        user_id: str,
        document_path: str,
        voice_ref: str,
        filename: Optional[str] = None,
        speed: float = 1.0,
    ) -> dict:
        """Accept a conversion and queue it for synthesis.

        Extraction and segmentation happen here, before any job exists, so
        their errors reach the caller directly. Synthesis runs on the worker.

        Returns:
            ``{"jobId", "status", "totalSegments"}``
        """
        _require_user(user_id)
        if not document_path or not voice_ref:
            raise InvalidInput("Missing documentPath or voiceId")
        if not MIN_SPEED <= speed <= MAX_SPEED:
            raise InvalidInput(f"Speed must be between {MIN_SPEED} and {MAX_SPEED}")
        if owner_of(document_path) != user_id or not self._document_exists(document_path):
            raise NotFound("Document not found")

        voice = self.voices.resolve(user_id, voice_ref)
        blob = self.documents.download(document_path)
        filename = filename or PurePosixPath(document_path).name

        text = extract(blob, filename)
        segments = segment(text)

        job = self.jobs.insert(ConversionJob(
            id=uuid.uuid4().hex,
            user_id=user_id,
            voice_id=voice.id,
            original_filename=filename,
            document_path=document_path,
        ))
        self.jobs.update(job.id, status=JobStatus.PARSING, progress=PARSING_PROGRESS)
        self.jobs.update(
            job.id,
            status=JobStatus.CONVERTING,
            progress=CONVERTING_PROGRESS,
            chapters=[
                ChapterOutline(index=i, title=s.title, char_count=len(s.content))
                for i, s in enumerate(segments)
            ],
        )

        self.worker.submit(ConversionTask(
            job_id=job.id,
            user_id=user_id,
            segments=segments,
            engine_voice_id=voice.engine_voice_id,
            speed=speed,
        ))
        logger.info(
            "Accepted conversion %s: '%s', voice=%s, %d segments",
            job.id, filename, voice.id, len(segments),
        )
        return {
            "jobId": job.id,
            "status": JobStatus.CONVERTING.value,
            "totalSegments": len(segments),
        }

    def _document_exists(self, document_path: str) -> bool:
        try:
            return self.documents.exists(document_path)
        except StorageError:
            # malformed path, e.g. one that climbs out of the user's namespace
            return False

    def _owned_job(self, user_id: str, job_id: str) -> ConversionJob:
        _require_user(user_id)
        job = self.jobs.get(job_id)
        if job.user_id != user_id:
            raise NotFound(f"Conversion {job_id} not found")
        return job

    def get_job_status(self, user_id: str, job_id: str) -> ConversionJob:
        return self._owned_job(user_id, job_id)

    def list_jobs(self, user_id: str) -> list[ConversionJob]:
        return self.jobs.list_for_user(_require_user(user_id))

    def get_finished_audio(self, user_id: str, job_id: str) -> bytes:
        job = self._owned_job(user_id, job_id)
        if job.status != JobStatus.DONE or not job.audio_location:
            raise NotReady("Conversion not complete")
        return self.documents.download(job.audio_location)

    def export_metadata(
        self, user_id: str, job_id: str, overrides: Optional[Mapping[str, Optional[str]]] = None
    ) -> dict:
        job = self._owned_job(user_id, job_id)
        try:
            narrator = self.voices.get(user_id, job.voice_id).name
        except NotFound:
            narrator = None
        return export_metadata(job, overrides, narrator=narrator)

    # --- Voices ---

    def list_voices(self, user_id: str) -> list[VoiceProfile]:
        return self.voices.list_for_user(_require_user(user_id))

    def start_voice_clone(
        self, user_id: str, sample: bytes, name: str = "", filename: str = "sample.webm"
    ) -> dict:
        _require_user(user_id)
        voice = self.voices.clone(user_id, sample, name=name, filename=filename)
        return {"cloneId": voice.id, "status": voice.status.value}

    def preview_voice(self, user_id: str, voice_key: str) -> bytes:
        """Narrate a fixed sentence with a stock voice."""
        _require_user(user_id)
        voice = next((v for v in self.voices.stock_voices() if v.id == voice_key), None)
        if voice is None:
            raise NotFound(f"Unknown voice: {voice_key}")
        return self.engine.synthesize(PREVIEW_TEXT, voice.engine_voice_id, TTSConfig())
