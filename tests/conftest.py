from typing import Optional

import pytest

from doc2audiobook.errors import SynthesisError, VoiceCloneError
from doc2audiobook.jobs import JobStore
from doc2audiobook.models import TTSConfig
from doc2audiobook.service import AudiobookService
from doc2audiobook.storage import LocalObjectStorage
from doc2audiobook.tts.base import TTSEngine
from doc2audiobook.voices import VoiceLibrary


class FakeEngine(TTSEngine):
    """In-memory engine: returns ``audio_sizes[i]`` bytes for the i-th request."""

    def __init__(self, settings=None, audio_sizes=None, fail_on: Optional[int] = None, clone_error=False):
        self.audio_sizes = list(audio_sizes or [])
        self.fail_on = fail_on
        self.clone_error = clone_error
        self.calls: list[dict] = []
        self.clone_calls: list[dict] = []

    def synthesize(self, text, voice_id, config: TTSConfig, previous_text=None, next_text=None):
        self.calls.append({
            "text": text,
            "voice_id": voice_id,
            "speed": config.speed,
            "previous_text": previous_text,
            "next_text": next_text,
        })
        n = len(self.calls)
        if self.fail_on == n:
            raise SynthesisError("TTS failed [500]: boom", upstream_status=500, body="boom")
        size = self.audio_sizes[n - 1] if n <= len(self.audio_sizes) else 16000
        return bytes([n % 256]) * size

    def create_voice(self, sample, name, description="", filename="sample.webm"):
        self.clone_calls.append({"name": name, "size": len(sample), "filename": filename})
        if self.clone_error:
            raise VoiceCloneError("ElevenLabs clone failed [422]: bad sample", 422, "bad sample")
        return "cloned-voice-id"

    def list_voices(self):
        return [
            {"key": "george", "name": "George", "voice_id": "george-id", "description": "Deep"},
            {"key": "sarah", "name": "Sarah", "voice_id": "sarah-id", "description": "Warm"},
        ]

    @property
    def name(self):
        return "Fake TTS"

    @property
    def output_format(self):
        return "mp3"


def chapter_text(n: int, length: int = 1000) -> str:
    """A 'Chapter n' block of exactly ``length`` characters."""
    heading = f"Chapter {n}\n"
    sentence = f"Sentence of chapter {n}. "
    body = (sentence * (length // len(sentence) + 1))[: length - len(heading)]
    return heading + body


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def make_service(tmp_path):
    services = []

    def _make(engine: TTSEngine, jobs: Optional[JobStore] = None) -> AudiobookService:
        service = AudiobookService(
            engine=engine,
            documents=LocalObjectStorage(tmp_path / "audiobooks"),
            voices=VoiceLibrary(engine, LocalObjectStorage(tmp_path / "voice-samples")),
            jobs=jobs,
        )
        services.append(service)
        return service

    yield _make
    for service in services:
        service.worker.stop()
