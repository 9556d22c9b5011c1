"""Voice library - stock voices plus per-user cloned voices."""

import dataclasses
import logging
import threading
import uuid

from doc2audiobook.errors import InvalidInput, NotFound, NotReady, VoiceCloneError
from doc2audiobook.models import VoiceProfile, VoiceStatus
from doc2audiobook.storage import ObjectStorage, user_path
from doc2audiobook.tts.base import TTSEngine

logger = logging.getLogger(__name__)

MAX_SAMPLE_BYTES = 25 * 1024 * 1024
DEFAULT_CLONE_NAME = "My Voice"


class VoiceLibrary:
    """Resolves voice references and manages the clone lifecycle.

    Clone status state machine: pending → processing → ready | failed
    """

    def __init__(self, engine: TTSEngine, sample_storage: ObjectStorage):
        self.engine = engine
        self.sample_storage = sample_storage
        self._stock = {
            v["key"]: VoiceProfile(
                id=v["key"],
                name=v["name"],
                kind="stock",
                engine_voice_id=v["voice_id"],
                description=v.get("description", ""),
            )
            for v in engine.list_voices()
        }
        self._clones: dict[str, VoiceProfile] = {}
        self._lock = threading.Lock()

    def stock_voices(self) -> list[VoiceProfile]:
        return list(self._stock.values())

    def list_for_user(self, user_id: str) -> list[VoiceProfile]:
        with self._lock:
            clones = [dataclasses.replace(c) for c in self._clones.values() if c.user_id == user_id]
        clones.sort(key=lambda c: c.created_at, reverse=True)
        return self.stock_voices() + clones

    def get(self, user_id: str, voice_ref: str) -> VoiceProfile:
        """Return a stock voice or one of the user's clones.

        Raises:
            NotFound: If the voice does not exist or belongs to another user.
        """
        if voice_ref in self._stock:
            return self._stock[voice_ref]
        with self._lock:
            clone = self._clones.get(voice_ref)
            if clone is None or clone.user_id != user_id:
                raise NotFound(f"Voice {voice_ref} not found")
            return dataclasses.replace(clone)

    def resolve(self, user_id: str, voice_ref: str) -> VoiceProfile:
        """Like :meth:`get`, but only returns voices usable for synthesis.

        Raises:
            NotReady: If the voice is a clone that is not ready.
        """
        voice = self.get(user_id, voice_ref)
        if not voice.is_usable:
            raise NotReady(f"Voice clone not ready (status: {voice.status.value})")
        return voice

    def clone(
        self,
        user_id: str,
        sample: bytes,
        name: str = "",
        filename: str = "sample.webm",
    ) -> VoiceProfile:
        """Clone a voice from an audio sample.

        The sample is stored first, then sent to the engine. On any failure
        the clone is marked failed and the error is raised.

        Raises:
            InvalidInput: If the sample is empty or larger than 25 MB.
            StorageError: If the sample cannot be stored.
            VoiceCloneError: If the engine rejects the sample.
        """
        if not sample:
            raise InvalidInput("Voice sample is empty")
        if len(sample) > MAX_SAMPLE_BYTES:
            raise InvalidInput("Voice sample exceeds the 25 MB limit")

        name = name or DEFAULT_CLONE_NAME
        clone_id = uuid.uuid4().hex
        sample_path = user_path(user_id, f"{clone_id}_{filename}")
        profile = VoiceProfile(
            id=clone_id,
            name=name,
            kind="clone",
            status=VoiceStatus.PENDING,
            user_id=user_id,
            sample_path=sample_path,
        )
        with self._lock:
            self._clones[clone_id] = profile

        try:
            self.sample_storage.upload(sample_path, sample, "audio/webm")
            self._set(clone_id, status=VoiceStatus.PROCESSING)
            logger.info("Cloning voice '%s' for user %s", name, user_id)
            engine_voice_id = self.engine.create_voice(
                sample,
                name=f"doc2audiobook_{user_id[:8]}_{name}",
                description=f"Narration voice clone for {name}",
                filename=filename,
            )
        except Exception:
            logger.exception("Voice clone %s failed", clone_id)
            self._set(clone_id, status=VoiceStatus.FAILED)
            raise

        return self._set(clone_id, status=VoiceStatus.READY, engine_voice_id=engine_voice_id)

    def _set(self, clone_id: str, **fields) -> VoiceProfile:
        with self._lock:
            current = self._clones[clone_id]
            if current.status in (VoiceStatus.READY, VoiceStatus.FAILED):
                raise VoiceCloneError(f"Voice clone {clone_id} is already {current.status.value}")
            updated = dataclasses.replace(current, **fields)
            self._clones[clone_id] = updated
            return dataclasses.replace(updated)
