"""Abstract base class for TTS engines."""

from abc import ABC, abstractmethod
from typing import Optional

from doc2audiobook.config import Settings
from doc2audiobook.models import TTSConfig


class TTSEngine(ABC):
    """Abstract base class that all TTS engines must implement."""

    @abstractmethod
    def __init__(self, settings: Settings, **kwargs) -> None:
        """Build the engine from settings.

        Raises:
            ConfigurationError: If a required credential is missing.
        """
        ...

    @abstractmethod
    def synthesize(
        self,
        text: str,
        voice_id: str,
        config: TTSConfig,
        previous_text: Optional[str] = None,
        next_text: Optional[str] = None,
    ) -> bytes:
        """Synthesize text and return the encoded audio.

        Args:
            text: Plain text to synthesize.
            voice_id: Engine-side voice identifier.
            config: Model and voice-shaping settings.
            previous_text: Text spoken just before this request, if any.
            next_text: Text spoken just after this request, if any.

        Raises:
            SynthesisError: If the engine rejects the request.
        """
        ...

    @abstractmethod
    def create_voice(
        self, sample: bytes, name: str, description: str = "", filename: str = "sample.webm"
    ) -> str:
        """Clone a voice from an audio sample and return its engine voice id.

        Raises:
            VoiceCloneError: If cloning fails.
        """
        ...

    @abstractmethod
    def list_voices(self) -> list[dict]:
        """Return the stock voices.

        Each dict contains 'key', 'name', 'voice_id' and 'description'.
        """
        ...

    def close(self) -> None:
        """Release network resources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine name."""
        ...

    @property
    @abstractmethod
    def output_format(self) -> str:
        """Audio container produced: 'mp3' or 'wav'."""
        ...
