"""ElevenLabs TTS engine - hosted neural TTS with instant voice cloning."""

import logging
from typing import Optional

import httpx

from doc2audiobook.config import Settings
from doc2audiobook.errors import SynthesisError, VoiceCloneError
from doc2audiobook.models import TTSConfig
from doc2audiobook.tts import register_engine
from doc2audiobook.tts.base import TTSEngine

logger = logging.getLogger(__name__)

# Premade voices offered to every user
STOCK_VOICES = {
    "george": ("George", "JBFqnCBsd6RMkjVDRZzb", "Deep, authoritative"),
    "sarah": ("Sarah", "EXAVITQu4vr4xnSDxMaL", "Warm, conversational"),
    "roger": ("Roger", "CwhRBWXzGAHq8TQ4Fs17", "Confident, casual"),
    "laura": ("Laura", "FGY2WhTYpPnrIDTdsKH5", "Upbeat, quirky"),
    "charlie": ("Charlie", "IKne3meq5aSn9XLyUdCD", "Natural, relaxed"),
    "liam": ("Liam", "TX3LPaxmHKxFdv7VOQHJ", "Articulate, young"),
    "lily": ("Lily", "pFZP5JQG7iQjIQuC4Bku", "Gentle, soothing"),
    "brian": ("Brian", "nPczCjzI2devNBz1zQrb", "Clear, professional"),
    "alice": ("Alice", "Xb7hH8MSUJpSbSDYk0k2", "Bright, engaging"),
    "daniel": ("Daniel", "onwK4e9ZLuTAKqWW03F9", "Rich, narrative"),
}


@register_engine("elevenlabs")
class ElevenLabsEngine(TTSEngine):
    """TTS engine backed by the ElevenLabs REST API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        self._api_key = settings.require_api_key()
        self._client = httpx.Client(
            base_url=settings.elevenlabs_base_url.rstrip("/"),
            timeout=settings.request_timeout,
            transport=transport,
        )

    def synthesize(
        self,
        text: str,
        voice_id: str,
        config: TTSConfig,
        previous_text: Optional[str] = None,
        next_text: Optional[str] = None,
    ) -> bytes:
        body = self.build_request_body(text, config, previous_text, next_text)
        logger.debug("TTS request: voice=%s chars=%d", voice_id, len(text))

        try:
            response = self._client.post(
                f"/v1/text-to-speech/{voice_id}",
                params={"output_format": config.output_format},
                headers={"xi-api-key": self._api_key},
                json=body,
            )
        except httpx.HTTPError as e:
            raise SynthesisError(f"TTS request failed: {e}") from e

        if not response.is_success:
            raise SynthesisError(
                f"TTS failed [{response.status_code}]: {response.text}",
                upstream_status=response.status_code,
                body=response.text,
            )
        return response.content

    @staticmethod
    def build_request_body(
        text: str,
        config: TTSConfig,
        previous_text: Optional[str] = None,
        next_text: Optional[str] = None,
    ) -> dict:
        """Build the JSON payload of a text-to-speech request."""
        body = {
            "text": text,
            "model_id": config.model_id,
            "voice_settings": {
                "stability": config.stability,
                "similarity_boost": config.similarity_boost,
                "style": config.style,
                "use_speaker_boost": config.use_speaker_boost,
            },
        }
        # The API's default pacing differs slightly from an explicit 1.0
        if config.speed and config.speed != 1.0:
            body["speed"] = config.speed
        if previous_text:
            body["previous_text"] = previous_text
        if next_text:
            body["next_text"] = next_text
        return body

    def create_voice(
        self, sample: bytes, name: str, description: str = "", filename: str = "sample.webm"
    ) -> str:
        try:
            response = self._client.post(
                "/v1/voices/add",
                headers={"xi-api-key": self._api_key},
                data={"name": name, "description": description},
                files={"files": (filename, sample)},
            )
        except httpx.HTTPError as e:
            raise VoiceCloneError(f"Voice clone request failed: {e}") from e

        if not response.is_success:
            raise VoiceCloneError(
                f"ElevenLabs clone failed [{response.status_code}]: {response.text}",
                upstream_status=response.status_code,
                body=response.text,
            )

        voice_id = response.json().get("voice_id")
        if not voice_id:
            raise VoiceCloneError(
                "ElevenLabs clone response has no voice_id",
                upstream_status=response.status_code,
                body=response.text,
            )
        logger.info("ElevenLabs voice created: %s", voice_id)
        return voice_id

    def list_voices(self) -> list[dict]:
        return [
            {"key": key, "name": name, "voice_id": voice_id, "description": desc}
            for key, (name, voice_id, desc) in STOCK_VOICES.items()
        ]

    def close(self) -> None:
        self._client.close()

    @property
    def name(self) -> str:
        return "ElevenLabs"

    @property
    def output_format(self) -> str:
        return "mp3"
