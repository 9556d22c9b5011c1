"""Runtime configuration.

All settings are read once into a :class:`Settings` instance which is then
passed to every component that needs it.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from doc2audiobook.errors import ConfigurationError

DEFAULT_ELEVENLABS_URL = "https://api.elevenlabs.io"


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Configuration shared by the pipeline, the web app and the CLI."""

    elevenlabs_api_key: str = ""
    elevenlabs_base_url: str = DEFAULT_ELEVENLABS_URL
    tts_engine: str = "elevenlabs"
    storage_dir: str = "./storage"
    host: str = "127.0.0.1"
    port: int = 8000
    api_password: str = ""
    worker_threads: int = 1
    request_timeout: float = 120.0
    exact_durations: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            elevenlabs_api_key=env.get("ELEVENLABS_API_KEY", ""),
            elevenlabs_base_url=env.get("ELEVENLABS_BASE_URL", DEFAULT_ELEVENLABS_URL),
            tts_engine=env.get("TTS_ENGINE", "elevenlabs"),
            storage_dir=env.get("STORAGE_DIR", "./storage"),
            host=env.get("HOST", "127.0.0.1"),
            port=int(env.get("PORT", "8000")),
            api_password=env.get("API_PASSWORD", ""),
            worker_threads=int(env.get("WORKER_THREADS", "1")),
            request_timeout=float(env.get("REQUEST_TIMEOUT", "120")),
            exact_durations=_as_bool(env.get("EXACT_DURATIONS", "false")),
        )

    def require_api_key(self) -> str:
        """Return the ElevenLabs API key.

        Raises:
            ConfigurationError: If no key is configured.
        """
        if not self.elevenlabs_api_key:
            raise ConfigurationError("ELEVENLABS_API_KEY not configured")
        return self.elevenlabs_api_key
