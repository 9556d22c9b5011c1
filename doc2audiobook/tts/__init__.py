"""TTS engine registry and factory."""

from doc2audiobook.config import Settings
from doc2audiobook.tts.base import TTSEngine

ENGINE_REGISTRY: dict[str, type[TTSEngine]] = {}


def register_engine(name: str):
    """Decorator to register a TTS engine class."""
    def decorator(cls):
        ENGINE_REGISTRY[name] = cls
        return cls
    return decorator


def get_engine(name: str, settings: Settings, **kwargs) -> TTSEngine:
    """Instantiate a TTS engine by name."""
    _import_engines()
    if name not in ENGINE_REGISTRY:
        available = ", ".join(ENGINE_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown engine '{name}'. Available: {available}")
    return ENGINE_REGISTRY[name](settings, **kwargs)


def list_engines() -> list[str]:
    """Return names of all registered engines."""
    _import_engines()
    return list(ENGINE_REGISTRY.keys())


def _import_engines() -> None:
    """Import all engine modules to trigger registration."""
    import doc2audiobook.tts.elevenlabs_engine  # noqa: F401
