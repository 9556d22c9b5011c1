"""Audio utility functions - duration estimation and ffprobe measurement."""

import json
import subprocess
import tempfile
from pathlib import Path
from typing import Callable

import static_ffmpeg

# 128 kbit/s constant bitrate MP3 -> 16000 bytes per second
MP3_BYTES_PER_SECOND = 16000

DurationFunction = Callable[[bytes], float]


def estimate_duration_seconds(audio: bytes) -> float:
    """Approximate the length of 128 kbit/s CBR MP3 audio from its size."""
    return len(audio) / MP3_BYTES_PER_SECOND


def get_ffprobe() -> str:
    """Return the path to the bundled ffprobe executable.

    Downloads the static binaries on first use if not already present.
    """
    _, ffprobe = static_ffmpeg.run.get_or_fetch_platform_executables_else_raise()
    return ffprobe


def check_ffmpeg() -> None:
    """Verify that ffprobe is available (downloads if needed)."""
    try:
        get_ffprobe()
    except Exception as e:
        raise RuntimeError(
            f"Unable to obtain ffmpeg: {e}\n"
            f"Try reinstalling: pip install --force-reinstall static-ffmpeg"
        ) from e


def probe_duration_seconds(audio: bytes) -> float:
    """Measure the exact duration of encoded audio with ffprobe."""
    with tempfile.TemporaryDirectory(prefix="d2a_") as tmp:
        audio_path = Path(tmp) / "segment.mp3"
        audio_path.write_bytes(audio)
        result = subprocess.run(
            [
                get_ffprobe(), "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                str(audio_path),
            ],
            capture_output=True,
            text=True,
            check=True,
        )
    data = json.loads(result.stdout)
    return float(data["format"]["duration"])


def duration_function(exact: bool) -> DurationFunction:
    """Pick how segment durations are computed."""
    if exact:
        check_ffmpeg()
        return probe_duration_seconds
    return estimate_duration_seconds
