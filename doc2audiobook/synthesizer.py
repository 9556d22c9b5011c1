"""Narration synthesizer - sequential TTS over segments with context stitching."""

import logging
import math
from typing import Callable, Optional

from doc2audiobook.audio.audio_utils import DurationFunction, estimate_duration_seconds
from doc2audiobook.models import ChapterMeta, Segment, SynthesisResult, TTSConfig
from doc2audiobook.tts.base import TTSEngine

logger = logging.getLogger(__name__)

CONTEXT_CHARS = 200

# Share of the progress bar before and during synthesis
SETUP_PROGRESS = 20
SYNTHESIS_PROGRESS = 70

ProgressSink = Callable[[int, list[ChapterMeta]], None]


def synthesis_progress(done: int, total: int) -> int:
    """Progress percentage after ``done`` of ``total`` segments, rounded half up."""
    return SETUP_PROGRESS + math.floor(done / total * SYNTHESIS_PROGRESS + 0.5)


def context_hints(segments: list[Segment], i: int) -> tuple[Optional[str], Optional[str]]:
    """Return (previous_text, next_text) for segment ``i``."""
    previous_text = segments[i - 1].content[-CONTEXT_CHARS:] if i > 0 else None
    next_text = segments[i + 1].content[:CONTEXT_CHARS] if i < len(segments) - 1 else None
    return previous_text, next_text


def synthesize_all(
    segments: list[Segment],
    voice_id: str,
    speed: float,
    engine: TTSEngine,
    on_progress: Optional[ProgressSink] = None,
    duration_of: DurationFunction = estimate_duration_seconds,
) -> SynthesisResult:
    """Narrate every segment in order.

    Each request carries the tail of the previous segment and the head of the
    next one so pacing stays consistent across chunk boundaries.

    Args:
        segments: Ordered, non-empty segments.
        voice_id: Engine-side voice identifier.
        speed: Speaking rate multiplier.
        engine: TTS engine to call.
        on_progress: Callback(progress_percent, chapters_so_far), called right
            after each segment is synthesized.
        duration_of: Computes a segment's duration from its audio bytes.

    Raises:
        SynthesisError: On the first failed request; nothing is retried.
    """
    config = TTSConfig(speed=speed)
    total = len(segments)

    buffers: list[bytes] = []
    chapters: list[ChapterMeta] = []
    elapsed = 0.0

    for i, seg in enumerate(segments):
        previous_text, next_text = context_hints(segments, i)
        logger.info("Synthesizing segment %d/%d: %s", i + 1, total, seg.title)

        audio = engine.synthesize(
            seg.content,
            voice_id,
            config,
            previous_text=previous_text,
            next_text=next_text,
        )

        duration = duration_of(audio)
        buffers.append(audio)
        chapters.append(ChapterMeta(
            title=seg.title,
            start_seconds=elapsed,
            duration_seconds=duration,
        ))
        elapsed += duration

        if on_progress:
            on_progress(synthesis_progress(i + 1, total), list(chapters))

    return SynthesisResult(buffers=buffers, chapters=chapters, total_duration_seconds=elapsed)
