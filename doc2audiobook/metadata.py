"""Publisher metadata export - ACX/KDP chapter timing for a finished audiobook."""

import logging
import math
import re
from typing import Mapping, Optional

from doc2audiobook.errors import NotReady
from doc2audiobook.models import ChapterMeta, ConversionJob, JobStatus

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR = "Unknown Author"
DEFAULT_NARRATOR = "AI Narrator"
DEFAULT_LANGUAGE = "en"

# What the assembler produces: ElevenLabs mp3_44100_128, concatenated as is
AUDIO_FORMAT = {
    "audioFormat": "MP3",
    "sampleRate": 44100,
    "bitRate": 128,
    "channels": "mono",
}

ACX_REQUIREMENTS = {
    "peakValues": "Must not exceed -3dB",
    "rmsLevels": "Between -23dB and -18dB RMS",
    "noiseFloor": "Below -60dB",
    "format": "MP3 at 192kbps or higher CBR, 44.1kHz, mono",
    "sectionHeaders": "Each chapter should have a separate file for ACX",
    "openingCredits": "Title, author, narrator at the beginning",
    "closingCredits": "End of audiobook, produced by [publisher]",
    "note": "This metadata file assists with ACX upload. "
            "Audio may need mastering to meet ACX technical specs.",
}

OVERRIDABLE_FIELDS = ("title", "author", "narrator", "language", "publisher", "isbn")


def format_duration(seconds: float) -> str:
    """Format seconds as HH:MM:SS, truncating fractions."""
    total = int(max(seconds, 0))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def _round(value: float) -> int:
    return math.floor(value + 0.5)


def title_from_filename(filename: str) -> str:
    """Strip the last extension: 'my.book.docx' → 'my.book'."""
    return re.sub(r"\.[^/.]+$", "", filename)


def export_metadata(
    job: ConversionJob,
    overrides: Optional[Mapping[str, Optional[str]]] = None,
    narrator: Optional[str] = None,
) -> dict:
    """Build the ACX-style metadata document for a finished conversion.

    Args:
        job: The conversion job; must be ``done``.
        overrides: Optional title/author/narrator/language/publisher/isbn.
            Empty values fall back to the defaults.
        narrator: Name of the voice used, the default narrator credit.

    Raises:
        NotReady: If the conversion is not complete.
    """
    if job.status != JobStatus.DONE:
        raise NotReady("Conversion not complete")

    overrides = overrides or {}
    defaults = {
        "title": title_from_filename(job.original_filename),
        "author": DEFAULT_AUTHOR,
        "narrator": narrator or DEFAULT_NARRATOR,
        "language": DEFAULT_LANGUAGE,
        "publisher": "",
        "isbn": "",
    }
    fields = {key: overrides.get(key) or defaults[key] for key in OVERRIDABLE_FIELDS}

    total = job.total_duration_seconds or 0
    chapters = [c for c in job.chapters if isinstance(c, ChapterMeta)]
    logger.debug("Exporting metadata for job %s (%d chapters)", job.id, len(chapters))

    return {
        "version": "1.0",
        "format": "acx-audiobook-metadata",
        "metadata": {
            **fields,
            "totalDuration": format_duration(total),
            "totalDurationSeconds": _round(total),
            "createdAt": job.created_at.isoformat(),
            **AUDIO_FORMAT,
        },
        "chapters": [_chapter_entry(i, ch) for i, ch in enumerate(chapters, start=1)],
        "acxRequirements": dict(ACX_REQUIREMENTS),
    }


def _chapter_entry(index: int, chapter: ChapterMeta) -> dict:
    return {
        "index": index,
        "title": chapter.title,
        "startTime": format_duration(chapter.start_seconds),
        "startTimeSeconds": _round(chapter.start_seconds),
        "duration": format_duration(chapter.duration_seconds),
        "durationSeconds": _round(chapter.duration_seconds),
        "endTime": format_duration(chapter.end_seconds),
        "endTimeSeconds": _round(chapter.end_seconds),
    }


def metadata_filename(title: Optional[str]) -> str:
    return f"{title or 'audiobook'}-kdp-metadata.json"
