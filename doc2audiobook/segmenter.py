"""Segmenter - split document text into named chunks that fit one TTS request."""

import logging
import re

from doc2audiobook.models import Segment

logger = logging.getLogger(__name__)

# Stays well under the ElevenLabs per-request character limit
MAX_CHUNK_CHARS = 4500

FULL_TEXT_TITLE = "Full Text"
FRONT_MATTER_TITLE = "Front Matter"

CHAPTER_PATTERN = re.compile(r"(?:^|\n)(chapter\s+\d+[^\n]*)", re.IGNORECASE)

SENTENCE_ENDS = (". ", ".\n", "? ", "! ")

# A sentence break earlier than this fraction of the window is ignored
MIN_CUT_RATIO = 0.3


def segment(text: str, max_chars: int = MAX_CHUNK_CHARS) -> list[Segment]:
    """Split text into ordered segments of at most ``max_chars`` characters.

    Chapters are detected from "Chapter N" headings at line starts; with
    fewer than two headings the whole text is one chapter. Chapters that
    are too long are cut at sentence boundaries into "(Part n)" pieces.
    """
    raw_chapters = split_into_chapters(text)

    segments: list[Segment] = []
    for chapter in raw_chapters:
        segments.extend(split_text_into_chunks(chapter.content, chapter.title, max_chars))

    if not segments:
        return [Segment(title=FULL_TEXT_TITLE, content=text)]

    logger.info(
        "Segmented %d characters into %d chapters / %d segments",
        len(text), len(raw_chapters), len(segments),
    )
    return segments


def split_into_chapters(text: str) -> list[Segment]:
    """Return the raw chapters before any length-based splitting."""
    matches = list(CHAPTER_PATTERN.finditer(text))
    if len(matches) < 2:
        return [Segment(title=FULL_TEXT_TITLE, content=text)]

    chapters = []
    preamble = text[:matches[0].start()].strip()
    if preamble:
        chapters.append(Segment(title=FRONT_MATTER_TITLE, content=preamble))

    for i, match in enumerate(matches):
        start = match.start()
        end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
        chapters.append(Segment(
            title=match.group(1).strip(),
            content=text[start:end].strip(),
        ))
    return chapters


def split_text_into_chunks(
    text: str, base_title: str, max_chars: int = MAX_CHUNK_CHARS
) -> list[Segment]:
    """Cut one chapter into pieces no longer than ``max_chars``.

    A chapter within the limit is returned unchanged as a single segment.
    """
    if len(text) <= max_chars:
        return [Segment(title=base_title, content=text)]

    chunks = []
    remaining = text
    part = 1
    while remaining:
        if len(remaining) <= max_chars:
            cutoff = len(remaining)
        else:
            cutoff = _find_cutoff(remaining[:max_chars], max_chars)

        piece = remaining[:cutoff].strip()
        remaining = remaining[cutoff:].strip()
        if not piece:
            continue

        chunks.append(Segment(title=f"{base_title} (Part {part})", content=piece))
        part += 1

    return chunks


def _find_cutoff(window: str, max_chars: int) -> int:
    last_sentence_end = max(window.rfind(mark) for mark in SENTENCE_ENDS)
    if last_sentence_end > max_chars * MIN_CUT_RATIO:
        # keep the punctuation, drop the whitespace after it
        return last_sentence_end + 1
    return max_chars
