"""Tests for ACX/KDP metadata export."""

import pytest

from doc2audiobook.errors import NotReady
from doc2audiobook.metadata import (
    export_metadata,
    format_duration,
    metadata_filename,
    title_from_filename,
)
from doc2audiobook.models import ChapterMeta, ChapterOutline, ConversionJob, JobStatus


def _done_job(**kwargs):
    defaults = dict(
        id="job-1",
        user_id="u1",
        voice_id="george",
        original_filename="my.book.docx",
        status=JobStatus.DONE,
        progress=100,
        chapters=[
            ChapterMeta("Chapter 1", 0.0, 1.25),
            ChapterMeta("Chapter 2", 1.25, 1.5),
        ],
        audio_location="u1/job-1.mp3",
        total_duration_seconds=2.75,
    )
    defaults.update(kwargs)
    return ConversionJob(**defaults)


class TestFormatting:
    def test_format_duration(self):
        assert format_duration(0) == "00:00:00"
        assert format_duration(59.9) == "00:00:59"
        assert format_duration(3725) == "01:02:05"
        assert format_duration(36000) == "10:00:00"

    def test_title_strips_last_extension(self):
        assert title_from_filename("my.book.docx") == "my.book"
        assert title_from_filename("noext") == "noext"

    def test_metadata_filename(self):
        assert metadata_filename("My Book") == "My Book-kdp-metadata.json"
        assert metadata_filename(None) == "audiobook-kdp-metadata.json"


class TestExportMetadata:
    def test_defaults(self):
        doc = export_metadata(_done_job())
        meta = doc["metadata"]

        assert doc["version"] == "1.0"
        assert doc["format"] == "acx-audiobook-metadata"
        assert meta["title"] == "my.book"
        assert meta["author"] == "Unknown Author"
        assert meta["narrator"] == "AI Narrator"
        assert meta["language"] == "en"
        assert meta["publisher"] == ""
        assert meta["isbn"] == ""
        assert meta["totalDuration"] == "00:00:02"
        assert meta["totalDurationSeconds"] == 3
        assert meta["audioFormat"] == "MP3"
        assert meta["sampleRate"] == 44100
        assert "peakValues" in doc["acxRequirements"]

    def test_chapter_entries(self):
        chapters = export_metadata(_done_job())["chapters"]

        assert chapters[0] == {
            "index": 1,
            "title": "Chapter 1",
            "startTime": "00:00:00",
            "startTimeSeconds": 0,
            "duration": "00:00:01",
            "durationSeconds": 1,
            "endTime": "00:00:01",
            "endTimeSeconds": 1,
        }
        assert chapters[1]["index"] == 2
        assert chapters[1]["startTimeSeconds"] == 1
        assert chapters[1]["endTimeSeconds"] == 3

    def test_overrides_and_narrator(self):
        doc = export_metadata(
            _done_job(),
            overrides={"title": "Real Title", "author": "", "isbn": "978-0", "publisher": None},
            narrator="Sarah",
        )
        meta = doc["metadata"]

        assert meta["title"] == "Real Title"
        assert meta["author"] == "Unknown Author"
        assert meta["narrator"] == "Sarah"
        assert meta["isbn"] == "978-0"
        assert meta["publisher"] == ""

    def test_narrator_override_wins(self):
        doc = export_metadata(_done_job(), overrides={"narrator": "Jane Doe"}, narrator="George")
        assert doc["metadata"]["narrator"] == "Jane Doe"

    def test_long_book(self):
        job = _done_job(
            chapters=[ChapterMeta("Chapter 1", 0.0, 3600.0), ChapterMeta("Chapter 2", 3600.0, 1325.5)],
            total_duration_seconds=4925.5,
        )
        doc = export_metadata(job)

        assert doc["metadata"]["totalDuration"] == "01:22:05"
        assert doc["metadata"]["totalDurationSeconds"] == 4926
        assert doc["chapters"][1]["startTime"] == "01:00:00"

    def test_outline_entries_are_skipped(self):
        job = _done_job(chapters=[ChapterOutline(1, "Chapter 1", 900), ChapterMeta("Chapter 1", 0.0, 1.0)])
        assert len(export_metadata(job)["chapters"]) == 1

    @pytest.mark.parametrize("status", [JobStatus.CONVERTING, JobStatus.FAILED, JobStatus.PENDING])
    def test_requires_done(self, status):
        with pytest.raises(NotReady, match="not complete"):
            export_metadata(_done_job(status=status))
