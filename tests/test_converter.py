"""Tests for the converter orchestrator."""

from unittest.mock import MagicMock

import pytest

from doc2audiobook.converter import Converter
from doc2audiobook.errors import StorageError
from doc2audiobook.jobs import JobStore
from doc2audiobook.models import ChapterMeta, ConversionJob, ConversionTask, JobStatus, Segment
from doc2audiobook.storage import LocalObjectStorage

from conftest import FakeEngine


def _accepted_job(store, job_id="job-1"):
    store.insert(ConversionJob(id=job_id, user_id="u1", voice_id="george", original_filename="a.txt"))
    store.update(job_id, status=JobStatus.PARSING, progress=10)
    store.update(job_id, status=JobStatus.CONVERTING, progress=20)


def _task(n_segments=2, job_id="job-1"):
    return ConversionTask(
        job_id=job_id,
        user_id="u1",
        segments=[Segment(f"Chapter {i + 1}", f"Text {i + 1}.") for i in range(n_segments)],
        engine_voice_id="george-id",
    )


class TestConverter:
    def test_success_uploads_audio_and_finishes_job(self, tmp_path):
        store = JobStore()
        _accepted_job(store)
        storage = LocalObjectStorage(tmp_path)
        converter = Converter(store, storage, FakeEngine(audio_sizes=[16000, 8000]))

        converter.run(_task())

        job = store.get("job-1")
        assert job.status == JobStatus.DONE
        assert job.audio_location == "u1/job-1.mp3"
        assert job.total_duration_seconds == pytest.approx(1.5)
        assert job.chapters == [ChapterMeta("Chapter 1", 0.0, 1.0), ChapterMeta("Chapter 2", 1.0, 0.5)]
        assert len(storage.download("u1/job-1.mp3")) == 24000

    def test_progress_recorded_per_segment(self, tmp_path):
        store = MagicMock(wraps=JobStore())
        _accepted_job(store)
        converter = Converter(store, LocalObjectStorage(tmp_path), FakeEngine())

        converter.run(_task(n_segments=3))

        progress = [c.kwargs["progress"] for c in store.update.call_args_list if "progress" in c.kwargs]
        assert progress == [10, 20, 43, 67, 90]

    def test_synthesis_failure_marks_job_failed(self, tmp_path):
        store = JobStore()
        _accepted_job(store)
        storage = LocalObjectStorage(tmp_path)
        converter = Converter(store, storage, FakeEngine(fail_on=1))

        converter.run(_task())

        job = store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert job.error == "TTS failed [500]: boom"
        assert job.progress == 20
        assert not storage.exists("u1/job-1.mp3")

    def test_upload_failure_marks_job_failed(self):
        store = JobStore()
        _accepted_job(store)
        storage = MagicMock()
        storage.upload.side_effect = StorageError("Upload failed for u1/job-1.mp3: disk full")
        converter = Converter(store, storage, FakeEngine())

        converter.run(_task())

        job = store.get("job-1")
        assert job.status == JobStatus.FAILED
        assert "disk full" in job.error
        assert job.audio_location is None

    def test_custom_duration_function(self, tmp_path):
        store = JobStore()
        _accepted_job(store)
        converter = Converter(store, LocalObjectStorage(tmp_path), FakeEngine(), duration_of=lambda audio: 10.0)

        converter.run(_task(n_segments=3))

        assert store.get("job-1").total_duration_seconds == 30.0

    def test_already_terminal_job_is_left_alone(self, tmp_path):
        store = JobStore()
        _accepted_job(store)
        store.update("job-1", status=JobStatus.FAILED, error="cancelled")
        converter = Converter(store, LocalObjectStorage(tmp_path), FakeEngine())

        converter.run(_task())

        assert store.get("job-1").error == "cancelled"
