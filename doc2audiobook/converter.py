"""Converter - runs the synthesis → assembly → upload pipeline for one job."""

import logging

from doc2audiobook.audio.assembler import assemble
from doc2audiobook.audio.audio_utils import DurationFunction, estimate_duration_seconds
from doc2audiobook.errors import JobStateError
from doc2audiobook.jobs import JobStore
from doc2audiobook.models import ChapterMeta, ConversionTask, JobStatus
from doc2audiobook.storage import ObjectStorage, user_path
from doc2audiobook.synthesizer import synthesize_all
from doc2audiobook.tts.base import TTSEngine

logger = logging.getLogger(__name__)


class Converter:
    """Takes an accepted job from ``converting`` to ``done`` or ``failed``."""

    def __init__(
        self,
        jobs: JobStore,
        storage: ObjectStorage,
        engine: TTSEngine,
        duration_of: DurationFunction = estimate_duration_seconds,
    ):
        self.jobs = jobs
        self.storage = storage
        self.engine = engine
        self.duration_of = duration_of

    def run(self, task: ConversionTask) -> None:
        """Narrate, assemble and upload; record the outcome on the job.

        Failures are never raised: the job is marked ``failed`` and the
        polling client finds out from there.
        """
        job_id = task.job_id

        def on_progress(progress: int, chapters: list[ChapterMeta]) -> None:
            self.jobs.update(
                job_id,
                status=JobStatus.CONVERTING,
                progress=progress,
                chapters=chapters,
            )

        try:
            result = synthesize_all(
                task.segments,
                task.engine_voice_id,
                task.speed,
                self.engine,
                on_progress=on_progress,
                duration_of=self.duration_of,
            )

            audio = assemble(result.buffers)
            audio_path = user_path(task.user_id, f"{job_id}.{self.engine.output_format}")
            self.storage.upload(audio_path, audio, "audio/mpeg")
            logger.info("Uploaded audio for job %s: %s", job_id, audio_path)

            self.jobs.update(
                job_id,
                status=JobStatus.DONE,
                audio_location=audio_path,
                total_duration_seconds=result.total_duration_seconds,
                chapters=result.chapters,
            )
            logger.info(
                "Conversion %s done: %d segments, %.1f s",
                job_id, len(result.chapters), result.total_duration_seconds,
            )

        except Exception as e:
            logger.exception("Conversion failed for job %s", job_id)
            self._fail(job_id, str(e))

    def _fail(self, job_id: str, message: str) -> None:
        try:
            self.jobs.update(job_id, status=JobStatus.FAILED, error=message)
        except JobStateError:
            logger.warning("Job %s already finished, failure not recorded", job_id)
