"""Conversion job store and status state machine."""

import dataclasses
import logging
import threading

from doc2audiobook.errors import JobStateError, NotFound
from doc2audiobook.models import ConversionJob, JobStatus, utcnow

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.PENDING: frozenset({JobStatus.PARSING, JobStatus.FAILED}),
    JobStatus.PARSING: frozenset({JobStatus.CONVERTING, JobStatus.FAILED}),
    JobStatus.CONVERTING: frozenset({JobStatus.ENCODING, JobStatus.DONE, JobStatus.FAILED}),
    JobStatus.ENCODING: frozenset({JobStatus.DONE, JobStatus.FAILED}),
    JobStatus.DONE: frozenset(),
    JobStatus.FAILED: frozenset(),
}

UPDATABLE_FIELDS = frozenset({
    "status",
    "progress",
    "chapters",
    "audio_location",
    "total_duration_seconds",
    "error",
})


def _snapshot(job: ConversionJob) -> ConversionJob:
    return dataclasses.replace(job, chapters=list(job.chapters))


class JobStore:
    """Thread-safe in-memory conversion job store.

    Status state machine: pending → parsing → converting → done | failed

    Every update is applied under one lock, so a reader never sees a status
    that disagrees with its associated fields. ``done`` and ``failed`` are
    terminal.
    """

    def __init__(self):
        self._jobs: dict[str, ConversionJob] = {}
        self._lock = threading.Lock()

    def insert(self, job: ConversionJob) -> ConversionJob:
        with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} already exists")
            self._jobs[job.id] = _snapshot(job)
            return _snapshot(job)

    def get(self, job_id: str) -> ConversionJob:
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFound(f"Conversion {job_id} not found")
            return _snapshot(job)

    def list_for_user(self, user_id: str) -> list[ConversionJob]:
        with self._lock:
            jobs = [_snapshot(j) for j in self._jobs.values() if j.user_id == user_id]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def update(self, job_id: str, **fields) -> ConversionJob:
        """Atomically apply a partial update.

        Raises:
            NotFound: If the job does not exist.
            JobStateError: If the update breaks the state machine.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise NotFound(f"Conversion {job_id} not found")
            if job.status.is_terminal:
                raise JobStateError(f"Conversion {job_id} is already {job.status.value}")

            changes = dict(fields)
            if "status" in changes:
                changes["status"] = JobStatus(changes["status"])
                self._check_transition(job, changes["status"])

            if changes.get("status") == JobStatus.DONE:
                if changes.get("audio_location") is None or changes.get("total_duration_seconds") is None:
                    raise JobStateError("A finished job needs audio_location and total_duration_seconds")
                changes["progress"] = 100

            if "progress" in changes:
                self._check_progress(job, changes["progress"])

            if "chapters" in changes:
                changes["chapters"] = list(changes["chapters"])

            updated = dataclasses.replace(job, updated_at=utcnow(), **changes)
            self._jobs[job_id] = updated

        if "status" in changes and changes["status"] != job.status:
            logger.debug("Job %s: %s → %s", job_id, job.status.value, updated.status.value)
        return _snapshot(updated)

    @staticmethod
    def _check_transition(job: ConversionJob, new_status: JobStatus) -> None:
        if new_status == job.status:
            return
        if new_status not in ALLOWED_TRANSITIONS[job.status]:
            raise JobStateError(
                f"Illegal transition for job {job.id}: {job.status.value} → {new_status.value}"
            )

    @staticmethod
    def _check_progress(job: ConversionJob, progress: int) -> None:
        if not 0 <= progress <= 100:
            raise JobStateError(f"Progress out of range: {progress}")
        if progress < job.progress:
            raise JobStateError(
                f"Progress of job {job.id} cannot go back from {job.progress} to {progress}"
            )
