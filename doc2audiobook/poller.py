"""Client-side polling of a conversion job until it finishes.

The job never cancels itself; these limits only decide when the client
stops waiting:

* a fixed interval between polls (3 s),
* a cap on poll attempts (100, about five minutes) -> timeout,
* a cap on consecutive poll errors (5) -> connection error.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from doc2audiobook.models import ConversionJob, JobStatus

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 3.0
MAX_POLLS = 100
MAX_CONSECUTIVE_ERRORS = 5


class PollOutcome(str, Enum):
    DONE = "done"
    FAILED = "failed"
    TIMEOUT = "timeout"
    CONNECTION_ERROR = "connection_error"


OUTCOME_MESSAGES = {
    PollOutcome.DONE: "Conversion complete",
    PollOutcome.FAILED: "Conversion failed",
    PollOutcome.TIMEOUT: "Conversion timed out",
    PollOutcome.CONNECTION_ERROR: "Connection error",
}


@dataclass
class PollResult:
    outcome: PollOutcome
    job: Optional[ConversionJob]
    attempts: int
    elapsed_seconds: float

    @property
    def message(self) -> str:
        return OUTCOME_MESSAGES[self.outcome]


def poll_conversion(
    fetch: Callable[[], ConversionJob],
    interval: float = POLL_INTERVAL_SECONDS,
    max_attempts: int = MAX_POLLS,
    max_consecutive_errors: int = MAX_CONSECUTIVE_ERRORS,
    on_update: Optional[Callable[[ConversionJob], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> PollResult:
    """Poll ``fetch`` every ``interval`` seconds until the job is terminal.

    Args:
        fetch: Returns the current job snapshot; raises on transport errors.
        on_update: Called with every successfully fetched snapshot.
        sleep, clock: Injectable for tests.

    Returns:
        A :class:`PollResult` whose outcome is one of done, failed, timeout
        or connection_error.
    """
    started = clock()
    last_job: Optional[ConversionJob] = None
    consecutive_errors = 0

    def result(outcome: PollOutcome, attempts: int) -> PollResult:
        return PollResult(outcome, last_job, attempts, clock() - started)

    for attempt in range(1, max_attempts + 1):
        sleep(interval)
        try:
            job = fetch()
        except Exception as e:
            consecutive_errors += 1
            logger.warning(
                "Poll %d failed (%d/%d consecutive): %s",
                attempt, consecutive_errors, max_consecutive_errors, e,
            )
            if consecutive_errors >= max_consecutive_errors:
                return result(PollOutcome.CONNECTION_ERROR, attempt)
            continue

        consecutive_errors = 0
        last_job = job
        if on_update:
            on_update(job)

        if job.status == JobStatus.DONE:
            return result(PollOutcome.DONE, attempt)
        if job.status == JobStatus.FAILED:
            return result(PollOutcome.FAILED, attempt)

    logger.warning("Gave up after %d polls", max_attempts)
    return result(PollOutcome.TIMEOUT, max_attempts)
