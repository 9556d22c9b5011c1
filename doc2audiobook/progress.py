"""Progress reporting for the command-line conversion."""

from tqdm import tqdm

from doc2audiobook.models import ConversionJob


class ProgressReporter:
    """Wraps tqdm for percent-level job progress."""

    def __init__(self, total_segments: int):
        self._bar = tqdm(
            total=100,
            desc="Converting",
            unit="%",
            bar_format="{l_bar}{bar}| {n_fmt}% [{elapsed}<{remaining}]",
        )
        self._bar.set_postfix_str(f"{total_segments} segments", refresh=False)

    def update(self, job: ConversionJob) -> None:
        """Move the bar to the job's current progress."""
        delta = job.progress - self._bar.n
        if delta > 0:
            self._bar.update(delta)
        self._bar.set_postfix_str(job.status.value)

    def close(self) -> None:
        self._bar.close()
