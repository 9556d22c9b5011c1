"""Background worker - conversion tasks are queued by the request path and
drained by worker threads, so a job outlives the request that started it."""

import logging
import queue
import threading
from typing import Callable

from doc2audiobook.models import ConversionTask

logger = logging.getLogger(__name__)

TaskHandler = Callable[[ConversionTask], None]

_STOP = object()


class ConversionWorker:
    """Thread pool consuming a FIFO queue of conversion tasks."""

    def __init__(self, handler: TaskHandler, threads: int = 1):
        self._handler = handler
        self._size = max(1, threads)
        self._queue: queue.Queue = queue.Queue()
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            if self._threads:
                return
            for i in range(self._size):
                thread = threading.Thread(
                    target=self._loop, name=f"conversion-worker-{i}", daemon=True
                )
                thread.start()
                self._threads.append(thread)
        logger.debug("Started %d conversion worker(s)", self._size)

    def submit(self, task: ConversionTask) -> None:
        self.start()
        self._queue.put(task)
        logger.info("Queued conversion %s (%d segments)", task.job_id, len(task.segments))

    def join(self) -> None:
        """Block until every queued task has been processed."""
        self._queue.join()

    def stop(self, wait: bool = True) -> None:
        """Stop the threads once the queued tasks are done.

        With ``wait=False`` the call returns at once; busy daemon threads
        are abandoned when the process exits.
        """
        with self._lock:
            threads, self._threads = self._threads, []
        for _ in threads:
            self._queue.put(_STOP)
        if not wait:
            logger.debug("Not waiting for %d conversion worker(s)", len(threads))
            return
        for thread in threads:
            thread.join()

    def _loop(self) -> None:
        while True:
            task = self._queue.get()
            try:
                if task is _STOP:
                    return
                self._handler(task)
            except Exception:
                logger.exception("Unhandled error in conversion worker")
            finally:
                self._queue.task_done()
