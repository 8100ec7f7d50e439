"""Single background worker that runs disk writes in submission order.

Every write-side store operation (put, remove, clear, sweep) goes through
one bounded FIFO queue consumed by one thread, so file operations never race
with each other. Callers only enqueue and return.
"""

import atexit
import logging
import queue
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1024
_STOP = object()


class DiskWorker:
    """Serial executor for disk jobs backed by a bounded queue."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE, name: str = "newscache-disk"):
        if queue_size <= 0:
            raise ValueError("Queue size must be positive.")
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=queue_size)
        self._lock = threading.Lock()  # guards _stopped against submit/shutdown races
        self._stopped = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()
        atexit.register(self.shutdown)
        logger.debug(f"DiskWorker started (queue_size={queue_size})")

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self._stopped

    def submit(self, fn: Callable[..., Any], *args: Any) -> bool:
        """Enqueues a job. Blocks while the queue is full.

        Returns:
            False if the worker has been shut down and the job was dropped.
        """
        with self._lock:
            if self._stopped:
                logger.warning(f"DiskWorker is stopped; dropping job {getattr(fn, '__name__', fn)}")
                return False
            self._queue.put((fn, args))
        return True

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Waits until every job submitted so far has completed."""
        done = threading.Event()
        if not self.submit(done.set):
            return True
        return done.wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stops the worker after the queued jobs have run. Safe to call twice."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        atexit.unregister(self.shutdown)
        self._queue.put(_STOP)
        if wait and threading.current_thread() is not self._thread:
            self._thread.join()
        logger.debug("DiskWorker stopped.")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                fn, args = item
                try:
                    fn(*args)
                except Exception as e:
                    logger.error(f"Disk job {getattr(fn, '__name__', fn)} failed: {e}", exc_info=True)
            finally:
                self._queue.task_done()
