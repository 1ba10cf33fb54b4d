"""
Cancellable, progress-reporting units of long-running work.
"""

import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class JobStatus(Enum):
    """Lifecycle of a job"""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Job:
    """
    Tracks progress, a hint and an error message for one unit of work.

    Progress lies in [0, 1] and never goes back. Cancellation is cooperative:
    the worker checks ``is_cancelled()`` at safe points.
    """

    def __init__(
        self,
        title: str = "",
        progress_callback: Optional[Callable[["Job"], None]] = None,
    ):
        self.title = title
        self.progress_callback = progress_callback
        self._lock = threading.Lock()
        self._progress = 0.0
        self._hint = ""
        self._error_message = ""
        self._cancelled = False
        self._completed = False

        self._parent: Optional["Job"] = None
        self._parent_start = 0.0
        self._parent_part = 0.0

    @property
    def progress(self) -> float:
        with self._lock:
            return self._progress

    @property
    def hint(self) -> str:
        with self._lock:
            return self._hint

    @property
    def error_message(self) -> str:
        with self._lock:
            return self._error_message

    @property
    def status(self) -> JobStatus:
        with self._lock:
            if self._error_message:
                return JobStatus.FAILED
            if self._completed:
                return JobStatus.COMPLETED
            if self._cancelled:
                return JobStatus.CANCELLED
            return JobStatus.RUNNING

    def set_progress(self, progress: float) -> None:
        """Advance the progress. Smaller values than the current one are ignored."""
        progress = min(max(progress, 0.0), 1.0)
        with self._lock:
            if progress <= self._progress:
                return
            self._progress = progress
        self._changed()

    def set_hint(self, hint: str) -> None:
        with self._lock:
            self._hint = hint
        self._changed()

    def set_error_message(self, message: str) -> None:
        with self._lock:
            self._error_message = message
        if message:
            logger.error(f"{self.title or 'Job'} failed: {message}")
        self._changed()

    def cancel(self) -> None:
        """
        Request cancellation.

        The request travels up to the parent and from there to every job that
        checks ``is_cancelled()`` through it, so cancelling a sub-job cancels
        the whole tree it belongs to.
        """
        with self._lock:
            self._cancelled = True
        if self._parent is not None:
            self._parent.cancel()

    def is_cancelled(self) -> bool:
        with self._lock:
            cancelled = self._cancelled
        if not cancelled and self._parent is not None:
            return self._parent.is_cancelled()
        return cancelled

    def complete(self) -> None:
        self.set_progress(1.0)
        with self._lock:
            self._completed = True
        self._changed()

    @property
    def completed(self) -> bool:
        with self._lock:
            return self._completed

    def create_sub_job(self, part: float, hint: str = "") -> "Job":
        """
        Create a job whose progress fills ``part`` of this job's remaining range,
        starting at the current progress.
        """
        sub = Job(title=hint or self.title)
        sub._parent = self
        sub._parent_start = self.progress
        sub._parent_part = max(0.0, min(part, 1.0 - sub._parent_start))
        if hint:
            self.set_hint(hint)
        return sub

    def _changed(self) -> None:
        if self._parent is not None:
            self._parent.set_progress(self._parent_start + self._parent_part * self.progress)
            if self.error_message and not self._parent.error_message:
                self._parent.set_error_message(self.error_message)
        if self.progress_callback:
            self.progress_callback(self)
