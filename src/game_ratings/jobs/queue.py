from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from game_ratings.core.logging import get_logger

logger = get_logger(component="job_queue")


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


@dataclass(frozen=True)
class Job:
    """A unit of deferred work, delivered at or after `scheduled_for`."""

    id: str
    type: str
    payload: bytes = b""
    scheduled_for: datetime = field(default_factory=_utc_now)
    created_at: datetime = field(default_factory=_utc_now)


JobHandler = Callable[[Job], None]


class JobQueueError(RuntimeError):
    """Base exception for job queue failures."""


class JobValidationError(JobQueueError, ValueError):
    """Job is missing its id or type."""


class QueueFullError(JobQueueError):
    """The buffer for the job's type is full. Callers decide whether to retry or drop."""


class QueueClosedError(JobQueueError):
    """The queue has been shut down."""


class ScheduledJobQueue:
    """In-memory "run X at time T" queue.

    Each job type gets its own bounded buffer, so a processor only ever sees jobs
    of the type it registered for. Future jobs wait on a `threading.Timer` tracked
    by job id until they fire or the queue shuts down. Nothing is persisted: jobs
    still waiting at shutdown are dropped.
    """

    def __init__(self, buffer_size: int = 100, *, poll_interval_s: float = 0.05) -> None:
        if buffer_size <= 0:
            raise ValueError("buffer_size must be positive")
        self.buffer_size = buffer_size
        self.poll_interval_s = poll_interval_s

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._buffers: dict[str, queue.Queue[Job]] = {}
        self._handlers: dict[str, JobHandler] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._active_processors = 0
        self._closed = False

    @property
    def pending_timers(self) -> int:
        with self._lock:
            return len(self._timers)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def is_waiting(self, job_id: str) -> bool:
        """True while a future job is armed on its timer and not yet delivered."""
        with self._lock:
            return job_id in self._timers

    def registered_types(self) -> list[str]:
        with self._lock:
            return sorted(self._handlers)

    def _buffer(self, job_type: str) -> queue.Queue[Job]:
        # Caller holds self._lock.
        buf = self._buffers.get(job_type)
        if buf is None:
            buf = queue.Queue(maxsize=self.buffer_size)
            self._buffers[job_type] = buf
        return buf

    def schedule(self, job: Job) -> None:
        if not job.id:
            raise JobValidationError("job id is required")
        if not job.type:
            raise JobValidationError("job type is required")

        delay = (_as_utc(job.scheduled_for) - _utc_now()).total_seconds()

        with self._lock:
            if self._closed:
                raise QueueClosedError("job queue is shut down")

            if delay <= 0:
                try:
                    self._buffer(job.type).put_nowait(job)
                except queue.Full as e:
                    raise QueueFullError(
                        f"queue for job type {job.type!r} is full ({self.buffer_size})"
                    ) from e
                logger.debug("job_enqueued", job_id=job.id, job_type=job.type)
                return

            previous = self._timers.pop(job.id, None)
            if previous is not None:
                previous.cancel()

            timer = threading.Timer(delay, self._fire, args=(job,))
            timer.daemon = True
            self._timers[job.id] = timer
            timer.start()

        logger.debug("job_scheduled", job_id=job.id, job_type=job.type, delay_s=round(delay, 3))

    def _fire(self, job: Job) -> None:
        with self._lock:
            # A rescheduled or cancelled job's old timer must not deliver.
            if self._closed or self._timers.get(job.id) is not threading.current_thread():
                return
            del self._timers[job.id]
            try:
                self._buffer(job.type).put_nowait(job)
            except queue.Full:
                logger.error(
                    "job_dropped_queue_full",
                    job_id=job.id,
                    job_type=job.type,
                    buffer_size=self.buffer_size,
                )

    def process(
        self,
        job_type: str,
        handler: JobHandler,
        *,
        stop: threading.Event | None = None,
    ) -> None:
        """Register `handler` for `job_type` and run it for each delivered job.

        Blocks until `stop` is set or the queue shuts down. Handler errors are
        logged; the job is not retried.
        """

        with self._lock:
            if self._closed:
                return
            self._handlers[job_type] = handler
            buf = self._buffer(job_type)
            self._active_processors += 1

        log = logger.bind(job_type=job_type)
        log.info("job_processor_started")
        try:
            while True:
                if (stop is not None and stop.is_set()) or self.closed:
                    return
                try:
                    job = buf.get(timeout=self.poll_interval_s)
                except queue.Empty:
                    continue
                if self.closed:
                    return
                self._dispatch(job, handler)
        finally:
            with self._lock:
                self._active_processors -= 1
                self._idle.notify_all()
            log.info("job_processor_stopped")

    def _dispatch(self, job: Job, handler: JobHandler) -> None:
        try:
            handler(job)
        except Exception:
            logger.exception("job_handler_failed", job_id=job.id, job_type=job.type)
        else:
            logger.debug("job_processed", job_id=job.id, job_type=job.type)

    def shutdown(self, *, timeout: float | None = None) -> None:
        """Cancel pending timers, drop buffered jobs and wait for processors to exit.

        Must not be called from inside a job handler.
        """

        with self._lock:
            if self._closed:
                return
            self._closed = True

            for timer in self._timers.values():
                timer.cancel()
            cancelled = len(self._timers)
            self._timers.clear()

            dropped = 0
            for buf in self._buffers.values():
                while True:
                    try:
                        buf.get_nowait()
                    except queue.Empty:
                        break
                    dropped += 1

            self._idle.wait_for(lambda: self._active_processors == 0, timeout=timeout)

        logger.info("job_queue_shutdown", timers_cancelled=cancelled, jobs_dropped=dropped)
