"""
Job Dispatcher - hands admitted guest jobs to background workers.

Requests never run connectors themselves: they enqueue a task and return.
Each task runs in a fresh Flask app context (own DB session) and reports
its outcome through on_done(error), where error is None on success.

- ThreadJobDispatcher: queue.Queue drained by daemon worker threads
- InlineJobDispatcher: runs the task immediately (tests, CLI)
"""
import logging
import queue
import threading
from typing import Callable, Optional

from flask import has_app_context

logger = logging.getLogger(__name__)

Task = Callable[[], object]
DoneCallback = Callable[[Optional[BaseException]], None]


def _execute(task: Task, on_done: Optional[DoneCallback]):
    error = None
    try:
        task()
    except Exception as e:
        logger.exception("job_task_failed")
        error = e

    if on_done is None:
        return
    try:
        on_done(error)
    except Exception:
        logger.exception("job_callback_failed")


class JobDispatcher:

    def submit(self, task: Task, on_done: Optional[DoneCallback] = None):
        raise NotImplementedError

    def shutdown(self, wait: bool = True):
        pass


class InlineJobDispatcher(JobDispatcher):
    """Runs the task on the caller's thread, in its app context when it has one."""

    def __init__(self, app=None):
        self.app = app

    def submit(self, task: Task, on_done: Optional[DoneCallback] = None):
        if self.app is None or has_app_context():
            _execute(task, on_done)
            return
        with self.app.app_context():
            _execute(task, on_done)


class ThreadJobDispatcher(JobDispatcher):

    def __init__(self, app, workers: int = 2):
        self.app = app
        self.workers = max(1, workers)
        self._queue: "queue.Queue" = queue.Queue()
        self._threads = []
        self._lock = threading.Lock()
        self._stopped = False

    def _ensure_started(self):
        with self._lock:
            if self._threads:
                return
            for index in range(self.workers):
                thread = threading.Thread(
                    target=self._worker,
                    name=f"job-worker-{index}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)
            logger.info("job_dispatcher_started workers=%d", self.workers)

    def _worker(self):
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                task, on_done = item
                with self.app.app_context():
                    _execute(task, on_done)
            finally:
                self._queue.task_done()

    def submit(self, task: Task, on_done: Optional[DoneCallback] = None):
        if self._stopped:
            raise RuntimeError("Job dispatcher is shut down")
        self._ensure_started()
        self._queue.put((task, on_done))
        logger.debug("job_enqueued pending=%d", self._queue.qsize())

    def shutdown(self, wait: bool = True):
        with self._lock:
            self._stopped = True
            threads = list(self._threads)
        for _ in threads:
            self._queue.put(None)
        if wait:
            for thread in threads:
                thread.join()


def create_dispatcher(app) -> JobDispatcher:
    kind = app.config.get("JOB_DISPATCHER", "thread")
    if kind == "inline":
        return InlineJobDispatcher(app)
    if kind == "thread":
        return ThreadJobDispatcher(app, workers=int(app.config.get("JOB_WORKERS", 2)))
    raise ValueError(f"Unknown JOB_DISPATCHER: {kind}")


def get_dispatcher(app=None) -> JobDispatcher:
    """The dispatcher bound to app (current_app when not given)."""
    if app is None:
        from flask import current_app
        app = current_app._get_current_object()
    dispatcher = app.extensions.get("job_dispatcher")
    if dispatcher is None:
        dispatcher = create_dispatcher(app)
        app.extensions["job_dispatcher"] = dispatcher
    return dispatcher
