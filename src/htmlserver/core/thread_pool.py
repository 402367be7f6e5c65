"""
=============================================================================
THREAD POOL
=============================================================================

A bounded pool of worker threads that run accepted connections.

    accept loop ──submit()──► ┌──────────────┐ ──get()──► Worker-0
                              │  task queue  │ ──get()──► Worker-1
                              │ (queue.Queue)│ ──get()──► ...
                              └──────────────┘

One task is one connection: the worker serves every keep-alive request on
it and then closes it. Workers start at min_workers and grow up to
max_workers when every worker is busy and tasks are waiting.

=============================================================================
STOPPING
=============================================================================

Workers exit when they take a poison pill (None) off the queue. Pills go
in behind anything already queued, so connections accepted before the
listener closed are still served.

    shutdown(wait=True)    Pill every worker and join them.
    shutdown(wait=False)   Pill every worker and return. Busy workers
                           finish their current connection first.

Whether a connection is drained or aborted is decided by the socket
server; the pool only stops taking new work.

=============================================================================
"""

import queue
import threading
import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred function call."""
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Pulls tasks off the shared queue until it receives a poison pill."""

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        # Daemon threads never hold the process open after main() returns
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id

        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")

        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute_task(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute_task(self, task: Task):
        self.state = WorkerState.BUSY
        start_time = time.time()
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(f"Worker {self.worker_id} completed task in {time.time() - start_time:.3f}s")
        except Exception as e:
            # One failing connection must not take the worker down with it
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Thread pool for connection handling.

    Args:
        min_workers: Workers created by start().
        max_workers: Upper bound reached by scaling up under load.
        queue_size: Tasks that may wait for a worker. submit() returns
            False once that many are waiting.
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size

        # Unbounded so poison pills always fit; submit() enforces queue_size
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return

        logger.debug(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        """Spawn one worker. Caller holds self._lock."""
        worker = Worker(self._task_queue, self._next_worker_id)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """
        Queue a call for a worker.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        with self._lock:
            if self._task_queue.qsize() >= self.queue_size:
                return False
            self._task_queue.put(Task(func=func, args=args, kwargs=kwargs))

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        """Add a worker when all are busy and work is waiting."""
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            busy = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            if busy == len(self._workers) and self._task_queue.qsize() > 0:
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop the pool.

        Args:
            wait: Join workers before returning.
            timeout: Per-worker join timeout when waiting.
        """
        with self._lock:
            if not self._started or self._shutdown:
                return
            self._shutdown = True
            workers = list(self._workers)

        for _ in workers:
            self._task_queue.put(None)

        if wait:
            for worker in workers:
                worker.join(timeout=timeout)

        logger.debug("Thread pool stopped")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def stats(self) -> dict:
        """Worker and task counters."""
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self._task_queue.qsize(),
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
