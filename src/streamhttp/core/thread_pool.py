"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Each accepted connection becomes one task. Tasks run on a pool of worker
threads so the accept loop never waits for a request to finish.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          THREAD POOL                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ── submit(task) ──►  [ queue.Queue ]                   │
    │                                        │   │   │                     │
    │                                        ▼   ▼   ▼                     │
    │                                   Worker-0 Worker-1 ... Worker-N     │
    │                                                                      │
    │   min_workers threads start with the pool. submit() reserves an     │
    │   idle worker for the task; when none is free one more is spawned, │
    │   up to max_workers.                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
IDLE ACCOUNTING
=============================================================================

The pool counts free workers itself instead of asking each thread whether
it is busy. A worker that has not yet dequeued its task still looks idle
from the outside, so polling thread state would let two tasks queue behind
one worker.

    submit():   _available > 0  ─► _available -= 1, enqueue
                below max       ─► spawn a worker, enqueue
                at max          ─► run on an overflow thread

    worker finishes a task      ─► _available += 1

Overflow threads are one-shot and are not kept. They guarantee that a
pool full of stalled clients never delays a new connection; max_workers
bounds how many threads are kept around, not how many connections may be
in flight.

=============================================================================
SHUTDOWN: POISON PILLS
=============================================================================

    queue: [task, task, None, None, None]
                         │
                         └── each worker exits when it dequeues None

Tasks queued before shutdown are drained first when wait=True.

=============================================================================
"""

import threading
import queue
import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional, Set


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    """Worker thread states, for monitoring."""

    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """
    A deferred call: `func(*args)` on some worker.

    Attributes:
        func: Callable to run.
        args: Positional arguments.
        submitted_at: Enqueue time, used to log queueing delay.
    """

    func: Callable[..., Any]
    args: tuple = ()
    submitted_at: float = field(default_factory=time.monotonic)


def _run_task(task: Task, label: str) -> bool:
    """Run one task, logging the outcome. Returns True on success."""
    started = time.monotonic()
    waited = started - task.submitted_at

    try:
        task.func(*task.args)
    except Exception as e:
        logger.exception(f"{label} task failed: {e}")
        return False

    logger.debug(
        f"{label} finished task in "
        f"{time.monotonic() - started:.3f}s (queued {waited:.3f}s)"
    )
    return True


class Worker(threading.Thread):
    """
    Daemon thread that pulls tasks until it receives a poison pill.

    A task raising an exception is logged and counted; the worker itself
    keeps running. `on_idle` is called after every finished task so the
    pool can hand the worker out again.
    """

    def __init__(
        self,
        task_queue: "queue.Queue[Optional[Task]]",
        worker_id: int,
        on_idle: Callable[[], None],
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.on_idle = on_idle
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
                self._execute(task)
            finally:
                self.task_queue.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        try:
            if _run_task(task, self.name):
                self.tasks_completed += 1
            else:
                self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE
            self.on_idle()


class ThreadPool:
    """
    Growable pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=2, max_workers=8)
        pool.start()
        pool.submit(handle, conn)
        ...
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16):
        """
        Args:
            min_workers: Threads started by start().
            max_workers: Ceiling for pooled threads.
        """
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Invalid pool bounds: min={min_workers}, max={max_workers}"
            )
        self.min_workers = min_workers
        self.max_workers = max_workers

        # Unbounded, so submit() never blocks the accept loop.
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue()
        self._workers: List[Worker] = []
        self._overflow: Set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._available = 0
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0
        self._next_overflow_id = 0
        self._overflow_completed = 0
        self._overflow_failed = 0

    def start(self):
        """Spawn the initial min_workers threads. Idempotent."""
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        with self._lock:
            for _ in range(self.min_workers):
                self._spawn_locked()
            self._available = self.min_workers
        self._started = True

    def _spawn_locked(self) -> Worker:
        """Start one more worker. Caller holds _lock."""
        worker = Worker(self._task_queue, self._next_worker_id, self._release)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def _release(self):
        """A worker finished its task and can take another."""
        with self._lock:
            self._available += 1

    def submit(self, func: Callable[..., Any], *args: Any) -> None:
        """
        Run `func(*args)` on a free worker, a new worker, or an overflow
        thread, in that order of preference.

        Raises:
            RuntimeError: If the pool is not started or is shutting down.
        """
        if not self._started:
            raise RuntimeError("Thread pool not started")
        if self._shutting_down:
            raise RuntimeError("Thread pool is shutting down")

        task = Task(func=func, args=args)
        with self._lock:
            if self._available > 0:
                self._available -= 1
            elif len(self._workers) < self.max_workers:
                logger.debug(
                    f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers"
                )
                self._spawn_locked()
            else:
                self._start_overflow_locked(task)
                return
            self._task_queue.put(task)

    def _start_overflow_locked(self, task: Task):
        """Run `task` on a one-shot thread. Caller holds _lock."""
        name = f"Overflow-{self._next_overflow_id}"
        self._next_overflow_id += 1
        logger.warning(
            f"All {self.max_workers} workers busy, running task on {name}"
        )
        thread = threading.Thread(
            target=self._run_overflow, args=(task,), name=name, daemon=True
        )
        self._overflow.add(thread)
        thread.start()

    def _run_overflow(self, task: Task):
        ok = _run_task(task, threading.current_thread().name)
        with self._lock:
            if ok:
                self._overflow_completed += 1
            else:
                self._overflow_failed += 1
            self._overflow.discard(threading.current_thread())

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Let queued and running tasks finish before stopping.
            timeout: Upper bound in seconds on that wait.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._task_queue.unfinished_tasks or self._overflow:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Shutdown timeout, stopping workers anyway")
                    break
                time.sleep(0.05)

        stats = self.stats

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()
            self._available = 0

        for _ in workers:
            self._task_queue.put(None)
        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        self._shutting_down = False
        logger.info(
            f"Thread pool shutdown complete: {stats['completed']} tasks completed, "
            f"{stats['failed']} failed, {stats['overflow']} overflow threads"
        )

    @property
    def worker_count(self) -> int:
        """Number of live pooled worker threads."""
        return sum(1 for w in self._workers if w.state is not WorkerState.STOPPED)

    @property
    def stats(self) -> dict:
        """Worker and task counters, overflow threads included."""
        with self._lock:
            return {
                "workers": len(self._workers),
                "idle": self._available,
                "overflow": self._next_overflow_id,
                "completed": sum(w.tasks_completed for w in self._workers)
                + self._overflow_completed,
                "failed": sum(w.tasks_failed for w in self._workers)
                + self._overflow_failed,
            }
