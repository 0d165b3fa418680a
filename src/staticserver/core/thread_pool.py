"""
=============================================================================
THREAD POOL
=============================================================================

Worker threads that each take one connection at a time and run the full
request pipeline on it, synchronously, to completion.

    accept loop ──submit()──► [ bounded task queue ] ──► Worker-0
                                                    ├──► Worker-1
                                                    └──► Worker-N (scaled up
                                                         to max_workers)

Why threads? Serving files is I/O bound: a worker blocked in recv() or
sendall() releases the GIL and the others keep going. A slow client ties
up one worker for as long as its request lasts; the bounded queue turns
overload into an immediate 503 instead of unbounded memory growth.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """
    Pulls tasks off the shared queue until it receives None.

    After `idle_timeout` seconds without work the worker asks `can_retire`
    whether it may leave; the pool says yes only above its minimum size.
    """

    def __init__(
        self,
        task_queue: queue.Queue,
        worker_id: int,
        idle_timeout: float = 60.0,
        can_retire: Optional[Callable[["Worker"], bool]] = None,
    ):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self.can_retire = can_retire
        self._shutdown = threading.Event()
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        while not self._shutdown.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                if self.can_retire is not None and self.can_retire(self):
                    logger.debug(f"Worker {self.worker_id} idle, retiring")
                    break
                continue

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
        except Exception as e:
            # A failing task must not kill the worker
            elapsed = time.time() - start_time
            logger.exception(f"Worker {self.worker_id} task failed after {elapsed:.3f}s: {e}")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self):
        self._shutdown.set()


class ThreadPool:
    """
    Fixed minimum, elastic maximum pool of Worker threads.

        pool = ThreadPool(min_workers=4, max_workers=8)
        pool.start()
        if not pool.submit(handle, args=(conn,)):
            reject(conn)            # queue full
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutdown = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutdown = False
        for _ in range(self.min_workers):
            self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        with self._lock:
            worker = Worker(
                self._task_queue,
                self._next_worker_id,
                self.idle_timeout,
                can_retire=self._retire,
            )
            self._next_worker_id += 1
            self._workers.append(worker)
            worker.start()
            return worker

    def _retire(self, worker: Worker) -> bool:
        """Let an idle worker leave while the pool is above min_workers."""
        with self._lock:
            if self._shutdown or len(self._workers) <= self.min_workers:
                return False
            self._workers.remove(worker)
            return True

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue a task without blocking the accept loop.

        Returns False when the queue is full.
        """
        if not self._started or self._shutdown:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func=func, args=args, kwargs=kwargs or {}))
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            busy = sum(1 for w in self._workers if w.state == WorkerState.BUSY)
            can_grow = len(self._workers) < self.max_workers
            saturated = busy == len(self._workers) and self._task_queue.qsize() > 0
        if can_grow and saturated:
            logger.debug(f"Scaling up to {len(self._workers) + 1} workers")
            self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """Stop accepting tasks, optionally drain the queue, stop workers."""
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutdown = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while not self._task_queue.empty():
                if deadline and time.time() > deadline:
                    logger.warning("Shutdown timeout, forcing stop")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
        for worker in workers:
            worker.shutdown()
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                pass
        for worker in workers:
            worker.join(timeout=2.0)

        self._workers.clear()
        self._started = False
        logger.info("Thread pool shutdown complete")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def size(self) -> int:
        return len(self._workers)
