"""
Runs submitted coroutines one at a time, in submission order, on a single worker task.
"""
import asyncio
import logging
from collections import deque

logger = logging.getLogger(__name__)


class TaskQueueClosedError(RuntimeError):
    """ The queue was closed before the task could run. """


class SequentialTaskQueue:
    """
    A FIFO of coroutine functions executed by one background worker, so that at most one is active
    at any time. The queue is unbounded.

    push() returns a future for the task's result. If the task raises, the future holds the exception;
    the worker itself carries on with the next task. Each task runs as its own asyncio task, so the
    worker's frame never appears in a task's traceback.
    """

    def __init__(self, log=logger):
        self.logger = log
        self._tasks = deque()
        self._wakeup = None
        self._worker = None
        self._job = None        # the asyncio task running the current entry, if any
        self._closed = False

    def __len__(self):
        return len(self._tasks)

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def push(self, fn, *args) -> asyncio.Future:
        """
        Queues a coroutine function for execution.
        :param fn: called with args when the task's turn comes; must return an awaitable.
        :return: a future resolved with the task's result.
        """
        if self._closed:
            raise TaskQueueClosedError("task queue is closed")
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._tasks.append((fn, args, future))
        self.start()
        if self._wakeup is not None:
            self._wakeup.set()
        return future

    def start(self):
        """ starts the worker, if not already running. """
        if not self.running and not self._closed:
            self._wakeup = asyncio.Event()
            self._worker = asyncio.get_running_loop().create_task(self._run())

    async def close(self):
        """
        Stops the worker. The running task is cancelled and tasks still queued fail with TaskQueueClosedError.
        """
        self._closed = True
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass
        job, self._job = self._job, None
        if job is not None and not job.done():
            job.cancel()
            await asyncio.wait({job})
        while self._tasks:
            _, _, future = self._tasks.popleft()
            if not future.done():
                future.set_exception(TaskQueueClosedError("task queue closed before the task could run"))

    async def _run(self):
        while True:
            if not self._tasks:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            fn, args, future = self._tasks.popleft()
            if future.done():
                continue
            job = asyncio.ensure_future(fn(*args))
            self._job = job
            try:
                await asyncio.wait({job})
            except asyncio.CancelledError:
                job.cancel()
                if not future.done():
                    future.set_exception(TaskQueueClosedError("task queue closed while the task was running"))
                raise
            self._job = None
            self._deliver(job, future)

    def _deliver(self, job: asyncio.Future, future: asyncio.Future):
        if job.cancelled():
            if not future.done():
                future.set_exception(TaskQueueClosedError("task was cancelled while running"))
            return
        e = job.exception()
        if e is not None:
            if not future.done():
                future.set_exception(e)
            else:
                self.exception_handler(e)
        elif not future.done():
            future.set_result(job.result())

    def exception_handler(self, e):
        self.logger.error("task failed after its caller went away: %s" % (e,), exc_info=e)
