import asyncio
import traceback
from unittest import IsolatedAsyncioTestCase
from unittest.mock import Mock

from hamcrest import assert_that, is_

from escvp21.conduit.base_test import time_limited
from escvp21.protocol.tasks import SequentialTaskQueue, TaskQueueClosedError


class SequentialTaskQueueTest(IsolatedAsyncioTestCase):

    def setUp(self):
        self.sut = SequentialTaskQueue()
        self.trace = []

    async def asyncTearDown(self):
        await asyncio.wait_for(self.sut.close(), 5)

    async def task(self, name, delay=0.0):
        self.trace.append("start " + name)
        await asyncio.sleep(delay)
        self.trace.append("end " + name)
        return name

    @time_limited(5)
    async def test_result_is_returned(self):
        assert_that(await self.sut.push(self.task, "a"), is_("a"))

    @time_limited(5)
    async def test_tasks_do_not_overlap_and_run_in_order(self):
        first = self.sut.push(self.task, "a", 0.02)
        second = self.sut.push(self.task, "b")
        third = self.sut.push(self.task, "c")
        results = await asyncio.wait_for(asyncio.gather(first, second, third), 1)
        assert_that(results, is_(["a", "b", "c"]))
        assert_that(self.trace, is_(["start a", "end a", "start b", "end b", "start c", "end c"]))

    @time_limited(5)
    async def test_failure_is_delivered_and_queue_continues(self):
        async def fail():
            raise ValueError("nope")

        failed = self.sut.push(fail)
        after = self.sut.push(self.task, "after")
        with self.assertRaises(ValueError):
            await failed
        assert_that(await after, is_("after"))

    @time_limited(5)
    async def test_worker_idles_and_resumes(self):
        assert_that(await self.sut.push(self.task, "a"), is_("a"))
        await asyncio.sleep(0.01)
        assert_that(self.sut.running, is_(True))
        assert_that(await self.sut.push(self.task, "b"), is_("b"))

    @time_limited(5)
    async def test_close_fails_queued_and_running_tasks(self):
        running = self.sut.push(self.task, "slow", 10)
        queued = self.sut.push(self.task, "never")
        await asyncio.sleep(0)
        assert_that(len(self.sut), is_(1))
        await self.sut.close()
        with self.assertRaises(TaskQueueClosedError):
            await running
        with self.assertRaises(TaskQueueClosedError):
            await queued
        assert_that("start never" in self.trace, is_(False))
        assert_that("end slow" in self.trace, is_(False))

    @time_limited(5)
    async def test_push_after_close(self):
        await self.sut.close()
        with self.assertRaises(TaskQueueClosedError):
            self.sut.push(self.task, "late")

    @time_limited(5)
    async def test_abandoned_task_is_skipped(self):
        blocker = self.sut.push(self.task, "blocker", 0.01)
        abandoned = self.sut.push(self.task, "abandoned")
        abandoned.cancel()
        await blocker
        assert_that(await self.sut.push(self.task, "next"), is_("next"))
        assert_that("start abandoned" in self.trace, is_(False))

    @time_limited(5)
    async def test_clearing_a_failure_traceback_leaves_the_worker_running(self):
        async def fail():
            raise ValueError("nope")

        try:
            await self.sut.push(fail)
        except ValueError as e:
            traceback.clear_frames(e.__traceback__)
        assert_that(await self.sut.push(self.task, "after"), is_("after"))
        assert_that(self.sut.running, is_(True))

    @time_limited(5)
    async def test_failure_after_caller_went_away_is_logged(self):
        log = Mock()
        self.sut.logger = log

        async def fail():
            await asyncio.sleep(0.01)
            raise ValueError("nope")

        abandoned = self.sut.push(fail)
        await asyncio.sleep(0)
        abandoned.cancel()
        assert_that(await self.sut.push(self.task, "next"), is_("next"))
        log.error.assert_called_once()
