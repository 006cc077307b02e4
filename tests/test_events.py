import asyncio

from guess_client.events import EventWatch
from guess_client.exceptions import RemoteReadError
from tests.fakes import wait_until


def scripted_fetch(batches):
    async def fetch():
        batch = batches.pop(0) if batches else []
        if isinstance(batch, Exception):
            raise batch
        return batch

    return fetch


def test_every_fetched_event_reaches_the_callback():
    seen = []
    batches = [RemoteReadError("node down"), [{"a": 1}], [], [{"a": 2}, {"a": 3}]]

    async def run():
        watch = EventWatch("Winner", scripted_fetch(batches), seen.append, interval=0.001)
        await wait_until(lambda: len(seen) == 3)
        await watch.close()
        return watch

    watch = asyncio.run(run())
    assert seen == [{"a": 1}, {"a": 2}, {"a": 3}]
    assert watch._task.cancelled()


def test_async_callbacks_are_awaited():
    seen = []

    async def callback(args):
        await asyncio.sleep(0)
        seen.append(args)

    async def run():
        watch = EventWatch("Winner", scripted_fetch([[{"a": 1}]]), callback, interval=0.001)
        await wait_until(lambda: seen)
        await watch.close()

    asyncio.run(run())
    assert seen == [{"a": 1}]


def test_failing_callback_does_not_stop_the_watch():
    seen = []

    def callback(args):
        if args["a"] == 1:
            raise RuntimeError("view broke")
        seen.append(args)

    async def run():
        watch = EventWatch("Winner", scripted_fetch([[{"a": 1}], [{"a": 2}]]), callback, interval=0.001)
        await wait_until(lambda: seen)
        await watch.close()

    asyncio.run(run())
    assert seen == [{"a": 2}]
