import asyncio
import logging

from guess_client.client import GuessNumberClient
from guess_client.demo import play
from tests.fakes import FakeLedger, FakeProvider, RecordingView, fast_config


def scripted_lines(lines):
    async def read_line():
        await asyncio.sleep(0.01)
        return lines.pop(0) if lines else "quit"

    return read_line


def other_tasks():
    return [t for t in asyncio.all_tasks() if t is not asyncio.current_task()]


def test_quit_leaves_no_pending_tasks():
    ledger = FakeLedger()
    ledger.mined = False
    view = RecordingView()
    client = GuessNumberClient(FakeProvider(), ledger, view, fast_config(confirm_timeout=30))

    async def run():
        await play(client, scripted_lines(["", "5", "quit"]))
        return other_tasks()

    assert asyncio.run(run()) == []
    assert [s[0] for s in ledger.sent] == ["register"]
    assert client.snapshot.pending_registration is False
    assert view.named("invalid") == [("invalid", "The guessing range is not known yet.")]


def test_failing_background_action_is_logged(caplog):
    client = GuessNumberClient(FakeProvider(), FakeLedger(), RecordingView(), fast_config())

    async def broken_register():
        raise RuntimeError("wallet went away")

    client.register = broken_register

    async def run():
        await play(client, scripted_lines(["quit"]))
        return other_tasks()

    with caplog.at_level(logging.ERROR, logger="guess_client.demo"):
        assert asyncio.run(run()) == []
    assert "register failed" in caplog.text
    assert "wallet went away" in caplog.text
