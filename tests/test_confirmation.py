import asyncio

from guess_client.confirmation import ConfirmationStatus, ConfirmationWaiter, InFlight
from guess_client.exceptions import RemoteReadError
from guess_client.models import TxReceipt
from guess_client.retry import RetryPolicy


class ScriptedLedger:
    """Answers get_receipt from a script; the last entry repeats."""

    def __init__(self, script):
        self.script = list(script)
        self.polls = 0

    async def get_receipt(self, handle):
        self.polls += 1
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


MINED = TxReceipt(handle="0x01", finalized=True, success=True)
PENDING = TxReceipt(handle="0x01", finalized=False)


def test_confirms_once_receipt_has_status():
    ledger = ScriptedLedger([None, PENDING, MINED])
    result = asyncio.run(ConfirmationWaiter(ledger).await_confirmation("0x01", RetryPolicy(0)))
    assert result.status is ConfirmationStatus.CONFIRMED
    assert result.confirmed
    assert result.receipt is MINED
    assert ledger.polls == 3


def test_reverted_receipt_still_confirms():
    reverted = TxReceipt(handle="0x01", finalized=True, success=False)
    result = asyncio.run(
        ConfirmationWaiter(ScriptedLedger([reverted])).await_confirmation("0x01", RetryPolicy(0))
    )
    assert result.confirmed
    assert result.receipt.success is False


def test_read_errors_are_retried():
    ledger = ScriptedLedger([RemoteReadError("502"), RemoteReadError("502"), MINED])
    result = asyncio.run(ConfirmationWaiter(ledger).await_confirmation("0x01", RetryPolicy(0)))
    assert result.confirmed
    assert ledger.polls == 3


def test_attempt_limit_times_out():
    ledger = ScriptedLedger([None])
    policy = RetryPolicy(0, max_attempts=4)
    result = asyncio.run(ConfirmationWaiter(ledger).await_confirmation("0x01", policy))
    assert result.status is ConfirmationStatus.TIMED_OUT
    assert result.receipt is None
    assert ledger.polls == 4


def test_deadline_times_out():
    policy = RetryPolicy(0.005, timeout=0.05)
    result = asyncio.run(ConfirmationWaiter(ScriptedLedger([None])).await_confirmation("0x01", policy))
    assert result.status is ConfirmationStatus.TIMED_OUT


def test_cancel_stops_waiting():
    async def run():
        cancel = asyncio.Event()
        waiter = ConfirmationWaiter(ScriptedLedger([None]))
        task = asyncio.create_task(waiter.await_confirmation("0x01", RetryPolicy(10, cancel=cancel)))
        await asyncio.sleep(0.01)
        cancel.set()
        return await asyncio.wait_for(task, timeout=1)

    assert asyncio.run(run()).status is ConfirmationStatus.CANCELLED


def test_in_flight_flags_are_per_action():
    flags = InFlight()
    assert flags.try_acquire("guess")
    assert not flags.try_acquire("guess")
    assert flags.try_acquire("register")
    assert flags.is_active("guess")
    flags.release("guess")
    assert not flags.is_active("guess")
    assert flags.try_acquire("guess")
