import asyncio
from decimal import Decimal

from guess_client.bootstrap import BootState
from guess_client.client import GuessNumberClient
from guess_client.models import GuessAttempt, Student
from guess_client.roster import StudentRoster
from tests.fakes import FakeLedger, FakeProvider, RecordingView, fast_config, wait_until


def test_start_bootstraps_then_reads_balance_once():
    provider = FakeProvider(
        accounts=[None, None, "0xme"],
        networks=["42", "42", "3"],
        balances=["1.0"],
    )
    ledger = FakeLedger()
    client = GuessNumberClient(provider, ledger, RecordingView(), fast_config())

    async def run():
        session = await client.start()
        reads_at_ready = provider.balance_reads
        await client.stop()
        return session, reads_at_ready

    session, reads_at_ready = asyncio.run(run())
    assert client.bootstrapper.state is BootState.READY
    assert session.account_id == "0xme"
    assert session.balance == Decimal("1.0")
    assert reads_at_ready == 1
    assert ledger.default_account == "0xme"


def test_sync_loop_reports_contract_changes():
    provider = FakeProvider(balances=["1.0", "1.0", "0.9"])
    ledger = FakeLedger(bounds=[(0, 100), (0, 100), (0, 40)])
    view = RecordingView()
    client = GuessNumberClient(provider, ledger, view, fast_config())

    async def run():
        await client.start()
        await client.register()
        client.guesses.attempt = GuessAttempt(value=50)
        await wait_until(lambda: view.named("narrowed"))
        await wait_until(lambda: view.named("balance"))
        await client.stop()

    asyncio.run(run())
    assert view.named("narrowed") == [("narrowed", 0, 40, True)]
    assert view.named("balance") == [("balance", Decimal("0.9"))]
    assert client.guesses.attempt is None


def test_identical_reads_leave_guess_alone():
    ledger = FakeLedger(bounds=[(0, 100)])
    view = RecordingView()
    client = GuessNumberClient(FakeProvider(), ledger, view, fast_config())

    async def run():
        await client.start()
        await client.register()
        attempt = GuessAttempt(value=7)
        client.guesses.attempt = attempt
        for _ in range(3):
            await client.sync_once()
        await client.stop()
        return attempt

    attempt = asyncio.run(run())
    assert client.guesses.attempt is attempt
    assert view.named("narrowed") == [] and view.named("reset") == []


def test_winner_event_is_dispatched_with_student_name():
    ledger = FakeLedger(registry={"b0401": "0xAbC"})
    view = RecordingView()
    roster = StudentRoster(ledger, [Student(sid="b0401", name="Alice")], stagger=0)
    client = GuessNumberClient(FakeProvider(), ledger, view, fast_config(), roster=roster)

    async def run():
        await client.start()
        await client.register()
        await wait_until(lambda: roster.students[0].wallet_addr is not None)
        _, callback, subscription = ledger.subscriptions[0]
        callback({"_winner": "0xabc", "_answer": 42})
        callback({"_winner": "0xabc"})
        callback({"_winner": None, "_answer": 7})
        await client.stop()
        return subscription

    subscription = asyncio.run(run())
    assert view.named("winner") == [("winner", "0xabc", 42, "Alice")]
    assert client.winner.answer == 42
    assert subscription.closed


def test_health_flips_are_reported():
    ledger = FakeLedger()
    view = RecordingView()
    client = GuessNumberClient(None, ledger, view, fast_config())

    async def run():
        await client.start()
        await wait_until(lambda: view.named("health"))
        ledger.healthy = False
        await wait_until(lambda: len(view.named("health")) == 2)
        await client.stop()

    asyncio.run(run())
    assert view.named("health") == [("health", True), ("health", False)]


def test_read_only_mode_skips_bootstrap():
    ledger = FakeLedger()
    client = GuessNumberClient(None, ledger, RecordingView(), fast_config())

    async def run():
        session = await client.start()
        await client.stop()
        return session

    session = asyncio.run(run())
    assert client.read_only
    assert client.bootstrapper is None
    assert session.account_id is None
    assert ledger.calls == []


def test_stop_interrupts_a_pending_bootstrap():
    provider = FakeProvider(accounts=[None])
    client = GuessNumberClient(provider, FakeLedger(), RecordingView(), fast_config(account_poll_interval=10))

    async def run():
        starting = asyncio.create_task(client.start())
        await asyncio.sleep(0.01)
        await client.stop()
        await client.stop()
        return await asyncio.wait_for(starting, timeout=1)

    session = asyncio.run(run())
    assert session.account_id is None
    assert client.bootstrapper.state is BootState.AWAITING_ACCOUNT
