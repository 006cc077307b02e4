"""In-memory collaborators shared by the tests."""

import asyncio
from decimal import Decimal

from guess_client.config import ClientConfig
from guess_client.models import TxReceipt


def _next(seq):
    # Consume a scripted sequence; the last item repeats forever.
    item = seq.pop(0) if len(seq) > 1 else seq[0]
    if isinstance(item, Exception):
        raise item
    return item


def fast_config(**overrides):
    values = dict(
        tick_interval=0.01,
        account_poll_interval=0,
        network_poll_interval=0,
        register_poll_interval=0.001,
        guess_poll_interval=0.001,
        health_interval=0.01,
        roster_interval=0.01,
        roster_stagger=0,
        confirm_timeout=1.0,
    )
    values.update(overrides)
    return ClientConfig(**values)


async def wait_until(predicate, timeout=1.0):
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


class FakeProvider:
    def __init__(self, accounts=("0xme",), networks=("3",), balances=("1.0",)):
        self.accounts = list(accounts)
        self.networks = list(networks)
        self.balances = list(balances)
        self.account_reads = 0
        self.network_reads = 0
        self.balance_reads = 0

    async def get_account(self):
        self.account_reads += 1
        return _next(self.accounts)

    async def get_network(self):
        self.network_reads += 1
        return _next(self.networks)

    async def get_balance(self, account):
        self.balance_reads += 1
        return Decimal(str(_next(self.balances)))


class FakeSubscription:
    def __init__(self):
        self.closed = False

    async def close(self):
        self.closed = True


class FakeLedger:
    def __init__(self, bounds=((0, 100),), registry=None):
        self.bounds = list(bounds)
        self.registry = dict(registry or {})
        self.calls = []
        self.sent = []
        self.subscriptions = []
        self.receipt_polls = 0
        self.mined = True
        self.send_error = None
        self.healthy = True
        self.default_account = None

    def set_default_account(self, account):
        self.default_account = account

    async def call(self, method, args=()):
        self.calls.append((method, tuple(args)))
        if method == "query":
            return _next(self.bounds)
        value = self.registry[args[0]]
        if isinstance(value, Exception):
            raise value
        return value

    async def send(self, method, args, options):
        self.sent.append((method, tuple(args), options))
        if self.send_error is not None:
            error, self.send_error = self.send_error, None
            raise error
        return f"0x{len(self.sent):064x}"

    async def get_receipt(self, handle):
        self.receipt_polls += 1
        if not self.mined:
            return None
        return TxReceipt(handle=handle, finalized=True, success=True, raw={"status": 1})

    async def subscribe(self, event_name, callback):
        subscription = FakeSubscription()
        self.subscriptions.append((event_name, callback, subscription))
        return subscription

    async def health(self):
        return self.healthy


class RecordingView:
    def __init__(self):
        self.events = []

    def named(self, name):
        return [e for e in self.events if e[0] == name]

    def on_bounds_reset(self, lower, upper):
        self.events.append(("reset", lower, upper))

    def on_bounds_narrowed(self, lower, upper, by_self):
        self.events.append(("narrowed", lower, upper, by_self))

    def on_balance_changed(self, balance):
        self.events.append(("balance", balance))

    def on_winner_announced(self, address, answer, name):
        self.events.append(("winner", address, answer, name))

    def on_validation_error(self, reason):
        self.events.append(("invalid", reason))

    def on_registered(self, tx_handle):
        self.events.append(("registered", tx_handle))

    def on_write_error(self, action, reason):
        self.events.append(("write_error", action, reason))

    def on_timed_out(self, action):
        self.events.append(("timed_out", action))

    def on_health_changed(self, healthy):
        self.events.append(("health", healthy))

