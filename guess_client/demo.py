"""
demo.py
Play the guess-number game from a terminal.

    python -m guess_client.demo              # EVM contract via GUESS_RPC_URL
    GUESS_LEDGER=soroban python -m guess_client.demo

Commands: a number guesses it, `gas <n>` guesses with a raised gas price,
`reset` clears the pending guess, `quit` exits. Registration happens
automatically once the session is ready.
"""

import asyncio
import functools
import logging
import os
import sys
from typing import Awaitable, Callable, Set

from guess_client.client import GuessNumberClient
from guess_client.config import ClientConfig
from guess_client.console import ConsoleView
from guess_client.exceptions import ValidationError
from guess_client.roster import StudentRoster, load_students

logger = logging.getLogger(__name__)

DRAIN_TIMEOUT = 1.0


def build_evm(config: ClientConfig, view: ConsoleView) -> GuessNumberClient:
    from guess_client import ethereum

    provider, ledger, registry = ethereum.connect(config)
    students = load_students(config.roster_file) if config.roster_file else []
    roster = StudentRoster(registry, students, stagger=config.roster_stagger)
    return GuessNumberClient(provider, ledger, view, config, roster=roster)


def build_soroban(config: ClientConfig, view: ConsoleView) -> GuessNumberClient:
    from guess_client.soroban import HorizonBalanceReader, SorobanLedgerClient, StellarConfig
    from guess_client.wallet_bridge import BridgeSessionProvider, WalletBridgeClient

    stellar = StellarConfig.from_env()
    player_id = os.environ.get("GUESS_PLAYER_ID", "demo-player")
    bridge = WalletBridgeClient(config.bridge_url)
    provider = None
    if bridge.is_healthy():
        provider = BridgeSessionProvider(bridge, player_id, HorizonBalanceReader(stellar.horizon_url))
    else:
        logger.warning("Wallet bridge not running on %s, read-only", config.bridge_url)
    ledger = SorobanLedgerClient(stellar, bridge, player_id, event_poll_interval=config.event_poll_interval)
    config.target_network = stellar.network_passphrase

    roster = None
    if stellar.registry_id:
        registry = SorobanLedgerClient(stellar, bridge, player_id, contract_id=stellar.registry_id, caller_arg=False)
        students = load_students(config.roster_file) if config.roster_file else []
        roster = StudentRoster(registry, students, stagger=config.roster_stagger)
    return GuessNumberClient(provider, ledger, view, config, roster=roster)


async def _guess(client: GuessNumberClient, value: str, more_gas: bool) -> None:
    try:
        await client.submit_guess(value, more_gas=more_gas)
    except ValidationError:
        pass  # already shown by the view


async def _stdin_line() -> str:
    return await asyncio.to_thread(sys.stdin.readline)


def _task_done(tasks: Set[asyncio.Task], task: asyncio.Task) -> None:
    tasks.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("%s failed", task.get_name(), exc_info=task.exception())


def _spawn(tasks: Set[asyncio.Task], coro, name: str) -> None:
    task = asyncio.create_task(coro, name=name)
    tasks.add(task)
    task.add_done_callback(functools.partial(_task_done, tasks))


async def play(client: GuessNumberClient, read_line: Callable[[], Awaitable[str]] = _stdin_line) -> None:
    tasks: Set[asyncio.Task] = set()
    try:
        async with client:
            if client.read_only:
                print("Read-only mode: no wallet, nothing to play.")
                return
            _spawn(tasks, client.register(), "register")
            while True:
                line = (await read_line()).strip()
                if not line:
                    continue
                if line in {"quit", "exit"}:
                    return
                if line == "reset":
                    client.reset_guess()
                    continue
                more_gas = line.startswith("gas ")
                value = line[4:] if more_gas else line
                _spawn(tasks, _guess(client, value, more_gas), f"guess {value}")
    finally:
        # The client has stopped, so pending waits are returning; cancel
        # whatever is still blocked after a short grace period.
        if tasks:
            _, blocked = await asyncio.wait(list(tasks), timeout=DRAIN_TIMEOUT)
            for task in blocked:
                task.cancel()
            await asyncio.gather(*blocked, return_exceptions=True)


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    config = ClientConfig.from_env()
    view = ConsoleView()
    if os.environ.get("GUESS_LEDGER", "evm") == "soroban":
        client = build_soroban(config, view)
    else:
        client = build_evm(config, view)
    try:
        asyncio.run(play(client))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
