"""
config.py
Runtime settings for the guess-number client.

Environment
-----------
- GUESS_RPC_URL            wallet-backed JSON-RPC endpoint (default http://127.0.0.1:8545)
- GUESS_FALLBACK_RPC_URL   read-only endpoint used when no wallet is reachable
- GUESS_CONTRACT_ADDRESS   deployed guess-number contract
- GUESS_REGISTRY_ADDRESS   deployed student-id registry contract
- GUESS_TARGET_NETWORK     network id the session must be on (default "3", Ropsten)
- GUESS_ROSTER_FILE        optional JSON list of {"sid": ..., "name": ...}
- GUESS_CONFIRM_TIMEOUT    seconds to wait for a receipt before giving up
- GUESS_BRIDGE_URL         wallet bridge used by the Soroban mode
"""

import os
from dataclasses import dataclass
from typing import Optional

from guess_client.abi import GUESS_NUMBER_ADDRESS, STUDENT_REGISTRY_ADDRESS

GWEI = 10**9


@dataclass
class ClientConfig:
    rpc_url: str = "http://127.0.0.1:8545"
    fallback_rpc_url: str = "https://mainnet.infura.io/<APIKEY>"
    contract_address: str = GUESS_NUMBER_ADDRESS
    registry_address: str = STUDENT_REGISTRY_ADDRESS
    target_network: str = "3"
    roster_file: Optional[str] = None
    bridge_url: str = "http://127.0.0.1:8787"

    # polling cadence, seconds
    tick_interval: float = 1.0
    account_poll_interval: float = 0.5
    network_poll_interval: float = 0.5
    register_poll_interval: float = 4.0
    guess_poll_interval: float = 5.0
    event_poll_interval: float = 2.0
    health_interval: float = 5.0
    roster_interval: float = 10.0
    roster_stagger: float = 0.1

    # None keeps the bootstrapper waiting until the wallet is unlocked
    bootstrap_max_attempts: Optional[int] = None
    confirm_timeout: Optional[float] = 300.0

    # one guessed unit is paid as 10**15 wei (0.001 ether)
    value_scale: int = 10**15
    gas_price: int = 1500 * GWEI
    gas: int = 100000

    @classmethod
    def from_env(cls) -> "ClientConfig":
        defaults = cls()
        timeout = os.environ.get("GUESS_CONFIRM_TIMEOUT", "").strip()
        return cls(
            rpc_url=os.environ.get("GUESS_RPC_URL", defaults.rpc_url),
            fallback_rpc_url=os.environ.get("GUESS_FALLBACK_RPC_URL", defaults.fallback_rpc_url),
            contract_address=os.environ.get("GUESS_CONTRACT_ADDRESS", defaults.contract_address),
            registry_address=os.environ.get("GUESS_REGISTRY_ADDRESS", defaults.registry_address),
            target_network=os.environ.get("GUESS_TARGET_NETWORK", defaults.target_network),
            roster_file=os.environ.get("GUESS_ROSTER_FILE") or None,
            bridge_url=os.environ.get("GUESS_BRIDGE_URL", defaults.bridge_url),
            confirm_timeout=float(timeout) if timeout else defaults.confirm_timeout,
        )
