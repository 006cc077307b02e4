from decimal import Decimal
from typing import Optional


class ConsoleView:
    """Terminal stand-in for the browser page: prints one line per event."""

    def __init__(self, write=print):
        self.write = write

    def on_bounds_reset(self, lower: int, upper: int):
        self.write(f"✓ Someone guessed it! New round: guess from {lower} to {upper - 1}.")

    def on_bounds_narrowed(self, lower: int, upper: int, by_self: bool):
        who = "Wrong guess" if by_self else "Someone guessed wrong"
        self.write(f"✗ {who}. You can now guess from {lower} to {upper - 1}.")

    def on_balance_changed(self, balance: Decimal):
        self.write(f"Balance updated! You have {balance}.")

    def on_winner_announced(self, address: str, answer: int, name: str):
        self.write(f"★ {name} guessed the number {answer}.")

    def on_validation_error(self, reason: str):
        self.write(f"⚠ {reason}")

    def on_registered(self, tx_handle: Optional[str]):
        self.write(f"✓ Registered in the contract  tx={(tx_handle or '')[:12]}…")

    def on_write_error(self, action: str, reason: str):
        self.write(f"✗ {action}: {reason}")

    def on_timed_out(self, action: str):
        self.write(f"✗ {action}: not mined in time, check your wallet")

    def on_health_changed(self, healthy: bool):
        self.write("✦ Ledger online" if healthy else "✦ Ledger unreachable")
