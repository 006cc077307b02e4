from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


@dataclass
class Session:
    account_id: Optional[str] = None
    network_id: Optional[str] = None
    balance: Optional[Decimal] = None


@dataclass(frozen=True)
class ContractSnapshot:
    lower_bound: Optional[int] = None
    upper_bound: Optional[int] = None
    registered: bool = False
    pending_registration: bool = False

    @property
    def has_bounds(self) -> bool:
        # The contract reports (0, 0) before its first round is set up.
        return (
            self.lower_bound is not None
            and self.upper_bound is not None
            and self.upper_bound != 0
        )


class GuessOutcome(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    UNKNOWN = "unknown"


@dataclass
class GuessAttempt:
    value: int
    pending_tx_handle: Optional[str] = None
    outcome: GuessOutcome = GuessOutcome.PENDING


@dataclass(frozen=True)
class WinnerRecord:
    guesser_address: str
    answer: int


class TransitionKind(Enum):
    RANGE_RESET = "range_reset"
    RANGE_NARROWED = "range_narrowed"
    BALANCE_CHANGED = "balance_changed"
    WINNER_ANNOUNCED = "winner_announced"
    REGISTERED = "registered"


@dataclass(frozen=True)
class Transition:
    kind: TransitionKind
    snapshot: ContractSnapshot
    winner: Optional[WinnerRecord] = None
    balance: Optional[Decimal] = None
    tx_handle: Optional[str] = None


@dataclass(frozen=True)
class TxOptions:
    sender: Optional[str] = None
    value: Optional[int] = None
    gas_price: Optional[int] = None
    gas: Optional[int] = None

    def as_dict(self) -> Dict[str, Any]:
        """Transaction fields with unset entries dropped."""
        fields = {
            "from": self.sender,
            "value": self.value,
            "gasPrice": self.gas_price,
            "gas": self.gas,
        }
        return {k: v for k, v in fields.items() if v is not None}


@dataclass(frozen=True)
class TxReceipt:
    handle: str
    finalized: bool
    success: Optional[bool] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Student:
    sid: str
    name: str
    wallet_addr: Optional[str] = None


@dataclass
class GuessSlot:
    """Holds the single outstanding guess, if any."""

    attempt: Optional[GuessAttempt] = None

    def clear(self) -> None:
        self.attempt = None
