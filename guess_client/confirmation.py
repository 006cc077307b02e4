from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set

from guess_client.exceptions import PollCancelled, RemoteReadError, RetryExhausted
from guess_client.interfaces import LedgerClient
from guess_client.models import TxReceipt
from guess_client.retry import RetryPolicy

logger = logging.getLogger(__name__)


class ConfirmationStatus(Enum):
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class ConfirmationResult:
    status: ConfirmationStatus
    receipt: Optional[TxReceipt] = None

    @property
    def confirmed(self) -> bool:
        return self.status is ConfirmationStatus.CONFIRMED


class InFlight:
    """Tracks which write actions currently have a transaction outstanding."""

    def __init__(self):
        self._active: Set[str] = set()

    def is_active(self, kind: str) -> bool:
        return kind in self._active

    def try_acquire(self, kind: str) -> bool:
        if kind in self._active:
            return False
        self._active.add(kind)
        return True

    def release(self, kind: str) -> None:
        self._active.discard(kind)


class ConfirmationWaiter:
    """
    Polls the ledger for a transaction receipt until it is finalized.

    A receipt counts as finalized once the ledger reports a status for it,
    whether the transaction succeeded or reverted. Failed receipt lookups
    are logged and retried on the next interval.
    """

    def __init__(self, ledger: LedgerClient):
        self.ledger = ledger

    async def await_confirmation(self, handle: str, policy: RetryPolicy) -> ConfirmationResult:
        async def _probe() -> Optional[TxReceipt]:
            try:
                receipt = await self.ledger.get_receipt(handle)
            except RemoteReadError as exc:
                logger.warning("Receipt lookup for %s failed: %s", handle, exc)
                return None
            if receipt is None or not receipt.finalized:
                logger.debug("Transaction %s not mined yet", handle)
                return None
            return receipt

        try:
            receipt = await policy.poll(_probe, what=f"receipt {handle}")
        except RetryExhausted as exc:
            logger.warning("Gave up waiting for %s: %s", handle, exc)
            return ConfirmationResult(ConfirmationStatus.TIMED_OUT)
        except PollCancelled:
            logger.info("Stopped waiting for %s", handle)
            return ConfirmationResult(ConfirmationStatus.CANCELLED)
        return ConfirmationResult(ConfirmationStatus.CONFIRMED, receipt)
