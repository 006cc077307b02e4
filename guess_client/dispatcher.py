from __future__ import annotations

import logging
from typing import Callable, Optional

from guess_client.interfaces import View
from guess_client.models import GuessSlot, Transition, TransitionKind

logger = logging.getLogger(__name__)


def _same_address(address: str) -> str:
    return address


class TransitionDispatcher:
    """
    Routes transitions to the view.

    Range transitions also settle the outstanding guess: whatever the
    contract did, the user may guess again. Winner announcements arrive on
    the push path and never touch the guess slot, so they can land before
    or after the range change that accompanies them.
    """

    def __init__(
        self,
        view: View,
        guesses: GuessSlot,
        name_for: Callable[[str], str] = _same_address,
    ):
        self.view = view
        self.guesses = guesses
        self.name_for = name_for
        self._handlers = {
            TransitionKind.RANGE_RESET: self._on_range,
            TransitionKind.RANGE_NARROWED: self._on_range,
            TransitionKind.BALANCE_CHANGED: self._on_balance,
            TransitionKind.WINNER_ANNOUNCED: self._on_winner,
            TransitionKind.REGISTERED: self._on_registered,
        }

    def dispatch(self, transition: Optional[Transition]) -> None:
        if transition is None:
            return
        try:
            self._handlers[transition.kind](transition)
        except Exception:
            logger.exception("View failed to handle %s", transition.kind.value)

    def _on_range(self, transition: Transition) -> None:
        by_self = self.guesses.attempt is not None
        self.guesses.clear()
        lower = transition.snapshot.lower_bound
        upper = transition.snapshot.upper_bound
        if transition.kind is TransitionKind.RANGE_RESET:
            self.view.on_bounds_reset(lower, upper)
        else:
            self.view.on_bounds_narrowed(lower, upper, by_self)

    def _on_balance(self, transition: Transition) -> None:
        self.view.on_balance_changed(transition.balance)

    def _on_winner(self, transition: Transition) -> None:
        winner = transition.winner
        self.view.on_winner_announced(
            winner.guesser_address, winner.answer, self.name_for(winner.guesser_address)
        )

    def _on_registered(self, transition: Transition) -> None:
        self.view.on_registered(transition.tx_handle)

    # ── direct notifications ─────────────────────────────────────────────────

    def validation_error(self, reason: str) -> None:
        self._notify("on_validation_error", reason)

    def write_error(self, action: str, reason: str) -> None:
        self._notify("on_write_error", action, reason)

    def timed_out(self, action: str) -> None:
        self._notify("on_timed_out", action)

    def health_changed(self, healthy: bool) -> None:
        self._notify("on_health_changed", healthy)

    def _notify(self, hook: str, *args) -> None:
        try:
            getattr(self.view, hook)(*args)
        except Exception:
            logger.exception("View failed in %s", hook)
