"""Cooperative cancellation for resolution runs."""

import threading
from typing import Optional


class CancellationToken:
    """
    Caller-owned cancellation signal.

    The engine checks the token between registry calls and at every stage
    boundary. Cancelling is not an error: a cancelled run simply returns
    early with a cancelled result.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    """Check a possibly-absent token."""
    return token is not None and token.cancelled
