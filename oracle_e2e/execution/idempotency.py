"""Per-run registry of submitted lock/close transactions."""

import threading

from oracle_e2e.models.execution import TxAction


class SubmissionRegistry:
    """Thread-safe record of (action, order id) pairs submitted in this run.

    `claim` is atomic so two concurrent lifecycle runs cannot both submit
    for the same order.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._claimed: set[tuple[TxAction, str]] = set()

    def claim(self, action: TxAction, order_id: str) -> bool:
        """Reserve a submission. Returns False if already claimed."""
        key = (action, order_id.lower())
        with self._lock:
            if key in self._claimed:
                return False
            self._claimed.add(key)
            return True

    def release(self, action: TxAction, order_id: str) -> None:
        """Drop a claim whose submission failed."""
        with self._lock:
            self._claimed.discard((action, order_id.lower()))
