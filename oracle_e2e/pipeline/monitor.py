"""Live monitor: prints balances and/or order books on a fixed interval.

Usage:
    python -m oracle_e2e monitor             # balances and orders
    python -m oracle_e2e monitor balances    # balances only
"""

import logging
import signal
from datetime import UTC, datetime

from oracle_e2e.config.schema import E2EConfig
from oracle_e2e.errors import E2EError
from oracle_e2e.ingest.eth_client import EthClientError
from oracle_e2e.ingest.ledger_client import LedgerClientError
from oracle_e2e.lifecycle.orchestrator import LifecycleOrchestrator
from oracle_e2e.lifecycle.polling import Ticker
from oracle_e2e.reporting.formatters import format_balances, format_order_books

logger = logging.getLogger(__name__)

VIEWS = ("all", "balances", "orders")


class Monitor:
    """Polls the ledger and the token contract until stopped by a signal."""

    def __init__(
        self,
        config: E2EConfig,
        orchestrator: LifecycleOrchestrator,
        view: str = "all",
        interval: float | None = None,
        ticker: Ticker = Ticker(),
    ):
        if view not in VIEWS:
            raise ValueError(f"unknown monitor view {view!r}, expected one of {VIEWS}")
        self.config = config
        self.orchestrator = orchestrator
        self.view = view
        self.interval = interval if interval is not None else config.ops.monitor_interval
        self.ticker = ticker
        self._running = False
        self._ticks = 0

    def start(self, max_ticks: int | None = None) -> int:
        """Run until SIGINT/SIGTERM or `max_ticks` refreshes. Returns ticks run."""
        previous = self._setup_signals()
        self._running = True
        print(f"Monitoring {self.view} every {self.interval:g}s (Ctrl+C to stop)")
        try:
            while self._running:
                self.tick()
                if max_ticks is not None and self._ticks >= max_ticks:
                    break
                self._wait()
        except KeyboardInterrupt:
            logger.info("Monitor interrupted by keyboard")
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)
        logger.info("Monitor stopped after %d refreshes", self._ticks)
        return self._ticks

    def tick(self) -> None:
        """One refresh. Read failures are printed, never fatal."""
        self._ticks += 1
        stamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
        print(f"\n[{stamp}] refresh #{self._ticks}")
        if self.view in ("all", "balances"):
            accounts = self.config.accounts
            balances = self.orchestrator.balances.snapshot(
                [a.address for a in accounts.ethereum], list(accounts.canopy)
            )
            print(format_balances(balances, token_symbol=self.config.ethereum.token_symbol))
        if self.view in ("all", "orders"):
            try:
                print(format_order_books(self.orchestrator.orders()))
            except (LedgerClientError, EthClientError, E2EError) as e:
                logger.warning("Order book read failed: %s", e)
                print(f"Error getting orders: {e}")

    def _wait(self) -> None:
        # 1-second slices so a signal stops the loop promptly.
        until = self.ticker.clock() + self.interval
        while self._running and self.ticker.clock() < until:
            self.ticker.sleep(min(1.0, until - self.ticker.clock()))

    def _setup_signals(self) -> dict:
        def _stop(signum: int, frame: object) -> None:
            sig_name = signal.Signals(signum).name
            logger.info("Received %s, stopping monitor", sig_name)
            self._running = False

        previous = {}
        for signum in (signal.SIGTERM, signal.SIGINT):
            previous[signum] = signal.signal(signum, _stop)
        return previous
