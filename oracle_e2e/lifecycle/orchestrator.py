"""Lifecycle orchestrator: drives orders through create, lock, close, settle.

Every transition is confirmed by re-reading the ledger's order books; a
successful submission alone never advances a test case.
"""

import logging
import threading

from oracle_e2e.config.schema import E2EConfig
from oracle_e2e.errors import (
    AlreadyLocked,
    BulkOperationError,
    E2EError,
    NotLocked,
    TransactionSubmissionError,
)
from oracle_e2e.execution.submitter import TransactionSubmitter
from oracle_e2e.ingest.balance_reader import BalanceReader
from oracle_e2e.ingest.eth_client import EthClient
from oracle_e2e.ingest.ledger_client import LedgerClient
from oracle_e2e.ingest.order_book_reader import OrderBookReader
from oracle_e2e.lifecycle.polling import (
    PHASE_AWAIT_COMPLETION,
    PHASE_AWAIT_CREATE,
    PHASE_AWAIT_LOCK,
    Ticker,
    poll_until,
)
from oracle_e2e.models.execution import SubmissionResult, SubmissionStatus
from oracle_e2e.models.order import OrderBooks, SellOrder
from oracle_e2e.models.test_case import CaseStatus, TestCase
from oracle_e2e.reporting.aggregator import TestResults
from oracle_e2e.selection import selector
from oracle_e2e.verification.balance_verifier import BalanceVerifier

logger = logging.getLogger(__name__)


class LifecycleOrchestrator:
    def __init__(
        self,
        config: E2EConfig,
        reader: OrderBookReader,
        submitter: TransactionSubmitter,
        verifier: BalanceVerifier,
        ticker: Ticker = Ticker(),
    ):
        self.config = config
        self.reader = reader
        self.submitter = submitter
        self.verifier = verifier
        self.ticker = ticker
        self.polling = config.polling
        self._bound_lock = threading.Lock()
        self._bound_ids: set[str] = set()

    @classmethod
    def from_config(
        cls, config: E2EConfig, ticker: Ticker = Ticker()
    ) -> "LifecycleOrchestrator":
        ledger = LedgerClient(
            rpc_url=config.ledger.rpc_url,
            admin_rpc_url=config.ledger.admin_rpc_url,
            timeout=config.ledger.timeout,
            max_retries=config.ledger.max_retries,
            retry_base_delay=config.ledger.retry_base_delay,
            sleep=ticker.sleep,
        )
        eth = EthClient(rpc_url=config.ethereum.rpc_url, timeout=config.ethereum.timeout)
        balances = BalanceReader(eth, ledger, config.ethereum.token_contract)
        return cls(
            config,
            reader=OrderBookReader(ledger, config.ledger.committee),
            submitter=TransactionSubmitter(config, ledger, eth),
            verifier=BalanceVerifier(
                balances,
                settle_delay=config.polling.balance_settle_delay,
                ticker=ticker,
                token_symbol=config.ethereum.token_symbol,
            ),
            ticker=ticker,
        )

    @property
    def balances(self) -> BalanceReader:
        return self.verifier.reader

    def orders(self) -> OrderBooks:
        return self.reader.fetch()

    # --- Single-shot operations ---

    def create_order(
        self, sell_amount: int, receive_amount: int, seller_address: str
    ) -> SubmissionResult:
        return self.submitter.create_order(sell_amount, receive_amount, seller_address)

    def lock_order(
        self,
        order_id: str,
        buyer_address: str,
        buyer_private_key: str,
        native_receive_address: str,
    ) -> SubmissionResult:
        """Lock a specific order. Raises NotFound or AlreadyLocked."""
        order = selector.find_by_id(self.reader.fetch(), order_id)
        if order.is_locked:
            raise AlreadyLocked(order.id)
        return self.submitter.lock_order(
            order, buyer_address, buyer_private_key, native_receive_address
        )

    def lock_first_order(
        self, buyer_address: str, buyer_private_key: str, native_receive_address: str
    ) -> SubmissionResult:
        order = selector.first_unlocked(self.reader.fetch())
        return self.submitter.lock_order(
            order, buyer_address, buyer_private_key, native_receive_address
        )

    def lock_all_unlocked_orders(
        self, buyer_address: str, buyer_private_key: str, native_receive_address: str
    ) -> int:
        """Lock every unlocked order across all books.

        Raises NotFound when there is nothing to lock, BulkOperationError
        when some locks failed (the others stay submitted). Returns the
        number of locks submitted.
        """
        orders = selector.all_unlocked(self.reader.fetch())
        logger.info("Found %d unlocked orders to lock", len(orders))

        failures: dict[str, str] = {}
        for i, order in enumerate(orders):
            if i:
                self.ticker.sleep(self.polling.bulk_lock_delay)
            logger.info("Locking order %d/%d: %s", i + 1, len(orders), order.id)
            try:
                self.submitter.lock_order(
                    order, buyer_address, buyer_private_key, native_receive_address
                )
            except E2EError as e:
                logger.error("Failed to lock order %s: %s", order.id, e)
                failures[order.id] = str(e)
            except Exception as e:
                logger.exception("Unexpected error locking order %s", order.id)
                failures[order.id] = str(e)

        locked = len(orders) - len(failures)
        logger.info("Locked %d out of %d unlocked orders", locked, len(orders))
        if failures:
            raise BulkOperationError("lock", failures, len(orders))
        return locked

    def close_order(
        self, order_id: str, buyer_private_key: str, transfer_amount: int
    ) -> SubmissionResult:
        """Close a specific locked order. Raises NotFound or NotLocked."""
        order = selector.find_by_id(self.reader.fetch(), order_id)
        if not order.is_locked:
            raise NotLocked(order.id)
        return self.submitter.close_order(order, buyer_private_key, transfer_amount)

    def close_first_order(
        self, buyer_private_key: str, transfer_amount: int
    ) -> SubmissionResult:
        order = selector.first_locked(self.reader.fetch())
        return self.submitter.close_order(order, buyer_private_key, transfer_amount)

    def close_all_locked_orders(self, buyer_private_key: str, transfer_amount: int) -> int:
        """Close every locked order across all books.

        Same error contract as lock_all_unlocked_orders. Returns the number
        of close transactions submitted.
        """
        orders = selector.all_locked(self.reader.fetch())
        logger.info("Found %d locked orders to close", len(orders))

        failures: dict[str, str] = {}
        submitted = 0
        for i, order in enumerate(orders):
            logger.info("Closing order %d/%d: %s", i + 1, len(orders), order.id)
            try:
                result = self.submitter.close_order(order, buyer_private_key, transfer_amount)
            except E2EError as e:
                logger.error("Failed to close order %s: %s", order.id, e)
                failures[order.id] = str(e)
                continue
            except Exception as e:
                logger.exception("Unexpected error closing order %s", order.id)
                failures[order.id] = str(e)
                continue
            if result.status == SubmissionStatus.SUBMITTED:
                submitted += 1

        logger.info("Closed %d out of %d locked orders", submitted, len(orders))
        if failures:
            raise BulkOperationError("close", failures, len(orders))
        return submitted

    def delete_all_orders(self) -> int:
        """Delete every order in every book, then wait for the deletes to land.

        Per-order failures are logged and skipped. Returns the number of
        delete transactions submitted.
        """
        logger.info("Deleting all existing orders before starting tests...")
        deleted = 0
        for order in self.reader.fetch().iter_orders():
            try:
                self.submitter.delete_order(order)
            except TransactionSubmissionError as e:
                logger.error("Failed to delete order %s: %s", order.id, e)
                continue
            deleted += 1

        if deleted:
            logger.info("Successfully deleted %d existing orders", deleted)
            self.ticker.sleep(self.polling.delete_settle_delay)
        return deleted

    # --- Test case lifecycle ---

    def run_case(self, case: TestCase, results: TestResults) -> None:
        """Run one case end to end and report it to `results` exactly once.

        Any failure is recorded on the case; nothing propagates to siblings.
        """
        step = "record initial balances"
        try:
            self.verifier.record_initial(case)
            step = "create order"
            self.submitter.create_order(
                case.order_amount, case.expected_token_transfer, case.seller_address
            )
            step = "lock order"
            self.await_created(case)
            self.lock_case_order(case)
            step = "close order"
            self.await_lock_and_close(case)
            step = "wait for order completion"
            self.await_completion(case)
            step = "verify balances"
            self.verifier.verify(case)
        except E2EError as e:
            results.mark_failed(case, e, step)
            return
        except Exception as e:
            logger.exception("Test %s - unexpected error during %s", case.name, step)
            results.mark_failed(case, e, step)
            return
        results.mark_passed(case)

    def _claim_unbound(self, order: SellOrder) -> bool:
        with self._bound_lock:
            if order.id in self._bound_ids:
                return False
            self._bound_ids.add(order.id)
            return True

    def await_created(self, case: TestCase) -> SellOrder:
        """Poll until the case's order shows up unlocked and bind its id.

        Orders already bound to another case of this run are skipped.
        """

        def check() -> SellOrder | None:
            for order in self.reader.fetch().iter_orders():
                if (
                    not order.is_locked
                    and order.amount_for_sale == case.order_amount
                    and order.requested_amount == case.expected_token_transfer
                    and self._claim_unbound(order)
                ):
                    return order
            return None

        order = poll_until(
            check,
            self.polling.await_create,
            PHASE_AWAIT_CREATE,
            self.ticker,
            detail=f"order for test {case.name} never appeared",
        )
        case.bind_order_id(order.id)
        case.advance(CaseStatus.CREATED)
        logger.info("Test %s - order %s created", case.name, order.id)
        return order

    def lock_case_order(self, case: TestCase) -> SubmissionResult:
        if case.order_id is None:
            raise ValueError(f"test case {case.name} has no order id")
        return self.lock_order(
            case.order_id,
            case.buyer_address,
            case.buyer_private_key,
            case.native_receive_address,
        )

    def await_lock_and_close(self, case: TestCase) -> SubmissionResult:
        """Poll until the lock is visible on the ledger, then close once."""
        order_id = case.order_id

        def check() -> SellOrder | None:
            return selector.find_matching(
                self.reader.fetch(),
                case.order_amount,
                case.expected_token_transfer,
                locked=True,
                order_id=order_id,
            )

        order = poll_until(
            check,
            self.polling.await_lock,
            PHASE_AWAIT_LOCK,
            self.ticker,
            detail=f"order {order_id} was never locked",
        )
        case.advance(CaseStatus.LOCKED)
        logger.info("Test %s - %s locked order found", case.name, order.id)

        result = self.submitter.close_order(
            order, case.buyer_private_key, case.expected_token_transfer
        )
        case.advance(CaseStatus.CLOSED)
        return result

    def await_completion(self, case: TestCase) -> None:
        """Poll until the order is gone from every book (settled)."""
        order_id = case.order_id
        logger.info("Test %s - %s waiting for completion", case.name, order_id)

        def check() -> bool | None:
            return None if selector.contains(self.reader.fetch(), order_id) else True

        poll_until(
            check,
            self.polling.await_completion,
            PHASE_AWAIT_COMPLETION,
            self.ticker,
            detail=f"order {order_id} was not completed and removed",
        )
        logger.info(
            "Test %s - %s order successfully completed and removed from order book",
            case.name, order_id,
        )
