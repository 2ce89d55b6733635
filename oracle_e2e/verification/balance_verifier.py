"""Balance verifier: checks post-settlement deltas on both chains."""

import logging

from oracle_e2e.errors import BalanceMismatch
from oracle_e2e.ingest.balance_reader import BalanceReader
from oracle_e2e.ingest.eth_client import EthClientError
from oracle_e2e.ingest.ledger_client import LedgerClientError
from oracle_e2e.lifecycle.polling import Ticker
from oracle_e2e.models.common import format_token_amount
from oracle_e2e.models.test_case import BalanceSnapshot, CaseStatus, TestCase

logger = logging.getLogger(__name__)


class BalanceVerifier:
    def __init__(
        self,
        reader: BalanceReader,
        settle_delay: float = 5.0,
        ticker: Ticker = Ticker(),
        token_symbol: str = "USDC",
    ):
        self.reader = reader
        self.settle_delay = settle_delay
        self.ticker = ticker
        self.token_symbol = token_symbol

    def _fmt(self, amount: int) -> str:
        return format_token_amount(amount, self.token_symbol)

    def record_initial(self, case: TestCase) -> BalanceSnapshot:
        """Record starting balances. A failed read is logged and taken as 0."""
        try:
            buyer = self.reader.token_balance(case.buyer_address)
        except EthClientError as e:
            logger.error("Failed to get initial buyer token balance: %s", e)
            buyer = 0
        try:
            seller = self.reader.token_balance(case.seller_address)
        except EthClientError as e:
            logger.error("Failed to get initial seller token balance: %s", e)
            seller = 0
        try:
            native = self.reader.native_balance(case.native_receive_address)
        except LedgerClientError as e:
            logger.error("Failed to get initial native balance: %s", e)
            native = 0

        case.initial_balances = BalanceSnapshot(
            buyer_token=buyer, seller_token=seller, receiver_native=native
        )
        logger.info(
            "Test %s - Initial balances: Buyer %s, Seller %s, CNPY=%d",
            case.name, self._fmt(buyer), self._fmt(seller), native,
        )
        return case.initial_balances

    def verify(self, case: TestCase) -> None:
        """Compare balance deltas with the case economics.

        Waits the settle delay once, then reads every balance. Raises
        BalanceMismatch on the first field that disagrees.
        """
        if case.initial_balances is None:
            raise ValueError(f"test case {case.name} has no initial balances")
        initial = case.initial_balances

        self.ticker.sleep(self.settle_delay)

        buyer_delta = self.reader.token_balance(case.buyer_address) - initial.buyer_token
        seller_delta = self.reader.token_balance(case.seller_address) - initial.seller_token
        native_delta = (
            self.reader.native_balance(case.native_receive_address)
            - initial.receiver_native
        )
        logger.info(
            "Test %s - Balance changes: Buyer %s, Seller %s, CNPY=%d",
            case.name, self._fmt(buyer_delta), self._fmt(seller_delta), native_delta,
        )

        expected = case.expected_token_transfer
        if buyer_delta != -expected:
            raise BalanceMismatch("buyer token", -expected, buyer_delta, self.token_symbol)
        if seller_delta != expected:
            raise BalanceMismatch("seller token", expected, seller_delta, self.token_symbol)
        if native_delta != case.expected_native_transfer:
            raise BalanceMismatch(
                "receiver native", case.expected_native_transfer, native_delta, "CNPY"
            )

        case.advance(CaseStatus.VERIFIED)
