"""Transaction submitter: create/delete on the ledger, lock/close on Ethereum."""

import logging

from oracle_e2e.config.schema import E2EConfig
from oracle_e2e.errors import AlreadyLocked, TransactionSubmissionError
from oracle_e2e.execution.eth_sender import send_transaction
from oracle_e2e.execution.idempotency import SubmissionRegistry
from oracle_e2e.execution.payloads import (
    CloseOrderPayload,
    LockOrderPayload,
    close_order_data,
)
from oracle_e2e.ingest.eth_client import EthClient, EthClientError
from oracle_e2e.ingest.ledger_client import LedgerClient, LedgerClientError
from oracle_e2e.models.common import strip_0x, utc_now_iso
from oracle_e2e.models.execution import SubmissionResult, SubmissionStatus, TxAction
from oracle_e2e.models.order import SellOrder

logger = logging.getLogger(__name__)

LEDGER = "canopy"
ETHEREUM = "ethereum"


class TransactionSubmitter:
    """Builds and submits every side-effecting transaction of a run.

    Lock and close submissions are claimed in a SubmissionRegistry first:
    a second lock for the same order raises AlreadyLocked, a second close
    returns a DUPLICATE result without touching the chain. Nothing is
    retried automatically.
    """

    def __init__(
        self,
        config: E2EConfig,
        ledger: LedgerClient,
        eth: EthClient,
        registry: SubmissionRegistry | None = None,
    ):
        self.config = config
        self.ledger = ledger
        self.eth = eth
        self.registry = registry or SubmissionRegistry()

    def _auth(self) -> tuple[str, str]:
        auth = self.config.auth
        if not auth.nickname or not auth.password:
            raise TransactionSubmissionError(
                LEDGER, "signer nickname/password not set (E2E_FROM_NICK, E2E_FROM_PASS)"
            )
        return auth.nickname, auth.password

    def _token_contract(self) -> str:
        contract = strip_0x(self.config.ethereum.token_contract)
        if not contract:
            raise TransactionSubmissionError(
                ETHEREUM, "token contract address not set (USDC_CONTRACT)"
            )
        return contract

    def _send(self, to: str, private_key: str, data: bytes) -> str:
        eth_cfg = self.config.ethereum
        return send_transaction(
            self.eth,
            to,
            private_key,
            value=0,
            data=data,
            gas_limit_default=eth_cfg.gas_limit_default,
            gas_limit_with_data=eth_cfg.gas_limit_with_data,
        )

    # --- Ledger side ---

    def create_order(
        self, sell_amount: int, receive_amount: int, seller_address: str
    ) -> SubmissionResult:
        """Submit a sell order paying out to `seller_address` on Ethereum."""
        nickname, password = self._auth()
        contract = self._token_contract()
        try:
            receipt = self.ledger.tx_create_order(
                nickname,
                password,
                sell_amount=sell_amount,
                receive_amount=receive_amount,
                committee=self.config.ledger.committee,
                receive_address=strip_0x(seller_address),
                data=contract,
                fee=self.config.ledger.tx_fee,
            )
        except LedgerClientError as e:
            raise TransactionSubmissionError(LEDGER, f"failed to create order: {e}") from e

        logger.info(
            "Sell order transaction sent: %d CNPY -> %d %s (seller: %s)",
            sell_amount, receive_amount, self.config.ethereum.token_symbol, seller_address,
        )
        return SubmissionResult(
            action=TxAction.CREATE,
            chain=LEDGER,
            status=SubmissionStatus.SUBMITTED,
            order_id=None,
            receipt=receipt,
            submitted_at=utc_now_iso(),
        )

    def delete_order(self, order: SellOrder) -> SubmissionResult:
        nickname, password = self._auth()
        try:
            receipt = self.ledger.tx_delete_order(
                nickname,
                password,
                order_id=order.id,
                committee=order.committee or self.config.ledger.committee,
                fee=self.config.ledger.tx_fee,
            )
        except LedgerClientError as e:
            raise TransactionSubmissionError(
                LEDGER, f"failed to delete order {order.id}: {e}"
            ) from e
        logger.info("Delete order transaction sent for order %s", order.id)
        return SubmissionResult(
            action=TxAction.DELETE,
            chain=LEDGER,
            status=SubmissionStatus.SUBMITTED,
            order_id=order.id,
            receipt=receipt,
            submitted_at=utc_now_iso(),
        )

    # --- Ethereum side ---

    def lock_order(
        self,
        order: SellOrder,
        buyer_address: str,
        buyer_private_key: str,
        native_receive_address: str,
    ) -> SubmissionResult:
        """Reserve `order` for the buyer via a self-addressed lock intent."""
        if order.is_locked or not self.registry.claim(TxAction.LOCK, order.id):
            raise AlreadyLocked(order.id)

        try:
            height = self.ledger.height()
            payload = LockOrderPayload(
                order_id=order.id,
                chain_id=order.committee or self.config.ledger.committee,
                buyer_send_address=buyer_address,
                buyer_receive_address=native_receive_address,
                buyer_chain_deadline=height + self.config.polling.lock_deadline_offset,
            )
            tx_hash = self._send(buyer_address, buyer_private_key, payload.encode())
        except (LedgerClientError, EthClientError, ValueError) as e:
            self.registry.release(TxAction.LOCK, order.id)
            raise TransactionSubmissionError(
                ETHEREUM, f"failed to send lock transaction for order {order.id}: {e}"
            ) from e
        except Exception:
            self.registry.release(TxAction.LOCK, order.id)
            raise

        logger.info(
            "Lock order transaction sent for order %s by buyer %s (deadline %d)",
            order.id, buyer_address, payload.buyer_chain_deadline,
        )
        return SubmissionResult(
            action=TxAction.LOCK,
            chain=ETHEREUM,
            status=SubmissionStatus.SUBMITTED,
            order_id=order.id,
            receipt=tx_hash,
            submitted_at=utc_now_iso(),
        )

    def close_order(
        self, order: SellOrder, buyer_private_key: str, transfer_amount: int
    ) -> SubmissionResult:
        """Pay the seller in tokens with the close intent appended."""
        contract = self._token_contract()
        if not self.registry.claim(TxAction.CLOSE, order.id):
            logger.info("Close already submitted for order %s, skipping", order.id)
            return SubmissionResult(
                action=TxAction.CLOSE,
                chain=ETHEREUM,
                status=SubmissionStatus.DUPLICATE,
                order_id=order.id,
                receipt=None,
                submitted_at=utc_now_iso(),
            )

        payload = CloseOrderPayload(
            order_id=order.id,
            chain_id=order.committee or self.config.ledger.committee,
        )
        try:
            data = close_order_data(order.seller_receive_address, transfer_amount, payload)
            tx_hash = self._send(contract, buyer_private_key, data)
        except (EthClientError, ValueError) as e:
            self.registry.release(TxAction.CLOSE, order.id)
            raise TransactionSubmissionError(
                ETHEREUM, f"failed to send token transfer for order {order.id}: {e}"
            ) from e
        except Exception:
            self.registry.release(TxAction.CLOSE, order.id)
            raise

        logger.info(
            "Close order sent for order %s with %d %s transfer",
            order.id, transfer_amount, self.config.ethereum.token_symbol,
        )
        return SubmissionResult(
            action=TxAction.CLOSE,
            chain=ETHEREUM,
            status=SubmissionStatus.SUBMITTED,
            order_id=order.id,
            receipt=tx_hash,
            submitted_at=utc_now_iso(),
        )
