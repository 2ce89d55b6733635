"""Ledger RPC client: order book, height and account queries, admin txs."""

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "http://node-1:50002"
DEFAULT_ADMIN_RPC_URL = "http://node-1:50003"

HEIGHT_ROUTE = "/v1/query/height"
ORDERS_ROUTE = "/v1/query/orders"
ACCOUNT_ROUTE = "/v1/query/account"
TX_CREATE_ORDER_ROUTE = "/v1/admin/tx-create-order"
TX_DELETE_ORDER_ROUTE = "/v1/admin/tx-delete-order"

RETRY_STATUS_CODES = (429, 503)


class LedgerClientError(Exception):
    """Raised when the ledger RPC returns an error or is unreachable."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class LedgerClient:
    """Thin wrapper around the ledger node's query and admin RPC.

    Queries retry on 429/503 and transport errors with exponential backoff.
    Admin transaction routes are attempted exactly once.
    """

    def __init__(
        self,
        rpc_url: str = DEFAULT_RPC_URL,
        admin_rpc_url: str = DEFAULT_ADMIN_RPC_URL,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.admin_rpc_url = admin_rpc_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self._sleep = sleep

    def _post(self, base_url: str, route: str, body: dict, retry: bool = True) -> Any:
        url = f"{base_url}{route}"
        attempts = self.max_retries + 1 if retry else 1
        for attempt in range(attempts):
            last_attempt = attempt == attempts - 1
            try:
                resp = httpx.post(url, json=body, timeout=self.timeout)
            except httpx.RequestError as e:
                if not last_attempt:
                    delay = self.retry_base_delay * (2**attempt)
                    logger.warning(
                        "Ledger request error on %s, retrying in %.1fs: %s",
                        route, delay, e,
                    )
                    self._sleep(delay)
                    continue
                logger.error("Ledger request failed: %s -> %s", route, e)
                raise LedgerClientError(f"Request failed: {e}") from e

            if resp.status_code in RETRY_STATUS_CODES and not last_attempt:
                delay = self.retry_base_delay * (2**attempt)
                logger.warning(
                    "Ledger %s returned %d, retrying in %.1fs (attempt %d/%d)",
                    route, resp.status_code, delay, attempt + 1, self.max_retries,
                )
                self._sleep(delay)
                continue
            if resp.status_code >= 400:
                logger.error("Ledger RPC %d: %s -> %s", resp.status_code, route, resp.text)
                raise LedgerClientError(
                    f"HTTP {resp.status_code}: {resp.text}", resp.status_code
                )
            try:
                return resp.json()
            except ValueError as e:
                raise LedgerClientError(f"Invalid JSON from {route}: {e}") from e

        raise LedgerClientError(f"No response from {route}")

    # --- Queries ---

    def height(self) -> int:
        """Current ledger height."""
        result = self._post(self.rpc_url, HEIGHT_ROUTE, {})
        if isinstance(result, dict):
            result = result.get("height")
        if not isinstance(result, int):
            raise LedgerClientError(f"Unexpected height response: {result!r}")
        return result

    def orders(self, committee: int, height: int = 0) -> list[dict]:
        """Raw order books for a committee at a height (0 = latest).

        The node answers with a bare list of books; an ``{"orderBooks": [...]}``
        envelope is accepted too. A null book list reads as no books.
        """
        result = self._post(
            self.rpc_url, ORDERS_ROUTE, {"height": height, "id": committee}
        )
        if isinstance(result, dict) and "orderBooks" in result:
            result = result["orderBooks"]
        if result is None:
            return []
        if not isinstance(result, list) or not all(isinstance(b, dict) for b in result):
            raise LedgerClientError(f"Unexpected orders response: {result!r}")
        return result

    def account(self, address: str, height: int = 0) -> dict:
        """Raw account record. Unknown accounts come back with zero amount."""
        result = self._post(
            self.rpc_url, ACCOUNT_ROUTE, {"height": height, "address": address}
        )
        if not isinstance(result, dict):
            raise LedgerClientError(f"Unexpected account response: {result!r}")
        return result

    # --- Admin transactions ---

    def tx_create_order(
        self,
        nickname: str,
        password: str,
        sell_amount: int,
        receive_amount: int,
        committee: int,
        receive_address: str,
        data: str,
        fee: int,
        submit: bool = True,
    ) -> Any:
        """Sign with the keystore key `nickname` and submit a sell order."""
        return self._post(
            self.admin_rpc_url,
            TX_CREATE_ORDER_ROUTE,
            {
                "address": "",
                "nickname": nickname,
                "amount": sell_amount,
                "receiveAmount": receive_amount,
                "committees": str(committee),
                "receiveAddress": receive_address,
                "data": data,
                "password": password,
                "submit": submit,
                "fee": fee,
            },
            retry=False,
        )

    def tx_delete_order(
        self,
        nickname: str,
        password: str,
        order_id: str,
        committee: int,
        fee: int,
        submit: bool = True,
    ) -> Any:
        """Sign with the keystore key `nickname` and delete a sell order."""
        return self._post(
            self.admin_rpc_url,
            TX_DELETE_ORDER_ROUTE,
            {
                "address": "",
                "nickname": nickname,
                "orderId": order_id,
                "committees": str(committee),
                "password": password,
                "submit": submit,
                "fee": fee,
            },
            retry=False,
        )
