"""Ethereum JSON-RPC client for the foreign chain."""

import itertools
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_ETH_RPC_URL = "http://localhost:8545"


class EthClientError(Exception):
    """Raised on transport failures and JSON-RPC error responses."""

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.code = code


class EthClient:
    def __init__(self, rpc_url: str = DEFAULT_ETH_RPC_URL, timeout: float = 30.0):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._ids = itertools.count(1)

    def _call(self, method: str, params: list | None = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        try:
            resp = httpx.post(self.rpc_url, json=payload, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            logger.error("Eth RPC %s failed: %s", method, e)
            raise EthClientError(f"{method} failed: {e}") from e
        except ValueError as e:
            raise EthClientError(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise EthClientError(f"{method} returned unexpected response: {data!r}")

        if data.get("error"):
            err = data["error"]
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            code = err.get("code") if isinstance(err, dict) else None
            logger.error("Eth RPC %s error %s: %s", method, code, message)
            raise EthClientError(f"{method}: {message}", code)
        return data.get("result")

    def _quantity(self, method: str, params: list | None = None) -> int:
        """Call a method whose result is a hex-encoded integer."""
        result = self._call(method, params)
        if not isinstance(result, str):
            raise EthClientError(f"{method}: expected hex quantity, got {result!r}")
        try:
            return int(result, 16)
        except ValueError as e:
            raise EthClientError(f"{method}: invalid hex quantity {result!r}") from e

    def pending_nonce(self, address: str) -> int:
        return self._quantity("eth_getTransactionCount", [address, "pending"])

    def gas_price(self) -> int:
        return self._quantity("eth_gasPrice")

    def network_id(self) -> int:
        """Network id as reported by net_version (a decimal string)."""
        result = self._call("net_version")
        if isinstance(result, int) and not isinstance(result, bool):
            return result
        if not isinstance(result, str):
            raise EthClientError(f"net_version: expected network id, got {result!r}")
        try:
            return int(result, 0)
        except ValueError as e:
            raise EthClientError(f"net_version: invalid network id {result!r}") from e

    def send_raw_transaction(self, raw_tx: bytes) -> str:
        """Broadcast a signed transaction; returns the transaction hash."""
        result = self._call("eth_sendRawTransaction", ["0x" + raw_tx.hex()])
        if not isinstance(result, str) or not result:
            raise EthClientError(
                f"eth_sendRawTransaction: expected transaction hash, got {result!r}"
            )
        return result

    def call(self, to: str, data: bytes) -> bytes:
        """eth_call against the latest block."""
        result = self._call("eth_call", [{"to": to, "data": "0x" + data.hex()}, "latest"])
        if not isinstance(result, str):
            raise EthClientError(f"eth_call: expected hex data, got {result!r}")
        if result in ("", "0x"):
            return b""
        try:
            return bytes.fromhex(result[2:] if result.startswith("0x") else result)
        except ValueError as e:
            raise EthClientError(f"eth_call: invalid hex data {result!r}") from e
