"""Foreign-chain transaction payloads read by the ledger's oracle watcher.

Wire contract, format version 1:

- Lock intent: a transaction from the buyer to itself whose data is the
  compact JSON object ``{"orderId", "chainId", "buyerReceiveAddress",
  "buyerSendAddress", "buyerChainDeadline"}``.
- Close intent: an ERC20 ``transfer(address,uint256)`` call to the token
  contract with the compact JSON object ``{"orderId", "chainId",
  "closeOrder": true}`` appended after the ABI-encoded arguments.

Byte fields are lowercase hex without a ``0x`` prefix.
"""

import json
from dataclasses import dataclass

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_utils import to_checksum_address

from oracle_e2e.models.common import strip_0x

PAYLOAD_FORMAT_VERSION = 1

ERC20_TRANSFER_SELECTOR = bytes.fromhex("a9059cbb")
ERC20_BALANCE_OF_SELECTOR = bytes.fromhex("70a08231")


def _hex(value: str) -> str:
    return strip_0x(value).lower()


def _compact_json(data: dict) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode()


@dataclass(frozen=True)
class LockOrderPayload:
    order_id: str
    chain_id: int
    buyer_send_address: str
    buyer_receive_address: str
    buyer_chain_deadline: int

    def encode(self) -> bytes:
        return _compact_json({
            "orderId": _hex(self.order_id),
            "chainId": self.chain_id,
            "buyerReceiveAddress": _hex(self.buyer_receive_address),
            "buyerSendAddress": _hex(self.buyer_send_address),
            "buyerChainDeadline": self.buyer_chain_deadline,
        })


@dataclass(frozen=True)
class CloseOrderPayload:
    order_id: str
    chain_id: int

    def encode(self) -> bytes:
        return _compact_json({
            "orderId": _hex(self.order_id),
            "chainId": self.chain_id,
            "closeOrder": True,
        })


def erc20_transfer_data(recipient: str, amount: int) -> bytes:
    """Call data for ``transfer(recipient, amount)``."""
    recipient = to_checksum_address("0x" + _hex(recipient))
    return ERC20_TRANSFER_SELECTOR + abi_encode(["address", "uint256"], [recipient, amount])


def erc20_balance_of_data(account: str) -> bytes:
    """Call data for ``balanceOf(account)``."""
    account = to_checksum_address("0x" + _hex(account))
    return ERC20_BALANCE_OF_SELECTOR + abi_encode(["address"], [account])


def close_order_data(recipient: str, amount: int, payload: CloseOrderPayload) -> bytes:
    """ERC20 transfer call data with the close intent appended."""
    return erc20_transfer_data(recipient, amount) + payload.encode()


def decode_uint256(result: bytes) -> int:
    """Decode a uint256 return value. Empty results (no contract) read as 0."""
    if len(result) < 32:
        return int.from_bytes(result, "big")
    (value,) = abi_decode(["uint256"], result)
    return value
