"""Sign and broadcast legacy EIP-155 transactions on the foreign chain."""

import logging

from eth_account import Account
from eth_utils import to_checksum_address

from oracle_e2e.ingest.eth_client import EthClient, EthClientError
from oracle_e2e.models.common import strip_0x

logger = logging.getLogger(__name__)

GAS_LIMIT_DEFAULT = 21_000
GAS_LIMIT_WITH_DATA = 100_000


def address_for_key(private_key: str) -> str:
    """Checksummed address controlled by a hex private key."""
    try:
        return Account.from_key("0x" + strip_0x(private_key)).address
    except (ValueError, TypeError) as e:
        raise EthClientError(f"failed to parse private key: {e}") from e


def send_transaction(
    client: EthClient,
    to: str,
    private_key: str,
    value: int = 0,
    data: bytes = b"",
    gas_limit_default: int = GAS_LIMIT_DEFAULT,
    gas_limit_with_data: int = GAS_LIMIT_WITH_DATA,
) -> str:
    """Send `value` wei and `data` to `to`, signed by `private_key`.

    Nonce, gas price and chain id are fetched from the node for every
    transaction. Returns the transaction hash.
    """
    key = "0x" + strip_0x(private_key)
    sender = address_for_key(key)

    nonce = client.pending_nonce(sender)
    gas_price = client.gas_price()
    chain_id = client.network_id()

    tx = {
        "nonce": nonce,
        "gasPrice": gas_price,
        "gas": gas_limit_with_data if data else gas_limit_default,
        "to": to_checksum_address("0x" + strip_0x(to)),
        "value": value,
        "data": data,
        "chainId": chain_id,
    }
    try:
        signed = Account.sign_transaction(tx, key)
    except (ValueError, TypeError) as e:
        raise EthClientError(f"failed to sign transaction: {e}") from e

    tx_hash = client.send_raw_transaction(signed.raw_transaction)
    logger.debug(
        "Sent tx %s from %s to %s (nonce=%d, %d data bytes)",
        tx_hash, sender, tx["to"], nonce, len(data),
    )
    return tx_hash
