"""Balance reader: ERC20 balances on the foreign chain, native on the ledger."""

import logging
from dataclasses import dataclass

from oracle_e2e.execution.payloads import decode_uint256, erc20_balance_of_data
from oracle_e2e.ingest.eth_client import EthClient, EthClientError
from oracle_e2e.ingest.ledger_client import LedgerClient, LedgerClientError
from oracle_e2e.models.common import strip_0x

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountBalance:
    chain: str  # "ethereum" or "canopy"
    address: str
    amount: int | None
    error: str | None = None


class BalanceReader:
    def __init__(
        self,
        eth_client: EthClient,
        ledger_client: LedgerClient,
        token_contract: str,
    ):
        self.eth = eth_client
        self.ledger = ledger_client
        self.token_contract = "0x" + strip_0x(token_contract)

    def token_balance(self, address: str) -> int:
        """ERC20 balanceOf(address) at the latest block."""
        result = self.eth.call(self.token_contract, erc20_balance_of_data(address))
        return decode_uint256(result)

    def native_balance(self, address: str) -> int:
        account = self.ledger.account(strip_0x(address))
        return int(account.get("amount", 0))

    def snapshot(
        self, eth_addresses: list[str], canopy_addresses: list[str]
    ) -> list[AccountBalance]:
        """Read every listed balance; failures are reported per account."""
        balances: list[AccountBalance] = []
        for address in eth_addresses:
            try:
                balances.append(
                    AccountBalance("ethereum", address, self.token_balance(address))
                )
            except EthClientError as e:
                logger.warning("Token balance read failed for %s: %s", address, e)
                balances.append(AccountBalance("ethereum", address, None, str(e)))
        for address in canopy_addresses:
            try:
                balances.append(
                    AccountBalance("canopy", address, self.native_balance(address))
                )
            except LedgerClientError as e:
                logger.warning("Native balance read failed for %s: %s", address, e)
                balances.append(AccountBalance("canopy", address, None, str(e)))
        return balances
