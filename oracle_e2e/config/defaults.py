"""Default local-devnet accounts and suite cases."""

import json
import logging
from pathlib import Path

from oracle_e2e.config.schema import CaseConfig, EthAccount

logger = logging.getLogger(__name__)

# Well-known Anvil development accounts
DEFAULT_ETH_ACCOUNTS: list[EthAccount] = [
    EthAccount(
        address="0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266",
        private_key="ac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80",
    ),
    EthAccount(
        address="0x70997970C51812dc3A010C7d01b50e0d17dc79C8",
        private_key="59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d",
    ),
    EthAccount(
        address="0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC",
        private_key="5de4111afa1a4b94908f83103eb1f1706367c2e68ca870fc3fb9a804cdab365a",
    ),
]

FALLBACK_CANOPY_ACCOUNTS: list[str] = [
    "02cd4e5eb53ea665702042a6ed6d31d616054dc5",
    "851e90eaef1fa27debaee2c2591503bdeec1d123",
]

DEFAULT_CASES: list[CaseConfig] = [
    CaseConfig(
        name="BasicOrderFlow_1000000",
        order_amount=1_000_000,  # 1 USDC in 6 decimals
        expected_token_transfer=1_000_000,
        expected_native_transfer=1_000_000,
        buyer=0,
        seller=1,
        receiver=1,
    ),
]


def load_canopy_accounts(keys_file: str | Path) -> list[str]:
    """Read ledger addresses from a BLS key file.

    The file is looked up as given, then one and two directories up.
    Raises FileNotFoundError or ValueError when no usable file exists.
    """
    keys_file = Path(keys_file)
    candidates = [keys_file]
    if not keys_file.is_absolute():
        candidates += [Path("..") / keys_file, Path("../..") / keys_file]

    for path in candidates:
        if path.exists():
            break
    else:
        raise FileNotFoundError(f"BLS keys file not found: {keys_file}")

    with open(path) as f:
        data = json.load(f)

    addresses = [k["address"] for k in data.get("keys", []) if k.get("address")]
    if not addresses:
        raise ValueError(f"no canopy accounts found in {path}")
    logger.debug("Loaded %d canopy accounts from %s", len(addresses), path)
    return addresses
