"""Pydantic v2 configuration schema with strict validation.

Configuration is read once at startup and frozen afterwards.
"""

from pydantic import BaseModel, Field


class LedgerConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    rpc_url: str = "http://node-1:50002"
    admin_rpc_url: str = "http://node-1:50003"
    committee: int = Field(default=2, ge=1)
    tx_fee: int = Field(default=100_000, ge=0)
    timeout: float = Field(default=30.0, gt=0.0)
    max_retries: int = Field(default=3, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0.0)


class EthereumConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    rpc_url: str = "http://localhost:8545"
    token_contract: str = ""
    token_symbol: str = "USDC"
    timeout: float = Field(default=30.0, gt=0.0)
    gas_limit_default: int = Field(default=21_000, gt=0)
    gas_limit_with_data: int = Field(default=100_000, gt=0)


class AuthConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    nickname: str = ""
    password: str = ""


class PhaseTiming(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    interval: float = Field(gt=0.0)
    timeout: float = Field(gt=0.0)


class PollingConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    await_create: PhaseTiming = PhaseTiming(interval=1.0, timeout=60.0)
    await_lock: PhaseTiming = PhaseTiming(interval=1.0, timeout=180.0)
    await_completion: PhaseTiming = PhaseTiming(interval=2.0, timeout=120.0)
    balance_settle_delay: float = Field(default=5.0, ge=0.0)
    delete_settle_delay: float = Field(default=10.0, ge=0.0)
    bulk_lock_delay: float = Field(default=1.0, ge=0.0)
    lock_deadline_offset: int = Field(default=5, ge=1)
    suite_timeout: float = Field(default=300.0, gt=0.0)
    suite_poll_interval: float = Field(default=1.0, gt=0.0)


class EthAccount(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    address: str
    private_key: str = ""


class AccountsConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    ethereum: list[EthAccount] = []
    canopy: list[str] = []
    keys_file: str = "keys/node-bls.json"


class CaseConfig(BaseModel):
    """One suite case; participants are indexes into the account lists."""

    model_config = {"extra": "forbid", "frozen": True}

    name: str
    order_amount: int = Field(gt=0)
    expected_token_transfer: int = Field(gt=0)
    expected_native_transfer: int = Field(gt=0)
    buyer: int = Field(default=0, ge=0)
    seller: int = Field(default=1, ge=0)
    receiver: int = Field(default=1, ge=0)


class SuiteConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    parallel: bool = False
    max_workers: int = Field(default=4, ge=1)
    delete_existing: bool = True
    cases: list[CaseConfig] = []


class OpsConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    log_dir: str = "logs"
    max_log_files: int = Field(default=100, ge=1)
    monitor_interval: float = Field(default=5.0, gt=0.0)


class E2EConfig(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    ledger: LedgerConfig = LedgerConfig()
    ethereum: EthereumConfig = EthereumConfig()
    auth: AuthConfig = AuthConfig()
    polling: PollingConfig = PollingConfig()
    accounts: AccountsConfig = AccountsConfig()
    suite: SuiteConfig = SuiteConfig()
    ops: OpsConfig = OpsConfig()
