"""Shared test fixtures."""

from pathlib import Path

import pytest
import yaml

from oracle_e2e.config.defaults import DEFAULT_CASES, DEFAULT_ETH_ACCOUNTS
from oracle_e2e.config.schema import (
    AccountsConfig,
    AuthConfig,
    E2EConfig,
    EthereumConfig,
    OpsConfig,
    PhaseTiming,
    PollingConfig,
    SuiteConfig,
)
from oracle_e2e.execution.submitter import TransactionSubmitter
from oracle_e2e.ingest.balance_reader import BalanceReader
from oracle_e2e.ingest.order_book_reader import OrderBookReader
from oracle_e2e.lifecycle.orchestrator import LifecycleOrchestrator
from oracle_e2e.tests.fakes import (
    CANOPY_ACCOUNTS,
    COMMITTEE,
    EXTRA_ETH_ACCOUNT,
    TOKEN_CONTRACT,
    FakeClock,
    FakeNetwork,
    key_of,
)
from oracle_e2e.verification.balance_verifier import BalanceVerifier


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def network(monkeypatch) -> FakeNetwork:
    net = FakeNetwork()
    net.token[key_of(DEFAULT_ETH_ACCOUNTS[0].address)] = 10_000_000
    net.token[key_of(DEFAULT_ETH_ACCOUNTS[2].address)] = 10_000_000
    monkeypatch.setattr(
        "oracle_e2e.execution.submitter.send_transaction", net.send_transaction
    )
    return net


@pytest.fixture
def e2e_config(tmp_path: Path) -> E2EConfig:
    """Config wired for the fake network with short, deterministic timings."""
    return E2EConfig(
        ethereum=EthereumConfig(rpc_url="http://eth.test", token_contract=TOKEN_CONTRACT),
        auth=AuthConfig(nickname="e2e", password="secret"),
        polling=PollingConfig(
            await_create=PhaseTiming(interval=1.0, timeout=10.0),
            await_lock=PhaseTiming(interval=1.0, timeout=10.0),
            await_completion=PhaseTiming(interval=2.0, timeout=10.0),
            suite_timeout=30.0,
        ),
        accounts=AccountsConfig(
            ethereum=[*DEFAULT_ETH_ACCOUNTS, EXTRA_ETH_ACCOUNT],
            canopy=CANOPY_ACCOUNTS,
        ),
        suite=SuiteConfig(cases=DEFAULT_CASES),
        ops=OpsConfig(log_dir=str(tmp_path / "logs"), max_log_files=3),
    )


@pytest.fixture
def orchestrator(
    e2e_config: E2EConfig, network: FakeNetwork, clock: FakeClock
) -> LifecycleOrchestrator:
    balances = BalanceReader(network, network, TOKEN_CONTRACT)
    return LifecycleOrchestrator(
        e2e_config,
        reader=OrderBookReader(network, COMMITTEE),
        submitter=TransactionSubmitter(e2e_config, network, network),
        verifier=BalanceVerifier(
            balances,
            settle_delay=e2e_config.polling.balance_settle_delay,
            ticker=clock.ticker,
        ),
        ticker=clock.ticker,
    )


@pytest.fixture
def config_yaml_path(tmp_path: Path) -> Path:
    """Write a minimal valid config YAML and return its path."""
    data = {
        "ledger": {"committee": 3},
        "polling": {"await_lock": {"interval": 2, "timeout": 30}},
        "accounts": {"canopy": CANOPY_ACCOUNTS},
    }
    path = tmp_path / "e2e.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path
