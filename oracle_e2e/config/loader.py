"""YAML config loader with environment overrides and default injection."""

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from oracle_e2e.config.defaults import (
    DEFAULT_CASES,
    DEFAULT_ETH_ACCOUNTS,
    FALLBACK_CANOPY_ACCOUNTS,
    load_canopy_accounts,
)
from oracle_e2e.config.schema import E2EConfig

logger = logging.getLogger(__name__)

# env var -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ETH_RPC_URL": ("ethereum", "rpc_url"),
    "USDC_CONTRACT": ("ethereum", "token_contract"),
    "CANOPY_RPC_URL": ("ledger", "rpc_url"),
    "CANOPY_ADMIN_RPC_URL": ("ledger", "admin_rpc_url"),
    "E2E_FROM_NICK": ("auth", "nickname"),
    "E2E_FROM_PASS": ("auth", "password"),
}

SECRET_KEYS = {"private_key", "password"}


def load_config(
    path: str | Path | None, env: Mapping[str, str] | None = None
) -> E2EConfig:
    """Load and validate config from a YAML file.

    A missing file yields defaults. Environment variables override the
    endpoints, the token contract and the ledger signer credentials.
    Default accounts and suite cases are injected when the YAML has none.
    """
    env = os.environ if env is None else env
    raw: dict[str, Any] = {}
    if path is not None and Path(path).exists():
        with open(path) as f:
            raw = yaml.safe_load(f) or {}

    for var, (section, key) in ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            raw[section] = {**(raw.get(section) or {}), key: value}

    accounts = raw["accounts"] = dict(raw.get("accounts") or {})
    if not accounts.get("ethereum"):
        accounts["ethereum"] = [a.model_dump() for a in DEFAULT_ETH_ACCOUNTS]
    if not accounts.get("canopy"):
        keys_file = accounts.get("keys_file", "keys/node-bls.json")
        try:
            accounts["canopy"] = load_canopy_accounts(keys_file)
        except (OSError, ValueError, KeyError) as e:
            logger.warning(
                "Failed to load canopy accounts (%s), using fallback addresses", e
            )
            accounts["canopy"] = list(FALLBACK_CANOPY_ACCOUNTS)

    suite = raw["suite"] = dict(raw.get("suite") or {})
    if not suite.get("cases"):
        suite["cases"] = [c.model_dump() for c in DEFAULT_CASES]

    return E2EConfig(**raw)


def get_config_value(config: E2EConfig, dotted_key: str) -> Any:
    """Get a config value by dotted key path. E.g. 'polling.await_lock.timeout'."""
    parts = dotted_key.split(".")
    obj: Any = config
    for part in parts:
        if isinstance(obj, list):
            obj = obj[int(part)]
        elif hasattr(obj, part):
            obj = getattr(obj, part)
        elif isinstance(obj, dict):
            obj = obj[part]
        else:
            raise KeyError(f"Config key not found: {dotted_key}")
    return obj


def redacted_json(config: E2EConfig) -> str:
    """Config as indented JSON with private keys and passwords masked."""
    return json.dumps(_redact(config.model_dump(mode="json")), indent=2)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: ("***" if k in SECRET_KEYS and v else _redact(v))
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(v) for v in value]
    return value
