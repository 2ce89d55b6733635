"""Helpers shared across models."""

from datetime import UTC, datetime

TOKEN_DECIMALS = 6


def utc_now() -> datetime:
    return datetime.now(UTC)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def strip_0x(value: str) -> str:
    return value[2:] if value[:2].lower() == "0x" else value


def format_token_amount(amount: int, symbol: str = "USDC") -> str:
    """Render a 6-decimal token amount, e.g. 1000000 -> '1.000000 USDC'."""
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10**TOKEN_DECIMALS)
    return f"{sign}{whole}.{frac:0{TOKEN_DECIMALS}d} {symbol}"
