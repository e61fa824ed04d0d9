"""Runtime settings read from the environment.

Values are looked up on every call so tests and operators can change them
without re-importing the domain.
"""

import os

DEFAULT_CARRIER_TIMEOUT_SECONDS = 10.0
DEFAULT_RECONCILER_MAX_WORKERS = 4
DEFAULT_RECONCILER_LOCK_TIMEOUT_SECONDS = 5.0


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def carrier_adapter() -> str:
    return os.environ.get("CARRIER_ADAPTER", "fake")


def shiprocket_api_url() -> str:
    return os.environ.get("SHIPROCKET_API_URL", "https://apiv2.shiprocket.in/v1/external")


def shiprocket_token() -> str:
    return os.environ.get("SHIPROCKET_TOKEN", "")


def carrier_timeout_seconds() -> float:
    return _float_env("CARRIER_TIMEOUT_SECONDS", DEFAULT_CARRIER_TIMEOUT_SECONDS)


def extra_discount_pct() -> float:
    """Platform-wide extra discount applied after any coupon."""
    return _float_env("MARKETPLACE_EXTRA_DISCOUNT_PCT", 0.0)


def reconciler_max_workers() -> int:
    return int(_float_env("RECONCILER_MAX_WORKERS", DEFAULT_RECONCILER_MAX_WORKERS))


def reconciler_lock_timeout_seconds() -> float:
    return _float_env("RECONCILER_LOCK_TIMEOUT_SECONDS", DEFAULT_RECONCILER_LOCK_TIMEOUT_SECONDS)
