"""Carrier adapter abstraction — pluggable shipping carrier integration."""

from marketplace import config

_carrier_instance = None


def get_carrier():
    """Return the configured carrier adapter (singleton).

    Uses FakeCarrier by default. In production, configure via
    CARRIER_ADAPTER environment variable.
    """
    global _carrier_instance
    if _carrier_instance is None:
        adapter = config.carrier_adapter()
        if adapter == "fake":
            from marketplace.carrier.fake_adapter import FakeCarrier

            _carrier_instance = FakeCarrier()
        elif adapter == "shiprocket":
            from marketplace.carrier.shiprocket_adapter import ShiprocketCarrier

            _carrier_instance = ShiprocketCarrier(
                api_url=config.shiprocket_api_url(),
                token=config.shiprocket_token(),
                timeout=config.carrier_timeout_seconds(),
            )
        else:
            raise ValueError(f"Unknown carrier adapter: {adapter}")
    return _carrier_instance


def set_carrier(carrier) -> None:
    """Override the active carrier adapter (useful for tests)."""
    global _carrier_instance
    _carrier_instance = carrier


def reset_carrier():
    """Reset the carrier singleton (useful for testing)."""
    global _carrier_instance
    _carrier_instance = None
