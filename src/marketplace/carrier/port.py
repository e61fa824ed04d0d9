"""Carrier port — abstract interface for shipment tracking integrations.

Adapters return a ``TrackingSnapshot`` or raise ``CarrierError``. Tracking
payloads are untrusted: parsing never assumes a field is present or well
typed beyond what the snapshot needs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from marketplace.shared.errors import ExternalServiceError


class CarrierError(ExternalServiceError):
    """The carrier could not produce a usable tracking snapshot."""


@dataclass(frozen=True)
class TrackingSnapshot:
    """Current tracking state of one shipment."""

    shipment_id: str
    tracking_code: object  # Normally an int; left as received
    track_url: str | None = None
    etd: str | None = None
    history: list = field(default_factory=list)  # Entries may carry "delivered_date"
    raw: dict = field(default_factory=dict)


def snapshot_from_tracking_data(shipment_id: str, tracking_data) -> TrackingSnapshot:
    """Build a snapshot from a carrier ``tracking_data`` block."""
    if not isinstance(tracking_data, dict):
        raise CarrierError(f"Tracking response for shipment {shipment_id} has no tracking data")
    if tracking_data.get("error"):
        raise CarrierError(f"Carrier reported an error for shipment {shipment_id}: {tracking_data['error']}")

    history = tracking_data.get("shipment_track")
    if not isinstance(history, list):
        history = []

    return TrackingSnapshot(
        shipment_id=str(shipment_id),
        tracking_code=tracking_data.get("shipment_status"),
        track_url=tracking_data.get("track_url") or None,
        etd=tracking_data.get("etd") or None,
        history=[entry for entry in history if isinstance(entry, dict)],
        raw=tracking_data,
    )


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def fetch_tracking(self, shipment_id: str) -> TrackingSnapshot:
        """Get current tracking state for a shipment.

        Raises:
            CarrierError: the call failed, timed out, or returned an error.
        """
        ...
