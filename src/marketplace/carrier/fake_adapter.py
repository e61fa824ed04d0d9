"""Fake carrier adapter — deterministic carrier for testing and development.

Serves scripted tracking data per shipment, falling back to a fixed
in-transit snapshot. Configurable failure behavior for integration testing.
"""

from marketplace.carrier.port import CarrierError, CarrierPort, TrackingSnapshot, snapshot_from_tracking_data

IN_TRANSIT_CODE = 18


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.tracking = {}
        self.calls = []

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def script(
        self,
        shipment_id: str,
        shipment_status,
        shipment_track: list | None = None,
        etd: str | None = None,
        track_url: str | None = None,
        activities: list | None = None,
    ) -> None:
        """Set the tracking data returned for a shipment from now on."""
        self.tracking[str(shipment_id)] = {
            "track_status": 1,
            "shipment_status": shipment_status,
            "shipment_track": shipment_track or [],
            "shipment_track_activities": activities or [],
            "track_url": track_url or f"https://fake-carrier.example.com/track/{shipment_id}",
            "etd": etd,
        }

    def fetch_tracking(self, shipment_id: str) -> TrackingSnapshot:
        self.calls.append(str(shipment_id))
        if not self.should_succeed:
            raise CarrierError(self.failure_reason)

        tracking_data = self.tracking.get(str(shipment_id))
        if tracking_data is None:
            tracking_data = {
                "track_status": 1,
                "shipment_status": IN_TRANSIT_CODE,
                "shipment_track": [],
                "shipment_track_activities": [],
                "track_url": f"https://fake-carrier.example.com/track/{shipment_id}",
                "etd": None,
            }
        return snapshot_from_tracking_data(shipment_id, tracking_data)
