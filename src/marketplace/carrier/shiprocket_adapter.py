"""Shiprocket carrier adapter.

Calls the shipment tracking endpoint with a bearer token and a bounded
timeout. Every transport or payload problem is reported as ``CarrierError``.
"""

import requests
import structlog

from marketplace.carrier.port import CarrierError, CarrierPort, TrackingSnapshot, snapshot_from_tracking_data

logger = structlog.get_logger(__name__)


class ShiprocketCarrier(CarrierPort):
    def __init__(self, api_url: str, token: str, timeout: float) -> None:
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def fetch_tracking(self, shipment_id: str) -> TrackingSnapshot:
        url = f"{self.api_url}/courier/track/shipment/{shipment_id}"
        try:
            response = requests.get(
                url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.token}",
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.Timeout as exc:
            raise CarrierError(f"Tracking request for shipment {shipment_id} timed out") from exc
        except (requests.RequestException, ValueError) as exc:
            raise CarrierError(f"Failed to track shipment {shipment_id}: {exc}") from exc

        if not isinstance(body, dict):
            raise CarrierError(f"Unexpected tracking response for shipment {shipment_id}")

        logger.debug("Fetched carrier tracking", shipment_id=str(shipment_id))
        return snapshot_from_tracking_data(shipment_id, body.get("tracking_data"))
