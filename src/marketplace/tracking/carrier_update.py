"""Carrier update — command and handler.

Applies one mapped tracking snapshot to an order line. The handler re-reads
the order, so the terminal-protection and revision checks run against the
state being written, not the state the reconciler saw before its fetch.
"""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import CarrierUpdate, InternalOrderStatus, Order


@marketplace.command(part_of="Order")
class ApplyCarrierUpdate:
    order_id = Identifier(required=True)
    secret_order_id = String(required=True, max_length=100)
    expected_revision = Integer()
    status = String(required=True, max_length=50)
    tracking_payload = Text(required=True)  # JSON: raw carrier tracking data
    etd = String(max_length=50)
    track_url = String(max_length=500)
    updated_date = String(max_length=10)


@marketplace.command_handler(part_of=Order)
class CarrierUpdateHandler:
    @handle(ApplyCarrierUpdate)
    def apply_carrier_update(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        result = order.apply_carrier_update(
            secret_order_id=command.secret_order_id,
            status=InternalOrderStatus(command.status),
            payload=json.loads(command.tracking_payload),
            etd=command.etd,
            track_url=command.track_url,
            updated_date=command.updated_date,
            expected_revision=command.expected_revision,
        )
        if result is CarrierUpdate.APPLIED:
            repo.add(order)
        return result.value
