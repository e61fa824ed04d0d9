"""Tests for the Order aggregate — placement, carrier updates and human actions."""

import pytest
from marketplace.order.assembler import generate_order_id
from marketplace.order.events import LineStatusChanged, ReturnRequested, ShipmentAssigned, TrackingRecorded
from marketplace.order.order import CarrierUpdate, InternalOrderStatus, Order, is_terminal_protected
from protean.exceptions import ValidationError

SHIPPING = {
    "name": "Asha Rao",
    "phone": "9800000000",
    "address": "12 Lake Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pin": "560038",
}


def _make_order(*codes):
    order_id = generate_order_id()
    codes = codes or ("P1",)
    order = Order.place(
        order_id=order_id,
        user_id="user-001",
        payment_id="pay-001",
        shipping_details=SHIPPING,
        lines_data=[
            {
                "secret_order_id": f"{order_id}{code}",
                "product_id": f"prod-{code}",
                "vendor_id": "vend-001",
                "quantity": 2,
                "unit_mrp": 700.0,
                "line_mrp": 1400.0,
                "line_price": 1026.0,
            }
            for code in codes
        ],
    )
    order._events.clear()
    return order


def _secret(order, index=0):
    return order.lines[index].secret_order_id


def _set_status(order, status):
    order.override_line_status(_secret(order), status)
    order._events.clear()


def _payload(code=18, **extra):
    return {"shipment_status": code, "shipment_track": [], **extra}


class TestPlaceOrder:
    def test_lines_start_pending(self):
        order = _make_order("P1", "P2")
        assert [line.status for line in order.lines] == ["Pending", "Pending"]
        assert all(line.revision == 0 for line in order.lines)
        assert all(line.history() == [] for line in order.lines)

    def test_totals(self):
        order = _make_order("P1", "P2")
        assert order.total_price().amount == 2052.0
        assert order.total_mrp().amount == 2800.0

    def test_shipping_details_captured(self):
        order = _make_order()
        assert order.shipping_details.city == "Bengaluru"
        assert order.shipping_details.locality is None

    def test_line_price_above_mrp_rejected(self):
        order_id = generate_order_id()
        with pytest.raises(ValidationError):
            Order.place(
                order_id=order_id,
                user_id="user-001",
                payment_id="pay-001",
                shipping_details=SHIPPING,
                lines_data=[
                    {
                        "secret_order_id": f"{order_id}P1",
                        "product_id": "prod-1",
                        "vendor_id": "vend-001",
                        "quantity": 1,
                        "unit_mrp": 100.0,
                        "line_mrp": 100.0,
                        "line_price": 100.01,
                    }
                ],
            )

    def test_unknown_line_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.line("OD-not-a-line")


class TestAssignShipment:
    def test_records_shipment(self):
        order = _make_order()
        order.assign_shipment(_secret(order), "ship-1")
        line = order.lines[0]
        assert line.shipment_id == "ship-1"
        assert line.revision == 1
        assert any(isinstance(e, ShipmentAssigned) for e in order._events)

    def test_cannot_ship_cancelled_line(self):
        order = _make_order()
        _set_status(order, InternalOrderStatus.CANCELLED)
        with pytest.raises(ValidationError):
            order.assign_shipment(_secret(order), "ship-1")

    def test_shipment_id_required(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.assign_shipment(_secret(order), "")


class TestApplyCarrierUpdate:
    def test_applies_status_and_history(self):
        order = _make_order()
        result = order.apply_carrier_update(
            _secret(order),
            InternalOrderStatus.IN_TRANSIT,
            _payload(),
            etd="2026-10-20",
            track_url="https://track/1",
        )
        line = order.lines[0]
        assert result == CarrierUpdate.APPLIED
        assert line.status == "In_Transit"
        assert line.history() == [_payload()]
        assert line.etd == "2026-10-20"
        assert line.track_url == "https://track/1"
        assert line.revision == 1

    def test_raises_status_and_tracking_events(self):
        order = _make_order()
        order.apply_carrier_update(_secret(order), InternalOrderStatus.IN_TRANSIT, _payload())
        changed = [e for e in order._events if isinstance(e, LineStatusChanged)]
        assert changed[0].previous_status == "Pending"
        assert changed[0].new_status == "In_Transit"
        assert changed[0].source == "Carrier"
        assert any(isinstance(e, TrackingRecorded) for e in order._events)

    def test_identical_snapshot_is_duplicate(self):
        order = _make_order()
        order.apply_carrier_update(_secret(order), InternalOrderStatus.IN_TRANSIT, _payload(), etd="e")
        order._events.clear()

        result = order.apply_carrier_update(_secret(order), InternalOrderStatus.IN_TRANSIT, _payload(), etd="e")

        assert result == CarrierUpdate.DUPLICATE
        assert len(order.lines[0].history()) == 1
        assert order.lines[0].revision == 1
        assert order._events == []

    def test_new_scan_with_same_status_is_recorded(self):
        order = _make_order()
        order.apply_carrier_update(_secret(order), InternalOrderStatus.IN_TRANSIT, _payload())
        result = order.apply_carrier_update(
            _secret(order), InternalOrderStatus.IN_TRANSIT, _payload(location="Hub B")
        )
        assert result == CarrierUpdate.APPLIED
        assert len(order.lines[0].history()) == 2
        assert order.lines[0].revision == 2

    @pytest.mark.parametrize(
        "status",
        [InternalOrderStatus.CANCELLED, InternalOrderStatus.RETURN, InternalOrderStatus.FAILED],
    )
    def test_terminal_protected_line_is_untouched(self, status):
        order = _make_order()
        _set_status(order, status)
        revision = order.lines[0].revision

        result = order.apply_carrier_update(_secret(order), InternalOrderStatus.DELIVERED, _payload(code=7))

        line = order.lines[0]
        assert result == CarrierUpdate.PROTECTED
        assert line.status == status.value
        assert line.history() == []
        assert line.revision == revision

    def test_stale_revision_is_rejected(self):
        order = _make_order()
        order.assign_shipment(_secret(order), "ship-1")

        result = order.apply_carrier_update(
            _secret(order), InternalOrderStatus.IN_TRANSIT, _payload(), expected_revision=0
        )

        assert result == CarrierUpdate.STALE
        assert order.lines[0].status == "Pending"

    def test_matching_revision_is_applied(self):
        order = _make_order()
        order.assign_shipment(_secret(order), "ship-1")
        result = order.apply_carrier_update(
            _secret(order), InternalOrderStatus.IN_TRANSIT, _payload(), expected_revision=1
        )
        assert result == CarrierUpdate.APPLIED

    def test_delivered_date_recorded(self):
        order = _make_order()
        order.apply_carrier_update(
            _secret(order), InternalOrderStatus.DELIVERED, _payload(code=7), updated_date="10-17-2026"
        )
        assert order.lines[0].updated_date == "10-17-2026"

    def test_missing_delivered_date_keeps_previous(self):
        order = _make_order()
        order.apply_carrier_update(
            _secret(order), InternalOrderStatus.DELIVERED, _payload(code=7), updated_date="10-17-2026"
        )
        order.apply_carrier_update(_secret(order), InternalOrderStatus.DELIVERED, _payload(code=7, scan=2))
        assert order.lines[0].updated_date == "10-17-2026"

    def test_other_lines_are_independent(self):
        order = _make_order("P1", "P2")
        order.apply_carrier_update(_secret(order, 0), InternalOrderStatus.DELIVERED, _payload(code=7))
        assert order.lines[1].status == "Pending"


class TestOverrideLineStatus:
    def test_admin_can_move_cancelled_line(self):
        order = _make_order()
        _set_status(order, InternalOrderStatus.CANCELLED)
        order.override_line_status(_secret(order), InternalOrderStatus.IN_TRANSIT)
        assert order.lines[0].status == "In_Transit"
        changed = [e for e in order._events if isinstance(e, LineStatusChanged)]
        assert changed[0].source == "Admin"

    def test_same_status_still_bumps_revision(self):
        order = _make_order()
        order.override_line_status(_secret(order), InternalOrderStatus.PENDING)
        assert order.lines[0].revision == 1


class TestCustomerCancel:
    @pytest.mark.parametrize(
        "status",
        [InternalOrderStatus.PENDING, InternalOrderStatus.PICKUP_ERROR, InternalOrderStatus.OUT_FOR_PICKUP],
    )
    def test_cancel_before_dispatch(self, status):
        order = _make_order()
        _set_status(order, status)
        order.cancel_line(_secret(order))
        assert order.lines[0].status == "Cancelled"

    @pytest.mark.parametrize(
        "status",
        [InternalOrderStatus.SHIPPED, InternalOrderStatus.IN_TRANSIT, InternalOrderStatus.DELIVERED],
    )
    def test_cannot_cancel_after_dispatch(self, status):
        order = _make_order()
        _set_status(order, status)
        with pytest.raises(ValidationError):
            order.cancel_line(_secret(order))


class TestRequestReturn:
    def test_return_after_delivery(self):
        order = _make_order()
        _set_status(order, InternalOrderStatus.DELIVERED)
        order.request_return(_secret(order), "Wrong size")
        line = order.lines[0]
        assert line.status == "Return"
        assert line.return_reason == "Wrong size"
        assert any(isinstance(e, ReturnRequested) for e in order._events)

    def test_cannot_return_undelivered_line(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.request_return(_secret(order), "Changed my mind")

    def test_reason_required(self):
        order = _make_order()
        _set_status(order, InternalOrderStatus.DELIVERED)
        with pytest.raises(ValidationError):
            order.request_return(_secret(order), "  ")


class TestTerminalProtection:
    def test_protected_statuses(self):
        assert is_terminal_protected("Cancelled")
        assert is_terminal_protected(InternalOrderStatus.RETURN)
        assert is_terminal_protected("Failed")

    def test_unprotected_statuses(self):
        assert not is_terminal_protected("Delivered")
        assert not is_terminal_protected("Cancelled_Before_Dispatch")
