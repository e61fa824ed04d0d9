"""Line status control — shipment assignment, admin override and customer actions.

Every command here rewrites one order line, so it runs under that line's
lock via ``process_line_command``. A carrier reconciliation that read the
line before this write will then find a newer revision and drop its update.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace import config
from marketplace.domain import marketplace
from marketplace.order.order import InternalOrderStatus, Order
from marketplace.shared.locks import line_lock, order_lock

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class AssignShipment:
    order_id = Identifier(required=True)
    secret_order_id = String(required=True, max_length=100)
    shipment_id = String(required=True, max_length=100)


@marketplace.command(part_of="Order")
class OverrideLineStatus:
    order_id = Identifier(required=True)
    secret_order_id = String(required=True, max_length=100)
    status = String(required=True, choices=InternalOrderStatus)


@marketplace.command(part_of="Order")
class CancelOrderLine:
    order_id = Identifier(required=True)
    secret_order_id = String(required=True, max_length=100)


@marketplace.command(part_of="Order")
class RequestLineReturn:
    order_id = Identifier(required=True)
    secret_order_id = String(required=True, max_length=100)
    reason = String(required=True, max_length=500)


@marketplace.command_handler(part_of=Order)
class LineStatusHandler:
    @handle(AssignShipment)
    def assign_shipment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign_shipment(command.secret_order_id, command.shipment_id)
        repo.add(order)

    @handle(OverrideLineStatus)
    def override_line_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.line(command.secret_order_id).status
        order.override_line_status(command.secret_order_id, InternalOrderStatus(command.status))
        repo.add(order)

        logger.info(
            "Order line status overridden",
            secret_order_id=command.secret_order_id,
            previous_status=previous,
            new_status=command.status,
        )

    @handle(CancelOrderLine)
    def cancel_order_line(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.cancel_line(command.secret_order_id)
        repo.add(order)

    @handle(RequestLineReturn)
    def request_line_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.request_return(command.secret_order_id, command.reason)
        repo.add(order)


def process_line_command(command):
    """Process a single-line command under the line lock and the order lock.

    Raises:
        LineBusyError: the line or order stayed locked for longer than the configured
            lock timeout.
    """
    timeout = config.reconciler_lock_timeout_seconds()
    with line_lock(command.secret_order_id, timeout=timeout):
        with order_lock(command.order_id, timeout=timeout):
            return current_domain.process(command, asynchronous=False)
