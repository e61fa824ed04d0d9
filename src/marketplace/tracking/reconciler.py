"""Shipment status reconciliation.

``StatusReconciler.run`` is one self-contained unit of work for one order
line: fetch the carrier's tracking snapshot, map it, and apply it through
``ApplyCarrierUpdate``. It owns no timer; a scheduler outside the domain
decides when to call ``run`` or ``run_batch``.

Outcomes:
    UPDATED    status/history written
    UNCHANGED  unmapped code, or identical to the last recorded snapshot
    PROTECTED  line is Cancelled/Return/Failed; fetched but not written
    STALE      line or order changed between read and write; retried next run
    FAILED     carrier error; line untouched, retried next run
    SKIPPED    line has no shipment yet
    BUSY       another reconciliation holds the line
"""

import json
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace import config
from marketplace.carrier import get_carrier
from marketplace.carrier.port import CarrierError
from marketplace.domain import marketplace
from marketplace.order.assembler import order_id_from_secret
from marketplace.order.order import Order
from marketplace.shared.errors import LineBusyError
from marketplace.shared.locks import line_lock, order_lock
from marketplace.tracking.carrier_update import ApplyCarrierUpdate
from marketplace.tracking.status_mapper import map_snapshot

logger = structlog.get_logger(__name__)

PAGE_SIZE = 100


class ReconcileOutcome(Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    PROTECTED = "protected"
    STALE = "stale"
    FAILED = "failed"
    SKIPPED = "skipped"
    BUSY = "busy"


_UPDATE_OUTCOMES = {
    "applied": ReconcileOutcome.UPDATED,
    "duplicate": ReconcileOutcome.UNCHANGED,
    "protected": ReconcileOutcome.PROTECTED,
    "stale": ReconcileOutcome.STALE,
}


class ReconcilerMetrics:
    """Process-wide outcome counters for monitoring."""

    def __init__(self):
        self._lock = threading.Lock()
        self._counts = Counter()

    def increment(self, outcome: ReconcileOutcome) -> None:
        with self._lock:
            self._counts[outcome.value] += 1

    def count(self, outcome: ReconcileOutcome) -> int:
        with self._lock:
            return self._counts[outcome.value]

    def snapshot(self) -> dict:
        with self._lock:
            return dict(self._counts)

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()


reconciler_metrics = ReconcilerMetrics()


class StatusReconciler:
    def __init__(self, carrier=None, metrics: ReconcilerMetrics | None = None):
        self._carrier = carrier
        self.metrics = metrics or reconciler_metrics

    @property
    def carrier(self):
        return self._carrier or get_carrier()

    # -------------------------------------------------------------------
    # Single line
    # -------------------------------------------------------------------
    def run(self, secret_order_id: str) -> ReconcileOutcome:
        """Reconcile one order line against the carrier feed."""
        try:
            with line_lock(secret_order_id, blocking=False):
                outcome = self._reconcile(secret_order_id)
        except LineBusyError:
            logger.info("Order line is already being reconciled", secret_order_id=secret_order_id)
            outcome = ReconcileOutcome.BUSY

        self.metrics.increment(outcome)
        return outcome

    def _reconcile(self, secret_order_id: str) -> ReconcileOutcome:
        order = current_domain.repository_for(Order).get(order_id_from_secret(secret_order_id))
        line = order.line(secret_order_id)
        if not line.shipment_id:
            logger.info("Order line has no shipment yet", secret_order_id=secret_order_id)
            return ReconcileOutcome.SKIPPED

        observed_revision = line.revision or 0

        try:
            snapshot = self.carrier.fetch_tracking(line.shipment_id)
        except CarrierError as exc:
            logger.warning(
                "Carrier tracking fetch failed",
                secret_order_id=secret_order_id,
                shipment_id=line.shipment_id,
                error=str(exc),
            )
            return ReconcileOutcome.FAILED

        if line.is_terminal_protected:
            logger.info(
                "Ignoring carrier update for terminal-protected order line",
                secret_order_id=secret_order_id,
                status=line.status,
                tracking_code=repr(snapshot.tracking_code),
            )
            return ReconcileOutcome.PROTECTED

        mapping = map_snapshot(snapshot)
        if not mapping.is_change:
            logger.info(
                "Unmapped carrier tracking code, order line left unchanged",
                secret_order_id=secret_order_id,
                tracking_code=repr(snapshot.tracking_code),
            )
            return ReconcileOutcome.UNCHANGED

        update = ApplyCarrierUpdate(
            order_id=str(order.id),
            secret_order_id=secret_order_id,
            expected_revision=observed_revision,
            status=mapping.status.value,
            tracking_payload=json.dumps(snapshot.raw),
            etd=snapshot.etd,
            track_url=snapshot.track_url,
            updated_date=mapping.updated_date,
        )
        try:
            with order_lock(order.id, timeout=config.reconciler_lock_timeout_seconds()):
                result = current_domain.process(update, asynchronous=False)
        except ExpectedVersionError as exc:
            logger.info(
                "Order was saved by another writer, carrier update dropped",
                secret_order_id=secret_order_id,
                error=str(exc),
            )
            return ReconcileOutcome.STALE
        outcome = _UPDATE_OUTCOMES[result]

        logger.info(
            "Reconciled order line",
            secret_order_id=secret_order_id,
            shipment_id=line.shipment_id,
            status=mapping.status.value,
            outcome=outcome.value,
        )
        return outcome

    # -------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------
    def active_line_ids(self) -> list[str]:
        """Secret ids of every line with a shipment that is not terminal-protected."""
        repo = current_domain.repository_for(Order)
        line_ids = []
        offset = 0
        while True:
            order_ids = repo.page_ids(offset, PAGE_SIZE)
            for order_id in order_ids:
                order = repo.get(order_id)
                line_ids.extend(
                    line.secret_order_id
                    for line in (order.lines or [])
                    if line.shipment_id and not line.is_terminal_protected
                )
            if len(order_ids) < PAGE_SIZE:
                return line_ids
            offset += PAGE_SIZE

    def run_batch(self, secret_order_ids=None, max_workers: int | None = None) -> dict:
        """Reconcile many lines independently, in parallel when allowed.

        Returns:
            Count of lines per outcome value.
        """
        line_ids = list(secret_order_ids) if secret_order_ids is not None else self.active_line_ids()
        workers = max_workers or config.reconciler_max_workers()

        logger.info("Starting shipment reconciliation", line_count=len(line_ids), max_workers=workers)

        if workers <= 1 or len(line_ids) <= 1:
            outcomes = [self._run_one(secret_order_id) for secret_order_id in line_ids]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                outcomes = list(pool.map(self._run_in_context, line_ids))

        summary = dict(Counter(outcome.value for outcome in outcomes))
        logger.info("Shipment reconciliation complete", **summary)
        return summary

    def _run_one(self, secret_order_id: str) -> ReconcileOutcome:
        try:
            return self.run(secret_order_id)
        except (ValidationError, ObjectNotFoundError) as exc:
            logger.warning(
                "Could not reconcile order line",
                secret_order_id=secret_order_id,
                error=str(exc),
            )
            self.metrics.increment(ReconcileOutcome.FAILED)
            return ReconcileOutcome.FAILED

    def _run_in_context(self, secret_order_id: str) -> ReconcileOutcome:
        # Worker threads do not inherit the caller's domain context
        with marketplace.domain_context():
            return self._run_one(secret_order_id)
