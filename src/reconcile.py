"""Shipment reconciliation runner.

Runs one reconciliation pass over order lines and exits. Meant to be invoked
by an external scheduler (cron, a Kubernetes CronJob, ...), which owns the
cadence.

Usage:
    python src/reconcile.py                         # Every active order line
    python src/reconcile.py --line OD0123ABCD4567EFP1 --line ...
    python src/reconcile.py --workers 8
"""

import argparse
import json
import sys

from marketplace.domain import marketplace
from marketplace.tracking.reconciler import ReconcileOutcome, StatusReconciler
from marketplace.utils.logging import add_context, clear_context


def run(line_ids=None, workers=None) -> dict:
    with marketplace.domain_context():
        return StatusReconciler().run_batch(secret_order_ids=line_ids, max_workers=workers)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Marketplace shipment reconciliation")
    parser.add_argument(
        "--line",
        dest="lines",
        action="append",
        help="Secret order id of a line to reconcile (repeatable, default: all active lines)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        help="Maximum parallel carrier lookups (default: RECONCILER_MAX_WORKERS)",
    )
    args = parser.parse_args(argv)

    marketplace.init()

    add_context(job="reconcile")
    try:
        outcomes = run(args.lines, args.workers)
    finally:
        clear_context()

    print(json.dumps(outcomes, sort_keys=True))
    # Non-zero exit lets the scheduler alert on carrier failures
    return 1 if outcomes.get(ReconcileOutcome.FAILED.value) else 0


if __name__ == "__main__":
    sys.exit(main())
