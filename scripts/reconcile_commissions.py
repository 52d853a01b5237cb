#!/usr/bin/env python3
"""Commission reconciliation report.

Lists customers whose credited total is not exactly one pool, customers
whose pin deduction has no audit row, and wallet projections that
disagree with the ledger.

Usage:
    python scripts/reconcile_commissions.py
    python scripts/reconcile_commissions.py --include-missing
    python scripts/reconcile_commissions.py --rebuild-wallets
    python scripts/reconcile_commissions.py --json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from commission_engine.config.database import async_session_maker, engine
from commission_engine.services.reconciliation_service import (
    ReconciliationService,
)
from commission_engine.utils.logging import setup_logging
from commission_engine.utils.redis_utils import (
    get_redis_client,
    get_redis_url_masked,
)


async def reconcile(
    include_missing: bool, rebuild_wallets: bool, as_json: bool
) -> int:
    """Run reconciliation; returns the process exit code."""
    redis_client = get_redis_client()
    if redis_client is not None:
        logger.info(f"Using summary cache at {get_redis_url_masked()}")

    try:
        async with async_session_maker() as session:
            service = ReconciliationService(session, redis_client=redis_client)
            report = await service.run(include_missing=include_missing)

            if as_json:
                print(json.dumps(report.to_dict(), indent=2))
            else:
                for item in report.incomplete_distributions:
                    logger.warning(
                        f"Customer {item.customer_id}: {item.kind}, credited "
                        f"{item.credited_total} in {item.record_count} entries "
                        f"(difference {item.difference})"
                    )
                for gap in report.pin_audit_gaps:
                    logger.warning(
                        f"Customer {gap.customer_id}: no pin deduction row "
                        f"for promoter {gap.promoter_id}"
                    )
                for drift in report.wallet_drift:
                    logger.warning(
                        f"Wallet {drift.wallet_key}: ledger "
                        f"{drift.ledger_total}, projection "
                        f"{drift.projected_total}"
                    )

            if rebuild_wallets and report.wallet_drift:
                written = await service.rebuild_wallets()
                logger.success(f"Rebuilt {written} wallet projections")

            if report.is_clean:
                logger.success("No inconsistencies found.")
                return 0
            return 1
    finally:
        if redis_client is not None:
            await redis_client.aclose()
        await engine.dispose()


def main():
    parser = argparse.ArgumentParser(
        description="Reconcile commission ledger, pin audit and wallets"
    )
    parser.add_argument(
        "--include-missing",
        action="store_true",
        help="Also report customers without any ledger entries",
    )
    parser.add_argument(
        "--rebuild-wallets",
        action="store_true",
        help="Rebuild wallet projections from the ledger when they drift",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON",
    )
    args = parser.parse_args()

    setup_logging()

    sys.exit(
        asyncio.run(
            reconcile(args.include_missing, args.rebuild_wallets, args.json)
        )
    )


if __name__ == "__main__":
    main()
