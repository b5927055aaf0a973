"""Entry point for batch revenue attribution"""
import argparse
import json
import logging
import os
import sys
import traceback
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from revenue_attribution.config import settings
from revenue_attribution.engine import AttributionEngine, fold_contributions
from revenue_attribution.errors import AttributionError
from revenue_attribution.models.report import AttributionReport, BatchReport
from revenue_attribution.models.result import AttributionResult
from revenue_attribution.services.upstream import UpstreamGateway

logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO), format='%(message)s')
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Attribute vault fee revenue to participant addresses")
    parser.add_argument('-i', '--input-addresses', default=os.path.join(settings.INPUT_DIR, 'addresses.txt'),
                        help="input file path of participant addresses, newline separated")
    parser.add_argument('-s', '--start-timestamp', type=int, required=True,
                        help="timestamp at which to start attributing revenue (ms since epoch)")
    parser.add_argument('-e', '--end-timestamp', type=int, required=True,
                        help="timestamp at which to stop attributing revenue (ms since epoch)")
    parser.add_argument('-o', '--output', default=os.path.join(settings.OUTPUT_DIR, 'results.json'),
                        help="output file path for the JSON report")
    parser.add_argument('--skip-failed', action='store_true',
                        help="record failed addresses in the report instead of aborting")
    return parser.parse_args(argv)


def from_epoch_millis(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, timezone.utc)


def read_addresses(path: str) -> List[str]:
    """Read newline separated addresses, ignoring blank lines"""
    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]


def run_batch(
        engine: AttributionEngine,
        addresses: Sequence[str],
        start_time: datetime,
        end_time: datetime,
        skip_failed: bool = False
) -> BatchReport:
    """Attribute revenue for each address in turn and total the results"""
    batch = BatchReport(start_time=start_time, end_time=end_time)
    total = AttributionResult()

    for address in addresses:
        logger.info(f"Attributing revenue for {address}")
        try:
            contributions = engine.compute_vault_contributions(address, start_time, end_time)
        except AttributionError as e:
            if not skip_failed:
                raise
            logger.warning(f"Skipping {address}: {e}")
            batch.failed_addresses.append(address)
            batch.reports.append(AttributionReport(
                address=address, start_time=start_time, end_time=end_time, error=str(e)
            ))
            continue

        result = fold_contributions(contributions)
        total.merge(result)
        batch.reports.append(AttributionReport.from_contributions(
            address, start_time, end_time, contributions, result
        ))

    batch.total_revenue = total.to_dict()
    return batch


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Attribute revenue for every input address and write the report."""
    try:
        args = parse_args(argv)
        start_time = from_epoch_millis(args.start_timestamp)
        end_time = from_epoch_millis(args.end_timestamp)

        if not os.path.isfile(args.input_addresses):
            raise FileNotFoundError(f"No address file found at {args.input_addresses}")
        addresses = read_addresses(args.input_addresses)
        logger.info(f"Processing {len(addresses)} addresses from {start_time.isoformat()} to {end_time.isoformat()}")

        # Log config (RPC URLs may embed API keys)
        safe_config = settings.model_dump(exclude={'RPC_URLS'})
        logger.info("Using configuration:")
        logger.info(json.dumps(safe_config, indent=2))

        engine = AttributionEngine(
            UpstreamGateway.from_settings(settings),
            window_size=settings.BLOCK_WINDOW_SIZE,
            decimals=settings.FIXED_POINT_DECIMALS
        )
        batch = run_batch(engine, addresses, start_time, end_time, skip_failed=args.skip_failed)

        # Save results
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(batch.model_dump(mode='json'), f, indent=2)

        logger.info(f"Attribution complete: {json.dumps(batch.total_revenue)}")

    except Exception as e:
        logger.error(f"Error during revenue attribution: {e}")
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    run()
