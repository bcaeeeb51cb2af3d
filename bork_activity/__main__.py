"""Entry point for wallet activity analysis"""
import argparse
import json
import logging
import os
import sys
import traceback
from typing import List, Optional

from bork_activity.config import settings
from bork_activity.models.activity import PaginationCursor
from bork_activity.models.result import PipelineStatus
from bork_activity.pipeline import WalletActivityPipeline

logger = logging.getLogger(__name__)

def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="bork_activity", description="Aggregate a Sui wallet's activity")
    parser.add_argument("address", nargs="?", default=None, help="Wallet address (0x + 64 hex chars)")
    parser.add_argument("--max-pages", type=positive_int, default=None, help="Stop after this many pages")
    parser.add_argument("--cursor", default=None, help="Resume from a previous run's next cursor")
    parser.add_argument("--balances", action="store_true", help="Also fetch current balances")
    parser.add_argument("--output", default=None, help="Output path (default: OUTPUT_DIR/results.json)")
    return parser.parse_args(argv)

def run(argv: Optional[List[str]] = None) -> int:
    """Analyze one wallet and write the result as JSON."""
    args = parse_args(argv)
    logging.basicConfig(level=settings.LOG_LEVEL, format='%(message)s')

    config = settings
    if args.max_pages is not None:
        config = settings.model_copy(update={'MAX_PAGES': args.max_pages})

    address = args.address or config.DEFAULT_WALLET_ADDRESS
    cursor = PaginationCursor(token=args.cursor, has_more=True) if args.cursor else None

    try:
        # Log config (excluding sensitive data)
        safe_config = config.model_dump(exclude={'BLOCKBERRY_API_KEY'})
        logger.info("Using configuration:")
        logger.info(json.dumps(safe_config, indent=2))

        pipeline = WalletActivityPipeline(config)
        result = pipeline.run(address, cursor=cursor, include_balances=args.balances)

        output_path = args.output or os.path.join(config.OUTPUT_DIR, "results.json")
        with open(output_path, 'w') as f:
            json.dump(result.model_dump(mode='json'), f, indent=2)

        logger.info(f"Wrote {result.status.value} result to {output_path}")
        if result.error:
            logger.info(f"Stopped early: {result.error}")

    except Exception as e:
        logger.error(f"Error during wallet analysis: {e}")
        traceback.print_exc()
        return 1

    return 1 if result.status == PipelineStatus.FAILED else 0

if __name__ == "__main__":
    sys.exit(run())
