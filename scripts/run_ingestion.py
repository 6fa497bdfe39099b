"""
Scripts - Run Ingestion.

============================================================
RESPONSIBILITY
============================================================
Runs one scan per requested chain and prints the summaries.

Chains run concurrently; each chain is single-flight inside the
service. Intended to be invoked by cron or another scheduler.

============================================================
USAGE
============================================================
python -m scripts.run_ingestion --chains eth,btc

Options:
  --chains             Comma-separated chain slugs or aliases
                       (default: every configured chain)
  --since-height N     Start at height N
  --since-hours H      Start H hours below the safe tip
  --overlap N          Override overlap
  --max-blocks N       Override max blocks per run
  --min-confirmations  Override confirmation floor
  --time-budget S      Stop between batches after S seconds

EXIT CODES:
- 0: Every scan completed
- 1: At least one scan aborted
- 2: Invalid arguments or configuration

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from chain_adapters.exceptions import ChainNotSupportedError
from core.config import EngineConfig
from core.exceptions import ContributionEngineError
from core.logging_setup import setup_logging
from ingestion.service import IngestionService


logger = logging.getLogger("run_ingestion")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Scan chains for contributions")
    parser.add_argument("--chains", default="", help="Comma-separated chains (default: all configured)")
    parser.add_argument("--since-height", type=int, default=None)
    parser.add_argument("--since-hours", type=float, default=None)
    parser.add_argument("--overlap", type=int, default=None)
    parser.add_argument("--max-blocks", type=int, default=None)
    parser.add_argument("--min-confirmations", type=int, default=None)
    parser.add_argument("--time-budget", type=float, default=None)
    parser.add_argument("--log-level", default=None)
    return parser


async def run(args: argparse.Namespace, service: Optional[IngestionService] = None) -> int:
    owns_service = service is None
    if service is None:
        service = IngestionService.from_config(EngineConfig.from_env())

    try:
        chains = [c.strip() for c in args.chains.split(",") if c.strip()]
        if not chains:
            chains = [slug.value for slug in service.registry.list_chains()]
        if not chains:
            logger.error("No chains configured")
            return 2

        overrides = {
            "since_height": args.since_height,
            "since_hours": args.since_hours,
            "overlap": args.overlap,
            "max_blocks": args.max_blocks,
            "min_confirmations": args.min_confirmations,
            "time_budget_seconds": args.time_budget,
        }
        results = await asyncio.gather(
            *(service.run_ingestion(chain, **overrides) for chain in chains),
            return_exceptions=True,
        )

        exit_code = 0
        for chain, result in zip(chains, results):
            if isinstance(result, (ContributionEngineError, ChainNotSupportedError)):
                logger.error(f"[{chain}] {result}")
                exit_code = max(exit_code, 2)
                continue
            if isinstance(result, BaseException):
                raise result
            print(json.dumps(result.to_dict()))
            if not result.ok:
                exit_code = max(exit_code, 1)
        return exit_code
    finally:
        if owns_service:
            await service.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
