"""
Scripts - Verify Claim.

Verifies one claimed transaction from the command line and prints
the outcome as JSON.

USAGE:
    python -m scripts.verify_claim eth 0x5c50...e1 --note "for the docs sprint"

EXIT CODES:
- 0: inserted or duplicate
- 1: any other outcome
"""

import argparse
import asyncio
import json
import sys
from typing import Optional

from core.config import EngineConfig
from core.logging_setup import setup_logging
from ingestion.service import IngestionService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Verify and record a claimed transaction")
    parser.add_argument("chain", help="Chain slug or alias")
    parser.add_argument("tx", help="Transaction hash or signature")
    parser.add_argument("--note", default=None, help="Optional note (max 280 chars)")
    parser.add_argument("--log-level", default=None)
    return parser


async def run(args: argparse.Namespace, service: Optional[IngestionService] = None) -> int:
    owns_service = service is None
    if service is None:
        service = IngestionService.from_config(EngineConfig.from_env())
    try:
        result = await service.verify_and_record(args.chain, args.tx, args.note)
    finally:
        if owns_service:
            await service.close()
    print(json.dumps(result.to_dict()))
    return 0 if result.ok else 1


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
