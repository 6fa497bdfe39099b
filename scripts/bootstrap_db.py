"""
Scripts - Bootstrap Database.

============================================================
RESPONSIBILITY
============================================================
Initializes the contribution store.

- Verifies the database connection
- Creates wallets, contributions and scan_cursors
- Optionally registers project wallets

============================================================
USAGE
============================================================
python -m scripts.bootstrap_db

Options:
  --wallet CHAIN:ADDRESS   Register an active wallet (repeatable)
  --validate-only          Only check the connection

EXIT CODES:
- 0: Success
- 1: Database connection failed
- 2: Table creation or wallet registration failed

============================================================
"""

import argparse
import logging
import sys
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from core.chains import canonical_chain
from core.exceptions import InvalidChainError
from core.logging_setup import setup_logging
from storage.database import (
    create_all_tables,
    create_database_engine,
    create_session_factory,
    session_scope,
    verify_database_connection,
)
from storage.repositories import DuplicateRecordError, RepositoryException, WalletRepository


logger = logging.getLogger("bootstrap_db")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create the contribution store schema")
    parser.add_argument("--database-url", default=None, help="Defaults to DATABASE_URL")
    parser.add_argument("--wallet", action="append", default=[], metavar="CHAIN:ADDRESS")
    parser.add_argument("--validate-only", action="store_true")
    parser.add_argument("--log-level", default=None)
    return parser


def parse_wallet(value: str) -> tuple[str, str]:
    """Split "chain:address" and canonicalize the chain."""
    chain, sep, address = value.partition(":")
    if not sep or not address.strip():
        raise argparse.ArgumentTypeError(f"Expected CHAIN:ADDRESS, got {value!r}")
    return canonical_chain(chain).value, address.strip()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    engine = create_database_engine(args.database_url)

    try:
        verify_database_connection(engine)
    except RepositoryException as e:
        logger.error(f"Database connection failed: {e.message}")
        return 1

    if args.validate_only:
        return 0

    try:
        create_all_tables(engine)
        wallets = [parse_wallet(w) for w in args.wallet]
    except (SQLAlchemyError, InvalidChainError, argparse.ArgumentTypeError) as e:
        logger.error(f"Bootstrap failed: {e}")
        return 2

    factory = create_session_factory(engine)
    for chain, address in wallets:
        try:
            with session_scope(factory) as session:
                wallet = WalletRepository(session).create(chain, address, is_active=True)
                logger.info(f"Registered wallet {wallet.id} on {chain}: {address}")
        except DuplicateRecordError:
            logger.info(f"Wallet already registered on {chain}: {address}")
        except RepositoryException as e:
            logger.error(f"Failed to register {chain}:{address}: {e.message}")
            return 2

    logger.info("Bootstrap complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
