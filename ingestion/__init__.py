"""
Ingestion Package.

Scanning, matching and at-most-once recording of contributions.

Components:
- WalletDirectory: Active project wallets by canonical chain
- ContributionRecorder: The single write path for contributions
- BlockScanner: Cursor-driven range scanner
- ingestion.service.IngestionService: run_ingestion / verify_and_record
"""

from ingestion.recorder import (
    ContributionCandidate,
    ContributionRecorder,
    RecordResult,
    RecordStatus,
    RecordSummary,
)
from ingestion.scanner import BlockScanner, ScanRange, ScanResult, ScanState, plan_range
from ingestion.wallet_directory import DirectoryEntry, WalletDirectory


__all__ = [
    "ContributionCandidate",
    "ContributionRecorder",
    "RecordResult",
    "RecordStatus",
    "RecordSummary",
    "BlockScanner",
    "ScanRange",
    "ScanResult",
    "ScanState",
    "plan_range",
    "DirectoryEntry",
    "WalletDirectory",
]
