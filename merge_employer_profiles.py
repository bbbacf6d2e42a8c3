"""Fold legacy per-user employer profiles into company records.

Usage: ``python merge_employer_profiles.py``. Uses the same database settings
as the API. Exits non-zero when any profile failed to merge.
"""
import sys
from dataclasses import asdict

import structlog

import companies
from database import SessionLocal
from observability import init_observability

logger = structlog.get_logger(__name__)


def main() -> int:
    init_observability()
    db = SessionLocal()
    try:
        report = companies.merge_legacy_employer_profiles(db)
    finally:
        db.close()
    logger.info("Employer profile merge finished", **asdict(report))
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
