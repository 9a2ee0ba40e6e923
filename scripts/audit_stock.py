#!/usr/bin/env python3
"""
Stock Ledger Audit Script

Replays each part's stock ledger and reports parts whose ledger no longer
matches their stock counters.

Usage:
    python audit_stock.py 123e4567-e89b-12d3-a456-426614174000
    python audit_stock.py PART_ID [PART_ID ...] --verbose
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from uuid import UUID

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from repositories.client import create_privileged_client
from repositories.ledger_repository import SupabaseLedgerStore
from repositories.part_repository import SupabaseCatalogStore
from services.errors import NotFoundError
from services.stock_audit_service import audit_part_stock


def main() -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Check that part stock matches its ledger",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Audit one part
  python audit_stock.py 123e4567-e89b-12d3-a456-426614174000

  # Audit several parts and show consistent ones too
  python audit_stock.py PART_ID_1 PART_ID_2 --verbose
        """
    )

    parser.add_argument(
        "part_ids",
        nargs="+",
        type=UUID,
        help="Part IDs to audit"
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Also list parts whose ledger matches"
    )

    args = parser.parse_args()

    try:
        client = create_privileged_client()
        catalog = SupabaseCatalogStore(client)
        ledger = SupabaseLedgerStore(client)

        mismatched = 0
        print("=" * 60)
        print("STOCK LEDGER AUDIT")
        print("=" * 60)
        for part_id in args.part_ids:
            try:
                audit = audit_part_stock(catalog, ledger, part_id)
            except NotFoundError:
                print(f"[MISSING] {part_id}")
                mismatched += 1
                continue

            if not audit.consistent:
                mismatched += 1
                print(
                    f"[DRIFT]   {audit.part_number} ({audit.part_id}): stock {audit.actual_stock}, "
                    f"ledger {audit.ledger_stock}, drift {audit.drift:+d}"
                )
            elif args.verbose:
                print(f"[OK]      {audit.part_number}: stock {audit.actual_stock} ({audit.entry_count} entries)")

        print("-" * 60)
        print(f"Parts audited: {len(args.part_ids)}")
        print(f"Problems:      {mismatched}")
        print("=" * 60)
        return 1 if mismatched else 0

    except KeyboardInterrupt:
        print("\n\nAudit interrupted by user")
        return 130

    except Exception as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
