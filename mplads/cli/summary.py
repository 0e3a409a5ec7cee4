#!/usr/bin/env python3
"""MPLADS fund utilization summaries from the command line.

Usage:
    python -m mplads                                   # overview, Lok Sabha 18
    python -m mplads --house "Lok Sabha" --ls-term both
    python -m mplads --state Bihar
    python -m mplads --state Bihar --constituency Patna
    python -m mplads --mp "Kumar" --house "Rajya Sabha"
    python -m mplads --mp-id 65f0c0ffee0000000000abcd
"""

import argparse
import logging
import sys
from typing import Any, Dict, List

from pymongo import MongoClient

from mplads import config
from mplads.aggregation.summary import SummaryComputer
from mplads.api.facade import QueryFacade
from mplads.cache import AggregationCache
from mplads.data.store import MongoRecordStore
from mplads.errors import NotFound

logger = logging.getLogger(__name__)

CRORE = 10_000_000
LAKH = 100_000


def format_rupees(amount: float) -> str:
    """Format amount in Indian units (Cr / L)."""
    sign = "-" if amount < 0 else ""
    amount = abs(amount)
    if amount >= CRORE:
        return f"{sign}₹{amount/CRORE:.2f} Cr"
    elif amount >= LAKH:
        return f"{sign}₹{amount/LAKH:.2f} L"
    else:
        return f"{sign}₹{amount:,.0f}"


def print_summary(title: str, summary: Dict[str, Any]):
    """Print one summary payload."""
    print("\n" + "=" * 70)
    print(f"  {title}")
    print(f"  ({summary['scope']})")
    print("=" * 70)

    print(f"\n  Allocated:        {format_rupees(summary['allocated_amount'])}")
    print(f"  Spent:            {format_rupees(summary['total_expenditure'])} "
          f"({summary['utilization_percentage']:.2f}% utilized)")
    print(f"  Unspent:          {format_rupees(summary['unspent_amount'])}")
    print(f"  Payments:         {summary['transaction_count']:,} "
          f"({summary['successful_payments']:,} successful, {summary['pending_payments']:,} in progress)")

    print(f"\n  Completed works:  {summary['completed_works_count']:,} "
          f"worth {format_rupees(summary['completed_works_value'])}")
    print(f"  Pending works:    {summary['pending_works_reconciled']:,} "
          f"worth {format_rupees(summary['recommended_works_value'])}")
    print(f"  Completion rate:  {summary['completion_rate']:.2f}%")
    print(f"  Payment gap:      {summary['payment_gap_percentage']:.2f}%")
    if summary['avg_rating'] is not None:
        print(f"  Avg rating:       {summary['avg_rating']:.2f} ({summary['rated_works_count']:,} rated)")
    if summary['mp_count'] > 1:
        print(f"  MPs:              {summary['mp_count']:,} (avg allocation {format_rupees(summary['avg_allocation'])})")
    if summary['data_quality_flags']:
        print(f"  Data quality:     {', '.join(summary['data_quality_flags'])}")


def print_constituencies(rows: List[Dict[str, Any]], limit: int = 25):
    """Print constituency rows, highest utilization first."""
    print("\n" + "-" * 70)
    print(f"  {'CONSTITUENCY':<30} {'ALLOCATED':>12} {'SPENT':>12} {'UTIL %':>8}")
    print("-" * 70)
    for row in rows[:limit]:
        print(f"  {row['constituency'][:30]:<30} {format_rupees(row['allocated_amount']):>12} "
              f"{format_rupees(row['total_expenditure']):>12} {row['utilization_percentage']:>8.2f}")
    if len(rows) > limit:
        print(f"  ... and {len(rows) - limit} more")


def main():
    parser = argparse.ArgumentParser(description="MPLADS fund utilization summaries")
    parser.add_argument("--house", help='"Lok Sabha", "Rajya Sabha" (default: both houses)')
    parser.add_argument("--ls-term", help='Lok Sabha term: 17, 18 or both (default: DEFAULT_LS_TERM)')
    parser.add_argument("--state", "-s", help="State summary")
    parser.add_argument("--constituency", "-c", help="Constituency within --state")
    parser.add_argument("--mp", "-m", help="Search MPs by name and show the best match")
    parser.add_argument("--mp-id", help="MP detail by summary or registry id")
    parser.add_argument("--mongo", default=config.MONGO_CONNECTION_STRING, help="MongoDB connection string")
    parser.add_argument("--database", default=config.MONGO_DATABASE, help="MongoDB database")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    client = MongoClient(args.mongo)
    try:
        store = MongoRecordStore(client[args.database], row_limit=config.AGGREGATION_ROW_LIMIT)
        facade = QueryFacade(SummaryComputer(store), AggregationCache())
        scope = facade.scope_for(args.house, args.ls_term)

        try:
            if args.mp_id:
                detail = facade.get_mp_detail(scope, args.mp_id)
                print_summary(f"MP: {detail['mp']['name']}", detail['summary'])
                for year in detail['yearly_trend']:
                    print(f"    {year['year']}: {format_rupees(year['total_amount'])} "
                          f"({year['transaction_count']:,} payments)")
            elif args.mp:
                matches = facade.resolver.identities(scope, query=args.mp)
                if not matches:
                    raise NotFound("MP", args.mp)
                if len(matches) > 1:
                    print(f"Found {len(matches)} MPs matching {args.mp!r}, showing the first:")
                    for mp in matches[:10]:
                        print(f"  • {mp.name} ({mp.house}, {mp.constituency or '-'}, {mp.state})")
                mp = matches[0]
                print_summary(f"MP: {mp.name}", facade.get_mp_summary(scope, mp))
            elif args.state and args.constituency:
                rows = facade.get_constituency_summary(scope, args.state, args.constituency)
                for row in rows:
                    print_summary(f"CONSTITUENCY: {row['constituency']}, {args.state}", row)
            elif args.state:
                print_summary(f"STATE: {args.state}", facade.get_state_summary(scope, args.state))
                print_constituencies(facade.get_constituency_summary(scope, args.state))
            else:
                print_summary("OVERVIEW", facade.get_overview(scope))
        except NotFound as e:
            print(f"ERROR: {e}", file=sys.stderr)
            sys.exit(1)
    finally:
        client.close()
    print()


if __name__ == "__main__":
    main()
