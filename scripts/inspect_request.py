#!/usr/bin/env python3
"""
Print a purchase request with its approval history, or a reviewer's queue.

Usage:
    python3 scripts/inspect_request.py 42
    python3 scripts/inspect_request.py --pending area_lead
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def print_detail(detail) -> None:
    request = detail.request
    print(f"Request #{request.id}: {request.title}")
    print(f"  Stage:     {request.current_stage.value}")
    print(f"  Total:     {request.total_amount:,.2f}")
    print(f"  Urgent:    {'yes' if request.urgent else 'no'}")
    print(f"  Path:      {' -> '.join(stage.value for stage in detail.path)}")
    print()
    print("  Items:")
    for item in request.items:
        print(
            f"    {item.line_number:>3}  {item.description:<40} "
            f"{item.quantity:>10} x {item.unit_price:>14,.2f} = {item.subtotal:>16,.2f}"
        )
    print()
    print("  History:")
    if not detail.events:
        print("    (no events)")
    for event in detail.events:
        who = event.actor_name or f"user {event.actor_id}"
        line = (
            f"    {event.created_at:%Y-%m-%d %H:%M}  [{event.stage_ordinal}] "
            f"{event.action.value:<8} {who:<24} -> {event.resulting_stage.value}"
        )
        if event.comment:
            line += f"  \"{event.comment}\""
        print(line)


def print_pending(role: str, summaries) -> None:
    print(f"Pending for {role}: {len(summaries)}")
    for summary in summaries:
        flag = "!" if summary.urgent else " "
        print(
            f"  {flag} #{summary.id:<6} {summary.current_stage.value:<18} "
            f"{summary.total_amount:>16,.2f}  {summary.title}"
        )


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect purchase requests")
    parser.add_argument("request_id", nargs="?", type=int, help="Request to inspect")
    parser.add_argument("--pending", metavar="ROLE", help="List the queue of ROLE")
    args = parser.parse_args()

    if args.request_id is None and args.pending is None:
        parser.error("give a request id or --pending ROLE")

    from procurement_config import get_active_config
    from procurement_config.bridges import build_orchestrator
    from procurement_kernel.exceptions import ProcurementKernelError

    orchestrator = build_orchestrator(get_active_config())

    try:
        if args.pending:
            print_pending(args.pending, orchestrator.list_pending(args.pending))
        else:
            print_detail(orchestrator.inspect(args.request_id))
    except ProcurementKernelError as exc:
        print(f"{exc.code}: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
