#!/usr/bin/env python3
import argparse
import json
import logging
import os
import sys
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from marketplace.models import MarketplaceState
from marketplace.services.state_store import MarketplaceStore, create_store
from marketplace.services.views import (
    provider_dashboard_stats,
    quote_stats,
    recent_services,
    recent_supplies,
    requester_dashboard_stats,
    supply_provider_stats,
)


def _iter_lines(paths: List[str]) -> Iterable[str]:
    for path in paths:
        if path == "-":
            for line in sys.stdin:
                yield line.rstrip("\n")
            continue
        with open(path, "r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                yield line.rstrip("\n")


def _parse_action(line: str) -> Optional[Dict[str, Any]]:
    line = line.strip()
    if not line or line.startswith("#"):
        return None
    try:
        value = json.loads(line)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def replay(store: MarketplaceStore, lines: Iterable[str]) -> Dict[str, int]:
    applied = 0
    skipped = 0
    for line in lines:
        payload = _parse_action(line)
        if payload is None:
            skipped += 1
            continue
        before = store.state
        try:
            store.dispatch_raw(payload)
        except ValueError:
            # pydantic and marketplace errors both derive from ValueError.
            skipped += 1
            continue
        if store.state is before:
            skipped += 1
        else:
            applied += 1
    return {"applied": applied, "skipped": skipped}


def build_report(state: MarketplaceState) -> Dict[str, Any]:
    service_status_counts: Counter[str] = Counter(service.status for service in state.services)
    quote_status_counts: Counter[str] = Counter(quote.status for quote in state.quotes)

    requesters: Dict[str, Any] = {}
    providers: Dict[str, Any] = {}
    supply_providers: Dict[str, Any] = {}
    for user in state.users:
        if user.role == "REQUESTER":
            requesters[user.id] = requester_dashboard_stats(state.services, state.quotes, user.id).model_dump()
        elif user.role == "SERVICE_PROVIDER":
            providers[user.id] = quote_stats(state.quotes, state.services, user.id).model_dump()
        else:
            supply_providers[user.id] = supply_provider_stats(state.supplies, state.supply_offers, user.id).model_dump()

    return {
        "services": len(state.services),
        "quotes": len(state.quotes),
        "supplies": len(state.supplies),
        "supply_offers": len(state.supply_offers),
        "service_status_counts": dict(service_status_counts),
        "quote_status_counts": dict(quote_status_counts),
        "requesters": requesters,
        "service_providers": providers,
        "supply_providers": supply_providers,
    }


def build_user_report(state: MarketplaceState, user_id: str) -> Optional[Dict[str, Any]]:
    user = next((candidate for candidate in state.users if candidate.id == user_id), None)
    if user is None:
        return None
    report: Dict[str, Any] = {"id": user.id, "name": user.name, "role": user.role}
    if user.role == "REQUESTER":
        report["dashboard"] = requester_dashboard_stats(state.services, state.quotes, user.id).model_dump()
        report["recent_services"] = [card.service.id for card in recent_services(state.services, state.quotes, user)]
    elif user.role == "SERVICE_PROVIDER":
        report["dashboard"] = provider_dashboard_stats(state.services, state.quotes, user.id).model_dump()
        report["quote_stats"] = quote_stats(state.quotes, state.services, user.id).model_dump()
        report["recent_services"] = [card.service.id for card in recent_services(state.services, state.quotes, user)]
    else:
        report["dashboard"] = supply_provider_stats(state.supplies, state.supply_offers, user.id).model_dump()
        report["recent_supplies"] = [supply.id for supply in recent_supplies(state.supplies, user.id)]
    return report


def print_human(report: Dict[str, Any]) -> None:
    print(f"Services: {report['services']}  Quotes: {report['quotes']}")
    print(f"Supplies: {report['supplies']}  Packs: {report['supply_offers']}")
    print("Service status counts:")
    for status, count in sorted(report["service_status_counts"].items()):
        print(f"  - {status}: {count}")
    print("Quote stats per service provider:")
    for user_id, stats in report["service_providers"].items():
        print(
            f"  - {user_id}: total={stats['total']} pending={stats['pending']} "
            f"accepted={stats['accepted']} completed={stats['completed']}"
        )
    user = report.get("user")
    if user:
        print(f"User {user['id']} ({user['role']}):")
        for key, value in user["dashboard"].items():
            print(f"  - {key}: {value}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Replay marketplace actions over the seed data and summarize the result.")
    parser.add_argument("action_files", nargs="*", help="JSON-lines action logs. Use - for stdin.")
    parser.add_argument(
        "--actions",
        action="append",
        default=[],
        metavar="FILE",
        help="JSON-lines action log, same as a positional file. May be repeated.",
    )
    parser.add_argument("--user-id", default="", help="Add the dashboard view of this user to the report.")
    parser.add_argument("--strict", action="store_true", help="Reject actions that fail validation.")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON instead of text.")
    parser.add_argument("--json-out", default="", help="Optional path to write JSON summary.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every dispatched action.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    store = create_store(strict=args.strict or None)
    counts = replay(store, _iter_lines(args.action_files + args.actions))
    report = build_report(store.state)
    report["actions"] = counts
    if args.user_id:
        user_report = build_user_report(store.state, args.user_id)
        if user_report is None:
            print(f"Unknown user id: {args.user_id}", file=sys.stderr)
            return 2
        report["user"] = user_report

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_human(report)
        print(f"Actions applied={counts['applied']} skipped={counts['skipped']}")

    if args.json_out:
        path = Path(args.json_out)
        path.write_text(json.dumps(report, indent=2) + "\n", encoding="utf-8")
        print(f"Wrote report: {path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
