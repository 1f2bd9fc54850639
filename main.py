"""CLI entry point for managing saved searches and their alerts."""

import argparse
import json
import logging
import sys
from collections.abc import Callable

from offer_alerts.core.config import Settings
from offer_alerts.core.db import init_db
from offer_alerts.core.errors import SavedSearchError
from offer_alerts.core.offers import load_offers
from offer_alerts.core.schemas import (
    AlertFrequency,
    ContractType,
    EducationLevel,
    JobOffer,
    RemotePolicy,
    SavedSearch,
    Weekday,
)
from offer_alerts.searches.dispatcher import OutboxDispatcher
from offer_alerts.searches.manager import SavedSearchManager


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default="config/settings.yaml",
        help="Path to settings YAML file (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )


def _choices(enum: type) -> list[str]:
    return [member.value for member in enum]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Saved searches - store offer filters and alert preferences per candidate",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # --- list ---
    list_parser = subparsers.add_parser("list", help="List an owner's saved searches")
    list_parser.add_argument("--owner", required=True, help="Owner (candidate) id")
    _add_common(list_parser)

    # --- create ---
    create_parser = subparsers.add_parser("create", help="Create a saved search")
    create_parser.add_argument("--owner", required=True, help="Owner (candidate) id")
    create_parser.add_argument("--name", required=True, help="Label of the search")
    create_parser.add_argument("--query", help="Free-text keywords")
    create_parser.add_argument(
        "--location",
        action="append",
        default=[],
        help="City, region or country (repeatable)",
    )
    create_parser.add_argument(
        "--contract-type",
        action="append",
        default=[],
        choices=_choices(ContractType),
        help="Contract type (repeatable)",
    )
    create_parser.add_argument(
        "--education-level",
        action="append",
        default=[],
        choices=_choices(EducationLevel),
        help="Education level (repeatable)",
    )
    create_parser.add_argument("--remote-policy", choices=_choices(RemotePolicy))
    create_parser.add_argument(
        "--frequency",
        choices=_choices(AlertFrequency),
        help="Alert frequency (default from config)",
    )
    create_parser.add_argument(
        "--no-alert",
        action="store_true",
        help="Save the search with alerts turned off",
    )
    create_parser.add_argument("--day", choices=_choices(Weekday), help="Preferred weekday")
    create_parser.add_argument("--hour", type=int, help="Preferred hour (0-23)")
    create_parser.add_argument(
        "--biweekly-week",
        type=int,
        choices=[1, 2],
        help="Week parity for biweekly alerts",
    )
    _add_common(create_parser)

    # --- toggle ---
    toggle_parser = subparsers.add_parser("toggle", help="Turn alerts on/off for a search")
    toggle_parser.add_argument("--owner", required=True, help="Owner (candidate) id")
    toggle_parser.add_argument("--id", required=True, help="Saved search id")
    _add_common(toggle_parser)

    # --- delete ---
    delete_parser = subparsers.add_parser("delete", help="Delete a saved search")
    delete_parser.add_argument("--owner", required=True, help="Owner (candidate) id")
    delete_parser.add_argument("--id", required=True, help="Saved search id")
    _add_common(delete_parser)

    # --- match ---
    match_parser = subparsers.add_parser("match", help="Run a saved search against offers")
    match_parser.add_argument("--owner", required=True, help="Owner (candidate) id")
    match_parser.add_argument("--id", required=True, help="Saved search id")
    match_parser.add_argument("--offers", required=True, help="Path to offers YAML file")
    _add_common(match_parser)

    # --- subscriptions ---
    subs_parser = subparsers.add_parser(
        "subscriptions",
        help="List searches with alerts on at a given frequency",
    )
    subs_parser.add_argument(
        "--frequency",
        required=True,
        choices=[f for f in _choices(AlertFrequency) if f != AlertFrequency.NEVER.value],
    )
    _add_common(subs_parser)

    return parser.parse_args(argv)


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _dump(searches: list[SavedSearch]) -> str:
    return json.dumps([s.model_dump(mode="json") for s in searches], indent=2)


def _dump_offers(offers: list[JobOffer]) -> str:
    return json.dumps([o.model_dump(mode="json") for o in offers], indent=2)


def cmd_list(manager: SavedSearchManager, args: argparse.Namespace) -> None:
    print(_dump(manager.list(args.owner)))


def cmd_create(manager: SavedSearchManager, args: argparse.Namespace) -> None:
    filters = {
        "search": args.query,
        "locations": args.location,
        "contract_types": args.contract_type,
        "education_levels": args.education_level,
        "remote_policy": args.remote_policy,
    }
    timing = {
        k: v
        for k, v in (
            ("preferred_day", args.day),
            ("preferred_hour", args.hour),
            ("biweekly_week", args.biweekly_week),
        )
        if v is not None
    }
    search = manager.create(
        args.owner,
        args.name,
        filters,
        alert_enabled=False if args.no_alert else None,
        alert_frequency=args.frequency,
        timing=timing,
    )
    print(_dump([search]))


def cmd_toggle(manager: SavedSearchManager, args: argparse.Namespace) -> None:
    print(_dump([manager.toggle_alert(args.owner, args.id)]))


def cmd_delete(manager: SavedSearchManager, args: argparse.Namespace) -> None:
    manager.delete(args.owner, args.id)
    print(f"Deleted saved search {args.id}")


def cmd_match(manager: SavedSearchManager, args: argparse.Namespace) -> None:
    offers = load_offers(args.offers)
    matched = manager.execute(args.owner, args.id, offers)
    print(_dump_offers(matched))


def cmd_subscriptions(manager: SavedSearchManager, args: argparse.Namespace) -> None:
    print(_dump(manager.subscriptions(args.frequency)))


_COMMANDS: dict[str, Callable[[SavedSearchManager, argparse.Namespace], None]] = {
    "list": cmd_list,
    "create": cmd_create,
    "toggle": cmd_toggle,
    "delete": cmd_delete,
    "match": cmd_match,
    "subscriptions": cmd_subscriptions,
}


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        settings = Settings.from_yaml(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    conn = init_db(settings.database.path)
    try:
        manager = SavedSearchManager(conn, settings.alerts, OutboxDispatcher(conn))
        _COMMANDS[args.command](manager, args)
    except (SavedSearchError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        conn.close()


if __name__ == "__main__":
    main()
