"""
Command-line entry point for exploring a business's schedule.

Loads working hours, grid configuration, appointments and holds from a
JSON file into an in-memory store and runs one query against it.

Usage:
    python main.py --data sample_data/demo_business.json hours
    python main.py --data sample_data/demo_business.json times --date 2026-10-20 --duration 30
    python main.py --data sample_data/demo_business.json busy --date 2026-10-20
    python main.py --data sample_data/demo_business.json book --date 2026-10-20 \
        --time 17:40 --contact "+55 11 99999-0000" --service haircut
    python main.py --data sample_data/demo_business.json --now 2026-10-18T12:00 busy --date 2026-10-20
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from src.config import settings
from src.schemas.scheduling_schema import Appointment, GridConfig, Hold
from src.scheduling.errors import SchedulingError
from src.scheduling.grid import validate_grid_config
from src.scheduling.store import InMemorySchedulingStore
from src.scheduling.working_hours import format_working_hours
from src.tools.availability import check_availability, get_available_times
from src.tools.booking import create_appointment
from src.tools.services import register_catalog

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_ID = "demo"


def load_store(path: Path) -> tuple[InMemorySchedulingStore, str]:
    """Build an in-memory store from a JSON fixture file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    business_id = data.get("business_id", DEFAULT_BUSINESS_ID)

    store = InMemorySchedulingStore()
    register_catalog(store)
    store.set_working_hours(business_id, data.get("working_hours"))
    if data.get("grid_config"):
        raw = GridConfig.model_validate(data["grid_config"])
        store.set_grid_config(
            business_id, validate_grid_config(raw.slot_size_minutes, raw.buffer_minutes)
        )

    for raw in data.get("appointments", []):
        store.add_appointment(Appointment.model_validate({"business_id": business_id, **raw}))
    for raw in data.get("holds", []):
        store.replace_live_hold(Hold.model_validate({"business_id": business_id, **raw}))

    logger.debug("Loaded fixture %s for business '%s'", path, business_id)
    return store, business_id


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=f"Query the appointment schedule of {settings.business_name}."
    )
    parser.add_argument(
        "--data",
        type=str,
        required=True,
        help="Path to a JSON file with working_hours, grid_config, appointments and holds.",
    )
    parser.add_argument(
        "--now",
        default=None,
        help="Evaluate as if the current time were this ISO datetime (replaying fixtures).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("hours", help="Show the configured working hours.")

    busy = sub.add_parser("busy", help="List busy intervals for a date.")
    busy.add_argument("--date", required=True, help="Date as YYYY-MM-DD.")

    times = sub.add_parser("times", help="List valid start times for a service length.")
    times.add_argument("--date", required=True, help="Date as YYYY-MM-DD.")
    times.add_argument("--duration", type=int, required=True, help="Service length in minutes.")
    times.add_argument("--no-compact", action="store_true", help="Do not collapse time ranges.")

    book = sub.add_parser("book", help="Try to book a time and print the outcome.")
    book.add_argument("--date", required=True, help="Date as YYYY-MM-DD.")
    book.add_argument("--time", required=True, help="Requested time as HH:MM.")
    book.add_argument("--contact", required=True, help="Customer phone number.")
    book.add_argument("--duration", type=int, default=None, help="Service length in minutes.")
    book.add_argument("--service", default=None, help="Catalog service id.")

    return parser


def run(args: argparse.Namespace) -> Any:
    store, business_id = load_store(Path(args.data))
    now = datetime.fromisoformat(args.now) if args.now else None

    if args.command == "hours":
        return {"working_hours": format_working_hours(store.get_working_hours(business_id))}
    if args.command == "busy":
        return check_availability(store, business_id, args.date, now=now)
    if args.command == "times":
        return get_available_times(
            store, business_id, args.date, args.duration, compact=not args.no_compact, now=now,
        )
    start = datetime.fromisoformat(f"{args.date}T{args.time}")
    return create_appointment(
        store, business_id, args.contact, start,
        duration_minutes=args.duration, service_id=args.service, now=now,
    )


def main() -> None:
    args = _build_parser().parse_args()

    data_path = Path(args.data)
    if not data_path.exists():
        logger.error("Data file not found: %s", data_path)
        sys.exit(1)

    try:
        result = run(args)
    except SchedulingError as exc:
        logger.error("Invalid data file %s: %s", data_path, exc.message)
        sys.exit(1)

    print(json.dumps(result, indent=2, ensure_ascii=False, default=str))


if __name__ == "__main__":
    main()
