"""
ELD trip planner command-line client.

Usage:
    eld-client login --username driver1
    eld-client plan --current "Joliet, IL" --pickup "Chicago, IL" --dropoff "Dallas, TX" --cycle-hours 12
    eld-client logs 42 --day 2
    eld-client pdf 42 --day 2 --out day2.pdf

Environment Variables:
    ELD_CLIENT_API_BASE_URL     - Backend API base URL (default: http://localhost:8000/api)
    ELD_CLIENT_CREDENTIALS_FILE - Where tokens are kept between runs
    ELD_CLIENT_LOG_LEVEL        - Logging level (default: INFO)
"""
import argparse
import asyncio
import getpass
import logging
import os
import sys
from typing import Optional

import pydantic
import structlog

from eld_client.client import TripPlannerClient
from eld_client.config import get_settings
from eld_client.errors import AssetFetchError, AuthExpired, ClientError, ValidationError
from eld_client.schemas import LogSheet, TripCreate
from eld_client.services.credentials import CredentialStore, display_username
from eld_client.services.log_pager import LogPager
from eld_client.services.mapper import map_planned_trip, route_summary

DEFAULT_CREDENTIALS_PATH = os.path.join(os.path.expanduser("~"), ".eld_client", "credentials.json")


def configure_logging(level: str = "INFO"):
    """Structured JSON logs on stderr; stdout is kept for command output."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        stream=sys.stderr,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def session_expired(login_url: str):
    print(f"Session expired. Run `eld-client login` to sign in again ({login_url}).", file=sys.stderr)


# ============ Commands ============

async def cmd_register(client: TripPlannerClient, args) -> int:
    password = args.password or getpass.getpass("Password: ")
    await client.register(args.username, password, args.email)
    print(f"Registered {args.username}. Run `eld-client login` to sign in.")
    return 0


async def cmd_login(client: TripPlannerClient, args) -> int:
    password = args.password or getpass.getpass("Password: ")
    await client.login(args.username, password)
    print(f"Logged in as {display_username(client.store)}")
    return 0


async def cmd_logout(client: TripPlannerClient, args) -> int:
    client.logout()
    print("Logged out")
    return 0


async def cmd_whoami(client: TripPlannerClient, args) -> int:
    if not client.is_authenticated:
        print("Not logged in")
        return 1
    print(display_username(client.store))
    return 0


async def cmd_trips(client: TripPlannerClient, args) -> int:
    trips = await client.list_trips()
    if not trips:
        print("No trips")
    for trip in trips:
        print(f"#{trip.id}: {trip.pickup_location} -> {trip.dropoff_location} "
              f"(cycle used {trip.current_cycle_hours:g} h)")
    return 0


async def cmd_plan(client: TripPlannerClient, args) -> int:
    trip = TripCreate(
        current_location=args.current,
        pickup_location=args.pickup,
        dropoff_location=args.dropoff,
        current_cycle_hours=args.cycle_hours,
    )
    planned = await client.create_and_plan_trip(trip)
    route = map_planned_trip(planned)
    nested = planned.get("trip")
    trip_id = planned.get("id") or (nested.get("id") if isinstance(nested, dict) else nested)
    print(f"Trip #{trip_id} planned")
    if route is None:
        print("Backend returned no route data")
        return 1

    summary = route_summary(route)
    print(f"  Distance: {summary['total_distance']:,.0f} miles")
    print(f"  Duration: {summary['total_duration']} hours")
    print(f"  Rest stops: {summary['rest_stops']}  Fuel stops: {summary['fuel_stops']}")
    for point in route.points:
        line = f"  {point.type:<8} {point.location}  {point.time:%a %b %d %H:%M}"
        if point.duration:
            line += f"  ({point.duration:g} min)"
        print(line)
    return 0


def _print_sheet(pager: LogPager, sheet: LogSheet):
    print(f"Day {pager.current_day_index + 1} of {len(pager)} - {sheet.date}")
    for entry in sheet.entries:
        print(f"  {entry.start}-{entry.end}  {entry.status:<10} {entry.location}  {entry.notes}")
    print(f"  Driving {sheet.driving_hours:g} h | On duty {sheet.on_duty_hours:g} h | "
          f"Off duty {sheet.off_duty_hours:g} h | Sleeper {sheet.sleeper_hours:g} h | "
          f"Cycle remaining {sheet.cycle_remaining:g} h")
    if sheet.duty_status_changes:
        print("  Duty status changes:")
        for change in sheet.duty_status_changes:
            print(f"    {change.label:<10} {change.start_time or ''} - {change.end_time or ''}  {change.location}")
    print(f"  Grid image: {'available' if pager.current_asset else 'unavailable'}")


async def _load_day(client: TripPlannerClient, args) -> Optional[LogPager]:
    pager = LogPager(client)
    await pager.load(args.trip_id)
    if not len(pager):
        print(f"No logs for trip #{args.trip_id}")
        return None
    for _ in range(args.day - 1):
        pager.next_day()
    return pager


async def cmd_logs(client: TripPlannerClient, args) -> int:
    pager = await _load_day(client, args)
    if pager is None:
        return 1
    _print_sheet(pager, pager.current_sheet)
    return 0


async def cmd_pdf(client: TripPlannerClient, args) -> int:
    pager = await _load_day(client, args)
    if pager is None:
        return 1
    asset = await pager.download_pdf()
    out = args.out or LogPager.pdf_filename(pager.current_sheet)
    with open(out, 'wb') as f:
        f.write(asset.content)
    print(f"Saved {out}")
    return 0


COMMANDS = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "trips": cmd_trips,
    "plan": cmd_plan,
    "logs": cmd_logs,
    "pdf": cmd_pdf,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="eld-client",
        description="ELD trip planner client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("register", help="Create an account")
    p.add_argument("--username", required=True)
    p.add_argument("--email", required=True)
    p.add_argument("--password", help="Prompted for if omitted")

    p = sub.add_parser("login", help="Sign in and store tokens")
    p.add_argument("--username", required=True)
    p.add_argument("--password", help="Prompted for if omitted")

    sub.add_parser("logout", help="Forget stored tokens")
    sub.add_parser("whoami", help="Show the signed-in user")
    sub.add_parser("trips", help="List trips")

    p = sub.add_parser("plan", help="Create and plan a trip")
    p.add_argument("--current", required=True, help="Current location")
    p.add_argument("--pickup", required=True, help="Pickup location")
    p.add_argument("--dropoff", required=True, help="Dropoff location")
    p.add_argument("--cycle-hours", type=float, default=0.0, help="Hours used in current cycle")

    for name, help_text in (("logs", "Show one day of a trip's ELD logs"),
                            ("pdf", "Download one day's log as PDF")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("trip_id")
        p.add_argument("--day", type=int, default=1, help="Day number, starting at 1")
        if name == "pdf":
            p.add_argument("--out", help="Output file (default: eld-log-<date>.pdf)")

    return parser


async def run(args, client: Optional[TripPlannerClient] = None) -> int:
    """Run one command. Returns the process exit code."""
    if client is None:
        settings = get_settings()
        store = CredentialStore(settings.credentials_file or DEFAULT_CREDENTIALS_PATH)
        client = TripPlannerClient(settings, store=store, on_auth_expired=session_expired)

    async with client:
        try:
            return await COMMANDS[args.command](client, args)
        except AuthExpired:
            # Redirect hook has already told the user
            return 2
        except ValidationError as e:
            print(f"Error: {e.detail}", file=sys.stderr)
            return 1
        except AssetFetchError as e:
            print(f"Error: {e.reason}", file=sys.stderr)
            return 1
        except ClientError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        except pydantic.ValidationError as e:
            print(f"Invalid input: {e}", file=sys.stderr)
            return 1


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    configure_logging(get_settings().log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
