"""Command line access to the HiSAFE quote queue."""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
from urllib.parse import parse_qsl, urlsplit

from quotedesk.auth.pkce import AuthRedirect
from quotedesk.client.gateway import GatewayError
from quotedesk.core.config import HiSafeConfig
from quotedesk.core.logging import configure_logging
from quotedesk.core.models import QUOTE_STATUSES, QuoteRequest
from quotedesk.export.sinks import push_to_google_sheets, resolve_sheets_target, write_csv, write_excel
from quotedesk.export.templates import quotes_to_rows
from quotedesk.quotes.review import filter_quotes
from quotedesk.quotes.service import QuotesService

logger = logging.getLogger(__name__)

EXIT_GATEWAY_ERROR = 1
EXIT_AUTH_REQUIRED = 2


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with one sub-command per operation."""

    parser = argparse.ArgumentParser(description="Work the HiSAFE quote request queue")
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in, or finish signing in with the callback URL")
    login.add_argument(
        "--callback-url",
        help="The full URL HiSAFE redirected the browser to after sign-in",
    )
    commands.add_parser("logout", help="Forget the stored token and print the sign-out URL")

    list_cmd = commands.add_parser("list", help="List quote requests")
    list_cmd.add_argument("--status", choices=QUOTE_STATUSES, help="Only show one status")

    search = commands.add_parser("search", help="Search by client, e-mail, description, or type")
    search.add_argument("term")

    commands.add_parser("stats", help="Show queue statistics")
    commands.add_parser("check", help="Test the HiSAFE connection")

    export = commands.add_parser("export", help="Export quote requests")
    export.add_argument("--sink", choices=["csv", "excel", "sheets"], default="csv")
    export.add_argument("--status", choices=QUOTE_STATUSES, help="Only export one status")
    export.add_argument(
        "--output",
        type=Path,
        default=Path("output/quotes.csv"),
        help="CSV file to write when --sink=csv",
    )
    export.add_argument(
        "--excel-output",
        type=Path,
        default=Path("output/quotes.xlsx"),
        help="Excel file to write when --sink=excel",
    )
    export.add_argument("--spreadsheet-id", help="Google Sheets spreadsheet ID for the sheets sink")
    export.add_argument("--worksheet", help="Worksheet title inside the Google Sheets document")
    export.add_argument(
        "--service-account",
        type=Path,
        help="Path to a Google service account JSON key used for Sheets pushes",
    )
    return parser


def _format_quote(quote: QuoteRequest) -> str:
    cost = f"{quote.estimated_cost:.2f}" if quote.estimated_cost is not None else "-"
    return f"{quote.id:>8}  {quote.status:<10}  {quote.client_name:<30}  {quote.client_email:<30}  {cost}"


def _print_quotes(quotes: List[QuoteRequest]) -> None:
    for quote in quotes:
        print(_format_quote(quote))
    print(f"{len(quotes)} quote(s)")


def _login(service: QuotesService, callback_url: Optional[str]) -> int:
    params = dict(parse_qsl(urlsplit(callback_url).query)) if callback_url else None
    service.authenticator.ensure_authenticated(params)
    user = service.current_user()
    print(f"Signed in as {user.get('name') or 'unknown user'}")
    return 0


def _logout(service: QuotesService) -> int:
    try:
        service.authenticator.logout()
    except AuthRedirect as redirect:
        print("Signed out. To sign in again, open:")
        print(redirect.url)
    return 0


def _export(service: QuotesService, args: argparse.Namespace) -> int:
    quotes = service.list_quotes()
    if args.status:
        quotes = filter_quotes(quotes, statuses=[args.status])
    rows = quotes_to_rows(quotes)

    if args.sink == "excel":
        write_excel(rows, args.excel_output)
        print(f"Wrote {len(rows)} quotes to {args.excel_output}")
    elif args.sink == "sheets":
        target = resolve_sheets_target(args.spreadsheet_id, args.worksheet, args.service_account)
        push_to_google_sheets(rows, **target)
        print(f"Pushed {len(rows)} quotes to worksheet '{target['worksheet_title']}'")
    else:
        write_csv(rows, args.output)
        print(f"Wrote {len(rows)} quotes to {args.output}")
    return 0


def run(args: argparse.Namespace, service: QuotesService) -> int:
    """Dispatch one parsed command; returns the process exit status."""

    try:
        if args.command == "login":
            return _login(service, args.callback_url)
        if args.command == "logout":
            return _logout(service)
        if args.command == "list":
            quotes = service.list_quotes()
            _print_quotes(filter_quotes(quotes, statuses=[args.status] if args.status else None))
        elif args.command == "search":
            _print_quotes(service.search_quotes(args.term))
        elif args.command == "stats":
            for key, value in service.get_stats().to_dict().items():
                print(f"{key}: {value}")
        elif args.command == "check":
            if not service.test_connection():
                print("HiSAFE connection failed")
                return EXIT_GATEWAY_ERROR
            print("HiSAFE connection OK")
        elif args.command == "export":
            return _export(service, args)
    except AuthRedirect as redirect:
        if redirect.reason:
            print(redirect.reason, file=sys.stderr)
        print("Sign in to HiSAFE by opening:")
        print(redirect.url)
        print("Then run: quotedesk login --callback-url '<the URL you were sent back to>'")
        return EXIT_AUTH_REQUIRED
    except GatewayError as exc:
        print(str(exc), file=sys.stderr)
        return EXIT_GATEWAY_ERROR

    for alert in service.alerts:
        logger.warning("Alert: %s", alert)
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Entrypoint for the ``quotedesk`` console script."""

    configure_logging()
    args = build_parser().parse_args(argv)
    service = QuotesService.from_config(HiSafeConfig.from_env())
    sys.exit(run(args, service))


if __name__ == "__main__":
    main()
