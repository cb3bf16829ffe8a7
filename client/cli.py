"""
Command line front end for the capture client.

Reads the identifier from a page URL's query string, captures a position
from a fix file or from coordinates given on the command line, submits it
and prints the resulting status.

Usage:
    python -m client "https://example.org/?crate_int_id=12345" --fix-file fix.json
    python -m client "https://example.org/?crate_int_id=12345" --lat 51.5 --lng -0.12
"""

import argparse
import asyncio
import sys
from typing import List, Optional
from urllib.parse import parse_qs, urlsplit

from client.capture import CaptureFlow, CaptureState, CaptureStatus, TeardownFlush
from client.position import FixFileProvider, PositionOptions
from logic.config import configure_logging, get_settings

# Checked in priority order
IDENTIFIER_PARAMS = ("crate_int_id", "crate_id", "id")


def identifier_from_url(url: str) -> str:
    """Extract the identifier from a URL's query parameters.

    Args:
        url: Page URL, or a bare query string starting with "?".

    Returns:
        The first non-empty value among IDENTIFIER_PARAMS, or "".
    """
    query = urlsplit(url).query if not url.startswith("?") else url[1:]
    params = parse_qs(query, keep_blank_values=True)
    for name in IDENTIFIER_PARAMS:
        values = params.get(name)
        if values and values[0]:
            return values[0]
    return ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m client",
        description="Capture a position and submit it for an identifier",
    )
    parser.add_argument(
        "url",
        help="Page URL carrying the identifier, e.g. ?crate_int_id=12345",
    )
    parser.add_argument(
        "--fix-file",
        help="JSON file holding the latest position fix (gpsd TPV or report keys)",
    )
    parser.add_argument("--lat", help="Latitude for manual entry")
    parser.add_argument("--lng", help="Longitude for manual entry")
    parser.add_argument(
        "--submit-url",
        help="Submission endpoint (default: SUBMIT_URL)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        help="Retries after the first attempt (default: SUBMIT_RETRIES)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for a position fix",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


async def run_capture(args: argparse.Namespace) -> CaptureState:
    """Run the automatic flow, then manual entry if it did not succeed.

    Args:
        args: Parsed command line arguments.

    Returns:
        The final CaptureState.
    """
    settings = get_settings()
    url = args.submit_url or settings.submit_url
    state = CaptureState()
    provider = FixFileProvider(args.fix_file) if args.fix_file else None
    flow = CaptureFlow(
        identifier_from_url(args.url),
        provider=provider,
        state=state,
        options=PositionOptions(timeout=args.timeout),
        retries=args.retries,
        url=url,
    )
    teardown = TeardownFlush(state, url=url)

    status = await flow.run()
    manual = args.lat is not None or args.lng is not None
    if manual and status not in (CaptureStatus.SENT, CaptureStatus.MISSING_ID, CaptureStatus.INVALID_ID):
        await flow.submit_manual(args.lat or "", args.lng or "")

    teardown.flush()
    await teardown.drain()
    return state


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the capture client.

    Returns:
        Exit code: 0 when the report was sent, 1 otherwise.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)

    try:
        state = asyncio.run(run_capture(args))
    except KeyboardInterrupt:
        print("\nAborted by user")
        return 130

    print(f"Status: {state.status.value}")
    if state.last_report is not None:
        report = state.last_report
        accuracy = "n/a" if report.accuracy is None else report.accuracy
        print(f"Latitude: {report.latitude}")
        print(f"Longitude: {report.longitude}")
        print(f"Accuracy: {accuracy} meters")
    if state.error:
        print(f"Error: {state.error}", file=sys.stderr)

    return 0 if state.status is CaptureStatus.SENT else 1
