# connects input (city -> search) to the session and prints the rows and notices

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional
from .config import load_settings
from .errors import ConfigurationError
from .service import ForecastSession

logger = logging.getLogger(__name__)

PROMPT = "City: "


def _print_rows(session: ForecastSession) -> None:
    for line in session.view.render():
        print(line)


def _run_once(
    session: ForecastSession, city: str, notices: List[str], timeout: float, icon_timeout: float
) -> int:
    if session.search(city) is None:
        return 1
    if not session.wait_for_search(timeout=timeout):
        print("Timed out waiting for the forecast", file=sys.stderr)
        return 1
    if notices:
        return 1
    # icons are cosmetic, rows still print without the ones that did not arrive in time
    if not session.wait_for_icons(timeout=icon_timeout):
        logger.info("Printing rows with %d icons still loading", session.view.pending_icons)
    _print_rows(session)
    return 0


def _run_interactive(session: ForecastSession, notices: List[str], timeout: float, icon_timeout: float) -> int:
    while True:
        try:
            city = input(PROMPT)
        except EOFError:
            return 0
        if not city:
            return 0
        notices.clear()
        _run_once(session, city, notices, timeout, icon_timeout)
        # after a failure the previous forecast is still the one on screen
        if notices and len(session.forecast):
            _print_rows(session)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="weatherviewer",
        description="Show the 16-step OpenWeatherMap forecast for a city",
    )
    parser.add_argument("city", nargs="?", help="City name; prompts repeatedly when omitted")
    parser.add_argument("--rows", type=int, default=16, help="Visible rows (default: 16)")
    parser.add_argument("--timeout", type=float, default=30.0, help="Seconds to wait for a search (default: 30)")
    parser.add_argument("--icon-timeout", type=float, default=5.0, help="Seconds to wait for row icons (default: 5)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr")
    args = parser.parse_args(argv)
    if args.rows < 1:
        parser.error("--rows must be at least 1")

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    notices: List[str] = []

    def show_notice(message: str) -> None:
        notices.append(message)
        print(message, file=sys.stderr)

    session = ForecastSession(settings, on_notice=show_notice, rows=args.rows)
    try:
        if args.city is not None:
            return _run_once(session, args.city, notices, args.timeout, args.icon_timeout)
        return _run_interactive(session, notices, args.timeout, args.icon_timeout)
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
