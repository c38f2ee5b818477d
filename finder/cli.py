"""
Command line entry point: one scrape pass written to CSV/JSON, or a cookie login.
"""
import argparse
import asyncio
import os

from .core import run_scrape
from .export import save_output_rows
from .models import RunResult, ScrapeParams
from .pricing import DEFAULT_REPAIR_COST
from .session import capture_session
from .store import ResultStore
from .utils import init_logger, now_iso, user_data_dir


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="Marketplace deal finder: scrape listings and rank them by resale margin")
    ap.add_argument("--keywords", type=str, default="", help="Search query, e.g. 'riding mower'")
    ap.add_argument("--location", type=str, default="37138", help="Zip code, city key (e.g. 'nashville') or 'lat,lng'")
    ap.add_argument("--radius", type=int, default=50, help="Search radius")
    ap.add_argument("--limit", type=int, default=10, help="Maximum listings to keep (1-100)")
    ap.add_argument("--min-price", type=float, default=None, help="Minimum asking price")
    ap.add_argument("--max-price", type=float, default=None, help="Maximum asking price")
    ap.add_argument("--title-keywords", type=str, default="", help="Comma separated words, any must appear in the title")
    ap.add_argument("--description-keywords", type=str, default="",
                    help="Comma separated words, any must appear in the description (visits each item page)")
    ap.add_argument("--no-sold-history", action="store_true", help="Skip the comparison searches")
    ap.add_argument("--repair-cost", type=float, default=DEFAULT_REPAIR_COST, help="Flat cost subtracted from profit estimates")
    ap.add_argument("--headless", action="store_true", help="Run without UI")
    ap.add_argument("--cookies", type=str, default=os.getenv("MPF_COOKIES", "cookies.json"), help="Path to cookies.json")
    ap.add_argument("--profile-dir", type=str, default=os.getenv("MPF_PROFILE_DIR"),
                    help="Persistent browser profile directory shared by login and scrapes")
    ap.add_argument("--out", type=str, default="marketplace_results.csv", help="CSV file to write")
    ap.add_argument("--save-snapshot", action="store_true",
                    help="Also store the run as the control panel's latest results")
    ap.add_argument("--login", action="store_true",
                    help="Open a browser, wait for you to log in and save the session cookies")
    # Logging
    lvl_choices = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    ap.add_argument("--log-level", choices=lvl_choices, default=None,
                    help="Global log level for both console and file (overrides --log-console/--log-file).")
    ap.add_argument("--log-console", choices=lvl_choices, default=os.getenv("LOG_CONSOLE", "INFO"),
                    help="Console log level (default from env LOG_CONSOLE or INFO).")
    ap.add_argument("--log-file", choices=lvl_choices, default=os.getenv("LOG_FILE", "DEBUG"),
                    help="File log level (default from env LOG_FILE or DEBUG).")
    ap.add_argument("--log-file-path", default=os.getenv("LOG_FILE_PATH", "finder.log"),
                    help="Path to log file (default from env LOG_FILE_PATH or finder.log).")
    ap.add_argument("--no-file-log", action="store_true",
                    help="Disable file logging (only console output).")
    return ap.parse_args(argv)


def params_from_args(args) -> ScrapeParams:
    return ScrapeParams(
        keywords=args.keywords,
        location=args.location,
        radius=args.radius,
        limit=args.limit,
        min_price=args.min_price,
        max_price=args.max_price,
        title_keywords=args.title_keywords,
        description_keywords=args.description_keywords,
        sold_history=not args.no_sold_history,
    )


def main(argv=None):
    args = parse_args(argv)
    eff_console = args.log_level or args.log_console
    eff_file = args.log_level or args.log_file
    logger = init_logger(
        console_level=eff_console,
        file_level=eff_file,
        log_file=None if args.no_file_log else args.log_file_path
    )

    if args.login:
        n = asyncio.run(capture_session(args.cookies, profile_dir=args.profile_dir))
        logger.info(f">>> Saved {n} cookies to {args.cookies}")
        return

    params = params_from_args(args)
    run_started_iso = now_iso()
    logger.info(f">>> Run started at {run_started_iso}")

    deals = asyncio.run(run_scrape(
        params,
        headless=args.headless,
        cookies_path=args.cookies,
        profile_dir=args.profile_dir,
        repair_cost=args.repair_cost,
    ))
    rows = [d.to_dict() for d in deals]
    logger.info(f">>> Completed! Found {len(rows)} deals")
    save_output_rows(rows, args.out)

    if args.save_snapshot:
        store = ResultStore(user_data_dir())
        store.save_result(RunResult(deals=rows, params=params.to_dict(), ts=now_iso()))
        logger.info(f">>> Snapshot written to {store.results_path}")


if __name__ == "__main__":
    main()
