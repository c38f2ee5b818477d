"""
Core scraping orchestration and browser management.
"""
import asyncio
import logging
import os
import random
from dataclasses import replace
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

from playwright.async_api import async_playwright

from .extract import KNOWN_BRANDS, build_listing, extract_model
from .filters import apply_filters, filter_by_title
from .locations import build_search_url, resolve_location
from .models import Listing, RankedDeal, ScrapeParams
from .pricing import DEFAULT_REPAIR_COST, estimate_sold_history, rank_deal, rank_deals
from .scraper import (
    LoginRequiredError,
    collect_cards_with_retry,
    ensure_marketplace_ready,
    fetch_description,
    fetch_sold_cards,
    human_mouse_movement,
    human_scroll,
    is_login_page,
    load_cookies,
    random_user_agent,
)

logger = logging.getLogger(__name__)

ProgressFn = Callable[[str, int, str], None]
BrowserHook = Callable[[object], None]


def _noop_progress(stage: str, progress: int, message: str) -> None:
    logger.debug(f"[{stage} {progress}%] {message}")


async def process_cards(
    cards: Iterable[Dict],
    params: ScrapeParams,
    fetch_sold: Optional[Callable[[str], Awaitable[List[Dict]]]] = None,
    fetch_desc: Optional[Callable[[str], Awaitable[str]]] = None,
    repair_cost: float = DEFAULT_REPAIR_COST,
    brands: Iterable[str] = KNOWN_BRANDS,
    progress: ProgressFn = _noop_progress,
) -> List[RankedDeal]:
    """
    Turn raw cards into ranked deals.

    Everything past card extraction lives here, so it runs the same against a
    live page or against canned cards.
    """
    listings = [l for l in (build_listing(c) for c in cards) if l]

    progress("filtering", 70, "Filtering results...")
    if params.description_keywords and fetch_desc:
        # Descriptions cost a page load each; only fetch for title matches.
        candidates = filter_by_title(listings, params.title_keywords)
        enriched: List[Listing] = []
        for lst in candidates:
            try:
                desc = await fetch_desc(lst.link)
            except Exception:
                logger.debug(f">>> Description fetch failed for {lst.link}", exc_info=True)
                desc = ""
            enriched.append(replace(lst, description=desc))
        listings = enriched

    listings = apply_filters(listings, params)
    logger.info(f">>> {len(listings)} listings left after filtering")

    brands = list(brands)
    models = {l.link: extract_model(l.title, brands) for l in listings}

    stats = {}
    if params.sold_history and fetch_sold and listings:
        def on_key(i: int, total: int, key: str) -> None:
            pct = 75 + int(15 * (i - 1) / max(total, 1))
            progress("sold-history", pct, f"Checking prices for '{key}' ({i}/{total})...")

        stats = await estimate_sold_history(models.values(), fetch_sold, on_key=on_key)

    progress("ranking", 92, "Ranking deals...")
    deals = [
        rank_deal(l, models[l.link], stats.get(models[l.link]) if params.sold_history else None, repair_cost)
        for l in listings
    ]
    return rank_deals(deals)


async def run_scrape(
    params: ScrapeParams,
    headless: bool = True,
    cookies_path: Optional[str] = None,
    profile_dir: Optional[str] = None,
    repair_cost: float = DEFAULT_REPAIR_COST,
    brands: Iterable[str] = KNOWN_BRANDS,
    progress: Optional[ProgressFn] = None,
    on_browser: Optional[BrowserHook] = None,
) -> List[RankedDeal]:
    """
    Main scraping orchestration function.

    Launches the browser, loads the marketplace for the requested location,
    collects the rendered cards and hands them to process_cards. The browser
    is always closed before returning. With a profile directory the browser
    state (including a login made through capture_session) persists there.
    Progress stops at "ranking"; the caller reports completion once the
    result is stored.
    """
    progress = progress or _noop_progress
    coords = resolve_location(params.location)
    target_url = build_search_url(params.keywords, coords, params.radius)
    logger.info(f">>> Using location: {coords.name} ({coords.lat}, {coords.lng})")
    logger.info(f">>> Target URL: {target_url}")

    is_headless = bool(headless) or os.getenv("HEADLESS", "").strip().lower() in ("1", "true")
    launch_args = ["--disable-blink-features=AutomationControlled"]
    if is_headless:
        launch_args += ["--disable-dev-shm-usage", "--no-sandbox", "--disable-gpu"]
    context_opts = dict(
        viewport={"width": random.randint(1200, 1400), "height": random.randint(700, 900)},
        user_agent=random_user_agent(),
        locale="en-US",
        geolocation={"latitude": coords.lat, "longitude": coords.lng, "accuracy": 100},
        permissions=["geolocation"],
    )

    progress("starting", 0, "Launching browser...")
    async with async_playwright() as p:
        if profile_dir:
            os.makedirs(profile_dir, exist_ok=True)
            browser = context = await p.chromium.launch_persistent_context(
                profile_dir, headless=is_headless, args=launch_args, **context_opts
            )
        else:
            browser = await p.chromium.launch(headless=is_headless, args=launch_args)
            context = None
        if on_browser:
            on_browser(browser)
        try:
            if context is None:
                context = await browser.new_context(**context_opts)
            context.set_default_timeout(30_000)
            context.set_default_navigation_timeout(45_000)

            cookies = load_cookies(cookies_path)
            if cookies:
                await context.add_cookies(cookies)
                logger.info(f">>> Loaded {len(cookies)} cookies from {cookies_path}")

            page = await context.new_page()
            await asyncio.sleep(random.uniform(1.0, 3.0))

            progress("loading", 10, f"Loading marketplace page for {coords.name}...")
            await page.goto(target_url, wait_until="networkidle", timeout=120_000)
            await asyncio.sleep(random.uniform(2.0, 4.0))
            await human_mouse_movement(page)

            if await is_login_page(page):
                raise LoginRequiredError("Login required - log in to Facebook and export cookies before scraping")

            progress("scrolling", 20, "Loading more listings...")
            await ensure_marketplace_ready(page)
            await human_scroll(page)
            await asyncio.sleep(random.uniform(1.0, 2.0))

            progress("extracting", 30, "Extracting listing data...")
            cards = await collect_cards_with_retry(page, params.limit)

            async def fetch_sold(model: str) -> List[Dict]:
                cards = await fetch_sold_cards(page, model, coords, params.radius)
                await asyncio.sleep(random.uniform(0.8, 1.5))
                return cards

            async def fetch_desc(link: str) -> str:
                desc = await fetch_description(page, link)
                await asyncio.sleep(random.uniform(0.8, 1.2))
                return desc

            deals = await process_cards(
                cards, params,
                fetch_sold=fetch_sold,
                fetch_desc=fetch_desc,
                repair_cost=repair_cost,
                brands=brands,
                progress=progress,
            )
            if context is not browser:
                await context.close()
        finally:
            try:
                await browser.close()
            except Exception:
                logger.debug(">>> Browser already closed")
            if on_browser:
                on_browser(None)

    return deals
