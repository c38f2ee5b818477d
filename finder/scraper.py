"""
Playwright-based page handling for the marketplace.
"""
import asyncio
import json
import logging
import os
import random
import re
from typing import Dict, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeout

from .locations import Coords, build_sold_search_url
from .utils import clean_text

logger = logging.getLogger(__name__)


ITEM_LINK_SEL = "a[href*='/marketplace/item/']"
DETAIL_WAIT_SEL = "[data-pagelet='MarketplacePDP']"
SOLD_CARD_LIMIT = 60
SCROLL_ROUNDS = 12
COOKIE_KEYS = {"name", "value", "url", "domain", "path", "expires", "httpOnly", "secure", "sameSite"}
SAME_SITE_VALUES = {"Strict", "Lax", "None"}

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
]

# Runs in the page: one entry per distinct item link, with the text of every
# span in the link's card, in DOM order.
COLLECT_CARDS_JS = """
(limit) => {
  const anchors = Array.from(document.querySelectorAll("a[href*='/marketplace/item/']"));
  const uniq = new Map();
  for (const a of anchors) {
    const href = a.getAttribute('href');
    if (href && !uniq.has(href)) uniq.set(href, a);
  }
  return Array.from(uniq.entries()).slice(0, limit).map(([href, a]) => {
    const container = a.closest('[role="article"]') || a.parentElement || a;
    const fragments = Array.from(container.querySelectorAll('span'))
      .map((s) => s.textContent || '')
      .filter(Boolean);
    return { href, fragments };
  });
}
"""

LOGIN_CHECK_JS = """
() => !!(document.querySelector('input[type="password"]') ||
         document.querySelector('input[name="email"]') ||
         window.location.href.includes('login'))
"""


class LoginRequiredError(RuntimeError):
    """The marketplace redirected to a login wall; cookies are missing or stale."""


def random_user_agent() -> str:
    return random.choice(USER_AGENTS)


def load_cookies(path: Optional[str]) -> List[Dict]:
    """Read a cookie export (browser-extension or puppeteer format)."""
    if not path or not os.path.exists(path):
        logger.info(">>> No cookies file found, a login may be required")
        return []
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError):
        logger.warning(f">>> Could not read cookies from {path}", exc_info=True)
        return []

    cookies = []
    for c in raw if isinstance(raw, list) else []:
        if not isinstance(c, dict) or "name" not in c or "value" not in c:
            continue
        cookie = {k: v for k, v in c.items() if k in COOKIE_KEYS}
        if cookie.get("sameSite") not in SAME_SITE_VALUES:
            cookie.pop("sameSite", None)
        if "url" not in cookie and "domain" not in cookie:
            cookie["domain"] = ".facebook.com"
        if "domain" in cookie:
            cookie.setdefault("path", "/")
        cookies.append(cookie)
    return cookies


def save_cookies(cookies: List[Dict], path: str) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(cookies, f, indent=2)


async def human_mouse_movement(page) -> None:
    """Wander the cursor around a bit before reading the page."""
    for _ in range(random.randint(3, 8)):
        await page.mouse.move(random.randint(100, 1000), random.randint(100, 600))
        await asyncio.sleep(random.uniform(0.1, 0.3))


async def human_scroll(page, max_scrolls: int = SCROLL_ROUNDS) -> None:
    """Scroll in uneven steps, occasionally backing up, to trigger lazy loading."""
    rounds = random.randint(int(max_scrolls * 0.7), max_scrolls)
    for _ in range(rounds):
        await page.evaluate("(amount) => window.scrollBy(0, amount)", random.randint(300, 800))
        await asyncio.sleep(random.uniform(0.5, 1.5))

        if random.random() < 0.2:
            await page.evaluate("window.scrollBy(0, -200)")
            await asyncio.sleep(random.uniform(0.3, 0.7))


async def ensure_marketplace_ready(page, timeout_ms: int = 10_000) -> bool:
    """Dismiss consent banners and wait for listing links to show up."""
    selectors = [
        "button:has-text('Allow all cookies')",
        "button:has-text('Accept all')",
        "div[role='dialog'] button:has-text('OK')",
    ]
    for sel in selectors:
        try:
            if await page.locator(sel).first.is_visible():
                await page.locator(sel).first.click(timeout=2000)
                break
        except Exception:
            pass

    try:
        await page.wait_for_selector(ITEM_LINK_SEL, timeout=timeout_ms)
        return True
    except PlaywrightTimeout:
        logger.info(">>> No listings found or page not loaded")
        return False


async def is_login_page(page) -> bool:
    return bool(await page.evaluate(LOGIN_CHECK_JS))


async def collect_cards(page, limit: int) -> List[Dict]:
    """Return up to `limit` raw cards ({"href", "fragments"}) from the page."""
    cards = await page.evaluate(COLLECT_CARDS_JS, limit)
    logger.info(f">>> Found {len(cards)} item cards on the page")
    return cards


async def collect_cards_with_retry(page, limit: int, settle: float = 3.0) -> List[Dict]:
    """Collect cards, reloading once if the frame detached mid-render."""
    for attempt in range(2):
        try:
            return await collect_cards(page, limit)
        except Exception as e:
            if attempt == 1 or "detached" not in str(e).lower():
                raise
            logger.info(">>> Frame detached, reloading page...")
            await page.reload(wait_until="domcontentloaded", timeout=30_000)
            await asyncio.sleep(settle)
    return []


async def fetch_sold_cards(page, model: str, coords: Coords, radius: int) -> List[Dict]:
    """Run a comparison search for a model key and return its cards."""
    url = build_sold_search_url(model, coords, radius)
    try:
        await page.goto(url, wait_until="networkidle", timeout=30_000)
    except PlaywrightTimeout:
        # Marketplace pages rarely go fully idle; read whatever rendered.
        logger.debug(f">>> Sold search did not settle: {url}")
    return await page.evaluate(COLLECT_CARDS_JS, SOLD_CARD_LIMIT)


async def fetch_description(page, link: str, timeout_ms: int = 25_000) -> str:
    """Open an item page and return the longest description-like block."""
    try:
        await page.goto(link, timeout=timeout_ms)
        await page.wait_for_selector(DETAIL_WAIT_SEL, timeout=timeout_ms)
        await asyncio.sleep(random.uniform(1.5, 3.0))
    except PlaywrightTimeout:
        return ""

    desc_candidates = page.locator(
        f"{DETAIL_WAIT_SEL} div[role='article'], {DETAIL_WAIT_SEL} div[data-ad-preview='message']"
    )
    texts = []
    for i in range(await desc_candidates.count()):
        texts.append(clean_text(await desc_candidates.nth(i).inner_text()))
    if not texts:
        # Fall back to the longest span that reads like prose.
        spans = page.locator(f"{DETAIL_WAIT_SEL} span[dir='auto']")
        for i in range(min(await spans.count(), 200)):
            tx = clean_text(await spans.nth(i).inner_text())
            if len(tx) > 40 and not re.search(r"^\$\s?\d", tx):
                texts.append(tx)
    return max(texts, key=len) if texts else ""
