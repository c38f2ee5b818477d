"""
Interactive Facebook login: open a visible browser and save the session cookies.
"""
import asyncio
import logging
import os
from typing import Callable, Dict, Iterable, List, Optional

from playwright.async_api import TimeoutError as PlaywrightTimeout
from playwright.async_api import async_playwright

from .scraper import LoginRequiredError, save_cookies

logger = logging.getLogger(__name__)

LOGIN_URL = "https://www.facebook.com/marketplace"
SESSION_COOKIES = ("c_user", "xs")
LOGIN_TIMEOUT = 20 * 60
POLL_SECONDS = 2.0


def has_session(cookies: Iterable[Dict]) -> bool:
    """True once the browser holds an authenticated Facebook session."""
    names = {c.get("name") for c in cookies}
    return any(name in names for name in SESSION_COOKIES)


async def wait_for_session(
    context,
    cookies_path: str,
    timeout: float = LOGIN_TIMEOUT,
    poll: float = POLL_SECONDS,
) -> List[Dict]:
    """
    Poll the context's cookies until a session shows up, then save them.

    Raises LoginRequiredError when the timeout passes without a login.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        cookies = await context.cookies()
        if has_session(cookies):
            save_cookies(cookies, cookies_path)
            logger.info(f">>> Saved {len(cookies)} cookies with a session to {cookies_path}")
            return cookies
        if loop.time() >= deadline:
            raise LoginRequiredError("Login timeout - no authentication detected")
        await asyncio.sleep(poll)


async def capture_session(
    cookies_path: str,
    profile_dir: Optional[str] = None,
    timeout: float = LOGIN_TIMEOUT,
    on_browser: Optional[Callable[[object], None]] = None,
) -> int:
    """
    Open the marketplace in a visible browser and wait for the user to log in.

    With a profile directory the browser keeps its state there, so later
    scrapes using the same profile stay logged in as well.
    """
    launch_args = ["--disable-blink-features=AutomationControlled"]
    async with async_playwright() as p:
        if profile_dir:
            os.makedirs(profile_dir, exist_ok=True)
            browser = context = await p.chromium.launch_persistent_context(
                profile_dir, headless=False, args=launch_args, locale="en-US",
            )
        else:
            browser = await p.chromium.launch(headless=False, args=launch_args)
            context = await browser.new_context(locale="en-US")
        if on_browser:
            on_browser(browser)
        try:
            page = context.pages[0] if context.pages else await context.new_page()
            try:
                await page.goto(LOGIN_URL, wait_until="domcontentloaded", timeout=60_000)
            except PlaywrightTimeout:
                logger.info(">>> Login page did not finish loading, continuing")
            logger.info(">>> Log in to Facebook in the opened window; cookies are saved automatically.")
            cookies = await wait_for_session(context, cookies_path, timeout=timeout)
        finally:
            try:
                await browser.close()
            except Exception:
                logger.debug(">>> Browser already closed")
            if on_browser:
                on_browser(None)
    return len(cookies)
