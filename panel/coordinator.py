"""
Run coordination: one scrape at a time, optional self re-arming schedule.
"""
import asyncio
import functools
import logging
import random
from typing import Awaitable, Callable, Dict, List, Optional, Set

from finder.core import run_scrape
from finder.models import RankedDeal, RunResult, ScrapeParams
from finder.notify import send_notification
from finder.session import capture_session
from finder.store import ResultStore
from finder.utils import now_iso

from .config import Config
from .progress import ProgressBroker

logger = logging.getLogger(__name__)

ScrapeFn = Callable[..., Awaitable[List[RankedDeal]]]
LoginFn = Callable[..., Awaitable[int]]


def default_scrape_fn(cfg: Config) -> ScrapeFn:
    return functools.partial(
        run_scrape,
        headless=cfg.HEADLESS,
        cookies_path=cfg.COOKIES_PATH,
        profile_dir=cfg.profile_dir(),
        repair_cost=cfg.REPAIR_COST,
    )


def default_login_fn(cfg: Config) -> LoginFn:
    return functools.partial(
        capture_session,
        cfg.COOKIES_PATH,
        profile_dir=cfg.profile_dir(),
        timeout=cfg.LOGIN_TIMEOUT,
    )


class RunCoordinator:
    """
    Owns the run-in-progress flag, the live browser, the re-run timer and
    the result store.

    A start request while a run is active does not launch a second browser.
    Its parameters replace the current ones, and with an interval the next
    run is armed once the active run finishes, at
    interval * uniform(1 - jitter, 1 + jitter) seconds.
    """

    def __init__(
        self,
        store: ResultStore,
        scrape_fn: ScrapeFn,
        broker: Optional[ProgressBroker] = None,
        notify_fn: Callable = send_notification,
        uniform: Callable[[float, float], float] = random.uniform,
        login_fn: Optional[LoginFn] = None,
        stop_timeout: float = 10.0,
    ):
        self.store = store
        self.broker = broker or ProgressBroker()
        self._scrape = scrape_fn
        self._login = login_fn
        self._notify = notify_fn
        self._uniform = uniform
        self._stop_timeout = stop_timeout

        self.is_running = False
        self._params: Optional[ScrapeParams] = None
        self._scheduled = False
        self._stop_requested = False
        self._timer: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._login_task: Optional[asyncio.Task] = None
        self._closing: Set[asyncio.Task] = set()
        self._browser = None

    @property
    def scheduled(self) -> bool:
        return self._scheduled

    @property
    def current_task(self) -> Optional[asyncio.Task]:
        return self._task

    @property
    def login_task(self) -> Optional[asyncio.Task]:
        return self._login_task

    @property
    def login_pending(self) -> bool:
        return self._login_task is not None and not self._login_task.done()

    def status(self) -> Dict:
        last = self.store.last_result
        return {
            "running": self.is_running,
            "scheduled": self._scheduled,
            "next_run_pending": self._timer is not None,
            "login_pending": self.login_pending,
            "last_run": last.ts,
            "last_error": last.error,
            "deal_count": len(last.deals),
            "progress": self.broker.last,
        }

    def start(self, params: ScrapeParams) -> bool:
        """
        Run now and, with an interval, keep re-running. Must be called on the event loop.

        Returns False when a scrape or login is already active and nothing was
        launched; the new schedule still takes over once that run finishes.
        """
        self._cancel_timer()
        self._params = params
        self._scheduled = params.interval > 0
        return self._kick()

    async def stop(self) -> None:
        """
        Cancel the schedule, close the browser of an in-flight run and wait
        (up to stop_timeout seconds) for that run to unwind.
        """
        self._scheduled = False
        self._cancel_timer()
        if self.is_running:
            self._stop_requested = True
        browser, self._browser = self._browser, None
        if browser is not None:
            await self._close_browser(browser)
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=self._stop_timeout)
            if not task.done():
                logger.warning("Stopped scrape is still shutting down")
        logger.info("Scraper stopped")

    def login(self) -> bool:
        """Open a visible browser for a manual login. False while a scrape or login is active."""
        if self._login is None or self.is_running or self.login_pending:
            return False
        self._stop_requested = False
        self._login_task = asyncio.get_running_loop().create_task(self._run_login())
        return True

    def next_delay(self, params: ScrapeParams) -> float:
        return params.interval * self._uniform(1 - params.jitter, 1 + params.jitter)

    def _kick(self) -> bool:
        self._timer = None
        if self.is_running or self.login_pending:
            logger.info("Scrape or login already running, skipping this start")
            if not self.is_running:
                # a login holds the browser profile; try again after the delay
                self._arm_next()
            return False
        self.is_running = True
        self._stop_requested = False
        self._task = asyncio.get_running_loop().create_task(self._run(self._params))
        return True

    def _arm_next(self) -> None:
        params = self._params
        if not self._scheduled or params is None or params.interval <= 0 or self._timer is not None:
            return
        delay = self.next_delay(params)
        logger.info(f"Next scrape in {int(delay // 60)} minutes {int(delay % 60)} seconds")
        self._timer = asyncio.get_running_loop().call_later(delay, self._kick)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _set_browser(self, browser) -> None:
        self._browser = browser
        if browser is not None and self._stop_requested:
            task = asyncio.get_running_loop().create_task(self._close_browser(browser))
            self._closing.add(task)
            task.add_done_callback(self._closing.discard)

    async def _close_browser(self, browser) -> None:
        try:
            await browser.close()
        except Exception:
            logger.debug("Browser was already closed", exc_info=True)

    async def _run(self, params: ScrapeParams) -> None:
        try:
            deals = await self._scrape(params, progress=self.broker.emit, on_browser=self._set_browser)
            rows = [d.to_dict() for d in deals]
            self.broker.emit("saving", 95, "Saving results...")
            self.store.save_result(RunResult(deals=rows, params=params.to_dict(), ts=now_iso()))
            self._notify(self.store.notify_config, rows)
            self.broker.emit("complete", 100, f"Completed! Found {len(rows)} deals")
        except Exception as e:
            msg = "Scrape stopped" if self._stop_requested else (str(e) or e.__class__.__name__)
            logger.error(f"Scraper error: {msg}", exc_info=not self._stop_requested)
            self.store.save_result(RunResult(
                deals=[],
                params={**params.to_dict(), "error": msg},
                ts=now_iso(),
                error=msg,
            ))
            self.broker.emit("error", 100, msg)
        finally:
            self.is_running = False
            self._browser = None
            self._arm_next()

    async def _run_login(self) -> None:
        self.broker.emit("login", 0, "Log in to Facebook in the opened browser window...")
        try:
            count = await self._login(on_browser=self._set_browser)
            self.broker.emit("login", 100, f"Login saved ({count} cookies)")
        except Exception as e:
            msg = str(e) or e.__class__.__name__
            logger.error(f"Login error: {msg}", exc_info=True)
            self.broker.emit("error", 100, msg)
        finally:
            self._browser = None
