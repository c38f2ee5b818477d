"""
Tests for the run coordinator: single-flight runs, errors, schedule, stop.
"""
import asyncio

from finder.models import Listing, RunResult, ScrapeParams, SoldStats
from finder.pricing import rank_deal
from finder.store import ResultStore

from panel.coordinator import RunCoordinator


def a_deal(price=200):
    listing = Listing(
        title="Toro TimeCutter",
        price_text=f"${price}",
        link="https://www.facebook.com/marketplace/item/42/",
        item_id="42",
        price_value=price,
    )
    return rank_deal(listing, "toro timecutter", SoldStats(count=5, average=250, low=200, high=300))


class FakeBrowser:
    def __init__(self):
        self.closed = asyncio.Event()

    async def close(self):
        self.closed.set()


def make_coordinator(tmp_path, scrape_fn, **kwargs):
    notified = []
    coordinator = RunCoordinator(
        ResultStore(str(tmp_path)),
        scrape_fn,
        notify_fn=lambda cfg, rows: notified.append(rows),
        **kwargs,
    )
    return coordinator, notified


def test_successful_run_saves_snapshot_and_notifies(tmp_path):
    async def scrape(params, progress, on_browser):
        progress("extracting", 30, "Extracting listing data...")
        return [a_deal()]

    async def scenario():
        coordinator, notified = make_coordinator(tmp_path, scrape)
        assert coordinator.start(ScrapeParams(keywords="mower")) is True
        assert not coordinator.scheduled
        assert coordinator.is_running
        await coordinator.current_task
        return coordinator, notified

    coordinator, notified = asyncio.run(scenario())

    result = coordinator.store.last_result
    assert not coordinator.is_running
    assert result.error is None
    assert result.params["keywords"] == "mower"
    assert result.deals[0]["margin_percent"] == 20.0
    assert notified == [result.deals]
    assert coordinator.broker.last["stage"] == "complete"

    reloaded = ResultStore(str(tmp_path))
    reloaded.load()
    assert reloaded.last_result.deals == result.deals


def test_start_while_running_is_skipped(tmp_path):
    calls = []

    async def scenario():
        release = asyncio.Event()

        async def scrape(params, progress, on_browser):
            calls.append(params.keywords)
            await release.wait()
            return []

        coordinator, _ = make_coordinator(tmp_path, scrape)
        coordinator.start(ScrapeParams(keywords="first"))
        first = coordinator.current_task
        await asyncio.sleep(0)
        assert coordinator.start(ScrapeParams(keywords="second")) is False
        assert coordinator.current_task is first
        release.set()
        await first

    asyncio.run(scenario())
    assert calls == ["first"]


def test_failed_run_becomes_annotated_empty_result(tmp_path):
    async def scrape(params, progress, on_browser):
        raise RuntimeError("Login required")

    async def scenario():
        coordinator, notified = make_coordinator(tmp_path, scrape)
        coordinator.store.save_result(RunResult(deals=[{"title": "old"}]))
        coordinator.start(ScrapeParams())
        await coordinator.current_task
        return coordinator, notified

    coordinator, notified = asyncio.run(scenario())
    result = coordinator.store.last_result
    assert result.deals == []
    assert result.error == "Login required"
    assert result.params["error"] == "Login required"
    assert notified == []
    assert not coordinator.is_running
    assert coordinator.broker.last["stage"] == "error"


def test_interval_rearms_after_run(tmp_path):
    runs = []
    bounds = []

    def tiny_uniform(a, b):
        bounds.append((a, b))
        return 0.01

    async def scrape(params, progress, on_browser):
        runs.append(params.interval)
        return []

    async def scenario():
        coordinator, _ = make_coordinator(tmp_path, scrape, uniform=tiny_uniform)
        assert coordinator.start(ScrapeParams(interval=1, jitter=0.2)) is True
        assert coordinator.scheduled
        await coordinator.current_task
        assert coordinator.status()["next_run_pending"]
        await asyncio.sleep(0.1)
        await coordinator.current_task
        await coordinator.stop()
        return coordinator

    coordinator = asyncio.run(scenario())
    assert len(runs) >= 2
    assert bounds[0] == (0.8, 1.2)
    assert not coordinator.scheduled
    assert not coordinator.status()["next_run_pending"]


def test_zero_jitter_gives_fixed_period(tmp_path):
    coordinator, _ = make_coordinator(tmp_path, None)
    assert coordinator.next_delay(ScrapeParams(interval=300, jitter=0)) == 300


def test_stop_closes_browser_of_running_scrape(tmp_path):
    async def scenario():
        browser = FakeBrowser()

        async def scrape(params, progress, on_browser):
            on_browser(browser)
            await browser.closed.wait()
            raise RuntimeError("Target page, context or browser has been closed")

        coordinator, _ = make_coordinator(tmp_path, scrape)
        coordinator.start(ScrapeParams(interval=60))
        await asyncio.sleep(0)
        await coordinator.stop()
        await coordinator.current_task
        return coordinator, browser

    coordinator, browser = asyncio.run(scenario())
    assert browser.closed.is_set()
    assert coordinator.store.last_result.error == "Scrape stopped"
    assert not coordinator.is_running
    assert not coordinator.status()["next_run_pending"]


def test_stop_before_browser_launch_closes_it_on_arrival(tmp_path):
    async def scenario():
        browser = FakeBrowser()
        launched = asyncio.Event()

        async def scrape(params, progress, on_browser):
            await launched.wait()
            on_browser(browser)
            await browser.closed.wait()
            return []

        coordinator, _ = make_coordinator(tmp_path, scrape)
        coordinator.start(ScrapeParams())
        asyncio.get_running_loop().call_later(0.05, launched.set)
        await coordinator.stop()
        await asyncio.wait_for(coordinator.current_task, 2)
        return browser

    browser = asyncio.run(scenario())
    assert browser.closed.is_set()


def test_schedule_requested_during_a_run_takes_over(tmp_path):
    runs = []

    async def scenario():
        release = asyncio.Event()

        async def scrape(params, progress, on_browser):
            runs.append(params.keywords)
            if params.keywords == "oneshot":
                await release.wait()
            return []

        coordinator, _ = make_coordinator(tmp_path, scrape, uniform=lambda a, b: 0.01)
        assert coordinator.start(ScrapeParams(keywords="oneshot")) is True
        await asyncio.sleep(0)
        assert coordinator.start(ScrapeParams(keywords="repeating", interval=1)) is False
        assert coordinator.scheduled
        release.set()
        await asyncio.sleep(0.2)
        scheduled = coordinator.scheduled
        await coordinator.stop()
        return scheduled

    assert asyncio.run(scenario()) is True
    assert runs[0] == "oneshot"
    assert runs.count("repeating") >= 1


def test_start_right_after_stop_runs(tmp_path):
    calls = []

    async def scenario():
        browser = FakeBrowser()

        async def scrape(params, progress, on_browser):
            calls.append(params.keywords)
            if params.keywords == "first":
                on_browser(browser)
                await browser.closed.wait()
                raise RuntimeError("Target page, context or browser has been closed")
            return [a_deal()]

        coordinator, _ = make_coordinator(tmp_path, scrape)
        coordinator.start(ScrapeParams(keywords="first"))
        await asyncio.sleep(0)
        await coordinator.stop()
        assert not coordinator.is_running
        assert coordinator.start(ScrapeParams(keywords="second")) is True
        await coordinator.current_task
        return coordinator

    coordinator = asyncio.run(scenario())
    assert calls == ["first", "second"]
    assert coordinator.store.last_result.error is None
    assert len(coordinator.store.last_result.deals) == 1


def test_stop_waits_only_up_to_timeout(tmp_path):
    async def scenario():
        release = asyncio.Event()

        async def scrape(params, progress, on_browser):
            await release.wait()
            return []

        coordinator, _ = make_coordinator(tmp_path, scrape, stop_timeout=0.05)
        coordinator.start(ScrapeParams())
        await coordinator.stop()
        still_running = coordinator.is_running
        restarted = coordinator.start(ScrapeParams())
        release.set()
        await coordinator.current_task
        return coordinator, still_running, restarted

    coordinator, still_running, restarted = asyncio.run(scenario())
    assert still_running is True
    assert restarted is False
    assert not coordinator.is_running


def test_login_runs_alone(tmp_path):
    scrapes = []

    async def scrape(params, progress, on_browser):
        scrapes.append(params)
        return []

    async def scenario():
        release = asyncio.Event()

        async def login(on_browser):
            await release.wait()
            return 7

        coordinator, _ = make_coordinator(tmp_path, scrape, login_fn=login)
        assert coordinator.login() is True
        assert coordinator.login() is False
        assert coordinator.start(ScrapeParams()) is False
        assert coordinator.status()["login_pending"]
        release.set()
        await coordinator.login_task
        return coordinator

    coordinator = asyncio.run(scenario())
    assert scrapes == []
    assert not coordinator.status()["login_pending"]
    assert coordinator.broker.last == {"stage": "login", "progress": 100, "message": "Login saved (7 cookies)"}


def test_login_refused_during_scrape(tmp_path):
    async def scenario():
        release = asyncio.Event()

        async def scrape(params, progress, on_browser):
            await release.wait()
            return []

        async def login(on_browser):
            return 1

        coordinator, _ = make_coordinator(tmp_path, scrape, login_fn=login)
        coordinator.start(ScrapeParams())
        refused = coordinator.login()
        release.set()
        await coordinator.current_task
        return refused

    assert asyncio.run(scenario()) is False


def test_login_failure_is_reported(tmp_path):
    async def scenario():
        async def login(on_browser):
            raise RuntimeError("Login timeout - no authentication detected")

        coordinator, _ = make_coordinator(tmp_path, None, login_fn=login)
        assert coordinator.login() is True
        await coordinator.login_task
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.broker.last["stage"] == "error"
    assert coordinator.broker.last["message"] == "Login timeout - no authentication detected"


def test_login_unavailable_without_login_fn(tmp_path):
    async def scenario():
        coordinator, _ = make_coordinator(tmp_path, None)
        return coordinator.login()

    assert asyncio.run(scenario()) is False


def test_progress_ends_with_single_complete(tmp_path):
    async def scrape(params, progress, on_browser):
        progress("starting", 0, "Launching browser...")
        progress("ranking", 92, "Ranking deals...")
        return [a_deal()]

    async def scenario():
        coordinator, _ = make_coordinator(tmp_path, scrape)
        q = coordinator.broker.subscribe()
        coordinator.start(ScrapeParams())
        await coordinator.current_task
        events = []
        while not q.empty():
            events.append(q.get_nowait())
        return events

    events = asyncio.run(scenario())
    assert [e["stage"] for e in events] == ["starting", "ranking", "saving", "complete"]
    progress = [e["progress"] for e in events]
    assert progress == sorted(progress)
