"""
Tests for the control panel HTTP routes.
"""
import asyncio
import json
import time

import pytest
from fastapi.testclient import TestClient

from finder.models import Listing, SoldStats
from finder.pricing import rank_deal

from panel.config import Config
from panel.main import create_app
from panel.progress import ProgressBroker
from panel.routes.control import event_stream
from panel.routes.results import csv_filename


def fake_deals():
    listing = Listing(
        title="Husqvarna YTH24V48 Riding Mower",
        price_text="$900",
        link="https://www.facebook.com/marketplace/item/77/",
        item_id="77",
        price_value=900.0,
    )
    return [rank_deal(listing, "husqvarna yth24v48 riding", SoldStats(count=4, average=1200, low=1000, high=1400))]


@pytest.fixture
def seen_params():
    return []


@pytest.fixture
def client(tmp_path, seen_params):
    cfg = Config()
    cfg.DATA_DIR = str(tmp_path)

    async def scrape(params, progress, on_browser):
        seen_params.append(params)
        progress("extracting", 30, "Extracting listing data...")
        if params.keywords == "slow":
            await asyncio.sleep(0.5)
        return fake_deals()

    async def login(on_browser):
        return 3

    with TestClient(create_app(cfg, scrape_fn=scrape, login_fn=login)) as c:
        yield c


def wait_idle(client, timeout=3.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if not client.get("/api/status").json()["running"]:
            return
        time.sleep(0.02)
    raise AssertionError("scrape did not finish")


def test_index_page(client):
    r = client.get("/")
    assert r.status_code == 200
    assert "Marketplace Finder" in r.text
    assert "/api/progress" in r.text


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"


def test_results_empty_before_first_run(client):
    r = client.get("/api/results")
    assert r.status_code == 200
    assert r.json()["deals"] == []
    assert r.json()["ts"] is None


def test_start_then_results(client, seen_params):
    r = client.post("/api/start", params={
        "keywords": "riding mower", "location": "nashville", "min_price": 200, "title_keywords": "husqvarna",
    })
    assert r.status_code == 200
    assert r.json() == {"success": True, "message": "Scraper started", "scheduled": False}
    wait_idle(client)

    params = seen_params[0]
    assert params.keywords == "riding mower"
    assert params.min_price == 200
    assert params.limit == 10

    data = client.get("/api/results").json()
    assert data["error"] is None
    assert data["params"]["location"] == "nashville"
    deal = data["deals"][0]
    assert deal["margin_percent"] == 25.0
    assert deal["sold_stats"]["count"] == 4
    assert deal["profit_range"] == "$50 .. $450"


def test_start_with_interval_is_scheduled(client):
    r = client.get("/api/start", params={"interval": 3600})
    assert r.json()["scheduled"] is True
    wait_idle(client)
    status = client.get("/api/status").json()
    assert status["scheduled"] is True
    assert status["next_run_pending"] is True

    r = client.get("/api/stop")
    assert r.json() == {"success": True, "message": "Scraper stopped"}
    status = client.get("/api/status").json()
    assert status["scheduled"] is False
    assert status["next_run_pending"] is False


def test_start_while_running_is_reported(client):
    assert client.post("/api/start", params={"keywords": "slow"}).json()["success"] is True
    r = client.post("/api/start", params={"keywords": "other"})
    assert r.json() == {"success": False, "message": "Scraper already running, start skipped", "scheduled": False}

    r = client.post("/api/start", params={"keywords": "other", "interval": 3600})
    assert r.json()["success"] is True
    assert r.json()["scheduled"] is True
    assert "after it finishes" in r.json()["message"]

    wait_idle(client)
    status = client.get("/api/status").json()
    assert status["scheduled"] is True
    assert status["next_run_pending"] is True
    client.post("/api/stop")


def test_stop_then_start(client, seen_params):
    client.post("/api/start", params={"keywords": "slow"})
    assert client.post("/api/stop").json()["success"] is True
    r = client.post("/api/start", params={"keywords": "again"})
    assert r.json()["success"] is True
    wait_idle(client)
    assert [p.keywords for p in seen_params] == ["slow", "again"]


def test_login_route(client):
    r = client.post("/api/login")
    assert r.json() == {"success": True, "message": "Browser opened, log in to Facebook there"}
    deadline = time.time() + 3
    while client.get("/api/status").json()["login_pending"]:
        assert time.time() < deadline
        time.sleep(0.02)
    progress = client.get("/api/status").json()["progress"]
    assert progress == {"stage": "login", "progress": 100, "message": "Login saved (3 cookies)"}


def test_start_rejects_bad_params(client):
    assert client.get("/api/start", params={"limit": 0}).status_code == 422
    assert client.get("/api/start", params={"min_price": "cheap"}).status_code == 422


def test_csv_download(client):
    client.post("/api/start")
    wait_idle(client)
    r = client.get("/api/csv")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert r.headers["content-disposition"].startswith('attachment; filename="marketplace-results-')
    lines = r.text.splitlines()
    assert lines[0].startswith("title,price_text,price_value,model")
    assert "Husqvarna YTH24V48 Riding Mower" in lines[1]


def test_ui_table_lists_deals(client):
    client.post("/api/start")
    wait_idle(client)
    r = client.get("/ui/table")
    assert r.status_code == 200
    assert "Husqvarna YTH24V48 Riding Mower" in r.text
    assert "25.0%" in r.text


def test_notify_settings(client, tmp_path):
    assert client.get("/api/notify").json() == {"webhook_url": "", "phone_number": "", "enabled": False}

    body = {"webhook_url": "https://maker.ifttt.com/trigger/deal", "phone_number": "5551234", "enabled": True}
    r = client.post("/api/notify", json=body)
    assert r.status_code == 200
    assert r.json()["success"] is True
    assert client.get("/api/notify").json() == body
    assert json.loads((tmp_path / "notify-config.json").read_text(encoding="utf-8")) == body


def test_notify_rejects_invalid_json(client):
    r = client.post("/api/notify", content=b"{nope", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    r = client.post("/api/notify", json=["not", "an", "object"])
    assert r.status_code == 400


def test_event_stream_sends_current_state_then_events():
    async def scenario():
        broker = ProgressBroker()
        stream = event_stream(broker, keepalive=0.05)
        first = await stream.__anext__()
        broker.emit("loading", 10, "Loading marketplace page...")
        second = await stream.__anext__()
        third = await stream.__anext__()
        assert broker.listeners == 1
        await stream.aclose()
        return broker, first, second, third

    broker, first, second, third = asyncio.run(scenario())
    assert json.loads(first[len("data: "):]) == {"stage": "idle", "progress": 0, "message": "Ready to scrape"}
    assert json.loads(second[len("data: "):])["stage"] == "loading"
    assert third == ": keepalive\n\n"
    assert broker.listeners == 0


def test_csv_filename():
    assert csv_filename("2024-05-01T12:30:00.123456+00:00") == "marketplace-results-2024-05-01-12-30-00.csv"
    assert csv_filename("2024-05-01T12:30:00+00:00") == "marketplace-results-2024-05-01-12-30-00.csv"
