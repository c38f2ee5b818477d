"""
Tests for the text heuristics: card extraction, price parsing, model keys.
"""
import pytest

from finder.extract import (
    PRICE_PLACEHOLDER,
    TITLE_PLACEHOLDER,
    build_listing,
    extract_model,
    pick_title_and_price,
)
from finder.utils import absolute_url, clean_text, parse_price


def test_price_parsing():
    assert parse_price("$1,250") == 1250.0
    assert parse_price("$15.99") == 15.99
    assert parse_price("450") == 450.0
    assert parse_price("Price: $300 obo") == 300.0


@pytest.mark.parametrize("text", ["", None, "N/A", "Free", "$0", "2 unread messages", "Unread $40"])
def test_price_parsing_rejects_noise(text):
    assert parse_price(text) is None


def test_text_cleaning():
    assert clean_text("  Hello   World  \n") == "Hello World"
    assert clean_text(None) == ""
    assert clean_text("") == ""


def test_pick_title_and_price_first_match():
    title, price = pick_title_and_price(["$450", "Husqvarna riding mower", "Nashville, TN", "$500"])
    assert price == "$450"
    assert title == "Husqvarna riding mower"


def test_pick_title_and_price_dom_order():
    title, price = pick_title_and_price(["Toro TimeCutter", "$1,200", "Murfreesboro, TN"])
    assert title == "Toro TimeCutter"
    assert price == "$1,200"


@pytest.mark.parametrize("fragments", [
    ["Riding mower", "Nashville, TN"],
    ["1200", "Mower for parts"],
    [],
])
def test_no_dollar_sign_gives_price_placeholder(fragments):
    assert pick_title_and_price(fragments)[1] == PRICE_PLACEHOLDER


def test_short_fragments_are_not_titles():
    title, price = pick_title_and_price(["$80", "New", "TN"])
    assert price == "$80"
    assert title == TITLE_PLACEHOLDER


def test_only_long_fragment_is_the_price():
    title, price = pick_title_and_price(["$1,500 firm"])
    assert price == "$1,500 firm"
    assert title == TITLE_PLACEHOLDER


def test_build_listing_resolves_link_and_id():
    listing = build_listing({
        "href": "/marketplace/item/123456789/?ref=search",
        "fragments": ["$400", "Cub Cadet XT1 42 in", "Franklin, TN"],
    })
    assert listing.link == "https://www.facebook.com/marketplace/item/123456789/?ref=search"
    assert listing.item_id == "123456789"
    assert listing.title == "Cub Cadet XT1 42 in"
    assert listing.price_value == 400.0


def test_build_listing_without_href():
    assert build_listing({"href": "", "fragments": ["$5", "Thing"]}) is None


def test_absolute_url():
    assert absolute_url("https://m.facebook.com/x") == "https://m.facebook.com/x"
    assert absolute_url("marketplace/item/1") == "https://www.facebook.com/marketplace/item/1"


def test_model_with_known_brand():
    assert extract_model("Husqvarna YTH24V48 Riding Mower") == "husqvarna yth24v48 riding"


def test_model_strips_punctuation_and_case():
    assert extract_model("JOHN DEERE - D130 (42\") lawn tractor!!") == "john deere d130 42 lawn"


def test_model_brand_list_order_wins():
    # "toro" comes before "craftsman" in the brand list even though
    # "craftsman" appears first in the title.
    assert extract_model("Craftsman deck fits Toro 42") == "toro 42"


def test_model_hyphenated_brand():
    assert extract_model("Troy-Bilt Pony 42 riding mower") == "troy bilt pony 42 riding"


def test_model_without_brand_uses_first_words():
    assert extract_model("Zero turn mower 54 inch deck") == "zero turn mower"


def test_model_custom_brands():
    assert extract_model("Kubota BX2380 sub compact", brands=["kubota"]) == "kubota bx2380 sub compact"


@pytest.mark.parametrize("title", ["", None, "!!!"])
def test_model_empty_title(title):
    assert extract_model(title) is None


@pytest.mark.parametrize("title", [
    "Husqvarna YTH24V48 Riding Mower",
    "Snapper  rear engine   rider",
    "random garage sale stuff",
])
def test_model_is_idempotent(title):
    assert extract_model(title) == extract_model(title)
