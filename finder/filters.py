"""
Listing filters applied between extraction and ranking.
"""
import re
from typing import Iterable, List, Optional

from .models import Listing, ScrapeParams


ITEM_PATH = "/marketplace/item/"
NOISE_TITLE_RE = re.compile(r"^mark as read$", re.I)


def split_keywords(text: str) -> List[str]:
    """Split a comma separated keyword string into lower-case terms."""
    return [k.strip().lower() for k in (text or "").split(",") if k.strip()]


def matches_any(text: str, keys: List[str]) -> bool:
    text = (text or "").lower()
    return any(k in text for k in keys)


def filter_by_title(listings: Iterable[Listing], keywords: str) -> List[Listing]:
    keys = split_keywords(keywords)
    if not keys:
        return list(listings)
    return [l for l in listings if matches_any(l.title, keys)]


def filter_by_description(listings: Iterable[Listing], keywords: str) -> List[Listing]:
    keys = split_keywords(keywords)
    if not keys:
        return list(listings)
    return [l for l in listings if matches_any(l.description, keys)]


def is_valid_listing(listing: Listing) -> bool:
    """Reject cards that are UI chrome rather than listings."""
    if not listing.link or ITEM_PATH not in listing.link:
        return False
    return not NOISE_TITLE_RE.match(listing.title or "")


def within_price(listing: Listing, min_price: Optional[float], max_price: Optional[float]) -> bool:
    """A listing without a parsed price fails any bound that is set."""
    price = listing.price_value
    if min_price is not None and (price is None or price < min_price):
        return False
    if max_price is not None and (price is None or price > max_price):
        return False
    return True


def apply_filters(listings: Iterable[Listing], params: ScrapeParams) -> List[Listing]:
    """Run every filter in pipeline order and cap the result at params.limit."""
    out = filter_by_title(listings, params.title_keywords)
    out = filter_by_description(out, params.description_keywords)
    out = [l for l in out if is_valid_listing(l)]
    out = [l for l in out if within_price(l, params.min_price, params.max_price)]
    return out[:params.limit]
