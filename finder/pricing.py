"""
Sold-history estimation and margin ranking.

The "sold history" is a best-effort proxy: the marketplace rarely exposes
sold prices, so the estimator searches for the model key and treats the
asking prices of comparable listings as the market price.
"""
import logging
import math
import re
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Sequence

from .models import Listing, RankedDeal, SoldStats
from .utils import to_float

logger = logging.getLogger(__name__)

MAX_SOLD_SAMPLES = 30
MAX_SOLD_PRICE = 20_000
TRIM_MIN_SAMPLES = 6
TRIM_FRACTION = 0.1
DEFAULT_REPAIR_COST = 50.0
NO_DATA = "no data"

SOLD_PRICE_RE = re.compile(r"\$\s*\d")

CardFetcher = Callable[[str], Awaitable[List[Dict]]]


def _in_range(value: float) -> bool:
    return 0 < value <= MAX_SOLD_PRICE


def harvest_sold_prices(cards: Iterable[Dict], cap: int = MAX_SOLD_SAMPLES) -> List[float]:
    """Pull up to `cap` plausible prices out of comparison-search cards."""
    seen = set()
    prices: List[float] = []
    for card in cards:
        href = card.get("href")
        if not href or href in seen:
            continue
        seen.add(href)

        price_text = next((f for f in card.get("fragments") or [] if SOLD_PRICE_RE.search(f)), None)
        if not price_text:
            continue
        # Adjacent numbers (price + strike-through price) get glued together
        # here; the range check below throws those away.
        value = to_float(re.sub(r"[^0-9.]", "", price_text))
        if value is None or not math.isfinite(value) or not _in_range(value):
            continue

        prices.append(value)
        if len(prices) >= cap:
            break
    return prices


def trim_outliers(values: Sequence[float]) -> List[float]:
    """Drop the lowest and highest ~10% once there are enough samples."""
    values = list(values)
    if len(values) <= TRIM_MIN_SAMPLES:
        return values
    values.sort()
    drop = max(1, int(len(values) * TRIM_FRACTION))
    return values[drop:len(values) - drop]


def compute_sold_stats(values: Iterable[float]) -> SoldStats:
    clean = trim_outliers([v for v in values if _in_range(v)])
    if not clean:
        return SoldStats.empty()

    avg = sum(clean) / len(clean)
    return SoldStats(
        count=len(clean),
        average=int(math.floor(avg + 0.5)),
        low=min(clean),
        high=max(clean),
    )


async def estimate_sold_history(keys: Iterable[Optional[str]], fetch_cards: CardFetcher,
                                on_key: Optional[Callable[[int, int, str], None]] = None) -> Dict[str, SoldStats]:
    """
    Estimate SoldStats for each distinct model key, one search at a time.

    A failure for one key yields empty stats for that key and the loop moves
    on to the next.
    """
    unique = [k for k in dict.fromkeys(keys) if k]
    results: Dict[str, SoldStats] = {}

    for i, key in enumerate(unique, 1):
        if on_key:
            on_key(i, len(unique), key)
        try:
            cards = await fetch_cards(key)
            results[key] = compute_sold_stats(harvest_sold_prices(cards))
        except Exception:
            logger.warning(f"Sold-history lookup failed for '{key}'", exc_info=True)
            results[key] = SoldStats.empty()

        logger.debug(f"Sold history for '{key}': {results[key]}")

    return results


def _money(value: float) -> str:
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.0f}"


def rank_deal(listing: Listing, model: Optional[str], stats: Optional[SoldStats],
              repair_cost: float = DEFAULT_REPAIR_COST) -> RankedDeal:
    """Attach margin and profit-range estimates to a listing."""
    price = listing.price_value
    has_data = stats is not None and stats.count > 0

    margin = None
    if has_data and stats.average > 0 and price is not None:
        margin = (stats.average - price) * 100 / stats.average

    profit_range = NO_DATA
    if has_data and price is not None:
        low = stats.low - repair_cost - price
        high = stats.high - repair_cost - price
        profit_range = f"{_money(low)} .. {_money(high)}"

    return RankedDeal(
        listing=listing,
        model=model,
        sold_stats=stats,
        margin_percent=margin,
        profit_range=profit_range,
    )


def _sort_key(deal: RankedDeal):
    price = deal.listing.price_value
    return (
        deal.margin_percent is None,
        -(deal.margin_percent or 0.0),
        price if price is not None else math.inf,
    )


def rank_deals(deals: Iterable[RankedDeal]) -> List[RankedDeal]:
    """Best margin first; listings without sold data go last, cheapest first."""
    return sorted(deals, key=_sort_key)
