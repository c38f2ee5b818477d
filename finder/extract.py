"""
Heuristics that turn rendered card text into listings and grouping keys.
"""
import re
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .models import Listing
from .utils import absolute_url, clean_text, parse_price


TITLE_PLACEHOLDER = "No title"
PRICE_PLACEHOLDER = "N/A"
MIN_TITLE_LENGTH = 3
MODEL_WORDS = 3

PRICE_FRAGMENT_RE = re.compile(r"\$\s?\d*")
ITEM_ID_RE = re.compile(r"/item/(\d+)")

KNOWN_BRANDS = [
    "husqvarna", "toro", "craftsman", "cub cadet", "john deere", "ariens",
    "troy-bilt", "poulan", "snapper", "simplicity", "ferris", "exmark",
    "scag", "bad boy", "gravely", "hustler",
]


def pick_title_and_price(fragments: Sequence[str]) -> Tuple[str, str]:
    """
    Guess which card fragments are the price and the title.

    Fragments come in DOM order. The first one carrying a dollar sign is the
    price; the first one longer than a few characters that isn't the price
    text is the title.
    """
    price = next((f for f in fragments if f and PRICE_FRAGMENT_RE.search(f)), None)
    title = next(
        (f for f in fragments if f and len(f) > MIN_TITLE_LENGTH and f != price),
        None,
    )
    return (title or TITLE_PLACEHOLDER, price or PRICE_PLACEHOLDER)


def build_listing(card: Dict) -> Optional[Listing]:
    """Convert a raw card ({"href", "fragments"}) to a Listing."""
    href = card.get("href") or ""
    if not href:
        return None

    link = absolute_url(href)
    m = ITEM_ID_RE.search(link)
    item_id = m.group(1) if m else link

    fragments = [clean_text(f) for f in card.get("fragments") or []]
    title, price_text = pick_title_and_price([f for f in fragments if f])

    return Listing(
        title=title,
        price_text=price_text,
        link=link,
        item_id=item_id,
        price_value=parse_price(price_text),
        description=clean_text(card.get("description")),
    )


def _normalize(text: str) -> str:
    return " ".join(re.sub(r"[^a-zA-Z0-9\s]", " ", text).lower().split())


def extract_model(title: Optional[str], brands: Iterable[str] = KNOWN_BRANDS) -> Optional[str]:
    """
    Reduce a listing title to a model key used to group comparable listings.

    "Husqvarna YTH24V48 Riding Mower" -> "husqvarna yth24v48 riding".
    Brands are tried in list order, so the first listed brand found anywhere
    in the title wins. Without a known brand the first words are used.
    """
    if not title:
        return None

    cleaned = _normalize(title)
    if not cleaned:
        return None

    found = None
    for brand in brands:
        b = _normalize(brand)
        if b and b in cleaned:
            found = b
            break

    if not found:
        return " ".join(cleaned.split()[:MODEL_WORDS])

    after = cleaned.split(found, 1)[1]
    model_part = " ".join(after.split()[:MODEL_WORDS])
    return f"{found} {model_part}".strip()
