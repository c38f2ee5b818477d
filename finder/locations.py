"""
Location lookup and marketplace URL building.
"""
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

from .utils import MARKETPLACE_ORIGIN


MARKETPLACE_BASE = f"{MARKETPLACE_ORIGIN}/marketplace"


@dataclass(frozen=True)
class Coords:
    lat: float
    lng: float
    name: str


KNOWN_LOCATIONS = {
    # Tennessee
    "37138": Coords(36.1627, -86.7816, "Nashville, TN"),
    "nashville": Coords(36.1627, -86.7816, "Nashville, TN"),
    "memphis": Coords(35.1495, -90.0490, "Memphis, TN"),
    "knoxville": Coords(35.9606, -83.9207, "Knoxville, TN"),
    # California
    "90210": Coords(34.0901, -118.4065, "Beverly Hills, CA"),
    "losangeles": Coords(34.0522, -118.2437, "Los Angeles, CA"),
    "sandiego": Coords(32.7157, -117.1611, "San Diego, CA"),
    "sanfrancisco": Coords(37.7749, -122.4194, "San Francisco, CA"),
    "sacramento": Coords(38.5816, -121.4944, "Sacramento, CA"),
    # Other major cities
    "newyork": Coords(40.7128, -74.0060, "New York, NY"),
    "chicago": Coords(41.8781, -87.6298, "Chicago, IL"),
    "houston": Coords(29.7604, -95.3698, "Houston, TX"),
    "dallas": Coords(32.7767, -96.7970, "Dallas, TX"),
    "austin": Coords(30.2672, -97.7431, "Austin, TX"),
    "phoenix": Coords(33.4484, -112.0740, "Phoenix, AZ"),
    "philadelphia": Coords(39.9526, -75.1652, "Philadelphia, PA"),
    "atlanta": Coords(33.7490, -84.3880, "Atlanta, GA"),
    "miami": Coords(25.7617, -80.1918, "Miami, FL"),
    "seattle": Coords(47.6062, -122.3321, "Seattle, WA"),
    "boston": Coords(42.3601, -71.0589, "Boston, MA"),
    "denver": Coords(39.7392, -104.9903, "Denver, CO"),
}

DEFAULT_LOCATION = KNOWN_LOCATIONS["37138"]
LATLNG_RE = re.compile(r"^\s*(-?\d{1,2}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")


def resolve_location(location: Optional[str]) -> Coords:
    """
    Map a zip code, city key or "lat,lng" pair to coordinates.

    Unknown names keep their label but fall back to the default coordinates.
    """
    key = (location or "").strip()
    if not key:
        return DEFAULT_LOCATION

    m = LATLNG_RE.match(key)
    if m:
        return Coords(float(m.group(1)), float(m.group(2)), key)

    known = KNOWN_LOCATIONS.get(key.lower().replace(" ", ""))
    if known:
        return known
    return Coords(DEFAULT_LOCATION.lat, DEFAULT_LOCATION.lng, key)


def build_search_url(keywords: Optional[str], coords: Coords, radius: int) -> str:
    """Search URL for keywords, or the location's main feed without them."""
    params_geo = f"latitude={coords.lat}&longitude={coords.lng}&radius={radius}"
    if keywords and keywords.strip():
        q = quote(keywords.strip())
        return f"{MARKETPLACE_BASE}/search/?query={q}&{params_geo}"
    return f"{MARKETPLACE_BASE}/?{params_geo}"


def build_sold_search_url(model: str, coords: Coords, radius: int) -> str:
    q = quote(model.strip())
    return f"{MARKETPLACE_BASE}/search/?query={q}&exact=false&latitude={coords.lat}&longitude={coords.lng}&radius={radius}"
