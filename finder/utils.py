"""
Utility functions for text processing, price parsing, paths and logging.
"""
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Optional


APP_DIR_NAME = "Marketplace Finder"
MARKETPLACE_ORIGIN = "https://www.facebook.com"

ASKING_PRICE_RE = re.compile(r"\$?(\d+(?:\.\d{1,2})?)")
UNREAD_MARKER_RE = re.compile(r"unread", re.I)


def init_logger(
    name: str = "finder",
    console_level: str = "INFO",
    file_level: str = "DEBUG",
    log_file: Optional[str] = "finder.log"
) -> logging.Logger:
    """Initialize logger with console and optional file handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    if logger.handlers:
        return logger

    console_level_num = getattr(logging, console_level.upper(), logging.INFO)
    ch = logging.StreamHandler()
    ch.setLevel(console_level_num)

    fmt = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:
        file_level_num = getattr(logging, file_level.upper(), logging.DEBUG)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level_num)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger


def now_iso() -> str:
    """Return current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def clean_text(s: Optional[str]) -> str:
    """Clean and normalize text by removing extra whitespace."""
    if not s:
        return ""
    s = re.sub(r"\s+", " ", s)
    return s.strip()


def parse_price(price_text: Optional[str]) -> Optional[float]:
    """
    Parse an asking price such as "$1,250" into a number.

    Returns None for empty text, for the marketplace's "unread" chat badges
    that sometimes land in price slots, and for anything without digits.
    Zero is treated as "no price" ("Free" listings, placeholders).
    """
    if not price_text:
        return None
    if UNREAD_MARKER_RE.search(price_text):
        return None

    s = price_text.replace(",", "")
    m = ASKING_PRICE_RE.search(s)
    if not m:
        return None

    val = to_float(m.group(1))
    if val is None or val <= 0:
        return None
    return val


def to_float(text: str) -> Optional[float]:
    """Safely convert text to float."""
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def absolute_url(href: str) -> str:
    """Resolve a marketplace href against the site origin."""
    if href.startswith("http"):
        return href
    if href.startswith("/"):
        return MARKETPLACE_ORIGIN + href
    return f"{MARKETPLACE_ORIGIN}/{href}"


def user_data_dir() -> str:
    """Per-user directory for snapshots, settings and browser data."""
    home = os.path.expanduser("~")
    if sys.platform == "darwin":
        return os.path.join(home, "Library", "Application Support", APP_DIR_NAME)
    if sys.platform == "win32":
        return os.path.join(home, "AppData", "Roaming", APP_DIR_NAME)
    return os.path.join(home, ".local", "share", APP_DIR_NAME)
