"""
Marketplace Finder scraping package
"""
from .models import Listing, RankedDeal, RunResult, ScrapeParams, SoldStats
from .core import process_cards, run_scrape
from .extract import extract_model, pick_title_and_price
from .filters import apply_filters
from .pricing import compute_sold_stats, estimate_sold_history, rank_deal, rank_deals
from .store import NotifyConfig, ResultStore
from .export import deals_to_csv, save_output_rows
from .utils import init_logger, now_iso, parse_price

__version__ = "1.0.0"

__all__ = [
    "Listing",
    "RankedDeal",
    "RunResult",
    "ScrapeParams",
    "SoldStats",
    "process_cards",
    "run_scrape",
    "extract_model",
    "pick_title_and_price",
    "apply_filters",
    "compute_sold_stats",
    "estimate_sold_history",
    "rank_deal",
    "rank_deals",
    "NotifyConfig",
    "ResultStore",
    "deals_to_csv",
    "save_output_rows",
    "init_logger",
    "now_iso",
    "parse_price",
]
