"""
Export utilities for ranked deals.
"""
import logging
from typing import Any, Dict, List

import pandas as pd

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "title", "price_text", "price_value", "model", "sold_count", "avg_sold",
    "margin_percent", "profit_range", "link", "description",
]


def deals_frame(deals: List[Dict[str, Any]]) -> pd.DataFrame:
    """Flatten deal dicts (as stored in the snapshot) into export rows."""
    rows = []
    for d in deals or []:
        stats = d.get("sold_stats") or {}
        margin = d.get("margin_percent")
        rows.append({
            "title": d.get("title", ""),
            "price_text": d.get("price_text", ""),
            "price_value": d.get("price_value"),
            "model": d.get("model") or "",
            "sold_count": stats.get("count", ""),
            "avg_sold": stats.get("average", ""),
            "margin_percent": f"{margin:.1f}" if margin is not None else "",
            "profit_range": d.get("profit_range", ""),
            "link": d.get("link", ""),
            "description": d.get("description", ""),
        })
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def deals_to_csv(deals: List[Dict[str, Any]]) -> str:
    return deals_frame(deals).to_csv(index=False)


def save_output_rows(deals: List[Dict[str, Any]], out_path: str) -> None:
    """Save deals to a CSV file."""
    df = deals_frame(deals)
    df.to_csv(out_path, index=False)
    logger.info(f">>> Saved {len(df)} rows to {out_path}")
