"""
Shared route dependencies.
"""
from typing import Optional

from fastapi import Query, Request

from finder.models import ScrapeParams

from .coordinator import RunCoordinator


def get_coordinator(request: Request) -> RunCoordinator:
    return request.app.state.coordinator


def get_scrape_params(
    keywords: str = "",
    location: str = "37138",
    radius: int = Query(50, ge=1, le=500),
    limit: int = Query(10, ge=1, le=100),
    min_price: Optional[float] = Query(None, ge=0),
    max_price: Optional[float] = Query(None, ge=0),
    title_keywords: str = "",
    description_keywords: str = "",
    sold_history: bool = True,
    interval: int = Query(0, ge=0),
    jitter: float = Query(0.2, ge=0, le=1),
) -> ScrapeParams:
    """Dependency to extract and validate scrape parameters."""
    return ScrapeParams(
        keywords=keywords,
        location=location,
        radius=radius,
        limit=limit,
        min_price=min_price,
        max_price=max_price,
        title_keywords=title_keywords,
        description_keywords=description_keywords,
        sold_history=sold_history,
        interval=interval,
        jitter=jitter,
    )
