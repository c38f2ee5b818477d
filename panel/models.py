"""
Pydantic models for API request/response serialization.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class SoldStatsOut(BaseModel):
    """Comparison-search statistics for a model group."""
    count: int = 0
    average: float = 0
    low: float = 0
    high: float = 0


class DealOut(BaseModel):
    """Output model for a ranked deal."""
    title: str = ""
    price_text: str = ""
    price_value: Optional[float] = None
    link: str = ""
    item_id: str = ""
    description: str = ""
    model: Optional[str] = None
    sold_stats: Optional[SoldStatsOut] = None
    margin_percent: Optional[float] = None
    profit_range: str = ""


class ResultsOut(BaseModel):
    """Snapshot of the latest run."""
    deals: List[DealOut]
    params: Optional[Dict[str, Any]] = None
    ts: Optional[str] = None
    error: Optional[str] = None


class StartResponse(BaseModel):
    success: bool
    message: str
    scheduled: bool


class MessageResponse(BaseModel):
    success: bool
    message: str = ""


class ProgressOut(BaseModel):
    stage: str
    progress: int
    message: str


class StatusOut(BaseModel):
    running: bool
    scheduled: bool
    next_run_pending: bool
    login_pending: bool = False
    last_run: Optional[str] = None
    last_error: Optional[str] = None
    deal_count: int
    progress: ProgressOut


class NotifySettings(BaseModel):
    """Webhook notification settings."""
    webhook_url: str = ""
    phone_number: str = ""
    enabled: bool = False
