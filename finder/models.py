"""
Data models for the marketplace finder.
"""
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


MIN_LIMIT = 1
MAX_LIMIT = 100


@dataclass(frozen=True)
class Listing:
    """A listing card scraped from a marketplace results page."""

    title: str
    price_text: str
    link: str
    item_id: str
    price_value: Optional[float] = None
    description: str = ""


@dataclass(frozen=True)
class SoldStats:
    """Price statistics for one model key, computed from a comparison search."""

    count: int
    average: int
    low: float
    high: float

    @classmethod
    def empty(cls) -> "SoldStats":
        return cls(count=0, average=0, low=0, high=0)


@dataclass
class RankedDeal:
    """A listing together with its model group and margin estimate."""

    listing: Listing
    model: Optional[str]
    sold_stats: Optional[SoldStats]
    margin_percent: Optional[float]
    profit_range: str

    def to_dict(self) -> Dict[str, Any]:
        row = asdict(self.listing)
        row.update({
            "model": self.model,
            "sold_stats": asdict(self.sold_stats) if self.sold_stats else None,
            "margin_percent": self.margin_percent,
            "profit_range": self.profit_range,
        })
        return row


@dataclass
class ScrapeParams:
    """Everything that varies between scrape runs."""

    keywords: str = ""
    location: str = "37138"
    radius: int = 50
    limit: int = 10
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    title_keywords: str = ""
    description_keywords: str = ""
    sold_history: bool = True
    interval: int = 0
    jitter: float = 0.2

    def __post_init__(self):
        self.keywords = (self.keywords or "").strip()
        self.location = (self.location or "").strip() or "37138"
        self.title_keywords = (self.title_keywords or "").strip()
        self.description_keywords = (self.description_keywords or "").strip()
        self.limit = max(MIN_LIMIT, min(MAX_LIMIT, int(self.limit)))
        self.interval = max(0, int(self.interval))
        self.jitter = max(0.0, min(1.0, float(self.jitter)))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RunResult:
    """Snapshot of the most recent run, replaced wholesale on every run."""

    deals: List[Dict[str, Any]] = field(default_factory=list)
    params: Optional[Dict[str, Any]] = None
    ts: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunResult":
        return cls(
            deals=list(data.get("deals") or []),
            params=data.get("params"),
            ts=data.get("ts"),
            error=data.get("error"),
        )
