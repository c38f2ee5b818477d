"""
JSON file persistence for the last run snapshot and notification settings.

Both files are conveniences: read and write failures are logged and the
in-memory copies stay authoritative for the life of the process.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .models import RunResult

logger = logging.getLogger(__name__)

RESULTS_FILE = "results.json"
NOTIFY_CONFIG_FILE = "notify-config.json"


@dataclass
class NotifyConfig:
    webhook_url: str = ""
    phone_number: str = ""
    enabled: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NotifyConfig":
        return cls(
            webhook_url=str(data.get("webhook_url") or ""),
            phone_number=str(data.get("phone_number") or ""),
            enabled=bool(data.get("enabled", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _read_json(path: str) -> Optional[Any]:
    if not os.path.exists(path):
        return None
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        logger.warning(f"Ignoring unreadable file {path}", exc_info=True)
        return None


def _write_json(path: str, data: Any) -> None:
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
    except OSError:
        logger.warning(f"Could not write {path}", exc_info=True)


class ResultStore:
    """Holds the latest RunResult and NotifyConfig, mirrored to disk."""

    def __init__(self, data_dir: str):
        self.results_path = os.path.join(data_dir, RESULTS_FILE)
        self.notify_path = os.path.join(data_dir, NOTIFY_CONFIG_FILE)
        self.last_result = RunResult()
        self.notify_config = NotifyConfig()

    def load(self) -> None:
        data = _read_json(self.results_path)
        if isinstance(data, dict):
            self.last_result = RunResult.from_dict(data)
            logger.info(f"Loaded {len(self.last_result.deals)} deals from {self.results_path}")

        cfg = _read_json(self.notify_path)
        if isinstance(cfg, dict):
            self.notify_config = NotifyConfig.from_dict(cfg)

    def save_result(self, result: RunResult) -> None:
        self.last_result = result
        _write_json(self.results_path, result.to_dict())

    def save_notify_config(self, config: NotifyConfig) -> None:
        self.notify_config = config
        _write_json(self.notify_path, config.to_dict())
