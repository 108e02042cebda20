import json
import logging
import time
from pathlib import Path
from typing import List

from pydantic import ValidationError

from adeguard.config import settings
from adeguard.models import AnalysisResult, HistoryItem

logger = logging.getLogger(__name__)


def _history_dir() -> Path:
    history_dir = Path(settings.DATA_DIR) / "history"
    history_dir.mkdir(parents=True, exist_ok=True)
    return history_dir


def store_analysis(text: str, result: AnalysisResult) -> HistoryItem:
    history_dir = _history_dir()

    timestamp = int(time.time() * 1000)
    while (history_dir / f"{timestamp}.json").exists():
        timestamp += 1

    item = HistoryItem(
        id=str(timestamp),
        timestamp=timestamp,
        text=text,
        result=result,
    )

    path = history_dir / f"{item.id}.json"
    path.write_text(
        json.dumps(item.model_dump(mode="json", by_alias=True, exclude_none=True), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return item


def load_history_item(item_id: str) -> HistoryItem:
    # ids are millisecond timestamps; anything else is not ours
    if not item_id.isdigit():
        raise KeyError(item_id)

    path = _history_dir() / f"{item_id}.json"
    if not path.exists():
        raise KeyError(item_id)

    try:
        return HistoryItem.model_validate_json(path.read_text(encoding="utf-8"))
    except (ValidationError, UnicodeDecodeError) as e:
        logger.warning("Unreadable history file %s: %s", path.name, e)
        raise KeyError(item_id) from e


def list_history() -> List[HistoryItem]:
    items = []
    for path in _history_dir().glob("*.json"):
        try:
            items.append(HistoryItem.model_validate_json(path.read_text(encoding="utf-8")))
        except (ValidationError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable history file %s: %s", path.name, e)
    return sorted(items, key=lambda item: item.timestamp, reverse=True)
