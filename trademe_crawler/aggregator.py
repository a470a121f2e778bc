import json
import logging
from pathlib import Path
from typing import Iterable
from trademe_crawler.models import PropertyRecord

logger = logging.getLogger(__name__)


def aggregate(records: Iterable[PropertyRecord]) -> dict[str, PropertyRecord]:
    """Collect records by listing id until the stream ends. Last write wins."""
    by_id: dict[str, PropertyRecord] = {}
    for record in records:
        previous = by_id.get(record.unique_key)
        if previous is not None:
            logger.info(
                f"Listing {record.unique_key} seen again at {record.source_url} "
                f"(was {previous.source_url}); keeping the later one"
            )
        by_id[record.unique_key] = record
    return by_id


def write_output(records: dict[str, PropertyRecord], path: str | Path) -> Path:
    path = Path(path)
    if path.parent != Path("."):
        path.parent.mkdir(parents=True, exist_ok=True)
    document = {listing_id: record.to_dict() for listing_id, record in records.items()}
    path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Wrote {len(document)} listings to {path}")
    return path
