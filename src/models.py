"""Data models for Reddit IRC Bot."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class FeedItem:
    """Represents a single entry of a subreddit feed."""

    title: str
    raw_id: str
    link: str
    endpoint: str
    published: datetime | None = None


@dataclass
class OutboundMessage:
    """A rendered message waiting in the delivery queue."""

    text: str
    item_id: int
    endpoint: str


@dataclass
class CycleResult:
    """Outcome of a single poll cycle."""

    success: bool
    watermark_before: int
    watermark_after: int
    endpoints_processed: int = 0
    items_found: int = 0
    items_deduplicated: int = 0
    invalid_ids: int = 0
    messages: list[OutboundMessage] = field(default_factory=list)

    def as_metrics(self) -> dict:
        """Flatten the result into a dict suitable for log_metrics."""
        return {
            "success": self.success,
            "watermark_before": self.watermark_before,
            "watermark_after": self.watermark_after,
            "endpoints_processed": self.endpoints_processed,
            "items_found": self.items_found,
            "items_deduplicated": self.items_deduplicated,
            "invalid_ids": self.invalid_ids,
            "messages_enqueued": len(self.messages),
        }
