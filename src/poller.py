"""Poll cycle engine for Reddit IRC Bot."""

import queue
import string
import threading

from .codec import IdentifierError, decode, encode, split_identifier
from .config import DeliveryConfig
from .dedup import CycleDedupSet, WatermarkTracker
from .logging_config import create_execution_logger
from .models import CycleResult, FeedItem, OutboundMessage
from .rss import FeedFetcher, FetchError

IRC_LINE_LIMIT = 512

# Reserved for the channel name when no channel is configured
DEFAULT_CHANNEL_BYTES = 50

ELLIPSIS = "\u2026"

# How often a producer blocked on a full queue checks whether it was stopped
ENQUEUE_POLL_SECONDS = 0.5


def truncate_utf8(text: str, max_bytes: int) -> str:
    """Cut text to at most max_bytes once UTF-8 encoded, on a character boundary."""
    if max_bytes <= 0:
        return ""
    return text.encode("utf-8")[:max_bytes].decode("utf-8", errors="ignore")


class PollEngine:
    """Fetches every endpoint, detects new posts and queues them for delivery.

    Two kinds of cycle share the fetch and decode logic:

    * ``first_run`` only records the highest identifier currently listed, so
      the bot does not flood channels with the existing front page on start.
    * ``get_posts`` compares every listed item with the watermark captured at
      the start of the cycle and queues a message for each newer one.

    A cycle is all-or-nothing: if one endpoint fails, nothing is queued and the
    watermark is left as it was.
    """

    def __init__(
        self,
        endpoints: list[str],
        fetcher: FeedFetcher,
        outbox: queue.Queue,
        config: DeliveryConfig,
        watermark: WatermarkTracker | None = None,
        execution_id: str | None = None,
    ):
        """Initialize the poll engine.

        Args:
            endpoints: Endpoints fetched in order on every cycle
            fetcher: Object exposing ``fetch(endpoint) -> list[FeedItem]``
            outbox: Bounded delivery queue, blocks when full
            config: Delivery configuration (template, permalink base)
            watermark: Watermark tracker, a fresh one starting at 0 by default
            execution_id: Execution ID for logging context
        """
        self.endpoints = list(endpoints)
        self.fetcher = fetcher
        self.outbox = outbox
        self.config = config
        self.logger = create_execution_logger("poller", execution_id)
        self.watermark = watermark or WatermarkTracker(execution_id=execution_id)
        self._stop = threading.Event()

    def stop(self) -> None:
        """Release a cycle blocked on a full delivery queue."""
        self._stop.set()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def decode_item(self, item: FeedItem) -> int | None:
        """Decode the identifier of an item.

        Returns:
            The numeric identifier, or None if the item must be ignored
        """
        suffix = split_identifier(item.raw_id)
        if suffix is None:
            return None

        try:
            return decode(suffix)
        except IdentifierError as e:
            self.logger.warning(
                f"Skipping item with malformed identifier: {e}",
                endpoint=item.endpoint,
                item_title=item.title,
                raw_id=item.raw_id,
            )
            raise

    def line_budget(self) -> int:
        """Bytes left for the text of a PRIVMSG to the longest channel."""
        longest = max(
            (len(channel.encode("utf-8")) for channel in self.config.channels),
            default=DEFAULT_CHANNEL_BYTES,
        )
        return IRC_LINE_LIMIT - len(b"PRIVMSG  :\r\n") - longest

    def render(self, item: FeedItem, item_id: int) -> str:
        """Render the outbound text for an item.

        The title is shortened, never the identifier or permalink, so that the
        message fits on a single IRC line for every configured channel.
        """
        suffix = split_identifier(item.raw_id) or encode(item_id)

        def fill(title: str) -> str:
            text = self.config.template.format(
                title=title,
                id=suffix,
                permalink=self.config.permalink_base + suffix,
                endpoint=item.endpoint,
            )
            if self.config.print_endpoint:
                text = f"{item.endpoint} {text}"
            return text

        text = fill(item.title)
        budget = self.line_budget()
        if len(text.encode("utf-8")) <= budget:
            return text

        title_fields = sum(
            1
            for _, name, _, _ in string.Formatter().parse(self.config.template)
            if name == "title"
        )
        if not title_fields:
            return text

        per_title = (budget - len(fill("").encode("utf-8"))) // title_fields
        title = truncate_utf8(item.title, per_title - len(ELLIPSIS.encode("utf-8")))
        self.logger.debug(
            "Shortened title to fit an IRC line",
            endpoint=item.endpoint,
            item_id=suffix,
        )
        return fill(title + ELLIPSIS)

    def first_run(self) -> int:
        """Record the highest identifier currently listed on every endpoint.

        Returns:
            The new watermark

        Raises:
            FetchError: If any endpoint fails; the watermark is left untouched
        """
        self.logger.log_execution_start(
            mode="bootstrap", endpoint_count=len(self.endpoints)
        )
        largest = 0

        for endpoint in self.endpoints:
            try:
                items = self.fetcher.fetch(endpoint)
            except FetchError as e:
                self.logger.error(
                    f"First run failed: {e}", endpoint=endpoint, error=str(e)
                )
                self.logger.log_execution_end(success=False, mode="bootstrap")
                raise

            for item in items:
                try:
                    item_id = self.decode_item(item)
                except IdentifierError:
                    continue
                if item_id is not None and item_id > largest:
                    largest = item_id

        self.watermark.set(largest)
        self.logger.log_execution_end(
            success=True, mode="bootstrap", watermark=encode(largest)
        )
        return largest

    def get_posts(self) -> CycleResult:
        """Run one steady-state cycle.

        Returns:
            Summary of the cycle; ``success`` is False when an endpoint failed
            or the engine was stopped while the delivery queue was full
        """
        before = self.watermark.get()
        result = CycleResult(
            success=False, watermark_before=before, watermark_after=before
        )
        seen = CycleDedupSet()
        largest = 0

        self.logger.log_execution_start(
            mode="steady", watermark=encode(before), endpoint_count=len(self.endpoints)
        )

        for endpoint in self.endpoints:
            try:
                items = self.fetcher.fetch(endpoint)
            except FetchError as e:
                self.logger.error(
                    f"Could not fetch posts: {e}", endpoint=endpoint, error=str(e)
                )
                result.messages = []
                self.logger.log_metrics(result.as_metrics())
                self.logger.log_execution_end(success=False, mode="steady")
                return result

            result.endpoints_processed += 1
            result.items_found += len(items)

            for item in items:
                try:
                    item_id = self.decode_item(item)
                except IdentifierError:
                    result.invalid_ids += 1
                    continue
                if item_id is None:
                    continue

                if not seen.add(item_id):
                    result.items_deduplicated += 1
                    continue

                largest = max(largest, item_id)

                if item_id > before:
                    result.messages.append(
                        OutboundMessage(
                            text=self.render(item, item_id),
                            item_id=item_id,
                            endpoint=endpoint,
                        )
                    )

        for queued, message in enumerate(result.messages):
            if not self._enqueue(message):
                self.logger.warning(
                    "Stopped while the delivery queue was full, "
                    f"dropping {len(result.messages) - queued} messages",
                    endpoint=message.endpoint,
                )
                result.messages = result.messages[:queued]
                self.logger.log_metrics(result.as_metrics())
                self.logger.log_execution_end(success=False, mode="steady")
                return result
            self.logger.debug(
                "Queued message",
                endpoint=message.endpoint,
                item_id=encode(message.item_id),
            )

        if len(seen):
            self.watermark.advance(largest)
        else:
            self.logger.debug("No identifiers decoded, watermark unchanged")
        result.watermark_after = self.watermark.get()
        result.success = True

        self.logger.log_metrics(result.as_metrics())
        self.logger.log_execution_end(
            success=True, mode="steady", watermark=encode(result.watermark_after)
        )
        return result

    def _enqueue(self, message: OutboundMessage) -> bool:
        """Put message on the delivery queue, blocking until there is room.

        Returns:
            False if the engine was stopped before the message was queued
        """
        while not self._stop.is_set():
            try:
                self.outbox.put(message, timeout=ENQUEUE_POLL_SECONDS)
            except queue.Full:
                continue
            return True
        return False
