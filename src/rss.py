"""Subreddit feed fetching for Reddit IRC Bot."""

from datetime import datetime

import feedparser
import requests
from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .config import FetchConfig
from .logging_config import create_execution_logger
from .models import FeedItem

FEED_SUFFIX = ".rss"


class FetchError(Exception):
    """Raised when an endpoint cannot be fetched or parsed."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"Failed to fetch {endpoint}: {reason}")
        self.endpoint = endpoint
        self.reason = reason


class FeedFetcher:
    """Downloads subreddit feeds and normalizes their entries."""

    def __init__(self, config: FetchConfig, execution_id: str | None = None):
        """Initialize FeedFetcher with configuration.

        Args:
            config: Fetcher configuration (base URL, user agent, timeout)
            execution_id: Execution ID for logging context
        """
        self.config = config
        self.logger = create_execution_logger("feed_fetcher", execution_id)
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": config.user_agent})

        self.logger.info(
            "FeedFetcher initialized",
            base_url=config.base_url,
            timeout=config.timeout,
        )

    def feed_url(self, endpoint: str) -> str:
        """Build the feed URL for an endpoint."""
        if FEED_SUFFIX not in endpoint:
            endpoint += FEED_SUFFIX
        return self.config.base_url + endpoint

    def fetch(self, endpoint: str) -> list[FeedItem]:
        """Fetch and parse the feed of a single endpoint.

        Args:
            endpoint: Endpoint path, e.g. ``/r/python/new``

        Returns:
            Feed items in feed order

        Raises:
            FetchError: If the download fails, returns a non-success status
                or the document cannot be parsed
        """
        url = self.feed_url(endpoint)
        self.logger.debug("Downloading feed", endpoint=endpoint, url=url)

        try:
            response = self.session.get(url, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise FetchError(endpoint, str(e)) from e

        if not response.ok:
            raise FetchError(
                endpoint,
                f"fetch response error: {response.status_code} {response.reason}",
            )

        feed = feedparser.parse(response.content)

        if feed.bozo and not feed.entries:
            raise FetchError(endpoint, f"parse error: {feed.get('bozo_exception')}")

        if feed.bozo:
            self.logger.warning(
                f"Feed parsing warning for {endpoint}: {feed.get('bozo_exception')}",
                endpoint=endpoint,
            )

        items = [self.normalize_item(entry, endpoint) for entry in feed.entries]
        self.logger.log_feed_processing(endpoint, len(items))
        return items

    def normalize_item(self, raw_item: dict, endpoint: str) -> FeedItem:
        """Normalize a raw feed entry into a FeedItem.

        Args:
            raw_item: Raw feed entry from feedparser
            endpoint: Endpoint the entry was fetched from

        Returns:
            Normalized FeedItem object
        """
        title = clean_title(raw_item.get("title", ""))

        raw_id = raw_item.get("id") or raw_item.get("guid") or ""

        published = None
        published_str = raw_item.get("published") or raw_item.get("updated")
        if published_str:
            try:
                published = date_parser.parse(published_str)
                if published.tzinfo is None:
                    published = published.replace(
                        tzinfo=datetime.now().astimezone().tzinfo
                    )
            except (ValueError, OverflowError):
                published = None

        return FeedItem(
            title=title,
            raw_id=raw_id,
            link=raw_item.get("link", ""),
            endpoint=endpoint,
            published=published,
        )


def clean_title(title: str) -> str:
    """Reduce a feed title to a single line of plain text.

    Args:
        title: Title that may contain HTML and line breaks

    Returns:
        Title without markup, with all whitespace collapsed
    """
    if not title:
        return ""

    if "<" in title and ">" in title:
        title = BeautifulSoup(title, "html.parser").get_text(separator=" ")

    return " ".join(title.split())
