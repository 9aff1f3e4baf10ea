"""Configuration management for Reddit IRC Bot."""

import json
import os
import string
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_TEMPLATE = "[{title}] {id} {permalink}"
TEMPLATE_FIELDS = frozenset({"title", "id", "permalink", "endpoint"})


@dataclass
class IrcConfig:
    """Configuration for the IRC connection."""

    nick: str
    server: str
    channels: list[str]
    user: str = ""
    password: str | None = None
    port: int = 6697
    tls: bool = True
    keepalive: int = 60

    def __post_init__(self):
        if not self.user:
            self.user = self.nick


@dataclass
class FetchConfig:
    """Configuration for the feed fetcher."""

    endpoints: list[str]
    base_url: str = "https://www.reddit.com"
    user_agent: str = "reddit-irc-bot/1.0"
    timeout: int = 30


@dataclass
class ScheduleConfig:
    """Configuration for the poll schedule."""

    interval: float = 300.0
    round: float = 300.0
    bootstrap_backoff: float = 600.0


@dataclass
class DeliveryConfig:
    """Configuration for message rendering and delivery."""

    template: str = DEFAULT_TEMPLATE
    permalink_base: str = "https://redd.it/"
    print_endpoint: bool = False
    queue_size: int = 100
    send_delay: float = 1.0
    reconnect_cooldown: float = 60.0
    channels: list[str] = field(default_factory=list)


def validate_template(template: str) -> str:
    """Check that a message template only uses supported named fields.

    Args:
        template: str.format style template

    Returns:
        The template unchanged

    Raises:
        ValueError: If the template is malformed or uses unknown fields
    """
    try:
        parsed = list(string.Formatter().parse(template))
    except ValueError as e:
        raise ValueError(f"Malformed message template: {e}") from e

    fields = {field_name for _, field_name, _, _ in parsed if field_name is not None}
    for field_name in fields:
        if field_name not in TEMPLATE_FIELDS:
            raise ValueError(
                f"Unsupported field {field_name!r} in message template, "
                f"expected one of {sorted(TEMPLATE_FIELDS)}"
            )

    if not fields & {"id", "permalink"}:
        raise ValueError("Message template must reference {id} or {permalink}")
    return template


def parse_bool(value: str) -> bool:
    """Parse a boolean environment value."""
    normalized = value.strip().lower()
    if normalized in ("1", "true", "yes", "on"):
        return True
    if normalized in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def parse_list(value: str) -> list[str]:
    """Parse a comma-separated environment value."""
    return [part.strip() for part in value.split(",") if part.strip()]


class Config:
    """Main configuration manager."""

    # Default endpoints file path
    ENDPOINTS_FILE = "endpoints.json"

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.irc_nick = os.getenv("IRC_NICK", "redditbot")
        self.irc_user = os.getenv("IRC_USER", "")
        self.irc_password = os.getenv("IRC_PASSWORD", "") or None
        self.irc_server = os.getenv("IRC_SERVER", "irc.libera.chat:6697")
        self.irc_tls = parse_bool(os.getenv("IRC_TLS", "true"))
        self.irc_channels = parse_list(os.getenv("IRC_CHANNELS", ""))
        self.endpoints_file = os.getenv("ENDPOINTS_FILE", self.ENDPOINTS_FILE)
        self.base_url = os.getenv("REDDIT_BASE_URL", "https://www.reddit.com")
        self.user_agent = os.getenv("USER_AGENT", "reddit-irc-bot/1.0")
        self.fetch_interval = float(os.getenv("FETCH_INTERVAL", "300"))
        self.round = float(os.getenv("ROUND", "300"))
        self.print_endpoint = parse_bool(os.getenv("PRINT_ENDPOINT", "false"))
        self.message_template = os.getenv("MESSAGE_TEMPLATE", DEFAULT_TEMPLATE)
        self.queue_size = int(os.getenv("QUEUE_SIZE", "100"))
        self.send_delay = float(os.getenv("SEND_DELAY", "1"))
        self.reconnect_cooldown = float(os.getenv("RECONNECT_COOLDOWN", "60"))
        self.bootstrap_backoff = float(os.getenv("BOOTSTRAP_BACKOFF", "600"))
        self.http_timeout = int(os.getenv("HTTP_TIMEOUT", "30"))

    def get_endpoints(self) -> list[str]:
        """Get subreddit endpoints from the endpoints file."""
        endpoints_file = Path(self.endpoints_file)
        if not endpoints_file.exists():
            raise FileNotFoundError(f"Endpoints file not found: {endpoints_file}")

        try:
            with open(endpoints_file, "r") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in endpoints file: {e}") from e

        if not isinstance(data, dict):
            raise ValueError("Endpoints file must contain a JSON object")

        entries = data.get("endpoints", [])
        if not isinstance(entries, list):
            raise ValueError("\"endpoints\" must be a list")

        for entry in entries:
            if not isinstance(entry, dict):
                raise ValueError(f"Endpoint entry must be an object: {entry!r}")

        endpoints = [
            entry["path"]
            for entry in entries
            if entry.get("enabled", True) and entry.get("path")
        ]

        if not endpoints:
            raise ValueError("No enabled endpoints found in endpoints file")

        return endpoints

    def get_irc_config(self) -> IrcConfig:
        """Get IRC configuration."""
        if not self.irc_channels:
            raise ValueError("IRC_CHANNELS must list at least one channel")

        host, _, port = self.irc_server.partition(":")
        if not host:
            raise ValueError(f"Invalid IRC server address: {self.irc_server!r}")

        return IrcConfig(
            nick=self.irc_nick,
            user=self.irc_user,
            password=self.irc_password,
            server=host,
            port=int(port) if port else (6697 if self.irc_tls else 6667),
            tls=self.irc_tls,
            channels=self.irc_channels,
        )

    def get_fetch_config(self) -> FetchConfig:
        """Get fetcher configuration."""
        return FetchConfig(
            endpoints=self.get_endpoints(),
            base_url=self.base_url.rstrip("/"),
            user_agent=self.user_agent,
            timeout=self.http_timeout,
        )

    def get_schedule_config(self) -> ScheduleConfig:
        """Get schedule configuration."""
        if self.fetch_interval <= 0 or self.round <= 0:
            raise ValueError("FETCH_INTERVAL and ROUND must be positive")

        return ScheduleConfig(
            interval=self.fetch_interval,
            round=self.round,
            bootstrap_backoff=self.bootstrap_backoff,
        )

    def get_delivery_config(self) -> DeliveryConfig:
        """Get delivery configuration."""
        if self.queue_size <= 0:
            raise ValueError("QUEUE_SIZE must be positive")

        return DeliveryConfig(
            template=validate_template(self.message_template),
            print_endpoint=self.print_endpoint,
            queue_size=self.queue_size,
            send_delay=self.send_delay,
            reconnect_cooldown=self.reconnect_cooldown,
            channels=self.irc_channels,
        )
