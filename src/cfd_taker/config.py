"""Configuration management for the CFD taker."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from cfd_taker.data.price_feed import BITMEX_BXBT_URL


@dataclass
class DaemonConfig:
    """Connection to the local taker daemon."""

    url: str = "http://127.0.0.1:8000"
    username: str = "itchysats"
    password: str = ""
    http_timeout: float = 30.0  # Seconds per REST request

    @property
    def feed_url(self) -> str:
        return f"{self.url.rstrip('/')}/api/feed"


@dataclass
class FeedConfig:
    """External price feed and reconnection settings."""

    price_feed_url: str = BITMEX_BXBT_URL
    reconnect_delay: float = 1.0  # Fixed delay between reconnect attempts
    health_interval: int = 60  # Health log interval in seconds


@dataclass
class TradingConfig:
    """Order form defaults."""

    default_leverage: int = 2


@dataclass
class Config:
    """Main configuration container."""

    daemon: DaemonConfig = field(default_factory=DaemonConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)
    trading: TradingConfig = field(default_factory=TradingConfig)

    @classmethod
    def from_env(cls, env_path: Path | None = None) -> "Config":
        """Load configuration from environment variables.

        Args:
            env_path: Path to .env file (optional)

        Returns:
            Config instance populated from environment
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        daemon = DaemonConfig(
            url=os.getenv("TAKER_DAEMON_URL", "http://127.0.0.1:8000"),
            username=os.getenv("TAKER_DAEMON_USERNAME", "itchysats"),
            password=os.getenv("TAKER_DAEMON_PASSWORD", ""),
            http_timeout=float(os.getenv("TAKER_HTTP_TIMEOUT", "30")),
        )

        feed = FeedConfig(
            price_feed_url=os.getenv("TAKER_PRICE_FEED_URL", BITMEX_BXBT_URL),
            reconnect_delay=max(float(os.getenv("TAKER_RECONNECT_DELAY", "1.0")), 0.0),
            health_interval=int(os.getenv("TAKER_HEALTH_INTERVAL", "60")),
        )

        trading = TradingConfig(
            default_leverage=max(int(os.getenv("TAKER_DEFAULT_LEVERAGE", "2")), 1),
        )

        return cls(daemon=daemon, feed=feed, trading=trading)
