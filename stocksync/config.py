"""Configuration management for the StockSync client."""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Default configuration directory
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "stocksync"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.json"
DEFAULT_CACHE_DIR = DEFAULT_CONFIG_DIR / "cache"

DEFAULT_SERVER_URL = "http://localhost:8000"


@dataclass
class StockSyncConfig:
    """Configuration for the StockSync client.

    Attributes:
        server_url: Base URL of the StockGenius server.
        api_token: Owner access token issued by the server.
        cache_dir: Directory holding the local snapshot files.
        max_photo_size_kb: Target size for compressed photos.
        raw_photo_prefix: Prefix marking a photo as an embedded payload that
            should be recompressed; anything else is passed through untouched.
        request_timeout: Seconds before an HTTP request is abandoned.
        initial_categories: Category names created when the server has none.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
    """

    server_url: str = DEFAULT_SERVER_URL
    api_token: str = ""
    cache_dir: str = str(DEFAULT_CACHE_DIR)
    max_photo_size_kb: int = 100
    raw_photo_prefix: str = "data:image"
    request_timeout: float = 10.0
    initial_categories: list[str] = field(default_factory=list)
    log_level: str = "INFO"

    def is_configured(self) -> bool:
        """Check if the client has been configured.

        Returns:
            bool: True if server_url and api_token are set.
        """
        return bool(self.server_url and self.api_token)

    def save(self, config_path: Path | None = None) -> None:
        """Save config to file.

        Args:
            config_path: Path to config file (default: ~/.config/stocksync/config.json).
        """
        path = config_path or DEFAULT_CONFIG_FILE
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

        # Secure the config file (contains the access token)
        os.chmod(path, 0o600)

    @classmethod
    def load(cls, config_path: Path | None = None) -> "StockSyncConfig":
        """Load configuration from file.

        Unknown keys are ignored so older clients can read newer files.

        Args:
            config_path: Path to config file.

        Returns:
            StockSyncConfig: Loaded configuration or default.
        """
        path = config_path or DEFAULT_CONFIG_FILE

        if not path.exists():
            return cls()

        try:
            with open(path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Error loading config: {e}")
            return cls()

        if not isinstance(data, dict):
            logger.warning(f"Error loading config: expected an object in {path}")
            return cls()

        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})


def get_config(config_path: Path | None = None) -> StockSyncConfig:
    """Get the current configuration.

    Args:
        config_path: Optional custom config path.

    Returns:
        StockSyncConfig: Current configuration.
    """
    return StockSyncConfig.load(config_path)
