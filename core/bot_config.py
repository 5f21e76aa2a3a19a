"""Bot Configuration - Single Authority for Bot Policy

HubsBot reads from here, never hard-codes policy.

RESPONSIBILITY:
- Load bot.yaml
- Provide get() singleton
- Expose typed config values

DOES NOT:
- Launch browsers (the engine's job)
- Own sessions (HubsBot's job)
- Validate names or URLs
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class BotSettings:
    """Immutable bot configuration snapshot."""
    headless: bool
    user_data_dir: str  # "" (ephemeral) | path
    name: str
    auto_log: bool
    screenshot_path: str
    navigation_timeout_ms: int
    sanity_period_s: float
    delete_delay_s: float
    play_retry_count: int
    play_backoff_s: float


class BotConfig:
    """Singleton bot configuration authority.

    Usage:
        settings = BotConfig.get().settings
        headless = settings.headless
    """

    _instance: Optional["BotConfig"] = None
    _settings: Optional[BotSettings] = None

    CONFIG_PATH = Path(__file__).parent.parent / "config" / "bot.yaml"

    # Defaults (used if yaml missing or invalid)
    DEFAULTS = {
        "headless": True,
        "user_data_dir": "",
        "name": "HubsBot",
        "auto_log": True,
        "screenshot_path": "botError.png",
        "navigation_timeout_ms": 30000,
        "sanity_period_s": 60.0,
        "delete_delay_s": 1.0,
        "play_retry_count": 5,
        "play_backoff_s": 1.0,
    }

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._load()
        return cls._instance

    @classmethod
    def get(cls) -> "BotConfig":
        """Get singleton instance."""
        return cls()

    @property
    def settings(self) -> BotSettings:
        """Get current bot settings."""
        if self._settings is None:
            self._load()
        return self._settings

    def _load(self, config_path: Optional[Path] = None) -> None:
        """Load configuration from bot.yaml."""
        config_path = Path(config_path) if config_path else self.CONFIG_PATH

        raw_config: Dict[str, Any] = {}

        if config_path.exists():
            try:
                import yaml
                with open(config_path, encoding="utf-8") as f:
                    full_config = yaml.safe_load(f) or {}
                    raw_config = full_config.get("bot", {}) or {}
                    logging.info(f"Loaded bot config from {config_path}")
            except Exception as e:
                logging.warning(f"Failed to load bot.yaml: {e}, using defaults")
        else:
            logging.info(f"No bot.yaml found at {config_path}, using defaults")

        unknown = set(raw_config) - set(self.DEFAULTS)
        if unknown:
            logging.warning(f"Ignoring unknown bot settings: {sorted(unknown)}")

        merged = {**self.DEFAULTS, **{k: v for k, v in raw_config.items() if k in self.DEFAULTS}}

        self._settings = BotSettings(
            headless=bool(merged["headless"]),
            user_data_dir=merged["user_data_dir"] or "",
            name=str(merged["name"]),
            auto_log=bool(merged["auto_log"]),
            screenshot_path=str(merged["screenshot_path"]),
            navigation_timeout_ms=int(merged["navigation_timeout_ms"]),
            sanity_period_s=float(merged["sanity_period_s"]),
            delete_delay_s=float(merged["delete_delay_s"]),
            play_retry_count=int(merged["play_retry_count"]),
            play_backoff_s=float(merged["play_backoff_s"]),
        )

        logging.debug(f"BotConfig: {self._settings}")

    def reload(self, config_path: Optional[Path] = None) -> None:
        """Force reload configuration (for testing)."""
        self._load(config_path)
