"""Configuration settings for the drill."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
CATALOG_PATH = Path(os.getenv("CATALOG_PATH", str(DATA_DIR / "vocab.json")))

# Drill settings
ARTICLES = ("der", "die", "das")
STORAGE_KEY = "de_vocab_stats_v1"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class DrillSettings:
    """Item selection, requeue and scoring settings."""
    target_sets: int = int(os.getenv("TARGET_SETS", "20"))
    recent_penalty_hours: float = float(os.getenv("RECENT_PENALTY_HOURS", "24"))
    new_item_bonus: float = float(os.getenv("NEW_ITEM_BONUS", "3.0"))
    error_weight: float = float(os.getenv("ERROR_WEIGHT", "4.0"))
    recent_min_factor: float = float(os.getenv("RECENT_MIN_FACTOR", "0.25"))
    requeue_min_offset: int = int(os.getenv("REQUEUE_MIN_OFFSET", "2"))
    requeue_max_offset: int = int(os.getenv("REQUEUE_MAX_OFFSET", "6"))
    distractor_count: int = int(os.getenv("DISTRACTOR_COUNT", "2"))
    same_tag_min_candidates: int = int(os.getenv("SAME_TAG_MIN_CANDIDATES", "10"))
    min_different_article_candidates: int = int(os.getenv("MIN_DIFFERENT_ARTICLE_CANDIDATES", "2"))
    score_correct: int = int(os.getenv("SCORE_CORRECT", "2"))
    score_wrong: int = int(os.getenv("SCORE_WRONG", "1"))
    articles: tuple[str, ...] = ARTICLES

    def validate(self) -> None:
        """Validate drill settings and raise ValueError if invalid."""
        if self.target_sets < 1:
            raise ValueError("TARGET_SETS must be positive")

        if self.recent_penalty_hours <= 0:
            raise ValueError("RECENT_PENALTY_HOURS must be positive")

        if self.new_item_bonus <= 1:
            raise ValueError("NEW_ITEM_BONUS must be greater than 1")

        if self.error_weight < 0:
            raise ValueError("ERROR_WEIGHT cannot be negative")

        if not 0 < self.recent_min_factor <= 1:
            raise ValueError("RECENT_MIN_FACTOR must be in (0, 1]")

        if self.requeue_min_offset < 2:
            raise ValueError("REQUEUE_MIN_OFFSET must be at least 2")

        if self.requeue_min_offset > self.requeue_max_offset:
            raise ValueError("REQUEUE_MIN_OFFSET cannot be greater than REQUEUE_MAX_OFFSET")

        if self.distractor_count < 1:
            raise ValueError("DISTRACTOR_COUNT must be positive")


@dataclass
class StorageSettings:
    """Statistics storage settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///derdiedas.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"
    key: str = os.getenv("STORAGE_KEY", STORAGE_KEY)


@dataclass
class CatalogSettings:
    """Vocabulary catalog settings."""
    path: Path = CATALOG_PATH


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


def get_allowed_ids() -> list[int]:
    """Get allowed Telegram user IDs from environment variable."""
    return [int(id_) for id_ in os.getenv("TELEGRAM_ALLOWED_IDS", "").split(",") if id_]


@dataclass
class BotSettings:
    """Bot configuration settings."""
    token: str = os.getenv("TELEGRAM_BOT_TOKEN", "")
    allowed_ids: list[int] = field(default_factory=get_allowed_ids)

    def validate(self) -> None:
        """Validate bot settings. Only needed when the Telegram front end starts."""
        if not self.token:
            raise ValueError("TELEGRAM_BOT_TOKEN is required")


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_drill_settings() -> DrillSettings:
    """Get drill settings."""
    return DrillSettings()


def get_storage_settings() -> StorageSettings:
    """Get storage settings."""
    return StorageSettings()


def get_catalog_settings() -> CatalogSettings:
    """Get catalog settings."""
    return CatalogSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_bot_settings() -> BotSettings:
    """Get bot settings."""
    return BotSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    drill: DrillSettings = field(default_factory=get_drill_settings)
    storage: StorageSettings = field(default_factory=get_storage_settings)
    catalog: CatalogSettings = field(default_factory=get_catalog_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    bot: BotSettings = field(default_factory=get_bot_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        self.drill.validate()

        if not self.storage.key:
            raise ValueError("STORAGE_KEY cannot be empty")


# Create global settings instance
settings = Settings()
settings.validate()
