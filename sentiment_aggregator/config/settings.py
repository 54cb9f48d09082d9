import os
from typing import Optional, Union
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
import yaml
from pathlib import Path

# Define the root directory of the sentiment_aggregator package
SERVICE_ROOT_DIR = Path(__file__).parent.parent.resolve()
DEFAULT_CONFIG_PATH = SERVICE_ROOT_DIR / "config" / "app_config.yaml"
# Path to the repository root (one level up from the package)
PROJECT_ROOT_DIR = SERVICE_ROOT_DIR.parent

_LIST_FIELDS = (
    "TICKERS",
    "SUBREDDITS",
    "SEARCH_TERMS",
    "TWITTER_SEARCH_TERMS",
    "CORS_ORIGINS",
)


def _split_csv(value: Union[str, list[str]]) -> list[str]:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return list(value)


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "SocialSentimentAggregator"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3500

    # Security settings
    CORS_ORIGINS: Union[str, list[str]] = "*"

    # Scheduling
    SCRAPE_INTERVAL_MINUTES: float = 15.0
    RUN_ON_STARTUP: bool = True

    # What to track
    TICKERS: Union[str, list[str]] = "SPY,ES_F,QQQ,SPX"
    SUBREDDITS: Union[str, list[str]] = "wallstreetbets,stocks,options,daytrading"
    SEARCH_TERMS: Union[str, list[str]] = "SPY,ES,SPX,QQQ,$SPY,$ES,$SPX,$QQQ"
    TWITTER_SEARCH_TERMS: Union[str, list[str]] = "SPY,ES futures,SPX"

    # Sources
    USER_AGENT: str = "Social-Sentiment-Aggregator/1.0"
    CONCURRENT_SOURCES: bool = True
    SOURCE_TIMEOUT_SECONDS: float = 120.0
    REQUEST_TIMEOUT_SECONDS: float = 15.0
    MAX_RETRIES: int = 2
    SOURCE_FAILURE_WARN_THRESHOLD: int = 3

    STOCKTWITS_ENABLED: bool = True
    STOCKTWITS_API_URL: str = "https://api.stocktwits.com/api/2/streams/symbol"
    STOCKTWITS_MESSAGE_LIMIT: int = 30
    STOCKTWITS_REQUEST_DELAY_SECONDS: float = 0.5

    REDDIT_ENABLED: bool = True
    REDDIT_BASE_URL: str = "https://www.reddit.com"
    REDDIT_POST_LIMIT: int = 50
    REDDIT_REQUEST_DELAY_SECONDS: float = 0.5

    TWITTER_ENABLED: bool = True
    TWITTER_CLI_PATH: str = "bird"
    TWITTER_SEARCH_LIMIT: int = 30
    TWITTER_CLI_TIMEOUT_SECONDS: float = 30.0
    TWITTER_REQUEST_DELAY_SECONDS: float = 1.0
    AUTH_TOKEN: Optional[str] = None
    CT0: Optional[str] = None

    # Signal thresholds (percent, inclusive)
    EXTREME_THRESHOLD_PCT: float = 90.0
    HIGH_THRESHOLD_PCT: float = 75.0
    # "always" appends an alert every extreme cycle, "unacknowledged" skips it
    # while an unacknowledged alert of the same type is still open.
    ALERT_DEDUP_POLICY: str = "always"

    # Storage
    STORE_BACKEND: str = "json"  # one of: memory, json, sqlalchemy
    STORE_JSON_PATH: str = str(PROJECT_ROOT_DIR / "data" / "sentiment-data.json")
    DATABASE_URL: str = "sqlite:///" + str(PROJECT_ROOT_DIR / "data" / "sentiment.db")
    MAX_READINGS: int = 1000
    MAX_AGGREGATES: int = 500
    MAX_ALERTS: int = 100

    # API defaults
    HISTORY_DEFAULT_HOURS: float = 24.0

    # Logging configuration path (can be overridden by env var)
    LOGGING_CONFIG_PATH: str = str(SERVICE_ROOT_DIR / "config" / "logging_config.yaml")
    LOG_LEVEL: str = "INFO"

    # Monitoring
    ENABLE_PROMETHEUS: bool = False
    PROMETHEUS_PORT: int = 8000

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT_DIR / ".env"),  # Load variables from project root .env
        env_file_encoding='utf-8',
        extra='ignore'  # Ignore extra fields from env or yaml
    )

    @field_validator("ALERT_DEDUP_POLICY")
    @classmethod
    def check_dedup_policy(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("always", "unacknowledged"):
            raise ValueError("ALERT_DEDUP_POLICY must be 'always' or 'unacknowledged'")
        return v

    @field_validator("STORE_BACKEND")
    @classmethod
    def check_store_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "json", "sqlalchemy"):
            raise ValueError("STORE_BACKEND must be one of: memory, json, sqlalchemy")
        return v

    @field_validator("HIGH_THRESHOLD_PCT", "EXTREME_THRESHOLD_PCT")
    @classmethod
    def check_threshold(cls, v: float) -> float:
        if not 0 < v <= 100:
            raise ValueError("thresholds are percentages in (0, 100]")
        return v

    def model_post_init(self, __context) -> None:
        """Parse comma-separated strings into lists after model initialization."""
        for name in _LIST_FIELDS:
            value = getattr(self, name)
            if isinstance(value, str):
                setattr(self, name, _split_csv(value))
        if self.HIGH_THRESHOLD_PCT > self.EXTREME_THRESHOLD_PCT:
            raise ValueError("HIGH_THRESHOLD_PCT must not exceed EXTREME_THRESHOLD_PCT")

    @property
    def twitter_credentials_configured(self) -> bool:
        return bool(self.AUTH_TOKEN and self.CT0)

    @classmethod
    def load_from_yaml(cls, config_path: Path = DEFAULT_CONFIG_PATH, **overrides) -> 'Settings':
        """
        Build settings from class defaults, the YAML file, .env and the environment.

        Keys in the YAML file use the same upper-case names as the fields. YAML values
        override the .env file but never a variable set in the process environment.
        """
        initial_data = {}
        if config_path.exists():
            with open(config_path, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if yaml_config:
                env_names = {key.upper() for key in os.environ}
                for key, value in yaml_config.items():
                    key = str(key).upper()
                    if key in cls.model_fields and key not in env_names:
                        initial_data[key] = value
        initial_data.update(overrides)
        return cls(**initial_data)


# Instantiate settings
settings = Settings.load_from_yaml()


def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings
