"""
backend/oddsline/config.py

Purpose:
    Central settings loading for the odds pipeline (provider credentials,
    cache freshness, rate-limit quotas, warmup schedule).

Dependencies:
    - pydantic-settings
    - pathlib
"""

from pathlib import Path

from pydantic_settings import BaseSettings

# Prefer backend/.env, fallback to project-root .env.
_BACKEND_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"
_ROOT_ENV_FILE = Path(__file__).resolve().parent.parent.parent / ".env"


class Settings(BaseSettings):
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "oddsline"
    JWT_SECRET: str = ""
    JWT_SECRET_OLD: str = ""  # Set during rotation; cleared after token expiry
    BACKEND_CORS_ORIGINS: str = "http://localhost:5173"

    # API-Football (direct api-sports.io key or RapidAPI reseller key)
    API_FOOTBALL_KEY: str = ""
    API_FOOTBALL_KEY_ISSUER: str = "auto"  # auto | rapidapi | apisports
    API_FOOTBALL_APISPORTS_BASE_URL: str = "https://v3.football.api-sports.io"
    API_FOOTBALL_RAPIDAPI_BASE_URL: str = "https://api-football-v1.p.rapidapi.com/v3"
    API_FOOTBALL_RAPIDAPI_HOST: str = "api-football-v1.p.rapidapi.com"
    API_FOOTBALL_TIMEOUT_SECONDS: float = 15.0
    API_FOOTBALL_MAX_RETRIES: int = 0  # Upstream retry policy belongs to the caller

    # Odds cache
    ODDS_CACHE_FRESH_MINUTES: int = 30

    # Suspicious odds guard (opt-in per request or globally)
    ODDS_GUARD_ENABLED: bool = False
    ODDS_GUARD_MIN: float = 1.25
    ODDS_GUARD_MAX: float = 5.0

    # Per-user feature quotas
    RATE_LIMIT_ON_STORE_ERROR: str = "allow"  # allow | deny
    RATE_LIMIT_FILTERIZER_PER_MINUTE: int = 10
    RATE_LIMIT_TICKET_CREATOR_PER_MINUTE: int = 5
    RATE_LIMIT_ANALYZER_PER_MINUTE: int = 10
    ODDS_FETCH_RATE_LIMIT_FEATURE: str = "analyzer"

    # Prematch odds warmup
    ODDS_WARMUP_ENABLED: bool = False
    ODDS_WARMUP_INTERVAL_MINUTES: int = 30
    ODDS_WARMUP_WINDOW_HOURS: int = 48
    ODDS_WARMUP_MAX_FIXTURES: int = 30

    model_config = {
        "env_file": (str(_BACKEND_ENV_FILE), str(_ROOT_ENV_FILE)),
        "extra": "ignore",
    }

    def rate_limit_for(self, feature: str) -> int:
        """Configured per-minute quota for a feature key."""
        return {
            "filterizer": self.RATE_LIMIT_FILTERIZER_PER_MINUTE,
            "ticket_creator": self.RATE_LIMIT_TICKET_CREATOR_PER_MINUTE,
            "analyzer": self.RATE_LIMIT_ANALYZER_PER_MINUTE,
        }[feature]


settings = Settings()
