"""
Application Settings — All via environment variables with sensible defaults.

Importing this module only reads ``os.environ``. Entry points that want a
``.env`` file honored call ``load_settings()`` once at startup.
"""
import logging
import os

from dotenv import load_dotenv


class Settings:
    def __init__(self):
        # ── Logging ──
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        # ── Insight pipeline ──
        self.ADVISOR_MAX_VISIBLE_INSIGHTS: int = int(os.getenv("ADVISOR_MAX_VISIBLE_INSIGHTS", "7"))

        # ── Projection model ──
        # Standing units gained per year of continued application
        self.ADVISOR_ACCRUAL_RATE: float = float(os.getenv("ADVISOR_ACCRUAL_RATE", "1.0"))
        self.ADVISOR_UNREACHABLE_YEARS: int = int(os.getenv("ADVISOR_UNREACHABLE_YEARS", "30"))

        # ── Discipline rules ──
        self.ADVISOR_LOW_ODDS_THRESHOLD: float = float(os.getenv("ADVISOR_LOW_ODDS_THRESHOLD", "0.05"))

        # ── Feature Flags ──
        self.ENABLE_TEMPORAL_INSIGHTS: bool = os.getenv("ENABLE_TEMPORAL_INSIGHTS", "true").lower() == "true"
        self.ENABLE_SCOUTING_INSIGHTS: bool = os.getenv("ENABLE_SCOUTING_INSIGHTS", "true").lower() == "true"


settings = Settings()


def load_settings(dotenv_path: str = None) -> Settings:
    """Load a .env file (existing environment wins), then read fresh settings."""
    load_dotenv(dotenv_path)
    return Settings()


def configure_logging(level: str = None) -> None:
    """Apply the engine's log format. Safe to call more than once."""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
