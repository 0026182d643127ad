"""Configuration management"""
import os
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Activity history
# Number of daily buckets kept in the active window; older days are archived
HISTORY_MAX_ACTIVE_DAYS: int = int(os.getenv("HISTORY_MAX_ACTIVE_DAYS", "365"))
# IANA timezone used to derive the calendar day of an entry ('' = system local time)
HISTORY_TIMEZONE: str = os.getenv("HISTORY_TIMEZONE", "")


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if HISTORY_MAX_ACTIVE_DAYS < 1:
        raise ValueError("HISTORY_MAX_ACTIVE_DAYS must be a positive number of days")
    if not isinstance(logging.getLevelName(LOG_LEVEL.upper()), int):
        raise ValueError(f"LOG_LEVEL '{LOG_LEVEL}' is not a valid logging level")
    if HISTORY_TIMEZONE:
        try:
            ZoneInfo(HISTORY_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"HISTORY_TIMEZONE '{HISTORY_TIMEZONE}' is not a known timezone") from e


def configure_logging() -> None:
    """Configure root logging for the process"""
    logging.basicConfig(
        format=LOG_FORMAT,
        level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
    )
