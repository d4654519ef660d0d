"""
Configuration for CourseBot.

Settings come from COURSEBOT_* environment variables, optionally loaded
from a .env file. Anything missing falls back to the defaults below.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field


ENV_PREFIX = "COURSEBOT_"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    course_path: Path = Path("data") / "course.yaml"
    records_db: Path = Path("data") / "bot.db"
    quiz_continue_delay: float = Field(default=1.5, ge=0)       # seconds
    final_test_length: int = Field(default=5, ge=1)             # used when the catalog has no final_test
    inactive_days: int = Field(default=3, ge=1)
    reminder_interval_hours: float = Field(default=24, gt=0)
    log_level: str = Field(default="INFO", pattern=r'^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$')


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional .env file (default: .env in the working directory)

    Returns:
        Validated Settings

    Raises:
        pydantic.ValidationError: If a variable has an invalid value
    """
    load_dotenv(env_file)

    values = {}
    for name in Settings.model_fields:
        raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw.upper() if name == "log_level" else raw
    return Settings(**values)


def configure_logging(level: str = "INFO"):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
