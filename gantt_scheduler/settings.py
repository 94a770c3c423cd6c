"""Runtime settings loaded from environment variables or a local .env file."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

env_file = Path.cwd() / ".env"
if env_file.exists():
    load_dotenv(env_file)


class Settings:
    """Application settings loaded from environment variables."""

    # Logging
    LOG_LEVEL = os.getenv("GANTT_LOG_LEVEL", "INFO")

    # Interaction
    UNDO_CAPACITY = int(os.getenv("GANTT_UNDO_CAPACITY", "10"))
    SNAP_TYPE = os.getenv("GANTT_SNAP_TYPE", "day")

    # Timeline
    DEFAULT_ZOOM_LEVEL = os.getenv("GANTT_DEFAULT_ZOOM_LEVEL", "week")


settings = Settings()
