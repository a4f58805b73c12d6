# Area: Shared
"""
traitor_sync._config — Engine configuration
===========================================

SyncConfig holds the tunables of one client engine. load_config()
builds it from, in increasing priority: defaults, an optional JSON
file, a ``.env`` file, and TRAITOR_SYNC_* environment variables.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger("traitor_sync.config")

# Environment variable -> config key
ENV_MAPPINGS = {
    "TRAITOR_SYNC_KICK_CHECK_INTERVAL": "kick_check_interval_seconds",
    "TRAITOR_SYNC_KICK_CHECK_GRACE": "kick_check_grace_seconds",
    "TRAITOR_SYNC_VOTE_RETRY_ATTEMPTS": "vote_retry_attempts",
    "TRAITOR_SYNC_VOTE_RETRY_BACKOFF": "vote_retry_backoff_seconds",
    "TRAITOR_SYNC_UNIQUE_TASK_PROBABILITY": "unique_task_probability",
    "TRAITOR_SYNC_ROOM_CODE_ATTEMPTS": "room_code_attempts",
    "TRAITOR_SYNC_LOG_FILE": "log_file",
    "TRAITOR_SYNC_LOG_LEVEL": "log_level",
}


class SyncConfig(BaseModel):
    """
    Tunables of one client engine.

    Attributes:
        kick_check_interval_seconds: Delay between own-row existence checks
        kick_check_grace_seconds: Delay after joining before the first check
        vote_retry_attempts: Vote merge attempts before giving up
        vote_retry_backoff_seconds: Linear backoff step between vote attempts
        unique_task_probability: Chance per slot of drawing a unique task
        room_code_attempts: Fresh room codes tried when one is taken
        log_file: JSON log file ("" disables file logging)
        log_level: Logging level name
    """

    kick_check_interval_seconds: float = Field(2.0, gt=0)
    kick_check_grace_seconds: float = Field(3.0, ge=0)
    vote_retry_attempts: int = Field(3, ge=1)
    vote_retry_backoff_seconds: float = Field(0.5, ge=0)
    unique_task_probability: float = Field(0.3, ge=0, le=1)
    room_code_attempts: int = Field(5, ge=1)
    log_file: str = "traitor_sync.log"
    log_level: str = "INFO"


def load_config(config_path: Optional[str] = None,
                env_file: Optional[str] = None) -> SyncConfig:
    """
    Load config from file and environment.

    Args:
        config_path: Optional JSON file; a missing file is ignored
        env_file: Optional .env path (default: search from the cwd)

    Raises:
        ConfigurationError: If the file is not valid JSON or a value is invalid
    """
    config: Dict[str, Any] = {}

    if config_path:
        path = Path(config_path)
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    config = json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid config file {path}: {e}") from e
        else:
            logger.debug(f"Config file {path} not found, using defaults")

    load_dotenv(env_file or find_dotenv(usecwd=True))

    # Override with environment variables
    for env_key, config_key in ENV_MAPPINGS.items():
        if env_key in os.environ:
            config[config_key] = os.environ[env_key]

    try:
        return SyncConfig.model_validate(config)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise ConfigurationError(f"Invalid configuration: {errors}", errors) from e
