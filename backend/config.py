"""
Settings
Runtime configuration, read once at startup.

Every field can be overridden with a PROBEWATCH_<FIELD> environment variable:
    PROBEWATCH_HISTORY_SIZE=200
    PROBEWATCH_WEBHOOK_TIMEOUT_SEC=5
"""

import os
from typing import Optional, Mapping

from pydantic import BaseModel, Field

ENV_PREFIX = "PROBEWATCH_"


class Settings(BaseModel):
    """Engine, scheduler and server settings"""
    # Storage
    result_retention: int = Field(default=1000, gt=0)
    history_size: int = Field(default=100, gt=0)
    
    # Evaluation
    evaluation_interval_sec: float = Field(default=60.0, gt=0)
    evaluation_deadline_sec: float = Field(default=10.0, gt=0)
    skip_empty_windows: bool = False
    
    # Dispatch
    webhook_timeout_sec: Optional[float] = None
    notification_queue_size: int = Field(default=1000, ge=0)
    
    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    
    # Scheduler
    autostart_scheduler: bool = True
    
    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in environ and environ[key] != "":
                overrides[name] = environ[key]
        return cls.model_validate(overrides)
