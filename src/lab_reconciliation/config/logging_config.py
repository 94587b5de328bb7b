# ============================================================================
# src/lab_reconciliation/config/logging_config.py
# ============================================================================
"""
Logging Settings
- Log level
- JSON output
- File logging
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit log records as JSON lines"
    )
    LOG_TO_FILE: bool = Field(
        default=False,
        description="Also write logs to base_settings.LOG_FILE"
    )

logging_settings = LoggingSettings()
