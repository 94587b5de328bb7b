# ============================================================================
# src/lab_reconciliation/config/base_config.py
# ============================================================================
"""
Base Configuration
- Project root
- Record store database
- Data directory
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

class BaseSettingsConfig(BaseSettings):
    # Root project directory
    PROJECT_ROOT: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent.parent,
        description="Root directory of the project"
    )

    DATA_DIR: Path = Field(
        default=Path("data"),
        description="Directory for local databases and logs"
    )

    RECORD_DB_PATH: Path = Field(
        default=Path("data/lab_records.db"),
        description="SQLite database holding records, result lines, canonical items and aliases"
    )

    LOG_FILE: Path = Field(
        default=Path("data/logs/reconciliation.log"),
        description="Log file used when file logging is enabled"
    )

    def create_directories(self):
        """Create all necessary directories if they don't exist"""
        dirs = [
            self.DATA_DIR,
            self.RECORD_DB_PATH.parent,
            self.LOG_FILE.parent,
        ]
        for directory in dirs:
            directory.mkdir(parents=True, exist_ok=True)

# Global instance
base_settings = BaseSettingsConfig()
