# ============================================================================
# src/lab_reconciliation/core/config.py
# ============================================================================
"""
Runtime Configuration

Settings for the assisted matcher backend, read from environment variables
and an optional .env file loaded when this module is imported. Storage paths,
logging and thresholds live in lab_reconciliation.config.

Usage:
    from lab_reconciliation.core.config import get_config, Config

    matcher = create_matcher(get_config())

    cfg = Config()
    print(cfg.ollama_host)
"""

import os
from dataclasses import asdict, dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict

from dotenv import load_dotenv


def _load_dotenv() -> bool:
    """Load the first .env found: project root, then the working directory."""
    for env_path in (Path(__file__).parents[3] / '.env', Path.cwd() / '.env'):
        if env_path.exists():
            load_dotenv(env_path)
            return True
    return False


_load_dotenv()


def _env_number(key: str, default, cast: Callable[[str], Any]):
    """Numeric env var; unset or unparseable values give the default."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return cast(value)
    except ValueError:
        return default


@dataclass
class Config:
    """
    Collaborator settings with attribute access.

    Field names are the lower-cased environment variable names.
    """

    matcher_backend: str = field(default_factory=lambda: os.getenv('MATCHER_BACKEND', 'ollama'))
    ollama_host: str = field(default_factory=lambda: os.getenv('OLLAMA_HOST', 'http://localhost:11434'))
    ollama_model: str = field(default_factory=lambda: os.getenv('OLLAMA_MODEL', 'llama3.1:8b'))
    max_tokens: int = field(default_factory=lambda: _env_number('MAX_TOKENS', 300, int))
    temperature: float = field(default_factory=lambda: _env_number('TEMPERATURE', 0.1, float))
    timeout: int = field(default_factory=lambda: _env_number('TIMEOUT', 30, int))

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict handed to factories such as create_matcher()."""
        return asdict(self)


@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Configuration dictionary, built once per process.

    Call reload_config() after changing the environment or the .env file.
    """
    _load_dotenv()
    return Config().to_dict()


def reload_config() -> Dict[str, Any]:
    get_config.cache_clear()
    return get_config()
