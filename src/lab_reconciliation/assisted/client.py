# ============================================================================
# src/lab_reconciliation/assisted/client.py
# ============================================================================
"""
Assisted Matcher Factory

Usage:
    from lab_reconciliation.assisted.client import create_matcher

    matcher = create_matcher({'matcher_backend': 'ollama'})
    response = await matcher.suggest(request)
"""

import logging
from typing import Any, Dict, Optional

from .base import AssistedMatcher
from .ollama_matcher import OllamaAssistedMatcher
from ..core.config import get_config
from ..utils.exceptions import ConfigurationError


DEFAULT_BACKEND = "ollama"

# Keyed by (backend, host, model) so one HTTP session is shared per server
_matcher_cache: Dict[tuple, AssistedMatcher] = {}

_logger = logging.getLogger(__name__)


def create_matcher(config: Optional[Dict[str, Any]] = None) -> AssistedMatcher:
    """
    Factory function to create an assisted matcher.

    Configuration is loaded from the .env file and merged with any passed
    config; passed values take precedence.

    Raises:
        ConfigurationError: If backend type is not supported
    """
    config = {**get_config(), **(config or {})}
    backend = str(config.get('matcher_backend', DEFAULT_BACKEND)).lower()

    if backend != "ollama":
        raise ConfigurationError(
            f"Unknown matcher backend: {backend}. Supported backends: ollama"
        )

    cache_key = (backend, config.get('ollama_host'), config.get('ollama_model'))
    if cache_key in _matcher_cache:
        _logger.debug(f"Reusing cached {backend} matcher: {cache_key}")
        return _matcher_cache[cache_key]

    matcher = OllamaAssistedMatcher(config)
    _matcher_cache[cache_key] = matcher
    return matcher


def clear_matcher_cache():
    _matcher_cache.clear()
