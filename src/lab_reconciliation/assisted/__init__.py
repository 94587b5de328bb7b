# src/lab_reconciliation/assisted/__init__.py

from .base import (
    AssistedMatcher,
    AssistedMatchRequest,
    AssistedMatchResponse,
    BackendType,
    accept_assisted_suggestion,
)
from .ollama_matcher import OllamaAssistedMatcher
from .client import create_matcher

__all__ = [
    "AssistedMatcher",
    "AssistedMatchRequest",
    "AssistedMatchResponse",
    "BackendType",
    "accept_assisted_suggestion",
    "OllamaAssistedMatcher",
    "create_matcher",
]
