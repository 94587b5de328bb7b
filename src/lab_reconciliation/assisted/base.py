# ============================================================================
# src/lab_reconciliation/assisted/base.py
# ============================================================================
"""
Base Assisted Matcher Interface

The assisted matcher is a best-effort external service consulted only when
local matching finds no confident canonical item. It is untrusted: whatever it
returns goes through accept_assisted_suggestion() before the resolver uses it.

Supported backends:
- ollama: local Ollama server
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional
import json
import logging

from json_repair import repair_json

from ..core.context import CanonicalItem, MatchMethod, MappingSuggestion


logger = logging.getLogger(__name__)


class BackendType(Enum):
    """Supported assisted-matching backends."""
    OLLAMA = "ollama"


@dataclass
class AssistedMatchRequest:
    raw_name: str
    candidates: List[CanonicalItem] = field(default_factory=list)
    value: Optional[str] = None
    unit: Optional[str] = None
    ref_min: Optional[float] = None
    ref_max: Optional[float] = None
    ref_text: Optional[str] = None


@dataclass
class AssistedMatchResponse:
    """One suggestion. confidence is on the 0-100 scale."""
    canonical_id: str
    confidence: float
    reasoning: str = ""
    source_hint: Optional[str] = None


class AssistedMatcher(ABC):
    """
    Abstract base class for assisted matching backends.

    All backends must implement:
    - suggest(): best candidate for one raw name, or None on refusal
    - health_check(): verify backend is available
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logging.getLogger(self.__class__.__name__)

        self._request_count = 0
        self._refusal_count = 0

    @property
    @abstractmethod
    def backend_type(self) -> BackendType:
        """Return the backend type."""
        pass

    @abstractmethod
    async def suggest(self, request: AssistedMatchRequest) -> Optional[AssistedMatchResponse]:
        """
        Suggest a canonical item for one raw name.

        Returns:
            AssistedMatchResponse, or None when the backend declines to match.
            Transport failures raise; the resolver catches them.
        """
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """
        Check if the backend is available and ready.

        Returns:
            {"healthy": bool, "backend": str, "details": str}
        """
        pass

    async def close(self):
        """Release network resources. No-op by default."""
        return None

    def extract_json(self, response_text: str) -> Optional[Dict]:
        """
        Extract a JSON object from generated text.

        Models often wrap JSON in prose or emit single quotes and trailing
        commas; json_repair handles both.
        """
        if not response_text or not response_text.strip():
            self.logger.warning("Empty response text, no JSON to extract")
            return None

        try:
            parsed = json.loads(response_text.strip())
            if isinstance(parsed, dict):
                return parsed
        except json.JSONDecodeError:
            pass

        start_idx = response_text.find('{')
        end_idx = response_text.rfind('}')
        candidate = response_text[start_idx:end_idx + 1] if 0 <= start_idx < end_idx else response_text

        repaired = repair_json(candidate, return_objects=True)
        if isinstance(repaired, dict) and repaired:
            self.logger.debug("json_repair fixed matcher response")
            return repaired

        self.logger.warning(f"Could not parse JSON from response: {response_text[:200]}...")
        return None

    def get_statistics(self) -> Dict[str, Any]:
        return {
            "backend": self.backend_type.value,
            "requests": self._request_count,
            "refusals": self._refusal_count,
        }


def accept_assisted_suggestion(
    response: Optional[AssistedMatchResponse],
    vocabulary,
    min_confidence: float
) -> Optional[MappingSuggestion]:
    """
    Trust gate for assisted-matching responses.

    A response is accepted only if its confidence reaches min_confidence and
    the canonical id it names exists in the local vocabulary. Anything else
    is discarded without raising.

    Args:
        response: Raw backend response (None = refusal)
        vocabulary: CanonicalVocabulary used for id verification
        min_confidence: Acceptance threshold on the 0-100 scale
    """
    if response is None:
        return None

    if response.confidence is None or response.confidence < min_confidence:
        logger.info(
            f"Discarding assisted suggestion {response.canonical_id}: "
            f"confidence {response.confidence} < {min_confidence}"
        )
        return None

    if response.canonical_id not in vocabulary:
        logger.warning(f"Discarding assisted suggestion: unknown canonical id {response.canonical_id!r}")
        return None

    return MappingSuggestion(
        canonical_id=response.canonical_id,
        confidence=float(response.confidence),
        reasoning=response.reasoning or "assisted match",
        method=MatchMethod.ASSISTED,
        matched_against=vocabulary.get(response.canonical_id).name,
        source_hint=response.source_hint,
    )
