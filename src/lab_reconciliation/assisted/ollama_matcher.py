# ============================================================================
# src/lab_reconciliation/assisted/ollama_matcher.py
# ============================================================================
"""
Ollama Assisted Matcher

Asks a local Ollama model to pick the canonical item for a raw name the
local matcher could not place. Output is constrained to JSON (format="json").

Setup:
    1. Install Ollama: https://ollama.ai
    2. Pull model: ollama pull llama3.1:8b
    3. Start server: ollama serve
"""

import aiohttp
import asyncio
from typing import Any, Dict, Optional

from .base import (
    AssistedMatcher,
    AssistedMatchRequest,
    AssistedMatchResponse,
    BackendType,
)
from .prompts import build_matching_prompt
from ..utils.exceptions import AssistedMatchingError


DEFAULT_OLLAMA_MODEL = "llama3.1:8b"


class OllamaAssistedMatcher(AssistedMatcher):
    """
    Ollama-backed assisted matcher.

    Config options:
        ollama_host: Ollama server URL (default: http://localhost:11434)
        ollama_model: Model name (default: llama3.1:8b)
        max_tokens: Max tokens per response (default: 300)
        temperature: Sampling temperature (default: 0.1)
        timeout: Per-request timeout in seconds (default: 30)
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.host = self.config.get('ollama_host', 'http://localhost:11434')
        self.model_name = self.config.get('ollama_model', DEFAULT_OLLAMA_MODEL)
        self.max_tokens = self.config.get('max_tokens', 300)
        self.temperature = self.config.get('temperature', 0.1)
        self.timeout = self.config.get('timeout', 30)

        # HTTP session (created lazily, tied to event loop)
        self._session: Optional[aiohttp.ClientSession] = None
        self._session_loop: Optional[asyncio.AbstractEventLoop] = None

        self.logger.info(f"Initialized Ollama matcher: {self.host} / {self.model_name}")

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session for current event loop."""
        current_loop = asyncio.get_running_loop()

        needs_new_session = (
            self._session is None
            or self._session.closed
            or self._session_loop is not current_loop
        )

        if needs_new_session:
            if self._session is not None and not self._session.closed:
                await self._session.close()

            timeout = aiohttp.ClientTimeout(sock_connect=10, total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._session_loop = current_loop

        return self._session

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None
        self._session_loop = None

    async def health_check(self) -> Dict[str, Any]:
        """Check if Ollama server is running and the model is pulled."""
        try:
            session = await self._get_session()
            async with session.get(f"{self.host}/api/tags") as response:
                if response.status != 200:
                    return {
                        "healthy": False,
                        "backend": "ollama",
                        "details": f"Ollama server returned status {response.status}"
                    }

                data = await response.json()
                models = [m.get('name', '') for m in data.get('models', [])]
                if not any(self.model_name in m for m in models):
                    return {
                        "healthy": False,
                        "backend": "ollama",
                        "details": f"Model not found. Available: {models}. Run: ollama pull {self.model_name}"
                    }

                return {
                    "healthy": True,
                    "backend": "ollama",
                    "details": "Ollama server running and model available"
                }

        except aiohttp.ClientError as e:
            return {
                "healthy": False,
                "backend": "ollama",
                "details": f"Cannot reach Ollama at {self.host}: {e}"
            }

    async def _generate(self, prompt: str) -> str:
        session = await self._get_session()
        payload = {
            "model": self.model_name,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {
                "num_predict": self.max_tokens,
                "temperature": self.temperature,
            }
        }

        async def _do_request():
            async with session.post(f"{self.host}/api/generate", json=payload) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise AssistedMatchingError(f"Ollama error ({response.status}): {error_text}")
                return await response.json()

        try:
            data = await asyncio.wait_for(_do_request(), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise AssistedMatchingError(f"Ollama request timed out after {self.timeout}s")
        except aiohttp.ClientError as e:
            raise AssistedMatchingError(f"Cannot connect to Ollama at {self.host}: {e}")

        return data.get('response', '')

    async def suggest(self, request: AssistedMatchRequest) -> Optional[AssistedMatchResponse]:
        self._request_count += 1
        text = await self._generate(build_matching_prompt(request))
        return self.parse_response(text, request)

    def parse_response(
        self,
        text: str,
        request: AssistedMatchRequest
    ) -> Optional[AssistedMatchResponse]:
        """
        Turn the model's JSON answer into a response.

        The model names a candidate by canonical name; we map it back to an id
        from the request's candidate list. Confidence given on a 0-1 scale is
        converted to 0-100.
        """
        data = self.extract_json(text)
        if not data:
            raise AssistedMatchingError("Matcher returned no parseable JSON")

        if str(data.get('decision', '')).lower() != 'match':
            self._refusal_count += 1
            self.logger.info(f"Matcher declined '{request.raw_name}': {data.get('reason', '')}")
            return None

        name = str(data.get('canonical_name') or '').strip().lower()
        canonical_id = data.get('canonical_id')
        if not canonical_id:
            for item in request.candidates:
                if name in (item.name.lower(), (item.display_name or '').lower()):
                    canonical_id = item.id
                    break

        if not canonical_id:
            # Name outside the vocabulary; the trust gate would reject it anyway
            canonical_id = data.get('canonical_name') or ''

        try:
            confidence = float(data.get('confidence', 0))
        except (TypeError, ValueError):
            confidence = 0.0
        if confidence <= 1.0:
            confidence *= 100

        return AssistedMatchResponse(
            canonical_id=str(canonical_id),
            confidence=round(confidence, 1),
            reasoning=str(data.get('reason') or ''),
            source_hint=data.get('source_hint') or None,
        )
