# ============================================================================
# src/lab_reconciliation/extractors/base.py
# ============================================================================
"""
OCR Collaborator Interface

OCR itself lives outside this package. An OcrCollaborator takes whatever
handle the caller has for a document (path, upload id, bytes) and returns a
SourceDocument: the extracted item lines plus document-level metadata.
Calls for different documents share no state and may run concurrently.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..core.context import SourceDocument


class OcrCollaborator(ABC):

    @abstractmethod
    async def extract(self, document: Any) -> SourceDocument:
        """
        Extract lab lines from one document.

        Raises:
            Any exception on failure; the ingestion pipeline reports it per document
        """
        pass
