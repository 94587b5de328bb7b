# src/lab_reconciliation/extractors/__init__.py

from .base import OcrCollaborator

__all__ = ["OcrCollaborator"]
