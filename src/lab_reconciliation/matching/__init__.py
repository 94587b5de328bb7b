# src/lab_reconciliation/matching/__init__.py

from .similarity import levenshtein_distance, similarity, normalize_name
from .vocabulary import CanonicalVocabulary
from .garbage_filter import GarbageCheck, check_item_name, is_garbage_name
from .resolver import CanonicalItemResolver

__all__ = [
    "levenshtein_distance",
    "similarity",
    "normalize_name",
    "CanonicalVocabulary",
    "GarbageCheck",
    "check_item_name",
    "is_garbage_name",
    "CanonicalItemResolver",
]
