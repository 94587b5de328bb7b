# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import pytest

from lab_reconciliation.assisted.base import AssistedMatcher, BackendType
from lab_reconciliation.core.context import AliasEntry, CanonicalItem
from lab_reconciliation.core.record_store import SQLiteRecordStore
from lab_reconciliation.matching.vocabulary import CanonicalVocabulary


SAMPLE_ITEMS = [
    CanonicalItem("bun", "BUN", "Blood Urea Nitrogen", "mg/dL", "Chemistry", ("kidney",)),
    CanonicalItem("crea", "CREA", "Creatinine", "mg/dL", "Chemistry", ("kidney",)),
    CanonicalItem("alt", "ALT", "Alanine Aminotransferase", "U/L", "Chemistry", ("liver",)),
    CanonicalItem("alb", "ALB", "Albumin", "g/dL", "Chemistry"),
    CanonicalItem("glob", "GLOB", "Globulin", "g/dL", "Chemistry"),
    CanonicalItem("glu", "GLU", "Glucose", "mg/dL", "Chemistry"),
    CanonicalItem("wbc", "WBC", "White Blood Cells", "K/μL", "CBC"),
    CanonicalItem("neu", "NEU", "Neutrophils", "%", "CBC"),
    CanonicalItem("lym", "LYM", "Lymphocytes", "%", "CBC"),
    CanonicalItem("mono", "MONO", "Monocytes", "%", "CBC"),
    CanonicalItem("eos", "EOS", "Eosinophils", "%", "CBC"),
    CanonicalItem("baso", "BASO", "Basophils", "%", "CBC"),
]

SAMPLE_ALIASES = [
    AliasEntry("Urea Nitrogen", "bun", "manual"),
    AliasEntry("ALT(GPT)", "alt", "manual"),
    AliasEntry("백혈구", "wbc", "manual"),
]


class FakeAssistedMatcher(AssistedMatcher):
    """Returns canned responses keyed by raw name."""

    def __init__(self, answers=None, error=None):
        super().__init__({})
        self.answers = answers or {}
        self.error = error
        self.calls = []
        self.requests = []

    @property
    def backend_type(self) -> BackendType:
        return BackendType.OLLAMA

    async def suggest(self, request):
        self.calls.append(request.raw_name)
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.answers.get(request.raw_name)

    async def health_check(self):
        return {"healthy": True, "backend": "fake", "details": "canned answers"}


@pytest.fixture
def vocabulary():
    """Vocabulary snapshot built from the sample items and aliases"""
    return CanonicalVocabulary(SAMPLE_ITEMS, SAMPLE_ALIASES)


def _seed_vocabulary(record_store):
    for item in SAMPLE_ITEMS:
        record_store.add_canonical_item(item)
    for alias in SAMPLE_ALIASES:
        record_store.upsert_alias(alias)
    return record_store


@pytest.fixture
def seed_vocabulary():
    """Load the sample vocabulary into any record store"""
    return _seed_vocabulary


@pytest.fixture
def store(tmp_path):
    """SQLite record store seeded with the sample vocabulary"""
    return _seed_vocabulary(SQLiteRecordStore(tmp_path / "records.db"))


@pytest.fixture
def make_matcher():
    """Factory for fake assisted matchers"""
    return FakeAssistedMatcher
