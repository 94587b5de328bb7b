# ============================================================================
# FILE: tests/unit/test_similarity.py
# ============================================================================
"""
Unit tests for name similarity, vocabulary indexing and the garbage filter
"""

import pytest

from lab_reconciliation.core.context import AliasEntry, CanonicalItem
from lab_reconciliation.matching import (
    CanonicalVocabulary,
    check_item_name,
    is_garbage_name,
    levenshtein_distance,
    normalize_name,
    similarity,
)


def test_levenshtein_distance():
    """Test classic edit distance examples"""
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_similarity_bounds():
    """Test empty-string conventions"""
    assert similarity("", "") == 100.0
    assert similarity("abc", "") == 0.0
    assert similarity("", "abc") == 0.0


def test_similarity_ignores_case_and_whitespace():
    """Test spacing and case do not count as edits"""
    assert similarity("Total Protein", "total  protein") == 100.0


def test_similarity_score():
    """Test score is rounded to two places"""
    assert similarity("kitten", "sitting") == 57.14
    assert similarity("Creatinin", "Creatinine") == 90.0


def test_similarity_is_symmetric():
    """Test argument order does not matter"""
    assert similarity("ALT", "AST") == similarity("AST", "ALT")


def test_normalize_name():
    """Test punctuation and spacing are stripped"""
    assert normalize_name("ALT (GPT)") == "altgpt"
    assert normalize_name("A.L.T.") == "alt"
    assert normalize_name(None) == ""


# ============================================================================
# Vocabulary
# ============================================================================

def test_vocabulary_exact_lookup(vocabulary):
    """Test names, display names and aliases are all exact keys"""
    assert vocabulary.lookup_exact("bun") == "bun"
    assert vocabulary.lookup_exact("blood urea nitrogen") == "bun"
    assert vocabulary.lookup_exact("  Urea Nitrogen ") == "bun"
    assert vocabulary.lookup_exact("nothing") is None


def test_vocabulary_normalized_lookup(vocabulary):
    """Test punctuation-insensitive lookup"""
    assert vocabulary.lookup_normalized("A.L.T.") == "alt"
    assert vocabulary.lookup_normalized("alt gpt") == "alt"
    assert vocabulary.lookup_normalized("...") is None


def test_vocabulary_skips_unmapped_and_dangling():
    """Test Unmapped items and aliases to unknown ids are not indexed"""
    vocab = CanonicalVocabulary(
        [
            CanonicalItem("bun", "BUN"),
            CanonicalItem("unmapped-1", "Odd Name", category="Unmapped"),
        ],
        [AliasEntry("ghost", "missing-id")],
    )
    assert len(vocab) == 1
    assert "unmapped-1" not in vocab
    assert vocab.lookup_exact("Odd Name") is None
    assert vocab.aliases == ()


def test_vocabulary_is_read_only(vocabulary):
    """Test the item index cannot be modified"""
    with pytest.raises(TypeError):
        vocabulary.items["new"] = CanonicalItem("new", "NEW")


def test_vocabulary_with_aliases(vocabulary):
    """Test adding aliases returns a new snapshot"""
    updated = vocabulary.with_aliases([AliasEntry("Blood Sugar", "glu")])
    assert updated.lookup_exact("blood sugar") == "glu"
    assert vocabulary.lookup_exact("blood sugar") is None


# ============================================================================
# Garbage filter
# ============================================================================

def test_garbage_numeric_cells():
    """Test values and ranges in the name column are dropped"""
    assert is_garbage_name("123") is True
    assert is_garbage_name("5.6-8.8") is True
    assert is_garbage_name("<5") is True
    assert is_garbage_name("45%") is True


def test_garbage_labels():
    """Test column headers are dropped"""
    assert check_item_name("Result").reason == "table label"
    assert is_garbage_name("참고치") is True


def test_garbage_empty_and_symbols():
    """Test empty names and lone symbols"""
    assert is_garbage_name("") is True
    assert is_garbage_name(None) is True
    assert is_garbage_name("*") is True


def test_real_names_pass():
    """Test ordinary item names are kept"""
    assert is_garbage_name("BUN") is False
    assert is_garbage_name("K") is False


def test_truncated_bracket_flagged():
    """Test names cut mid-parenthesis are kept but flagged"""
    check = check_item_name("ALT (GPT")
    assert check.is_garbage is False
    assert check.has_truncated_bracket is True
