# ============================================================================
# src/lab_reconciliation/matching/similarity.py
# ============================================================================
"""
String similarity for item-name matching.

similarity() = 100 × (1 − levenshtein / longer length), computed over
lower-cased strings with all whitespace removed, so "Total Protein" and
"total protein" score 100.
"""

import re


def levenshtein_distance(s1: str, s2: str) -> int:
    """
    Calculate Levenshtein edit distance between two strings.

    Returns:
        Minimum number of single-character edits to turn s1 into s2
    """
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)

    if len(s2) == 0:
        return len(s1)

    previous_row = range(len(s2) + 1)
    for i, c1 in enumerate(s1):
        current_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = previous_row[j + 1] + 1
            deletions = current_row[j] + 1
            substitutions = previous_row[j] + (c1 != c2)
            current_row.append(min(insertions, deletions, substitutions))
        previous_row = current_row

    return previous_row[-1]


def comparable_form(text: str) -> str:
    return re.sub(r'\s+', '', (text or '').lower())


def similarity(a: str, b: str) -> float:
    """
    Normalized edit-distance similarity in [0, 100].

    Two empty strings are identical (100); one empty string scores 0.
    """
    a = comparable_form(a)
    b = comparable_form(b)

    if not a and not b:
        return 100.0
    if not a or not b:
        return 0.0

    distance = levenshtein_distance(a, b)
    return round(100.0 * (1 - distance / max(len(a), len(b))), 2)


def normalize_name(text: str) -> str:
    """Lower-case and drop everything that isn't a letter or digit ("ALT (GPT)" -> "altgpt")."""
    return ''.join(ch for ch in (text or '').lower() if ch.isalnum())
