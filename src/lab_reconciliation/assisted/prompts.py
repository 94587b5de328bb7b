# ============================================================================
# src/lab_reconciliation/assisted/prompts.py
# ============================================================================
"""
Prompt templates for assisted item matching.
"""

from .base import AssistedMatchRequest


MATCHING_PROMPT = """You map laboratory test names from scanned reports to a fixed vocabulary.

Raw item name: {raw_name}
Reported value: {value}
Reported unit: {unit}
Reference range: {ref_text}

Candidate canonical items (name | display name | default unit | category):
{candidates}

Pick the single candidate that measures the same thing as the raw item.
Use the value, unit and reference range to rule out look-alike names.
If no candidate fits, answer with decision "no_match".

Respond with JSON only:
{{"decision": "match" or "no_match", "canonical_name": "<candidate name>", "confidence": <0.0-1.0>, "reason": "<one sentence>", "source_hint": "<lab or instrument if recognizable, else null>"}}
"""


def _describe_range(request: AssistedMatchRequest) -> str:
    if request.ref_text:
        return request.ref_text
    if request.ref_min is not None and request.ref_max is not None:
        return f"{request.ref_min:g}-{request.ref_max:g}"
    if request.ref_min is not None:
        return f">= {request.ref_min:g}"
    if request.ref_max is not None:
        return f"<= {request.ref_max:g}"
    return "unknown"


def build_matching_prompt(request: AssistedMatchRequest) -> str:
    candidate_lines = "\n".join(
        f"- {item.name} | {item.display_name or '-'} | {item.unit_default or '-'} | {item.category or '-'}"
        for item in request.candidates
    )
    return MATCHING_PROMPT.format(
        raw_name=request.raw_name,
        value=request.value if request.value is not None else "unknown",
        unit=request.unit or "unknown",
        ref_text=_describe_range(request),
        candidates=candidate_lines or "- (none)",
    )
