import logging
from typing import List, Optional

from .config import MATCH_THRESHOLD
from .models import FieldDescriptor, MatchCandidate, Question
from .scoring import field_score, type_compat

logger = logging.getLogger(__name__)


def eligible_fields(question: Question, fields: List[FieldDescriptor]) -> List[FieldDescriptor]:
    """Unused fields whose native type can hold this question's answer."""
    qtype = question.effective_type
    length = question.answer_length
    return [f for f in fields if not f.used and type_compat(qtype, f.type, length) > 0]


def rank_candidates(question: Question, fields: List[FieldDescriptor],
                    threshold: float = MATCH_THRESHOLD) -> List[MatchCandidate]:
    """Score every eligible field, drop those under threshold, best first.

    sorted() is stable, so equal scores keep extraction order.
    """
    qtype = question.effective_type
    length = question.answer_length
    scored = [
        MatchCandidate(f, field_score(question.question_text, f, qtype, length))
        for f in eligible_fields(question, fields)
    ]
    kept = [c for c in scored if c.score >= threshold]
    return sorted(kept, key=lambda c: c.score, reverse=True)


def best_match(question: Question, fields: List[FieldDescriptor],
               threshold: float = MATCH_THRESHOLD) -> Optional[MatchCandidate]:
    ranked = rank_candidates(question, fields, threshold)
    if not ranked:
        logger.debug(f"[match] no field above {threshold} for '{question.question_text}'")
        return None
    best = ranked[0]
    logger.debug(f"[match] '{question.question_text}' -> field {best.field.index} ({best.score:.2f})")
    return best


def group_members(field: FieldDescriptor, fields: List[FieldDescriptor]) -> List[FieldDescriptor]:
    """Radio/checkbox peers sharing the field's name within the same document."""
    if not field.name:
        return [field]
    return [f for f in fields
            if f.type == field.type and f.name == field.name and f.frame_index == field.frame_index]


def mark_used(fields: List[FieldDescriptor]):
    for f in fields:
        f.used = True
