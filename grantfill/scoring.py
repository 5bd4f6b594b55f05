"""
Heuristic scoring between a question and a discovered form field.

Every comparison goes through normalize() so punctuation, whitespace and case
never decide a match. The combined score is a fixed linear blend:

    0.4 * text_sim + 0.3 * sem_sim + 0.3 * type_compat + id/name boost   (capped at 1.0)
"""

import re
from typing import Dict, List, Set

from .config import SEMANTIC_KEYWORDS
from .models import FieldDescriptor, QuestionType, TEXT_LIKE_TYPES

_NON_ALNUM = re.compile(r"[^a-z0-9]")
_ID_SPLIT = re.compile(r"[^A-Za-z0-9]+|(?<=[a-z])(?=[A-Z])")

TEXT_WEIGHT = 0.4
SEMANTIC_WEIGHT = 0.3
TYPE_WEIGHT = 0.3
ID_BOOST = 0.15

# answer type -> native control types it fills exactly
TYPE_COMPATIBILITY: Dict[QuestionType, Set[str]] = {
    QuestionType.TEXT:          set(TEXT_LIKE_TYPES),
    QuestionType.TEXTAREA:      {"textarea", "contenteditable"},
    QuestionType.NUMBER:        {"number"},
    QuestionType.DATE:          {"date"},
    QuestionType.SINGLE_CHOICE: {"radio", "select-one"},
    QuestionType.YES_NO:        {"radio", "select-one"},
    QuestionType.MULTI_CHOICE:  {"checkbox", "select-multiple"},
}


def normalize(text: str) -> str:
    return _NON_ALNUM.sub("", (text or "").lower())


def _words(text: str) -> List[str]:
    words = (normalize(w) for w in (text or "").split())
    return [w for w in words if len(w) > 2]


def text_sim(a: str, b: str) -> float:
    """Lexical similarity in [0, 1]."""
    na, nb = normalize(a), normalize(b)
    if na and na == nb:
        return 1.0
    if na and nb and (na in nb or nb in na):
        return 0.85
    words_a, words_b = _words(a), _words(b)
    if not words_a or not words_b:
        return 0.0
    common = sum(1 for wa in words_a if any(wa in wb for wb in words_b))
    return common / len(words_a)


def sem_sim(a: str, b: str) -> float:
    """Topic-category overlap: 0.9 on a shared keyword, 0.7 on a shared category, else 0."""
    na, nb = normalize(a), normalize(b)
    best = 0.0
    for keywords in SEMANTIC_KEYWORDS.values():
        hits_a = {kw for kw in keywords if normalize(kw) in na}
        hits_b = {kw for kw in keywords if normalize(kw) in nb}
        if hits_a and hits_b:
            best = max(best, 0.9 if hits_a & hits_b else 0.7)
    return best


def type_compat(answer_type: QuestionType, control_type: str, answer_length: int = 0) -> float:
    answer_type = QuestionType(answer_type)
    if answer_type is QuestionType.OTHER:
        answer_type = QuestionType.TEXT
    control_type = (control_type or "").lower()
    if control_type in TYPE_COMPATIBILITY.get(answer_type, ()):
        return 1.0
    if answer_type is QuestionType.TEXTAREA and control_type == "text" and answer_length < 100:
        return 0.7
    if answer_type is QuestionType.TEXT and control_type in ("textarea", "contenteditable"):
        return 0.9
    if answer_type in (QuestionType.NUMBER, QuestionType.DATE) and control_type == "text":
        return 0.8
    return 0.0


def _identifier_in_question(identifier: str, question_text: str) -> bool:
    if len(identifier) <= 3:
        return False
    norm_id = normalize(identifier)
    if not norm_id:
        return False
    if norm_id in normalize(question_text):
        return True
    # "org_name" vs "Organization Legal Name": every id token starts some question word
    tokens = [normalize(t) for t in _ID_SPLIT.split(identifier)]
    tokens = [t for t in tokens if t]
    q_words = [normalize(w) for w in question_text.split()]
    return len(tokens) > 1 and all(any(w.startswith(t) for w in q_words) for t in tokens)


def id_boost(question_text: str, field: FieldDescriptor) -> float:
    if _identifier_in_question(field.id, question_text) or _identifier_in_question(field.name, question_text):
        return ID_BOOST
    return 0.0


def field_score(question_text: str, field: FieldDescriptor,
                answer_type: QuestionType, answer_length: int = 0) -> float:
    bundle = field.label_bundle
    score = (
        TEXT_WEIGHT * text_sim(question_text, bundle)
        + SEMANTIC_WEIGHT * sem_sim(question_text, bundle)
        + TYPE_WEIGHT * type_compat(answer_type, field.type, answer_length)
        + id_boost(question_text, field)
    )
    return max(0.0, min(score, 1.0))
