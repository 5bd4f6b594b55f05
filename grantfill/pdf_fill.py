"""
AcroForm filling with pypdf.

One pass over the document's native fields: every field picks the best
still-unassigned question by a lexical-only score, then gets a value written
according to its kind (text, checkbox, radio group, choice list).
"""

import io
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from .config import PDF_THRESHOLD
from .errors import SurfaceUnreachableError
from .models import FillMapping, PdfFillResult, Question, QuestionType
from .scoring import normalize

logger = logging.getLogger(__name__)

_FIELD_TOKENS = re.compile(r"[_\s\-]+")

FF_READ_ONLY = 1
FF_RADIO = 1 << 15
FF_PUSHBUTTON = 1 << 16


def pdf_match_score(field_name: str, question_text: str) -> float:
    """Lexical score between a PDF field name and a question: 1.0, 0.9 or token overlap."""
    nf, nq = normalize(field_name), normalize(question_text)
    if not nf or not nq:
        return 0.0
    if nf == nq:
        return 1.0
    if nf in nq or nq in nf:
        return 0.9
    tokens = [normalize(t) for t in _FIELD_TOKENS.split(field_name) if len(t) >= 3]
    tokens = [t for t in tokens if t]
    if not tokens:
        return 0.0
    q_words = [normalize(w) for w in question_text.split()]
    q_words = [w for w in q_words if w]
    hits = sum(1 for t in tokens if any(t in w or (len(w) >= 3 and w in t) for w in q_words))
    return hits / len(tokens)


def overlaps(a: str, b: str) -> bool:
    na, nb = normalize(a), normalize(b)
    return bool(na and nb) and (na in nb or nb in na)


def _attr(field: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Field attribute, falling back to the underlying PDF object for keys pypdf does not copy."""
    if key in field:
        return field[key]
    ref = getattr(field, "indirect_reference", None)
    if ref is not None:
        return ref.get_object().get(key, default)
    return default


def _short_name(qualified: str) -> str:
    return qualified.rsplit(".", 1)[-1]


def field_kind(field: Dict[str, Any]) -> Optional[str]:
    """'text', 'checkbox', 'radio', 'choice' or None for anything we do not write."""
    ft = _attr(field, "/FT")
    flags = int(_attr(field, "/Ff", 0) or 0)
    if flags & FF_READ_ONLY:
        return None
    if ft == "/Tx":
        return "text"
    if ft == "/Ch":
        return "choice"
    if ft == "/Btn":
        if flags & FF_PUSHBUTTON:
            return None
        return "radio" if flags & FF_RADIO else "checkbox"
    return None


def on_states(field: Dict[str, Any]) -> List[str]:
    return [str(s) for s in (_attr(field, "/_States_") or []) if str(s) != "/Off"]


def choice_options(field: Dict[str, Any]) -> List[Tuple[str, str]]:
    """(export value, display text) for each /Opt entry."""
    out = []
    for opt in _attr(field, "/Opt") or []:
        if isinstance(opt, (list, tuple)) and len(opt) >= 2:
            out.append((str(opt[0]), str(opt[1])))
        else:
            out.append((str(opt), str(opt)))
    return out


def best_question(name: str, tooltip: str, questions: List[Question], assigned: set,
                  threshold: float) -> Tuple[Optional[Question], float]:
    best, best_score = None, 0.0
    for q in questions:
        if q.question_id in assigned:
            continue
        score = pdf_match_score(name, q.question_text)
        if tooltip:
            score = max(score, pdf_match_score(tooltip, q.question_text))
        if score >= threshold and score > best_score:
            best, best_score = q, score
    return best, best_score


def value_for(kind: str, name: str, field: Dict[str, Any], question: Question) -> Optional[str]:
    """The raw value to store in the field, or None when the answer does not apply."""
    if not question.has_answer:
        return None
    if kind == "text":
        text = question.answer_text
        max_len = _attr(field, "/MaxLen")
        if max_len and len(text) > int(max_len):
            text = text[:int(max_len)]
        return text
    if kind == "checkbox":
        states = on_states(field)
        on = states[0] if states else "/Yes"
        if question.type is QuestionType.YES_NO:
            return on if question.answer_text.strip().lower() == "yes" else None
        if question.type is QuestionType.MULTI_CHOICE:
            hints = [_short_name(name), _attr(field, "/TU") or ""] + [s.lstrip("/") for s in states]
            if any(overlaps(ans, h) for ans in question.answer_values for h in hints if h):
                return on
        return None
    if kind == "radio":
        for state in on_states(field):
            if overlaps(state.lstrip("/"), question.answer_text):
                return state
        return None
    if kind == "choice":
        for export, display in choice_options(field):
            if any(overlaps(ans, display) or overlaps(ans, export) for ans in question.answer_values):
                return export
        return None
    return None


def fill_pdf_form(pdf_bytes: bytes, questions: List[Question],
                  threshold: float = PDF_THRESHOLD) -> PdfFillResult:
    """Fill the PDF's AcroForm from the questions' answers.

    filled=False (with the original bytes) means nothing was written and the
    caller should generate a document instead. An unreadable PDF raises
    SurfaceUnreachableError.
    """
    try:
        reader = PdfReader(io.BytesIO(pdf_bytes))
        raw_fields = reader.get_fields() or {}
    except (PyPdfError, ValueError) as e:
        raise SurfaceUnreachableError("source PDF", "could not read PDF") from e

    fields = {name: f for name, f in raw_fields.items() if _attr(f, "/FT")}
    if not fields:
        logger.info("[pdf] no form fields found")
        return PdfFillResult(filled=False, data=pdf_bytes)
    logger.info(f"[pdf] found {len(fields)} form field(s)")

    values: Dict[str, str] = {}
    mappings: List[FillMapping] = []
    assigned = set()
    for name, field in fields.items():
        kind = field_kind(field)
        if kind is None:
            continue
        tooltip = str(_attr(field, "/TU") or "")
        question, score = best_question(name, tooltip, questions, assigned, threshold)
        if question is None:
            logger.debug(f"[pdf] no match for field '{name}'")
            continue
        value = value_for(kind, name, field, question)
        if value is None:
            logger.debug(f"[pdf] '{name}' matched '{question.question_text}' but the answer does not apply")
            continue
        values[name] = value
        mappings.append(FillMapping(question_text=question.question_text, answer=value,
                                    selector=name, confidence=score))
        # a multi-choice answer may tick several checkboxes
        if not (kind == "checkbox" and question.type is QuestionType.MULTI_CHOICE):
            assigned.add(question.question_id)
        logger.info(f"[pdf] ✓ {name} <- '{question.question_text}' ({score:.2f})")

    logger.info(f"[pdf] filled {len(values)} of {len(fields)} field(s)")
    if not values:
        return PdfFillResult(filled=False, data=pdf_bytes, fields_total=len(fields))

    writer = PdfWriter(clone_from=reader)
    for page in writer.pages:
        if "/Annots" in page:
            writer.update_page_form_field_values(page, values, auto_regenerate=False)
    writer.set_need_appearances_writer(True)
    out = io.BytesIO()
    writer.write(out)
    return PdfFillResult(filled=True, data=out.getvalue(), fields_filled=len(values),
                         fields_total=len(fields), mappings=mappings)
