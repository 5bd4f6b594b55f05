import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple

from playwright.sync_api import Error as PlaywrightError

from .config import FIELD_TIMEOUT_MS, HIGHLIGHT, OPTION_THRESHOLD
from .dom import css_string, frame_selector, highlight, locator_for, read_current_value, selector_for
from .matcher import group_members, mark_used
from .models import ControlKind, FieldDescriptor, FillMapping, MatchCandidate, Question, QuestionType
from .scoring import text_sim

logger = logging.getLogger(__name__)

ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DATE_FORMATS = (
    "%Y/%m/%d", "%m/%d/%Y", "%m-%d-%Y", "%d.%m.%Y",
    "%B %d, %Y", "%b %d, %Y", "%B %d %Y", "%b %d %Y",
    "%d %B %Y", "%d %b %Y", "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d %H:%M:%S",
)

_OPTIONS_JS = """e => Array.from(e.options).map(o => ({
  value: o.value, label: (o.textContent || '').trim(), disabled: o.disabled
}))"""

_EDITABLE_JS = """(e, v) => {
  e.textContent = v;
  e.dispatchEvent(new Event('input', { bubbles: true }));
  e.dispatchEvent(new Event('change', { bubbles: true }));
}"""


def normalize_date(value: str) -> str:
    """YYYY-MM-DD when the value parses as a date, otherwise unchanged."""
    s = (value or "").strip()
    if ISO_DATE.match(s):
        return s
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    return value


def coerce_text(question: Question) -> str:
    if question.effective_type is QuestionType.DATE:
        return normalize_date(question.answer_text)
    return question.answer_text


def option_score(answer: str, value: str, label: str = "") -> float:
    return max(text_sim(answer, value), text_sim(answer, label) if label else 0.0)


def pick_option(answer: str, options: List[Tuple[str, str]],
                threshold: float = OPTION_THRESHOLD) -> Optional[int]:
    """Index of the first (value, label) option scoring at or above the threshold."""
    for i, (value, label) in enumerate(options):
        if option_score(answer, value, label) >= threshold:
            return i
    return None


def _option_selector(field: FieldDescriptor, value: str) -> str:
    sel = f'input[name="{css_string(field.name)}"][value="{css_string(value)}"]'
    if field.in_iframe:
        return f"{frame_selector(field)} >> {sel}"
    return sel


def write_answer(page, question: Question, candidate: MatchCandidate, fields: List[FieldDescriptor],
                 option_threshold: float = OPTION_THRESHOLD, timeout: int = FIELD_TIMEOUT_MS,
                 highlight_fields: bool = HIGHLIGHT) -> Optional[FillMapping]:
    """Write the question's answer into the matched control.

    Returns the mapping on success, None when the write was skipped or failed.
    A failure only ever abandons this one field.
    """
    if not question.has_answer:
        return None
    field = candidate.field
    writers = {
        ControlKind.RADIO: _write_radio,
        ControlKind.SELECT_ONE: _write_select_one,
        ControlKind.CHECKBOX: _write_checkbox_group,
        ControlKind.SELECT_MULTIPLE: _write_select_multiple,
        ControlKind.CONTENTEDITABLE: _write_editable,
    }
    writer = writers.get(field.kind, _write_text)
    try:
        result = writer(page, question, field, fields, option_threshold, timeout, highlight_fields)
    except PlaywrightError as e:
        logger.warning(f"[fill] ✗ could not write {selector_for(field)}: {e}")
        return None
    if result is None:
        return None
    selector, written = result
    logger.info(f"[fill] ✓ {selector} ({candidate.score:.2f})")
    return FillMapping(question_text=question.question_text, answer=written,
                       selector=selector, confidence=candidate.score)


def _write_text(page, question, field, fields, option_threshold, timeout, highlight_fields):
    value = coerce_text(question)
    loc = locator_for(page, field)
    if highlight_fields:
        highlight(loc)
    loc.fill(value, timeout=timeout)
    if not read_current_value(loc, field, timeout=timeout):
        logger.warning(f"[fill] ✗ {selector_for(field)} rejected the value")
        return None
    field.used = True
    return selector_for(field), value


def _write_editable(page, question, field, fields, option_threshold, timeout, highlight_fields):
    value = coerce_text(question)
    loc = locator_for(page, field)
    if highlight_fields:
        highlight(loc)
    loc.evaluate(_EDITABLE_JS, value, timeout=timeout)
    field.used = True
    return selector_for(field), value


def _write_radio(page, question, field, fields, option_threshold, timeout, highlight_fields):
    members = group_members(field, fields)
    answer = question.answer_text
    idx = pick_option(answer, [(m.value, m.label_text) for m in members], option_threshold)
    if idx is None:
        logger.debug(f"[fill] no radio option matches '{answer}' in group '{field.name}'")
        return None
    chosen = members[idx]
    loc = locator_for(page, chosen)
    if highlight_fields:
        highlight(loc)
    loc.check(timeout=timeout)
    mark_used(members)
    return _option_selector(chosen, chosen.value), answer


def _read_options(loc, timeout) -> List[Tuple[str, str]]:
    raw = loc.evaluate(_OPTIONS_JS, timeout=timeout)
    return [(o["value"], o["label"]) for o in raw if o["value"] and not o["disabled"]]


def _write_select_one(page, question, field, fields, option_threshold, timeout, highlight_fields):
    loc = locator_for(page, field)
    options = _read_options(loc, timeout)
    idx = pick_option(question.answer_text, options, option_threshold)
    if idx is None:
        logger.debug(f"[fill] no option matches '{question.answer_text}' in {selector_for(field)}")
        return None
    value = options[idx][0]
    if highlight_fields:
        highlight(loc)
    loc.select_option(value=value, timeout=timeout)
    field.used = True
    return selector_for(field), question.answer_text


def _write_select_multiple(page, question, field, fields, option_threshold, timeout, highlight_fields):
    loc = locator_for(page, field)
    options = _read_options(loc, timeout)
    picked = [value for value, label in options
              if any(option_score(ans, value, label) >= option_threshold for ans in question.answer_values)]
    if not picked:
        return None
    if highlight_fields:
        highlight(loc)
    loc.select_option(value=picked, timeout=timeout)
    field.used = True
    return selector_for(field), picked


def _write_checkbox_group(page, question, field, fields, option_threshold, timeout, highlight_fields):
    members = group_members(field, fields)
    checked: List[str] = []
    selector = ""
    for member in members:
        if not any(option_score(ans, member.value, member.label_text) >= option_threshold
                   for ans in question.answer_values):
            continue
        loc = locator_for(page, member)
        if highlight_fields:
            highlight(loc)
        loc.check(timeout=timeout)
        checked.append(member.value)
        if not selector:
            selector = _option_selector(member, member.value) if member.name else selector_for(member)
    if not checked:
        logger.debug(f"[fill] no checkbox in group '{field.name}' matches {question.answer_values}")
        return None
    mark_used(members)
    return selector, checked
