import json
import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import List, Tuple

import google.generativeai as genai

from .config import DRAFT_BATCH, DRAFT_DELAY_S, MODEL_NAME, gemini_api_key
from .errors import AnswerGenerationError
from .models import Answer, Question, QuestionType
from .profile import OrganizationProfile

logger = logging.getLogger(__name__)

INSUFFICIENT = "INSUFFICIENT_INFO"
_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def _mentions(text: str, option: str) -> bool:
    """Whole-word, case-insensitive occurrence of the option in the reply."""
    return re.search(rf"(?<!\w){re.escape(option)}(?!\w)", text, re.IGNORECASE) is not None


_TYPE_RULES = {
    QuestionType.SINGLE_CHOICE: (
        "If you can answer: Select EXACTLY ONE option. Return ONLY the exact option text, nothing else."
    ),
    QuestionType.MULTI_CHOICE: (
        'If you can answer: Select one or more options. Return ONLY a JSON array: ["Option 1","Option 2"]'
    ),
    QuestionType.YES_NO: 'If you can answer: Respond with EXACTLY "Yes" or "No", nothing else.',
    QuestionType.NUMBER: "If you have the exact number: Provide ONLY the numeric value, nothing else.",
    QuestionType.DATE: "If you have the date: Provide it in YYYY-MM-DD format only.",
}
_DEFAULT_RULE = "If you can answer: Write a direct, professional response as the organization. No meta-commentary."


def gemini_text(prompt: str, json_mode: bool = False, model_name: str = MODEL_NAME) -> str:
    """One Gemini call. Raises AnswerGenerationError when there is no key or the call fails."""
    api_key = gemini_api_key()
    if not api_key:
        raise AnswerGenerationError("GEMINI_API_KEY (or GOOGLE_API_KEY) is not set")
    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name)
        config = {"response_mime_type": "application/json"} if json_mode else None
        resp = model.generate_content(prompt, generation_config=config)
        return (getattr(resp, "text", None) or "").strip()
    except Exception as e:
        raise AnswerGenerationError(f"Gemini call failed: {e}") from e


def build_answer_prompt(question: Question, profile: OrganizationProfile) -> str:
    options = question.choice_options
    parts = [
        "You are helping draft a grant application answer based on the organization's profile information.",
        "",
        "Organization Profile:",
        profile.as_prompt_text(),
        "",
        f"Question: {question.question_text}",
        f"Question Type: {question.type.value}",
    ]
    if options:
        parts.append("Available Options:")
        parts.extend(f"{i}. {o}" for i, o in enumerate(options, 1))
    if question.char_limit:
        parts.append(f"Character limit: {question.char_limit}")
    parts += [
        "",
        "RULES:",
        "- Answer directly as if you are the organization filling out this application",
        "- For factual questions (names, numbers, dates, contact info, EIN, specific amounts): "
        f'respond "{INSUFFICIENT}" if not explicitly stated',
        "- For descriptive questions: craft answers based on the mission and information provided",
        '- Do NOT include meta-commentary like "based on the profile"',
        "- Do NOT invent specific facts, numbers, dates, names, or contact information",
        '- Write in first person as the organization ("Our mission is...")',
        "",
        _TYPE_RULES.get(question.type, _DEFAULT_RULE),
        f'If you cannot answer: Respond with "{INSUFFICIENT}"',
    ]
    return "\n".join(parts)


def is_insufficient(text: str) -> bool:
    up = (text or "").strip().upper()
    return up == INSUFFICIENT or (len(up) < 50 and "INSUFFICIENT" in up)


def parse_answer(question: Question, text: str) -> Tuple[Answer, bool]:
    """Turn a model reply into (answer, needs_manual_input) of the right shape."""
    empty: Answer = [] if question.type is QuestionType.MULTI_CHOICE else ""
    text = (text or "").strip()
    if not text or is_insufficient(text):
        return empty, True

    options = question.choice_options
    if question.type is QuestionType.MULTI_CHOICE:
        m = _JSON_ARRAY.search(text)
        if not m:
            return [], True
        try:
            picked = json.loads(m.group(0))
        except json.JSONDecodeError:
            return [], True
        valid = [str(p) for p in picked if str(p) in options]
        return valid, not valid

    if question.type in (QuestionType.SINGLE_CHOICE, QuestionType.YES_NO):
        match = next((o for o in options if _mentions(text, o)), None)
        return (match, False) if match else (text, True)

    if question.char_limit and len(text) > question.char_limit:
        logger.debug(f"[draft] answer for '{question.question_text}' exceeds {question.char_limit} chars")
    return text, False


def generate_answer(question: Question, profile: OrganizationProfile) -> Question:
    """Draft one answer. The returned copy is unreviewed; the input question is untouched."""
    reply = gemini_text(build_answer_prompt(question, profile))
    answer, manual = parse_answer(question, reply)
    return replace(question, answer=answer, reviewed=False, needs_manual_input=manual)


def _draft_one(question: Question, profile: OrganizationProfile) -> Question:
    try:
        return generate_answer(question, profile)
    except AnswerGenerationError as e:
        logger.warning(f"[draft] ✗ '{question.question_text}': {e}")
        empty: Answer = [] if question.type is QuestionType.MULTI_CHOICE else ""
        return replace(question, answer=empty, reviewed=False, needs_manual_input=True)


def draft_answers(questions: List[Question], profile: OrganizationProfile,
                  batch_size: int = DRAFT_BATCH, delay_s: float = DRAFT_DELAY_S,
                  only_missing: bool = False) -> List[Question]:
    """Draft answers in parallel batches; order is preserved and one failure never sinks a batch."""
    todo = [i for i, q in enumerate(questions) if not (only_missing and q.has_answer)]
    out: List[Question] = list(questions)
    batch_size = max(1, batch_size)
    for start in range(0, len(todo), batch_size):
        batch = todo[start:start + batch_size]
        logger.info(f"[draft] questions {start + 1}-{start + len(batch)} of {len(todo)}")
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            for i, drafted in zip(batch, pool.map(lambda i: _draft_one(questions[i], profile), batch)):
                out[i] = drafted
        if start + batch_size < len(todo):
            time.sleep(delay_s)
    manual = sum(1 for q in out if q.needs_manual_input)
    logger.info(f"[draft] done, {manual} question(s) need manual input")
    return out
