"""
Question extraction from grant sources.

PDF and DOCX files are reduced to plain text (pdfplumber / python-docx) and
handed to Gemini in one call. Web portals are walked page by page with the
same Paginator the fill engine uses; each page's HTML goes to the model.
Whatever comes back is repaired if truncated, de-duplicated and turned into
fresh Question records with empty answers.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pdfplumber
from docx import Document
from docx.oxml.table import CT_Tbl
from docx.oxml.text.paragraph import CT_P
from docx.table import Table
from docx.text.paragraph import Paragraph
from playwright.sync_api import sync_playwright, Error as PlaywrightError

from .config import HEADLESS, HTML_CHAR_LIMIT, MAX_PAGES, PAGE_LOAD_TIMEOUT_MS, SETTLE_MS
from .errors import AnswerGenerationError, SurfaceUnreachableError
from .llm import gemini_text
from .models import Question, QuestionType
from .navigation import Paginator, activate_next, find_next_control, settle

logger = logging.getLogger(__name__)

DOCUMENT_PROMPT = """Analyze this grant application document and extract ALL questions from ALL pages with their types.

For each question, determine:
1. question_text: The exact question text
2. type: one of: text, textarea, single_choice, multi_choice, yes_no, number, date
3. options: array of choices (for single_choice, multi_choice, yes_no) - keep each option under 80 characters
4. required: if marked as required
5. char_limit: if a character/word limit is mentioned

Return ONLY the JSON array. No markdown, no code fences, no text before or after.

Example format:
[{"question_text":"Organization name","type":"text","required":true},{"question_text":"Select your organization type","type":"single_choice","options":["Nonprofit","For-profit","Government"]},{"question_text":"Describe your project (max 500 words)","type":"textarea","char_limit":500}]

DOCUMENT TEXT:
"""

PAGE_PROMPT = """Analyze this HTML form page and extract ALL questions with their types and options.

Look for fields in standard inputs, textareas and selects, custom components (data-* and role
attributes), contenteditable elements and ARIA-labeled elements.

For each question, determine:
1. question_text: The exact question text (from labels, legends, aria-label, placeholder, or nearby text)
2. type: one of: text, textarea, single_choice, multi_choice, yes_no, number, date, other
3. options: array of choices (for single_choice, multi_choice, yes_no)
4. required: if the field is required (required attribute or aria-required)

Return ONLY a valid JSON array, no other text.

HTML:
"""

FALLBACK_QUESTIONS = (
    "Describe your organization and its mission.",
    "What is the purpose of this grant request?",
    "How will the funds be used?",
)


def fallback_questions() -> List[Question]:
    return [Question(question_id=str(uuid.uuid4()), question_text=t, type=QuestionType.TEXTAREA)
            for t in FALLBACK_QUESTIONS]


def parse_question_array(raw: str) -> List[Dict[str, Any]]:
    """Pull the JSON array of question objects out of a model reply.

    A reply cut off mid-array is repaired by dropping everything after the
    last complete object. Raises ValueError when nothing usable remains.
    """
    text = (raw or "").strip()
    start = text.find("[")
    if start == -1:
        raise ValueError("no JSON array in model output")
    text = text[start:]
    end = text.rfind("]")
    try:
        data = json.loads(text[:end + 1])
    except json.JSONDecodeError:
        last = text.rfind("}")
        if last == -1:
            raise ValueError("model output holds no complete question object")
        logger.info("[parse] repairing truncated question array")
        data = json.loads(text[:last + 1] + "]")
    if not isinstance(data, list):
        raise ValueError("model output is not a JSON array")
    return [d for d in data if isinstance(d, dict)]


def dedupe(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Keep the first item per case-insensitive question text; drop blank ones."""
    seen = set()
    out = []
    for item in items:
        key = str(item.get("question_text") or "").strip().lower()
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(item)
    return out


def question_from_item(item: Dict[str, Any]) -> Question:
    qtype = str(item.get("type") or "textarea").strip().lower()
    if qtype not in {t.value for t in QuestionType}:
        qtype = QuestionType.TEXTAREA.value
    options = item.get("options") or []
    if not isinstance(options, list):
        options = []
    try:
        char_limit = int(item["char_limit"]) if item.get("char_limit") else None
    except (TypeError, ValueError):
        char_limit = None
    return Question(
        question_id=str(uuid.uuid4()),
        question_text=str(item.get("question_text") or "Untitled Question").strip(),
        type=qtype,
        options=[str(o) for o in options],
        answer=[] if qtype == QuestionType.MULTI_CHOICE.value else "",
        required=bool(item.get("required", False)),
        char_limit=char_limit,
    )


def questions_from_reply(raw: str) -> List[Question]:
    try:
        items = dedupe(parse_question_array(raw))
    except ValueError as e:
        logger.warning(f"[parse] could not read questions from model output: {e}")
        return fallback_questions()
    if not items:
        return fallback_questions()
    return [question_from_item(i) for i in items]


# ---------- document text ----------

def _iter_block_items(doc):
    """Paragraphs and tables in document order."""
    for child in doc.element.body.iterchildren():
        if isinstance(child, CT_P):
            yield Paragraph(child, doc)
        elif isinstance(child, CT_Tbl):
            yield Table(child, doc)


def read_docx_text(path: str) -> str:
    doc = Document(path)
    lines = []
    for block in _iter_block_items(doc):
        if isinstance(block, Paragraph):
            if block.text.strip():
                lines.append(block.text.strip())
        else:
            for row in block.rows:
                cells = [c.text.strip() for c in row.cells]
                if any(cells):
                    lines.append(" | ".join(cells))
    return "\n".join(lines)


def read_pdf_text(path: str) -> str:
    with pdfplumber.open(path) as pdf:
        parts = [(p.extract_text() or "") for p in pdf.pages]
    return "\n".join(parts).strip()


def read_document_text(path: str) -> str:
    if not os.path.exists(path):
        raise FileNotFoundError(f"document not found: {path}")
    ext = Path(path).suffix.lower()
    if ext == ".pdf":
        return read_pdf_text(path)
    if ext == ".docx":
        return read_docx_text(path)
    if ext in (".txt", ".md"):
        return Path(path).read_text(encoding="utf-8", errors="ignore")
    raise ValueError(f"Unsupported input: {ext}. Expected .pdf, .docx, .txt or .md")


def parse_document_questions(path: str) -> List[Question]:
    text = read_document_text(path)
    if not text.strip():
        logger.warning(f"[parse] no text extracted from {path} (is it scanned?)")
        return fallback_questions()
    logger.info(f"[parse] {len(text)} chars of text from {path}")
    try:
        reply = gemini_text(DOCUMENT_PROMPT + text[:HTML_CHAR_LIMIT], json_mode=True)
    except AnswerGenerationError as e:
        logger.warning(f"[parse] {e}")
        return fallback_questions()
    questions = questions_from_reply(reply)
    logger.info(f"[parse] {len(questions)} question(s) extracted")
    return questions


# ---------- web portals ----------

def _page_items(page) -> List[Dict[str, Any]]:
    html = page.content()[:HTML_CHAR_LIMIT]
    try:
        return parse_question_array(gemini_text(PAGE_PROMPT + html, json_mode=True))
    except (AnswerGenerationError, ValueError) as e:
        logger.warning(f"[parse] no questions read from this page: {e}")
        return []


def parse_portal_questions(url: str, headless: bool = HEADLESS, max_pages: int = MAX_PAGES,
                           settle_ms: int = SETTLE_MS) -> List[Question]:
    """Walk a multi-page web form and collect its questions. Nothing is typed or submitted."""
    items: List[Dict[str, Any]] = []
    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=headless)
        try:
            page = browser.new_page()
            try:
                page.goto(url, wait_until="domcontentloaded", timeout=PAGE_LOAD_TIMEOUT_MS)
            except PlaywrightError as e:
                raise SurfaceUnreachableError(url, "could not load grant portal") from e
            settle(page, settle_ms)

            def scan(n):
                found = _page_items(page)
                logger.info(f"[parse] {len(found)} question(s) on page {n}")
                items.extend(found)

            pages = Paginator(
                scan=scan,
                seek=lambda: find_next_control(page),
                navigate=lambda sel: activate_next(page, sel, settle_ms=settle_ms, highlight_control=False),
                max_pages=max_pages,
            ).run()
        finally:
            browser.close()

    unique = dedupe(items)
    logger.info(f"[parse] {len(items)} question(s) across {pages} page(s), {len(unique)} unique")
    if not unique:
        return fallback_questions()
    return [question_from_item(i) for i in unique]


def parse_source(source: str, **portal_opts) -> Tuple[List[Question], str]:
    """Questions plus the grant source type ('web', 'pdf' or 'docx') for a URL or file path."""
    if source.startswith(("http://", "https://")):
        return parse_portal_questions(source, **portal_opts), "web"
    source_type = "docx" if Path(source).suffix.lower() == ".docx" else "pdf"
    return parse_document_questions(source), source_type
