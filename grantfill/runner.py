import logging
from typing import List, Optional

from playwright.sync_api import sync_playwright, Error as PlaywrightError

from .config import (
    FIELD_TIMEOUT_MS, HEADLESS, HIGHLIGHT, MATCH_THRESHOLD, MAX_PAGES, OPTION_THRESHOLD,
    PAGE_LOAD_TIMEOUT_MS, QUESTION_PAUSE_MS, SETTLE_MS, WRITE_PAUSE_MS,
)
from .dom import extract_form_fields
from .errors import SurfaceUnreachableError
from .fill import write_answer
from .matcher import best_match
from .models import FillReport, FillRun, Question
from .navigation import Paginator, activate_next, find_next_control, settle
from .prompts import wait_for_review

logger = logging.getLogger(__name__)

_FRAMEWORK_JS = "() => !!(window.React || window.__REACT_DEVTOOLS_GLOBAL_HOOK__ || window.Vue || window.__VUE__)"


def settle_spa(page, settle_ms: int = SETTLE_MS):
    """Initial render wait; client-side frameworks get a second settle period."""
    page.wait_for_timeout(settle_ms)
    try:
        is_spa = page.evaluate(_FRAMEWORK_JS)
    except PlaywrightError:
        is_spa = False
    if is_spa:
        logger.info("[open] client-side framework detected, waiting for render")
    settle(page, settle_ms if is_spa else 0)


def fill_page_pass(page, questions: List[Question], run: FillRun,
                   match_threshold: float = MATCH_THRESHOLD, option_threshold: float = OPTION_THRESHOLD,
                   field_timeout: int = FIELD_TIMEOUT_MS, write_pause_ms: int = WRITE_PAUSE_MS,
                   question_pause_ms: int = QUESTION_PAUSE_MS, highlight_fields: bool = HIGHLIGHT) -> int:
    """One extraction over the current page state, then every unsatisfied question in order.

    Returns the number of answers written on this page.
    """
    try:
        fields = extract_form_fields(page)
    except PlaywrightError as e:
        logger.warning(f"[extract] could not read fields on this page: {e}")
        return 0

    written = 0
    for q in questions:
        if run.is_satisfied(q):
            continue
        if not q.has_answer:
            logger.debug(f"[match] skip '{q.question_text}' (empty answer)")
            continue
        candidate = best_match(q, fields, match_threshold)
        if candidate is None:
            continue
        mapping = write_answer(page, q, candidate, fields, option_threshold=option_threshold,
                               timeout=field_timeout, highlight_fields=highlight_fields)
        if mapping is not None:
            run.record(q, mapping)
            written += 1
            page.wait_for_timeout(write_pause_ms)
        page.wait_for_timeout(question_pause_ms)
    logger.info(f"[fill] {written} answer(s) written on this page")
    return written


def fill_open_page(page, questions: List[Question], max_pages: int = MAX_PAGES,
                   settle_ms: int = SETTLE_MS, highlight_fields: bool = HIGHLIGHT, **pass_opts) -> FillReport:
    """Fill an already-loaded page and every page reachable through next/continue controls."""
    run = FillRun()
    paginator = Paginator(
        scan=lambda _n: fill_page_pass(page, questions, run, highlight_fields=highlight_fields, **pass_opts),
        seek=lambda: find_next_control(page),
        navigate=lambda sel: activate_next(page, sel, settle_ms=settle_ms, highlight_control=highlight_fields),
        max_pages=max_pages,
    )
    pages = paginator.run()
    report = run.report(questions, pages)
    logger.info(f"[fill] done: {report.fields_filled} filled, {report.fields_skipped} skipped, {pages} page(s)")
    return report


def fill_web_form(target_url: str, questions: List[Question], headless: bool = HEADLESS,
                  keep_open: bool = False, page_load_timeout: int = PAGE_LOAD_TIMEOUT_MS,
                  settle_ms: int = SETTLE_MS, **fill_opts) -> FillReport:
    """Open the target in Chromium and fill it. Never submits.

    Raises SurfaceUnreachableError when the initial navigation fails.
    """
    with sync_playwright() as pw:
        browser = pw.chromium.launch(headless=headless)
        try:
            ctx = browser.new_context()
            page = ctx.new_page()
            logger.info(f"[open] {target_url}")
            try:
                page.goto(target_url, wait_until="domcontentloaded", timeout=page_load_timeout)
            except PlaywrightError as e:
                raise SurfaceUnreachableError(target_url, "could not load fill target") from e
            settle_spa(page, settle_ms)
            report = fill_open_page(page, questions, settle_ms=settle_ms, **fill_opts)
            if keep_open and not headless:
                wait_for_review()
            return report
        finally:
            browser.close()


def fill_grant(grant, headless: Optional[bool] = None, **opts) -> FillReport:
    """Fill the grant's web target with its current responses."""
    return fill_web_form(grant.fill_target(), grant.responses,
                         headless=HEADLESS if headless is None else headless, **opts)
