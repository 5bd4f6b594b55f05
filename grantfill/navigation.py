"""
Multi-page traversal.

The Paginator is a small state machine:

    SCANNING -> SEEKING_NEXT -> NAVIGATING -> SCANNING ... -> DONE

It knows nothing about browsers; the caller hands it three callables
(scan the current page, find a next control, activate it). A hard page
ceiling guarantees termination even when every page offers a "next" control.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from playwright.sync_api import Error as PlaywrightError, TimeoutError as PWTimeout

from .config import FIELD_TIMEOUT_MS, HIGHLIGHT, MAX_PAGES, NETWORK_IDLE_TIMEOUT_MS, NEXT_KEYWORDS, SETTLE_MS, SUBMIT_KEYWORDS
from .dom import highlight

logger = logging.getLogger(__name__)

NAV_ATTR = "data-grantfill-nav"

_NAV_CANDIDATES_JS = r"""
() => {
  const NAV_ATTR = "data-grantfill-nav";
  document.querySelectorAll(`[${NAV_ATTR}]`).forEach(el => el.removeAttribute(NAV_ATTR));
  const usable = (el) => {
    if (el.disabled) return false;
    const style = window.getComputedStyle(el);
    if (style.display === "none" || style.visibility === "hidden" || style.opacity === "0") return false;
    return el.getClientRects().length > 0;
  };
  const controls = Array.from(document.querySelectorAll(
    'button, input[type="button"], input[type="submit"], a[role="button"]'
  )).filter(usable);
  return controls.map((btn, i) => {
    btn.setAttribute(NAV_ATTR, String(i));
    const text = (btn.textContent || "").trim();
    const value = btn.value || "";
    const aria = btn.getAttribute("aria-label") || "";
    const title = btn.getAttribute("title") || "";
    return { index: String(i), text: `${text} ${value} ${aria} ${title}`.toLowerCase() };
  });
}
"""


class PageState(str, Enum):
    SCANNING = "scanning"
    SEEKING_NEXT = "seeking_next"
    NAVIGATING = "navigating"
    DONE = "done"


def is_next_control(text: str) -> bool:
    """True for next/continue-like controls; anything submit-like is never navigational."""
    t = (text or "").lower()
    if any(kw in t for kw in SUBMIT_KEYWORDS):
        return False
    return any(kw in t for kw in NEXT_KEYWORDS)


def find_next_control(page) -> Optional[str]:
    """Selector of the first next/continue control on the page, if any."""
    for cand in page.evaluate(_NAV_CANDIDATES_JS):
        if is_next_control(cand["text"]):
            logger.debug(f"[nav] next control: '{cand['text'].strip()}'")
            return f'[{NAV_ATTR}="{cand["index"]}"]'
    return None


def settle(page, settle_ms: int = SETTLE_MS):
    page.wait_for_timeout(settle_ms)
    try:
        page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
    except PWTimeout:
        logger.debug("[nav] network idle timeout, continuing")


def activate_next(page, selector: str, settle_ms: int = SETTLE_MS,
                  timeout: int = FIELD_TIMEOUT_MS, highlight_control: bool = HIGHLIGHT):
    """Click the next control and give the page time to re-render. Raises PlaywrightError on failure."""
    loc = page.locator(selector).first
    if highlight_control:
        highlight(loc)
    loc.click(timeout=timeout)
    settle(page, settle_ms)


class Paginator:
    def __init__(self, scan: Callable[[int], None], seek: Callable[[], Optional[str]],
                 navigate: Callable[[str], None], max_pages: int = MAX_PAGES):
        self.scan = scan
        self.seek = seek
        self.navigate = navigate
        self.max_pages = max_pages
        self.state = PageState.SCANNING
        self.pages_visited = 0

    def run(self) -> int:
        """Drive the loop to DONE and return the number of pages scanned."""
        target = None
        while self.state is not PageState.DONE:
            if self.state is PageState.SCANNING:
                self.pages_visited += 1
                logger.info(f"[nav] processing page {self.pages_visited}")
                self.scan(self.pages_visited)
                if self.pages_visited >= self.max_pages:
                    logger.warning(f"[nav] page ceiling ({self.max_pages}) reached, stopping")
                    self.state = PageState.DONE
                else:
                    self.state = PageState.SEEKING_NEXT
            elif self.state is PageState.SEEKING_NEXT:
                try:
                    target = self.seek()
                except PlaywrightError as e:
                    logger.warning(f"[nav] could not look for a next control: {e}")
                    target = None
                if target:
                    self.state = PageState.NAVIGATING
                else:
                    logger.info("[nav] no navigation control found, assuming last page")
                    self.state = PageState.DONE
            elif self.state is PageState.NAVIGATING:
                try:
                    self.navigate(target)
                    self.state = PageState.SCANNING
                except PlaywrightError as e:
                    logger.warning(f"[nav] could not activate next control: {e}")
                    self.state = PageState.DONE
        return self.pages_visited
