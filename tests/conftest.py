import pytest
from playwright.sync_api import sync_playwright, Error as PlaywrightError

from grantfill.models import FieldDescriptor, Question


def make_question(text, answer="", qtype="text", qid=None, **kw):
    return Question(question_id=qid or text.lower().replace(" ", "_"), question_text=text,
                    type=qtype, answer=answer, **kw)


def make_field(index, type="text", **kw):
    return FieldDescriptor(index=index, type=type, **kw)


@pytest.fixture(scope="session")
def browser():
    pw = sync_playwright().start()
    try:
        b = pw.chromium.launch(headless=True)
    except PlaywrightError as e:
        pw.stop()
        pytest.skip(f"chromium is not installed: {e}")
    yield b
    b.close()
    pw.stop()


@pytest.fixture
def page(browser):
    p = browser.new_page()
    yield p
    p.close()


# fast settings for live-page runs
FAST = dict(settle_ms=0, write_pause_ms=0, question_pause_ms=0, highlight_fields=False, field_timeout=2000)
