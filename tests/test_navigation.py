import pytest
from playwright.sync_api import Error as PlaywrightError

from grantfill.navigation import PageState, Paginator, is_next_control


@pytest.mark.parametrize("text,expected", [
    ("Next", True),
    ("continue to budget", True),
    ("siguiente", True),
    ("Weiter", True),
    ("Submit", False),
    ("Save and continue to submit", False),
    ("Send and continue", False),
    ("Back", False),
    ("", False),
])
def test_is_next_control(text, expected):
    assert is_next_control(text) is expected


def test_infinite_next_stops_at_ceiling():
    scanned = []
    p = Paginator(scan=scanned.append, seek=lambda: "#next", navigate=lambda sel: None, max_pages=5)
    assert p.run() == 5
    assert scanned == [1, 2, 3, 4, 5]
    assert p.state is PageState.DONE


def test_single_page_without_next_control():
    p = Paginator(scan=lambda n: None, seek=lambda: None, navigate=lambda sel: None)
    assert p.run() == 1


def test_navigation_failure_ends_the_run():
    def broken(sel):
        raise PlaywrightError("element detached")

    p = Paginator(scan=lambda n: None, seek=lambda: "#next", navigate=broken, max_pages=10)
    assert p.run() == 1
    assert p.state is PageState.DONE


def test_lookup_failure_ends_the_run():
    def broken():
        raise PlaywrightError("execution context was destroyed")

    p = Paginator(scan=lambda n: None, seek=broken, navigate=lambda sel: None)
    assert p.run() == 1
    assert p.state is PageState.DONE


def test_navigate_receives_found_selector():
    targets = []
    pages = iter(["#p2", None])
    p = Paginator(scan=lambda n: None, seek=lambda: next(pages), navigate=targets.append)
    assert p.run() == 2
    assert targets == ["#p2"]
