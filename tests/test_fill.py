import pytest

from grantfill.fill import coerce_text, normalize_date, pick_option

from conftest import make_question


@pytest.mark.parametrize("raw,expected", [
    ("2024-03-05", "2024-03-05"),
    ("03/05/2024", "2024-03-05"),
    ("March 5, 2024", "2024-03-05"),
    ("5 Mar 2024", "2024-03-05"),
    ("next spring", "next spring"),
])
def test_normalize_date(raw, expected):
    assert normalize_date(raw) == expected


def test_coerce_text_only_reformats_dates():
    assert coerce_text(make_question("Start", "March 5, 2024", qtype="date")) == "2024-03-05"
    assert coerce_text(make_question("Code", "03/05/2024")) == "03/05/2024"


def test_pick_option_takes_first_over_threshold():
    options = [("nonprofit", "Nonprofit"), ("no", "No")]
    assert pick_option("No", options) == 0
    assert pick_option("No", list(reversed(options))) == 0
    assert pick_option("For-profit", [("np", "Nonprofit"), ("fp", "For-profit")]) == 1


def test_pick_option_matches_label_when_value_is_opaque():
    options = [("1", "Yes"), ("2", "No")]
    assert pick_option("Yes", options) == 0


def test_pick_option_below_threshold():
    assert pick_option("Maybe", [("yes", "Yes"), ("no", "No")]) is None
