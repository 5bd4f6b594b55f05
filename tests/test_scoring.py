import pytest

from grantfill.models import QuestionType
from grantfill.scoring import field_score, id_boost, normalize, sem_sim, text_sim, type_compat

from conftest import make_field


@pytest.mark.parametrize("s", ["Hello, World!", "", "  EIN #12-345 ", "Organización", "a_b-c"])
def test_normalize_is_idempotent(s):
    assert normalize(normalize(s)) == normalize(s)


def test_normalize_strips_everything_but_ascii_alnum():
    assert normalize("Org. Name (Legal)") == "orgnamelegal"
    assert normalize("") == ""


def test_text_sim_levels():
    assert text_sim("Organization Name", "organization-name") == 1.0
    assert text_sim("Name", "Organization Name") == 0.85
    assert text_sim("Annual budget amount", "Total budget") == pytest.approx(1 / 3)
    assert text_sim("a b", "c d") == 0.0
    assert text_sim("", "anything") == 0.0


def test_sem_sim_shared_keyword_and_category():
    assert sem_sim("Organization Legal Name", "org_name") == 0.9
    assert sem_sim("Mission statement", "Our goal") == 0.7
    assert sem_sim("Color", "Shoe") == 0.0


@pytest.mark.parametrize("answer_type,control,length,expected", [
    (QuestionType.TEXT, "email", 0, 1.0),
    (QuestionType.TEXT, "textarea", 0, 0.9),
    (QuestionType.TEXT, "contenteditable", 0, 0.9),
    (QuestionType.OTHER, "text", 0, 1.0),
    (QuestionType.TEXTAREA, "text", 50, 0.7),
    (QuestionType.TEXTAREA, "text", 150, 0.0),
    (QuestionType.NUMBER, "text", 0, 0.8),
    (QuestionType.DATE, "text", 0, 0.8),
    (QuestionType.SINGLE_CHOICE, "select-one", 0, 1.0),
    (QuestionType.YES_NO, "radio", 0, 1.0),
    (QuestionType.SINGLE_CHOICE, "checkbox", 0, 0.0),
    (QuestionType.MULTI_CHOICE, "select-multiple", 0, 1.0),
    (QuestionType.MULTI_CHOICE, "text", 0, 0.0),
])
def test_type_compat_table(answer_type, control, length, expected):
    assert type_compat(answer_type, control, length) == expected


def test_id_boost_for_abbreviated_id():
    field = make_field("f0", id="org_name")
    assert id_boost("Organization Legal Name", field) == 0.15


def test_id_boost_needs_more_than_three_chars():
    assert id_boost("Organization Name", make_field("f0", id="org")) == 0.0


def test_id_boost_on_name_substring():
    assert id_boost("What is your mission?", make_field("f0", name="mission")) == 0.15


def test_field_score_is_capped():
    field = make_field("f0", id="organization_legal_name", label_text="Organization Legal Name")
    assert field_score("Organization Legal Name", field, QuestionType.TEXT) == 1.0


@pytest.mark.parametrize("label,ctype", [
    ("", "radio"), ("Budget", "text"), ("Totally unrelated", "checkbox"), ("EIN", "number"),
])
def test_field_score_in_unit_interval(label, ctype):
    field = make_field("f0", type=ctype, label_text=label, name="budget_amount")
    score = field_score("Total budget amount requested", field, QuestionType.NUMBER)
    assert 0.0 <= score <= 1.0
