import pytest

from grantfill.errors import GrantRecordError
from grantfill.models import FieldDescriptor, FillMapping, FillRun, Question, QuestionType, control_kind, ControlKind

from conftest import make_question


def test_multi_choice_answer_is_always_a_list():
    q = make_question("Areas", "Arts", qtype="multi_choice", options=["Arts", "Health"])
    assert q.answer == ["Arts"]
    assert make_question("Areas", None, qtype="multi_choice").answer == []


def test_list_answer_rejected_for_single_valued_types():
    with pytest.raises(GrantRecordError):
        make_question("Name", ["a", "b"])


def test_unknown_type_rejected():
    with pytest.raises(GrantRecordError):
        make_question("Name", "x", qtype="essay")


def test_yes_no_and_other():
    assert make_question("Nonprofit?", "Yes", qtype="yes_no").choice_options == ["Yes", "No"]
    assert make_question("Misc", "x", qtype="other").effective_type is QuestionType.TEXT


def test_answer_helpers():
    q = make_question("Areas", ["A", " ", "B"], qtype="multi_choice")
    assert q.answer_values == ["A", "B"]
    assert q.answer_text == "A; B"
    assert q.has_answer
    assert not make_question("Name", "   ").has_answer


def test_dict_round_trip():
    raw = {"question_id": "q1", "question_text": "Org type", "type": "single_choice",
           "options": ["Nonprofit", "Government"], "answer": "Nonprofit", "required": True,
           "char_limit": 50, "reviewed": True}
    q = Question.from_dict(raw)
    assert q.type is QuestionType.SINGLE_CHOICE
    assert Question.from_dict(q.to_dict()) == q


def test_from_dict_requires_identity():
    with pytest.raises(GrantRecordError):
        Question.from_dict({"question_text": "no id"})


def test_control_kind():
    assert control_kind("email") is ControlKind.TEXT
    assert control_kind("select-multiple") is ControlKind.SELECT_MULTIPLE
    assert control_kind("range") is ControlKind.UNSUPPORTED


def test_field_from_dom():
    f = FieldDescriptor.from_dom({"index": "f3", "type": "TEXT", "labelText": "Name", "isIframe": True,
                                  "frameIndex": 1, "ariaLabel": "org"})
    assert (f.index, f.type, f.in_iframe, f.frame_index) == ("f3", "text", True, 1)
    assert f.label_bundle == "Name org"


def test_fill_run_counts_unsatisfied_questions_as_skipped():
    qs = [make_question("A", "1"), make_question("B", "2"), make_question("C", "")]
    run = FillRun()
    run.record(qs[0], FillMapping("A", "1", "#a", 0.9))
    assert run.is_satisfied(qs[0]) and not run.is_satisfied(qs[1])
    report = run.report(qs, pages_visited=2)
    assert (report.fields_filled, report.fields_skipped, report.pages_visited) == (1, 2, 2)
    assert report.to_dict()["mappings"][0] == {"question": "A", "answer": "1", "selector": "#a", "confidence": 0.9}
