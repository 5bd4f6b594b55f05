import io

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.generic import (
    ArrayObject, DecodedStreamObject, DictionaryObject, FloatObject, NameObject, NumberObject, TextStringObject,
)

from grantfill.errors import SurfaceUnreachableError
from grantfill.pdf_fill import fill_pdf_form, pdf_match_score

from conftest import make_question


def _text_widget(name, top, max_len=None):
    widget = DictionaryObject({
        NameObject("/Type"): NameObject("/Annot"),
        NameObject("/Subtype"): NameObject("/Widget"),
        NameObject("/FT"): NameObject("/Tx"),
        NameObject("/T"): TextStringObject(name),
        NameObject("/Rect"): _rect(top),
        NameObject("/DA"): TextStringObject("/Helv 10 Tf 0 g"),
    })
    if max_len:
        widget[NameObject("/MaxLen")] = NumberObject(max_len)
    return widget


def _rect(top, left=50, right=400):
    return ArrayObject([FloatObject(left), FloatObject(top - 20), FloatObject(right), FloatObject(top)])


def _appearances(writer, *states):
    return DictionaryObject({NameObject("/N"): DictionaryObject(
        {NameObject(s): writer._add_object(DecodedStreamObject()) for s in states})})


def _write_form(writer, page, fields, widgets):
    font = writer._add_object(DictionaryObject({
        NameObject("/Type"): NameObject("/Font"),
        NameObject("/Subtype"): NameObject("/Type1"),
        NameObject("/BaseFont"): NameObject("/Helvetica"),
    }))
    page[NameObject("/Annots")] = ArrayObject(widgets)
    writer._root_object[NameObject("/AcroForm")] = DictionaryObject({
        NameObject("/Fields"): ArrayObject(fields),
        NameObject("/DA"): TextStringObject("/Helv 0 Tf 0 g"),
        NameObject("/DR"): DictionaryObject({
            NameObject("/Font"): DictionaryObject({NameObject("/Helv"): font}),
        }),
    })
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def build_form_pdf(fields):
    """Single-page AcroForm with one text widget per (name, max_len) pair."""
    writer = PdfWriter()
    page = writer.add_blank_page(width=612, height=792)
    refs = [writer._add_object(_text_widget(name, 740 - i * 40, max_len))
            for i, (name, max_len) in enumerate(fields)]
    return _write_form(writer, page, refs, refs)


def build_button_pdf(checkboxes=(), radios=(), choices=()):
    """AcroForm with checkboxes (name), radio groups (name, states) and combo boxes (name, [(export, label)])."""
    writer = PdfWriter()
    page = writer.add_blank_page(width=612, height=792)
    fields, widgets = [], []
    top = 740
    for name in checkboxes:
        ref = writer._add_object(DictionaryObject({
            NameObject("/Type"): NameObject("/Annot"),
            NameObject("/Subtype"): NameObject("/Widget"),
            NameObject("/FT"): NameObject("/Btn"),
            NameObject("/T"): TextStringObject(name),
            NameObject("/Rect"): _rect(top, right=70),
            NameObject("/V"): NameObject("/Off"),
            NameObject("/AS"): NameObject("/Off"),
            NameObject("/AP"): _appearances(writer, "/Yes", "/Off"),
        }))
        fields.append(ref)
        widgets.append(ref)
        top -= 40
    for name, states in radios:
        parent = writer._add_object(DictionaryObject({
            NameObject("/FT"): NameObject("/Btn"),
            NameObject("/T"): TextStringObject(name),
            NameObject("/Ff"): NumberObject((1 << 15) | (1 << 14)),
            NameObject("/V"): NameObject("/Off"),
        }))
        kids = ArrayObject()
        for j, state in enumerate(states):
            kid = writer._add_object(DictionaryObject({
                NameObject("/Type"): NameObject("/Annot"),
                NameObject("/Subtype"): NameObject("/Widget"),
                NameObject("/Parent"): parent,
                NameObject("/Rect"): _rect(top, left=50 + j * 100, right=70 + j * 100),
                NameObject("/AS"): NameObject("/Off"),
                NameObject("/AP"): _appearances(writer, state, "/Off"),
            }))
            kids.append(kid)
            widgets.append(kid)
        parent.get_object()[NameObject("/Kids")] = kids
        fields.append(parent)
        top -= 40
    for name, options in choices:
        ref = writer._add_object(DictionaryObject({
            NameObject("/Type"): NameObject("/Annot"),
            NameObject("/Subtype"): NameObject("/Widget"),
            NameObject("/FT"): NameObject("/Ch"),
            NameObject("/T"): TextStringObject(name),
            NameObject("/Ff"): NumberObject(1 << 17),
            NameObject("/Rect"): _rect(top),
            NameObject("/DA"): TextStringObject("/Helv 10 Tf 0 g"),
            NameObject("/Opt"): ArrayObject(
                ArrayObject([TextStringObject(e), TextStringObject(l)]) for e, l in options),
        }))
        fields.append(ref)
        widgets.append(ref)
        top -= 40
    return _write_form(writer, page, fields, widgets)


def blank_pdf():
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    out = io.BytesIO()
    writer.write(out)
    return out.getvalue()


def field_values(data):
    return {name: f.get("/V") for name, f in PdfReader(io.BytesIO(data)).get_fields().items()}


def test_pdf_match_score_levels():
    assert pdf_match_score("Organization Name", "organization name") == 1.0
    assert pdf_match_score("mission", "Describe your mission") == 0.9
    assert pdf_match_score("org_name", "Organization Name") == 1.0
    assert pdf_match_score("tax_id_number", "Federal tax number") == pytest.approx(2 / 2)
    assert pdf_match_score("zz_qq", "Budget") == 0.0


def test_fills_matching_text_fields():
    pdf = build_form_pdf([("Organization Name", None), ("Mission Statement", None), ("Tax ID", None)])
    questions = [
        make_question("Organization Name", "Acme Corp"),
        make_question("Mission statement", "We feed people.", qtype="textarea"),
        make_question("Tax ID", ""),
    ]
    result = fill_pdf_form(pdf, questions)
    assert result.filled
    assert (result.fields_filled, result.fields_total) == (2, 3)
    values = field_values(result.data)
    assert values["Organization Name"] == "Acme Corp"
    assert values["Mission Statement"] == "We feed people."
    assert values["Tax ID"] in (None, "")
    assert [m.selector for m in result.mappings] == ["Organization Name", "Mission Statement"]


def test_text_is_cut_to_max_length():
    pdf = build_form_pdf([("Zip", 5)])
    result = fill_pdf_form(pdf, [make_question("Zip", "1234567")])
    assert field_values(result.data)["Zip"] == "12345"


def test_multi_choice_answer_joined_into_text_field():
    pdf = build_form_pdf([("Program Areas", None)])
    q = make_question("Program areas", ["Arts", "Youth"], qtype="multi_choice")
    result = fill_pdf_form(pdf, [q])
    assert field_values(result.data)["Program Areas"] == "Arts; Youth"


def test_no_fields_returns_original_bytes():
    pdf = blank_pdf()
    result = fill_pdf_form(pdf, [make_question("Organization Name", "Acme")])
    assert not result.filled
    assert result.data == pdf


def test_nothing_matched_returns_original_bytes():
    pdf = build_form_pdf([("Shoe size", None)])
    result = fill_pdf_form(pdf, [make_question("Organization Name", "Acme")])
    assert not result.filled and result.data == pdf and result.fields_total == 1


def test_unreadable_pdf_is_fatal():
    with pytest.raises(SurfaceUnreachableError):
        fill_pdf_form(b"this is not a pdf", [make_question("Organization Name", "Acme")])


def test_checkbox_ticked_for_yes_answer():
    pdf = build_button_pdf(checkboxes=["Registered Nonprofit"])
    result = fill_pdf_form(pdf, [make_question("Are you a registered nonprofit?", "Yes", qtype="yes_no")])
    assert result.filled
    assert field_values(result.data)["Registered Nonprofit"] == "/Yes"


def test_checkbox_left_alone_for_no_answer():
    pdf = build_button_pdf(checkboxes=["Registered Nonprofit"])
    result = fill_pdf_form(pdf, [make_question("Are you a registered nonprofit?", "No", qtype="yes_no")])
    assert not result.filled and result.data == pdf


def test_multi_choice_ticks_only_overlapping_checkboxes():
    pdf = build_button_pdf(checkboxes=["Arts Program", "Youth Program"])
    q = make_question("Program areas", ["Arts"], qtype="multi_choice", options=["Arts", "Youth"])
    result = fill_pdf_form(pdf, [q])
    values = field_values(result.data)
    assert values["Arts Program"] == "/Yes"
    assert values["Youth Program"] in (None, "/Off")
    assert [m.selector for m in result.mappings] == ["Arts Program"]


def test_radio_group_set_to_matching_state():
    pdf = build_button_pdf(radios=[("Organization Type", ["/Nonprofit", "/Government"])])
    q = make_question("Organization Type", "Nonprofit", qtype="single_choice", options=["Nonprofit", "Government"])
    result = fill_pdf_form(pdf, [q])
    assert field_values(result.data)["Organization Type"] == "/Nonprofit"
    kids = [a.get_object() for a in PdfReader(io.BytesIO(result.data)).pages[0]["/Annots"]]
    assert [k["/AS"] for k in kids] == ["/Nonprofit", "/Off"]


def test_choice_field_gets_export_value_of_matching_option():
    pdf = build_button_pdf(choices=[("Fiscal Year Start", [("jan", "January"), ("jul", "July")])])
    q = make_question("Fiscal year start", "July", qtype="single_choice", options=["January", "July"])
    result = fill_pdf_form(pdf, [q])
    assert field_values(result.data)["Fiscal Year Start"] == "jul"
