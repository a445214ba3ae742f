import pytest

from conftest import make_page, wrap
from formpilot.fields import FieldSignatureClassifier
from formpilot.models import SemanticFieldType as F


@pytest.fixture
def classifier():
    return FieldSignatureClassifier()


def _only_control(page, selector="input, select, textarea"):
    return page.query(selector)


@pytest.mark.parametrize("label", [
    "First Name",
    "first name (legal)",
    "Given name",
    "Forename",
    "First name / Last name",
])
def test_first_name_like_labels_classify_as_first_name(classifier, label):
    page = make_page(wrap(f'<label for="f1">{label}</label><input id="f1" name="q1" type="text">'))
    result = classifier.classify(_only_control(page))
    assert result is F.FIRST_NAME
    assert result is not F.LAST_NAME


@pytest.mark.parametrize("label", ["Last Name", "Family name", "Surname"])
def test_last_name_labels(classifier, label):
    page = make_page(wrap(f'<label for="l1">{label}</label><input id="l1" type="text">'))
    assert classifier.classify(_only_control(page)) is F.LAST_NAME


def test_name_attribute_alone_is_enough(classifier):
    page = make_page('<input name="fname">')
    assert classifier.classify(_only_control(page)) is F.FIRST_NAME


def test_declared_email_type_beats_label_text(classifier):
    page = make_page(wrap('<label for="e">Phone number</label><input id="e" type="email">'))
    assert classifier.classify(_only_control(page)) is F.EMAIL


def test_declared_tel_type_beats_label_text(classifier):
    page = make_page(wrap('<label for="t">First name</label><input id="t" type="tel">'))
    assert classifier.classify(_only_control(page)) is F.PHONE


@pytest.mark.parametrize("label, expected", [
    ("LinkedIn profile", F.LINKEDIN),
    ("GitHub", F.GITHUB),
    ("Anything else we should see?", F.PORTFOLIO),
])
def test_url_inputs(classifier, label, expected):
    page = make_page(wrap(f'<label for="u">{label}</label><input id="u" type="url">'))
    assert classifier.classify(_only_control(page)) is expected


@pytest.mark.parametrize("label, expected", [
    ("Cover Letter", F.COVER_LETTER_FILE),
    ("Motivation letter", F.COVER_LETTER_FILE),
    ("Resume/CV", F.RESUME_FILE),
    ("Resume or cover letter", F.RESUME_FILE),
    ("Attachments", F.RESUME_FILE),
])
def test_file_inputs_fall_back_to_resume(classifier, label, expected):
    page = make_page(wrap(f'<label for="d">{label}</label><input id="d" type="file">'))
    assert classifier.classify(_only_control(page)) is expected


def test_empty_context_is_unknown(classifier):
    page = make_page("<input>")
    assert classifier.classify(_only_control(page)) is F.UNKNOWN


def test_rule_order_breaks_ties(classifier):
    # Both "email" and "city" patterns match; email comes first in the table.
    page = make_page(wrap('<label for="x">Email city</label><input id="x" type="text">'))
    assert classifier.classify(_only_control(page)) is F.EMAIL


def test_select_and_textarea_are_classified(classifier):
    page = make_page(
        wrap('<label for="c">Country</label><select id="c"><option>France</option></select>')
        + wrap('<label for="s">Skills</label><textarea id="s"></textarea>')
    )
    assert classifier.classify(page.query("select")) is F.COUNTRY
    assert classifier.classify(page.query("textarea")) is F.SKILLS


def test_ancestor_text_is_capped_per_level(classifier):
    page = make_page("<div>" + "a" * 150 + '<input name="zz"></div>')
    context = classifier.build_context(page.query("input"))
    assert "a" * 100 in context
    assert "a" * 101 not in context


def test_context_is_lower_cased(classifier):
    page = make_page(wrap('<input aria-label="Postal CODE" placeholder="EG 12345">'))
    context = classifier.build_context(page.query("input"))
    assert "postal code" in context
    assert context == context.lower()


def test_find_all_fields_in_document_order(classifier):
    page = make_page(
        wrap('<label for="a">First name</label><input id="a" type="text">')
        + wrap("<input>")
        + wrap('<input type="email" id="m">')
        + wrap('<label for="w">Are you legally authorized to work here?</label>'
               '<input type="checkbox" id="w">')
        + '<input type="hidden" name="first_name">'
    )
    fields = classifier.find_all_fields(page)
    assert [f.type for f in fields] == [F.FIRST_NAME, F.EMAIL, F.WORK_AUTHORIZATION]
    assert "first name" in fields[0].confidence_context


def test_fields_by_type_groups_duplicates(classifier):
    page = make_page(
        wrap('<label for="a">Phone</label><input id="a" type="text">')
        + wrap('<label for="b">Mobile</label><input id="b" type="text">')
    )
    grouped = classifier.fields_by_type(page)
    assert len(grouped[F.PHONE]) == 2


def test_find_resume_and_cover_letter_fields(classifier):
    page = make_page(
        wrap('<label for="cl">Cover letter</label><input type="file" id="cl">')
        + wrap('<label for="cv">Upload your CV</label><input type="file" id="cv">')
    )
    assert classifier.find_resume_field(page).attr("id") == "cv"
    assert classifier.find_cover_letter_field(page).attr("id") == "cl"


def test_resume_field_falls_back_to_first_file_input(classifier):
    page = make_page(wrap('<input type="file" id="only">'))
    assert classifier.find_resume_field(page).attr("id") == "only"
    assert classifier.find_cover_letter_field(page) is None
