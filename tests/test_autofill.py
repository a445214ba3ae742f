import pytest

from conftest import make_page, wrap
from formpilot.autofill import ProfileAutofill
from formpilot.fields import FieldSignatureClassifier
from formpilot.injector import ValueInjector
from formpilot.models import ApplicationProfile, SemanticFieldType as F
from formpilot.platforms import WorkdayPlatform


@pytest.fixture
def autofill():
    return ProfileAutofill(FieldSignatureClassifier(), ValueInjector())


def _select(select_id, label, options):
    opts = "".join(f'<option value="{v}">{t}</option>' for v, t in options)
    return wrap(f'<label for="{select_id}">{label}</label><select id="{select_id}">{opts}</select>')


def test_diversity_defaults(autofill):
    page = make_page(
        _select("g", "Gender", [("", "Select"), ("m", "Male"), ("f", "Female"),
                                ("d", "Prefer not to say")])
        + _select("v", "Veteran status", [("", "Select"), ("1", "I identify as a protected veteran"),
                                          ("2", "I am not a protected veteran")])
    )
    report = autofill.fill_diversity(page, ApplicationProfile())

    assert (report.filled, report.attempted) == (2, 2)
    assert page.query("#g").get_value() == "d"
    assert page.query("#v").get_value() == "2"


def test_work_authorization_answers(autofill):
    page = make_page(
        wrap('<label for="auth">Are you legally authorized to work in the UK?</label>'
             '<input type="checkbox" id="auth">')
        + _select("sp", "Will you require sponsorship?", [("", "Select"), ("1", "Yes"), ("0", "No")])
    )
    report = autofill.fill_work_auth(page, ApplicationProfile(work_authorization="citizen"))

    assert report.filled == 2
    assert page.query("#auth").is_checked()
    assert page.query("#sp").get_value() == "0"


def test_preferences(autofill):
    page = make_page(
        wrap('<label for="sal">Expected salary</label><input id="sal" type="text">')
        + _select("rel", "Are you willing to relocate?", [("", "Select"), ("y", "Yes"), ("n", "No")])
    )
    profile = ApplicationProfile(expected_salary="90000", willing_to_relocate=True)
    report = autofill.fill_preferences(page, profile)

    assert report.filled == 2
    assert page.query("#sal").get_value() == "90000"
    assert page.query("#rel").get_value() == "y"


def test_screening_answers_only_known_questions(autofill):
    page = make_page(
        '<fieldset><legend>Are you willing to travel?</legend>'
        '<label><input type="radio" name="t" value="yes"> Yes</label>'
        '<label><input type="radio" name="t" value="no"> No</label></fieldset>'
        '<div class="form-group"><label for="fav">Favourite colour?</label>'
        '<input id="fav" type="text"></div>'
    )
    profile = ApplicationProfile(saved_responses={"are you willing to travel": "Yes"})
    report = autofill.answer_screening_questions(page, profile)

    assert report.filled == 1
    assert page.query('input[value="yes"]').is_checked()
    assert page.query("#fav").get_value() == ""


def test_screening_without_saved_responses(autofill):
    page = make_page('<label for="q">Anything else?</label><input id="q">')
    assert autofill.answer_screening_questions(page, ApplicationProfile()).attempted == 0


def test_first_writable_candidate_wins(autofill):
    page = make_page(
        _select("c1", "Country", [("", "Select"), ("fr", "France")])
        + _select("c2", "Country of residence", [("", "Select"), ("gb", "United Kingdom")])
    )
    report = autofill.fill_types(page, ApplicationProfile(country="UK"), (F.COUNTRY,))
    assert report.filled == 1
    assert page.query("#c1").get_value() == ""
    assert page.query("#c2").get_value() == "gb"


def test_consent_boxes_are_ticked_once(autofill):
    page = make_page(
        '<input type="checkbox" id="terms" data-automation-id="legalTermsCheckbox">'
        '<input type="checkbox" id="consent-hidden" style="display:none">'
    )
    assert autofill.check_consent(page, WorkdayPlatform()) == 1
    assert page.query("#terms").is_checked()
    assert not page.query("#consent-hidden").is_checked()


def test_checkbox_does_not_take_the_email_from_the_text_box(autofill):
    page = make_page(
        wrap('<label for="alerts">Email me about similar jobs</label>'
             '<input type="checkbox" id="alerts">')
        + wrap('<label for="em">Email</label><input type="text" id="em">')
    )
    report = autofill.fill_types(page, ApplicationProfile(email="ada@x.com"), (F.EMAIL,))

    assert report.filled == 1
    assert page.query("#em").get_value() == "ada@x.com"
    assert not page.query("#alerts").is_checked()
