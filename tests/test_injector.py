import pytest

from conftest import make_page, wrap
from formpilot.injector import ValueInjector, match_option
from formpilot.models import FilePayload


@pytest.fixture
def injector():
    return ValueInjector()


COUNTRIES = (
    '<select id="c">'
    '<option value="">Select One</option>'
    '<option value="CA">Canada</option>'
    '<option value="US">United States of America</option>'
    '<option value="GB">United Kingdom</option>'
    "</select>"
)


# -- free text ----------------------------------------------------------------

@pytest.mark.parametrize("value", ["Ada", "ada@x.com", "+1-555-0100", "  spaced  ", ""])
def test_text_success_means_value_reads_back_exactly(injector, value):
    page = make_page('<input id="t" type="text" value="old">')
    control = page.query("#t")
    ok = injector.set_text(control, value)
    assert ok
    assert control.get_value() == value


def test_text_event_sequence(injector):
    page = make_page('<input id="t" type="text">')
    control = page.query("#t")
    injector.set_text(control, "Ada")
    assert control.events == ["focus", "input", "change", "keydown", "keyup", "blur"]


def test_empty_text_skips_key_events(injector):
    page = make_page('<input id="t" type="text" value="x">')
    control = page.query("#t")
    injector.set_text(control, "")
    assert control.events == ["focus", "input", "change", "blur"]


def test_text_falls_back_to_direct_write_without_native_setter(injector):
    page = make_page("<textarea id='t'></textarea>", native_setter=False)
    control = page.query("#t")
    assert injector.set_text(control, "Hello there")
    assert control.get_value() == "Hello there"


class _Exploding:
    """A control whose every event dispatch blows up."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def dispatch(self, event):
        raise RuntimeError("detached")


def test_text_never_raises_and_reports_final_state(injector):
    page = make_page('<input id="t" type="text">')
    control = _Exploding(page.query("#t"))
    assert injector.set_text(control, "Ada") is True
    assert page.query("#t").get_value() == "Ada"


# -- single choice ----------------------------------------------------------------

def test_select_usa_picks_united_states_of_america(injector):
    page = make_page(COUNTRIES)
    control = page.query("#c")
    assert injector.set_select(control, "USA")
    assert control.get_value() == "US"
    assert control.events == ["change"]


@pytest.mark.parametrize("value, expected", [
    ("CA", "CA"),                       # exact value
    ("canada", "CA"),                   # exact text
    ("United Kingdom of Great Britain", "GB"),  # option text inside the value
    ("kingdom", "GB"),                  # value inside the option text
])
def test_select_priority(injector, value, expected):
    page = make_page(COUNTRIES)
    control = page.query("#c")
    assert injector.set_select(control, value)
    assert control.get_value() == expected


def test_select_without_match_does_not_mutate(injector):
    page = make_page(COUNTRIES)
    control = page.query("#c")
    assert injector.set_select(control, "Atlantis") is False
    assert control.get_value() == ""
    assert control.events == []


def test_affirmative_fuzzy_match_only_for_yes_or_true():
    options = [("", "Select"), ("1", "Y - I am authorized"), ("0", "N")]
    assert match_option(options, "true") == 1
    assert match_option(options, "maybe") is None


def test_exact_text_beats_substring():
    options = [("m", "Male"), ("f", "Female")]
    assert match_option(options, "female") == 1
    assert match_option(options, "male") == 0


# -- boolean -------------------------------------------------------------------

def test_checkbox_flips_exactly_once(injector):
    page = make_page('<input type="checkbox" id="cb">')
    control = page.query("#cb")

    assert injector.set_checked(control, True)
    assert control.is_checked()
    assert control.events == ["change", "click"]

    assert injector.set_checked(control, True)
    assert control.is_checked()
    assert control.events == ["change", "click"]


def test_checkbox_already_in_target_state_fires_nothing(injector):
    page = make_page('<input type="checkbox" id="cb" checked>')
    control = page.query("#cb")
    assert injector.set_checked(control, True)
    assert control.events == []


def test_radio_group_choice_by_label(injector):
    page = make_page(
        "<fieldset><legend>Do you require sponsorship?</legend>"
        '<label><input type="radio" name="sp" value="1"> Yes</label>'
        '<label><input type="radio" name="sp" value="0"> No</label>'
        "</fieldset>"
    )
    first = page.query('input[value="1"]')
    assert injector.fill(first, "no")
    assert page.query('input[value="0"]').is_checked()
    assert not first.is_checked()


# -- files -------------------------------------------------------------------------

def test_attach_file_sets_files_and_fires_change_then_input(injector):
    page = make_page('<input type="file" id="f">')
    control = page.query("#f")
    payload = FilePayload("cv.pdf", "application/pdf", b"%PDF-1.4")
    assert injector.attach_file(control, payload)
    assert control.file_count() == 1
    assert control.files[0].name == "cv.pdf"
    assert control.events == ["change", "input"]


def test_attach_file_needs_a_payload(injector):
    page = make_page('<input type="file" id="f">')
    control = page.query("#f")
    assert injector.attach_file(control, []) is False
    assert injector.fill(control, "cv.pdf") is False


# -- fill dispatch -------------------------------------------------------------

def test_fill_counts_stats(injector):
    page = make_page(wrap('<input id="t" type="text">') + COUNTRIES)
    assert injector.fill(page.query("#t"), "Ada")
    assert not injector.fill(page.query("#c"), "Atlantis")
    assert injector.fill(page.query("#t"), None) is False
    assert (injector.stats.attempted, injector.stats.succeeded, injector.stats.failed) == (2, 1, 1)


@pytest.mark.parametrize("value", ["ada@x.com", "Ada Lovelace", "+1-555-0100"])
def test_checkbox_refuses_values_that_are_not_yes_or_no(injector, value):
    page = make_page('<input type="checkbox" id="cb">')
    control = page.query("#cb")

    assert injector.fill(control, value) is False
    assert not control.is_checked()
    assert control.events == []
    assert (injector.stats.attempted, injector.stats.failed) == (1, 1)


@pytest.mark.parametrize("value, checked", [(True, True), ("yes", True), ("on", True),
                                            ("no", False), ("0", False), (False, False)])
def test_checkbox_takes_yes_or_no_values(injector, value, checked):
    page = make_page('<input type="checkbox" id="cb">')
    control = page.query("#cb")
    assert injector.fill(control, value)
    assert control.is_checked() is checked
