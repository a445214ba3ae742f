from conftest import make_page
from formpilot.platforms import WorkdayPlatform
from formpilot.validation import ValidationScanner


def test_no_markers_no_errors():
    page = make_page("<form><input name='x'></form>")
    scanner = ValidationScanner()
    assert not scanner.has_errors(page)
    assert scanner.get_errors(page) == []


def test_hidden_and_empty_markers_do_not_count():
    page = make_page(
        '<div role="alert" style="display: none">Hidden problem</div>'
        '<div class="field-error" hidden>Also hidden</div>'
        '<div class="validation-error">   </div>'
        '<div style="visibility:hidden"><span class="error-message">Nested hidden</span></div>'
    )
    scanner = ValidationScanner()
    assert not scanner.has_errors(page)
    assert scanner.get_errors(page) == []


def test_messages_are_deduplicated_in_first_seen_order():
    page = make_page(
        '<div role="alert">Email is required</div>'
        '<p class="field-error">Phone is required</p>'
        '<p class="validation-error">Email is required</p>'
    )
    errors = ValidationScanner().get_errors(page)
    assert errors == ["Email is required", "Phone is required"]


def test_sibling_message_of_invalid_input():
    page = make_page('<input aria-invalid="true"><span class="help-message">Enter a date</span>')
    assert ValidationScanner().get_errors(page) == ["Enter a date"]


def test_platform_selectors_are_added():
    page = make_page('<div class="validationMessage">School is required</div>')
    assert ValidationScanner().get_errors(page) == []
    scanner = ValidationScanner(WorkdayPlatform.error_selectors)
    assert scanner.get_errors(page) == ["School is required"]
    assert len(scanner.selectors) == len(set(scanner.selectors))


def test_automation_id_and_invalid_class_markers():
    page = make_page(
        '<div data-automation-id="errorHeading">Enter a valid postcode</div>'
        '<span class="field--invalid">Date must be in the past</span>'
        '<input class="invalid" value="">'
    )
    assert ValidationScanner().get_errors(page) == ["Enter a valid postcode",
                                                    "Date must be in the past"]
