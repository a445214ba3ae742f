from conftest import make_page, wrap
from formpilot.models import FilePayload, StepAction
from formpilot.runner import drive

CV = FilePayload("ada_cv.pdf", "application/pdf", b"%PDF-1.4")

EXPERIENCE_PAGE = (
    '<div data-automation-id="resumeOrCV"></div>'
    '<div data-automation-id="workExperienceSection"></div>'
    '<div data-automation-id="educationSection"></div>'
    + wrap('<label for="cv">Resume</label><input type="file" id="cv">')
    + wrap('<label for="sc">School</label><input id="sc" type="text">')
)
REVIEW_PAGE = (
    '<div data-automation-id="reviewSection">'
    '<h2 data-automation-id="reviewSectionHeader">Review</h2></div>'
    '<button data-automation-id="submitButton">Submit</button>'
)


def test_drive_attaches_the_cv_and_finishes_the_step(make_controller):
    page = make_page(EXPERIENCE_PAGE)
    controller = make_controller(page)

    results = drive(controller, cv=CV)

    assert [r.action for r in results] == [StepAction.AWAITING_CV_ATTACHMENT,
                                           StepAction.EXPERIENCE_COMPLETE]
    assert controller.state.cv_attached
    assert [f.name for f in page.query("#cv").files] == ["ada_cv.pdf"]
    assert page.query("#sc").get_value() == "University of London"


def test_drive_stops_at_the_cv_without_a_document(make_controller):
    page = make_page(EXPERIENCE_PAGE)
    controller = make_controller(page)

    results = drive(controller)

    assert [r.action for r in results] == [StepAction.AWAITING_CV_ATTACHMENT]
    assert page.query("#sc").get_value() == ""


def test_drive_leaves_the_review_page_when_not_confirmed(make_controller):
    page = make_page(REVIEW_PAGE)
    controller = make_controller(page, auto_submit=True)
    asked = []

    results = drive(controller, confirm=lambda r: asked.append(r.action) or False)

    assert asked == [StepAction.AWAITING_SUBMIT_CONFIRMATION]
    assert [r.action for r in results] == [StepAction.AWAITING_SUBMIT_CONFIRMATION]
    assert not controller.state.active
    assert not page.clicked('[data-automation-id="submitButton"]')
