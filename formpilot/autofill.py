"""Profile-driven fill routines used by the per-step handlers of the flow."""
from __future__ import annotations

from formpilot.fields import FieldSignatureClassifier
from formpilot.injector import ValueInjector
from formpilot.log import get_logger
from formpilot.models import ApplicationProfile, FillReport, SemanticFieldType as F
from formpilot.page.base import FormAdapter
from formpilot.platforms.base import PlatformAdapter

log = get_logger(__name__)

CONTACT_TYPES: tuple[F, ...] = (
    F.FIRST_NAME, F.LAST_NAME, F.FULL_NAME, F.EMAIL, F.PHONE,
    F.ADDRESS, F.CITY, F.STATE, F.ZIP_CODE, F.COUNTRY,
    F.LINKEDIN, F.GITHUB, F.PORTFOLIO, F.TWITTER,
    F.COMPANY, F.TITLE, F.YEARS_EXPERIENCE,
)
WORK_AUTH_TYPES: tuple[F, ...] = (F.WORK_AUTHORIZATION, F.SPONSORSHIP)
DIVERSITY_TYPES: tuple[F, ...] = (F.GENDER, F.ETHNICITY, F.VETERAN_STATUS, F.DISABILITY_STATUS)
BACKGROUND_TYPES: tuple[F, ...] = (
    F.COMPANY, F.TITLE, F.SCHOOL, F.DEGREE, F.MAJOR, F.GRADUATION_YEAR, F.GPA, F.SKILLS,
)
PREFERENCE_TYPES: tuple[F, ...] = (
    F.SALARY, F.START_DATE, F.NOTICE_PERIOD, F.RELOCATION, F.REMOTE_PREFERENCE,
)

QUESTION_SELECTOR = 'label, legend, .question-label, [class*="question"]'
QUESTION_CONTAINER = 'fieldset, .field, .form-group, [class*="question"]'
MAX_QUESTION_CHARS = 200


class ProfileAutofill:
    def __init__(self, classifier: FieldSignatureClassifier, injector: ValueInjector) -> None:
        self.classifier = classifier
        self.injector = injector

    def fill_types(self, page: FormAdapter, profile: ApplicationProfile,
                   types: tuple[F, ...]) -> FillReport:
        """Fill the first writable control of each type in ``types``."""
        report = FillReport()
        grouped = self.classifier.fields_by_type(page)
        for field_type in types:
            candidates = grouped.get(field_type)
            value = profile.value_for(field_type)
            if not candidates or value is None:
                continue
            report.attempted += 1
            if any(self.injector.fill(f.control, value) for f in candidates):
                report.filled += 1
            else:
                report.failures.append((field_type.value, f"none of {len(candidates)} control(s) accepted the value"))
        return report

    def fill_from_profile(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        report = self.fill_types(page, profile, CONTACT_TYPES)
        log.info("Filled %d/%d contact fields", report.filled, report.attempted)
        return report

    def fill_work_auth(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        return self.fill_types(page, profile, WORK_AUTH_TYPES)

    def fill_diversity(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        return self.fill_types(page, profile, DIVERSITY_TYPES)

    def fill_background(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        return self.fill_types(page, profile, BACKGROUND_TYPES)

    def full_autofill(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        """Contact fields, then work authorization, then EEO answers."""
        report = self.fill_from_profile(page, profile)
        report.merge(self.fill_work_auth(page, profile))
        report.merge(self.fill_diversity(page, profile))
        return report

    def answer_screening_questions(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        """Answer questions whose text has a saved response in the profile."""
        report = FillReport()
        if not profile.saved_responses:
            return report
        answered = []
        for question in page.query_all(QUESTION_SELECTOR):
            text = question.text().strip()
            if not text or len(text) > MAX_QUESTION_CHARS:
                continue
            answer = profile.response_for(text)
            if answer is None:
                continue
            container = question.closest(QUESTION_CONTAINER) or question.parent()
            control = container.query("input, textarea, select") if container is not None else None
            if control is None or control in answered:
                continue
            report.attempted += 1
            if self.injector.fill(control, answer):
                report.filled += 1
                answered.append(control)
            else:
                report.failures.append((text[:60], "answer not applied"))
        if report.attempted:
            log.info("Answered %d/%d screening questions", report.filled, report.attempted)
        return report

    def fill_preferences(self, page: FormAdapter, profile: ApplicationProfile) -> FillReport:
        return self.fill_types(page, profile, PREFERENCE_TYPES)

    def check_consent(self, page: FormAdapter, platform: PlatformAdapter) -> int:
        """Tick every visible, unticked consent/terms checkbox."""
        checked = 0
        for sel in platform.consent_selectors:
            for box in page.query_all(sel):
                if box.is_visible() and not box.is_checked() and self.injector.set_checked(box, True):
                    checked += 1
        return checked
