"""
Field signature classification.

Maps a form control to a SemanticFieldType from the text around it: its own
identifying attributes, its labels and a bounded slice of ancestor text.
Declared input types win over textual inference, file inputs fall back to
resume, and otherwise the first rule of ``FIELD_RULES`` that matches decides.
"""
from __future__ import annotations

import re

from formpilot.log import get_logger
from formpilot.models import DetectedField, SemanticFieldType as F
from formpilot.page.base import ControlRef, FormAdapter

log = get_logger(__name__)

_CONTEXT_ATTRS = ("name", "id", "data-qa", "data-automation-id", "data-testid",
                  "placeholder", "aria-label")
ANCESTOR_LEVELS = 3
ANCESTOR_TEXT_LIMIT = 100

# Order matters: the first matching rule wins.
FIELD_RULES: list[tuple[F, re.Pattern]] = [
    # Personal
    (F.FIRST_NAME, re.compile(r"(first\s*name|given\s*name|forename|fname)")),
    (F.LAST_NAME, re.compile(r"(last\s*name|family\s*name|surname|lname)")),
    (F.FULL_NAME, re.compile(r"(full\s*name|your\s*name|name\s*$|^name$)")),
    (F.EMAIL, re.compile(r"(e-?mail|email\s*address)")),
    (F.PHONE, re.compile(r"(phone|mobile|cell|telephone|contact\s*number)")),
    # Address
    (F.ADDRESS, re.compile(r"(street\s*address|address\s*line|mailing\s*address|home\s*address)")),
    (F.CITY, re.compile(r"(city|town|municipality)")),
    (F.STATE, re.compile(r"(state|province|region)")),
    (F.ZIP_CODE, re.compile(r"(zip|postal\s*code|postcode)")),
    (F.COUNTRY, re.compile(r"(country|nation)")),
    # Links
    (F.LINKEDIN, re.compile(r"(linkedin|linked\s*in)")),
    (F.GITHUB, re.compile(r"(github|git\s*hub)")),
    (F.PORTFOLIO, re.compile(r"(portfolio|personal\s*website|website|blog)")),
    (F.TWITTER, re.compile(r"(twitter|x\.com)")),
    # Professional
    (F.COMPANY, re.compile(r"(current\s*company|company\s*name|employer|organization)")),
    (F.TITLE, re.compile(r"(job\s*title|current\s*title|position|role)")),
    (F.YEARS_EXPERIENCE, re.compile(r"(years?\s*of\s*experience|experience\s*years?|yoe)")),
    # Documents
    (F.RESUME_FILE, re.compile(r"(resume|cv|curriculum\s*vitae)")),
    (F.COVER_LETTER_FILE, re.compile(r"(cover\s*letter|covering\s*letter|motivation\s*letter)")),
    # EEO
    (F.GENDER, re.compile(r"(gender|sex)")),
    (F.ETHNICITY, re.compile(r"(ethnicity|race|ethnic\s*background)")),
    (F.VETERAN_STATUS, re.compile(r"(veteran|military\s*service|armed\s*forces)")),
    (F.DISABILITY_STATUS, re.compile(r"(disability|disabled|handicap|impairment)")),
    # Work authorization
    (F.WORK_AUTHORIZATION, re.compile(
        r"(work\s*authorization|authorized\s*to\s*work|legally\s*authorized|right\s*to\s*work)")),
    (F.SPONSORSHIP, re.compile(
        r"(sponsorship|visa\s*sponsorship|require\s*sponsorship|need\s*sponsorship)")),
    # Salary & availability
    (F.SALARY, re.compile(r"(salary|compensation|pay|expected\s*salary|desired\s*salary)")),
    (F.START_DATE, re.compile(
        r"(start\s*date|availability|when\s*can\s*you\s*start|available\s*to\s*start)")),
    (F.NOTICE_PERIOD, re.compile(r"(notice\s*period|current\s*notice|notice\s*required)")),
    # Education
    (F.SCHOOL, re.compile(r"(school|university|college|institution|alma\s*mater)")),
    (F.DEGREE, re.compile(r"(degree|qualification|diploma)")),
    (F.MAJOR, re.compile(r"(major|field\s*of\s*study|concentration|specialization)")),
    (F.GRADUATION_YEAR, re.compile(r"(graduation|graduated|grad\s*year|completion\s*year)")),
    (F.GPA, re.compile(r"(gpa|grade\s*point|grades?)")),
    (F.SKILLS, re.compile(r"(skills?|competencies|proficiencies|technologies)")),
    (F.RELOCATION, re.compile(r"(relocation|willing\s*to\s*relocate|open\s*to\s*relocation)")),
    (F.REMOTE_PREFERENCE, re.compile(r"(remote\s*work|work\s*from\s*home|wfh|hybrid)")),
]

_RESUME = re.compile(r"(resume|cv|curriculum\s*vitae)")
_COVER_LETTER = re.compile(r"(cover\s*letter|covering\s*letter|motivation\s*letter)")

# Every control kind the classifier looks at, as one selector so results come
# back in document order.
FIELD_SELECTOR = ", ".join([
    'input[type="text"]',
    'input[type="email"]',
    'input[type="tel"]',
    'input[type="url"]',
    'input[type="number"]',
    "input:not([type])",
    "textarea",
    "select",
    'input[type="file"]',
    'input[type="checkbox"]',
    'input[type="radio"]',
])
FILE_SELECTOR = 'input[type="file"]'


class FieldSignatureClassifier:
    """Pure reads of page structure; nothing here mutates the page."""

    def build_context(self, control: ControlRef) -> str:
        parts = [control.attr(name) for name in _CONTEXT_ATTRS]
        parts.extend(control.label_texts())
        parts.extend(control.ancestor_texts(ANCESTOR_LEVELS, ANCESTOR_TEXT_LIMIT))
        return " ".join(parts).lower()

    def classify(self, control: ControlRef, context: str | None = None) -> F:
        if context is None:
            context = self.build_context(control)
        declared = control.input_type if control.tag == "input" else ""

        if declared == "email":
            return F.EMAIL
        if declared == "tel":
            return F.PHONE
        if declared == "url":
            if "linkedin" in context:
                return F.LINKEDIN
            if "github" in context:
                return F.GITHUB
            return F.PORTFOLIO
        if declared == "file":
            if _COVER_LETTER.search(context) and not _RESUME.search(context):
                return F.COVER_LETTER_FILE
            return F.RESUME_FILE

        if not context.strip():
            return F.UNKNOWN
        for field_type, pattern in FIELD_RULES:
            if pattern.search(context):
                return field_type
        return F.UNKNOWN

    def detect(self, control: ControlRef) -> DetectedField | None:
        context = self.build_context(control)
        field_type = self.classify(control, context)
        if field_type is F.UNKNOWN:
            return None
        return DetectedField(control=control, type=field_type, confidence_context=context)

    def find_all_fields(self, page: FormAdapter) -> list[DetectedField]:
        """Every classifiable control on the page, in document order."""
        found: list[DetectedField] = []
        for control in page.query_all(FIELD_SELECTOR):
            detected = self.detect(control)
            if detected is not None:
                found.append(detected)
        log.debug("Detected %d fields on %s", len(found), page.url)
        return found

    def fields_by_type(self, page: FormAdapter) -> dict[F, list[DetectedField]]:
        grouped: dict[F, list[DetectedField]] = {}
        for detected in self.find_all_fields(page):
            grouped.setdefault(detected.type, []).append(detected)
        return grouped

    # -- documents ---------------------------------------------------------------

    def is_cv_field(self, control: ControlRef) -> bool:
        context = self.build_context(control)
        return bool(_RESUME.search(context)) and not _COVER_LETTER.search(context)

    def is_cover_letter_field(self, control: ControlRef) -> bool:
        return bool(_COVER_LETTER.search(self.build_context(control)))

    def find_resume_field(self, page: FormAdapter) -> ControlRef | None:
        """First CV-like file input; any first file input will do when none looks like one."""
        inputs = page.query_all(FILE_SELECTOR)
        for control in inputs:
            if self.is_cv_field(control):
                return control
        return inputs[0] if inputs else None

    def find_cover_letter_field(self, page: FormAdapter) -> ControlRef | None:
        for control in page.query_all(FILE_SELECTOR):
            if self.is_cover_letter_field(control):
                return control
        return None
