"""Data models for fields, pages, flow state and the candidate profile."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from formpilot.page.base import ControlRef


class SemanticFieldType(str, Enum):
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    FULL_NAME = "fullName"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    CITY = "city"
    STATE = "state"
    ZIP_CODE = "zipCode"
    COUNTRY = "country"
    LINKEDIN = "linkedin"
    GITHUB = "github"
    PORTFOLIO = "portfolio"
    TWITTER = "twitter"
    COMPANY = "company"
    TITLE = "title"
    YEARS_EXPERIENCE = "yearsExperience"
    RESUME_FILE = "resumeFile"
    COVER_LETTER_FILE = "coverLetterFile"
    GENDER = "gender"
    ETHNICITY = "ethnicity"
    VETERAN_STATUS = "veteranStatus"
    DISABILITY_STATUS = "disabilityStatus"
    WORK_AUTHORIZATION = "workAuthorization"
    SPONSORSHIP = "sponsorship"
    SALARY = "salary"
    START_DATE = "startDate"
    NOTICE_PERIOD = "noticePeriod"
    SCHOOL = "school"
    DEGREE = "degree"
    MAJOR = "major"
    GRADUATION_YEAR = "graduationYear"
    GPA = "gpa"
    SKILLS = "skills"
    RELOCATION = "relocation"
    REMOTE_PREFERENCE = "remotePreference"
    UNKNOWN = "unknown"


class PageType(str, Enum):
    JOB_LISTING = "jobListing"
    SIGN_IN = "signIn"
    CREATE_ACCOUNT = "createAccount"
    CONTACT_INFO = "contactInfo"
    EXPERIENCE = "experience"
    QUESTIONNAIRE = "questionnaire"
    VOLUNTARY_DISCLOSURES = "voluntaryDisclosures"
    SELF_IDENTIFY = "selfIdentify"
    REVIEW = "review"
    UNKNOWN = "unknown"


class StepAction(str, Enum):
    SNAPSHOT_CAPTURED = "snapshot_captured"
    APPLY_CLICKED = "apply_clicked"
    APPLY_NOT_FOUND = "apply_not_found"
    WAITING_FOR_SIGNIN = "waiting_for_signin"
    SIGNED_IN = "signed_in"
    SIGNIN_FAILED = "signin_failed"
    WAITING_FOR_ACCOUNT_CREATION = "waiting_for_account_creation"
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_CREATION_FAILED = "account_creation_failed"
    CONTACT_FILLED = "contact_filled"
    AWAITING_CV_TAILORING = "awaiting_cv_tailoring"
    AWAITING_CV_ATTACHMENT = "awaiting_cv_attachment"
    EXPERIENCE_COMPLETE = "experience_complete"
    QUESTIONNAIRE_FILLED = "questionnaire_filled"
    DISCLOSURES_FILLED = "disclosures_filled"
    SELF_IDENTIFY_FILLED = "self_identify_filled"
    REVIEW_READY = "review_ready"
    AWAITING_SUBMIT_CONFIRMATION = "awaiting_submit_confirmation"
    SUBMIT_NOT_FOUND = "submit_not_found"
    SUBMITTED = "submitted"
    NOTHING_TO_CONFIRM = "nothing_to_confirm"
    NEXT_CLICKED = "next_clicked"
    NEXT_NOT_FOUND = "next_not_found"
    ERRORS_PRESENT = "errors_present"
    APPLICATION_COMPLETE = "application_complete"
    UNKNOWN_PAGE = "unknown_page"
    PLATFORM_UNRECOGNIZED = "platform_unrecognized"
    FLOW_INACTIVE = "flow_inactive"


# Actions after which the host page is expected to navigate or re-render.
TRANSITION_ACTIONS: frozenset[StepAction] = frozenset({
    StepAction.APPLY_CLICKED,
    StepAction.SIGNED_IN,
    StepAction.ACCOUNT_CREATED,
    StepAction.NEXT_CLICKED,
    StepAction.SUBMITTED,
})

WAITING_ACTIONS: frozenset[StepAction] = frozenset({
    StepAction.WAITING_FOR_SIGNIN,
    StepAction.WAITING_FOR_ACCOUNT_CREATION,
    StepAction.AWAITING_CV_TAILORING,
    StepAction.AWAITING_CV_ATTACHMENT,
    StepAction.AWAITING_SUBMIT_CONFIRMATION,
})


@dataclass(frozen=True)
class DetectedField:
    control: ControlRef
    type: SemanticFieldType
    confidence_context: str


@dataclass
class FilePayload:
    """A document ready to be placed into a file input."""
    name: str
    mime_type: str
    buffer: bytes

    @property
    def size(self) -> int:
        return len(self.buffer)


@dataclass
class JobSnapshot:
    title: str = ""
    company: str = ""
    location: str = ""
    description: str = ""
    url: str = ""
    captured_at: float = 0.0
    requisition_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> JobSnapshot | None:
        if not data:
            return None
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class FlowState:
    current_page: PageType | None = None
    active: bool = False
    cv_attached: bool = False
    cover_attached: bool = False
    autofill_complete: bool = False
    job_snapshot: JobSnapshot | None = None
    errors: list[str] = field(default_factory=list)
    started_at: float | None = None
    awaiting_confirmation: bool = False


@dataclass
class StepResult:
    success: bool
    action: StepAction
    page: PageType | None = None
    filled: int = 0
    errors: list[str] = field(default_factory=list)
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_waiting(self) -> bool:
        return self.action in WAITING_ACTIONS


@dataclass
class FillReport:
    filled: int = 0
    attempted: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)

    def merge(self, other: FillReport) -> FillReport:
        self.filled += other.filled
        self.attempted += other.attempted
        self.failures.extend(other.failures)
        return self


# ---------------------------------------------------------------------------
# Candidate profile (read-only to the flow)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Education:
    school: str = ""
    degree: str = ""
    major: str = ""
    graduation_year: str = ""
    gpa: str = ""


@dataclass(frozen=True)
class Experience:
    company: str = ""
    title: str = ""
    start_date: str = ""
    end_date: str = ""
    current: bool = True
    description: str = ""


def _yes_no(flag: bool) -> str:
    return "yes" if flag else "no"


def normalize_question(question: str) -> str:
    """Canonical key for a screening question: lower-case, alphanumerics, single spaces."""
    text = re.sub(r"[^a-z0-9\s]", "", (question or "").lower())
    return re.sub(r"\s+", " ", text).strip()[:100]


@dataclass(frozen=True)
class ApplicationProfile:
    first_name: str = ""
    last_name: str = ""
    full_name: str = ""
    email: str = ""
    phone: str = ""
    phone_type: str = "Mobile"

    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""

    linkedin: str = ""
    github: str = ""
    portfolio: str = ""
    twitter: str = ""

    title: str = ""
    current_company: str = ""
    years_of_experience: str = ""

    # authorized, citizen, sponsorship_required
    work_authorization: str = "authorized"
    requires_sponsorship: bool = False
    gender: str = "Prefer not to say"
    ethnicity: str = "Prefer not to say"
    veteran_status: str = "I am not a protected veteran"
    disability_status: str = "I do not wish to answer"

    education: Education = field(default_factory=Education)
    experience: Experience = field(default_factory=Experience)
    skills: tuple[str, ...] = ()

    expected_salary: str = ""
    start_date: str = ""
    notice_period: str = ""
    willing_to_relocate: bool = True
    remote_preference: str = "hybrid"
    source: str = ""

    saved_responses: dict[str, str] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return self.full_name or f"{self.first_name} {self.last_name}".strip()

    @property
    def is_work_authorized(self) -> bool:
        return self.work_authorization in ("authorized", "citizen")

    def value_for(self, field_type: SemanticFieldType) -> Any:
        """Profile value to put into a control of ``field_type``; None when there is none."""
        mapping: dict[SemanticFieldType, Any] = {
            SemanticFieldType.FIRST_NAME: self.first_name,
            SemanticFieldType.LAST_NAME: self.last_name,
            SemanticFieldType.FULL_NAME: self.display_name,
            SemanticFieldType.EMAIL: self.email,
            SemanticFieldType.PHONE: self.phone,
            SemanticFieldType.ADDRESS: self.address,
            SemanticFieldType.CITY: self.city,
            SemanticFieldType.STATE: self.state,
            SemanticFieldType.ZIP_CODE: self.zip_code,
            SemanticFieldType.COUNTRY: self.country,
            SemanticFieldType.LINKEDIN: self.linkedin,
            SemanticFieldType.GITHUB: self.github,
            SemanticFieldType.PORTFOLIO: self.portfolio,
            SemanticFieldType.TWITTER: self.twitter,
            SemanticFieldType.COMPANY: self.current_company or self.experience.company,
            SemanticFieldType.TITLE: self.title or self.experience.title,
            SemanticFieldType.YEARS_EXPERIENCE: self.years_of_experience,
            SemanticFieldType.GENDER: self.gender,
            SemanticFieldType.ETHNICITY: self.ethnicity,
            SemanticFieldType.VETERAN_STATUS: self.veteran_status,
            SemanticFieldType.DISABILITY_STATUS: self.disability_status,
            SemanticFieldType.WORK_AUTHORIZATION: _yes_no(self.is_work_authorized),
            SemanticFieldType.SPONSORSHIP: _yes_no(self.requires_sponsorship),
            SemanticFieldType.SALARY: self.expected_salary,
            SemanticFieldType.START_DATE: self.start_date,
            SemanticFieldType.NOTICE_PERIOD: self.notice_period,
            SemanticFieldType.SCHOOL: self.education.school,
            SemanticFieldType.DEGREE: self.education.degree,
            SemanticFieldType.MAJOR: self.education.major,
            SemanticFieldType.GRADUATION_YEAR: self.education.graduation_year,
            SemanticFieldType.GPA: self.education.gpa,
            SemanticFieldType.SKILLS: ", ".join(self.skills),
            SemanticFieldType.RELOCATION: _yes_no(self.willing_to_relocate),
            SemanticFieldType.REMOTE_PREFERENCE: self.remote_preference,
        }
        value = mapping.get(field_type)
        if value is None or value == "":
            return None
        return value

    def response_for(self, question: str) -> str | None:
        return self.saved_responses.get(normalize_question(question)) or None

    def lookup(self, path: str) -> Any:
        """Dotted attribute lookup, e.g. ``education.school``; None when missing or empty."""
        value: Any = self
        for part in path.split("."):
            value = getattr(value, part, None)
            if value is None:
                return None
        return value if value != "" else None
