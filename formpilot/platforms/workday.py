"""Workday (myworkdayjobs.com) application flow."""
from __future__ import annotations

import re

from formpilot.injector import ValueInjector, match_option
from formpilot.log import get_logger
from formpilot.models import ApplicationProfile, FillReport, JobSnapshot, PageType
from formpilot.page.base import ControlRef, FormAdapter
from formpilot.platforms.base import PlatformAdapter, SafeFix

log = get_logger(__name__)

DESCRIPTION_MIN_CHARS = 200
DESCRIPTION_MAX_CHARS = 10_000
_REQUISITION_RE = re.compile(r"R-\d{5,}")
_GENERIC_SUBDOMAINS = {"www", "apply", "wd1", "wd3", "wd5"}
CURRENT_ROLE_FALLBACK = 'input[type="checkbox"][id*="current" i]'


def _aid(value: str, tag: str = "") -> str:
    return f'{tag}[data-automation-id="{value}"]'


def _first_text(page: FormAdapter, selectors: list[str]) -> str:
    for sel in selectors:
        el = page.query(sel)
        if el is not None and el.text().strip():
            return el.text().strip()
    return ""


class WorkdayPlatform(PlatformAdapter):
    name = "workday"
    hosts = ("workday.com", "myworkdayjobs.com")

    page_signatures = {
        PageType.JOB_LISTING: [
            _aid("jobPostingHeader"),
            _aid("jobPostingDescription"),
            _aid("jobPostingApplyButton"),
        ],
        PageType.SIGN_IN: [
            _aid("signInLink"),
            _aid("signInButton"),
            _aid("email", "input"),
        ],
        PageType.CREATE_ACCOUNT: [
            _aid("createAccountLink"),
            _aid("createAccountSubmitButton"),
            _aid("legalTermsCheckbox"),
        ],
        PageType.CONTACT_INFO: [
            _aid("firstName"),
            _aid("lastName"),
            _aid("phone-number"),
            _aid("addressSection"),
        ],
        PageType.EXPERIENCE: [
            _aid("resumeOrCV"),
            _aid("uploadFileSection"),
            _aid("workExperienceSection"),
            _aid("educationSection"),
        ],
        PageType.QUESTIONNAIRE: [
            _aid("questionnaire"),
            _aid("questionnaireSection"),
            _aid("multiselectInputContainer"),
        ],
        PageType.VOLUNTARY_DISCLOSURES: [
            _aid("voluntaryDisclosuresSection"),
            _aid("veteranStatus"),
            _aid("disabilityStatus"),
        ],
        PageType.SELF_IDENTIFY: [
            _aid("selfIdentificationSection"),
            _aid("raceAndEthnicity"),
            _aid("gender"),
        ],
        PageType.REVIEW: [
            _aid("reviewSection"),
            _aid("reviewSectionHeader"),
            _aid("submitButton"),
        ],
    }

    error_selectors = [
        _aid("errorMessage"),
        ".errorMessage",
        '[class*="error-message"]',
        '[role="alert"]',
        ".validationMessage",
    ]

    completion_phrases = [
        "thank you for applying",
        "application submitted",
        "application received",
        "successfully submitted",
        "we have received your application",
    ]

    apply_selectors = [
        _aid("jobPostingApplyButton", "a"),
        _aid("jobPostingApplyButton", "button"),
        _aid("applyButton"),
        'a[href*="/apply"]',
        'button[aria-label*="Apply"]',
    ]
    next_selectors = [
        _aid("bottom-navigation-next-button"),
        _aid("nextButton"),
    ]
    submit_selectors = [
        _aid("submitButton"),
        'button[type="submit"]',
    ]

    email_selectors = [_aid("email"), 'input[type="email"]']
    password_selectors = [_aid("password"), 'input[type="password"]']
    sign_in_submit_selectors = [_aid("signInSubmitButton"), 'button[type="submit"]']
    create_account_submit_selectors = [_aid("createAccountSubmitButton")]
    consent_selectors = [
        _aid("legalTermsCheckbox"),
        _aid("consent"),
        'input[type="checkbox"][id*="consent"]',
        'input[type="checkbox"][id*="terms"]',
        'input[type="checkbox"][id*="agree"]',
    ]
    upload_reveal_selectors = [_aid("file-upload-input-ref"), _aid("select-files")]

    field_map = {
        # Contact
        "firstName": "first_name",
        "lastName": "last_name",
        "email": "email",
        "phone-number": "phone",
        "phoneNumber": "phone",
        "addressLine1": "address",
        "city": "city",
        "postalCode": "zip_code",
        "countryDropdown": "country",
        "country": "country",
        "phone-device-type": "phone_type",
        "phoneDeviceType": "phone_type",
        "sourceDropdown": "source",
        # Links
        "linkedin": "linkedin",
        "linkedIn": "linkedin",
        "portfolio": "portfolio",
        "website": "portfolio",
        # Experience
        "company": "experience.company",
        "jobTitle": "experience.title",
        "title": "experience.title",
        "currentlyWorkHere": "experience.current",
        "startDate": "experience.start_date",
        "endDate": "experience.end_date",
        "description": "experience.description",
        # Education
        "school": "education.school",
        "degree": "education.degree",
        "field-of-study": "education.major",
        "fieldOfStudy": "education.major",
    }

    contact_field_ids = [
        "firstName", "lastName", "email", "phone-number", "phoneNumber", "addressLine1",
        "city", "postalCode", "countryDropdown", "country", "phone-device-type",
        "phoneDeviceType", "sourceDropdown", "linkedin", "linkedIn", "portfolio", "website",
    ]
    experience_field_ids = [
        "company", "jobTitle", "title", "currentlyWorkHere", "startDate", "endDate", "description",
        "school", "degree", "field-of-study", "fieldOfStudy",
    ]

    safe_fixes = [
        SafeFix(("school",), (_aid("school"),), "University"),
        SafeFix(("start date", "from date"), (_aid("startDate"), _aid("fromDate")), "01/2020"),
        SafeFix(("end date", "to date"), (_aid("endDate"), _aid("toDate")), "12/2024"),
    ]

    def extract_job(self, page: FormAdapter) -> JobSnapshot:
        title = _first_text(page, [
            f'{_aid("jobPostingHeader")} h2',
            _aid("jobPostingHeader"),
            _aid("jobTitle"),
            'h1[class*="title"]',
            'h2[class*="title"]',
        ])
        company = _first_text(page, [_aid("company"), _aid("jobCompany")])
        if not company:
            subdomain = page.hostname.split(".")[0] if page.hostname else ""
            if subdomain and subdomain not in _GENERIC_SUBDOMAINS:
                company = subdomain[:1].upper() + subdomain[1:]
        location = _first_text(page, [_aid("location"), _aid("locations"), _aid("jobPostingLocation")])

        description = ""
        for sel in (_aid("jobPostingDescription"), _aid("job-description"), ".job-description"):
            el = page.query(sel)
            text = el.text().strip() if el is not None else ""
            if len(text) > DESCRIPTION_MIN_CHARS:
                description = text[:DESCRIPTION_MAX_CHARS]
                break

        match = _REQUISITION_RE.search(page.body_text())
        return JobSnapshot(
            title=title,
            company=company,
            location=location,
            description=description,
            url=page.url,
            requisition_id=match.group(0) if match else "",
        )

    def structural_value(self, profile: ApplicationProfile, field_id: str):
        # A current role has no end date
        if field_id in ("endDate", "toDate") and profile.experience.current:
            return None
        return super().structural_value(profile, field_id)

    def fill_structural(self, page: FormAdapter, profile: ApplicationProfile,
                        injector: ValueInjector, ids: list[str] | None = None) -> FillReport:
        report = super().fill_structural(page, profile, injector, ids)
        wanted = ids is None or "currentlyWorkHere" in ids
        if not (wanted and profile.experience.current) or page.query(_aid("currentlyWorkHere")) is not None:
            return report
        box = page.query(CURRENT_ROLE_FALLBACK)
        if box is not None and not box.is_checked():
            report.attempted += 1
            if injector.set_checked(box, True):
                report.filled += 1
            else:
                report.failures.append(("currentlyWorkHere", "not applied"))
        return report

    def fill_custom_dropdown(self, page: FormAdapter, container: ControlRef, value: str) -> bool:
        trigger = (container.query(_aid("selectInputContainer"))
                   or container.query('[role="combobox"]')
                   or container)
        trigger.click()
        self.clock.sleep(self.timings.dropdown_open_ms)

        for sel in (_aid("promptOption"), '[role="option"]'):
            options = [o for o in page.query_all(sel) if o.text().strip()]
            index = match_option([(o.text(), o.text()) for o in options], value)
            if index is not None:
                options[index].click()
                log.debug("Picked '%s' in custom dropdown", options[index].text())
                return True
        log.debug("No dropdown option matches %r", value)
        return False
