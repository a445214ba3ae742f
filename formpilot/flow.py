"""
Application flow state machine.

One ``ApplicationFlowController`` drives one application session. Each call to
``handle_current_page`` re-derives the step from the page, runs that step's
handler and returns a ``StepResult``; nothing is cached across navigations
except what is written to the durable store (the job snapshot, attachment
flags and the coarse switches in ``FlowConfig``).

Invariants kept by the handlers:

* nothing is filled or clicked while the flow is inactive, except capturing
  the job listing;
* visible validation errors always block advancement;
* the experience step touches nothing until a CV has been reported attached
  through ``mark_cv_attached``;
* submit is only clicked by ``confirm_submit``, after the review step has
  asked for confirmation and the page has been re-validated.
"""
from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urlparse

from formpilot.autofill import ProfileAutofill
from formpilot.config import FlowConfig, load_flow_config
from formpilot.fields import FieldSignatureClassifier
from formpilot.injector import ValueInjector
from formpilot.log import get_logger
from formpilot.messaging import MessageChannel, Milestone
from formpilot.models import (
    ApplicationProfile,
    FillReport,
    FlowState,
    JobSnapshot,
    PageType,
    StepAction,
    StepResult,
)
from formpilot.page.base import FormAdapter
from formpilot.pages import PageSignatureClassifier
from formpilot.platforms import PlatformAdapter, get_platform
from formpilot.retry import SYSTEM_CLOCK, Clock
from formpilot.store import ATTACHMENTS_KEY, SNAPSHOT_KEY, KeyValueStore, MemoryStore

log = get_logger(__name__)

TailorHook = Callable[[JobSnapshot], None]

_REQUISITION_RE = re.compile(r"R-\d{5,}")
_APPLY_SUFFIX_RE = re.compile(r"/(?:apply|application)(?:/.*)?$", re.I)


def job_key(url: str) -> tuple[str, str]:
    """("req", id) when the URL carries a requisition, else ("url", host+path minus /apply)."""
    match = _REQUISITION_RE.search(url or "")
    if match:
        return "req", match.group(0).upper()
    parsed = urlparse(url or "")
    path = _APPLY_SUFFIX_RE.sub("", parsed.path.rstrip("/"))
    return "url", f"{parsed.netloc}{path}"


def same_job(stored_url: str, page_url: str) -> bool:
    """False only when both URLs identify a job and they identify different ones."""
    if not stored_url or not page_url:
        return True
    stored, current = job_key(stored_url), job_key(page_url)
    if stored[0] != current[0]:
        return True
    return stored == current


@dataclass
class FlowContext:
    """Everything one session needs, built once and handed to the controller."""
    page: FormAdapter
    profile: ApplicationProfile
    platform: PlatformAdapter | None
    config: FlowConfig = field(default_factory=FlowConfig)
    store: KeyValueStore = field(default_factory=MemoryStore)
    channel: MessageChannel = field(default_factory=MessageChannel)
    clock: Clock = SYSTEM_CLOCK
    classifier: FieldSignatureClassifier = field(default_factory=FieldSignatureClassifier)
    injector: ValueInjector = field(default_factory=ValueInjector)
    tailor: TailorHook | None = None

    @classmethod
    def create(
        cls,
        page: FormAdapter,
        profile: ApplicationProfile,
        *,
        config: FlowConfig | None = None,
        store: KeyValueStore | None = None,
        channel: MessageChannel | None = None,
        clock: Clock | None = None,
        tailor: TailorHook | None = None,
    ) -> FlowContext:
        store = store if store is not None else MemoryStore()
        clock = clock or SYSTEM_CLOCK
        config = config or load_flow_config(store)
        return cls(
            page=page,
            profile=profile,
            platform=get_platform(page.url, clock, config.timings),
            config=config,
            store=store,
            channel=channel or MessageChannel(),
            clock=clock,
            tailor=tailor,
        )


class ApplicationFlowController:
    def __init__(self, ctx: FlowContext) -> None:
        self.ctx = ctx
        self.state = FlowState()
        self.pages = PageSignatureClassifier(ctx.platform)
        self.autofill = ProfileAutofill(ctx.classifier, ctx.injector)
        self._handlers: dict[PageType, Callable[[], StepResult]] = {
            PageType.SIGN_IN: self._handle_sign_in,
            PageType.CREATE_ACCOUNT: self._handle_create_account,
            PageType.CONTACT_INFO: self._handle_contact_info,
            PageType.EXPERIENCE: self._handle_experience,
            PageType.QUESTIONNAIRE: self._handle_questionnaire,
            PageType.VOLUNTARY_DISCLOSURES: self._handle_voluntary_disclosures,
            PageType.SELF_IDENTIFY: self._handle_self_identify,
            PageType.REVIEW: self._handle_review,
        }
        self._rehydrate()

    # -- shortcuts ------------------------------------------------------------------

    @property
    def page(self) -> FormAdapter:
        return self.ctx.page

    @property
    def config(self) -> FlowConfig:
        return self.ctx.config

    def _sleep(self, ms: int) -> None:
        self.ctx.clock.sleep(ms)

    def _result(self, success: bool, action: StepAction, message: str = "", **kwargs) -> StepResult:
        result = StepResult(success=success, action=action, page=self.state.current_page,
                            message=message, **kwargs)
        log.info("[%s] %s%s", result.page.value if result.page else "-", action.value,
                 f" ({message})" if message else "")
        return result

    # -- durable state -----------------------------------------------------------

    def _rehydrate(self) -> None:
        store = self.ctx.store
        url = self.page.url
        snapshot = JobSnapshot.from_dict(store.get(SNAPSHOT_KEY))
        if snapshot is not None and not same_job(snapshot.url, url):
            log.info("Stored listing '%s' belongs to another job; discarding", snapshot.title)
            store.delete(SNAPSHOT_KEY)
            snapshot = None
        self.state.job_snapshot = snapshot

        flags = store.get(ATTACHMENTS_KEY) or {}
        job_url = flags.get("job_url", "")
        stale = not same_job(job_url, url) or (
            snapshot is not None and not same_job(job_url, snapshot.url))
        if flags and stale:
            log.info("Attachment flags were recorded for %s; resetting", job_url)
            store.delete(ATTACHMENTS_KEY)
            flags = {}
        self.state.cv_attached = bool(flags.get("cv"))
        self.state.cover_attached = bool(flags.get("cover"))
        if snapshot is not None:
            log.debug("Rehydrated snapshot for '%s' (cv=%s)", snapshot.title, self.state.cv_attached)

    def _persist_attachments(self) -> None:
        snapshot = self.state.job_snapshot
        self.ctx.store.set(ATTACHMENTS_KEY, {
            "cv": self.state.cv_attached,
            "cover": self.state.cover_attached,
            "job_url": snapshot.url if snapshot and snapshot.url else self.page.url,
        })

    def _clear_application(self) -> None:
        """Forget the finished application so the next one starts from the stop point."""
        self.state.cv_attached = self.state.cover_attached = False
        self.ctx.store.delete(ATTACHMENTS_KEY)
        self.ctx.store.delete(SNAPSHOT_KEY)

    # -- public operations -------------------------------------------------------

    def detect_page(self) -> PageType | None:
        self.state.current_page = self.pages.detect(self.page)
        if self.state.current_page is not None:
            self.state.errors = self.pages.get_errors(self.page)
        return self.state.current_page

    def start(self) -> StepResult:
        if not self.pages.is_recognized(self.page):
            log.warning("No supported platform at %s; automation stays off", self.page.url)
            return self._result(False, StepAction.PLATFORM_UNRECOGNIZED,
                                "This site is not a supported application platform")
        self.state.active = True
        self.state.started_at = self.ctx.clock.now()
        self.state.errors = []
        self.state.awaiting_confirmation = False
        page_type = self.detect_page()
        self.ctx.channel.emit(Milestone.FLOW_STARTED, page=page_type.value if page_type else None,
                              platform=self.ctx.platform.name)
        return self.handle_current_page()

    def handle_current_page(self) -> StepResult:
        page_type = self.detect_page()
        if page_type is None:
            return self._result(False, StepAction.PLATFORM_UNRECOGNIZED,
                                "This site is not a supported application platform")

        if self.pages.is_complete(self.page):
            self.state.active = False
            self.ctx.channel.emit(Milestone.FLOW_FINISHED, reason="application_complete",
                                  job=self._job_dict())
            self._clear_application()
            return self._result(True, StepAction.APPLICATION_COMPLETE, "Application submitted")

        if page_type is PageType.JOB_LISTING:
            return self._handle_job_listing()
        if not self.state.active:
            return self._result(False, StepAction.FLOW_INACTIVE, "Automation is not running")

        handler = self._handlers.get(page_type)
        if handler is None:
            return self._result(False, StepAction.UNKNOWN_PAGE, "Could not tell which step this is")
        result = handler()
        self.state.errors = list(result.errors)
        return result

    def click_next(self) -> StepResult:
        if not self.state.active:
            return self._result(False, StepAction.FLOW_INACTIVE, "Automation is not running")
        errors = self.pages.get_errors(self.page)
        if errors:
            return self._result(False, StepAction.ERRORS_PRESENT, "Errors present; not advancing",
                                errors=errors)
        button = self.ctx.platform.find_next(self.page)
        if button is None:
            return self._result(False, StepAction.NEXT_NOT_FOUND, "Next button not found")
        button.click()
        self._sleep(self.config.timings.navigation_ms)
        return self._result(True, StepAction.NEXT_CLICKED)

    def confirm_submit(self) -> StepResult:
        """The external acknowledgement that lets a pending submit go through."""
        if not self.state.awaiting_confirmation:
            return self._result(False, StepAction.NOTHING_TO_CONFIRM, "No submission is pending")
        self.state.awaiting_confirmation = False
        if not self.state.active:
            return self._result(False, StepAction.FLOW_INACTIVE, "Automation is not running")
        if self.detect_page() is not PageType.REVIEW:
            return self._result(False, StepAction.NOTHING_TO_CONFIRM, "No longer on the review page")

        errors = self.pages.get_errors(self.page)
        if errors:
            return self._result(False, StepAction.ERRORS_PRESENT, "Errors present; not submitting",
                                errors=errors)
        button = self.ctx.platform.find_submit(self.page)
        if button is None:
            return self._result(False, StepAction.SUBMIT_NOT_FOUND, "Submit button not found")
        button.click()
        self._sleep(self.config.timings.navigation_ms)
        self.ctx.channel.emit(Milestone.SUBMITTED, job=self._job_dict())
        return self._result(True, StepAction.SUBMITTED)

    def mark_cv_attached(self) -> None:
        self.state.cv_attached = True
        self._persist_attachments()
        log.info("CV marked as attached")

    def mark_cover_attached(self) -> None:
        self.state.cover_attached = True
        self._persist_attachments()
        log.info("Cover letter marked as attached")

    def stop(self) -> None:
        self.state.active = False
        self.state.awaiting_confirmation = False
        self.ctx.channel.emit(Milestone.FLOW_STOPPED, page=self._page_value())
        log.info("Flow stopped")

    def get_state(self) -> FlowState:
        return dataclasses.replace(self.state, errors=list(self.state.errors))

    # -- helpers -------------------------------------------------------------------

    def _job_dict(self) -> dict | None:
        return self.state.job_snapshot.to_dict() if self.state.job_snapshot else None

    def _page_value(self) -> str | None:
        return self.state.current_page.value if self.state.current_page else None

    def _finish_fillable(self, report: FillReport, done: StepAction) -> StepResult:
        """Settle, gate on validation errors, then advance when configured to."""
        self._sleep(self.config.timings.settle_ms)
        errors = self.pages.get_errors(self.page)

        if errors and self.config.apply_safe_fixes:
            fixed = self.ctx.platform.apply_safe_fixes(self.page, errors, self.ctx.injector)
            if fixed:
                self._sleep(self.config.timings.settle_ms)
                errors = self.pages.get_errors(self.page)

        details = {"attempted": report.attempted, "failures": list(report.failures)}
        if errors:
            return self._result(False, StepAction.ERRORS_PRESENT,
                                "Fix the highlighted fields before continuing",
                                filled=report.filled, errors=errors, details=details)
        if self.config.auto_advance:
            result = self.click_next()
            result.filled = report.filled
            result.details.update(details)
            return result
        return self._result(True, done, filled=report.filled, details=details)

    # -- step handlers ---------------------------------------------------------------

    def _handle_job_listing(self) -> StepResult:
        snapshot = self.ctx.platform.extract_job(self.page)
        snapshot.captured_at = self.ctx.clock.now()
        self.state.job_snapshot = snapshot
        self.ctx.store.set(SNAPSHOT_KEY, snapshot.to_dict())
        # A new listing starts a new application.
        self.state.cv_attached = self.state.cover_attached = False
        self.ctx.store.delete(ATTACHMENTS_KEY)
        self.ctx.channel.emit(Milestone.LISTING_CAPTURED, job=snapshot.to_dict())
        log.info("Captured listing: %s @ %s", snapshot.title or "?", snapshot.company or "?")

        details = {"job": snapshot.to_dict()}
        if not self.state.active:
            return self._result(True, StepAction.SNAPSHOT_CAPTURED, details=details)

        button = self.ctx.platform.find_apply(self.page)
        if button is None:
            return self._result(False, StepAction.APPLY_NOT_FOUND, "Apply button not found",
                                details=details)
        self._sleep(self.config.timings.apply_delay_ms)
        button.click()
        return self._result(True, StepAction.APPLY_CLICKED, details=details)

    def _stored_account(self) -> bool:
        return self.config.use_stored_account and bool(self.config.credentials.username)

    def _handle_sign_in(self) -> StepResult:
        if not self._stored_account():
            return self._result(False, StepAction.WAITING_FOR_SIGNIN,
                                "Sign in manually or enable the stored account")
        platform = self.ctx.platform
        email = self.page.query_first(platform.email_selectors)
        password = self.page.query_first(platform.password_selectors)
        if email is None or password is None:
            return self._result(False, StepAction.SIGNIN_FAILED, "Sign-in fields not found")

        creds = self.config.credentials
        self.ctx.injector.set_text(email, creds.username)
        self.ctx.injector.set_text(password, creds.password)
        self._sleep(self.config.timings.settle_ms)

        button = platform.find_sign_in_submit(self.page)
        if button is None:
            return self._result(False, StepAction.SIGNIN_FAILED, "Sign-in button not found")
        button.click()
        return self._result(True, StepAction.SIGNED_IN)

    def _handle_create_account(self) -> StepResult:
        if not self._stored_account():
            return self._result(False, StepAction.WAITING_FOR_ACCOUNT_CREATION,
                                "Create the account manually or enable the stored account")
        platform = self.ctx.platform
        creds = self.config.credentials
        email = self.page.query_first(platform.email_selectors)
        if email is not None:
            self.ctx.injector.set_text(email, creds.username)
        for password in self.page.query_all('input[type="password"]'):
            self.ctx.injector.set_text(password, creds.password)
        self._sleep(self.config.timings.short_ms)

        self.autofill.check_consent(self.page, platform)
        self._sleep(self.config.timings.short_ms)

        button = platform.find_create_account_submit(self.page)
        if button is None:
            return self._result(False, StepAction.ACCOUNT_CREATION_FAILED,
                                "Create account button not found")
        button.click()
        return self._result(True, StepAction.ACCOUNT_CREATED)

    def _handle_contact_info(self) -> StepResult:
        profile = self.ctx.profile
        report = self.autofill.full_autofill(self.page, profile)
        report.merge(self.ctx.platform.fill_structural(
            self.page, profile, self.ctx.injector, self.ctx.platform.contact_field_ids))
        self.state.autofill_complete = True
        return self._finish_fillable(report, StepAction.CONTACT_FILLED)

    def _handle_experience(self) -> StepResult:
        if self.state.job_snapshot is None:
            self.state.job_snapshot = JobSnapshot.from_dict(self.ctx.store.get(SNAPSHOT_KEY))

        if not self.state.cv_attached:
            snapshot = self.state.job_snapshot
            tailoring = self.ctx.tailor is not None and bool(snapshot and snapshot.description)
            self.ctx.channel.emit(Milestone.STOP_POINT_REACHED, job=self._job_dict(),
                                  requires_tailoring=tailoring)
            if tailoring:
                try:
                    self.ctx.tailor(snapshot)
                except Exception as exc:
                    log.warning("Tailoring hook failed: %s", exc)
                return self._result(True, StepAction.AWAITING_CV_TAILORING,
                                    "Tailoring the CV for this role")
            return self._result(True, StepAction.AWAITING_CV_ATTACHMENT,
                                "Attach the tailored CV to continue")

        profile = self.ctx.profile
        report = self.autofill.fill_background(self.page, profile)
        report.merge(self.ctx.platform.fill_structural(
            self.page, profile, self.ctx.injector, self.ctx.platform.experience_field_ids))
        return self._finish_fillable(report, StepAction.EXPERIENCE_COMPLETE)

    def _handle_questionnaire(self) -> StepResult:
        profile = self.ctx.profile
        report = self.autofill.answer_screening_questions(self.page, profile)
        report.merge(self.autofill.fill_work_auth(self.page, profile))
        report.merge(self.autofill.fill_preferences(self.page, profile))
        return self._finish_fillable(report, StepAction.QUESTIONNAIRE_FILLED)

    def _handle_voluntary_disclosures(self) -> StepResult:
        report = self.autofill.fill_diversity(self.page, self.ctx.profile)
        return self._finish_fillable(report, StepAction.DISCLOSURES_FILLED)

    def _handle_self_identify(self) -> StepResult:
        report = self.autofill.fill_diversity(self.page, self.ctx.profile)
        return self._finish_fillable(report, StepAction.SELF_IDENTIFY_FILLED)

    def _handle_review(self) -> StepResult:
        if not self.config.auto_submit:
            self.state.active = False
            self.ctx.channel.emit(Milestone.FLOW_FINISHED, reason="review_ready", job=self._job_dict())
            return self._result(True, StepAction.REVIEW_READY,
                                "Review the application and submit it yourself")

        errors = self.pages.get_errors(self.page)
        if errors:
            return self._result(False, StepAction.ERRORS_PRESENT, "Errors present; not submitting",
                                errors=errors)
        if self.ctx.platform.find_submit(self.page) is None:
            return self._result(False, StepAction.SUBMIT_NOT_FOUND, "Submit button not found")

        self.state.awaiting_confirmation = True
        self.ctx.channel.emit(Milestone.CONFIRM_SUBMIT, job=self._job_dict())
        return self._result(True, StepAction.AWAITING_SUBMIT_CONFIRMATION,
                            "Confirm to submit the application")
