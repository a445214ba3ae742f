"""
Platform adapter interface.

A platform bundles everything that is specific to one applicant-tracking
system: how to recognise its hosts, the structural markers of each step, where
its navigation controls live, and how its bespoke widgets are driven. One is
selected per session by ``formpilot.platforms.get_platform``.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from urllib.parse import urlparse

from formpilot.config import FlowTimings
from formpilot.injector import ValueInjector
from formpilot.log import get_logger
from formpilot.models import ApplicationProfile, FillReport, JobSnapshot, PageType
from formpilot.page.base import ControlRef, FormAdapter
from formpilot.retry import SYSTEM_CLOCK, Clock

log = get_logger(__name__)


@dataclass(frozen=True)
class SafeFix:
    """Known-safe recovery: when an error mentions one of ``keywords``, put ``value`` in the first empty target."""
    keywords: tuple[str, ...]
    selectors: tuple[str, ...]
    value: str


def _is_blank_dropdown(control: ControlRef) -> bool:
    return control.text().strip().lower() in ("", "select one", "select", "choose one")


class PlatformAdapter(ABC):
    name: str = ""
    hosts: tuple[str, ...] = ()

    # PageType → structural markers; evaluated in PageType declaration order.
    page_signatures: dict[PageType, list[str]] = {}
    error_selectors: list[str] = []
    completion_phrases: list[str] = []

    apply_selectors: list[str] = []
    apply_texts: tuple[str, ...] = ("apply", "apply now")
    next_selectors: list[str] = []
    next_texts: tuple[str, ...] = ("next", "continue")
    submit_selectors: list[str] = []
    submit_texts: tuple[str, ...] = ("submit",)

    email_selectors: list[str] = ['input[type="email"]']
    password_selectors: list[str] = ['input[type="password"]']
    sign_in_submit_selectors: list[str] = ['button[type="submit"]']
    create_account_submit_selectors: list[str] = []
    consent_selectors: list[str] = []
    upload_reveal_selectors: list[str] = []

    # Structural id → dotted ApplicationProfile path.
    field_attr: str = "data-automation-id"
    field_map: dict[str, str] = {}
    contact_field_ids: list[str] = []
    experience_field_ids: list[str] = []
    safe_fixes: list[SafeFix] = []

    def __init__(self, clock: Clock | None = None, timings: FlowTimings | None = None) -> None:
        self.clock = clock or SYSTEM_CLOCK
        self.timings = timings or FlowTimings()

    def __repr__(self) -> str:
        return f"<{type(self).__name__}>"

    def matches(self, url: str) -> bool:
        host = (urlparse(url).hostname or "").lower()
        return bool(host) and any(h in host for h in self.hosts)

    # -- control resolution ----------------------------------------------------

    @staticmethod
    def _resolve(page: FormAdapter, selectors: list[str], texts: tuple[str, ...],
                 *, text_tags: str = "button", require_enabled: bool = True) -> ControlRef | None:
        for sel in selectors:
            for el in page.query_all(sel):
                if el.is_visible() and not (require_enabled and el.is_disabled()):
                    return el
        for el in page.query_all(text_tags):
            if el.text().strip().lower() in texts and el.is_visible() \
                    and not (require_enabled and el.is_disabled()):
                return el
        return None

    def find_apply(self, page: FormAdapter) -> ControlRef | None:
        return self._resolve(page, self.apply_selectors, self.apply_texts,
                             text_tags="a, button", require_enabled=False)

    def find_next(self, page: FormAdapter) -> ControlRef | None:
        return self._resolve(page, self.next_selectors, self.next_texts)

    def find_submit(self, page: FormAdapter) -> ControlRef | None:
        return self._resolve(page, self.submit_selectors, self.submit_texts)

    def find_sign_in_submit(self, page: FormAdapter) -> ControlRef | None:
        return page.query_first(self.sign_in_submit_selectors)

    def find_create_account_submit(self, page: FormAdapter) -> ControlRef | None:
        return page.query_first(self.create_account_submit_selectors)

    # -- listing -----------------------------------------------------------------

    @abstractmethod
    def extract_job(self, page: FormAdapter) -> JobSnapshot:
        """Title, company, location and description of the listing on screen."""

    # -- structural fills ----------------------------------------------------------

    def structural_value(self, profile: ApplicationProfile, field_id: str):
        """Profile value for one structural id; None leaves the control alone."""
        path = self.field_map.get(field_id)
        return profile.lookup(path) if path is not None else None

    def fill_structural(self, page: FormAdapter, profile: ApplicationProfile,
                        injector: ValueInjector, ids: list[str] | None = None) -> FillReport:
        """Fill controls by structural id; only controls that are still empty are touched."""
        report = FillReport()
        for field_id in ids if ids is not None else list(self.field_map):
            value = self.structural_value(profile, field_id)
            if value is None:
                continue
            control = page.query(f'[{self.field_attr}="{field_id}"]')
            if control is None:
                continue

            if control.tag == "input" and control.input_type in ("checkbox", "radio"):
                if isinstance(value, bool) and control.is_checked() == value:
                    continue
                ok = injector.fill(control, value)
            elif control.tag in ("input", "select", "textarea"):
                # A select counts as empty while its placeholder option (value "") is chosen
                if control.get_value():
                    continue
                ok = injector.fill(control, value)
            else:
                if not _is_blank_dropdown(control):
                    continue
                ok = self.fill_custom_dropdown(page, control, str(value))

            report.attempted += 1
            if ok:
                report.filled += 1
            else:
                report.failures.append((field_id, "not applied"))
        if report.attempted:
            log.info("%s structural fill: %d/%d", self.name, report.filled, report.attempted)
        return report

    def fill_custom_dropdown(self, page: FormAdapter, container: ControlRef, value: str) -> bool:
        """Open a non-native dropdown, wait for its options and click the matching one."""
        return False

    def apply_safe_fixes(self, page: FormAdapter, errors: list[str], injector: ValueInjector) -> int:
        """Apply at most one recovery per error message; returns how many were applied."""
        applied = 0
        for message in errors:
            lowered = message.lower()
            for fix in self.safe_fixes:
                if not any(k in lowered for k in fix.keywords):
                    continue
                target = page.query_first(list(fix.selectors))
                if target is not None and not target.get_value() and injector.set_text(target, fix.value):
                    log.info("Safe fix '%s' → %s", fix.keywords[0], fix.value)
                    applied += 1
                break
        return applied

    def reveal_upload(self, page: FormAdapter) -> bool:
        """Click whatever control makes the platform render its file input."""
        for sel in self.upload_reveal_selectors:
            for el in page.query_all(sel):
                if el.is_visible():
                    el.click()
                    return True
        for btn in page.query_all("button"):
            if "upload" in btn.text().lower() and btn.is_visible():
                btn.click()
                return True
        return False
