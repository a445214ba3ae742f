"""
Put tailored documents into the page's file inputs.

The CV goes to the first CV-like input only and the cover letter to the first
cover-letter-like input only. Inputs that the platform renders lazily are
revealed through its upload control, and ``monitor`` retries for a bounded
time for inputs that appear after a re-render. Nothing here touches the flow
state; callers report success through the controller's ``mark_*`` operations.
"""
from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from formpilot.config import FlowTimings
from formpilot.fields import FieldSignatureClassifier
from formpilot.injector import ValueInjector
from formpilot.log import get_logger
from formpilot.models import FilePayload
from formpilot.page.base import ControlRef, FormAdapter
from formpilot.platforms.base import PlatformAdapter
from formpilot.retry import SYSTEM_CLOCK, Clock, poll_until

log = get_logger(__name__)

STANDARD_GREETING = "Dear Hiring Manager,"
_GREETINGS = [
    re.compile(r"Dear\s+Hiring\s+Committee,?", re.I),
    re.compile(r"Dear\s+Sir/Madam,?", re.I),
    re.compile(r"To\s+Whom\s+It\s+May\s+Concern,?", re.I),
]


def normalize_greeting(text: str) -> str:
    for pattern in _GREETINGS:
        text = pattern.sub(STANDARD_GREETING, text)
    return text


def load_document(path: str | Path) -> FilePayload:
    p = Path(path)
    mime, _ = mimetypes.guess_type(p.name)
    return FilePayload(name=p.name, mime_type=mime or "application/octet-stream", buffer=p.read_bytes())


@dataclass
class AttachResult:
    cv_attached: bool = False
    cover_attached: bool = False


class DocumentAttacher:
    def __init__(
        self,
        page: FormAdapter,
        classifier: FieldSignatureClassifier,
        injector: ValueInjector,
        platform: PlatformAdapter | None = None,
        clock: Clock | None = None,
        timings: FlowTimings | None = None,
    ) -> None:
        self.page = page
        self.classifier = classifier
        self.injector = injector
        self.platform = platform
        self.clock = clock or SYSTEM_CLOCK
        self.timings = timings or FlowTimings()

    def _locate(self, finder: Callable[[FormAdapter], ControlRef | None]) -> ControlRef | None:
        control = finder(self.page)
        if control is None and self.platform is not None and self.platform.reveal_upload(self.page):
            self.clock.sleep(self.timings.short_ms)
            control = finder(self.page)
        return control

    def attach_cv(self, cv: FilePayload) -> bool:
        target = self._locate(self.classifier.find_resume_field)
        if target is None:
            return False
        cover_target = self.classifier.find_cover_letter_field(self.page)
        if cover_target is not None and target == cover_target:
            log.debug("Only file input is the cover letter's; not putting the CV there")
            return False
        ok = self.injector.attach_file(target, cv)
        if ok:
            log.info("Attached CV %s (%d bytes)", cv.name, cv.size)
        return ok

    def attach_cover(self, cover: FilePayload) -> bool:
        target = self._locate(self.classifier.find_cover_letter_field)
        if target is None:
            return False
        ok = self.injector.attach_file(target, cover)
        if ok:
            log.info("Attached cover letter %s (%d bytes)", cover.name, cover.size)
        return ok

    def attach(self, cv: FilePayload | None = None, cover: FilePayload | None = None) -> AttachResult:
        result = AttachResult()
        if cv is not None:
            result.cv_attached = self.attach_cv(cv)
        if cover is not None:
            result.cover_attached = self.attach_cover(cover)
        return result

    def monitor(
        self,
        cv: FilePayload | None = None,
        cover: FilePayload | None = None,
        *,
        timeout_ms: int | None = None,
        interval_ms: int | None = None,
    ) -> AttachResult:
        """Keep trying until every given document is attached or the timeout runs out."""
        timeout_ms = self.timings.attach_timeout_ms if timeout_ms is None else timeout_ms
        interval_ms = self.timings.attach_interval_ms if interval_ms is None else interval_ms
        result = AttachResult()
        if cv is None and cover is None:
            return result

        def attempt() -> bool:
            if cv is not None and not result.cv_attached:
                result.cv_attached = self.attach_cv(cv)
            if cover is not None and not result.cover_attached:
                result.cover_attached = self.attach_cover(cover)
            return (cv is None or result.cv_attached) and (cover is None or result.cover_attached)

        if not poll_until(attempt, timeout_ms=timeout_ms, interval_ms=interval_ms, clock=self.clock):
            log.warning("Gave up attaching after %d ms (cv=%s, cover=%s)",
                        timeout_ms, result.cv_attached, result.cover_attached)
        return result

    def fill_cover_letter_text(self, text: str) -> bool:
        if not text:
            return False
        formatted = normalize_greeting(text)
        for textarea in self.page.query_all("textarea"):
            if "cover" in self.classifier.build_context(textarea):
                ok = self.injector.set_text(textarea, formatted)
                if ok:
                    log.info("Filled cover letter textarea (%d chars)", len(formatted))
                return ok
        return False
