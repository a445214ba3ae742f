"""
Browser session runner.

Opens the job URL in Chromium through Playwright, builds the flow context and
steps the controller until it stops, waits for the user, or asks for a
decision it cannot take alone (attaching documents, confirming a submit).
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import Callable

from formpilot.attachments import DocumentAttacher, load_document
from formpilot.config import STORE_PATH, load_flow_config
from formpilot.flow import ApplicationFlowController, FlowContext, TailorHook
from formpilot.log import get_logger
from formpilot.models import (
    TRANSITION_ACTIONS,
    ApplicationProfile,
    FilePayload,
    StepAction,
    StepResult,
)
from formpilot.retry import retry
from formpilot.store import JsonFileStore, KeyValueStore

log = get_logger(__name__)

_USER_AGENT = ("Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
               "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36")

ConfirmCallback = Callable[[StepResult], bool]


class FlowError(Exception):
    """A session could not be run."""


class UnsupportedPlatformError(FlowError):
    def __init__(self, url: str) -> None:
        super().__init__(f"No supported application platform at {url}")
        self.url = url


def _attach_documents(
    controller: ApplicationFlowController,
    cv: FilePayload | None,
    cover: FilePayload | None,
    cover_text: str,
) -> bool:
    if cv is None:
        log.warning("The experience step needs a CV; pass --cv to attach one")
        return False
    ctx = controller.ctx
    attacher = DocumentAttacher(ctx.page, ctx.classifier, ctx.injector, ctx.platform, ctx.clock,
                                ctx.config.timings)
    attached = attacher.monitor(cv, cover)
    if attached.cover_attached:
        controller.mark_cover_attached()
    if cover_text:
        attacher.fill_cover_letter_text(cover_text)
    if not attached.cv_attached:
        log.warning("Could not find a CV upload on this page")
        return False
    controller.mark_cv_attached()
    return True


def drive(
    controller: ApplicationFlowController,
    *,
    cv: FilePayload | None = None,
    cover: FilePayload | None = None,
    cover_text: str = "",
    confirm: ConfirmCallback | None = None,
    max_steps: int = 25,
    change_timeout_ms: int | None = None,
    manual_wait_ms: int | None = None,
) -> list[StepResult]:
    """Step the controller until it halts; returns every StepResult in order."""
    page = controller.ctx.page
    timings = controller.config.timings
    change_timeout_ms = timings.page_change_timeout_ms if change_timeout_ms is None else change_timeout_ms
    manual_wait_ms = timings.manual_wait_ms if manual_wait_ms is None else manual_wait_ms
    result = controller.start()
    results = [result]

    while len(results) < max_steps:
        action = result.action
        if action in (StepAction.AWAITING_CV_ATTACHMENT, StepAction.AWAITING_CV_TAILORING):
            if not _attach_documents(controller, cv, cover, cover_text):
                break
        elif action is StepAction.AWAITING_SUBMIT_CONFIRMATION:
            if confirm is None or not confirm(result):
                log.info("Submission not confirmed; leaving the application on the review page")
                controller.stop()
                break
            result = controller.confirm_submit()
            results.append(result)
            if not result.success:
                break
            page.wait_for_change(change_timeout_ms)
        elif action in TRANSITION_ACTIONS:
            page.wait_for_change(change_timeout_ms)
        elif controller.state.active:
            # Waiting on the user: manual sign-in, fixing errors, clicking Next.
            log.info("Waiting for the page to change (%s)", action.value)
            if not page.wait_for_change(manual_wait_ms):
                break
        else:
            break
        result = controller.handle_current_page()
        results.append(result)

    log.info("Session ended after %d step(s): %s", len(results), results[-1].action.value)
    return results


@retry(max_attempts=3, base_delay=2.0)
def _goto(page, url: str) -> None:
    page.goto(url, wait_until="domcontentloaded", timeout=25_000)


def run_application(
    url: str,
    profile: ApplicationProfile,
    *,
    cv_path: str | Path | None = None,
    cover_path: str | Path | None = None,
    cover_text: str = "",
    headless: bool = False,
    auto_advance: bool | None = None,
    auto_submit: bool | None = None,
    max_steps: int = 25,
    confirm: ConfirmCallback | None = None,
    store: KeyValueStore | None = None,
    tailor: TailorHook | None = None,
) -> list[StepResult]:
    cv = load_document(cv_path) if cv_path else None
    cover = load_document(cover_path) if cover_path else None
    store = store if store is not None else JsonFileStore(STORE_PATH)
    config = load_flow_config(store, auto_advance=auto_advance, auto_submit=auto_submit)

    try:
        _pw = os.environ.get("PLAYWRIGHT_BROWSERS_PATH", "")
        if _pw and not Path(_pw).exists():
            os.environ.pop("PLAYWRIGHT_BROWSERS_PATH", None)
        from playwright.sync_api import sync_playwright

        from formpilot.page.playwright_page import PlaywrightFormAdapter
    except ImportError as exc:
        raise FlowError("Playwright not installed (pip install playwright && playwright install chromium)") from exc

    with sync_playwright() as p:
        browser = p.chromium.launch(headless=headless)
        try:
            context = browser.new_context(viewport={"width": 1280, "height": 900}, user_agent=_USER_AGENT)
            page = context.new_page()
            page.set_default_timeout(20_000)
            _goto(page, url)

            ctx = FlowContext.create(PlaywrightFormAdapter(page), profile,
                                     config=config, store=store, tailor=tailor)
            if ctx.platform is None:
                raise UnsupportedPlatformError(url)
            log.info("Applying on %s: %s", ctx.platform.name, url)
            controller = ApplicationFlowController(ctx)
            return drive(controller, cv=cv, cover=cover, cover_text=cover_text,
                         confirm=confirm, max_steps=max_steps)
        finally:
            browser.close()
