"""Visible validation-error detection."""
from __future__ import annotations

from typing import Iterable

from formpilot.log import get_logger
from formpilot.page.base import FormAdapter

log = get_logger(__name__)

GENERIC_ERROR_SELECTORS: list[str] = [
    '[role="alert"]',
    '[aria-invalid="true"] ~ [class*="message"]',
    ".validation-error",
    ".field-error",
    ".error-message",
    '[class*="error-message"]',
    '[class*="errorMessage"]',
    '[data-automation-id*="error"]',
    '[class*="invalid"]',
]


class ValidationScanner:
    def __init__(self, extra_selectors: Iterable[str] = ()) -> None:
        self.selectors: list[str] = []
        for sel in [*GENERIC_ERROR_SELECTORS, *extra_selectors]:
            if sel not in self.selectors:
                self.selectors.append(sel)

    def _visible_messages(self, page: FormAdapter, *, first_only: bool = False) -> list[str]:
        messages: list[str] = []
        for sel in self.selectors:
            for marker in page.query_all(sel):
                text = marker.text().strip()
                if not text or not marker.is_visible():
                    continue
                if text not in messages:
                    messages.append(text)
                    if first_only:
                        return messages
        return messages

    def has_errors(self, page: FormAdapter) -> bool:
        return bool(self._visible_messages(page, first_only=True))

    def get_errors(self, page: FormAdapter) -> list[str]:
        """Visible error texts, de-duplicated, first-seen order."""
        errors = self._visible_messages(page)
        if errors:
            log.info("%d validation error(s): %s", len(errors), "; ".join(errors)[:200])
        return errors
