"""
Page signature classification.

Structural markers first: the first PageType, in declaration order, with at
least half (rounded up) of its markers present wins. Then URL path hints, then
phrases in the visible body text. A host that no platform recognises yields
None before any of that is attempted.
"""
from __future__ import annotations

import math
from typing import Any
from urllib.parse import urlparse

from formpilot.log import get_logger
from formpilot.models import PageType
from formpilot.page.base import FormAdapter
from formpilot.platforms.base import PlatformAdapter
from formpilot.validation import ValidationScanner

log = get_logger(__name__)

_SIGN_IN_PATHS = ("/signin", "/login")
_APPLICATION_PATHS = ("/apply", "/application")
_LISTING_PATHS = ("/job/", "/jobs/")

# Body-text phrases checked on application paths, in order.
_TEXT_HINTS: list[tuple[tuple[str, ...], PageType]] = [
    (("my experience", "upload"), PageType.EXPERIENCE),
    (("contact", "address"), PageType.CONTACT_INFO),
    (("questionnaire", "questions"), PageType.QUESTIONNAIRE),
    (("review", "submit"), PageType.REVIEW),
]


class PageSignatureClassifier:
    def __init__(self, platform: PlatformAdapter | None,
                 scanner: ValidationScanner | None = None) -> None:
        self.platform = platform
        extra = platform.error_selectors if platform is not None else []
        self.scanner = scanner or ValidationScanner(extra)

    def is_recognized(self, page: FormAdapter) -> bool:
        return self.platform is not None and self.platform.matches(page.url)

    def signature_matches(self, page: FormAdapter) -> dict[PageType, int]:
        """How many markers of each page type are present."""
        counts: dict[PageType, int] = {}
        if self.platform is None:
            return counts
        for page_type in PageType:
            selectors = self.platform.page_signatures.get(page_type)
            if selectors:
                counts[page_type] = sum(1 for sel in selectors if page.query(sel) is not None)
        return counts

    def detect(self, page: FormAdapter) -> PageType | None:
        if not self.is_recognized(page):
            return None

        for page_type, present in self.signature_matches(page).items():
            needed = math.ceil(len(self.platform.page_signatures[page_type]) / 2)
            if present >= needed:
                return page_type

        path = urlparse(page.url).path.lower()
        if any(p in path for p in _SIGN_IN_PATHS):
            return PageType.SIGN_IN
        if any(p in path for p in _APPLICATION_PATHS):
            text = page.body_text().lower()
            for phrases, page_type in _TEXT_HINTS:
                if any(phrase in text for phrase in phrases):
                    return page_type
            return PageType.UNKNOWN
        if any(p in path for p in _LISTING_PATHS):
            return PageType.JOB_LISTING
        return PageType.UNKNOWN

    def is_complete(self, page: FormAdapter) -> bool:
        if self.platform is None:
            return False
        text = page.body_text().lower()
        return any(phrase in text for phrase in self.platform.completion_phrases)

    def has_errors(self, page: FormAdapter) -> bool:
        return self.scanner.has_errors(page)

    def get_errors(self, page: FormAdapter) -> list[str]:
        return self.scanner.get_errors(page)

    def page_info(self, page: FormAdapter) -> dict[str, Any]:
        page_type = self.detect(page)
        recognized = self.is_recognized(page)
        return {
            "platform": self.platform.name if recognized else None,
            "page_type": page_type.value if page_type else None,
            "url": page.url,
            "has_apply": recognized and self.platform.find_apply(page) is not None,
            "has_next": recognized and self.platform.find_next(page) is not None,
            "has_submit": recognized and self.platform.find_submit(page) is not None,
            "errors": self.get_errors(page),
            "complete": self.is_complete(page),
        }
