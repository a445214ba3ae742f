"""
Form adapter capability interface.

Everything above this layer (classifiers, injector, flow controller) talks to
the host page only through ``FormAdapter`` and ``ControlRef``. Selectors are
plain CSS so any adapter can evaluate them.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from urllib.parse import urlparse

from formpilot.models import FilePayload


class ControlRef(ABC):
    """Handle to one element on the current page. Never outlives a navigation."""

    # -- structure ---------------------------------------------------------

    @property
    @abstractmethod
    def tag(self) -> str:
        """Lower-case tag name."""

    @property
    @abstractmethod
    def input_type(self) -> str:
        """Lower-case ``type`` of an input-like control, '' otherwise."""

    @abstractmethod
    def attr(self, name: str) -> str:
        """Attribute value, '' when absent."""

    @abstractmethod
    def text(self) -> str:
        """Text content with whitespace collapsed."""

    @abstractmethod
    def is_visible(self) -> bool:
        ...

    @abstractmethod
    def is_disabled(self) -> bool:
        ...

    @abstractmethod
    def label_texts(self) -> list[str]:
        """Texts of labels tied to this control by ``for=``/``labels`` or by containment."""

    @abstractmethod
    def ancestor_texts(self, levels: int = 3, limit: int = 100) -> list[str]:
        """Text of up to ``levels`` ancestors, each cut to ``limit`` characters."""

    @abstractmethod
    def query_all(self, selector: str) -> list[ControlRef]:
        ...

    @abstractmethod
    def closest(self, selector: str) -> ControlRef | None:
        ...

    @abstractmethod
    def parent(self) -> ControlRef | None:
        ...

    # -- state ---------------------------------------------------------------

    @abstractmethod
    def get_value(self) -> str:
        ...

    @abstractmethod
    def set_value_native(self, value: str) -> bool:
        """Write through the element prototype's own ``value`` setter.

        Returns False when no such setter is available so the caller can fall
        back to a direct write.
        """

    @abstractmethod
    def set_value_direct(self, value: str) -> None:
        ...

    @abstractmethod
    def options(self) -> list[tuple[str, str]]:
        """``(value, visible text)`` pairs of a select's options."""

    @abstractmethod
    def select_value(self, value: str) -> None:
        ...

    @abstractmethod
    def is_checked(self) -> bool:
        ...

    @abstractmethod
    def set_checked(self, checked: bool) -> None:
        """Set the checked property without firing any event."""

    @abstractmethod
    def set_files(self, files: list[FilePayload]) -> None:
        ...

    @abstractmethod
    def file_count(self) -> int:
        ...

    # -- interaction -------------------------------------------------------------

    @abstractmethod
    def dispatch(self, event: str) -> None:
        """Dispatch a bubbling synthetic DOM event of the given type."""

    @abstractmethod
    def click(self) -> None:
        ...

    # -- helpers -------------------------------------------------------------

    def query(self, selector: str) -> ControlRef | None:
        found = self.query_all(selector)
        return found[0] if found else None


class FormAdapter(ABC):
    """Page-level capabilities."""

    @property
    @abstractmethod
    def url(self) -> str:
        ...

    @property
    def hostname(self) -> str:
        return (urlparse(self.url).hostname or "").lower()

    @abstractmethod
    def query_all(self, selector: str) -> list[ControlRef]:
        ...

    def query(self, selector: str) -> ControlRef | None:
        found = self.query_all(selector)
        return found[0] if found else None

    def query_first(self, selectors: list[str]) -> ControlRef | None:
        """First element matching any selector, in selector order."""
        for sel in selectors:
            el = self.query(sel)
            if el is not None:
                return el
        return None

    @abstractmethod
    def body_text(self) -> str:
        ...

    @abstractmethod
    def wait_for_change(self, timeout_ms: int) -> bool:
        """Block until the DOM mutates or navigates; False on timeout."""
