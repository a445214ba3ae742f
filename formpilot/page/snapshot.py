"""
Offline form adapter over a saved HTML page.

Used for dry runs (``run_flow.py inspect``) and for tests: there is no layout
engine, so "rendered" means not hidden by the ``hidden`` attribute,
``type=hidden`` or an inline ``display:none``/``visibility:hidden`` on the
element or one of its ancestors. Dispatched events and clicks are recorded so a
dry run can report what would have happened.
"""
from __future__ import annotations

import re
from pathlib import Path

from bs4 import BeautifulSoup, Tag

from formpilot.log import get_logger
from formpilot.models import FilePayload
from formpilot.page.base import ControlRef, FormAdapter

log = get_logger(__name__)

_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.I)


def _squash(text: str) -> str:
    return " ".join((text or "").split())


def _option_value(opt: Tag) -> str:
    if opt.has_attr("value"):
        return opt["value"]
    return _squash(opt.get_text(" "))


class SnapshotControl(ControlRef):
    def __init__(self, page: SnapshotFormAdapter, node: Tag) -> None:
        self.page = page
        self.node = node

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SnapshotControl) and other.node is self.node

    def __hash__(self) -> int:
        return id(self.node)

    def __repr__(self) -> str:
        ident = self.node.get("id") or self.node.get("name") or self.node.get("data-automation-id") or ""
        return f"<{self.tag} {ident}>".replace(" >", ">")

    @property
    def tag(self) -> str:
        return (self.node.name or "").lower()

    @property
    def input_type(self) -> str:
        if self.tag == "input":
            return (self.node.get("type") or "text").lower()
        if self.tag == "textarea":
            return "textarea"
        if self.tag == "select":
            return "select-multiple" if self.node.has_attr("multiple") else "select-one"
        if self.tag == "button":
            return (self.node.get("type") or "submit").lower()
        return ""

    def attr(self, name: str) -> str:
        value = self.node.get(name)
        if value is None:
            return ""
        if isinstance(value, list):
            return " ".join(value)
        return value

    def text(self) -> str:
        return _squash(self.node.get_text(" "))

    def is_visible(self) -> bool:
        if self.tag == "input" and self.input_type == "hidden":
            return False
        node: Tag | None = self.node
        while isinstance(node, Tag) and node.name != "[document]":
            if node.has_attr("hidden"):
                return False
            if _HIDDEN_STYLE.search(node.get("style") or ""):
                return False
            node = node.parent
        return True

    def is_disabled(self) -> bool:
        return self.node.has_attr("disabled") or self.attr("aria-disabled") == "true"

    def label_texts(self) -> list[str]:
        out: list[str] = []
        el_id = self.node.get("id")
        if el_id:
            for label in self.page.soup.find_all("label", attrs={"for": el_id}):
                out.append(_squash(label.get_text(" ")))
        wrap = self.node.find_parent("label")
        if wrap is not None:
            out.append(_squash(wrap.get_text(" ")))
        return out

    def ancestor_texts(self, levels: int = 3, limit: int = 100) -> list[str]:
        out: list[str] = []
        for parent in self.node.parents:
            if len(out) >= levels or parent.name == "[document]":
                break
            out.append(_squash(parent.get_text(" "))[:limit])
        return out

    def query_all(self, selector: str) -> list[ControlRef]:
        return [SnapshotControl(self.page, n) for n in self.node.select(selector)]

    def closest(self, selector: str) -> ControlRef | None:
        found = self.node.css.closest(selector)
        return SnapshotControl(self.page, found) if found is not None else None

    def parent(self) -> ControlRef | None:
        parent = self.node.parent
        if parent is None or parent.name == "[document]":
            return None
        return SnapshotControl(self.page, parent)

    # -- state ---------------------------------------------------------------

    def get_value(self) -> str:
        if self.tag == "textarea":
            return self.node.get_text()
        if self.tag == "select":
            options = self.node.find_all("option")
            for opt in options:
                if opt.has_attr("selected"):
                    return _option_value(opt)
            return _option_value(options[0]) if options else ""
        return self.node.get("value", "")

    def _write(self, value: str) -> None:
        if self.tag == "textarea":
            self.node.string = value
        elif self.tag == "select":
            self.select_value(value)
        else:
            self.node["value"] = value

    def set_value_native(self, value: str) -> bool:
        if not self.page.native_setter:
            return False
        self._write(value)
        return True

    def set_value_direct(self, value: str) -> None:
        self._write(value)

    def options(self) -> list[tuple[str, str]]:
        return [(_option_value(o), _squash(o.get_text(" "))) for o in self.node.find_all("option")]

    def select_value(self, value: str) -> None:
        for opt in self.node.find_all("option"):
            if _option_value(opt) == value:
                opt["selected"] = "selected"
            elif opt.has_attr("selected"):
                del opt["selected"]

    def is_checked(self) -> bool:
        return self.node.has_attr("checked")

    def set_checked(self, checked: bool) -> None:
        if checked:
            self.node["checked"] = "checked"
        elif self.node.has_attr("checked"):
            del self.node["checked"]

    def set_files(self, files: list[FilePayload]) -> None:
        self.page.files[id(self.node)] = list(files)

    def file_count(self) -> int:
        return len(self.page.files.get(id(self.node), []))

    @property
    def files(self) -> list[FilePayload]:
        return list(self.page.files.get(id(self.node), []))

    # -- interaction -------------------------------------------------------------

    def dispatch(self, event: str) -> None:
        self.page.events.append((self.node, event))

    def click(self) -> None:
        self.page.clicks.append(self.node)
        if self.tag == "input" and self.input_type == "checkbox":
            self.set_checked(not self.is_checked())
        elif self.tag == "input" and self.input_type == "radio":
            name = self.node.get("name")
            if name:
                for other in self.page.soup.find_all("input", attrs={"type": "radio", "name": name}):
                    if other.has_attr("checked"):
                        del other["checked"]
            self.set_checked(True)

    @property
    def events(self) -> list[str]:
        return [e for node, e in self.page.events if node is self.node]

    @property
    def was_clicked(self) -> bool:
        return any(node is self.node for node in self.page.clicks)


class SnapshotFormAdapter(FormAdapter):
    def __init__(self, html: str, url: str = "", *, native_setter: bool = True) -> None:
        self.soup = BeautifulSoup(html or "", "html.parser")
        self._url = url
        self.native_setter = native_setter
        self.events: list[tuple[Tag, str]] = []
        self.clicks: list[Tag] = []
        self.files: dict[int, list[FilePayload]] = {}

    @classmethod
    def from_file(cls, path: str | Path, url: str = "") -> SnapshotFormAdapter:
        p = Path(path)
        html = p.read_text(encoding="utf-8", errors="ignore")
        log.debug("Loaded snapshot %s (%d bytes)", p.name, len(html))
        return cls(html, url or p.resolve().as_uri())

    @property
    def url(self) -> str:
        return self._url

    def navigate(self, html: str, url: str | None = None) -> None:
        """Replace the document, as a navigation would; earlier ControlRefs go stale."""
        self.soup = BeautifulSoup(html or "", "html.parser")
        if url is not None:
            self._url = url
        self.files.clear()

    def query_all(self, selector: str) -> list[ControlRef]:
        return [SnapshotControl(self, n) for n in self.soup.select(selector)]

    def body_text(self) -> str:
        root = self.soup.body or self.soup
        return _squash(root.get_text(" "))

    def wait_for_change(self, timeout_ms: int) -> bool:
        return False

    def clicked(self, selector: str) -> bool:
        return any(node is c for node in self.soup.select(selector) for c in self.clicks)
