"""
Playwright-backed form adapter (the default in a live browser session).

Controls are ``Locator`` objects pinned to one match (``page.locator(sel).nth(i)``),
so every read re-resolves against the live DOM instead of holding a handle
that goes stale on re-render.

Values are written through the ``HTMLInputElement``/``HTMLTextAreaElement``
prototype setter rather than the instance property, because React-style
frameworks install their own setter on the instance and only notice changes
made through the native one.
"""
from __future__ import annotations

from playwright.sync_api import Error as PlaywrightError, Locator, Page

from formpilot.log import get_logger
from formpilot.models import FilePayload
from formpilot.page.base import ControlRef, FormAdapter

log = get_logger(__name__)

# Per-call cap; a control that vanished should fail fast, not after 30 s.
ACTION_TIMEOUT_MS = 2000

_NATIVE_SETTER_JS = """
(el, value) => {
  const proto = el.tagName === 'TEXTAREA'
    ? window.HTMLTextAreaElement.prototype
    : window.HTMLInputElement.prototype;
  const desc = Object.getOwnPropertyDescriptor(proto, 'value');
  if (!desc || !desc.set) return false;
  desc.set.call(el, value);
  return true;
}
"""

_LABELS_JS = """
el => {
  const out = [];
  if (el.labels) for (const l of el.labels) out.push(l.textContent || '');
  if (el.id) {
    const l = document.querySelector(`label[for="${CSS.escape(el.id)}"]`);
    if (l) out.push(l.textContent || '');
  }
  const wrap = el.closest('label');
  if (wrap) out.push(wrap.textContent || '');
  return out;
}
"""

_ANCESTORS_JS = """
(el, [levels, limit]) => {
  const out = [];
  let p = el.parentElement;
  for (let i = 0; i < levels && p; i++) {
    out.push((p.textContent || '').substring(0, limit));
    p = p.parentElement;
  }
  return out;
}
"""

_WAIT_FOR_MUTATION_JS = """
timeout => new Promise(resolve => {
  const obs = new MutationObserver(() => { obs.disconnect(); resolve(true); });
  obs.observe(document.body, { childList: true, subtree: true, attributes: true });
  setTimeout(() => { obs.disconnect(); resolve(false); }, timeout);
})
"""

_CLOSEST_STEPS_JS = """
(el, s) => {
  let steps = 0;
  for (let p = el; p; p = p.parentElement, steps++) {
    if (p.matches(s)) return steps;
  }
  return -1;
}
"""


def _squash(text: str | None) -> str:
    return " ".join((text or "").split())


def _each(locator: Locator) -> list[ControlRef]:
    return [PlaywrightControl(locator.nth(i)) for i in range(locator.count())]


class PlaywrightControl(ControlRef):
    def __init__(self, locator: Locator) -> None:
        self.locator = locator

    def __repr__(self) -> str:
        return f"PlaywrightControl({self.locator!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PlaywrightControl):
            return False
        return self.locator.and_(other.locator).count() > 0

    def _eval(self, script: str, arg=None):
        return self.locator.evaluate(script, arg, timeout=ACTION_TIMEOUT_MS)

    @property
    def tag(self) -> str:
        return self._eval("el => el.tagName.toLowerCase()")

    @property
    def input_type(self) -> str:
        if self.tag not in ("input", "textarea", "select", "button"):
            return ""
        return self._eval("el => (el.type || '').toLowerCase()")

    def attr(self, name: str) -> str:
        return self.locator.get_attribute(name, timeout=ACTION_TIMEOUT_MS) or ""

    def text(self) -> str:
        return _squash(self.locator.text_content(timeout=ACTION_TIMEOUT_MS))

    def is_visible(self) -> bool:
        try:
            return self.locator.is_visible(timeout=ACTION_TIMEOUT_MS)
        except PlaywrightError:
            return False

    def is_disabled(self) -> bool:
        try:
            return self.locator.is_disabled(timeout=ACTION_TIMEOUT_MS)
        except PlaywrightError:
            return self.attr("aria-disabled") == "true"

    def label_texts(self) -> list[str]:
        return [_squash(t) for t in self._eval(_LABELS_JS)]

    def ancestor_texts(self, levels: int = 3, limit: int = 100) -> list[str]:
        return [_squash(t) for t in self._eval(_ANCESTORS_JS, [levels, limit])]

    def query_all(self, selector: str) -> list[ControlRef]:
        return _each(self.locator.locator(selector))

    def closest(self, selector: str) -> ControlRef | None:
        steps = self._eval(_CLOSEST_STEPS_JS, selector)
        if steps < 0:
            return None
        # ancestor-or-self comes back root first, so the element itself is last.
        chain = self.locator.locator("xpath=ancestor-or-self::*")
        return PlaywrightControl(chain.nth(chain.count() - 1 - steps))

    def parent(self) -> ControlRef | None:
        up = self.locator.locator("xpath=..")
        return PlaywrightControl(up) if up.count() else None

    def get_value(self) -> str:
        return self._eval("el => el.value == null ? '' : String(el.value)")

    def set_value_native(self, value: str) -> bool:
        return bool(self._eval(_NATIVE_SETTER_JS, value))

    def set_value_direct(self, value: str) -> None:
        self._eval("(el, v) => { el.value = v; }", value)

    def options(self) -> list[tuple[str, str]]:
        pairs = self._eval("el => Array.from(el.options || []).map(o => [o.value, o.text])")
        return [(v, _squash(t)) for v, t in pairs]

    def select_value(self, value: str) -> None:
        self._eval("(el, v) => { el.value = v; }", value)

    def is_checked(self) -> bool:
        return bool(self._eval("el => !!el.checked"))

    def set_checked(self, checked: bool) -> None:
        self._eval("(el, c) => { el.checked = c; }", checked)

    def set_files(self, files: list[FilePayload]) -> None:
        self.locator.set_input_files(
            [{"name": f.name, "mimeType": f.mime_type, "buffer": f.buffer} for f in files],
            timeout=ACTION_TIMEOUT_MS,
        )

    def file_count(self) -> int:
        return int(self._eval("el => el.files ? el.files.length : 0"))

    def dispatch(self, event: str) -> None:
        # A plain Event: a synthetic MouseEvent "click" would toggle a checkbox again.
        self._eval("(el, t) => el.dispatchEvent(new Event(t, { bubbles: true }))", event)

    def click(self) -> None:
        self.locator.click(timeout=ACTION_TIMEOUT_MS)


class PlaywrightFormAdapter(FormAdapter):
    def __init__(self, page: Page) -> None:
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    def query_all(self, selector: str) -> list[ControlRef]:
        return _each(self.page.locator(selector))

    def body_text(self) -> str:
        return _squash(self.page.evaluate("() => document.body ? document.body.textContent : ''"))

    def wait_for_change(self, timeout_ms: int) -> bool:
        try:
            changed = bool(self.page.evaluate(_WAIT_FOR_MUTATION_JS, timeout_ms))
        except PlaywrightError as exc:
            # The execution context is destroyed when the page navigates.
            log.debug("Page changed during wait: %s", str(exc).split("\n")[0])
            changed = True
        if changed:
            try:
                self.page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
            except PlaywrightError:
                pass
        return changed
