"""
Value injection that reactive form frameworks can observe.

Text goes through the element prototype's own value setter and is followed by
the focus/input/change/key/blur sequence. Every public method reports success
from the control's final observed state and never raises.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from formpilot.log import get_logger
from formpilot.models import FilePayload
from formpilot.page.base import ControlRef

log = get_logger(__name__)

_AFFIRMATIVE = ("yes", "true")
_TRUTHY = ("true", "yes", "y", "1", "on", "checked")
_FALSY = ("false", "no", "n", "0", "off", "unchecked")

# Requested value → longer spellings tried during the substring pass.
OPTION_ALIASES: dict[str, tuple[str, ...]] = {
    "usa": ("united states",),
    "u.s.": ("united states",),
    "u.s.a.": ("united states",),
    "america": ("united states",),
    "uk": ("united kingdom",),
    "u.k.": ("united kingdom",),
    "gb": ("united kingdom", "great britain"),
    "uae": ("united arab emirates",),
    "nyc": ("new york",),
    "sf": ("san francisco",),
}


def match_option(options: list[tuple[str, str]], value: str) -> int | None:
    """Index of the option to pick for ``value``, or None.

    Priority: exact value, exact text, substring in either direction (also
    through ``OPTION_ALIASES``), then an affirmative match for "yes"/"true".
    """
    want = (value or "").strip().lower()
    lowered = [(v.strip().lower(), t.strip().lower()) for v, t in options]

    for i, (v, _) in enumerate(lowered):
        if v == want:
            return i
    for i, (_, t) in enumerate(lowered):
        if t == want:
            return i

    if want:
        for candidate in (want, *OPTION_ALIASES.get(want, ())):
            for i, (_, t) in enumerate(lowered):
                if t and (candidate in t or t in candidate):
                    return i

    if want in _AFFIRMATIVE:
        for i, (v, t) in enumerate(lowered):
            if "yes" in t or v in ("yes", "1", "true"):
                return i
    return None


def _as_checked(value: Any) -> bool | None:
    """Checkbox state for a bool-like value; None for anything else (an email, a name)."""
    if isinstance(value, bool):
        return value
    word = str(value).strip().lower()
    if word in _TRUTHY:
        return True
    if word in _FALSY:
        return False
    return None


@dataclass
class InjectionStats:
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0


class ValueInjector:
    def __init__(self) -> None:
        self.stats = InjectionStats()

    # -- free text ---------------------------------------------------------------

    def _fire_text_events(self, control: ControlRef, value: str) -> None:
        control.dispatch("focus")
        control.dispatch("input")
        control.dispatch("change")
        if value:
            control.dispatch("keydown")
            control.dispatch("keyup")
        control.dispatch("blur")

    def set_text(self, control: ControlRef, value: str) -> bool:
        try:
            if not control.set_value_native(value):
                control.set_value_direct(value)
            self._fire_text_events(control, value)
            return control.get_value() == value
        except Exception as exc:
            log.debug("set_text failed on %r: %s", control, exc)
            return self._last_resort(control, value)

    def _last_resort(self, control: ControlRef, value: str) -> bool:
        try:
            control.set_value_direct(value)
            return control.get_value() == value
        except Exception as exc:
            log.debug("Direct write failed on %r: %s", control, exc)
            return False

    # -- single choice -----------------------------------------------------------

    def set_select(self, control: ControlRef, value: str) -> bool:
        try:
            options = control.options()
            index = match_option(options, value)
            if index is None:
                log.debug("No option of %r matches %r", control, value)
                return False
            chosen = options[index][0]
            control.select_value(chosen)
            control.dispatch("change")
            return control.get_value() == chosen
        except Exception as exc:
            log.debug("set_select failed on %r: %s", control, exc)
            return self._last_resort(control, value)

    # -- boolean -------------------------------------------------------------------

    def set_checked(self, control: ControlRef, checked: bool) -> bool:
        try:
            if control.is_checked() != checked:
                control.set_checked(checked)
                control.dispatch("change")
                control.dispatch("click")
            return control.is_checked() == checked
        except Exception as exc:
            log.debug("set_checked failed on %r: %s", control, exc)
            try:
                control.set_checked(checked)
                return control.is_checked() == checked
            except Exception:
                return False

    def choose_radio(self, control: ControlRef, value: str) -> bool:
        """Check the radio of ``control``'s group whose value or label matches ``value``."""
        try:
            group = [control]
            name = control.attr("name")
            root = control.closest('fieldset, [role="radiogroup"], form') or control.parent()
            if name and root is not None:
                group = [r for r in root.query_all('input[type="radio"]') if r.attr("name") == name] or group
            options = [(r.attr("value"), " ".join(r.label_texts()) or r.attr("value")) for r in group]
            index = match_option(options, value)
            if index is None:
                return False
            return self.set_checked(group[index], True)
        except Exception as exc:
            log.debug("choose_radio failed on %r: %s", control, exc)
            return False

    # -- files -----------------------------------------------------------------------

    def attach_file(self, control: ControlRef, payload: FilePayload | Iterable[FilePayload]) -> bool:
        files = [payload] if isinstance(payload, FilePayload) else list(payload or [])
        if not files:
            return False
        try:
            control.set_files(files)
            control.dispatch("change")
            control.dispatch("input")
            return control.file_count() > 0
        except Exception as exc:
            log.warning("Could not attach %s: %s", files[0].name, exc)
            try:
                return control.file_count() > 0
            except Exception:
                return False

    # -- dispatch ----------------------------------------------------------------

    def fill(self, control: ControlRef, value: Any) -> bool:
        """Write ``value`` with the routine that fits the control kind; counts into ``stats``."""
        if value is None or value == "":
            return False
        self.stats.attempted += 1

        kind = control.input_type if control.tag == "input" else control.tag
        if control.tag == "select":
            ok = self.set_select(control, str(value))
        elif kind == "checkbox":
            checked = _as_checked(value)
            if checked is None:
                log.debug("Checkbox %r cannot take %r", control, value)
                ok = False
            else:
                ok = self.set_checked(control, checked)
        elif kind == "radio":
            ok = (self.set_checked(control, value) if isinstance(value, bool)
                  else self.choose_radio(control, str(value)))
        elif kind == "file":
            if isinstance(value, (FilePayload, list, tuple)):
                ok = self.attach_file(control, value)
            else:
                log.warning("File input %r needs a FilePayload, got %s", control, type(value).__name__)
                ok = False
        else:
            ok = self.set_text(control, str(value))

        if ok:
            self.stats.succeeded += 1
        else:
            self.stats.failed += 1
        return ok
