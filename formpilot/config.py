"""Load the candidate profile (YAML) and flow configuration (env + durable store)."""
from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from formpilot.log import get_logger
from formpilot.models import ApplicationProfile, Education, Experience, normalize_question
from formpilot.store import CONFIG_KEY, KeyValueStore

log = get_logger(__name__)

load_dotenv()

ROOT_DIR: Path = Path(__file__).resolve().parent.parent
CONFIG_DIR: Path = ROOT_DIR / "config"
PROFILE_PATH: Path = CONFIG_DIR / "profile.yaml"
DATA_DIR: Path = ROOT_DIR / "data"
STORE_PATH: Path = DATA_DIR / "flow_store.json"

# Older profile files and the extension's export use these spellings.
_PROFILE_ALIASES: dict[str, str] = {
    "firstName": "first_name",
    "lastName": "last_name",
    "fullName": "full_name",
    "name": "full_name",
    "email_address": "email",
    "mobile": "phone",
    "phone_number": "phone",
    "zip": "zip_code",
    "zipCode": "zip_code",
    "postal_code": "zip_code",
    "linkedin_url": "linkedin",
    "github_url": "github",
    "portfolio_url": "portfolio",
    "website": "portfolio",
    "company": "current_company",
    "currentCompany": "current_company",
    "yearsOfExperience": "years_of_experience",
    "years_experience": "years_of_experience",
    "workAuthorization": "work_authorization",
    "requiresSponsorship": "requires_sponsorship",
    "salary": "expected_salary",
    "expectedSalary": "expected_salary",
    "noticePeriod": "notice_period",
    "willingToRelocate": "willing_to_relocate",
    "remotePreference": "remote_preference",
    "savedResponses": "saved_responses",
}

_BOOL_FIELDS = {"requires_sponsorship", "willing_to_relocate", "current"}


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _env_flag(key: str, default: bool = False) -> bool:
    raw = get_env(key)
    if not raw:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y", "on")
    return bool(value)


def _known(cls, data: dict[str, Any]) -> dict[str, Any]:
    names = {f.name for f in fields(cls)}
    out = {}
    for key, value in data.items():
        if key not in names:
            log.debug("Ignoring unknown %s key: %s", cls.__name__, key)
            continue
        if key in _BOOL_FIELDS:
            value = _as_bool(value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        out[key] = value
    return out


def profile_from_dict(data: dict[str, Any] | None) -> ApplicationProfile:
    data = dict(data or {})
    # Backward compat: a nested "profile:" section is merged over the top level
    nested = data.pop("profile", None)
    if isinstance(nested, dict):
        data.update(nested)

    flat: dict[str, Any] = {}
    for key, value in data.items():
        flat[_PROFILE_ALIASES.get(key, key)] = value

    full = str(flat.get("full_name") or "").strip()
    if full and not (flat.get("first_name") or flat.get("last_name")):
        parts = full.split(maxsplit=1)
        flat["first_name"] = parts[0]
        flat["last_name"] = parts[1] if len(parts) > 1 else ""

    education = Education(**_known(Education, flat.pop("education", None) or {}))
    experience = Experience(**_known(Experience, flat.pop("experience", None) or {}))
    skills = tuple(str(s) for s in (flat.pop("skills", None) or []))
    responses = {
        normalize_question(q): str(a)
        for q, a in (flat.pop("saved_responses", None) or {}).items()
        if a is not None
    }

    return ApplicationProfile(
        education=education,
        experience=experience,
        skills=skills,
        saved_responses=responses,
        **_known(ApplicationProfile, flat),
    )


def load_profile(path: Path | None = None) -> ApplicationProfile:
    path = path or PROFILE_PATH
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    profile = profile_from_dict(data)
    log.info("Loaded profile for %s (%d saved responses)",
             profile.display_name or "<unnamed>", len(profile.saved_responses))
    return profile


@dataclass(frozen=True)
class FlowTimings:
    """Fixed waits, in milliseconds."""
    settle_ms: int = 500
    navigation_ms: int = 1000
    apply_delay_ms: int = 300
    short_ms: int = 300
    dropdown_open_ms: int = 100
    attach_timeout_ms: int = 3000
    attach_interval_ms: int = 250
    page_change_timeout_ms: int = 15000
    manual_wait_ms: int = 120000


@dataclass(frozen=True)
class Credentials:
    username: str = ""
    password: str = ""

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password={'***' if self.password else ''!r})"


@dataclass(frozen=True)
class FlowConfig:
    auto_advance: bool = False
    auto_submit: bool = False
    use_stored_account: bool = False
    apply_safe_fixes: bool = True
    credentials: Credentials = field(default_factory=Credentials)
    timings: FlowTimings = field(default_factory=FlowTimings)

    def to_store(self) -> dict[str, bool]:
        """Coarse switches only; credentials never go to the durable store."""
        return {
            "auto_advance": self.auto_advance,
            "auto_submit": self.auto_submit,
            "use_stored_account": self.use_stored_account,
            "apply_safe_fixes": self.apply_safe_fixes,
        }


_STORED_SWITCHES = ("auto_advance", "auto_submit", "use_stored_account", "apply_safe_fixes")


def load_flow_config(store: KeyValueStore | None = None, **overrides: Any) -> FlowConfig:
    """Env defaults, then switches persisted in the store, then explicit overrides."""
    values: dict[str, Any] = {
        "auto_advance": _env_flag("AUTO_ADVANCE"),
        "auto_submit": _env_flag("AUTO_SUBMIT"),
        "use_stored_account": _env_flag("USE_STORED_ACCOUNT"),
        "apply_safe_fixes": _env_flag("APPLY_SAFE_FIXES", default=True),
    }
    if store is not None:
        saved = store.get(CONFIG_KEY) or {}
        for key in _STORED_SWITCHES:
            if key in saved:
                values[key] = _as_bool(saved[key])
    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    if "credentials" not in values:
        values["credentials"] = Credentials(
            username=get_env("APPLY_EMAIL"),
            password=get_env("APPLY_PASSWORD"),
        )
    return FlowConfig(**values)


def save_flow_config(store: KeyValueStore, config: FlowConfig) -> None:
    store.set(CONFIG_KEY, config.to_store())

