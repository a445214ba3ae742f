from __future__ import annotations

import os

os.environ.setdefault("FORMPILOT_NO_LOG_FILE", "1")

import pytest

from formpilot.config import FlowConfig
from formpilot.flow import ApplicationFlowController, FlowContext
from formpilot.messaging import MessageChannel
from formpilot.models import ApplicationProfile, Education, Experience
from formpilot.page import SnapshotFormAdapter
from formpilot.store import MemoryStore

WORKDAY_URL = "https://acme.wd5.myworkdayjobs.com/en-US/careers/job/London/Analyst_R-0012345"
APPLY_URL = "https://acme.wd5.myworkdayjobs.com/en-US/careers/job/London/Analyst_R-0012345/apply"


class FakeClock:
    """Records sleeps instead of blocking; time only moves when slept."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.t = start
        self.sleeps: list[float] = []

    def now(self) -> float:
        return self.t

    def sleep(self, ms) -> None:
        self.sleeps.append(ms)
        self.t += ms / 1000.0


def wrap(inner: str) -> str:
    """Nest a field three wrappers deep so ancestor text stays local to it."""
    return f"<div class='field'><div><div>{inner}</div></div></div>"


def make_page(body: str, url: str = APPLY_URL, **kwargs) -> SnapshotFormAdapter:
    return SnapshotFormAdapter(f"<html><body>{body}</body></html>", url, **kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def channel() -> MessageChannel:
    return MessageChannel()


@pytest.fixture
def profile() -> ApplicationProfile:
    return ApplicationProfile(
        first_name="Ada",
        last_name="Lovelace",
        email="ada@x.com",
        phone="+1-555-0100",
        country="United Kingdom",
        education=Education(school="University of London", degree="BSc", major="Mathematics"),
        experience=Experience(company="Analytical Engines Ltd", title="Analyst"),
        saved_responses={"are you willing to travel": "Yes"},
    )


@pytest.fixture
def contact_profile() -> ApplicationProfile:
    return ApplicationProfile(first_name="Ada", last_name="Lovelace",
                              email="ada@x.com", phone="+1-555-0100")


@pytest.fixture
def make_controller(clock, store, channel, profile):
    """Build a controller over ``page``; config switches are keyword arguments."""

    def build(page, *, profile_override=None, tailor=None, **switches) -> ApplicationFlowController:
        ctx = FlowContext.create(
            page,
            profile_override or profile,
            config=FlowConfig(**switches),
            store=store,
            channel=channel,
            clock=clock,
            tailor=tailor,
        )
        return ApplicationFlowController(ctx)

    return build
