"""
Shared test fixtures for pytest
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from services import EventRecorder, WaitCoordinator, setup_logging
from services.logger import cleanup_logging

PAGE_URL = "https://www.saucedemo.com/inventory.html"


@pytest.fixture(scope="session", autouse=True)
def setup_test_logging(tmp_path_factory):
    """Setup logging for all tests (logs go to a temp dir)"""
    setup_logging({"log_dir": str(tmp_path_factory.mktemp("logs")), "colored_output": False})
    yield
    cleanup_logging()


class FakeLocation:
    """Stands in for the document location of the tracked page."""

    def __init__(self, url: str = PAGE_URL):
        self.url = url

    def __call__(self) -> str:
        return self.url


class FakeClock:
    """Deterministic epoch-ms clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


@pytest.fixture
def location():
    return FakeLocation()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder(location, clock):
    """Initialized recorder tracking PAGE_URL"""
    rec = EventRecorder(location=location, clock=clock)
    rec.initialize()
    return rec


@pytest.fixture
def coordinator(recorder):
    return WaitCoordinator(recorder, poll_interval=0.05)


@pytest.fixture
def fake_page():
    """MagicMock shaped like a Playwright async Page"""
    page = MagicMock()
    page.url = "about:blank"
    page.main_frame = MagicMock(name="main_frame")
    page.expose_binding = AsyncMock()
    page.add_init_script = AsyncMock()
    page.goto = AsyncMock()
    page.evaluate = AsyncMock()
    page.close = AsyncMock()
    page.is_closed = MagicMock(return_value=False)
    return page


class FakeTrackedPage:
    """
    TrackedPage stand-in for harness tests.

    Args:
        missing: Signal names that never arrive
        flaky: Signal name -> number of timed-out attempts before it arrives
        goto_error: Exception raised by goto()
    """

    def __init__(self, missing=(), flaky=None, goto_error=None):
        self.missing = set(missing)
        self.flaky = dict(flaky or {})
        self.goto_error = goto_error
        self.visited = []
        self.waits = []
        self.closed = False

    async def goto(self, url, wait_until="domcontentloaded", timeout=None):
        if self.goto_error:
            raise self.goto_error
        self.visited.append(url)

    async def wait_for_event(self, name, test_id=None, after=None, timeout=30000):
        from models.signals import SignalFilters
        from services.wait_coordinator import SignalTimeoutError

        self.waits.append(name)
        if name in self.missing or self.flaky.get(name, 0) > 0:
            if name in self.flaky:
                self.flaky[name] -= 1
            raise SignalTimeoutError(name, SignalFilters(test_id=test_id, after=after), timeout)
        return None

    async def close(self, close_page=True):
        self.closed = True


class FakeSession:
    """BrowserSession stand-in handing out FakeTrackedPages from a page_factory."""

    instances = []

    def __init__(self, project="chromium", page_factory=FakeTrackedPage, **kwargs):
        self.project = project
        self.kwargs = kwargs
        self.page_factory = page_factory
        self.pages = []
        self.entered = False
        self.exited = False
        FakeSession.instances.append(self)

    async def new_tracked_page(self):
        page = self.page_factory()
        self.pages.append(page)
        return page

    async def __aenter__(self):
        self.entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.exited = True
        return False


@pytest.fixture
def fake_session_cls():
    FakeSession.instances = []
    yield FakeSession
    FakeSession.instances = []


@pytest.fixture
def fake_tracked_page_cls():
    return FakeTrackedPage
