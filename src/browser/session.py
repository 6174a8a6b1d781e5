"""
Browser Session - one Playwright browser + context per project.

Launches the project's browser locally, or connects over CDP when a remote
endpoint is configured (Steel sessions, see EnvironmentSettings.cdp_url).
Every tracked page comes from the same context so viewport and HTTPS-error
policy are shared.

Usage:
    async with BrowserSession(project="chromium", headless=True) as session:
        tracked = await session.new_tracked_page()
        await tracked.goto(url)
        ...
"""

import logging
from enum import Enum
from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

from browser.tracked_page import TrackedPage
from config import SUPPORTED_PROJECTS
from services.wait_coordinator import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT_MS

logger = logging.getLogger(__name__)


class BrowserStatus(Enum):
    """Browser session status states"""
    DISCONNECTED = "disconnected"
    LAUNCHING = "launching"
    CONNECTED = "connected"
    ERROR = "error"


class BrowserSession:
    """
    Owns the Playwright driver, browser and context for one project.

    Args:
        project: Browser project name ('chromium' or 'firefox')
        headless: Run without a visible window (ignored over CDP)
        viewport: {'width': ..., 'height': ...}
        ignore_https_errors: Accept invalid certificates on demo sites
        cdp_url: Connect to this CDP endpoint instead of launching (chromium only)
        poll_interval: Wait poll cadence handed to every TrackedPage
        default_wait_timeout: Default wait timeout (ms) handed to every TrackedPage
    """

    def __init__(
        self,
        project: str = "chromium",
        headless: bool = True,
        viewport: Optional[dict] = None,
        ignore_https_errors: bool = True,
        cdp_url: Optional[str] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        default_wait_timeout: int = DEFAULT_TIMEOUT_MS,
    ):
        if project not in SUPPORTED_PROJECTS:
            raise ValueError(f"Unknown browser project: {project}")
        if cdp_url and project != "chromium":
            raise ValueError("CDP connections are only supported for chromium")

        self.project = project
        self.headless = headless
        self.viewport = viewport or {"width": 1280, "height": 720}
        self.ignore_https_errors = ignore_https_errors
        self.cdp_url = cdp_url
        self.poll_interval = poll_interval
        self.default_wait_timeout = default_wait_timeout

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.status = BrowserStatus.DISCONNECTED

    async def connect(self) -> bool:
        """
        Start Playwright and open a browser context.

        Returns:
            True if the session is usable
        """
        try:
            self.status = BrowserStatus.LAUNCHING
            self.playwright = await async_playwright().start()
            browser_type = getattr(self.playwright, self.project)

            if self.cdp_url:
                logger.info(f"Connecting to remote {self.project} over CDP...")
                self.browser = await browser_type.connect_over_cdp(self.cdp_url)
            else:
                logger.info(f"Launching {self.project} (headless={self.headless})...")
                self.browser = await browser_type.launch(headless=self.headless)

            self.context = await self.browser.new_context(
                viewport=self.viewport,
                ignore_https_errors=self.ignore_https_errors,
            )
            self.status = BrowserStatus.CONNECTED
            logger.info(f"{self.project} session ready")
            return True

        except Exception as e:
            logger.error(f"{self.project} session failed to start: {e}")
            await self.disconnect()
            self.status = BrowserStatus.ERROR
            return False

    async def new_tracked_page(self) -> TrackedPage:
        """Open a new page with the signal forwarder installed."""
        if not self.is_connected():
            raise RuntimeError(f"{self.project} session is not connected")
        page = await self.context.new_page()
        tracked = TrackedPage(
            page, poll_interval=self.poll_interval, default_timeout=self.default_wait_timeout
        )
        await tracked.install()
        return tracked

    async def disconnect(self) -> None:
        """Close context and browser, then stop Playwright."""
        try:
            if self.context:
                await self.context.close()
            if self.browser:
                await self.browser.close()
        except Exception as e:
            logger.warning(f"Error while closing {self.project}: {e}")
        finally:
            self.context = None
            self.browser = None
            if self.playwright:
                await self.playwright.stop()
                self.playwright = None
            self.status = BrowserStatus.DISCONNECTED

    def is_connected(self) -> bool:
        return self.status == BrowserStatus.CONNECTED

    async def __aenter__(self) -> "BrowserSession":
        if not await self.connect():
            raise RuntimeError(f"Failed to start {self.project} browser session")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False
