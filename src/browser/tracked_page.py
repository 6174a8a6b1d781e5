"""
Tracked Page - a Playwright page with the signal forwarder installed.

Owns exactly one EventRecorder and WaitCoordinator for the page's lifetime.
The driver talks to the page only through goto(), wait_for_event() and
check_for_event().

Install sequence (must happen before the first navigation):
1. Expose the bridge binding (page -> host calls)
2. Add the forwarder as an init script (runs before page scripts)
3. Listen for main-frame navigations

Usage:
    tracked = TrackedPage(await context.new_page())
    await tracked.install()
    await tracked.goto("https://www.saucedemo.com/inventory.html")
    occurrence = await tracked.wait_for_event(SignalName.APP_INITIALIZED, timeout=15000)
    await tracked.close()
"""

import logging
from typing import Any

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Frame, Page

from browser.recorder_script import BINDING_NAME, DESTROY_SCRIPT, build_recorder_script
from models.bridge import BridgePayloadError, NavigationNotice, SignalDispatch, parse_bridge_payload
from models.signals import SignalOccurrence
from services.event_recorder import EventRecorder
from services.wait_coordinator import DEFAULT_POLL_INTERVAL, DEFAULT_TIMEOUT_MS, WaitCoordinator

logger = logging.getLogger(__name__)


class TrackedPage:
    """
    Playwright page wired to a host-side signal recorder.

    Args:
        page: Fresh Playwright page (not navigated yet)
        poll_interval: Wait poll cadence in seconds
        default_timeout: Wait timeout in ms when a wait passes none
    """

    def __init__(
        self,
        page: Page,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        default_timeout: int = DEFAULT_TIMEOUT_MS,
    ):
        self.page = page
        self.recorder = EventRecorder(location=lambda: page.url)
        self.coordinator = WaitCoordinator(
            self.recorder, poll_interval=poll_interval, default_timeout=default_timeout
        )
        self._installed = False
        self._closed = False

    @property
    def is_installed(self) -> bool:
        return self._installed

    async def install(self) -> None:
        """Inject the forwarder. Safe to call twice."""
        if self._installed:
            return
        self.recorder.initialize()
        await self.page.expose_binding(BINDING_NAME, self._on_bridge_call)
        await self.page.add_init_script(script=build_recorder_script())
        self.page.on("framenavigated", self._on_frame_navigated)
        self._installed = True
        logger.debug("Signal forwarder installed")

    # ========== Bridge ==========

    def _on_bridge_call(self, source: dict[str, Any], payload: Any) -> None:
        """Binding callback; must never raise into the page."""
        if self.recorder.is_destroyed:
            return
        frame = source.get("frame") if isinstance(source, dict) else None
        if frame is not None and frame != self.page.main_frame:
            return  # Child frames are not tracked

        try:
            message = parse_bridge_payload(payload)
        except BridgePayloadError as e:
            logger.warning(f"Ignoring malformed bridge payload: {e}")
            return

        if isinstance(message, NavigationNotice):
            self.recorder.handle_navigation(message)
            return

        self._sync_with_page()
        occurrence = self.recorder.capture_dispatch(message)
        if occurrence is not None:
            logger.debug(f"Captured {occurrence.name} at {occurrence.time}")

    def _on_frame_navigated(self, frame: Frame) -> None:
        if self.recorder.is_destroyed or frame != self.page.main_frame:
            return
        self.recorder.handle_navigation(NavigationNotice(kind="framenavigated", href=frame.url))

    def _sync_with_page(self) -> None:
        # A signal can arrive before the framenavigated event for its document
        self.recorder.handle_navigation(
            NavigationNotice(kind="framenavigated", href=self.page.url)
        )

    # ========== Driver API ==========

    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: float | None = None):
        """Navigate the tracked page. install() runs first if needed."""
        if not self._installed:
            await self.install()
        logger.info(f"Navigating to {url}")
        return await self.page.goto(url, wait_until=wait_until, timeout=timeout)

    async def wait_for_event(
        self,
        name: str,
        test_id: str | None = None,
        after: int | None = None,
        timeout: int | None = None,
    ) -> SignalOccurrence:
        """See WaitCoordinator.wait_for_event()."""
        return await self.coordinator.wait_for_event(name, test_id=test_id, after=after, timeout=timeout)

    def check_for_event(
        self, name: str, test_id: str | None = None, after: int | None = None
    ) -> SignalOccurrence | None:
        """See WaitCoordinator.check_for_event()."""
        return self.coordinator.check_for_event(getattr(name, "value", name), test_id=test_id, after=after)

    def reset(self) -> None:
        """Forget everything captured so far."""
        self.recorder.reset()

    async def close(self, close_page: bool = True) -> None:
        """
        Destroy the recorder and detach listeners.

        Args:
            close_page: Also close the underlying Playwright page
        """
        if self._closed:
            return
        self._closed = True
        self.recorder.destroy()

        if self._installed:
            self.page.remove_listener("framenavigated", self._on_frame_navigated)
            try:
                if not self.page.is_closed():
                    await self.page.evaluate(DESTROY_SCRIPT)
            except PlaywrightError as e:
                logger.debug(f"Page-side forwarder cleanup skipped: {e}")

        if close_page and not self.page.is_closed():
            await self.page.close()

    async def __aenter__(self) -> "TrackedPage":
        await self.install()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
