"""
Merchant verification driver.

Per merchant page: open a tracked page, navigate, and wait for each required
lifecycle signal. Transient non-delivery is absorbed by a bounded retry loop
around the single-shot wait; exhausting it is reported as a failed signal,
never raised.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

from browser.tracked_page import TrackedPage
from harness.merchants import Merchant, MerchantUrl, first_url_for
from models.signals import SignalName
from services.wait_coordinator import SignalTimeoutError

logger = logging.getLogger(__name__)

REQUIRED_SIGNALS: tuple[SignalName, ...] = (
    SignalName.APP_INITIALIZED,
    SignalName.SHADOW_DOM_CONTAINER_READY,
)


class TrackedPageFactory(Protocol):
    """Anything that can hand out installed TrackedPages (e.g. BrowserSession)."""

    project: str

    async def new_tracked_page(self) -> TrackedPage: ...


@dataclass
class MerchantResult:
    """
    Outcome of verifying one merchant page on one browser project.

    Attributes:
        index: 1-based position in the merchant catalog
        merchant: Merchant short name
        url: Page that was visited
        project: Browser project name
        signals: Signal name -> received
        duration_s: Wall time of the test
        error: Failure reason other than a missing signal, if any
        attempt: Whole-test attempt number (1 = first run)
    """

    index: int
    merchant: str
    url: str
    project: str
    signals: dict[str, bool] = field(default_factory=dict)
    duration_s: float = 0.0
    error: str | None = None
    attempt: int = 1

    @property
    def passed(self) -> bool:
        return self.error is None and bool(self.signals) and all(self.signals.values())

    @property
    def title(self) -> str:
        return f"({self.index}) Verify events on merchant: {self.merchant}"

    @property
    def missing_signals(self) -> list[str]:
        return [name for name, received in self.signals.items() if not received]

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "title": self.title,
            "merchant": self.merchant,
            "url": self.url,
            "project": self.project,
            "signals": dict(self.signals),
            "passed": self.passed,
            "duration_s": round(self.duration_s, 3),
            "error": self.error,
            "attempt": self.attempt,
        }


async def wait_for_event_with_retry(
    tracked: TrackedPage,
    name: SignalName | str,
    timeout: int = 15000,
    max_retries: int = 3,
    backoff: float = 1.0,
) -> bool:
    """
    Wait for a signal, retrying timed-out waits.

    Args:
        tracked: Page to wait on
        name: Signal to wait for
        timeout: Per-attempt timeout in milliseconds
        max_retries: Number of attempts
        backoff: Seconds to sleep after a failed attempt

    Returns:
        True once the signal is received, False after all attempts failed
    """
    name = getattr(name, "value", name)
    for attempt in range(1, max_retries + 1):
        logger.info(f"Attempt {attempt}/{max_retries} - Waiting for event \"{name}\" with timeout {timeout}ms")
        try:
            await tracked.wait_for_event(name, timeout=timeout)
            logger.info(f"Event \"{name}\" received.")
            return True
        except SignalTimeoutError as e:
            logger.warning(f"Event \"{name}\" not received. Retrying... ({e})")
            await asyncio.sleep(backoff)

    logger.error(f"Failed to receive event \"{name}\" after {max_retries} attempts.")
    return False


async def visit_merchant_page(
    tracked: TrackedPage, merchant: Merchant | str, wait_until: str = "domcontentloaded"
) -> str:
    """
    Navigate to the merchant's first catalog URL.

    Returns:
        The URL that was visited

    Raises:
        MerchantNotFoundError: If the merchant has no URL
    """
    url = first_url_for(merchant)
    await tracked.goto(url, wait_until=wait_until)
    return url


async def verify_merchant(
    factory: TrackedPageFactory,
    entry: MerchantUrl,
    index: int,
    signals: tuple[SignalName, ...] = REQUIRED_SIGNALS,
    signal_timeout: int = 15000,
    max_retries: int = 3,
    backoff: float = 1.0,
    wait_until: str = "domcontentloaded",
) -> MerchantResult:
    """
    Verify that every required signal fires on a merchant page.

    Navigation errors are recorded on the result; the tracked page is closed
    in every case.
    """
    merchant = getattr(entry.merchant, "value", entry.merchant)
    result = MerchantResult(index=index, merchant=merchant, url=entry.url, project=factory.project)
    started = time.monotonic()
    logger.info(f"Testing merchant: {merchant} ({factory.project})")

    tracked = await factory.new_tracked_page()
    try:
        await tracked.goto(entry.url, wait_until=wait_until)
        logger.info(f"Visited merchant URL: {entry.url}")

        for signal in signals:
            result.signals[signal.value] = await wait_for_event_with_retry(
                tracked, signal, timeout=signal_timeout, max_retries=max_retries, backoff=backoff
            )

        if result.passed:
            logger.info(f"All required events received for {merchant}")
        else:
            logger.error(f"{merchant}: missing {', '.join(result.missing_signals)}")

    except Exception as e:
        logger.error(f"{merchant}: verification aborted: {e}")
        result.error = str(e) or type(e).__name__
    finally:
        await tracked.close()
        result.duration_s = time.monotonic() - started

    return result
