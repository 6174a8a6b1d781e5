"""
Tests for the harness runner and CLI
"""

import asyncio
import json

import pytest

from config import Config
from harness import runner
from harness.merchants import MERCHANTS, Merchant, MerchantUrl
from harness.runner import (
    RunOptions,
    apply_cli_overrides,
    build_parser,
    run_project,
    run_suite,
    run_with_retries,
    select_entries,
)

SAUCE = MerchantUrl(Merchant.SAUCE_DEMO, "https://www.saucedemo.com/inventory.html")
FAKE_STORE = MerchantUrl(Merchant.FAKE_STORE, "https://fakestoreapi.com/products/1")


def _options(**overrides):
    values = dict(projects=["chromium"], workers=2, signal_max_retries=1, signal_retry_backoff=0)
    values.update(overrides)
    return RunOptions(**values)


@pytest.fixture
def fresh_config(monkeypatch, tmp_path):
    """Isolated Config for main(), with no .env and no remote browser"""
    cfg = Config(validate=False)
    monkeypatch.setattr(runner, "config", cfg)
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("STEEL_API_KEY", raising=False)
    monkeypatch.delenv("PLAYWRIGHT_BASE_URL", raising=False)
    monkeypatch.delenv("HARNESS_ENV", raising=False)
    monkeypatch.delenv("NODE_ENV", raising=False)
    monkeypatch.delenv("HARNESS_OUTPUT_DIR", raising=False)
    monkeypatch.delenv("HARNESS_LOG_DIR", raising=False)
    return cfg


class TestRunOptions:
    def test_from_config(self):
        cfg = Config(validate=False)
        cfg.set("harness", "workers", 3)
        cfg.set("harness", "default_wait_timeout_ms", 8000)
        cfg.set("browser", "projects", ["firefox"])

        options = RunOptions.from_config(cfg, cdp_url="wss://x")

        assert options.workers == 3
        assert options.projects == ["firefox"]
        assert options.cdp_url == "wss://x"
        assert options.signal_timeout_ms == 15000
        assert options.default_wait_timeout_ms == 8000


class TestSelectEntries:
    def test_all_by_default(self):
        assert select_entries(None) == MERCHANTS

    def test_filter_by_merchant(self):
        entries = select_entries(["fake-store", "sauce-demo"])

        assert [e.merchant for e in entries] == [Merchant.FAKE_STORE, Merchant.FAKE_STORE, Merchant.SAUCE_DEMO]


class TestRunWithRetries:
    @pytest.mark.asyncio
    async def test_passes_first_time(self, fake_session_cls):
        session = fake_session_cls()

        result = await run_with_retries(session, SAUCE, 1, _options(retries=2))

        assert result.passed
        assert result.attempt == 1
        assert len(session.pages) == 1

    @pytest.mark.asyncio
    async def test_retries_failed_test(self, fake_session_cls, fake_tracked_page_cls):
        pages = iter([
            fake_tracked_page_cls(missing=["EVENT_APP_INITIALIZED"]),
            fake_tracked_page_cls(),
        ])
        session = fake_session_cls(page_factory=lambda: next(pages))

        result = await run_with_retries(session, SAUCE, 1, _options(retries=2))

        assert result.passed
        assert result.attempt == 2

    @pytest.mark.asyncio
    async def test_stops_after_retries_exhausted(self, fake_session_cls, fake_tracked_page_cls):
        session = fake_session_cls(
            page_factory=lambda: fake_tracked_page_cls(missing=["EVENT_APP_INITIALIZED"])
        )

        result = await run_with_retries(session, SAUCE, 1, _options(retries=1))

        assert not result.passed
        assert result.attempt == 2
        assert len(session.pages) == 2

    @pytest.mark.asyncio
    async def test_test_timeout_is_a_failure(self, fake_session_cls):
        class HangingPage:
            async def goto(self, url, wait_until="domcontentloaded", timeout=None):
                await asyncio.sleep(10)

            async def close(self, close_page=True):
                pass

        session = fake_session_cls(page_factory=HangingPage)

        result = await run_with_retries(session, SAUCE, 4, _options(test_timeout=0.1))

        assert not result.passed
        assert result.error == "Test timeout of 0s exceeded"
        assert result.index == 4


class TestRunProject:
    @pytest.mark.asyncio
    async def test_runs_every_entry_inside_session(self, fake_session_cls):
        results = await run_project("chromium", [FAKE_STORE, SAUCE], _options(), fake_session_cls)

        session = fake_session_cls.instances[0]
        assert session.entered and session.exited
        assert [r.index for r in results] == [1, 2]
        assert all(r.project == "chromium" for r in results)
        assert session.kwargs["default_wait_timeout"] == 30000

    @pytest.mark.asyncio
    async def test_cdp_only_handed_to_chromium(self, fake_session_cls):
        options = _options(projects=["chromium", "firefox"], cdp_url="wss://connect.steel.dev?apiKey=k")

        await run_suite([SAUCE], options, fake_session_cls)

        chromium, firefox = fake_session_cls.instances
        assert chromium.kwargs["cdp_url"] == "wss://connect.steel.dev?apiKey=k"
        assert firefox.kwargs["cdp_url"] is None

    @pytest.mark.asyncio
    async def test_worker_limit(self, fake_session_cls):
        running = 0
        peak = 0

        class SlowPage:
            async def goto(self, url, wait_until="domcontentloaded", timeout=None):
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.02)
                running -= 1

            async def wait_for_event(self, name, **kwargs):
                return None

            async def close(self, close_page=True):
                pass

        session_factory = lambda **kw: fake_session_cls(page_factory=SlowPage, **kw)  # noqa: E731
        await run_project("chromium", MERCHANTS, _options(workers=2), session_factory)

        assert peak == 2


class TestCli:
    def test_parser_defaults(self):
        args = build_parser().parse_args([])

        assert args.project is None
        assert args.headless is None
        assert args.junit is None

    def test_parser_repeatable_flags(self):
        args = build_parser().parse_args(
            ["--project", "chromium", "--project", "firefox", "--merchant", "sauce-demo", "--no-headless"]
        )

        assert args.project == ["chromium", "firefox"]
        assert args.merchant == ["sauce-demo"]
        assert args.headless is False

    def test_parser_rejects_unknown_project(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--project", "webkit"])

    def test_overrides_land_in_config(self, tmp_path):
        overrides = tmp_path / "harness.json"
        overrides.write_text(json.dumps({"harness": {"poll_interval": 0.1}}))
        cfg = Config(validate=False)
        args = build_parser().parse_args(
            ["--config", str(overrides), "--retries", "1", "--workers", "2", "--timeout", "5000", "--headless"]
        )

        apply_cli_overrides(args, cfg)

        harness = cfg.section("harness")
        assert harness["poll_interval"] == 0.1
        assert harness["retries"] == 1
        assert harness["workers"] == 2
        assert harness["signal_timeout_ms"] == 5000
        assert cfg.get("browser", "headless") is True


class TestMain:
    def test_all_passing_exits_zero(self, fresh_config, fake_session_cls, tmp_path):
        junit = tmp_path / "results.xml"
        report = tmp_path / "results.json"

        code = runner.main(
            ["--project", "chromium", "--merchant", "sauce-demo", "--junit", str(junit), "--json", str(report)],
            session_factory=fake_session_cls,
        )

        assert code == 0
        assert junit.exists()
        summary = json.loads(report.read_text())["summary"]
        assert (summary["total"], summary["passed"], summary["failed"]) == (1, 1, 0)

    def test_reports_default_to_output_dir(self, fresh_config, fake_session_cls, tmp_path):
        code = runner.main(["--project", "chromium", "--merchant", "sauce-demo"], session_factory=fake_session_cls)

        assert code == 0
        assert (tmp_path / "test-results" / "results.xml").exists()
        assert (tmp_path / "test-results" / "results.json").exists()

    def test_failure_exits_one(self, fresh_config, fake_session_cls, fake_tracked_page_cls):
        fresh_config.set("harness", "signal_retry_backoff", 0)
        fresh_config.set("harness", "signal_max_retries", 1)

        def factory(**kwargs):
            return fake_session_cls(
                page_factory=lambda: fake_tracked_page_cls(missing=["EVENT_SHADOW_DOM_CONTAINER_READY"]),
                **kwargs,
            )

        code = runner.main(["--project", "firefox", "--merchant", "sauce-demo", "--retries", "0"], factory)

        assert code == 1

    def test_invalid_config_exits_two(self, fresh_config, fake_session_cls):
        code = runner.main(["--workers", "0"], session_factory=fake_session_cls)

        assert code == 2
        assert fake_session_cls.instances == []

    def test_invalid_environment_exits_two(self, fresh_config, fake_session_cls, monkeypatch):
        monkeypatch.setenv("PLAYWRIGHT_BASE_URL", "not-a-url")

        code = runner.main([], session_factory=fake_session_cls)

        assert code == 2

    def test_bad_config_file_exits_two(self, fresh_config, fake_session_cls, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")

        assert runner.main(["--config", str(broken)], session_factory=fake_session_cls) == 2
