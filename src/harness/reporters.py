"""
Result reporters.

- ListReporter: one log line per test plus a summary (console)
- JsonReporter: results + summary as a JSON document
- JUnitReporter: JUnit XML, one <testcase> per merchant/project run
"""

import json
import logging
import xml.etree.ElementTree as ET
from datetime import datetime
from pathlib import Path
from typing import Any

from harness.driver import MerchantResult

logger = logging.getLogger(__name__)


def summarize(results: list[MerchantResult]) -> dict[str, Any]:
    """Totals over a run."""
    passed = sum(1 for r in results if r.passed)
    return {
        "total": len(results),
        "passed": passed,
        "failed": len(results) - passed,
        "flaky": sum(1 for r in results if r.passed and r.attempt > 1),
        "duration_s": round(sum(r.duration_s for r in results), 3),
    }


class ListReporter:
    """Logs results as they are reported, then a summary line."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def report(self, results: list[MerchantResult]) -> None:
        for result in results:
            status = "PASS" if result.passed else "FAIL"
            line = f"[{result.project}] {status} {result.title} ({result.duration_s:.1f}s)"
            if result.passed:
                self.log.info(line)
            else:
                reason = result.error or f"missing {', '.join(result.missing_signals)}"
                self.log.error(f"{line} - {reason}")

        summary = summarize(results)
        self.log.info(
            f"{summary['passed']} passed, {summary['failed']} failed, "
            f"{summary['flaky']} flaky ({summary['total']} total, {summary['duration_s']}s)"
        )


class JsonReporter:
    """Writes results to a JSON file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def report(self, results: list[MerchantResult]) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "generated_at": datetime.now().isoformat(),
            "summary": summarize(results),
            "results": [r.to_dict() for r in results],
        }
        with open(self.path, "w") as f:
            json.dump(document, f, indent=2)
        logger.info(f"JSON report written to {self.path}")
        return self.path


class JUnitReporter:
    """Writes results as JUnit XML (one suite per browser project)."""

    def __init__(self, path: str | Path, suite_name: str = "Event Tracker Tests"):
        self.path = Path(path)
        self.suite_name = suite_name

    def build(self, results: list[MerchantResult]) -> ET.ElementTree:
        summary = summarize(results)
        root = ET.Element(
            "testsuites",
            name=self.suite_name,
            tests=str(summary["total"]),
            failures=str(summary["failed"]),
            time=f"{summary['duration_s']:.3f}",
        )

        projects: dict[str, list[MerchantResult]] = {}
        for result in results:
            projects.setdefault(result.project, []).append(result)

        for project, project_results in projects.items():
            failures = sum(1 for r in project_results if not r.passed)
            suite = ET.SubElement(
                root,
                "testsuite",
                name=f"{project} - {self.suite_name}",
                tests=str(len(project_results)),
                failures=str(failures),
                time=f"{sum(r.duration_s for r in project_results):.3f}",
            )
            for result in project_results:
                case = ET.SubElement(
                    suite,
                    "testcase",
                    classname=f"{project}.{self.suite_name}",
                    name=result.title,
                    time=f"{result.duration_s:.3f}",
                )
                if not result.passed:
                    message = result.error or f"missing signals: {', '.join(result.missing_signals)}"
                    failure = ET.SubElement(case, "failure", message=message)
                    failure.text = json.dumps(result.to_dict(), indent=2)

        return ET.ElementTree(root)

    def report(self, results: list[MerchantResult]) -> Path:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tree = self.build(results)
        ET.indent(tree)
        tree.write(self.path, encoding="utf-8", xml_declaration=True)
        logger.info(f"JUnit report written to {self.path}")
        return self.path
