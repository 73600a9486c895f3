"""
自訂 pytest 報告 plugin
在終端機輸出瀏覽器情境摘要：通過率、失敗與啟動錯誤、最慢情境、失敗截圖、
失效的登入快取。在 conftest.py 引入即可生效。

setup 階段失敗（瀏覽器無法啟動、載入登入狀態出錯）記為 error，
與情境本身的 failed 分開統計。
"""

import time
from collections import defaultdict

from core.event_bus import Events, event_bus
from utils.logger import logger

SLOWEST_SHOWN = 5


class TestMetrics:
    """收集測試指標"""

    __test__ = False

    def __init__(self):
        self.results: dict[str, list] = defaultdict(list)
        self.durations: dict[str, float] = {}
        self.artifacts: list[tuple[str, str]] = []
        self.discarded_states: list[str] = []
        self.start_time: float = 0

    def record(self, nodeid: str, outcome: str, duration: float) -> None:
        self.results[outcome].append(nodeid)
        self.durations[nodeid] = duration

    def record_artifact(self, test_name: str, path: str) -> None:
        self.artifacts.append((test_name, path))

    def count(self, outcome: str) -> int:
        return len(self.results.get(outcome, []))

    @property
    def total(self) -> int:
        return sum(len(ids) for ids in self.results.values())

    def summary_lines(self, total_time: float) -> list[str]:
        """組出摘要文字；沒有任何結果時回傳空 list"""
        total = self.total
        if total == 0:
            return []

        lines = [
            f"總計:   {total} 個情境",
            f"通過:   {self.count('passed')}",
            f"失敗:   {self.count('failed')}",
            f"錯誤:   {self.count('error')}",
            f"跳過:   {self.count('skipped')}",
            f"通過率: {self.count('passed') / total * 100:.1f}%",
            f"總耗時: {total_time:.1f} 秒",
        ]

        for title, outcome, tag in (("失敗情境", "failed", "FAIL "),
                                    ("啟動錯誤", "error", "ERROR")):
            if self.results.get(outcome):
                lines += ["", f"--- {title} ---"]
                lines += [f"  {tag} {nodeid}  ({self.durations.get(nodeid, 0):.2f}s)"
                          for nodeid in self.results[outcome]]

        if self.artifacts:
            lines += ["", "--- 失敗截圖 ---"]
            lines += [f"  {name}: {path}" for name, path in self.artifacts]

        if self.discarded_states:
            lines += ["", "--- 已捨棄的登入快取 ---"]
            lines += [f"  {path}" for path in self.discarded_states]

        slowest = sorted(self.durations.items(), key=lambda x: x[1], reverse=True)
        lines += ["", f"--- 最慢的情境 (Top {SLOWEST_SHOWN}) ---"]
        lines += [f"  {dur:.2f}s  {nodeid}" for nodeid, dur in slowest[:SLOWEST_SHOWN]]
        return lines


_metrics = TestMetrics()


@event_bus.on(Events.ARTIFACT_CAPTURED)
def _on_artifact(event) -> None:
    _metrics.record_artifact(event.data.get("test_name", ""), event.data.get("path", ""))


@event_bus.on(Events.CREDENTIAL_DISCARDED)
def _on_credential_discarded(event) -> None:
    _metrics.discarded_states.append(event.data.get("path", ""))


# ── pytest hooks ──

def pytest_sessionstart(session):
    _metrics.start_time = time.time()


def pytest_runtest_logreport(report):
    if report.when == "call":
        _metrics.record(report.nodeid, report.outcome, report.duration)
    elif report.when == "setup" and report.failed:
        _metrics.record(report.nodeid, "error", report.duration)
    elif report.when == "setup" and report.skipped:
        _metrics.record(report.nodeid, "skipped", report.duration)


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """在終端機輸出自訂測試摘要"""
    lines = _metrics.summary_lines(time.time() - _metrics.start_time)
    if not lines:
        return

    terminalreporter.section("Browser Scenario Report", sep="=")
    for line in lines:
        terminalreporter.line(f"  {line}")
        logger.info(line)
