"""
失敗截圖 — 情境失敗時保存整頁截圖並登記為測試產出

在 teardown 流程中排在 credential 保存與自訂步驟之後、關閉 page 之前。
截圖過程的任何錯誤都只記錄，不會讓失敗的情境變成框架崩潰，
也不會讓通過的情境變成失敗。
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from config.config import Config
from core.plugin_manager import plugin_manager
from utils.allure_helper import attach_file
from utils.logger import logger
from utils.screenshot import build_screenshot_path


@dataclass(frozen=True)
class ScenarioOutcome:
    """情境執行結果（唯讀）"""
    name: str
    failed: bool
    error: str = ""

    @classmethod
    def passed(cls, name: str) -> "ScenarioOutcome":
        return cls(name=name, failed=False)

    @classmethod
    def from_reports(cls, name: str, *reports) -> "ScenarioOutcome":
        """
        由 pytest 各階段的 TestReport 建立結果。
        任一階段 (setup / call) 失敗即視為失敗。
        """
        for report in reports:
            if report is not None and report.failed:
                return cls(name=name, failed=True, error=str(report.longrepr))
        return cls.passed(name)

    @classmethod
    def from_exception(cls, name: str, error: BaseException | None) -> "ScenarioOutcome":
        if error is None:
            return cls.passed(name)
        return cls(name=name, failed=True, error=f"{type(error).__name__}: {error}")


class FailureArtifactCapturer:
    """情境失敗時擷取整頁截圖"""

    def __init__(self, results_dir: str | Path | None = None):
        self.results_dir = Path(results_dir) if results_dir else Config.RESULTS_DIR
        self.artifacts: list[Path] = []

    @property
    def screenshot_dir(self) -> Path:
        return self.results_dir / "Screenshots"

    async def capture(self, page, outcome: ScenarioOutcome | None) -> Path | None:
        """
        Returns:
            截圖路徑；未失敗、沒有 page 或截圖失敗時回傳 None
        """
        if outcome is None or not outcome.failed or page is None:
            return None

        try:
            path = build_screenshot_path(outcome.name, self.screenshot_dir)
            path.parent.mkdir(parents=True, exist_ok=True)
            await page.screenshot(path=str(path), full_page=True)
        except Exception as e:
            logger.error(f"失敗截圖擷取失敗 [{outcome.name}]: {e}")
            return None

        self.artifacts.append(path)
        self._register(path, outcome.name)
        logger.info(f"失敗截圖已保存: {path}")
        return path

    @staticmethod
    def _register(path: Path, scenario: str) -> None:
        """登記為測試產出：Allure 附件 + artifact 事件"""
        try:
            attach_file(str(path), name=f"失敗截圖: {scenario}")
        except Exception as e:
            logger.warning(f"Allure 附件失敗: {e}")
        plugin_manager.emit_artifact(str(path), scenario)
