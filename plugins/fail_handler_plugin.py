"""
Fail Handler Plugin — 測試失敗時的現場保全

失敗時自動把以下資訊寫成 JSON 摘要：
1. 錯誤訊息與類型
2. 失敗當下的 URL
3. 瀏覽器種類、headless、viewport
4. 是否使用了快取的登入狀態
5. 該情境的失敗截圖路徑（由 artifact.captured 事件收集）

截圖本身由 core.failure_capture 在 teardown 時處理，
這裡只負責把現場資訊整理成一份可以直接貼進 bug 的摘要。
"""

import json
from datetime import datetime

from config.config import Config
from core.plugin_manager import Plugin
from utils.allure_helper import attach_text
from utils.logger import logger
from utils.screenshot import sanitize_filename

FAIL_DIR = Config.REPORT_DIR / "failures"


class FailHandlerPlugin(Plugin):
    """測試失敗時輸出 JSON 現場摘要"""

    name = "fail_handler"
    version = "1.0.0"
    description = "測試失敗時保存錯誤、URL、瀏覽器設定與失敗截圖路徑"

    def __init__(self, fail_dir=None):
        self.fail_dir = fail_dir or FAIL_DIR
        self._artifacts: dict[str, list[str]] = {}
        self._pending: dict[str, dict] = {}

    def on_register(self) -> None:
        self.fail_dir.mkdir(parents=True, exist_ok=True)

    def on_test_fail(self, test_name: str, session, error: Exception) -> None:
        """測試失敗時收集現場（此時 session 尚未 teardown）"""
        fail_data = {
            "test_name": test_name,
            "error": str(error),
            "error_type": type(error).__name__,
            "timestamp": datetime.now().strftime("%Y%m%d_%H%M%S"),
        }

        if session is not None:
            config = session.config
            fail_data["browser"] = {
                "family": config.browser.value,
                "headless": config.headless,
                "viewport": config.viewport,
            }
            fail_data["used_cached_state"] = session.used_cached_state
            try:
                fail_data["url"] = session.page.url if session.page else ""
            except Exception as e:
                logger.warning(f"[FailHandler] 無法取得 URL: {e}")

        self._pending[test_name] = fail_data
        summary = self._write(test_name)
        if summary:
            attach_text(summary, name="失敗現場摘要")

    def on_artifact(self, path: str, test_name: str) -> None:
        """失敗截圖在 teardown 才產生，收到後補寫進摘要"""
        self._artifacts.setdefault(test_name, []).append(path)
        if test_name in self._pending:
            self._write(test_name)

    def on_session_closed(self, session, errors: list) -> None:
        """teardown 已結束，不會再有截圖，釋放該情境的暫存資料"""
        self._pending.pop(session.scenario, None)
        self._artifacts.pop(session.scenario, None)

    def _write(self, test_name: str) -> str | None:
        """寫出（或覆寫）摘要檔，回傳寫入的 JSON 字串"""
        fail_data = dict(self._pending[test_name])
        fail_data["screenshots"] = self._artifacts.get(test_name, [])
        summary = json.dumps(fail_data, indent=4, ensure_ascii=False, default=str)
        json_path = self.fail_dir / f"{sanitize_filename(test_name)}_{fail_data['timestamp']}.json"
        try:
            json_path.write_text(summary, encoding="utf-8")
        except OSError as e:
            logger.error(f"[FailHandler] 摘要寫入失敗: {e}")
            return None
        logger.error(f"[FailHandler] 現場已保全: {json_path}")
        return summary
