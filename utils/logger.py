"""
日誌模組
統一的 logging 設定，同時輸出到 console 與檔案。

- Console / 純文字檔：每行帶上情境名稱，方便平行跑時分辨
- JSON 結構化檔（LOG_JSON=1）：scenario / browser / stage 獨立成欄位
- 環境變數:
    LOG_LEVEL: console 日誌等級 (預設 INFO)
    LOG_JSON: 設為 "1" 啟用 JSON 結構化日誌檔
    LOG_DIR: 日誌目錄 (預設專案根目錄下的 reports/)

情境內的日誌用 scenario_logger 取得，不必每次手動帶 extra：

    log = scenario_logger("建立行程: Tokyo", "chromium")
    log.info("Context 已掛上快取的登入狀態")
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

LOG_DIR = Path(os.getenv("LOG_DIR") or Path(__file__).resolve().parent.parent / "reports")
LOG_DIR.mkdir(parents=True, exist_ok=True)

SESSION_FIELDS = ("scenario", "browser", "stage")


class ScenarioTagFilter(logging.Filter):
    """替每筆 record 補上 scenario_tag，沒有情境時為空字串"""

    def filter(self, record: logging.LogRecord) -> bool:
        scenario = getattr(record, "scenario", None)
        record.scenario_tag = f"[{scenario}] " if scenario else ""
        return True


class JsonFormatter(logging.Formatter):
    """JSON 結構化日誌格式器，適合 ELK / Loki 等日誌系統"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        entry.update({
            key: getattr(record, key)
            for key in SESSION_FIELDS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


class ScenarioAdapter(logging.LoggerAdapter):
    """把情境資訊併入每筆 record 的 extra，呼叫端自帶的 extra 優先"""

    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def scenario_logger(scenario: str, browser: str = "") -> ScenarioAdapter:
    context = {"scenario": scenario or None, "browser": browser or None}
    return ScenarioAdapter(logger, context)


def _file_handler(filename: str, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(LOG_DIR / filename, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def _create_logger() -> logging.Logger:
    _logger = logging.Logger("browser_scenarios")
    _logger.setLevel(logging.DEBUG)
    _logger.addFilter(ScenarioTagFilter())

    text_format = logging.Formatter(
        "[%(asctime)s] %(levelname)-7s %(scenario_tag)s%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO))
    console.setFormatter(text_format)
    _logger.addHandler(console)

    _logger.addHandler(_file_handler("test.log", text_format))
    if os.getenv("LOG_JSON", "").strip() == "1":
        _logger.addHandler(_file_handler("test.json.log", JsonFormatter()))

    return _logger


logger = _create_logger()
