"""
設定管理模組
統一管理瀏覽器種類、headless、viewport、逾時、結果目錄與登入狀態快取位置。
支援透過環境變數覆蓋預設值，方便 CI/CD 整合。
支援設定驗證，提前發現設定錯誤。
"""

import os
import tempfile
from enum import Enum
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
CONFIG_DIR = Path(__file__).resolve().parent


TRUE_WORDS = ("true", "1", "yes", "on")
FALSE_WORDS = ("false", "0", "no", "off")


def parse_bool(value: str) -> bool | None:
    """布林字串 → bool，無法辨識時回傳 None"""
    lowered = value.strip().lower()
    if lowered in TRUE_WORDS:
        return True
    if lowered in FALSE_WORDS:
        return False
    return None


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    parsed = parse_bool(value)
    return default if parsed is None else parsed


class ConfigValidationError(Exception):
    """設定驗證失敗"""

    def __init__(self, errors: list[str]):
        self.errors = errors
        msg = "設定驗證失敗:\n" + "\n".join(f"  - {e}" for e in errors)
        super().__init__(msg)


class BrowserFamily(str, Enum):
    """可選的瀏覽器引擎"""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"

    @classmethod
    def parse(cls, value: "str | BrowserFamily | None") -> "BrowserFamily":
        """
        名稱 → BrowserFamily。未設定時回傳 chromium。

        Raises:
            ConfigValidationError: 不支援的瀏覽器名稱
        """
        if isinstance(value, BrowserFamily):
            return value
        if value is None or not value.strip():
            return cls.CHROMIUM
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ConfigValidationError(
                [f"不支援的瀏覽器: {value} (可用: {choices})"]
            ) from None


class Config:
    """框架全域設定"""

    # 瀏覽器
    BROWSER = os.getenv("BROWSER", "chromium").lower()
    HEADLESS = _as_bool(os.getenv("HEADLESS"), default=False)
    # 有畫面執行時每個動作間的延遲 (毫秒)，方便人眼觀察
    SLOW_MO = int(os.getenv("SLOW_MO", "50"))
    VIEWPORT_WIDTH = int(os.getenv("VIEWPORT_WIDTH", "960"))
    VIEWPORT_HEIGHT = int(os.getenv("VIEWPORT_HEIGHT", "1080"))

    # 目標應用程式
    BASE_URL = os.getenv("BASE_URL", "")

    # 超時設定 (毫秒)
    TIMEOUT = int(os.getenv("TIMEOUT", "30000"))

    # 結果與報告
    RESULTS_DIR = BASE_DIR / "TestResults"
    SCREENSHOT_DIR = RESULTS_DIR / "Screenshots"
    REPORT_DIR = BASE_DIR / "reports"

    # 登入狀態快取
    AUTH_STATE_DIR = Path(os.getenv("AUTH_STATE_DIR", tempfile.gettempdir()))
    AUTH_STATE_ID = os.getenv("AUTH_STATE_ID", "default")
    AUTH_KEY_FILE = Path(
        os.getenv("AUTH_KEY_FILE", str(Path.home() / ".browser_scenarios" / "state.key"))
    )

    @classmethod
    def browser_family(cls) -> BrowserFamily:
        return BrowserFamily.parse(cls.BROWSER)

    @classmethod
    def slow_mo(cls, headless: bool | None = None) -> int:
        """headless 時不延遲，有畫面時使用 SLOW_MO"""
        headless = cls.HEADLESS if headless is None else headless
        return 0 if headless else cls.SLOW_MO

    @classmethod
    def validate(cls) -> list[str]:
        """
        驗證目前設定。

        Returns:
            警告訊息列表

        Raises:
            ConfigValidationError: 有無效設定時拋出
        """
        errors: list[str] = []
        warnings: list[str] = []

        try:
            BrowserFamily.parse(cls.BROWSER)
        except ConfigValidationError as e:
            errors.extend(e.errors)

        if cls.TIMEOUT <= 0:
            errors.append(f"TIMEOUT 必須大於 0: {cls.TIMEOUT}")
        if cls.VIEWPORT_WIDTH <= 0 or cls.VIEWPORT_HEIGHT <= 0:
            errors.append(
                f"viewport 尺寸無效: {cls.VIEWPORT_WIDTH}x{cls.VIEWPORT_HEIGHT}"
            )
        if cls.SLOW_MO < 0:
            errors.append(f"SLOW_MO 不可為負數: {cls.SLOW_MO}")
        raw_headless = os.getenv("HEADLESS")
        if raw_headless is not None and parse_bool(raw_headless) is None:
            errors.append(f"HEADLESS 不是布林值: {raw_headless}")
        if not cls.AUTH_STATE_ID.strip():
            errors.append("AUTH_STATE_ID 不可為空")

        if not cls.BASE_URL:
            warnings.append("未設定 BASE_URL，情境中必須使用完整網址")
        elif not cls.BASE_URL.startswith(("http://", "https://")):
            warnings.append(f"BASE_URL 不是 http(s) 網址: {cls.BASE_URL}")

        if errors:
            raise ConfigValidationError(errors)

        return warnings
