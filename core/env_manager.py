"""
Environment Manager — 多環境設定繼承

dev / staging / ci 各一份 JSON，只寫與 base 不同的部分
（staging 換 base_url、CI 改 headless 並隔離登入狀態）。

設定查找順序：
    1. 環境變數 (最高優先，dot 換成底線後轉大寫，如 VIEWPORT_WIDTH)
    2. config/env/{env_name}.json
    3. config/env/base.json
    4. config.Config 內建預設值

環境變數是字串，會依該鍵原本的型別轉換：
HEADLESS=1 → True、TIMEOUT=5000 → 5000，轉不過去直接報錯，
不會讓 "fasle" 之類的拼錯默默變成字串。

用法：
    from core.env_manager import env

    env.switch("staging")
    width = env.get("viewport.width")
    config = SessionConfig(**env.session_settings())
"""

from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path

from config.config import Config, ConfigValidationError, parse_bool
from utils.logger import logger

_ENV_DIR = Path(__file__).resolve().parent.parent / "config" / "env"

# SessionConfig 欄位 → 設定鍵
SESSION_KEYS = {
    "browser": "browser",
    "headless": "headless",
    "slow_mo": "slow_mo",
    "base_url": "base_url",
    "timeout_ms": "timeout",
    "viewport_width": "viewport.width",
    "viewport_height": "viewport.height",
    "persist_auth_state": "persist_auth_state",
    "auth_state_dir": "auth_state_dir",
    "auth_state_id": "auth_state_id",
    "results_dir": "results_dir",
}

_ENV_TEMPLATES = {
    "base": {
        "_comment": "基底設定，所有環境共用",
        "browser": "chromium",
        "timeout": 30000,
        "viewport": {"width": 960, "height": 1080},
    },
    "dev": {
        "_comment": "開發環境，有畫面方便觀察",
        "headless": False,
        "log_level": "DEBUG",
    },
    "staging": {
        "_comment": "Staging 環境",
        "base_url": "https://staging.example.com",
        "headless": True,
    },
    "ci": {
        "_comment": "CI pipeline，登入狀態依 pipeline 隔離",
        "headless": True,
        "auth_state_id": "ci",
        "log_level": "WARNING",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """深層合併兩個 dict，override 覆蓋 base"""
    merged = deepcopy(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _defaults() -> dict:
    return {
        "browser": Config.BROWSER,
        "headless": Config.HEADLESS,
        "slow_mo": Config.SLOW_MO,
        "base_url": Config.BASE_URL,
        "timeout": Config.TIMEOUT,
        "viewport": {
            "width": Config.VIEWPORT_WIDTH,
            "height": Config.VIEWPORT_HEIGHT,
        },
        "persist_auth_state": True,
        "auth_state_dir": str(Config.AUTH_STATE_DIR),
        "auth_state_id": Config.AUTH_STATE_ID,
        "results_dir": str(Config.RESULTS_DIR),
        "log_level": "INFO",
    }


def _cast(raw: str, like=None):
    """
    把環境變數字串轉成 like 的型別。

    like 為 None（設定中沒有這個鍵）時用猜的：數字 → int/float，
    true/yes、false/no → bool，其餘保留字串。

    Raises:
        ConfigValidationError: 字串無法轉成 like 的型別
    """
    text = raw.strip()
    lowered = text.lower()

    if isinstance(like, bool):
        parsed = parse_bool(text)
        if parsed is None:
            raise ConfigValidationError([f"不是布林值: {raw!r}"])
        return parsed

    if isinstance(like, (int, float)):
        try:
            return type(like)(text)
        except ValueError:
            raise ConfigValidationError(
                [f"不是 {type(like).__name__}: {raw!r}"]
            ) from None

    if like is not None:
        return raw

    for convert in (int, float):
        try:
            return convert(text)
        except ValueError:
            pass
    if lowered in ("true", "yes"):
        return True
    if lowered in ("false", "no"):
        return False
    return raw


class EnvManager:
    """多環境設定管理"""

    def __init__(self, env_dir: str | Path | None = None):
        self._env_name: str = os.getenv("TEST_ENV", "dev")
        self._env_dir = Path(env_dir) if env_dir else _ENV_DIR
        self._config: dict | None = None

    @property
    def env_name(self) -> str:
        return self._env_name

    def switch(self, env_name: str) -> None:
        """切換環境並重新載入"""
        logger.info(f"切換環境: {self._env_name} → {env_name}")
        self._env_name = env_name
        self._config = None
        self._ensure_loaded()

    def get(self, key: str, default=None):
        """
        取得設定值，支援 dot notation。

            env.get("viewport")          → {"width": 960, "height": 1080}
            env.get("viewport.width")    → 960
        """
        value = self._lookup(key, default)
        override = os.getenv(key.upper().replace(".", "_"))
        if override is None:
            return value
        return _cast(override, like=value)

    def get_all(self) -> dict:
        """完整合併後的設定（不含環境變數覆蓋）"""
        return deepcopy(self._ensure_loaded())

    def set(self, key: str, value) -> None:
        """runtime 覆寫，不寫檔"""
        *parents, leaf = key.split(".")
        target = self._ensure_loaded()
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value

    def session_settings(self) -> dict:
        """SessionConfig 的建構參數"""
        return {field: self.get(key) for field, key in SESSION_KEYS.items()}

    def create_env_files(self) -> list[Path]:
        """
        產生 base / dev / staging / ci 設定檔範本，已存在的不覆蓋。

        Returns:
            新建立的檔案
        """
        self._env_dir.mkdir(parents=True, exist_ok=True)
        created = []
        for name, content in _ENV_TEMPLATES.items():
            path = self._env_dir / f"{name}.json"
            if path.exists():
                continue
            path.write_text(json.dumps(content, indent=4, ensure_ascii=False), encoding="utf-8")
            logger.info(f"已建立環境設定: {path}")
            created.append(path)
        return created

    # ── 內部方法 ──

    def _lookup(self, key: str, default):
        value = self._ensure_loaded()
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def _ensure_loaded(self) -> dict:
        if self._config is None:
            config = _defaults()
            for name in ("base", self._env_name):
                path = self._env_dir / f"{name}.json"
                if path.exists():
                    config = _deep_merge(config, self._read_json(path))
            self._config = config
            logger.debug(f"環境設定已載入: {self._env_name}")
        return self._config

    @staticmethod
    def _read_json(path: Path) -> dict:
        data = json.loads(path.read_text(encoding="utf-8"))
        return {k: v for k, v in data.items() if not k.startswith("_")}


# 全域 singleton
env = EnvManager()
