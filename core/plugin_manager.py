"""
Plugin 系統 — 可插拔擴充不改核心

讓使用者自訂功能（失敗現場保全、通知管道、自訂報告...），
只要實作 Plugin 介面，放進 plugins/ 目錄或手動註冊即可生效。

用法：
    class MyPlugin(Plugin):
        name = "my_plugin"

        def on_test_fail(self, test_name, session, error):
            ...

    plugin_manager.register(MyPlugin())

也可以用自動掃描：
    plugin_manager.discover("plugins/")
"""

from __future__ import annotations

import importlib.util
import inspect
import sys
from abc import ABC
from pathlib import Path

from core.event_bus import Events, event_bus
from core.exceptions import PluginError
from utils.logger import logger

# Plugin hook → event_bus 事件
HOOK_EVENTS = {
    "on_driver_launched": Events.DRIVER_LAUNCHED,
    "on_session_ready": Events.SESSION_READY,
    "on_session_closed": Events.SESSION_CLOSED,
    "on_before_action": Events.ACTION_BEFORE,
    "on_after_action": Events.ACTION_AFTER,
    "on_action_error": Events.ACTION_ERROR,
    "on_credential_discarded": Events.CREDENTIAL_DISCARDED,
    "on_test_start": Events.TEST_START,
    "on_test_pass": Events.TEST_PASS,
    "on_test_fail": Events.TEST_FAIL,
    "on_test_skip": Events.TEST_SKIP,
    "on_artifact": Events.ARTIFACT_CAPTURED,
}


class Plugin(ABC):
    """
    Plugin 基底類別

    所有 hook method 都是可選的，覆寫你需要的即可。
    """

    name: str = "unnamed_plugin"
    version: str = "1.0.0"
    description: str = ""
    enabled: bool = True

    # ── Lifecycle hooks ──

    def on_register(self) -> None:
        """Plugin 被註冊時呼叫（初始化）"""

    def on_unregister(self) -> None:
        """Plugin 被移除時呼叫（清理）"""

    # ── Session hooks ──

    def on_driver_launched(self, browser: str, headless: bool) -> None:
        """瀏覽器啟動後"""

    def on_session_ready(self, session) -> None:
        """context 與 page 建立完成"""

    def on_session_closed(self, session, errors: list) -> None:
        """teardown 結束，errors 為各步驟的 TeardownResourceError"""

    # ── Page hooks ──

    def on_before_action(self, actions, action: str, target: str, **kwargs) -> None:
        """元素操作前 (click, fill, ...)"""

    def on_after_action(self, actions, action: str, target: str, **kwargs) -> None:
        """元素操作後"""

    def on_action_error(self, actions, action: str, target: str,
                        error: Exception) -> None:
        """元素操作出錯"""

    # ── Credential hooks ──

    def on_credential_discarded(self, path: str, reason: str) -> None:
        """快取的登入狀態無法解密而被刪除，下次需重新登入"""

    # ── Test hooks ──

    def on_test_start(self, test_name: str) -> None:
        """測試開始"""

    def on_test_pass(self, test_name: str, duration: float) -> None:
        """測試通過"""

    def on_test_fail(self, test_name: str, session, error: Exception) -> None:
        """測試失敗（session 可能為 None）"""

    def on_test_skip(self, test_name: str, reason: str) -> None:
        """測試跳過"""

    # ── Artifact hooks ──

    def on_artifact(self, path: str, test_name: str) -> None:
        """失敗截圖已保存並登記"""


class PluginManager:
    """Plugin 管理器"""

    def __init__(self, bus=None):
        self._plugins: dict[str, Plugin] = {}
        self._handlers: dict[str, list[tuple[str, object]]] = {}
        self._bus = bus or event_bus

    def register(self, plugin: Plugin) -> None:
        """註冊 Plugin"""
        if not isinstance(plugin, Plugin):
            raise PluginError(
                plugin_name=getattr(plugin, "name", str(type(plugin))),
                message="必須繼承 Plugin 基底類別",
            )

        name = plugin.name
        if name in self._plugins:
            logger.warning(f"Plugin '{name}' 已存在，將被替換")
            self.unregister(name)

        self._plugins[name] = plugin
        self._bind_events(plugin)
        plugin.on_register()
        logger.info(f"Plugin 已註冊: {name} v{plugin.version}")

    def unregister(self, name: str) -> None:
        """移除 Plugin，並解除其事件訂閱"""
        plugin = self._plugins.pop(name, None)
        if plugin:
            for event_name, handler in self._handlers.pop(name, []):
                self._bus.off(event_name, handler)
            plugin.on_unregister()
            logger.info(f"Plugin 已移除: {name}")

    def get(self, name: str) -> Plugin | None:
        """取得 Plugin 實例"""
        return self._plugins.get(name)

    def list_plugins(self) -> list[dict]:
        """列出所有已註冊的 Plugin"""
        return [
            {
                "name": p.name,
                "version": p.version,
                "description": p.description,
                "enabled": p.enabled,
            }
            for p in self._plugins.values()
        ]

    def discover(self, directory: str | Path) -> int:
        """
        自動掃描目錄下的 Plugin 檔案並註冊。

        檔案命名規則：*_plugin.py
        檔案中需有繼承 Plugin 的 class。

        Returns:
            成功載入的 Plugin 數量
        """
        directory = Path(directory)
        if not directory.exists():
            logger.warning(f"Plugin 目錄不存在: {directory}")
            return 0

        loaded = 0
        for py_file in sorted(directory.glob("*_plugin.py")):
            try:
                module_name = py_file.stem
                spec = importlib.util.spec_from_file_location(module_name, py_file)
                module = importlib.util.module_from_spec(spec)
                sys.modules[module_name] = module
                spec.loader.exec_module(module)

                for _, cls in inspect.getmembers(module, inspect.isclass):
                    if (issubclass(cls, Plugin) and cls is not Plugin
                            and cls.__module__ == module_name):
                        self.register(cls())
                        loaded += 1
            except Exception as e:
                logger.error(f"載入 Plugin 失敗 [{py_file.name}]: {e}")

        logger.info(f"Plugin 自動掃描完成: {loaded} 個已載入")
        return loaded

    def _bind_events(self, plugin: Plugin) -> None:
        """將 Plugin 覆寫的 hook method 綁定到 event bus"""
        bound = []
        for method_name, event_name in HOOK_EVENTS.items():
            if not _is_overridden(plugin, method_name):
                continue
            method = getattr(plugin, method_name)

            def _make_handler(m):
                def handler(event):
                    if plugin.enabled:
                        m(**event.data)
                return handler

            handler = _make_handler(method)
            self._bus.on(event_name, handler)
            bound.append((event_name, handler))
        self._handlers[plugin.name] = bound

    # ── 便捷的 emit 方法 ──

    def emit_driver_launched(self, browser: str, headless: bool) -> None:
        self._bus.emit(Events.DRIVER_LAUNCHED, {
            "browser": browser, "headless": headless,
        }, source="session_manager")

    def emit_session_ready(self, session) -> None:
        self._bus.emit(Events.SESSION_READY, {"session": session}, source="session_manager")

    def emit_session_closed(self, session, errors: list) -> None:
        self._bus.emit(Events.SESSION_CLOSED, {
            "session": session, "errors": errors,
        }, source="session_manager")

    def emit_before_action(self, actions, action: str, target: str,
                           **kwargs) -> None:
        self._bus.emit(Events.ACTION_BEFORE, {
            "actions": actions, "action": action, "target": target, **kwargs,
        }, source="page_actions")

    def emit_after_action(self, actions, action: str, target: str,
                          **kwargs) -> None:
        self._bus.emit(Events.ACTION_AFTER, {
            "actions": actions, "action": action, "target": target, **kwargs,
        }, source="page_actions")

    def emit_action_error(self, actions, action: str, target: str,
                          error: Exception) -> None:
        self._bus.emit(Events.ACTION_ERROR, {
            "actions": actions, "action": action, "target": target, "error": error,
        }, source="page_actions")

    def emit_credential_discarded(self, path: str, reason: str) -> None:
        self._bus.emit(Events.CREDENTIAL_DISCARDED, {
            "path": path, "reason": reason,
        }, source="credential_vault")

    def emit_test_start(self, test_name: str) -> None:
        self._bus.emit(Events.TEST_START, {"test_name": test_name}, source="conftest")

    def emit_test_pass(self, test_name: str, duration: float) -> None:
        self._bus.emit(Events.TEST_PASS, {
            "test_name": test_name, "duration": duration,
        }, source="conftest")

    def emit_test_fail(self, test_name: str, session, error: Exception) -> None:
        self._bus.emit(Events.TEST_FAIL, {
            "test_name": test_name, "session": session, "error": error,
        }, source="conftest")

    def emit_test_skip(self, test_name: str, reason: str) -> None:
        self._bus.emit(Events.TEST_SKIP, {
            "test_name": test_name, "reason": reason,
        }, source="conftest")

    def emit_artifact(self, path: str, test_name: str) -> None:
        self._bus.emit(Events.ARTIFACT_CAPTURED, {
            "path": path, "test_name": test_name,
        }, source="failure_capture")


def _is_overridden(instance: Plugin, method_name: str) -> bool:
    """判斷 Plugin 子類別是否覆寫了某方法"""
    base_method = getattr(Plugin, method_name, None)
    instance_method = getattr(type(instance), method_name, None)
    return instance_method is not base_method


# 全域 singleton
plugin_manager = PluginManager()
