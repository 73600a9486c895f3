"""
pytest 全域 fixtures

提供：
- browser_session fixture：每個情境自動建立/清理 Playwright session
  （含加密的登入狀態快取）
- page_actions fixture：情境作者使用的元素操作層
- 失敗時自動整頁截圖（含 Allure 報告附件）
- 命令列參數支援 (--target-browser, --headed, --env, --clear-auth-state)
- Plugin 系統自動載入
- Event Bus 測試生命週期事件
"""

from pathlib import Path

import pytest
import pytest_asyncio

from core.credential_vault import CredentialVault
from core.env_manager import env
from core.failure_capture import ScenarioOutcome
from core.page_actions import PageActions
from core.plugin_manager import plugin_manager
from core.session_manager import SessionConfig, SessionManager, clear_cached_credentials
from utils.logger import logger

# 載入自訂報告 plugin
from utils import report_plugin  # noqa: F401


# ── 框架初始化 ──

def pytest_configure(config):
    """pytest 啟動時：自動掃描 plugins/ 目錄，必要時清除登入快取"""
    plugins_dir = Path(__file__).resolve().parent / "plugins"
    if plugins_dir.exists():
        loaded = plugin_manager.discover(plugins_dir)
        if loaded:
            logger.info(f"自動載入 {loaded} 個 plugin")

    if config.getoption("--clear-auth-state"):
        clear_cached_credentials(env, config.getoption("--env"))
        logger.info("已依 --clear-auth-state 清除登入快取，本次需重新登入")


# ── 命令列參數 ──

def pytest_addoption(parser):
    """新增自訂命令列參數"""
    parser.addoption(
        "--target-browser",
        action="store",
        default=None,
        choices=["chromium", "firefox", "webkit"],
        help="瀏覽器引擎（預設讀取 BROWSER 環境變數，否則 chromium）",
    )
    parser.addoption(
        "--headed",
        action="store_true",
        default=False,
        help="有畫面執行（覆蓋 HEADLESS 設定）",
    )
    parser.addoption(
        "--env",
        action="store",
        default="dev",
        help="測試環境: dev / staging / ci",
    )
    parser.addoption(
        "--clear-auth-state",
        action="store_true",
        default=False,
        help="執行前清除快取的登入狀態，強制重新登入",
    )


# ── Session / Environment ──

@pytest.fixture(scope="session")
def test_env(request) -> str:
    """取得測試環境並初始化 EnvManager"""
    env_name = request.config.getoption("--env")
    env.switch(env_name)
    return env_name


@pytest.fixture(scope="session")
def session_config(request, test_env) -> SessionConfig:
    """整個測試 session 共用的瀏覽器設定"""
    headed = request.config.getoption("--headed")
    return SessionConfig.from_env(
        env,
        browser=request.config.getoption("--target-browser"),
        headless=False if headed else None,
    )


@pytest.fixture
def credential_vault(session_config) -> CredentialVault:
    """每個情境一個 vault 實例（明文暫存檔路徑互不重複）"""
    return CredentialVault(session_config.auth_state_dir, session_config.auth_state_id)


# ── Browser Session ──

@pytest_asyncio.fixture
async def browser_session(request, session_config, credential_vault):
    """
    每個情境自動建立並清理 browser session。

    teardown 依序：保存登入狀態 → 失敗截圖 → 關閉 page / context / browser / driver
    """
    scenario = request.node.name
    manager = SessionManager(session_config, vault=credential_vault)
    logger.info(f"===== 建立 session: {scenario} =====")
    session = await manager.setup(scenario)
    request.node.browser_session = session
    yield session

    outcome = ScenarioOutcome.from_reports(
        scenario,
        getattr(request.node, "rep_setup", None),
        getattr(request.node, "rep_call", None),
    )
    logger.info(f"===== 清理 session: {scenario} =====")
    await manager.teardown(outcome)


@pytest.fixture
def page_actions(browser_session) -> PageActions:
    """元素操作層 fixture"""
    return PageActions(browser_session)


# ── 測試生命週期 Hook ──

@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """保存各階段結果給 teardown 判斷 + Plugin 通知"""
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)

    if report.when != "call":
        return

    test_name = item.name
    if report.passed:
        plugin_manager.emit_test_pass(test_name, report.duration)
    elif report.failed:
        logger.error(f"測試失敗: {test_name}")
        plugin_manager.emit_test_fail(
            test_name,
            getattr(item, "browser_session", None),
            Exception(str(report.longrepr)),
        )
    elif report.skipped:
        plugin_manager.emit_test_skip(test_name, str(report.longrepr))


def pytest_runtest_setup(item):
    """測試開始前通知"""
    plugin_manager.emit_test_start(item.name)
