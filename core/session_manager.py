"""
Browser Session 生命週期管理

每個情境 (scenario) 擁有自己的一組資源：
    Playwright driver → Browser → BrowserContext → Page

Setup:
    1. 啟動 Playwright 與指定瀏覽器（headless 不延遲，有畫面時加 slow_mo）
    2. 建立固定 viewport 的 context；有快取的登入狀態就直接掛上
    3. 開一個 page

Teardown（不論情境成功或失敗都會執行，可重複呼叫）:
    1. 保存 context 的登入狀態（加密）
    2. 使用者自訂步驟
    3. 情境失敗時擷取整頁截圖
    4. 依序關閉 page → context → browser → driver

每一步各自隔離錯誤；teardown 錯誤只記錄，不會蓋掉情境原本的結果。
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, AsyncIterator

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from config.config import BrowserFamily, Config
from core.credential_vault import CredentialVault
from core.exceptions import DriverLaunchError, SessionError, TeardownResourceError
from core.failure_capture import FailureArtifactCapturer, ScenarioOutcome
from core.plugin_manager import plugin_manager
from core.teardown import StageAction, TeardownPipeline
from utils.allure_helper import allure_step
from utils.logger import scenario_logger


class SessionState(str, Enum):
    UNINITIALIZED = "uninitialized"
    DRIVER_LAUNCHED = "driver_launched"
    CONTEXT_CREATED = "context_created"
    PAGE_READY = "page_ready"
    TORN_DOWN = "torn_down"


@dataclass
class SessionConfig:
    """單一 session 的設定"""

    browser: BrowserFamily = BrowserFamily.CHROMIUM
    headless: bool = False
    slow_mo: int = 50
    base_url: str = ""
    timeout_ms: int = 30000
    viewport_width: int = 960
    viewport_height: int = 1080
    persist_auth_state: bool = True
    auth_state_dir: Path = field(default_factory=lambda: Config.AUTH_STATE_DIR)
    auth_state_id: str = "default"
    results_dir: Path = field(default_factory=lambda: Config.RESULTS_DIR)

    def __post_init__(self):
        self.browser = BrowserFamily.parse(self.browser)
        self.auth_state_dir = Path(self.auth_state_dir)
        self.results_dir = Path(self.results_dir)

    @property
    def launch_slow_mo(self) -> int:
        """headless 時不延遲"""
        return 0 if self.headless else self.slow_mo

    @property
    def viewport(self) -> dict:
        return {"width": self.viewport_width, "height": self.viewport_height}

    @classmethod
    def from_env(cls, env=None, **overrides) -> "SessionConfig":
        """
        由 EnvManager 組出設定（環境變數 > {env}.json > base.json > Config）。

        Args:
            env: EnvManager，預設使用全域 env
            overrides: 直接覆蓋的欄位（例如命令列參數）
        """
        if env is None:
            from core.env_manager import env as default_env
            env = default_env

        values = env.session_settings()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


@dataclass
class BrowserSession:
    """一個情境擁有的瀏覽器資源"""

    config: SessionConfig
    scenario: str = ""
    playwright: Any = None
    browser: Any = None
    context: Any = None
    page: Any = None
    state: SessionState = SessionState.UNINITIALIZED
    used_cached_state: bool = False

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.PAGE_READY and self.page is not None


class SessionManager:
    """
    管理單一情境的 browser session

    用法：
        manager = SessionManager(SessionConfig(headless=True))
        session = await manager.setup("建立行程")
        ...
        await manager.teardown(ScenarioOutcome.passed("建立行程"))

        # 或
        async with SessionManager(config).scenario("建立行程") as session:
            ...
    """

    def __init__(self, config: SessionConfig | None = None,
                 vault: CredentialVault | None = None,
                 capturer: FailureArtifactCapturer | None = None,
                 playwright_factory=async_playwright):
        self.config = config or SessionConfig.from_env()
        self.vault = vault or CredentialVault(
            self.config.auth_state_dir, self.config.auth_state_id,
        )
        self.capturer = capturer or FailureArtifactCapturer(self.config.results_dir)
        self._playwright_factory = playwright_factory
        self._extra_stages: list[tuple[str, StageAction]] = []
        self.session = BrowserSession(config=self.config)
        self._log = scenario_logger("", self.config.browser.value)

    @property
    def state(self) -> SessionState:
        return self.session.state

    def add_teardown_stage(self, name: str, action: StageAction) -> None:
        """加入自訂 teardown 步驟（在保存登入狀態之後、失敗截圖之前執行）"""
        self._extra_stages.append((name, action))

    # ── Setup ──

    @allure_step("建立瀏覽器 session")
    async def setup(self, scenario: str = "") -> BrowserSession:
        """
        建立 driver、context、page。

        任何一步失敗都會先釋放已取得的資源，再把錯誤往上拋。

        Raises:
            SessionError: 同一個 manager 重複 setup
            DriverLaunchError: 瀏覽器無法啟動
        """
        if self.session.state is not SessionState.UNINITIALIZED:
            raise SessionError(f"Session 已經建立過 (狀態: {self.session.state.value})")

        session = self.session
        session.scenario = scenario
        self._log = scenario_logger(scenario, self.config.browser.value)
        config = self.config

        try:
            await self._launch(session)
            await self._create_context(session)
            session.page = await session.context.new_page()
            session.state = SessionState.PAGE_READY
        except BaseException:
            self._log.error(f"Session 建立失敗，釋放已取得的資源: {scenario}")
            await self._close_resources(session)
            session.state = SessionState.TORN_DOWN
            raise

        self._log.info(
            "Session 已就緒 "
            f"[{config.browser.value}, headless={config.headless}]",
        )
        plugin_manager.emit_session_ready(session)
        return session

    async def _launch(self, session: BrowserSession) -> None:
        config = self.config
        session.playwright = await self._playwright_factory().start()
        browser_type = getattr(session.playwright, config.browser.value)
        try:
            session.browser = await browser_type.launch(
                headless=config.headless,
                slow_mo=config.launch_slow_mo,
            )
        except PlaywrightError as e:
            raise DriverLaunchError(config.browser.value, e) from e

        session.state = SessionState.DRIVER_LAUNCHED
        plugin_manager.emit_driver_launched(config.browser.value, config.headless)
        self._log.info(f"瀏覽器已啟動: {config.browser.value}")

    async def _create_context(self, session: BrowserSession) -> None:
        config = self.config
        options: dict[str, Any] = {"viewport": config.viewport}
        if config.base_url:
            options["base_url"] = config.base_url

        state_path = self.vault.load() if config.persist_auth_state else None
        if state_path is not None:
            options["storage_state"] = str(state_path)

        try:
            session.context = await session.browser.new_context(**options)
        finally:
            if state_path is not None:
                self.vault.discard_staging()

        session.context.set_default_timeout(config.timeout_ms)
        session.used_cached_state = state_path is not None
        session.state = SessionState.CONTEXT_CREATED
        if session.used_cached_state:
            self._log.info("Context 已掛上快取的登入狀態")

    # ── Teardown ──

    @allure_step("清理瀏覽器 session")
    async def teardown(self, outcome: ScenarioOutcome | None = None) -> list[TeardownResourceError]:
        """
        依序清理所有資源。重複呼叫時不做任何事。

        Args:
            outcome: 情境結果，用來判斷是否需要失敗截圖

        Returns:
            各步驟的 TeardownResourceError（全部成功時為空）
        """
        session = self.session
        if session.state is SessionState.TORN_DOWN:
            self._log.debug("Session 已清理過，略過 teardown")
            return []
        if session.state is SessionState.UNINITIALIZED:
            session.state = SessionState.TORN_DOWN
            return []

        pipeline = TeardownPipeline()
        if session.context is not None and self.config.persist_auth_state:
            pipeline.add("persist-credentials", lambda: self._persist_credentials(session))
        for name, action in self._extra_stages:
            pipeline.add(name, action)
        pipeline.add(
            "capture-failure-artifact",
            lambda: self.capturer.capture(session.page, outcome),
        )
        self._add_close_stages(pipeline, session)

        errors = await pipeline.run()
        self._release(session)

        if errors:
            self._log.warning(f"Teardown 完成，{len(errors)} 個步驟失敗: {session.scenario}")
        else:
            self._log.info(f"Session 已關閉: {session.scenario or '(未命名)'}")
        plugin_manager.emit_session_closed(session, errors)
        return errors

    async def _persist_credentials(self, session: BrowserSession) -> None:
        try:
            await session.context.storage_state(path=str(self.vault.staging_path))
            self.vault.save()
        finally:
            self.vault.discard_staging()

    @staticmethod
    def _add_close_stages(pipeline: TeardownPipeline, session: BrowserSession) -> None:
        """page → context → browser → driver"""
        if session.page is not None:
            pipeline.add("close-page", session.page.close)
        if session.context is not None:
            pipeline.add("close-context", session.context.close)
        if session.browser is not None:
            pipeline.add("close-browser", session.browser.close)
        if session.playwright is not None:
            pipeline.add("stop-driver", session.playwright.stop)

    async def _close_resources(self, session: BrowserSession) -> None:
        """setup 失敗時使用：只關閉資源，不保存狀態也不截圖"""
        pipeline = TeardownPipeline()
        self._add_close_stages(pipeline, session)
        await pipeline.run()
        self._release(session)

    @staticmethod
    def _release(session: BrowserSession) -> None:
        session.page = None
        session.context = None
        session.browser = None
        session.playwright = None
        session.state = SessionState.TORN_DOWN

    # ── Context manager ──

    @asynccontextmanager
    async def scenario(self, name: str = "") -> AsyncIterator[BrowserSession]:
        """setup → yield session → teardown（依例外判斷成功或失敗）"""
        session = await self.setup(name)
        error: BaseException | None = None
        try:
            yield session
        except BaseException as e:
            error = e
            raise
        finally:
            await self.teardown(ScenarioOutcome.from_exception(name, error))


def clear_cached_credentials(env_manager, env_name: str) -> CredentialVault:
    """
    清除指定環境的登入快取（--clear-auth-state）。

    先切換到 env_name 再讀設定，各環境的 auth_state_id 不同，
    沒切換會清到預設環境的快取。
    """
    env_manager.switch(env_name)
    config = SessionConfig.from_env(env_manager)
    vault = CredentialVault(config.auth_state_dir, config.auth_state_id)
    vault.clear()
    return vault
