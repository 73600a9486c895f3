"""
Page Actions — 元素操作層

情境作者透過這一層操作頁面，不直接使用 Playwright 的原生 API。
所有操作都接受 LocatorSpec 或原生 selector 字串。

已整合：
- 一致的逾時設定與 WaitTimeoutError
- 多筆符合時固定操作文件順序的第一個元素（strict=True 時拒絕多筆）
- Event Bus / Plugin 通知（page.action.before / after / error）
- Allure step 標記
- 讀取類操作找不到元素時回傳預設值，不拋出例外

用法：
    actions = PageActions(session)
    await actions.goto("/main.aspx")
    await actions.click_by_role("menuitem", "New", exact=True)
    await actions.fill(LocatorSpec.label("Title"), "東京出差")
    assert await actions.is_visible(LocatorSpec.role("heading", "New Travel Itinerary"))
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, TypeVar, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from config.config import Config
from core.exceptions import AmbiguousLocatorError, SessionNotReadyError, WaitTimeoutError
from core.locator import LocatorSpec, TextMatch
from core.plugin_manager import plugin_manager
from utils.allure_helper import step
from utils.logger import logger

T = TypeVar("T")
Target = Union[LocatorSpec, str]

DEFAULT_WAIT_TIMEOUT_MS = 30000
LOAD_STATES = ("load", "domcontentloaded", "networkidle")


class PageActions:
    """
    單一 active page 上的元素操作

    提供：
    - 查詢（locate / find_all / get_element_count）
    - 動作（click / fill / check / select / hover / focus / press ...）
    - 等待（selector / locator / URL / load state）
    - 讀取（文字、屬性、可見、啟用、勾選）
    - 整頁截圖與導覽
    """

    def __init__(self, session, timeout_ms: int | None = None):
        page = getattr(session, "page", None)
        if page is None:
            raise SessionNotReadyError()
        self._page = page
        config = getattr(session, "config", None)
        self.timeout_ms = timeout_ms or getattr(config, "timeout_ms", None) or Config.TIMEOUT

    @property
    def page(self):
        """直接存取 Playwright Page（本層沒提供的進階操作用）"""
        return self._page

    # ── 查詢 ──

    def locate(self, target: Target):
        """LocatorSpec / selector → Playwright Locator（可能對應 0、1 或多個元素）"""
        return LocatorSpec.coerce(target).resolve(self._page)

    async def find_all(self, target: Target) -> list:
        """目前所有符合的元素，依文件順序"""
        return await self.locate(target).all()

    async def get_element_count(self, target: Target) -> int:
        return await self.locate(target).count()

    # ── 動作 ──

    async def click(self, target: Target, strict: bool = False) -> None:
        await self._act("click", target, strict, lambda loc: loc.click(timeout=self.timeout_ms))

    async def double_click(self, target: Target, strict: bool = False) -> None:
        await self._act("double_click", target, strict,
                        lambda loc: loc.dblclick(timeout=self.timeout_ms))

    async def fill(self, target: Target, value: str, strict: bool = False) -> None:
        await self._act("fill", target, strict,
                        lambda loc: loc.fill(value, timeout=self.timeout_ms))

    async def type_text(self, target: Target, text: str, delay: int = 0,
                        strict: bool = False) -> None:
        """逐字輸入（會觸發每個按鍵事件）"""
        await self._act("type_text", target, strict,
                        lambda loc: loc.press_sequentially(text, delay=delay,
                                                           timeout=self.timeout_ms))

    async def press(self, target: Target, key: str, strict: bool = False) -> None:
        await self._act("press", target, strict,
                        lambda loc: loc.press(key, timeout=self.timeout_ms), key=key)

    async def check(self, target: Target, strict: bool = False) -> None:
        await self._act("check", target, strict, lambda loc: loc.check(timeout=self.timeout_ms))

    async def uncheck(self, target: Target, strict: bool = False) -> None:
        await self._act("uncheck", target, strict,
                        lambda loc: loc.uncheck(timeout=self.timeout_ms))

    async def select_option(self, target: Target, value: str | list[str],
                            strict: bool = False) -> None:
        await self._act("select_option", target, strict,
                        lambda loc: loc.select_option(value, timeout=self.timeout_ms),
                        value=value)

    async def hover(self, target: Target, strict: bool = False) -> None:
        await self._act("hover", target, strict, lambda loc: loc.hover(timeout=self.timeout_ms))

    async def focus(self, target: Target, strict: bool = False) -> None:
        await self._act("focus", target, strict, lambda loc: loc.focus(timeout=self.timeout_ms))

    async def scroll_into_view(self, target: Target, strict: bool = False) -> None:
        await self._act("scroll_into_view", target, strict,
                        lambda loc: loc.scroll_into_view_if_needed(timeout=self.timeout_ms))

    # ── 常用捷徑 ──

    async def click_by_role(self, role: str, name: TextMatch | None = None,
                            exact: bool = False) -> None:
        await self.click(LocatorSpec.role(role, name=name, exact=exact))

    async def click_by_text(self, text: TextMatch, exact: bool = False) -> None:
        await self.click(LocatorSpec.text(text, exact=exact))

    async def click_by_label(self, label: TextMatch) -> None:
        await self.click(LocatorSpec.label(label))

    async def click_by_test_id(self, test_id: str) -> None:
        await self.click(LocatorSpec.test_id(test_id))

    async def click_by_placeholder(self, placeholder: TextMatch) -> None:
        await self.click(LocatorSpec.placeholder(placeholder))

    async def fill_by_label(self, label: TextMatch, value: str) -> None:
        await self.fill(LocatorSpec.label(label), value)

    async def fill_by_placeholder(self, placeholder: TextMatch, value: str) -> None:
        await self.fill(LocatorSpec.placeholder(placeholder), value)

    async def fill_by_role(self, role: str, name: TextMatch, value: str,
                           exact: bool = False) -> None:
        await self.fill(LocatorSpec.role(role, name=name, exact=exact), value)

    # ── 等待 ──

    async def wait_for_selector(self, selector: str,
                                timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS,
                                state: str = "visible") -> None:
        """等待 selector 出現（預設需可見）"""
        try:
            await self._page.wait_for_selector(selector, state=state, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise WaitTimeoutError(selector, timeout_ms) from None

    async def wait_for(self, target: Target, state: str = "visible",
                       timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS) -> None:
        """等待 LocatorSpec 的第一個元素達到指定狀態"""
        spec = LocatorSpec.coerce(target)
        try:
            await spec.resolve(self._page).first.wait_for(state=state, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise WaitTimeoutError(spec.describe(), timeout_ms) from None

    async def wait_for_url(self, url, timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS) -> None:
        """url 可為字串、glob、regex 或判斷函式"""
        try:
            await self._page.wait_for_url(url, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise WaitTimeoutError(str(url), timeout_ms) from None

    async def wait_for_load_state(self, state: str = "load",
                                  timeout_ms: int = DEFAULT_WAIT_TIMEOUT_MS) -> None:
        normalized = state.strip().lower()
        if normalized not in LOAD_STATES:
            raise ValueError(f"不支援的 load state: {state} (可用: {', '.join(LOAD_STATES)})")
        try:
            await self._page.wait_for_load_state(normalized, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            raise WaitTimeoutError(f"load state: {normalized}", timeout_ms) from None

    # ── 讀取（不改變頁面，找不到元素時回傳預設值）──

    async def is_visible(self, target: Target) -> bool:
        # is_visible 本身不等待，元素不存在即為 False
        return await self._read(target, lambda loc: loc.is_visible(), False)

    async def is_hidden(self, target: Target) -> bool:
        return await self._read(target, lambda loc: loc.is_hidden(), True)

    async def is_enabled(self, target: Target) -> bool:
        return await self._read(target, lambda loc: loc.is_enabled(timeout=self.timeout_ms), False)

    async def is_checked(self, target: Target) -> bool:
        return await self._read(target, lambda loc: loc.is_checked(timeout=self.timeout_ms), False)

    async def get_text(self, target: Target) -> str:
        text = await self._read(target, lambda loc: loc.text_content(timeout=self.timeout_ms), "")
        return text or ""

    async def get_inner_text(self, target: Target) -> str:
        text = await self._read(target, lambda loc: loc.inner_text(timeout=self.timeout_ms), "")
        return text or ""

    async def get_attribute(self, target: Target, name: str) -> str:
        """屬性不存在時回傳空字串"""
        value = await self._read(
            target, lambda loc: loc.get_attribute(name, timeout=self.timeout_ms), "",
        )
        return value or ""

    async def has_text(self, text: TextMatch, exact: bool = False) -> bool:
        return await self.get_element_count(LocatorSpec.text(text, exact=exact)) > 0

    async def has_text_in_element(self, target: Target, text: str) -> bool:
        return text in await self.get_text(target)

    # ── 截圖（一律整頁）──

    async def screenshot(self, path: str | Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        await self._page.screenshot(path=str(path), full_page=True)
        logger.info(f"截圖已儲存: {path}")
        return path

    async def screenshot_bytes(self) -> bytes:
        return await self._page.screenshot(full_page=True)

    # ── 導覽 ──

    async def goto(self, url: str) -> None:
        """相對路徑會以 context 的 base_url 為基準"""
        logger.info(f"前往: {url}")
        with step(f"前往 {url}"):
            await self._page.goto(url, timeout=self.timeout_ms)

    async def go_back(self) -> None:
        await self._page.go_back(timeout=self.timeout_ms)

    async def go_forward(self) -> None:
        await self._page.go_forward(timeout=self.timeout_ms)

    async def reload(self) -> None:
        await self._page.reload(timeout=self.timeout_ms)

    @property
    def current_url(self) -> str:
        return self._page.url

    # ── 內部方法 ──

    async def _target_locator(self, spec: LocatorSpec, strict: bool):
        locator = spec.resolve(self._page)
        if strict:
            count = await locator.count()
            if count > 1:
                raise AmbiguousLocatorError(spec.describe(), count)
            return locator
        # 多筆符合時固定取文件順序第一個
        return locator.first

    async def _act(self, action: str, target: Target, strict: bool,
                   operation: Callable[[Any], Awaitable[Any]], **details) -> None:
        spec = LocatorSpec.coerce(target)
        description = spec.describe()
        plugin_manager.emit_before_action(self, action, description, **details)
        logger.info(f"{action}: {description}")
        try:
            with step(f"{action} {description}"):
                locator = await self._target_locator(spec, strict)
                await operation(locator)
        except PlaywrightTimeoutError:
            error = WaitTimeoutError(description, self.timeout_ms)
            plugin_manager.emit_action_error(self, action, description, error)
            raise error from None
        except Exception as e:
            plugin_manager.emit_action_error(self, action, description, e)
            raise
        plugin_manager.emit_after_action(self, action, description, **details)

    async def _read(self, target: Target, reader: Callable[[Any], Awaitable[T]],
                    default: T) -> T:
        locator = self.locate(target)
        try:
            if await locator.count() == 0:
                return default
            return await reader(locator.first)
        except PlaywrightError as e:
            # 讀取期間元素消失 / 頁面切換：視為不存在
            logger.debug(f"讀取失敗，回傳預設值 {default!r}: {e}")
            return default
