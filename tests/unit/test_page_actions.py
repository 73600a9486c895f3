"""
core/page_actions.py 單元測試

以 mock Page / Locator 驗證：
- 多筆符合時固定操作第一個元素，strict 模式拒絕多筆
- Playwright 逾時轉成 WaitTimeoutError
- 讀取類操作找不到元素時回傳預設值
- Plugin 事件通知
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from core.exceptions import AmbiguousLocatorError, SessionNotReadyError, WaitTimeoutError
from core.locator import LocatorSpec
from core.page_actions import PageActions

_LOCATOR_METHODS = (
    "click", "dblclick", "fill", "press_sequentially", "press", "check", "uncheck",
    "select_option", "hover", "focus", "scroll_into_view_if_needed",
)


def _make_locator(count: int = 1) -> MagicMock:
    locator = MagicMock()
    locator.count = AsyncMock(return_value=count)
    locator.all = AsyncMock(return_value=[MagicMock() for _ in range(count)])
    for name in _LOCATOR_METHODS:
        setattr(locator, name, AsyncMock())
    locator.first = AsyncMock()
    return locator


def _make_page(locator: MagicMock) -> MagicMock:
    page = MagicMock()
    for name in ("get_by_role", "get_by_text", "get_by_label", "get_by_test_id",
                 "get_by_placeholder", "locator"):
        getattr(page, name).return_value = locator
    page.wait_for_selector = AsyncMock()
    page.wait_for_url = AsyncMock()
    page.wait_for_load_state = AsyncMock()
    page.screenshot = AsyncMock(return_value=b"\x89PNG")
    page.goto = AsyncMock()
    page.url = "https://travel.example.com/main.aspx"
    return page


@pytest.fixture
def locator():
    return _make_locator()


@pytest.fixture
def page(locator):
    return _make_page(locator)


@pytest.fixture
def mock_plugins():
    with patch("core.page_actions.plugin_manager") as pm, \
         patch("core.page_actions.step"):
        yield pm


@pytest.fixture
def actions(page, mock_plugins):
    session = SimpleNamespace(page=page, config=SimpleNamespace(timeout_ms=5000))
    return PageActions(session)


@pytest.mark.unit
class TestPageActionsInit:
    """建立"""

    @pytest.mark.unit
    def test_requires_page(self):
        """session 沒有 page 時拋出 SessionNotReadyError"""
        with pytest.raises(SessionNotReadyError):
            PageActions(SimpleNamespace(page=None))

    @pytest.mark.unit
    def test_timeout_from_session_config(self, actions):
        assert actions.timeout_ms == 5000

    @pytest.mark.unit
    def test_explicit_timeout_wins(self, page):
        session = SimpleNamespace(page=page, config=SimpleNamespace(timeout_ms=5000))
        assert PageActions(session, timeout_ms=1200).timeout_ms == 1200

    @pytest.mark.unit
    def test_current_url(self, actions):
        assert actions.current_url == "https://travel.example.com/main.aspx"


@pytest.mark.unit
class TestPageActionsAct:
    """動作類操作"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_click_uses_first_match(self, actions, locator):
        """非 strict：固定操作文件順序第一個元素"""
        await actions.click("button.save")
        locator.first.click.assert_awaited_once_with(timeout=5000)
        locator.click.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_strict_single_match(self, page):
        locator = _make_locator(count=1)
        page.locator.return_value = locator
        with patch("core.page_actions.plugin_manager"), patch("core.page_actions.step"):
            actions = PageActions(SimpleNamespace(page=page, config=None))
            await actions.click("#only", strict=True)
        locator.click.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_strict_multiple_matches_raises(self, page, mock_plugins):
        """strict：多筆符合時拋出 AmbiguousLocatorError"""
        page.get_by_role.return_value = _make_locator(count=3)
        actions = PageActions(SimpleNamespace(page=page, config=None))
        with pytest.raises(AmbiguousLocatorError) as exc_info:
            await actions.click(LocatorSpec.role("button"), strict=True)
        assert exc_info.value.count == 3
        mock_plugins.emit_action_error.assert_called_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_becomes_wait_timeout(self, actions, locator, mock_plugins):
        """Playwright 逾時轉成 WaitTimeoutError"""
        locator.first.click.side_effect = PlaywrightTimeoutError("Timeout 5000ms exceeded")
        with pytest.raises(WaitTimeoutError) as exc_info:
            await actions.click("#slow")
        assert exc_info.value.timeout_ms == 5000
        assert "#slow" in exc_info.value.selector
        mock_plugins.emit_after_action.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_events_emitted(self, actions, mock_plugins):
        await actions.click("#a")
        mock_plugins.emit_before_action.assert_called_once_with(actions, "click", "[selector=#a]")
        mock_plugins.emit_after_action.assert_called_once_with(actions, "click", "[selector=#a]")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fill(self, actions, locator):
        await actions.fill(LocatorSpec.label("Title"), "東京出差")
        locator.first.fill.assert_awaited_once_with("東京出差", timeout=5000)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_type_text(self, actions, locator):
        await actions.type_text("#q", "abc", delay=20)
        locator.first.press_sequentially.assert_awaited_once_with("abc", delay=20, timeout=5000)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_select_option(self, actions, locator):
        await actions.select_option("select#city", "TPE")
        locator.first.select_option.assert_awaited_once_with("TPE", timeout=5000)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_click_by_role(self, actions, page):
        await actions.click_by_role("menuitem", "New", exact=True)
        page.get_by_role.assert_called_once_with("menuitem", name="New", exact=True)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_fill_by_placeholder(self, actions, page, locator):
        await actions.fill_by_placeholder("Search", "Tokyo")
        page.get_by_placeholder.assert_called_once_with("Search")
        locator.first.fill.assert_awaited_once_with("Tokyo", timeout=5000)


@pytest.mark.unit
class TestPageActionsWait:
    """等待"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_for_selector_timeout(self, actions, page):
        page.wait_for_selector.side_effect = PlaywrightTimeoutError("Timeout 500ms exceeded")
        with pytest.raises(WaitTimeoutError) as exc_info:
            await actions.wait_for_selector("#never", timeout_ms=500)
        assert exc_info.value.timeout_ms == 500
        assert exc_info.value.selector == "#never"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_for_selector_default_visible(self, actions, page):
        await actions.wait_for_selector("#ready")
        page.wait_for_selector.assert_awaited_once_with("#ready", state="visible", timeout=30000)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_for_uses_first(self, actions, locator):
        await actions.wait_for(LocatorSpec.role("dialog"), state="hidden", timeout_ms=800)
        locator.first.wait_for.assert_awaited_once_with(state="hidden", timeout=800)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_for_load_state_rejects_unknown(self, actions):
        with pytest.raises(ValueError):
            await actions.wait_for_load_state("complete")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_wait_for_url_timeout(self, actions, page):
        page.wait_for_url.side_effect = PlaywrightTimeoutError("Timeout")
        with pytest.raises(WaitTimeoutError):
            await actions.wait_for_url("**/done", timeout_ms=100)


@pytest.mark.unit
class TestPageActionsRead:
    """讀取類操作"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_is_visible_missing_element(self, page, mock_plugins):
        """找不到元素時回傳 False，不等待"""
        locator = _make_locator(count=0)
        page.locator.return_value = locator
        actions = PageActions(SimpleNamespace(page=page, config=None))
        assert await actions.is_visible("#gone") is False
        locator.first.is_visible.assert_not_awaited()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_is_hidden_missing_element(self, page, mock_plugins):
        page.locator.return_value = _make_locator(count=0)
        actions = PageActions(SimpleNamespace(page=page, config=None))
        assert await actions.is_hidden("#gone") is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_text(self, actions, locator):
        locator.first.text_content.return_value = "New Travel Itinerary"
        assert await actions.get_text("h1") == "New Travel Itinerary"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_text_error_returns_empty(self, actions, locator):
        """讀取期間元素消失時回傳空字串"""
        locator.first.text_content.side_effect = PlaywrightError("Element is detached")
        assert await actions.get_text("h1") == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_get_attribute_missing(self, actions, locator):
        locator.first.get_attribute.return_value = None
        assert await actions.get_attribute("a", "href") == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_has_text(self, actions, page):
        assert await actions.has_text("Saved") is True
        page.get_by_text.assert_called_once_with("Saved")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_find_all_and_count(self, page, mock_plugins):
        page.locator.return_value = _make_locator(count=3)
        actions = PageActions(SimpleNamespace(page=page, config=None))
        assert len(await actions.find_all("tr")) == 3
        assert await actions.get_element_count("tr") == 3


@pytest.mark.unit
class TestPageActionsScreenshotAndNavigation:
    """截圖與導覽"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_screenshot_full_page(self, actions, page, tmp_path):
        target = tmp_path / "shots" / "main.png"
        result = await actions.screenshot(target)
        assert result == target
        assert target.parent.exists()
        page.screenshot.assert_awaited_once_with(path=str(target), full_page=True)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_screenshot_bytes(self, actions):
        assert await actions.screenshot_bytes() == b"\x89PNG"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_goto(self, actions, page):
        await actions.goto("/main.aspx")
        page.goto.assert_awaited_once_with("/main.aspx", timeout=5000)
