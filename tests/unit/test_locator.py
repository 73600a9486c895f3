"""
core/locator.py 單元測試

驗證 LocatorSpec 建立時的驗證、各策略解析到對應的 Playwright 定位 API、可讀描述。
"""

import re
from dataclasses import FrozenInstanceError
from unittest.mock import MagicMock

import pytest

from core.exceptions import UnknownRoleError, UnknownStrategyError
from core.locator import LocatorSpec, Strategy
from core.roles import AriaRole


@pytest.fixture
def page():
    return MagicMock()


@pytest.mark.unit
class TestStrategyParse:
    """Strategy.parse"""

    @pytest.mark.unit
    def test_parse_names(self):
        assert Strategy.parse("role") is Strategy.ROLE
        assert Strategy.parse("Selector") is Strategy.SELECTOR

    @pytest.mark.unit
    def test_parse_dashed_test_id(self):
        """test-id 與 test_id 都接受"""
        assert Strategy.parse("test-id") is Strategy.TEST_ID
        assert Strategy.parse("test_id") is Strategy.TEST_ID

    @pytest.mark.unit
    def test_unknown_strategy_raises(self):
        with pytest.raises(UnknownStrategyError):
            Strategy.parse("xpath-ish")


@pytest.mark.unit
class TestLocatorSpecCreation:
    """建立與驗證"""

    @pytest.mark.unit
    def test_role_converted_to_enum(self):
        """role 名稱在建立時就轉成 AriaRole"""
        spec = LocatorSpec.role("Button", name="儲存")
        assert spec.value is AriaRole.BUTTON

    @pytest.mark.unit
    def test_unknown_role_fails_at_construction(self):
        """未知 role 建立時就失敗"""
        with pytest.raises(UnknownRoleError):
            LocatorSpec.role("buton")

    @pytest.mark.unit
    def test_unknown_strategy_fails_at_construction(self):
        with pytest.raises(UnknownStrategyError):
            LocatorSpec("nope", "x")

    @pytest.mark.unit
    def test_frozen(self):
        """LocatorSpec 不可修改"""
        spec = LocatorSpec.css("#id")
        with pytest.raises(FrozenInstanceError):
            spec.value = "#other"

    @pytest.mark.unit
    def test_coerce_string_is_selector(self):
        spec = LocatorSpec.coerce("table.grid tr")
        assert spec.strategy is Strategy.SELECTOR
        assert spec.value == "table.grid tr"

    @pytest.mark.unit
    def test_coerce_spec_passthrough(self):
        spec = LocatorSpec.label("Title")
        assert LocatorSpec.coerce(spec) is spec


@pytest.mark.unit
class TestLocatorSpecResolve:
    """resolve → Playwright 定位 API"""

    @pytest.mark.unit
    def test_role_with_name_and_exact(self, page):
        LocatorSpec.role("menuitem", name="New", exact=True).resolve(page)
        page.get_by_role.assert_called_once_with("menuitem", name="New", exact=True)

    @pytest.mark.unit
    def test_role_without_name(self, page):
        LocatorSpec.role("treegrid").resolve(page)
        page.get_by_role.assert_called_once_with("treegrid")

    @pytest.mark.unit
    def test_role_regex_name_drops_exact(self, page):
        """regex 名稱不傳 exact"""
        pattern = re.compile(r"New\s+Travel")
        LocatorSpec.role("heading", name=pattern, exact=True).resolve(page)
        page.get_by_role.assert_called_once_with("heading", name=pattern)

    @pytest.mark.unit
    def test_text(self, page):
        LocatorSpec.text("Save", exact=True).resolve(page)
        page.get_by_text.assert_called_once_with("Save", exact=True)

    @pytest.mark.unit
    def test_text_not_exact(self, page):
        LocatorSpec.text("Save").resolve(page)
        page.get_by_text.assert_called_once_with("Save")

    @pytest.mark.unit
    def test_label(self, page):
        LocatorSpec.label("出發日期").resolve(page)
        page.get_by_label.assert_called_once_with("出發日期")

    @pytest.mark.unit
    def test_test_id(self, page):
        LocatorSpec.test_id("submit").resolve(page)
        page.get_by_test_id.assert_called_once_with("submit")

    @pytest.mark.unit
    def test_placeholder(self, page):
        LocatorSpec.placeholder("Search", exact=True).resolve(page)
        page.get_by_placeholder.assert_called_once_with("Search", exact=True)

    @pytest.mark.unit
    def test_selector(self, page):
        result = LocatorSpec.css("#main > button").resolve(page)
        page.locator.assert_called_once_with("#main > button")
        assert result is page.locator.return_value


@pytest.mark.unit
class TestLocatorSpecDescribe:
    """describe / __str__"""

    @pytest.mark.unit
    def test_describe_role(self):
        spec = LocatorSpec.role("button", name="Save", exact=True)
        assert spec.describe() == "[role=button, name=Save, exact]"

    @pytest.mark.unit
    def test_describe_regex(self):
        spec = LocatorSpec.text(re.compile("New.*"))
        assert str(spec) == "[text=/New.*/]"

    @pytest.mark.unit
    def test_describe_selector(self):
        assert str(LocatorSpec.css("#id")) == "[selector=#id]"
