"""
plugins/fail_handler_plugin.py 單元測試

驗證失敗時寫出 JSON 現場摘要並附到 Allure，失敗截圖產生後補上截圖路徑。
"""

import json
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from core.session_manager import SessionConfig
from plugins.fail_handler_plugin import FailHandlerPlugin


@pytest.fixture
def plugin(tmp_path):
    p = FailHandlerPlugin(fail_dir=tmp_path / "failures")
    p.on_register()
    return p


@pytest.fixture(autouse=True)
def mock_attach():
    with patch("plugins.fail_handler_plugin.attach_text") as attach:
        yield attach


def _summaries(plugin):
    return [json.loads(p.read_text(encoding="utf-8")) for p in plugin.fail_dir.glob("*.json")]


@pytest.mark.unit
class TestFailHandlerPlugin:
    """FailHandlerPlugin"""

    @pytest.mark.unit
    def test_summary_with_session(self, plugin, tmp_path):
        session = SimpleNamespace(
            config=SessionConfig(browser="webkit", headless=True, auth_state_dir=tmp_path),
            used_cached_state=True,
            page=SimpleNamespace(url="https://travel.example.com/main.aspx"),
        )
        plugin.on_test_fail("test_create[itinerary]", session, AssertionError("heading missing"))

        [data] = _summaries(plugin)
        assert data["test_name"] == "test_create[itinerary]"
        assert data["error_type"] == "AssertionError"
        assert data["browser"]["family"] == "webkit"
        assert data["browser"]["viewport"] == {"width": 960, "height": 1080}
        assert data["used_cached_state"] is True
        assert data["url"] == "https://travel.example.com/main.aspx"
        assert data["screenshots"] == []

    @pytest.mark.unit
    def test_summary_without_session(self, plugin):
        """非瀏覽器測試失敗時 session 為 None"""
        plugin.on_test_fail("test_unit", None, ValueError("x"))
        [data] = _summaries(plugin)
        assert "browser" not in data

    @pytest.mark.unit
    def test_artifact_appended(self, plugin):
        plugin.on_test_fail("test_a", None, ValueError("x"))
        plugin.on_artifact("/results/Screenshots/test_a.png", "test_a")
        [data] = _summaries(plugin)
        assert data["screenshots"] == ["/results/Screenshots/test_a.png"]

    @pytest.mark.unit
    def test_artifact_without_failure_writes_nothing(self, plugin):
        plugin.on_artifact("/x.png", "other")
        assert _summaries(plugin) == []

    @pytest.mark.unit
    def test_summary_attached_once(self, plugin, mock_attach):
        """摘要只在失敗當下附到 Allure，補截圖時不重複附加"""
        plugin.on_test_fail("test_a", None, ValueError("x"))
        plugin.on_artifact("/results/Screenshots/test_a.png", "test_a")

        mock_attach.assert_called_once()
        assert json.loads(mock_attach.call_args.args[0])["test_name"] == "test_a"
        assert mock_attach.call_args.kwargs["name"] == "失敗現場摘要"

    @pytest.mark.unit
    def test_session_closed_releases_entries(self, plugin):
        """session 關閉後不再保留該情境的資料，摘要檔仍在"""
        plugin.on_test_fail("test_a", None, ValueError("x"))
        plugin.on_artifact("/results/Screenshots/test_a.png", "test_a")
        plugin.on_test_fail("test_b", None, ValueError("y"))

        plugin.on_session_closed(SimpleNamespace(scenario="test_a"), [])

        assert "test_a" not in plugin._pending
        assert "test_a" not in plugin._artifacts
        assert "test_b" in plugin._pending
        assert len(_summaries(plugin)) == 2
