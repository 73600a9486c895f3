"""
Locator 規格 — 宣告式描述「要找哪個元素」

情境作者只描述策略 + 參數，不直接碰 Playwright 的定位 API：

    LocatorSpec.role("button", name="儲存", exact=True)
    LocatorSpec.label("出發日期")
    LocatorSpec.test_id("submit")
    LocatorSpec.text(re.compile(r"新增\\s*行程"))
    LocatorSpec.css("table.grid tr")

建立時就驗證策略與 role，錯誤當場拋出，不會延後到操作時才發現。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Union

from core.exceptions import UnknownStrategyError
from core.roles import to_aria_role

TextMatch = Union[str, "re.Pattern[str]"]


class Strategy(str, Enum):
    """定位策略"""

    ROLE = "role"
    TEXT = "text"
    LABEL = "label"
    TEST_ID = "test_id"
    PLACEHOLDER = "placeholder"
    SELECTOR = "selector"

    @classmethod
    def parse(cls, tag: "str | Strategy") -> "Strategy":
        """策略名稱 → Strategy，接受 'test-id' 這類寫法；未知名稱拋出 UnknownStrategyError"""
        if isinstance(tag, Strategy):
            return tag
        if not isinstance(tag, str):
            raise UnknownStrategyError(repr(tag))
        normalized = tag.strip().lower().replace("-", "_")
        try:
            return cls(normalized)
        except ValueError:
            raise UnknownStrategyError(tag) from None


@dataclass(frozen=True)
class LocatorSpec:
    """
    Locator 規格

    Attributes:
        strategy: 定位策略
        value: 策略主要參數（role 名稱 / 文字 / label / test id / placeholder / selector）
        name: 只用於 role 策略的 accessible name（字串或 regex）
        exact: 文字比對是否需完全相符
    """

    strategy: Strategy
    value: Any
    name: TextMatch | None = None
    exact: bool = False

    def __post_init__(self):
        object.__setattr__(self, "strategy", Strategy.parse(self.strategy))
        if self.strategy is Strategy.ROLE:
            object.__setattr__(self, "value", to_aria_role(self.value))

    # ── 建構捷徑 ──

    @classmethod
    def role(cls, role: str, name: TextMatch | None = None,
             exact: bool = False) -> "LocatorSpec":
        return cls(Strategy.ROLE, role, name=name, exact=exact)

    @classmethod
    def text(cls, text: TextMatch, exact: bool = False) -> "LocatorSpec":
        return cls(Strategy.TEXT, text, exact=exact)

    @classmethod
    def label(cls, label: TextMatch, exact: bool = False) -> "LocatorSpec":
        return cls(Strategy.LABEL, label, exact=exact)

    @classmethod
    def test_id(cls, test_id: TextMatch) -> "LocatorSpec":
        return cls(Strategy.TEST_ID, test_id)

    @classmethod
    def placeholder(cls, placeholder: TextMatch,
                    exact: bool = False) -> "LocatorSpec":
        return cls(Strategy.PLACEHOLDER, placeholder, exact=exact)

    @classmethod
    def css(cls, selector: str) -> "LocatorSpec":
        return cls(Strategy.SELECTOR, selector)

    @classmethod
    def coerce(cls, target: "LocatorSpec | str") -> "LocatorSpec":
        """字串視為原生 selector，LocatorSpec 原樣回傳"""
        if isinstance(target, LocatorSpec):
            return target
        return cls.css(target)

    # ── 解析 ──

    def resolve(self, page):
        """轉成 Playwright Locator（lazy，不會立即查詢 DOM）"""
        return _RESOLVERS[self.strategy](self, page)

    def describe(self) -> str:
        """給 log 與錯誤訊息用的可讀描述"""
        value = _pattern_text(self.value.value if self.strategy is Strategy.ROLE else self.value)
        parts = [f"{self.strategy.value}={value}"]
        if self.name is not None:
            parts.append(f"name={_pattern_text(self.name)}")
        if self.exact:
            parts.append("exact")
        return "[" + ", ".join(parts) + "]"

    def __str__(self) -> str:
        return self.describe()


def _pattern_text(value) -> str:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/"
    return str(value)


def _exact_kwargs(spec: LocatorSpec) -> dict:
    # regex 比對時 Playwright 不接受 exact
    if spec.exact and not isinstance(spec.value, re.Pattern):
        return {"exact": True}
    return {}


def _resolve_role(spec: LocatorSpec, page):
    kwargs = {}
    if spec.name is not None:
        kwargs["name"] = spec.name
        if spec.exact and not isinstance(spec.name, re.Pattern):
            kwargs["exact"] = True
    return page.get_by_role(spec.value.value, **kwargs)


_RESOLVERS: dict[Strategy, Callable[[LocatorSpec, Any], Any]] = {
    Strategy.ROLE: _resolve_role,
    Strategy.TEXT: lambda spec, page: page.get_by_text(spec.value, **_exact_kwargs(spec)),
    Strategy.LABEL: lambda spec, page: page.get_by_label(spec.value, **_exact_kwargs(spec)),
    Strategy.TEST_ID: lambda spec, page: page.get_by_test_id(spec.value),
    Strategy.PLACEHOLDER: lambda spec, page: page.get_by_placeholder(
        spec.value, **_exact_kwargs(spec)
    ),
    Strategy.SELECTOR: lambda spec, page: page.locator(spec.value),
}
