"""
Event Bus — 事件發佈/訂閱系統

session、元素操作、credential vault、失敗截圖各自發事件，
Plugin 與報告模組訂閱，彼此不需要互相 import。

事件名稱集中定義在 Events，訂閱時可用：
    精確名稱   "credential.discarded"
    前綴萬用   "page.action.*"
    全部       "*"

用法：
    from core.event_bus import Events, event_bus

    @event_bus.on(Events.CREDENTIAL_DISCARDED)
    def warn_operator(event):
        print(f"登入快取失效: {event.data['path']}")
"""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from utils.logger import logger

Handler = Callable[["Event"], None]


class Events:
    """框架發出的事件名稱"""

    DRIVER_LAUNCHED = "driver.launched"
    SESSION_READY = "session.ready"
    SESSION_CLOSED = "session.closed"
    ACTION_BEFORE = "page.action.before"
    ACTION_AFTER = "page.action.after"
    ACTION_ERROR = "page.action.error"
    CREDENTIAL_DISCARDED = "credential.discarded"
    TEST_START = "test.start"
    TEST_PASS = "test.pass"
    TEST_FAIL = "test.fail"
    TEST_SKIP = "test.skip"
    ARTIFACT_CAPTURED = "artifact.captured"


@dataclass
class Event:
    """事件物件"""
    name: str
    data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""


@dataclass(eq=False)
class _Subscription:
    pattern: str
    handler: Handler
    priority: int
    once: bool = False

    def matches(self, event_name: str) -> bool:
        if self.pattern in ("*", event_name):
            return True
        return self.pattern.endswith(".*") and event_name.startswith(self.pattern[:-1])


class EventBus:
    """
    事件匯流排

    - priority 數字小先執行，同優先序依訂閱順序
    - handler 拋出的例外只記錄，不影響發佈端與其他 handler
    - 歷史只保留最近 max_history 筆
    """

    def __init__(self, max_history: int = 500):
        self._subscriptions: list[_Subscription] = []
        self._history: deque[Event] = deque(maxlen=max_history)
        self._lock = threading.Lock()

    def on(self, event_name: str, handler: Handler | None = None,
           priority: int = 10) -> Callable:
        """
        訂閱事件，可當 decorator 或直接呼叫。

            @event_bus.on(Events.TEST_FAIL)
            def handle_fail(event): ...

            event_bus.on("page.action.*", audit, priority=1)
        """
        if handler is not None:
            self._subscribe(_Subscription(event_name, handler, priority))
            return handler

        def decorator(fn: Handler) -> Handler:
            self._subscribe(_Subscription(event_name, fn, priority))
            return fn
        return decorator

    def once(self, event_name: str, handler: Handler, priority: int = 10) -> None:
        """只觸發一次的訂閱"""
        self._subscribe(_Subscription(event_name, handler, priority, once=True))

    def off(self, event_name: str, handler: Handler | None = None) -> None:
        """取消訂閱。不指定 handler 則移除該名稱的所有訂閱。"""
        with self._lock:
            self._subscriptions = [
                s for s in self._subscriptions
                if not (s.pattern == event_name and handler in (None, s.handler))
            ]

    def emit(self, event_name: str, data: dict | None = None,
             source: str = "") -> Event:
        """同步發佈事件"""
        event = Event(name=event_name, data=data or {}, source=source)

        with self._lock:
            self._history.append(event)
            matched = [s for s in self._subscriptions if s.matches(event_name)]
            if any(s.once for s in matched):
                self._subscriptions = [
                    s for s in self._subscriptions if not (s.once and s in matched)
                ]

        for subscription in matched:
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(f"Event handler 錯誤 [{event_name}]: {e}")

        return event

    def get_history(self, event_name: str = "", limit: int = 50) -> list[Event]:
        """最近的事件，可依名稱過濾"""
        with self._lock:
            events = [e for e in self._history if not event_name or e.name == event_name]
        return events[-limit:]

    def clear(self) -> None:
        """清除所有訂閱與歷史"""
        with self._lock:
            self._subscriptions.clear()
            self._history.clear()

    @property
    def registered_events(self) -> list[str]:
        """有訂閱者的事件名稱（含萬用字元）"""
        with self._lock:
            return list(dict.fromkeys(s.pattern for s in self._subscriptions))

    def _subscribe(self, subscription: _Subscription) -> None:
        with self._lock:
            self._subscriptions.append(subscription)
            # sort 是 stable，同優先序維持訂閱順序
            self._subscriptions.sort(key=lambda s: s.priority)


# 全域 singleton
event_bus = EventBus()
