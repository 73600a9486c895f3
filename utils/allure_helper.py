"""
Allure 報告整合輔助
封裝 Allure 常用的步驟標記與附件功能，同時支援一般函式與 async 函式。
"""

import functools
import inspect
from pathlib import Path

import allure


def allure_step(title: str):
    """
    裝飾器：將函式標記為 Allure step。

    用法：
        @allure_step("登入 Travel Admin")
        async def login(actions, user, pwd): ...
    """
    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with allure.step(title):
                    return await func(*args, **kwargs)
            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with allure.step(title):
                return func(*args, **kwargs)
        return wrapper
    return decorator


def step(title: str):
    """Allure step context manager：with step("點擊儲存"): ..."""
    return allure.step(title)


def attach_text(text: str, name: str = "log") -> None:
    """將文字附加到 Allure 報告"""
    allure.attach(text, name=name, attachment_type=allure.attachment_type.TEXT)


def attach_file(filepath: str, name: str | None = None) -> None:
    """將檔案附加到 Allure 報告（PNG 自動標記類型）"""
    path = Path(filepath)
    attachment_type = (
        allure.attachment_type.PNG if path.suffix.lower() == ".png" else None
    )
    allure.attach.file(
        str(path), name=name or path.name, attachment_type=attachment_type,
    )
