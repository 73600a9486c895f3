"""
Teardown Pipeline — 依序執行的清理步驟

每個步驟各自包在獨立的錯誤邊界內：某一步失敗只會被記錄成
TeardownResourceError，後面的步驟照樣執行。
順序完全由加入順序決定，不靠數字優先序。

用法：
    pipeline = TeardownPipeline()
    pipeline.add("close-page", page.close)
    pipeline.add("close-context", context.close)
    errors = await pipeline.run()
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from core.exceptions import TeardownResourceError
from utils.logger import logger

StageAction = Callable[[], Union[Awaitable[None], None]]


@dataclass
class TeardownStage:
    """單一清理步驟"""
    name: str
    action: StageAction


class TeardownPipeline:
    """有序、逐步隔離錯誤的清理流程"""

    def __init__(self):
        self._stages: list[TeardownStage] = []

    def add(self, name: str, action: StageAction) -> "TeardownPipeline":
        """加到最後面，可鏈式呼叫"""
        self._stages.append(TeardownStage(name, action))
        return self

    @property
    def stage_names(self) -> list[str]:
        return [stage.name for stage in self._stages]

    async def run(self) -> list[TeardownResourceError]:
        """
        依序執行所有步驟。

        Returns:
            失敗步驟的 TeardownResourceError 列表（全部成功時為空）
        """
        errors: list[TeardownResourceError] = []
        for stage in self._stages:
            try:
                result = stage.action()
                if inspect.isawaitable(result):
                    await result
                logger.debug(f"Teardown 完成: {stage.name}", extra={"stage": stage.name})
            except Exception as e:
                error = TeardownResourceError(stage.name, e)
                logger.error(str(error), extra={"stage": stage.name})
                errors.append(error)
        return errors
