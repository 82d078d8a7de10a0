#!filepath: mempool_splitter/engines/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Iterable


InEvent = TypeVar("InEvent")
OutEvent = TypeVar("OutEvent")


class BaseEngine(ABC, Generic[InEvent, OutEvent]):
    """
    Engine 抽象基类（Atomic Engine Layer）：

    - 不做任何 I/O（不读写 sqlite / 文件）
    - 专注“输入 → 输出”的纯逻辑
    - 被 Step / Adapter 调用，可单独测试
    """

    @abstractmethod
    def process(self, event: InEvent) -> OutEvent:
        """
        处理单个事件（最小粒度单位）。
        """
        raise NotImplementedError

    def process_stream(self, events: Iterable[InEvent]) -> Iterable[OutEvent]:
        """
        流式处理一批事件，默认逐个调用 process。
        """
        for ev in events:
            yield self.process(ev)
