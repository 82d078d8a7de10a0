#!filepath: mempool_splitter/observability/instrumentation.py
from __future__ import annotations

import time
from dataclasses import dataclass
from contextlib import contextmanager
from collections import OrderedDict
from typing import Dict

from mempool_splitter.observability.metrics import MetricRecorder
from mempool_splitter import logs


@dataclass
class Instrumentation:
    """
    Instrumentation（Leaf-only accounting + Parent scope）。

    设计铁律：
    1. timeline 只记录【叶子节点】（record=True）
    2. Step 级 timer 仅作为时间语义边界（record=False）
    3. 每个 poll 周期结束后 report() 一次，然后 reset()
    """

    enabled: bool = True

    def __post_init__(self):
        self.metrics = MetricRecorder(enabled=self.enabled)

        # timeline: OrderedDict[leaf_name, elapsed_seconds]
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            start = time.perf_counter()
            try:
                yield
            finally:
                if record:
                    inst.timeline[name] = time.perf_counter() - start

        return _ctx()

    def report(self, tag: str) -> None:
        if not self.enabled or not self.timeline:
            return
        parts = " | ".join(f"{k}={v * 1000:.1f}ms" for k, v in self.timeline.items())
        logs.debug(f"[Timeline] {tag}: {parts}")

    def reset(self) -> None:
        self.timeline.clear()


class NoOpInstrumentation:
    """Instrumentation disabled 时使用。"""

    def __init__(self):
        self.metrics = MetricRecorder(enabled=False)
        self.timeline: Dict[str, float] = {}

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def report(self, tag: str) -> None:
        pass

    def reset(self) -> None:
        pass


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
