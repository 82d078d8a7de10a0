#!filepath: mempool_splitter/observability/metrics.py
from dataclasses import dataclass, field
from typing import Dict, Any

from mempool_splitter import logs


@dataclass
class MetricRecorder:
    """
    最近一次写入的值（gauge 语义）+ 累计计数（counter 语义）
    """
    enabled: bool = True
    metrics: Dict[str, Any] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)

    def record(self, name: str, value: Any):
        if not self.enabled:
            return
        self.metrics[name] = value
        logs.debug(f"[Metric] {name} = {value}")

    def incr(self, name: str, value: int = 1):
        if not self.enabled:
            return
        self.counters[name] = self.counters.get(name, 0) + value
