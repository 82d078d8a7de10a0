from __future__ import annotations

from mempool_splitter.observability.instrumentation import Instrumentation, NoOpInstrumentation


class BaseAdapter:
    """
    Adapter 的通用接口（I/O 层：sqlite / JSON 文件 / parquet）。

    - 持有 Instrumentation（可选，缺省为 no-op）
    - 提供 timer() 方便在内部对关键区域计时
    """

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    def timer(self, name: str = ''):
        """
        Adapter 内部计时：
            with adapter.timer("fetch_since"):
                conn.execute(...)
        """
        if not name:
            name = self.__class__.__name__
        return self.inst.timer(name)
