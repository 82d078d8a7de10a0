from __future__ import annotations

from mempool_splitter.pipeline.context import CycleContext, LoopPhase
from mempool_splitter.observability.instrumentation import (
    Instrumentation,
    NoOpInstrumentation,
)


class PipelineStep:
    """
    Pipeline Step 基类

    职责：
      1. 作为 orchestration 层（调用 Adapter / Engine，接力 CycleContext）
      2. 提供 Step 级时间语义边界（parent scope）

    约束：
      - Step 本身不进入 timeline
      - 叶子计时发生在 Step / Adapter 内部
      - Step 行为不依赖 inst 是否存在
    """

    phase: LoopPhase = LoopPhase.IDLE

    def __init__(self, inst: Instrumentation | None = None):
        self.inst: Instrumentation | NoOpInstrumentation = (
            inst if inst is not None else NoOpInstrumentation()
        )

    @property
    def step_name(self) -> str:
        return self.__class__.__name__

    def timed(self):
        """
        Step 级 wall-time（record=False，不进入 timeline）
        """
        return self.inst.timer(self.step_name, record=False)

    def run(self, ctx: CycleContext) -> CycleContext:
        raise NotImplementedError
