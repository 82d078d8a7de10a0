#!filepath: mempool_splitter/pipeline/pipeline.py
from __future__ import annotations

from typing import Sequence

from mempool_splitter import logs
from mempool_splitter.observability.instrumentation import Instrumentation, NoOpInstrumentation
from mempool_splitter.pipeline.context import CycleContext, LoopPhase, PollState
from mempool_splitter.pipeline.step import PipelineStep
from mempool_splitter.utils.errors import PipelineError


class CyclePipeline:
    """
    CyclePipeline = 单个 poll 周期的调度器

    - Pipeline 负责顺序 / 上下文，不做 Step 级计时
    - PipelineError → error 日志，中断本周期，返回最后一个成功 Step 的 state
    - 其它异常（编程错误）照常向上抛
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        inst: Instrumentation | NoOpInstrumentation | None = None,
    ):
        self.steps = list(steps)
        self.inst = inst if inst is not None else NoOpInstrumentation()

    def run(self, state: PollState) -> CycleContext:
        ctx = CycleContext(state=state)

        for step in self.steps:
            ctx.phase = step.phase
            try:
                ctx = step.run(ctx)
            except PipelineError as e:
                logs.error(
                    f"[Pipeline] {step.step_name} failed: {e} "
                    f"-> keep watermark={ctx.state.watermark}, retry next tick"
                )
                ctx.error = e
                break

        ctx.phase = LoopPhase.IDLE
        self.inst.report(f"cycle watermark={ctx.state.watermark}")
        self.inst.reset()
        return ctx
