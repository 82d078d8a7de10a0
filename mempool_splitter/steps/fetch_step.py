#!filepath: mempool_splitter/steps/fetch_step.py
from __future__ import annotations

from mempool_splitter import logs
from mempool_splitter.adapters.mempool_source_adapter import MempoolSourceAdapter
from mempool_splitter.pipeline.context import CycleContext, LoopPhase
from mempool_splitter.pipeline.step import PipelineStep


class FetchStep(PipelineStep):
    """
    FETCHING：accept_time > state.watermark 的新交易 → ctx.entries
    """

    phase = LoopPhase.FETCHING

    def __init__(self, source: MempoolSourceAdapter, inst=None):
        super().__init__(inst)
        self.source = source

    def run(self, ctx: CycleContext) -> CycleContext:
        with self.timed():
            with self.inst.timer("fetch"):
                ctx.entries = self.source.fetch_since(ctx.state.watermark)

        self.inst.metrics.record("fetched", len(ctx.entries))
        if not ctx.entries:
            logs.debug(f"[FetchStep] nothing newer than {ctx.state.watermark}")
        return ctx
