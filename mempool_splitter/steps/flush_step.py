#!filepath: mempool_splitter/steps/flush_step.py
from __future__ import annotations

from mempool_splitter import logs
from mempool_splitter.meta.archive import TransactionArchive
from mempool_splitter.meta.watermark import WatermarkStore
from mempool_splitter.pipeline.context import CycleContext, LoopPhase
from mempool_splitter.pipeline.step import PipelineStep


class FlushStep(PipelineStep):
    """
    FLUSHING：dirty 时先写 archive，再写 watermark，二者都成功才清 dirty。

    顺序保证崩溃后磁盘上的 watermark 永远不会领先于 archive。
    """

    phase = LoopPhase.FLUSHING

    def __init__(self, archive: TransactionArchive, watermark: WatermarkStore, inst=None):
        super().__init__(inst)
        self.archive = archive
        self.watermark = watermark

    def run(self, ctx: CycleContext) -> CycleContext:
        state = ctx.state
        if not state.dirty:
            return ctx

        with self.timed():
            with self.inst.timer("flush"):
                self.archive.save(state.archive)
                self.watermark.save(state.watermark)

        ctx.state = state.clean()
        ctx.flushed = True

        self.inst.metrics.record("archive_size", len(state.archive))
        self.inst.metrics.record("watermark", state.watermark)
        logs.info(f"[FlushStep] archive={len(state.archive)} watermark={state.watermark}")
        return ctx
