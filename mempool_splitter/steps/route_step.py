#!filepath: mempool_splitter/steps/route_step.py
from __future__ import annotations

from typing import Dict, List

from mempool_splitter import logs
from mempool_splitter.adapters.partition_writer_adapter import PartitionWriterAdapter
from mempool_splitter.core.types import Transaction
from mempool_splitter.engines.partition_key_engine import PartitionKeyEngine
from mempool_splitter.pipeline.context import CycleContext, LoopPhase
from mempool_splitter.pipeline.step import PipelineStep


class RouteStep(PipelineStep):
    """
    RouteStep（ROUTING）

    Semantic:
        ctx.entries
            → 按 partition key 分组（保持到达顺序）
            → 每个 partition merge_many 一次
            → state.advance(entries)

    任一 partition 写失败 → PersistenceWriteError 上抛，state 不变；
    下个 tick 同一批会重新 fetch，已写入的 partition 靠 txid 去重。
    """

    phase = LoopPhase.ROUTING

    def __init__(
        self,
        writer: PartitionWriterAdapter,
        key_engine: PartitionKeyEngine | None = None,
        inst=None,
    ):
        super().__init__(inst)
        self.writer = writer
        self.key_engine = key_engine or PartitionKeyEngine()

    def group(self, ctx: CycleContext) -> Dict[str, List[Transaction]]:
        groups: Dict[str, List[Transaction]] = {}
        for entry in ctx.entries:
            key = self.key_engine.process(entry.tx)
            groups.setdefault(key, []).append(entry.tx)
        return groups

    def run(self, ctx: CycleContext) -> CycleContext:
        if not ctx.entries:
            return ctx

        with self.timed():
            with self.inst.timer("route"):
                groups = self.group(ctx)

                partitions: Dict[str, int] = {}
                for key, txs in groups.items():
                    partitions[key] = self.writer.merge_many(key, txs)

        ctx.partitions = partitions
        ctx.routed = len(ctx.entries)
        ctx.state = ctx.state.advance(ctx.entries)

        self.inst.metrics.record("routed", ctx.routed)
        self.inst.metrics.record("partitions_touched", len(groups))
        logs.info(
            f"[RouteStep] routed {ctx.routed} tx into {len(groups)} partitions "
            f"-> watermark {ctx.state.watermark}"
        )
        return ctx
