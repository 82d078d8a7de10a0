#!filepath: mempool_splitter/pipeline/context.py
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from mempool_splitter.core.types import MempoolEntry, Transaction


class LoopPhase(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    ROUTING = "routing"
    FLUSHING = "flushing"
    SLEEPING = "sleeping"


@dataclass(frozen=True, slots=True)
class PollState:
    """
    PollState = poll loop 的全部可变状态（显式传入 / 返回）

    - watermark : 已完整处理的最大 accept_time
    - archive   : 已处理交易（到达顺序）
    - seen_txids: archive 的 txid 集合（去重用）
    - dirty     : 内存状态比磁盘新，下个 flush 必须落盘
    """

    watermark: int = 0
    archive: Tuple[Transaction, ...] = ()
    seen_txids: FrozenSet[str] = frozenset()
    dirty: bool = False

    @classmethod
    def from_archive(cls, watermark: int, archive: Sequence[Transaction]) -> "PollState":
        return cls(
            watermark=watermark,
            archive=tuple(archive),
            seen_txids=frozenset(tx.txid for tx in archive),
            dirty=False,
        )

    def advance(self, entries: Sequence[MempoolEntry]) -> "PollState":
        """
        entries 全部路由成功后调用：追加未见过的交易 + 抬高 watermark + 标脏
        """
        if not entries:
            return self

        seen = set(self.seen_txids)
        appended: List[Transaction] = []
        for entry in entries:
            if entry.tx.txid in seen:
                continue
            seen.add(entry.tx.txid)
            appended.append(entry.tx)

        watermark = max(self.watermark, max(e.accept_time for e in entries))
        return replace(
            self,
            watermark=watermark,
            archive=self.archive + tuple(appended),
            seen_txids=frozenset(seen),
            dirty=True,
        )

    def clean(self) -> "PollState":
        return replace(self, dirty=False)


@dataclass
class CycleContext:
    """
    单个 poll 周期的上下文（Pipeline 构造，Step 逐个接力）

    state 只在 Step 完整成功后才被替换，出错时保留最后一个成功 Step 的结果。
    """

    state: PollState
    phase: LoopPhase = LoopPhase.IDLE

    entries: List[MempoolEntry] = field(default_factory=list)
    routed: int = 0
    partitions: Dict[str, int] = field(default_factory=dict)
    flushed: bool = False

    error: Optional[Exception] = None
