#!filepath: mempool_splitter/workflows/mempool_split_workflow.py
from __future__ import annotations

from pathlib import Path

from mempool_splitter.adapters.mempool_source_adapter import MempoolSourceAdapter
from mempool_splitter.adapters.partition_writer_adapter import PartitionWriterAdapter
from mempool_splitter.config.app_config import AppConfig
from mempool_splitter.meta.archive import TransactionArchive
from mempool_splitter.meta.watermark import WatermarkStore
from mempool_splitter.observability.instrumentation import Instrumentation
from mempool_splitter.pipeline.poll_loop import PollLoop
from mempool_splitter.utils.path import PathManager


def build_poll_loop(
    cfg: AppConfig,
    *,
    db_path: str | Path | None = None,
    interval: float | None = None,
    inst: Instrumentation | None = None,
    handle_signals: bool = False,
) -> PollLoop:
    """
    Mempool Split Loop

    Semantic Order:
        Fetch   (mempool.sqlite, accept_time > watermark)
        → Route (contract_name → contracts/<name>.json)
        → Flush (output.json → watermark.txt)

    所有路径在这里一次性展开；无法展开 → ConfigError（启动即失败）。
    """
    paths = cfg.resolved_paths()
    if db_path is not None:
        db = PathManager.expand(str(db_path))
    else:
        db = paths.db_path

    inst = inst if inst is not None else Instrumentation()

    source = MempoolSourceAdapter(
        db,
        table=cfg.store.table,
        busy_retries=cfg.store.busy_retries,
        retry_delay=cfg.store.retry_delay,
        inst=inst,
    )
    writer = PartitionWriterAdapter(paths.partition_dir, inst=inst)

    return PollLoop(
        source=source,
        writer=writer,
        watermark=WatermarkStore(paths.watermark_file),
        archive=TransactionArchive(paths.archive_file),
        interval=interval if interval is not None else cfg.poll.interval_seconds,
        inst=inst,
        handle_signals=handle_signals,
    )
