#!filepath: mempool_splitter/pipeline/poll_loop.py
from __future__ import annotations

import signal
import threading
from typing import Callable, Optional

from mempool_splitter import logs
from mempool_splitter.adapters.mempool_source_adapter import MempoolSourceAdapter
from mempool_splitter.adapters.partition_writer_adapter import PartitionWriterAdapter
from mempool_splitter.engines.partition_key_engine import PartitionKeyEngine
from mempool_splitter.meta.archive import TransactionArchive
from mempool_splitter.meta.watermark import WatermarkStore
from mempool_splitter.observability.instrumentation import Instrumentation, NoOpInstrumentation
from mempool_splitter.pipeline.context import CycleContext, LoopPhase, PollState
from mempool_splitter.pipeline.pipeline import CyclePipeline
from mempool_splitter.steps.fetch_step import FetchStep
from mempool_splitter.steps.flush_step import FlushStep
from mempool_splitter.steps.route_step import RouteStep
from mempool_splitter.utils.errors import PipelineError


class PollLoop:
    """
    PollLoop（状态机）

        IDLE → FETCHING → ROUTING → FLUSHING → SLEEPING → IDLE

    - bootstrap() 只在启动时调用一次
    - run_cycle(state) -> state：一个完整周期，PipelineError 不会逃逸
    - run_forever()：直到 max_cycles / SIGINT / SIGTERM；退出前 dirty 则补一次 flush
    """

    def __init__(
        self,
        source: MempoolSourceAdapter,
        writer: PartitionWriterAdapter,
        watermark: WatermarkStore,
        archive: TransactionArchive,
        *,
        key_engine: PartitionKeyEngine | None = None,
        interval: float = 1.0,
        sleep: Optional[Callable[[float], object]] = None,
        inst: Instrumentation | None = None,
        handle_signals: bool = False,
    ) -> None:
        self.source = source
        self.writer = writer
        self.watermark = watermark
        self.archive = archive
        self.interval = interval
        self.inst = inst if inst is not None else NoOpInstrumentation()
        self.handle_signals = handle_signals

        self._stop = threading.Event()
        self.sleep = sleep or self._stop.wait

        self.flush_step = FlushStep(archive, watermark, inst=self.inst)
        self.pipeline = CyclePipeline(
            [
                FetchStep(source, inst=self.inst),
                RouteStep(writer, key_engine=key_engine, inst=self.inst),
                self.flush_step,
            ],
            inst=self.inst,
        )

        self.phase = LoopPhase.IDLE
        self.state: PollState | None = None
        self.cycles = 0

    # --------------------------------------------------
    def bootstrap(self) -> PollState:
        """
        watermark / archive 任意一个加载失败 → 两者一起归零。

        watermark 存在而 archive 丢失时，若只保留 watermark，
        丢失的交易再也不会被 fetch 到。
        """
        try:
            removed = self.writer.cleanup() + self.archive.cleanup() + self.watermark.cleanup()
        except OSError as e:
            logs.warning(f"[PollLoop] temp file cleanup failed: {e}")
        else:
            if removed:
                logs.warning(f"[PollLoop] removed {removed} stale temp files")

        watermark, wm_ok = self.watermark.try_load()
        archive, ar_ok = self.archive.try_load()

        if not (wm_ok and ar_ok):
            if watermark or archive:
                logs.warning(
                    f"[PollLoop] watermark ok={wm_ok}, archive ok={ar_ok} "
                    f"-> reset both and replay from accept_time 0"
                )
            watermark, archive = 0, []

        state = PollState.from_archive(watermark, archive)
        logs.info(f"[PollLoop] bootstrap watermark={state.watermark} archive={len(state.archive)}")
        return state

    def run_cycle(self, state: PollState) -> PollState:
        ctx: CycleContext = self.pipeline.run(state)
        self.cycles += 1

        metrics = self.inst.metrics
        metrics.incr("cycles")
        if ctx.error is not None:
            metrics.incr("cycle_errors")
        return ctx.state

    def flush(self, state: PollState) -> PollState:
        """
        只跑 FlushStep（退出前使用）；失败只记录，不抛。
        """
        if not state.dirty:
            return state
        try:
            return self.flush_step.run(CycleContext(state=state, phase=LoopPhase.FLUSHING)).state
        except PipelineError as e:
            logs.error(f"[PollLoop] final flush failed: {e}")
            return state

    def stop(self) -> None:
        self._stop.set()

    @property
    def stopping(self) -> bool:
        return self._stop.is_set()

    # --------------------------------------------------
    @logs.catch(msg="poll loop crashed", log_time=True)
    def run_forever(self, max_cycles: int | None = None) -> PollState:
        previous = self._install_signal_handlers() if self.handle_signals else {}

        try:
            state = self.bootstrap()
            self.state = state

            try:
                while not self.stopping:
                    state = self.run_cycle(state)
                    self.state = state

                    if max_cycles is not None and self.cycles >= max_cycles:
                        break
                    if self.stopping:
                        break

                    self.phase = LoopPhase.SLEEPING
                    self.sleep(self.interval)
                    self.phase = LoopPhase.IDLE
            except KeyboardInterrupt:
                logs.warning("[PollLoop] interrupted")

            if state.dirty:
                logs.info("[PollLoop] final flush before exit")
                state = self.flush(state)
                self.state = state

            logs.info(f"[PollLoop] stopped after {self.cycles} cycles, watermark={state.watermark}")
            return state
        finally:
            self.phase = LoopPhase.IDLE
            self._restore_signal_handlers(previous)

    # --------------------------------------------------
    def _on_signal(self, signum, frame) -> None:
        logs.warning(f"[PollLoop] received signal {signum} -> stopping")
        self.stop()

    def _install_signal_handlers(self) -> dict:
        previous = {}
        if threading.current_thread() is not threading.main_thread():
            return previous
        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, self._on_signal)
        return previous

    @staticmethod
    def _restore_signal_handlers(previous: dict) -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
