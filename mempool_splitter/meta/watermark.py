#!filepath: mempool_splitter/meta/watermark.py
from __future__ import annotations

from typing import Tuple

from mempool_splitter import logs
from mempool_splitter.meta.base import BaseMeta

U64_MAX = 2 ** 64 - 1


class WatermarkStore(BaseMeta):
    """
    watermark = 已完整处理的最大 accept_time（u64）

    文件格式：单行十进制文本。
    缺失 / 无法读取 / 无法解析 / 越界 → 0 + warning，永不抛异常。
    """

    def try_load(self) -> Tuple[int, bool]:
        """
        return: (value, ok)
        ok=False 表示发生了降级（调用方据此把 archive 一起重置）
        """
        try:
            if not self.path.exists():
                logs.warning(f"[Watermark] {self.path} not found -> start from 0")
                return 0, False
            text = self.path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logs.warning(f"[Watermark] cannot read {self.path}: {e} -> start from 0")
            return 0, False

        try:
            value = int(text)
        except ValueError:
            logs.warning(f"[Watermark] unparsable content {text[:32]!r} in {self.path} -> start from 0")
            return 0, False

        if not 0 <= value <= U64_MAX:
            logs.warning(f"[Watermark] value {value} out of u64 range in {self.path} -> start from 0")
            return 0, False

        return value, True

    def load(self) -> int:
        value, _ = self.try_load()
        return value

    def save(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= U64_MAX:
            raise ValueError(f"watermark must be a u64, got {value!r}")
        self._commit(str(value).encode("ascii"))
        logs.debug(f"[Watermark] saved {value} -> {self.path}")
