#!filepath: mempool_splitter/meta/base.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, List

from mempool_splitter import logs
from mempool_splitter.core.types import Transaction
from mempool_splitter.utils.errors import PersistenceWriteError
from mempool_splitter.utils.filesystem import FileSystem


def dump_transactions(transactions: Iterable[Transaction]) -> bytes:
    """
    [tx, tx, ...] → pretty JSON bytes（archive / partition 共用同一格式）
    """
    payload = [tx.to_dict() for tx in transactions]
    return json.dumps(payload, indent=2, ensure_ascii=False).encode("utf-8")


def parse_transactions(data: bytes | str) -> List[Transaction]:
    """
    JSON → [Transaction]；结构不对统一抛 ValueError
    """
    doc = json.loads(data)
    if not isinstance(doc, list):
        raise ValueError(f"expected a JSON array of transactions, got {type(doc).__name__}")
    return [Transaction.from_dict(item) for item in doc]


class BaseMeta:
    """
    单文件持久化基类（冻结）

    统一职责：
      - path / exists / cleanup（残留 tmp）
      - 原子写（FileSystem.safe_write），OSError → PersistenceWriteError

    load 的降级策略（返回默认值 + warning）由子类决定。
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def exists(self) -> bool:
        """
        无法 stat（权限等）时返回 False，与 os.path.exists 一致
        """
        return os.path.exists(self.path)

    def cleanup(self) -> int:
        """
        删除上次 safe_write 在 rename 前崩溃留下的 <name>.tmp
        """
        tmp = FileSystem.tmp_path(self.path)
        try:
            tmp.unlink()
        except FileNotFoundError:
            return 0
        logs.debug(f"[{self.name}] removed stale {tmp}")
        return 1

    def _commit(self, data: bytes) -> None:
        try:
            FileSystem.safe_write(self.path, data)
        except OSError as e:
            raise PersistenceWriteError(f"[{self.name}] failed to write {self.path}: {e}") from e
