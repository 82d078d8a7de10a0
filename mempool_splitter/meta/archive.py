#!filepath: mempool_splitter/meta/archive.py
from __future__ import annotations

from typing import List, Sequence, Tuple

from mempool_splitter import logs
from mempool_splitter.core.types import Transaction
from mempool_splitter.meta.base import BaseMeta, dump_transactions, parse_transactions


class TransactionArchive(BaseMeta):
    """
    TransactionArchive（seen set 的磁盘镜像）

    - 内容：按到达顺序的全部已处理交易（JSON array）
    - save 为整文件覆盖（不是 append），原子写
    - load 失败 → [] + warning；调用方负责把 watermark 一起归零
    """

    def try_load(self) -> Tuple[List[Transaction], bool]:
        try:
            if not self.path.exists():
                logs.warning(f"[Archive] {self.path} not found -> empty archive")
                return [], False
            transactions = parse_transactions(self.path.read_bytes())
        except (OSError, ValueError) as e:
            logs.warning(f"[Archive] failed to load {self.path}: {e} -> empty archive")
            return [], False

        logs.info(f"[Archive] loaded {len(transactions)} transactions from {self.path}")
        return transactions, True

    def load(self) -> List[Transaction]:
        transactions, _ = self.try_load()
        return transactions

    def save(self, transactions: Sequence[Transaction]) -> None:
        self._commit(dump_transactions(transactions))
        logs.debug(f"[Archive] saved {len(transactions)} transactions -> {self.path}")
