#!filepath: mempool_splitter/adapters/partition_writer_adapter.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Sequence

from mempool_splitter import logs
from mempool_splitter.adapters.base_adapter import BaseAdapter
from mempool_splitter.core.types import Transaction
from mempool_splitter.engines.partition_key_engine import sanitize_key
from mempool_splitter.meta.base import dump_transactions, parse_transactions
from mempool_splitter.utils.errors import PersistenceWriteError
from mempool_splitter.utils.filesystem import FileSystem

PARTITION_SUFFIX = ".json"
CORRUPT_SUFFIX = ".corrupt"


class PartitionWriterAdapter(BaseAdapter):
    """
    PartitionWriterAdapter（load → merge → rewrite）

    Semantic:
        partition_dir/<key>.json = 该 key 下全部交易（JSON array，按到达顺序）

    保证：
        - 幂等：txid 已存在的交易不会重复追加
        - 无新增时文件保持 byte-identical（不重写）
        - 每次写入都是整文件原子替换
        - 文件损坏 → warning + 旧文件移到 <key>.json.corrupt[.N]，按空内容重建
        - 无法读取（权限等）→ PersistenceWriteError，本周期失败、下个 tick 重试
    """

    def __init__(self, partition_dir: str | Path, inst=None) -> None:
        super().__init__(inst)
        self.partition_dir = Path(partition_dir)

    # --------------------------------------------------
    # read helpers
    # --------------------------------------------------
    def partition_path(self, key: str) -> Path:
        return self.partition_dir / f"{sanitize_key(key)}{PARTITION_SUFFIX}"

    def partitions(self) -> List[str]:
        return [p.stem for p in FileSystem.scan_dir(self.partition_dir, suffix=PARTITION_SUFFIX)]

    def read(self, key: str) -> List[Transaction]:
        existing, _ = self._load(self.partition_path(key))
        return existing

    def counts(self) -> Dict[str, int]:
        return {key: len(self.read(key)) for key in self.partitions()}

    def _load(self, path: Path) -> tuple[List[Transaction], bool]:
        """
        return: (transactions, ok)

        - 文件不存在 → ([], True)
        - 内容损坏 → ([], False)，merge 时移走旧文件后重建
        - 无法 stat / 读取（权限等）→ PersistenceWriteError，不当作空文件
        """
        try:
            if not path.exists():
                return [], True
            data = path.read_bytes()
        except OSError as e:
            raise PersistenceWriteError(f"[PartitionWriter] cannot read {path}: {e}") from e

        try:
            return parse_transactions(data), True
        except ValueError as e:
            logs.warning(f"[PartitionWriter] corrupt partition {path.name}: {e} -> rebuild from empty")
            return [], False

    @staticmethod
    def _corrupt_backup_path(path: Path) -> Path:
        """
        <key>.json.corrupt，已存在则 <key>.json.corrupt.1 / .2 ...（不覆盖更早的备份）
        """
        backup = path.with_name(path.name + CORRUPT_SUFFIX)
        n = 1
        while backup.exists():
            backup = path.with_name(f"{path.name}{CORRUPT_SUFFIX}.{n}")
            n += 1
        return backup

    # --------------------------------------------------
    # write
    # --------------------------------------------------
    def merge(self, key: str, tx: Transaction) -> None:
        self.merge_many(key, [tx])

    def merge_many(self, key: str, transactions: Sequence[Transaction]) -> int:
        """
        return: 实际追加的交易数（0 表示文件未被改动）
        """
        if not transactions:
            return 0

        path = self.partition_path(key)

        with self.timer(f"merge_{path.stem}"):
            existing, ok = self._load(path)
            seen = {tx.txid for tx in existing}

            appended: List[Transaction] = []
            for tx in transactions:
                if tx.txid in seen:
                    continue
                seen.add(tx.txid)
                appended.append(tx)

            if not appended:
                logs.debug(f"[PartitionWriter] {path.name}: all {len(transactions)} already present")
                return 0

            try:
                if not ok:
                    backup = self._corrupt_backup_path(path)
                    os.replace(path, backup)
                    logs.warning(f"[PartitionWriter] moved corrupt {path.name} -> {backup.name}")
                FileSystem.safe_write(path, dump_transactions(existing + appended))
            except OSError as e:
                raise PersistenceWriteError(f"[PartitionWriter] failed to write {path}: {e}") from e

        logs.debug(f"[PartitionWriter] {path.name}: +{len(appended)} (total {len(existing) + len(appended)})")
        return len(appended)

    def cleanup(self) -> int:
        """
        删除上次进程在 rename 前崩溃留下的 *.tmp
        """
        return FileSystem.clean_temp_files(self.partition_dir)
