#!filepath: mempool_splitter/adapters/parquet_export_adapter.py
from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pyarrow as pa
import pyarrow.parquet as pq

from mempool_splitter import logs
from mempool_splitter.adapters.base_adapter import BaseAdapter
from mempool_splitter.core.types import ContractCallPayload, Transaction
from mempool_splitter.engines.c32 import address_for_hash_mode
from mempool_splitter.engines.partition_key_engine import partition_key
from mempool_splitter.utils.errors import PersistenceWriteError
from mempool_splitter.utils.filesystem import FileSystem

EXPORT_SCHEMA = pa.schema(
    [
        ("txid", pa.string()),
        ("payload_type", pa.string()),
        ("partition_key", pa.string()),
        ("contract_address", pa.string()),
        ("contract_name", pa.string()),
        ("function_name", pa.string()),
        ("origin_signer", pa.string()),
        ("nonce", pa.uint64()),
        ("fee", pa.uint64()),
        ("sponsored", pa.bool_()),
    ]
)


def _origin_address(tx: Transaction) -> str:
    origin = tx.auth.origin
    try:
        return address_for_hash_mode(origin.hash_mode, origin.signer, tx.is_mainnet)
    except ValueError:
        # signer 不是合法 hex（手工改过的 archive）→ 原样输出
        return origin.signer


class ParquetExportAdapter(BaseAdapter):
    """
    archive → 扁平 parquet（一行一笔交易，zstd）

    只做离线分析用的导出，不参与 poll 周期。
    """

    def __init__(self, compression: str = "zstd", inst=None) -> None:
        super().__init__(inst)
        self.compression = compression

    @staticmethod
    def to_table(transactions: Sequence[Transaction]) -> pa.Table:
        columns = {name: [] for name in EXPORT_SCHEMA.names}

        for tx in transactions:
            payload = tx.payload
            call = payload if isinstance(payload, ContractCallPayload) else None

            columns["txid"].append(tx.txid)
            columns["payload_type"].append(payload.TYPE)
            columns["partition_key"].append(partition_key(payload))
            columns["contract_address"].append(call.contract_address if call else None)
            columns["contract_name"].append(call.contract_name if call else None)
            columns["function_name"].append(call.function_name if call else None)
            columns["origin_signer"].append(_origin_address(tx))
            columns["nonce"].append(tx.auth.origin.nonce)
            columns["fee"].append(tx.auth.origin.fee)
            columns["sponsored"].append(tx.auth.sponsor is not None)

        return pa.Table.from_pydict(columns, schema=EXPORT_SCHEMA)

    def run(self, transactions: Sequence[Transaction], out_path: str | Path) -> int:
        out_path = Path(out_path)
        FileSystem.ensure_dir(out_path.parent)

        with self.timer("parquet_export"):
            table = self.to_table(transactions)
            try:
                pq.write_table(table, out_path, compression=self.compression)
            except OSError as e:
                raise PersistenceWriteError(f"[ParquetExport] failed to write {out_path}: {e}") from e

        logs.info(f"[ParquetExport] {table.num_rows} rows -> {out_path}")
        return table.num_rows
